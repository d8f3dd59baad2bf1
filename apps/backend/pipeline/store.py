"""
Job store: persistence behind a small criteria-dict interface.

A criteria dict maps column -> value. Keys may carry an operator suffix
(`expires_at__lt`, `apply_link__ne`, `description__contains`, `source__in`,
`updated_at__gt`) and the special key "$or" holds a list of criteria dicts
that are OR-ed together. All keys of one dict are AND-ed.

PostgresJobStore translates criteria to parameterized SQL over a whitelist of
column names. InMemoryJobStore evaluates the same criteria in Python and is
used by tests and dry runs.
"""

import os
import logging
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

import psycopg2
from psycopg2.extras import Json, RealDictCursor

from core.errors import StoreError
from pipeline.models import NormalizedRecord

logger = logging.getLogger(__name__)

DEFAULT_JOBS_TABLE = os.getenv('JOBS_TABLE', 'jobs')

JOB_COLUMNS = frozenset(NormalizedRecord.model_fields) | {'id'}
OPERATORS = ('lt', 'gt', 'ne', 'contains', 'in')

Criteria = Dict[str, Any]
RecordLike = Union[NormalizedRecord, Dict[str, Any]]


def split_key(key: str) -> Tuple[str, Optional[str]]:
    """'expires_at__lt' -> ('expires_at', 'lt'); unknown suffixes are an error."""
    if '__' in key:
        column, op = key.rsplit('__', 1)
        if op not in OPERATORS:
            raise ValueError(f"Unknown criteria operator: {key}")
    else:
        column, op = key, None
    if column not in JOB_COLUMNS:
        raise ValueError(f"Unknown column in criteria: {column}")
    return column, op


def matches(row: Dict[str, Any], criteria: Optional[Criteria]) -> bool:
    """Evaluate criteria against one row in memory."""
    for key, expected in (criteria or {}).items():
        if key == '$or':
            if not any(matches(row, branch) for branch in expected):
                return False
            continue
        column, op = split_key(key)
        actual = row.get(column)
        if op is None:
            ok = actual == expected
        elif op == 'ne':
            ok = actual != expected
        elif op == 'in':
            ok = actual in expected
        elif op == 'contains':
            ok = actual is not None and str(expected).lower() in str(actual).lower()
        elif actual is None:
            ok = False
        elif op == 'lt':
            ok = actual < expected
        else:
            ok = actual > expected
        if not ok:
            return False
    return True


def build_where(criteria: Optional[Criteria]) -> Tuple[str, List[Any]]:
    """Translate criteria into a WHERE fragment (without the keyword) and its parameters."""
    clauses = []
    params: List[Any] = []
    for key, expected in (criteria or {}).items():
        if key == '$or':
            branches = []
            for branch in expected:
                branch_sql, branch_params = build_where(branch)
                branches.append(f"({branch_sql})")
                params.extend(branch_params)
            clauses.append('(' + ' OR '.join(branches) + ')' if branches else 'FALSE')
            continue

        column, op = split_key(key)
        if op is None:
            if expected is None:
                clauses.append(f"{column} IS NULL")
            else:
                clauses.append(f"{column} = %s")
                params.append(expected)
        elif op == 'ne':
            if expected is None:
                clauses.append(f"{column} IS NOT NULL")
            else:
                clauses.append(f"{column} IS DISTINCT FROM %s")
                params.append(expected)
        elif op == 'in':
            clauses.append(f"{column} = ANY(%s)")
            params.append(list(expected))
        elif op == 'contains':
            clauses.append(f"{column} ILIKE %s")
            params.append(f"%{expected}%")
        elif op == 'lt':
            clauses.append(f"{column} < %s")
            params.append(expected)
        else:
            clauses.append(f"{column} > %s")
            params.append(expected)
    return (' AND '.join(clauses) if clauses else 'TRUE'), params


def _order_clause(order_by: Optional[str]) -> Tuple[Optional[str], bool]:
    if not order_by:
        return None, False
    descending = order_by.startswith('-')
    column = order_by.lstrip('-')
    if column not in JOB_COLUMNS:
        raise ValueError(f"Unknown order_by column: {column}")
    return column, descending


def _as_row(record: RecordLike) -> Dict[str, Any]:
    if isinstance(record, NormalizedRecord):
        return record.to_row()
    return {key: value for key, value in record.items() if key != 'id'}


class JobStore(ABC):
    """Persistence contract used by the deduplicator, orchestrator and maintenance passes."""

    @abstractmethod
    def find_matching(self, criteria: Criteria) -> Optional[Dict[str, Any]]:
        """Return one row matching the criteria, or None."""

    @abstractmethod
    def create(self, record: RecordLike) -> str:
        """Insert a record and return its id."""

    @abstractmethod
    def update(self, record_id: str, patch: Dict[str, Any]) -> None:
        pass

    @abstractmethod
    def count(self, criteria: Optional[Criteria] = None) -> int:
        pass

    @abstractmethod
    def group_by(self, field: str, criteria: Optional[Criteria] = None) -> List[Dict[str, Any]]:
        """Return [{'key': value, 'count': n}, ...] ordered by count descending."""

    @abstractmethod
    def iter_records(
        self,
        criteria: Optional[Criteria] = None,
        order_by: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> Iterator[Dict[str, Any]]:
        pass


class InMemoryJobStore(JobStore):
    """Dict-backed store with the same uniqueness rule as the jobs table."""

    def __init__(self):
        self.rows: Dict[str, Dict[str, Any]] = {}

    def find_matching(self, criteria: Criteria) -> Optional[Dict[str, Any]]:
        for row in self.rows.values():
            if matches(row, criteria):
                return dict(row)
        return None

    def create(self, record: RecordLike) -> str:
        row = _as_row(record)
        if row.get('external_id') and row.get('source'):
            clash = self.find_matching({'external_id': row['external_id'], 'source': row['source']})
            if clash:
                raise StoreError(f"Duplicate (external_id, source): ({row['external_id']}, {row['source']})")
        record_id = str(uuid.uuid4())
        row['id'] = record_id
        self.rows[record_id] = row
        return record_id

    def update(self, record_id: str, patch: Dict[str, Any]) -> None:
        if record_id not in self.rows:
            raise StoreError(f"No record with id {record_id}")
        for column in patch:
            split_key(column)
        self.rows[record_id].update(patch)

    def count(self, criteria: Optional[Criteria] = None) -> int:
        return sum(1 for row in self.rows.values() if matches(row, criteria))

    def group_by(self, field: str, criteria: Optional[Criteria] = None) -> List[Dict[str, Any]]:
        split_key(field)
        counts: Dict[Any, int] = {}
        for row in self.rows.values():
            if matches(row, criteria):
                counts[row.get(field)] = counts.get(row.get(field), 0) + 1
        return [{'key': key, 'count': n} for key, n in sorted(counts.items(), key=lambda item: -item[1])]

    def iter_records(self, criteria=None, order_by=None, limit=None) -> Iterator[Dict[str, Any]]:
        rows = [dict(row) for row in self.rows.values() if matches(row, criteria)]
        column, descending = _order_clause(order_by)
        if column:
            # None sorts first ascending, matching NULLS FIRST
            rows.sort(key=lambda row: (row.get(column) is not None, row.get(column)), reverse=descending)
        if limit is not None:
            rows = rows[:limit]
        return iter(rows)


class PostgresJobStore(JobStore):
    """psycopg2-backed store over the jobs table."""

    def __init__(self, db_url: str, table: Optional[str] = None):
        self.db_url = db_url
        self.table = table or DEFAULT_JOBS_TABLE

    def _get_db_conn(self):
        try:
            return psycopg2.connect(self.db_url, connect_timeout=5)
        except psycopg2.Error as e:
            logger.error(f"[store] Failed to connect to database: {e}")
            raise StoreError(f"Database connection failed: {e}") from e

    def _execute(self, sql: str, params: List[Any], fetch: str = 'none') -> Any:
        conn = self._get_db_conn()
        try:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(sql, params)
                if fetch == 'one':
                    result = cur.fetchone()
                elif fetch == 'all':
                    result = cur.fetchall()
                else:
                    result = cur.rowcount
            conn.commit()
            return result
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"[store] Query failed: {e}")
            raise StoreError(str(e)) from e
        finally:
            conn.close()

    def find_matching(self, criteria: Criteria) -> Optional[Dict[str, Any]]:
        where, params = build_where(criteria)
        row = self._execute(f"SELECT * FROM {self.table} WHERE {where} LIMIT 1", params, fetch='one')
        return dict(row) if row else None

    def create(self, record: RecordLike) -> str:
        row = _as_row(record)
        columns = [column for column in row if column in JOB_COLUMNS]
        values = [Json(row[c]) if isinstance(row[c], (dict, list)) else row[c] for c in columns]
        placeholders = ', '.join(['%s'] * len(columns))
        sql = (
            f"INSERT INTO {self.table} ({', '.join(columns)}) "
            f"VALUES ({placeholders}) RETURNING id::text AS id"
        )
        result = self._execute(sql, values, fetch='one')
        return result['id']

    def update(self, record_id: str, patch: Dict[str, Any]) -> None:
        if not patch:
            return
        for column in patch:
            split_key(column)
        assignments = ', '.join(f"{column} = %s" for column in patch)
        params = list(patch.values()) + [record_id]
        self._execute(f"UPDATE {self.table} SET {assignments} WHERE id::text = %s", params)

    def count(self, criteria: Optional[Criteria] = None) -> int:
        where, params = build_where(criteria)
        row = self._execute(f"SELECT COUNT(*) AS count FROM {self.table} WHERE {where}", params, fetch='one')
        return int(row['count']) if row else 0

    def group_by(self, field: str, criteria: Optional[Criteria] = None) -> List[Dict[str, Any]]:
        split_key(field)
        where, params = build_where(criteria)
        sql = (
            f"SELECT {field} AS key, COUNT(*) AS count FROM {self.table} "
            f"WHERE {where} GROUP BY {field} ORDER BY count DESC"
        )
        return [dict(row) for row in self._execute(sql, params, fetch='all')]

    def iter_records(self, criteria=None, order_by=None, limit=None) -> Iterator[Dict[str, Any]]:
        where, params = build_where(criteria)
        sql = f"SELECT * FROM {self.table} WHERE {where}"
        column, descending = _order_clause(order_by)
        if column:
            sql += f" ORDER BY {column} {'DESC' if descending else 'ASC'} NULLS FIRST"
        if limit is not None:
            sql += " LIMIT %s"
            params.append(int(limit))
        for row in self._execute(sql, params, fetch='all'):
            yield dict(row)


def get_job_store(db_url: Optional[str] = None) -> JobStore:
    """Postgres store when a DSN is available, otherwise an in-memory store."""
    if db_url:
        return PostgresJobStore(db_url)
    logger.warning("[store] No database URL configured; using in-memory store")
    return InMemoryJobStore()
