"""
Record models shared by connectors, the pipeline and the store.

RawRecord is what a connector hands to the pipeline: loosely typed, straight
from the source. NormalizedRecord is the canonical row that gets persisted.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from dateutil import parser as date_parser
from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_EXPIRY_DAYS = 30
RENEWAL_DAYS = 60

# Values above this are epoch milliseconds (Lever createdAt), below are seconds.
EPOCH_MS_THRESHOLD = 10 ** 11


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse ISO strings, "2024-05-01", epoch seconds or milliseconds. Unparseable values become None."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        seconds = value / 1000 if value > EPOCH_MS_THRESHOLD else value
        parsed = datetime.fromtimestamp(seconds, tz=timezone.utc)
    elif isinstance(value, str):
        try:
            parsed = date_parser.parse(value)
        except (ValueError, OverflowError):
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_number(value: Any) -> Optional[float]:
    if value is None or value == '' or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.replace(',', '').replace('$', '').strip()
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


class RawRecord(BaseModel):
    """A posting as mapped by a connector, before any normalization."""

    title: str = ''
    employer: str = ''
    location: str = ''
    description: str = ''
    apply_url: str = ''
    source: str = ''
    source_site: Optional[str] = None
    external_id: Optional[str] = None
    min_salary: Optional[float] = None
    max_salary: Optional[float] = None
    salary_period: Optional[str] = None
    salary_text: Optional[str] = None
    is_remote: Optional[bool] = None
    posted_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    job_type: Optional[str] = None
    employer_submitted: bool = False

    @field_validator('title', 'employer', 'location', 'description', 'apply_url', 'source', mode='before')
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        if value is None:
            return ''
        return str(value).strip()

    @field_validator('external_id', mode='before')
    @classmethod
    def _coerce_external_id(cls, value: Any) -> Optional[str]:
        if value is None or value == '':
            return None
        return str(value)

    @field_validator('min_salary', 'max_salary', mode='before')
    @classmethod
    def _coerce_salary(cls, value: Any) -> Optional[float]:
        return _parse_number(value)

    @field_validator('posted_at', 'expires_at', mode='before')
    @classmethod
    def _coerce_datetime(cls, value: Any) -> Optional[datetime]:
        return parse_datetime(value)

    def missing_required(self) -> Optional[str]:
        """Name of the first field a published posting cannot do without, if it is empty."""
        if not self.title:
            return 'title'
        if not self.apply_url:
            return 'apply link'
        return None


class NormalizedRecord(BaseModel):
    """Canonical posting as persisted by the store."""

    id: Optional[str] = None
    title: str
    employer: str = ''
    description: str = ''
    summary: str = ''

    location: str = ''
    city: Optional[str] = None
    state: Optional[str] = None
    state_code: Optional[str] = None
    country: str = 'US'
    is_remote: bool = False
    is_hybrid: bool = False
    location_confidence: float = 0.0

    job_type: Optional[str] = None
    work_mode: Optional[str] = None

    min_salary: Optional[float] = None
    max_salary: Optional[float] = None
    salary_period: Optional[str] = None
    normalized_min_salary: Optional[int] = None
    normalized_max_salary: Optional[int] = None
    salary_is_estimated: bool = False
    salary_confidence: Optional[float] = None
    display_salary: Optional[str] = None

    apply_link: str = ''
    external_id: Optional[str] = None
    source: str = ''
    source_site: Optional[str] = None

    quality_score: int = Field(default=0, ge=0, le=100)
    employer_submitted: bool = False

    posted_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    published: bool = True

    @field_validator('posted_at', 'expires_at', 'created_at', 'updated_at', mode='before')
    @classmethod
    def _coerce_datetime(cls, value: Any) -> Optional[datetime]:
        return parse_datetime(value)

    @model_validator(mode='after')
    def _check_invariants(self) -> 'NormalizedRecord':
        low, high = self.normalized_min_salary, self.normalized_max_salary
        if low is not None and high is not None and low > high:
            self.normalized_min_salary, self.normalized_max_salary = high, low
        if self.published and not (self.title.strip() and self.apply_link.strip()):
            self.published = False
        return self

    @property
    def has_salary(self) -> bool:
        return any(
            value is not None
            for value in (self.min_salary, self.max_salary, self.normalized_min_salary, self.normalized_max_salary)
        )

    def to_row(self) -> Dict[str, Any]:
        """Store row without the id (assigned by the store)."""
        return self.model_dump(exclude={'id'})
