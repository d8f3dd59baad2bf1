"""
Command line entry point for ingestion runs and maintenance passes.

    pmhnp-ingest ingest --source greenhouse --source lever --mode full
    pmhnp-ingest sweep-links --dry-run
    pmhnp-ingest dedupe --apply
    pmhnp-ingest backfill locations
"""
import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from dotenv import load_dotenv

from app.config import get_settings
from connectors import get_connector_registry
from orchestrator import RunConfig, run_ingestion
from pipeline.batch_dedupe import run_batch_dedupe
from pipeline.maintenance import BACKFILLS, cleanup_expired, get_ingestion_stats, sweep_dead_links
from pipeline.store import InMemoryJobStore, JobStore, get_job_store

logger = logging.getLogger(__name__)


def _print(payload) -> None:
    print(json.dumps(payload, indent=2, default=str))


def _store(args) -> JobStore:
    if getattr(args, 'memory', False):
        return InMemoryJobStore()
    return get_job_store(get_settings().database_url)


def cmd_ingest(args) -> int:
    store = _store(args)
    config = RunConfig(
        sources=args.source or None,
        pages_per_query=args.pages,
        mode=args.mode,
        queries=args.query or None,
        validate_links=False if args.no_validate_links else None,
        dry_run=args.dry_run,
        cleanup=not args.no_cleanup,
    )
    report = asyncio.run(run_ingestion(store, config))
    _print(report.to_dict())
    return 0


def cmd_sweep_links(args) -> int:
    summary = asyncio.run(sweep_dead_links(
        _store(args),
        max_records=args.limit,
        dry_run=args.dry_run,
    ))
    _print(summary)
    return 0


def cmd_dedupe(args) -> int:
    report = run_batch_dedupe(_store(args), dry_run=not args.apply)
    _print(report.to_dict())
    return 0


def cmd_backfill(args) -> int:
    backfill = BACKFILLS[args.kind]
    _print(backfill(_store(args), limit=args.limit, dry_run=args.dry_run))
    return 0


def cmd_cleanup(args) -> int:
    _print({'expired_removed': cleanup_expired(_store(args), dry_run=args.dry_run)})
    return 0


def cmd_stats(args) -> int:
    _print(get_ingestion_stats(_store(args)))
    return 0


def cmd_sources(args) -> int:
    _print(get_connector_registry().list())
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='pmhnp-ingest', description='PMHNP job ingestion pipeline')
    parser.add_argument('--log-level', default=None, help='Overrides LOG_LEVEL')
    parser.add_argument('--memory', action='store_true', help='Use an in-memory store (nothing is persisted)')
    sub = parser.add_subparsers(dest='command', required=True)

    ingest = sub.add_parser('ingest', help='Run connectors and persist new postings')
    ingest.add_argument('--source', action='append', help='Source to run (repeatable); all when omitted')
    ingest.add_argument('--mode', choices=['full', 'chunk'], default='full')
    ingest.add_argument('--pages', type=int, default=None, help='Pages per query for paginated sources')
    ingest.add_argument('--query', action='append', help='Explicit search query (repeatable), replaces the default matrix')
    ingest.add_argument('--no-validate-links', action='store_true')
    ingest.add_argument('--no-cleanup', action='store_true', help='Skip the expired-posting cleanup')
    ingest.add_argument('--dry-run', action='store_true')
    ingest.set_defaults(func=cmd_ingest)

    sweep = sub.add_parser('sweep-links', help='Unpublish postings whose apply link is dead')
    sweep.add_argument('--limit', type=int, default=1500)
    sweep.add_argument('--dry-run', action='store_true')
    sweep.set_defaults(func=cmd_sweep_links)

    dedupe = sub.add_parser('dedupe', help='Offline duplicate pass over published postings')
    dedupe.add_argument('--apply', action='store_true', help='Unpublish duplicates (default is report only)')
    dedupe.set_defaults(func=cmd_dedupe)

    backfill = sub.add_parser('backfill', help='Re-run normalization over stored postings')
    backfill.add_argument('kind', choices=sorted(BACKFILLS))
    backfill.add_argument('--limit', type=int, default=5000)
    backfill.add_argument('--dry-run', action='store_true')
    backfill.set_defaults(func=cmd_backfill)

    cleanup = sub.add_parser('cleanup', help='Unpublish expired postings')
    cleanup.add_argument('--dry-run', action='store_true')
    cleanup.set_defaults(func=cmd_cleanup)

    sub.add_parser('stats', help='Print ingestion statistics').set_defaults(func=cmd_stats)
    sub.add_parser('sources', help='List registered sources').set_defaults(func=cmd_sources)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=(args.log_level or get_settings().log_level).upper())
    try:
        return args.func(args)
    except KeyError as e:
        logger.error(f"[cli] {e}")
        return 2


if __name__ == '__main__':
    sys.exit(main())
