"""
Tests for the pmhnp-ingest command line.
"""
import json
import sys
from argparse import Namespace
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "apps" / "backend"))

from app.config import reset_settings
from cli import _store, build_parser, main
from pipeline.store import InMemoryJobStore, PostgresJobStore


def test_ingest_flags():
    """Ingest options parse into repeatable sources and queries"""
    args = build_parser().parse_args([
        "ingest", "--source", "greenhouse", "--source", "lever",
        "--mode", "chunk", "--query", "PMHNP", "--no-validate-links", "--dry-run",
    ])
    assert args.source == ["greenhouse", "lever"]
    assert args.mode == "chunk"
    assert args.query == ["PMHNP"]
    assert args.no_validate_links is True
    assert args.dry_run is True
    assert args.no_cleanup is False


def test_sweep_defaults():
    args = build_parser().parse_args(["sweep-links"])
    assert args.limit == 1500
    assert args.dry_run is False


def test_sources_lists_registry(capsys):
    """The sources command prints every registered connector"""
    assert main(["--memory", "sources"]) == 0
    names = [entry["name"] for entry in json.loads(capsys.readouterr().out)]
    assert "greenhouse" in names
    assert "usajobs" in names


def test_stats_on_empty_store(capsys):
    assert main(["--memory", "stats"]) == 0
    stats = json.loads(capsys.readouterr().out)
    assert stats["total_active"] == 0
    assert stats["by_source"] == {}


def test_cleanup_dry_run(capsys):
    assert main(["--memory", "cleanup", "--dry-run"]) == 0
    assert json.loads(capsys.readouterr().out) == {"expired_removed": 0}


def test_backfill_on_empty_store(capsys):
    assert main(["--memory", "backfill", "locations"]) == 0
    assert json.loads(capsys.readouterr().out) == {"scanned": 0, "updated": 0}


def test_unknown_source_exit_code():
    """Naming an unregistered source exits with status 2"""
    assert main(["--memory", "ingest", "--source", "monster"]) == 2


def test_store_selection(monkeypatch):
    """Commands use the configured database unless --memory is given"""
    monkeypatch.delenv("SUPABASE_DB_URL", raising=False)
    monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@db.example/jobs")
    reset_settings()
    try:
        store = _store(Namespace(memory=False))
        assert isinstance(store, PostgresJobStore)
        assert store.db_url == "postgresql://u:p@db.example/jobs"
        assert isinstance(_store(Namespace(memory=True)), InMemoryJobStore)
    finally:
        reset_settings()
