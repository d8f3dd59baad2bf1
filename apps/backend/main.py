from fastapi import FastAPI, Query, HTTPException, Request, Depends
from fastapi.responses import JSONResponse
from dotenv import load_dotenv
from datetime import datetime, timezone
from typing import Optional
import os
import logging
import time
import traceback

from app.config import get_settings
from app.db_config import get_db_config, mask_dsn
from connectors import get_connector_registry
from core.link_validator import get_link_validator
from orchestrator import RunConfig, run_ingestion
from pipeline import __version__
from pipeline.maintenance import cleanup_expired, get_ingestion_stats, sweep_dead_links
from pipeline.store import get_job_store
from security.cron_auth import cron_required, is_dev_mode

load_dotenv()

logging.basicConfig(level=get_settings().log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="PMHNP Jobs Ingestion", version=__version__)


def get_store():
    """Job store dependency; overridden in tests."""
    return get_job_store(get_settings().database_url)


# Error masking middleware
@app.middleware("http")
async def error_masking_middleware(request: Request, call_next):
    """Mask detailed errors in production; show full errors in dev."""
    try:
        return await call_next(request)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Unhandled error: {str(e)}")
        content = {
            "success": False,
            "error": "An internal error occurred.",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        if is_dev_mode():
            logger.error(traceback.format_exc())
            content["error"] = str(e)
        return JSONResponse(status_code=500, content=content)


@app.get("/api/healthz")
async def healthz():
    db_config = get_db_config()
    return {
        "status": "ok",
        "version": __version__,
        "db": mask_dsn(db_config.dsn) if db_config.is_db_enabled else None,
        "sources": get_connector_registry().names(),
    }


@app.get("/api/cron/ingest")
@app.post("/api/cron/ingest")
async def cron_ingest(
    source: Optional[str] = Query(None, description="Single source to run; all sources when omitted"),
    mode: str = Query("chunk", pattern="^(full|chunk)$"),
    dry_run: bool = Query(False),
    _: None = Depends(cron_required),
    store=Depends(get_store),
):
    """Scheduled ingestion: ingest, unpublish expired postings, report current stats"""
    started = time.monotonic()
    sources = [source] if source else None
    if source and get_connector_registry().get(source) is None:
        raise HTTPException(status_code=400, detail=f"Unknown source: {source}")

    logger.info(f"[cron] Ingestion started (sources={sources or 'all'}, mode={mode})")
    report = await run_ingestion(store, RunConfig(sources=sources, mode=mode, dry_run=dry_run))
    expired_removed = cleanup_expired(store, dry_run=dry_run)
    stats = get_ingestion_stats(store)

    duration_ms = int((time.monotonic() - started) * 1000)
    logger.info(f"[cron] Ingestion finished in {duration_ms / 1000:.1f}s: {report.totals}")
    return {
        "success": True,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "duration": duration_ms,
        "ingestion": {
            "results": [result.to_dict() for result in report.results],
            "summary": report.totals,
            "budget_exhausted": report.budget_exhausted,
        },
        "cleanup": {"expiredJobsRemoved": expired_removed},
        "currentStats": stats,
    }


@app.get("/api/cron/check-dead-links")
@app.post("/api/cron/check-dead-links")
async def cron_check_dead_links(
    dry_run: bool = Query(False),
    _: None = Depends(cron_required),
    store=Depends(get_store),
):
    """Liveness sweep over published aggregated postings"""
    logger.info("[cron] Dead link check started")
    summary = await sweep_dead_links(store, get_link_validator(), dry_run=dry_run)
    return {"success": True, **summary}


@app.get("/api/stats")
async def stats(_: None = Depends(cron_required), store=Depends(get_store)):
    return get_ingestion_stats(store)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
