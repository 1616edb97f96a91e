import contextlib
from contextlib import asynccontextmanager
import asyncio
import logging

from app.analytics.db import init_db, purge_old_records
from app.core.config import settings
from app.services.analysis_service import get_analysis_orchestrator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app):
    init_db()
    purge_old_records()
    orchestrator = get_analysis_orchestrator()

    stop_event = asyncio.Event()

    async def periodic_purge() -> None:
        while not stop_event.is_set():
            try:
                deleted = purge_old_records()
                if any(deleted.values()):
                    logger.info("analytics_retention_purge deleted=%s", deleted)
            except Exception as exc:  # noqa: BLE001
                logger.warning("analytics_retention_purge_failed: %s", exc)
            evicted = orchestrator.purge_expired()
            if evicted:
                logger.info("analysis_cache_purge evicted=%s", evicted)
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=settings.cache_purge_interval_s)
            except asyncio.TimeoutError:
                continue

    purge_task = asyncio.create_task(periodic_purge())
    yield
    stop_event.set()
    if not purge_task.done():
        purge_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await purge_task
