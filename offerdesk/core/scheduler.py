# offerdesk/core/scheduler.py
import asyncio
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from offerdesk.core.settings import Settings, settings as default_settings
from offerdesk.services.sweeper import Sweeper
from offerdesk.services.tag_search import TagSearchTaskManager

logger = logging.getLogger("scheduler")


# --------------------------------------------------------------------------------------
# Jobs
# --------------------------------------------------------------------------------------

def make_sweep_job(sweeper: Sweeper):
    async def job_sweep():
        """Remove offers of deleted customers and orphaned comments."""
        logger.debug("[job_sweep] starting")
        await sweeper.run_safely()

    return job_sweep


def make_evict_job(tag_search: TagSearchTaskManager):
    async def job_evict_tasks():
        tag_search.evict_expired()

    return job_evict_tasks


# --------------------------------------------------------------------------------------
# APScheduler configuration
# --------------------------------------------------------------------------------------

def build_scheduler(cfg: Settings) -> AsyncIOScheduler:
    return AsyncIOScheduler(timezone=cfg.TIMEZONE)


def start_scheduler(
    scheduler: AsyncIOScheduler,
    cfg: Settings,
    sweeper: Sweeper,
    tag_search: TagSearchTaskManager = None,
) -> None:
    """
    Register recurring jobs and start the scheduler.
    - Sweep dangling offers/comments every SWEEP_INTERVAL_SECONDS (if SWEEP_PERIODIC)
    - Evict expired tag-search tasks (if a TTL is configured)
    Deferred tag searches are added by the task manager itself.
    """
    if cfg.SWEEP_PERIODIC:
        scheduler.add_job(
            make_sweep_job(sweeper),
            IntervalTrigger(seconds=cfg.SWEEP_INTERVAL_SECONDS, timezone=cfg.TIMEZONE),
            name="sweep_dangling_records",
            max_instances=1,
            coalesce=True,
        )

    if tag_search is not None and tag_search.ttl_seconds > 0:
        scheduler.add_job(
            make_evict_job(tag_search),
            IntervalTrigger(seconds=max(60.0, tag_search.ttl_seconds / 4), timezone=cfg.TIMEZONE),
            name="evict_search_tasks",
            max_instances=1,
            coalesce=True,
        )

    scheduler.start()
    logger.info("[scheduler] started (periodic sweep=%s every %ss)", cfg.SWEEP_PERIODIC, cfg.SWEEP_INTERVAL_SECONDS)


def stop_scheduler(scheduler: AsyncIOScheduler) -> None:
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("[scheduler] stopped.")


# --------------------------------------------------------------------------------------
# Standalone runner mode: periodic sweeper as its own worker process
# --------------------------------------------------------------------------------------

if __name__ == "__main__":
    from offerdesk.core.logging_config import setup_logging
    from offerdesk.store import build_store

    async def runner():
        setup_logging(default_settings.LOG_LEVEL)
        store = build_store(default_settings)
        await store.init()
        scheduler = build_scheduler(default_settings)
        start_scheduler(scheduler, default_settings, Sweeper(store))
        logger.info("[main] scheduler running. Ctrl+C to stop.")
        # keep the loop alive forever
        while True:
            await asyncio.sleep(3600)

    asyncio.run(runner())
