"""APScheduler wiring for the periodic stock jobs.

The expiry sweeps and the low-stock digest run as interval jobs. Jobs share
no in-process state; everything they touch goes through the database.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, Iterable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from django.conf import settings
from django.db import close_old_connections
from django.utils import timezone

from .alerts import send_low_stock_digest
from .sweep import release_expired_orders, release_expired_reservations

logger = logging.getLogger("tinythreads.inventory")


@dataclass(frozen=True)
class StockJob:
    name: str
    interval: timedelta
    func: Callable[[], object]


def run_job(job: StockJob):
    """Run one job; a failure is logged and returns ``None``."""
    try:
        result = job.func()
    except Exception:
        logger.exception("stock.job_failed", extra={"event": "stock.job_failed", "job": job.name})
        return None
    logger.info(
        "stock.job_finished",
        extra={"event": "stock.job_finished", "job": job.name, "result": repr(result)},
    )
    return result


def _run_scheduled(job: StockJob):
    # Executor threads keep their own connections; drop stale ones after each run.
    try:
        return run_job(job)
    finally:
        close_old_connections()


def default_jobs() -> list[StockJob]:
    release_every = timedelta(minutes=int(getattr(settings, "STOCK_RELEASE_INTERVAL_MINUTES", 15)))
    digest_every = timedelta(hours=int(getattr(settings, "STOCK_LOW_STOCK_DIGEST_INTERVAL_HOURS", 24)))
    return [
        StockJob("release_expired_orders", release_every, release_expired_orders),
        StockJob("release_expired_reservations", release_every, release_expired_reservations),
        StockJob("send_low_stock_digest", digest_every, send_low_stock_digest),
    ]


def build_scheduler(
    jobs: Optional[Iterable[StockJob]] = None,
    *,
    scheduler_class=BackgroundScheduler,
    run_now: bool = False,
):
    """Return an unstarted scheduler with one interval job per ``StockJob``.

    ``run_now`` fires every job once as soon as the scheduler starts.
    """
    scheduler = scheduler_class(timezone=settings.TIME_ZONE)
    for job in default_jobs() if jobs is None else jobs:
        options = {}
        if run_now:
            options["next_run_time"] = timezone.now()
        scheduler.add_job(
            _run_scheduled,
            IntervalTrigger(seconds=job.interval.total_seconds()),
            args=[job],
            id=job.name,
            name=job.name,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            **options,
        )
    return scheduler
