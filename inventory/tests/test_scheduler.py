import datetime as dt
import threading

import pytest
from apscheduler.triggers.interval import IntervalTrigger
from inventory.scheduler import StockJob, build_scheduler, default_jobs, run_job


def test_failing_job_is_logged_and_returns_none(caplog):
    def broken():
        raise RuntimeError("database unavailable")

    with caplog.at_level("ERROR", logger="tinythreads.inventory"):
        assert run_job(StockJob("broken", dt.timedelta(minutes=1), broken)) is None
    assert any(r.getMessage() == "stock.job_failed" for r in caplog.records)


def test_run_job_returns_result():
    assert run_job(StockJob("answer", dt.timedelta(minutes=1), lambda: 42)) == 42


def test_build_scheduler_registers_interval_jobs():
    jobs = [
        StockJob("fast", dt.timedelta(minutes=1), lambda: None),
        StockJob("slow", dt.timedelta(hours=1), lambda: None),
    ]

    scheduler = build_scheduler(jobs)

    registered = {job.id: job for job in scheduler.get_jobs()}
    assert set(registered) == {"fast", "slow"}
    assert isinstance(registered["fast"].trigger, IntervalTrigger)
    assert registered["fast"].trigger.interval == dt.timedelta(minutes=1)
    assert registered["slow"].trigger.interval == dt.timedelta(hours=1)
    assert registered["fast"].max_instances == 1


def test_background_scheduler_runs_jobs_and_shuts_down():
    fired = threading.Event()
    healthy = threading.Event()

    def broken():
        fired.set()
        raise RuntimeError("lock timeout")

    scheduler = build_scheduler(
        [
            StockJob("broken", dt.timedelta(hours=1), broken),
            StockJob("healthy", dt.timedelta(hours=1), healthy.set),
        ],
        run_now=True,
    )
    scheduler.start()
    try:
        assert fired.wait(timeout=5)
        assert healthy.wait(timeout=5)
    finally:
        scheduler.shutdown(wait=True)

    assert not scheduler.running


@pytest.mark.django_db
def test_default_jobs_follow_settings(settings):
    settings.STOCK_RELEASE_INTERVAL_MINUTES = 5
    settings.STOCK_LOW_STOCK_DIGEST_INTERVAL_HOURS = 12

    jobs = {job.name: job for job in default_jobs()}

    assert set(jobs) == {"release_expired_orders", "release_expired_reservations", "send_low_stock_digest"}
    assert jobs["release_expired_orders"].interval == dt.timedelta(minutes=5)
    assert jobs["send_low_stock_digest"].interval == dt.timedelta(hours=12)

    scheduled = {job.id: job.trigger.interval for job in build_scheduler().get_jobs()}
    assert scheduled["release_expired_reservations"] == dt.timedelta(minutes=5)

    for job in jobs.values():
        run_job(job)
