import logging
import signal

from apscheduler.schedulers.blocking import BlockingScheduler
from django.conf import settings
from django.core.management.base import BaseCommand
from inventory.scheduler import build_scheduler, default_jobs

logger = logging.getLogger("tinythreads.inventory")


class Command(BaseCommand):
    help = "Run the periodic stock jobs (expiry sweep, low-stock digest) until interrupted"

    def add_arguments(self, parser):
        parser.add_argument("--run-now", action="store_true", help="Fire every job once at startup")
        parser.add_argument("--force", action="store_true", help="Run even when STOCK_JOBS_ENABLED is off")

    def handle(self, *args, **options):
        if not (getattr(settings, "STOCK_JOBS_ENABLED", False) or options["force"]):
            self.stdout.write(self.style.WARNING("Stock jobs are disabled (STOCK_JOBS_ENABLED=False)."))
            return

        jobs = default_jobs()
        scheduler = build_scheduler(jobs, scheduler_class=BlockingScheduler, run_now=options["run_now"])

        def _shutdown(signum, frame):
            self.stdout.write("Stopping stock jobs...")
            scheduler.shutdown(wait=False)

        signal.signal(signal.SIGTERM, _shutdown)

        self.stdout.write(self.style.SUCCESS(f"Stock jobs running: {', '.join(j.name for j in jobs)}"))
        logger.info(
            "stock.scheduler_started",
            extra={"event": "stock.scheduler_started", "jobs": [j.name for j in jobs]},
        )
        try:
            scheduler.start()
        except (KeyboardInterrupt, SystemExit):
            scheduler.shutdown(wait=False)
        logger.info("stock.scheduler_stopped", extra={"event": "stock.scheduler_stopped"})
        self.stdout.write(self.style.SUCCESS("Stock jobs stopped."))
