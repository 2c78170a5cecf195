from django.core.management.base import BaseCommand
from inventory.sweep import release_expired_orders


class Command(BaseCommand):
    help = "Cancel pending orders past the expiry age and release their reserved stock"

    def add_arguments(self, parser):
        parser.add_argument(
            "--max-age-minutes",
            type=int,
            default=None,
            help="Override STOCK_PENDING_ORDER_EXPIRY_MINUTES for this run",
        )

    def handle(self, *args, **options):
        result = release_expired_orders(max_age_minutes=options["max_age_minutes"])
        msg = (
            f"Scanned {result.scanned} pending orders, cancelled {result.cancelled}, "
            f"released {result.released} lines, {result.failures} failures."
        )
        if result.failures:
            self.stdout.write(self.style.WARNING(msg))
        else:
            self.stdout.write(self.style.SUCCESS(msg))
