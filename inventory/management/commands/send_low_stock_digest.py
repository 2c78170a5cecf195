from django.core.management.base import BaseCommand
from inventory.alerts import send_low_stock_digest


class Command(BaseCommand):
    help = "Notify staff about every active variant at or below its minimum stock"

    def handle(self, *args, **options):
        sent = send_low_stock_digest()
        self.stdout.write(self.style.SUCCESS(f"Low-stock notifications sent: {sent}"))
