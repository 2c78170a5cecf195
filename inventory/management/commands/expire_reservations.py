from django.core.management.base import BaseCommand
from inventory.sweep import release_expired_reservations


class Command(BaseCommand):
    help = "Release active stock reservations that have passed their expires_at timestamp."

    def handle(self, *args, **options):
        count = release_expired_reservations()
        self.stdout.write(self.style.SUCCESS(f"Expired reservations released: {count}"))
