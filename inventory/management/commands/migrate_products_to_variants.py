"""Move flat product stock onto default variants backed by the ledger.

Products that predate variants keep their units in ``Product.stock``. For
each such product without variants this creates a default variant (no
size, no color) opened with a ``purchase`` movement for those units. When
a default variant already exists, leftover flat units are folded into it
with an ``adjustment``. Flat stock is zeroed either way, so re-running is
idempotent.
"""

from catalog.models import Product
from catalog.services import create_variant
from common.choices import MovementType
from django.core.management.base import BaseCommand
from django.db import transaction
from inventory.ledger import apply_movement, find_variant


class Command(BaseCommand):
    help = "Create default variants for products that only have flat stock"

    def add_arguments(self, parser):
        parser.add_argument("--dry-run", action="store_true", help="Report what would change without writing")

    def handle(self, *args, **options):
        dry_run = options["dry_run"]
        created = adjusted = 0
        for product in Product.objects.filter(stock__gt=0).order_by("id").iterator():
            default = find_variant(product.id)
            if default is None and product.variants.exists():
                # Sized variants only; flat stock still serves unmatched lines.
                continue
            units = int(product.stock)
            if default is None:
                created += 1
                self.stdout.write(f"{product.title}: default variant with {units} units")
            else:
                adjusted += 1
                self.stdout.write(f"{product.title}: {units} flat units moved to default variant")
            if dry_run:
                continue
            with transaction.atomic():
                if default is None:
                    create_variant(product_id=product.id, stock=units)
                else:
                    apply_movement(
                        variant_id=default.id,
                        movement_type=MovementType.ADJUSTMENT,
                        quantity=units,
                        reason="Flat stock migration",
                        description="Flat product stock folded into the default variant",
                    )
                Product.objects.filter(id=product.id).update(stock=0)

        prefix = "[dry run] " if dry_run else ""
        self.stdout.write(self.style.SUCCESS(f"{prefix}Created {created} default variants, adjusted {adjusted}."))
