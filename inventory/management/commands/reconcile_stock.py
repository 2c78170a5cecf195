"""Verify cached variant counters against the stock ledger.

Replays every movement of a variant and compares the result with its
``stock``/``reserved_stock`` columns. With ``--repair`` the columns are
rewritten from the ledger; movements are never touched.
"""

from django.core.management.base import BaseCommand, CommandError
from inventory.exceptions import VariantNotFound
from inventory.ledger import verify_all, verify_variant


class Command(BaseCommand):
    help = "Compare variant stock counters with the movement ledger"

    def add_arguments(self, parser):
        parser.add_argument("--variant", type=int, default=None, help="Only check this variant id")
        parser.add_argument("--repair", action="store_true", help="Rewrite drifted counters from the ledger")

    def handle(self, *args, **options):
        repair = options["repair"]
        if options["variant"] is not None:
            try:
                drift = verify_variant(options["variant"], repair=repair)
            except VariantNotFound as exc:
                raise CommandError(str(exc)) from exc
            drifts = [drift] if drift else []
        else:
            drifts = verify_all(repair=repair)

        for d in drifts:
            self.stdout.write(
                self.style.WARNING(
                    f"Variant {d.variant_id}: cached stock={d.cached_stock} reserved={d.cached_reserved}, "
                    f"ledger stock={d.ledger_stock} reserved={d.ledger_reserved}"
                    + (" (repaired)" if d.repaired else "")
                )
            )
        if drifts:
            self.stdout.write(self.style.WARNING(f"Variants with drift: {len(drifts)}"))
        else:
            self.stdout.write(self.style.SUCCESS("Stock counters match the ledger."))
