# orders/management/commands/sync_shipped_orders.py

from __future__ import annotations

from django.core.management.base import BaseCommand

from orders.models import Order
from orders.services.tracking import TrackingSyncError, sync_tracking
from shipping.carrier import CarrierError


class Command(BaseCommand):
    help = "Poll the carrier for every shipped order and mark delivered ones."

    def add_arguments(self, parser):
        parser.add_argument("--limit", type=int, default=200, help="Max orders per run")
        parser.add_argument("--dry-run", action="store_true", help="List orders without calling the carrier")

    def handle(self, *args, **options):
        dry_run = bool(options.get("dry_run"))

        order_ids = list(
            Order.objects.filter(shipping_status=Order.SHIPPING_SHIPPED)
            .exclude(tracking_code="")
            .order_by("shipping_completed_at")
            .values_list("id", flat=True)[: options["limit"]]
        )

        if dry_run:
            self.stdout.write(self.style.WARNING(f"[DRY RUN] {len(order_ids)} shipped order(s) would be synced."))
            return

        delivered = 0
        failed = 0
        for order_id in order_ids:
            try:
                result = sync_tracking(order_id=order_id)
            except (CarrierError, TrackingSyncError) as exc:
                failed += 1
                self.stderr.write(self.style.ERROR(f"{order_id}: {exc}"))
                continue
            if result.delivered_now:
                delivered += 1

        self.stdout.write(
            self.style.SUCCESS(
                f"Synced {len(order_ids)} order(s): {delivered} delivered, {failed} failed."
            )
        )
