# orders/management/commands/run_shipment_worker.py

from __future__ import annotations

import signal

from django.core.management.base import BaseCommand

from orders.services.shipment_jobs import ShipmentWorker, process_due_jobs


class Command(BaseCommand):
    help = "Consume queued shipment jobs (book shipments + assign tracking numbers)."

    def add_arguments(self, parser):
        parser.add_argument("--concurrency", type=int, default=None, help="Worker threads (default: settings)")
        parser.add_argument("--poll-seconds", type=float, default=None, help="Idle poll interval (default: settings)")
        parser.add_argument("--once", action="store_true", help="Process due jobs once in this thread and exit")
        parser.add_argument("--limit", type=int, default=50, help="Max jobs for --once")

    def handle(self, *args, **options):
        if options.get("once"):
            outcomes = process_due_jobs(limit=options["limit"])
            self.stdout.write(self.style.SUCCESS(f"Processed {len(outcomes)} shipment job(s)."))
            return

        worker = ShipmentWorker(
            concurrency=options.get("concurrency"),
            poll_seconds=options.get("poll_seconds"),
        )

        def _graceful(signum, frame):
            self.stdout.write(self.style.WARNING("Stopping shipment worker..."))
            worker.stop()

        signal.signal(signal.SIGINT, _graceful)
        signal.signal(signal.SIGTERM, _graceful)

        self.stdout.write(
            self.style.SUCCESS(f"Shipment worker running (concurrency={worker.concurrency}).")
        )
        worker.run_forever()
