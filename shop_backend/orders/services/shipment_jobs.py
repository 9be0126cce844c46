# orders/services/shipment_jobs.py

"""
======================================================
PATH: orders/services/shipment_jobs.py
======================================================
SHIPMENT JOB QUEUE (durable, database-backed)

- enqueue_shipment(order_id): upsert the order's ShipmentJob row as queued
  and, after the surrounding transaction commits, run it inline when
  FULFILLMENT["SHIPMENT_JOBS_EAGER"] is on
- claim_due_jobs(): compare-and-swap claim of queued jobs and of running
  jobs whose lease expired (crash recovery)
- run_job(): execute one claimed job through the orchestrator
- ShipmentWorker: thread-pool consumer (manage.py run_shipment_worker)

Execution is at-least-once; the orchestrator is re-entrant per order.
"""

from __future__ import annotations

import logging
import socket
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

from django.conf import settings
from django.db import close_old_connections, transaction
from django.db.models import F, Q
from django.utils import timezone

from orders.models import ShipmentJob
from orders.services.shipment_orchestrator import process_shipment, record_job_failure

logger = logging.getLogger(__name__)


def _conf(name: str, default):
    return settings.FULFILLMENT.get(name, default)


def _lease_seconds() -> int:
    return int(_conf("SHIPMENT_JOB_LEASE_SECONDS", 300))


def _max_attempts() -> int:
    return int(_conf("SHIPMENT_JOB_MAX_ATTEMPTS", 5))


def default_worker_id() -> str:
    return f"{socket.gethostname()}:{threading.get_ident()}"


# ============================================================
# ENQUEUE
# ============================================================

def enqueue_shipment(order_id, *, reset_attempts: bool = False) -> ShipmentJob:
    """
    Queue shipment booking for an order. Must be called inside the
    transaction that made the order shippable.
    """
    now = timezone.now()
    defaults = {
        "status": ShipmentJob.STATUS_QUEUED,
        "available_at": now,
        "locked_at": None,
        "locked_by": "",
        "last_error": "",
    }
    if reset_attempts:
        defaults["attempts"] = 0

    job, _ = ShipmentJob.objects.update_or_create(order_id=order_id, defaults=defaults)

    logger.info("Shipment job queued", extra={"order_id": str(order_id)})

    if _conf("SHIPMENT_JOBS_EAGER", False):
        transaction.on_commit(lambda: run_eager(order_id))

    return job


def run_eager(order_id) -> None:
    if claim_job(order_id, worker_id="eager"):
        run_job(order_id)


# ============================================================
# CLAIM
# ============================================================

def _claimable_q(now) -> Q:
    stale_before = now - timedelta(seconds=_lease_seconds())
    return Q(status=ShipmentJob.STATUS_QUEUED, available_at__lte=now) | Q(
        status=ShipmentJob.STATUS_RUNNING, locked_at__lt=stale_before
    )


def claim_job(order_id, *, worker_id: str) -> bool:
    now = timezone.now()
    claimed = (
        ShipmentJob.objects.filter(order_id=order_id)
        .filter(_claimable_q(now))
        .update(
            status=ShipmentJob.STATUS_RUNNING,
            locked_at=now,
            locked_by=worker_id,
            attempts=F("attempts") + 1,
            updated_at=now,
        )
    )
    return claimed == 1


def claim_due_jobs(*, limit: int, worker_id: str) -> list:
    """
    Claim up to `limit` due jobs. Each claim is a conditional update, so two
    workers never both own the same job.
    """
    now = timezone.now()
    candidates = list(
        ShipmentJob.objects.filter(_claimable_q(now))
        .order_by("available_at")
        .values_list("order_id", flat=True)[: max(limit, 0)]
    )

    claimed = []
    for order_id in candidates:
        if claim_job(order_id, worker_id=worker_id):
            claimed.append(order_id)

    if claimed:
        logger.info("Shipment jobs claimed", extra={"worker_id": worker_id, "count": len(claimed)})
    return claimed


# ============================================================
# RUN
# ============================================================

def run_job(order_id, *, carrier=None):
    """
    Execute one claimed job. Carrier failures are recorded on the order by the
    orchestrator and complete the job; unexpected errors re-queue it with a
    linear delay until SHIPMENT_JOB_MAX_ATTEMPTS, then fail both the job and
    the order (shipping_status=failed), which makes it retryable.
    """
    try:
        outcome = process_shipment(order_id, carrier=carrier)
    except Exception as exc:
        job = ShipmentJob.objects.get(order_id=order_id)
        now = timezone.now()
        terminal = job.attempts >= _max_attempts()

        job.status = ShipmentJob.STATUS_FAILED if terminal else ShipmentJob.STATUS_QUEUED
        job.available_at = now + timedelta(seconds=30 * job.attempts)
        job.locked_at = None
        job.locked_by = ""
        job.last_error = f"{type(exc).__name__}: {exc}"
        job.save(update_fields=["status", "available_at", "locked_at", "locked_by", "last_error", "updated_at"])

        logger.exception(
            "Shipment job crashed",
            extra={"order_id": str(order_id), "attempt": job.attempts, "terminal": terminal},
        )
        if terminal:
            record_job_failure(order_id, error=job.last_error)
        return None

    ShipmentJob.objects.filter(order_id=order_id).update(
        status=ShipmentJob.STATUS_DONE,
        locked_at=None,
        locked_by="",
        last_error=outcome.error,
        updated_at=timezone.now(),
    )
    return outcome


def process_due_jobs(*, limit: int = 10, worker_id: str | None = None, carrier=None) -> list:
    """Claim and run due jobs in the calling thread."""
    worker_id = worker_id or default_worker_id()
    return [run_job(order_id, carrier=carrier) for order_id in claim_due_jobs(limit=limit, worker_id=worker_id)]


# ============================================================
# WORKER
# ============================================================

class ShipmentWorker:
    """
    Polls the job table and runs jobs on a thread pool.

    Every thread shares the process-wide carrier adapter (and its token).
    """

    def __init__(self, *, concurrency: int | None = None, poll_seconds: float | None = None):
        self.concurrency = int(concurrency or _conf("SHIPMENT_WORKER_CONCURRENCY", 4))
        self.poll_seconds = float(poll_seconds if poll_seconds is not None else _conf("SHIPMENT_JOB_POLL_SECONDS", 2))
        self.worker_id = f"{socket.gethostname()}:worker"
        self._stop = threading.Event()

    def stop(self) -> None:
        self._stop.set()

    @staticmethod
    def _run_in_thread(order_id) -> None:
        try:
            run_job(order_id)
        finally:
            close_old_connections()

    def run_once(self, executor: ThreadPoolExecutor) -> int:
        claimed = claim_due_jobs(limit=self.concurrency, worker_id=self.worker_id)
        futures = [executor.submit(self._run_in_thread, order_id) for order_id in claimed]
        for future in futures:
            future.result()
        return len(claimed)

    def run_forever(self) -> None:
        logger.info(
            "Shipment worker started",
            extra={"worker_id": self.worker_id, "concurrency": self.concurrency},
        )
        with ThreadPoolExecutor(max_workers=self.concurrency, thread_name_prefix="shipment") as executor:
            while not self._stop.is_set():
                handled = self.run_once(executor)
                close_old_connections()
                if not handled:
                    self._stop.wait(self.poll_seconds)
        logger.info("Shipment worker stopped", extra={"worker_id": self.worker_id})
