# Overview: Scheduled sync trigger; sweeps every active tenant through a bounded worker pool.

"""
Scheduler Trigger

Every SYNC_INTERVAL_HOURS the sweep runs a full sync for every active
tenant. Tenants are independent, so they run in parallel on a thread pool
bounded by SCHEDULER_MAX_WORKERS (which also bounds the load put on the
Shopify API).

Isolation:
- each job runs in its own app context and therefore its own DB session
- an exception in one tenant's job is recorded and the sweep continues
- each job gets a cancel token that a timer sets after
  SCHEDULER_TENANT_TIMEOUT seconds; the orchestrator stops at the next page
  or record boundary, and the sweep stops waiting for jobs that overrun
"""

from __future__ import annotations

import logging
import math
import threading
import time
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Callable

import schedule

from ..extensions import db
from ..models import Tenant
from shopsync.time_utils import utcnow
from .sync_service import SyncOrchestrator, SyncResult
from .tenant_service import get_active_tenants


logger = logging.getLogger(__name__)

# Extra time the sweep waits past the per-tenant deadlines for jobs to notice cancellation.
CANCEL_GRACE_SECONDS = 30.0


@dataclass
class TenantOutcome:
    tenant_id: int
    status: str  # completed, partial, failed, error, timeout
    detail: str | None = None


@dataclass
class SweepReport:
    started_at: object = field(default_factory=utcnow)
    outcomes: list[TenantOutcome] = field(default_factory=list)

    def by_status(self, status: str) -> list[int]:
        return [o.tenant_id for o in self.outcomes if o.status == status]

    def to_dict(self) -> dict:
        return {
            "started_at": str(self.started_at),
            "tenants": len(self.outcomes),
            "outcomes": [o.__dict__ for o in self.outcomes],
        }


def sync_tenant(app, tenant_id: int, cancel_event: threading.Event) -> SyncResult:
    """Full sync of one tenant inside its own app context."""
    with app.app_context():
        try:
            tenant = db.session.get(Tenant, tenant_id)
            if tenant is None:
                raise LookupError(f"Tenant {tenant_id} disappeared before its sync started")
            orchestrator = SyncOrchestrator.from_config(db.session, app.config)
            return orchestrator.run_sync(tenant, "full", trigger="scheduled", cancel_event=cancel_event)
        finally:
            db.session.remove()


def _outcome(tenant_id: int, result: SyncResult, cancelled: bool) -> TenantOutcome:
    if cancelled and any(f.kind == "cancelled" for f in result.failures.values()):
        return TenantOutcome(tenant_id, "timeout", "; ".join(result.errors))
    if not result.success:
        return TenantOutcome(tenant_id, "failed", "; ".join(result.errors))
    if result.partial:
        return TenantOutcome(tenant_id, "partial", "; ".join(result.errors))
    return TenantOutcome(tenant_id, "completed")


def sweep_active_tenants(
    app,
    *,
    max_workers: int | None = None,
    tenant_timeout: float | None = None,
    run_tenant: Callable[[object, int, threading.Event], SyncResult] = sync_tenant,
) -> SweepReport:
    """
    Run a full sync for every active tenant; never raises for a single tenant.
    """
    max_workers = max(1, max_workers or app.config.get("SCHEDULER_MAX_WORKERS", 4))
    tenant_timeout = tenant_timeout or app.config.get("SCHEDULER_TENANT_TIMEOUT", 900.0)

    with app.app_context():
        tenant_ids = [t.id for t in get_active_tenants(db.session)]
        db.session.remove()

    report = SweepReport()
    if not tenant_ids:
        logger.info("Scheduled sync: no active tenants")
        return report

    logger.info("Scheduled sync starting for %s tenant(s)", len(tenant_ids))
    cancel_events = {tenant_id: threading.Event() for tenant_id in tenant_ids}

    def _job(tenant_id: int) -> SyncResult:
        event = cancel_events[tenant_id]
        timer = threading.Timer(tenant_timeout, event.set)
        timer.daemon = True
        timer.start()
        try:
            return run_tenant(app, tenant_id, event)
        finally:
            timer.cancel()

    executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="tenant-sync")
    futures = {executor.submit(_job, tenant_id): tenant_id for tenant_id in tenant_ids}

    # Jobs queue behind each other, so the overall bound grows with the queue depth.
    rounds = math.ceil(len(tenant_ids) / max_workers)
    done, not_done = wait(futures, timeout=rounds * tenant_timeout + CANCEL_GRACE_SECONDS)

    for future, tenant_id in futures.items():
        if future in not_done:
            cancel_events[tenant_id].set()
            report.outcomes.append(TenantOutcome(tenant_id, "timeout", "Sync did not stop before the deadline"))
            logger.error("Scheduled sync for tenant %s overran its deadline", tenant_id)
            continue
        exc = future.exception()
        if exc is not None:
            report.outcomes.append(TenantOutcome(tenant_id, "error", str(exc) or exc.__class__.__name__))
            logger.error("Scheduled sync for tenant %s raised", tenant_id, exc_info=exc)
            continue
        outcome = _outcome(tenant_id, future.result(), cancel_events[tenant_id].is_set())
        report.outcomes.append(outcome)
        logger.info("Scheduled sync for tenant %s: %s", tenant_id, outcome.status)

    executor.shutdown(wait=False, cancel_futures=True)
    logger.info(
        "Scheduled sync finished: %s completed, %s partial, %s failed, %s error, %s timeout",
        *(len(report.by_status(s)) for s in ("completed", "partial", "failed", "error", "timeout")),
    )
    return report


def run_scheduled_sweep(app) -> SweepReport | None:
    """Scheduled job body; a failed sweep is logged and the next one still runs."""
    try:
        return sweep_active_tenants(app)
    except Exception:
        logger.exception("Scheduled sync sweep failed")
        return None


def run_forever(app, *, interval_hours: int | None = None, poll_seconds: float = 1.0,
                stop_event: threading.Event | None = None) -> None:
    """Blocking schedule loop: one sweep every interval_hours."""
    interval_hours = interval_hours or app.config.get("SYNC_INTERVAL_HOURS", 6)
    scheduler = schedule.Scheduler()
    scheduler.every(interval_hours).hours.do(run_scheduled_sweep, app)
    logger.info("Sync scheduler initialized - running every %s hours", interval_hours)

    stop_event = stop_event or threading.Event()
    while not stop_event.is_set():
        scheduler.run_pending()
        time.sleep(poll_seconds)


def start_background_scheduler(app) -> threading.Thread:
    thread = threading.Thread(target=run_forever, args=(app,), name="sync-scheduler", daemon=True)
    thread.start()
    return thread
