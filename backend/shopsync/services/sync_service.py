# Overview: Sync orchestrator; sequences per-resource syncs, aggregates results and writes SyncLog rows.

"""
Sync Orchestrator

run_sync(tenant, scope) with scope in customers | orders | products | full.

Each sub-sync:
    SyncLog(started) -> fetch -> reconcile records in source order
    -> (orders) recompute customer statistics -> SyncLog(completed, count)
On failure the sub-sync log becomes failed with a readable message and the
number of records stored before the failure.

A full sync runs the three sub-syncs independently; one failing does not
stop the others. The full SyncLog is completed when at least one sub-sync
succeeded (error_message lists the failures) and failed when none did. The
returned SyncResult carries partial=True plus per-resource errors so callers
can tell which resource failed and why.

Only TransientFault is retried, with exponential backoff capped at
max_retry_delay, and only around the fetch; a cancel token cuts the wait
short. AuthError and PermissionScopeError fail immediately.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable

from sqlalchemy.orm import Session

from ..models import SyncLog
from ..models.sync import STATUS_COMPLETED, STATUS_FAILED, STATUS_STARTED
from shopsync.time_utils import utcnow
from .errors import SyncCancelled, TransientFault, classify, describe
from .reconcile_service import Reconciler
from .shopify_client import ShopifyClient
from .statistics_service import StatisticsRecalculator


logger = logging.getLogger(__name__)

SUB_SYNCS = ("customers", "orders", "products")
SCOPES = SUB_SYNCS + ("full",)

# Access scope named in the readable error when a sub-sync is denied.
REQUIRED_SCOPES = {
    "customers": "read_customers",
    "orders": "read_orders",
    "products": "read_products",
}


@dataclass
class SubSyncFailure:
    kind: str
    message: str


@dataclass
class SyncResult:
    scope: str
    success: bool = False
    partial: bool = False
    counts: dict[str, int] = field(default_factory=dict)
    failures: dict[str, SubSyncFailure] = field(default_factory=dict)
    log_id: int | None = None

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    @property
    def errors(self) -> list[str]:
        return [f"{name.capitalize()}: {failure.message}" for name, failure in self.failures.items()]

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "scope": self.scope,
            "success": self.success,
            "partial": self.partial,
            "total": self.total,
            "log_id": self.log_id,
        }
        for name in SUB_SYNCS:
            if name in self.counts or name in self.failures:
                data[name] = self.counts.get(name, 0)
        if self.failures:
            data["errors"] = self.errors
            data["failures"] = {
                name: {"kind": f.kind, "message": f.message} for name, f in self.failures.items()
            }
        return data


class _SubSyncError(Exception):
    """Carries the records stored before a sub-sync failed."""

    def __init__(self, original: BaseException, processed: int):
        self.original = original
        self.processed = processed
        super().__init__(str(original))


class SyncOrchestrator:
    def __init__(
        self,
        session: Session,
        *,
        client_factory: Callable[[Any], ShopifyClient] | None = None,
        retry_attempts: int = 3,
        retry_backoff: float = 1.0,
        max_retry_delay: float = 60.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.session = session
        self.client_factory = client_factory or ShopifyClient.for_tenant
        self.retry_attempts = max(1, retry_attempts)
        self.retry_backoff = retry_backoff
        self.max_retry_delay = max_retry_delay
        self.sleep = sleep
        self.reconciler = Reconciler(session)
        self.statistics = StatisticsRecalculator(session)
        self._last_log_id: int | None = None

    @classmethod
    def from_config(cls, session: Session, config, **kwargs) -> "SyncOrchestrator":
        """Build with settings from a Flask config mapping."""
        api_version = config.get("SHOPIFY_API_VERSION")
        timeout = config.get("SHOPIFY_HTTP_TIMEOUT", 30.0)
        kwargs.setdefault(
            "client_factory",
            lambda tenant: ShopifyClient.for_tenant(tenant, api_version=api_version, timeout=timeout),
        )
        kwargs.setdefault("retry_attempts", config.get("SYNC_RETRY_ATTEMPTS", 3))
        kwargs.setdefault("retry_backoff", config.get("SYNC_RETRY_BACKOFF", 1.0))
        kwargs.setdefault("max_retry_delay", config.get("SYNC_RETRY_MAX_DELAY", 60.0))
        return cls(session, **kwargs)

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def run_sync(
        self,
        tenant,
        scope: str = "full",
        *,
        trigger: str = "manual",
        cancel_event: threading.Event | None = None,
    ) -> SyncResult:
        if scope not in SCOPES:
            raise ValueError(f"Unknown sync scope: {scope}")

        client = self.client_factory(tenant)
        logger.info("Starting %s sync for tenant %s (%s)", scope, tenant.id, trigger)

        if scope != "full":
            result = SyncResult(scope=scope)
            self._collect(result, scope, tenant, client, trigger, cancel_event)
            result.success = not result.failures
            return result

        full_log = self._start_log(tenant.id, "full", trigger)
        result = SyncResult(scope="full", log_id=full_log.id)
        for name in SUB_SYNCS:
            self._collect(result, name, tenant, client, trigger, cancel_event)

        succeeded = [name for name in SUB_SYNCS if name not in result.failures]
        result.success = bool(succeeded)
        result.partial = result.success and bool(result.failures)
        self._finish_log(
            full_log,
            STATUS_COMPLETED if result.success else STATUS_FAILED,
            result.total,
            "; ".join(result.errors) or None,
        )
        logger.info(
            "Full sync for tenant %s finished: success=%s partial=%s total=%s",
            tenant.id, result.success, result.partial, result.total,
        )
        return result

    def _collect(self, result: SyncResult, name: str, tenant, client, trigger, cancel_event) -> None:
        runner = getattr(self, f"sync_{name}")
        try:
            result.counts[name] = runner(tenant, client, trigger=trigger, cancel_event=cancel_event)
        except _SubSyncError as exc:
            result.counts[name] = exc.processed
            result.failures[name] = SubSyncFailure(
                kind=classify(exc.original),
                message=describe(exc.original, REQUIRED_SCOPES.get(name)),
            )
        if result.scope != "full":
            result.log_id = self._last_log_id

    # ------------------------------------------------------------------
    # Sub-syncs
    # ------------------------------------------------------------------

    def sync_customers(self, tenant, client, *, trigger: str = "manual",
                       cancel_event: threading.Event | None = None) -> int:
        def _work(progress: list[int]) -> None:
            records = self._fetch(lambda: client.get_customers(cancel_event=cancel_event), cancel_event)
            for record in records:
                self._check_cancel(cancel_event, "customers", progress[0])
                self.reconciler.reconcile_customer(record, tenant.id)
                progress[0] += 1

        return self._run_sub_sync(tenant, "customers", trigger, _work)

    def sync_orders(self, tenant, client, *, trigger: str = "manual",
                    cancel_event: threading.Event | None = None) -> int:
        def _work(progress: list[int]) -> None:
            try:
                orders = self._fetch(lambda: client.get_orders(cancel_event=cancel_event), cancel_event)
                for record in orders:
                    self._check_cancel(cancel_event, "orders", progress[0])
                    self.reconciler.reconcile_order(record, tenant.id)
                    progress[0] += 1

                drafts = self._fetch(lambda: client.get_draft_orders(cancel_event=cancel_event), cancel_event)
                for record in drafts:
                    self._check_cancel(cancel_event, "orders", progress[0])
                    self.reconciler.reconcile_draft_order(record, tenant.id)
                    progress[0] += 1
            except Exception:
                # orders stored before the failure are committed; keep stats in step with them
                if progress[0]:
                    self._recompute_after_failure(tenant.id)
                raise

            self.statistics.recompute_customer_stats(tenant.id)

        return self._run_sub_sync(tenant, "orders", trigger, _work)

    def sync_products(self, tenant, client, *, trigger: str = "manual",
                      cancel_event: threading.Event | None = None) -> int:
        def _work(progress: list[int]) -> None:
            records = self._fetch(lambda: client.get_products(cancel_event=cancel_event), cancel_event)
            for record in records:
                self._check_cancel(cancel_event, "products", progress[0])
                self.reconciler.reconcile_product(record, tenant.id)
                progress[0] += 1

        return self._run_sub_sync(tenant, "products", trigger, _work)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _run_sub_sync(self, tenant, sync_type: str, trigger: str, work: Callable[[list[int]], None]) -> int:
        log = self._start_log(tenant.id, sync_type, trigger)
        self._last_log_id = log.id
        progress = [0]
        try:
            work(progress)
        except Exception as exc:
            self.session.rollback()
            message = describe(exc, REQUIRED_SCOPES.get(sync_type))
            self._finish_log(log, STATUS_FAILED, progress[0], message)
            logger.warning(
                "%s sync failed for tenant %s after %s record(s): %s",
                sync_type.capitalize(), tenant.id, progress[0], message,
            )
            raise _SubSyncError(exc, progress[0]) from exc

        self._finish_log(log, STATUS_COMPLETED, progress[0], None)
        logger.info("%s sync for tenant %s stored %s record(s)", sync_type.capitalize(), tenant.id, progress[0])
        return progress[0]

    def _fetch(self, fetch: Callable[[], list[dict[str, Any]]],
               cancel_event: threading.Event | None = None) -> list[dict[str, Any]]:
        attempt = 0
        while True:
            try:
                return fetch()
            except TransientFault as exc:
                attempt += 1
                if attempt >= self.retry_attempts:
                    raise
                delay = exc.retry_after if exc.retry_after is not None else self.retry_backoff * (2 ** (attempt - 1))
                delay = min(delay, self.max_retry_delay)
                logger.info("Transient Shopify fault (%s); retrying in %.1fs", exc, delay)
                if cancel_event is None:
                    self.sleep(delay)
                elif cancel_event.wait(delay):
                    raise SyncCancelled("Sync cancelled while waiting to retry") from exc

    def _recompute_after_failure(self, tenant_id: int) -> None:
        self.session.rollback()
        try:
            self.statistics.recompute_customer_stats(tenant_id)
        except Exception:
            self.session.rollback()
            logger.exception("Could not recompute customer statistics for tenant %s", tenant_id)

    @staticmethod
    def _check_cancel(cancel_event: threading.Event | None, sync_type: str, processed: int) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise SyncCancelled(f"{sync_type} sync cancelled after {processed} record(s)")

    def _start_log(self, tenant_id: int, sync_type: str, trigger: str) -> SyncLog:
        log = SyncLog(
            tenant_id=tenant_id,
            sync_type=sync_type,
            status=STATUS_STARTED,
            trigger=trigger,
            records_processed=0,
            started_at=utcnow(),
        )
        self.session.add(log)
        self.session.commit()
        return log

    def _finish_log(self, log: SyncLog, status: str, processed: int, error_message: str | None) -> None:
        # started -> completed | failed is the only transition a log row makes
        if log.is_terminal:
            raise RuntimeError(f"SyncLog {log.id} already finished as {log.status}")
        log.status = status
        log.records_processed = processed
        log.error_message = error_message
        log.completed_at = utcnow()
        self.session.commit()
