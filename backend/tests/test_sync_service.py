# Overview: Pytest coverage for the sync orchestrator; results, SyncLog lifecycle, retries and cancellation.

"""
Sync Orchestrator Tests

Each test wires the orchestrator to a FakeShopifySession, so the full
path client -> reconciler -> statistics -> SyncLog runs against the
in-memory database without a network.
"""

import threading
from decimal import Decimal

import pytest

from conftest import FakeResponse, FakeShopifySession
from shopsync.models import Customer, Order, Product, SyncLog
from shopsync.services.shopify_client import ShopifyClient
from shopsync.services.sync_service import SyncOrchestrator


def store_pages():
    return {
        "customers": [[{"id": 1, "email": "one@example.com"}], [{"id": 2, "email": "two@example.com"}]],
        "orders": [[
            {"id": 100, "total_price": "25.00", "customer": {"id": 1},
             "line_items": [{"id": 1, "title": "Tee"}]},
            {"id": 101, "total_price": "15.50", "customer_id": 1, "line_items": []},
        ]],
        "draft_orders": [[{"id": 100, "total_price": "9.99", "status": "open", "customer": {"id": 2}}]],
        "products": [[{"id": 7, "title": "Tee", "variants": [{"price": "25.00"}]}]],
    }


def logs_by_type(db_session, tenant):
    logs = db_session.query(SyncLog).filter_by(tenant_id=tenant.id).order_by(SyncLog.id).all()
    return {log.sync_type: log for log in logs}


class TestFullSync:
    def test_full_sync_stores_everything(self, db_session, tenant_a, make_orchestrator):
        fake = FakeShopifySession(pages=store_pages())
        result = make_orchestrator(fake).run_sync(tenant_a, "full")

        assert result.success is True
        assert result.partial is False
        assert result.counts == {"customers": 2, "orders": 3, "products": 1}
        assert result.total == 6
        assert db_session.query(Customer).count() == 2
        assert db_session.query(Order).count() == 3
        assert db_session.query(Product).count() == 1

        logs = logs_by_type(db_session, tenant_a)
        assert set(logs) == {"full", "customers", "orders", "products"}
        assert all(log.status == "completed" for log in logs.values())
        assert logs["full"].records_processed == 6
        assert logs["full"].error_message is None
        assert result.log_id == logs["full"].id

    def test_statistics_recomputed_after_orders(self, db_session, tenant_a, make_orchestrator):
        make_orchestrator(FakeShopifySession(pages=store_pages())).run_sync(tenant_a, "full")
        db_session.expire_all()

        one = db_session.query(Customer).filter_by(shopify_customer_id="1").one()
        two = db_session.query(Customer).filter_by(shopify_customer_id="2").one()
        assert (one.orders_count, one.total_spent) == (2, Decimal("40.50"))
        assert (two.orders_count, two.total_spent) == (1, Decimal("9.99"))

    def test_running_twice_changes_nothing(self, db_session, tenant_a, make_orchestrator):
        make_orchestrator(FakeShopifySession(pages=store_pages())).run_sync(tenant_a, "full")
        first = sorted((o.shopify_order_id, o.total_price) for o in db_session.query(Order))

        make_orchestrator(FakeShopifySession(pages=store_pages())).run_sync(tenant_a, "full")
        db_session.expire_all()
        second = sorted((o.shopify_order_id, o.total_price) for o in db_session.query(Order))

        assert first == second
        assert db_session.query(Customer).count() == 2

    def test_products_permission_error_is_partial_success(self, db_session, tenant_a, make_orchestrator):
        """Customers and orders succeed, products 403: success with partial flag."""
        fake = FakeShopifySession(pages=store_pages(), failures={"products": [FakeResponse(403, {})]})
        result = make_orchestrator(fake).run_sync(tenant_a, "full")

        assert result.success is True
        assert result.partial is True
        assert result.failures["products"].kind == "scope"
        assert result.errors == [
            "Products: Access denied - enable 'read_products' scope in your Shopify app"
        ]

        logs = logs_by_type(db_session, tenant_a)
        assert logs["products"].status == "failed"
        assert "read_products" in logs["products"].error_message
        assert logs["customers"].status == "completed"
        assert logs["full"].status == "completed"
        assert "Products:" in logs["full"].error_message

        body = result.to_dict()
        assert body["success"] is True and body["partial"] is True
        assert body["products"] == 0
        assert body["customers"] == 2

    def test_all_sub_syncs_failing_fails_full_sync(self, db_session, tenant_a, make_orchestrator):
        fake = FakeShopifySession(failures={
            "customers": [FakeResponse(401, {})],
            "orders": [FakeResponse(401, {})],
            "products": [FakeResponse(401, {})],
        })
        result = make_orchestrator(fake).run_sync(tenant_a, "full")

        assert result.success is False
        assert result.partial is False
        assert logs_by_type(db_session, tenant_a)["full"].status == "failed"
        assert len(result.errors) == 3

    def test_unknown_scope_rejected(self, db_session, tenant_a, make_orchestrator):
        with pytest.raises(ValueError):
            make_orchestrator(FakeShopifySession()).run_sync(tenant_a, "inventory")


class TestSingleScope:
    def test_customers_only(self, db_session, tenant_a, make_orchestrator):
        fake = FakeShopifySession(pages=store_pages())
        result = make_orchestrator(fake).run_sync(tenant_a, "customers")

        assert result.success is True
        assert result.counts == {"customers": 2}
        assert fake.calls_for("orders") == []
        logs = logs_by_type(db_session, tenant_a)
        assert set(logs) == {"customers"}
        assert result.log_id == logs["customers"].id

    def test_orders_scope_includes_drafts(self, db_session, tenant_a, make_orchestrator):
        result = make_orchestrator(FakeShopifySession(pages=store_pages())).run_sync(tenant_a, "orders")

        assert result.counts == {"orders": 3}
        keys = {o.shopify_order_id for o in db_session.query(Order)}
        assert keys == {"100", "101", "draft_100"}

    def test_failed_single_scope_returns_failure(self, db_session, tenant_a, make_orchestrator):
        fake = FakeShopifySession(failures={"products": [FakeResponse(404, {})]})
        result = make_orchestrator(fake).run_sync(tenant_a, "products")

        assert result.success is False
        assert result.failures["products"].kind == "upstream"
        assert logs_by_type(db_session, tenant_a)["products"].status == "failed"

    def test_failure_mid_page_records_progress(self, db_session, tenant_a, make_orchestrator):
        fake = FakeShopifySession(pages={"customers": [[{"id": 1}, {"email": "no-id@example.com"}, {"id": 3}]]})
        result = make_orchestrator(fake).run_sync(tenant_a, "customers")

        assert result.success is False
        assert result.failures["customers"].kind == "reconciliation"
        assert result.counts["customers"] == 1
        log = logs_by_type(db_session, tenant_a)["customers"]
        assert log.status == "failed"
        assert log.records_processed == 1
        assert db_session.query(Customer).count() == 1

    def test_orders_stored_before_drafts_failure_update_statistics(self, db_session, tenant_a, make_orchestrator):
        """Drafts 403 after regular orders were stored: stats still follow the stored orders."""
        fake = FakeShopifySession(
            pages={"orders": [[{"id": 1, "total_price": "10.00", "customer": {"id": 9}}]]},
            failures={"draft_orders": [FakeResponse(403, {})]},
        )
        result = make_orchestrator(fake).run_sync(tenant_a, "orders")
        db_session.expire_all()

        assert result.success is False
        assert result.failures["orders"].kind == "scope"
        assert result.counts["orders"] == 1
        customer = db_session.query(Customer).filter_by(shopify_customer_id="9").one()
        assert customer.orders_count == 1
        assert customer.total_spent == Decimal("10.00")


class TestRetries:
    def test_transient_faults_retried_with_backoff(self, db_session, tenant_a, make_orchestrator):
        sleeps = []
        fake = FakeShopifySession(
            pages={"customers": [[{"id": 1}]]},
            failures={"customers": [
                FakeResponse(503, {}),
                FakeResponse(429, {}, headers={"Retry-After": "2"}),
            ]},
        )
        result = make_orchestrator(fake, sleeps=sleeps).run_sync(tenant_a, "customers")

        assert result.success is True
        assert sleeps == [0.5, 2.0]
        assert len(fake.calls_for("customers")) == 3

    def test_transient_fault_gives_up_after_attempts(self, db_session, tenant_a, make_orchestrator):
        sleeps = []
        fake = FakeShopifySession(failures={"customers": [FakeResponse(500, {})] * 3})
        result = make_orchestrator(fake, sleeps=sleeps, retry_attempts=3).run_sync(tenant_a, "customers")

        assert result.success is False
        assert result.failures["customers"].kind == "transient"
        assert sleeps == [0.5, 1.0]

    def test_auth_error_not_retried(self, db_session, tenant_a, make_orchestrator):
        sleeps = []
        fake = FakeShopifySession(failures={"customers": [FakeResponse(401, {})]})
        result = make_orchestrator(fake, sleeps=sleeps).run_sync(tenant_a, "customers")

        assert result.failures["customers"].message == "Invalid API access token"
        assert sleeps == []
        assert len(fake.calls_for("customers")) == 1

    def test_retry_after_capped(self, db_session, tenant_a, make_orchestrator):
        sleeps = []
        fake = FakeShopifySession(
            pages={"customers": [[{"id": 1}]]},
            failures={"customers": [FakeResponse(429, {}, headers={"Retry-After": "5000"})]},
        )
        result = make_orchestrator(fake, sleeps=sleeps, max_retry_delay=60.0).run_sync(tenant_a, "customers")

        assert result.success is True
        assert sleeps == [60.0]

    def test_cancel_token_interrupts_retry_wait(self, db_session, tenant_a, make_orchestrator):
        class CancelDuringWait(threading.Event):
            def __init__(self):
                super().__init__()
                self.waits = []

            def wait(self, timeout=None):
                self.waits.append(timeout)
                self.set()
                return True

        sleeps = []
        event = CancelDuringWait()
        fake = FakeShopifySession(
            pages={"customers": [[{"id": 1}]]},
            failures={"customers": [FakeResponse(429, {}, headers={"Retry-After": "5000"})]},
        )
        result = make_orchestrator(fake, sleeps=sleeps, max_retry_delay=60.0).run_sync(
            tenant_a, "customers", cancel_event=event
        )

        assert result.failures["customers"].kind == "cancelled"
        assert event.waits == [60.0]
        assert sleeps == []
        assert len(fake.calls_for("customers")) == 1
        assert db_session.query(Customer).count() == 0


class TestCancellation:
    def test_cancelled_before_start_fails_every_sub_sync(self, db_session, tenant_a, make_orchestrator):
        event = threading.Event()
        event.set()
        result = make_orchestrator(FakeShopifySession(pages=store_pages())).run_sync(
            tenant_a, "full", cancel_event=event
        )

        assert result.success is False
        assert {f.kind for f in result.failures.values()} == {"cancelled"}
        assert db_session.query(Customer).count() == 0
        assert all(log.status == "failed" for log in logs_by_type(db_session, tenant_a).values())

    def test_cancel_between_records_keeps_stored_progress(self, db_session, tenant_a):
        event = threading.Event()
        fake = FakeShopifySession(pages={"customers": [[{"id": 1}, {"id": 2}, {"id": 3}]]})
        orchestrator = SyncOrchestrator(
            db_session,
            client_factory=lambda tenant: ShopifyClient.for_tenant(tenant, session=fake),
        )

        original = orchestrator.reconciler.reconcile_customer

        def reconcile_then_cancel(payload, tenant_id):
            row = original(payload, tenant_id)
            event.set()
            return row

        orchestrator.reconciler.reconcile_customer = reconcile_then_cancel
        result = orchestrator.run_sync(tenant_a, "customers", cancel_event=event)

        assert result.failures["customers"].kind == "cancelled"
        assert result.counts["customers"] == 1
        assert db_session.query(Customer).count() == 1


class TestTenantIsolation:
    def test_sync_writes_only_into_its_tenant(self, db_session, tenant_a, tenant_b, make_orchestrator):
        make_orchestrator(FakeShopifySession(pages=store_pages())).run_sync(tenant_a, "full")

        assert db_session.query(Order).filter_by(tenant_id=tenant_b.id).count() == 0
        assert db_session.query(SyncLog).filter_by(tenant_id=tenant_b.id).count() == 0
