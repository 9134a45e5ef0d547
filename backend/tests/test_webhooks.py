# Overview: Pytest coverage for Shopify webhooks; mandatory signatures, tenant resolution and dispatch.

import json
from decimal import Decimal

from shopsync.models import Customer, Order, Product
from shopsync.services.webhook_service import compute_signature, verify_signature


SECRET = "test-webhook-secret"


def post_webhook(client, topic, payload, shop="acme.myshopify.com", secret=SECRET, signature=None):
    body = json.dumps(payload).encode("utf-8")
    headers = {
        "Content-Type": "application/json",
        "X-Shopify-Shop-Domain": shop,
        "X-Shopify-Topic": topic,
    }
    if signature is None and secret is not None:
        signature = compute_signature(secret, body)
    if signature is not None:
        headers["X-Shopify-Hmac-Sha256"] = signature
    return client.post(f"/api/webhooks/{topic}", data=body, headers=headers)


class TestSignature:
    def test_verify_signature(self):
        body = b'{"id": 1}'
        assert verify_signature(SECRET, body, compute_signature(SECRET, body)) is True
        assert verify_signature(SECRET, body, compute_signature("other", body)) is False
        assert verify_signature(SECRET, body, None) is False
        assert verify_signature(None, body, compute_signature(SECRET, body)) is False

    def test_missing_signature_rejected(self, client, db_session, tenant_a):
        response = post_webhook(client, "customers/create", {"id": 1}, secret=None)
        assert response.status_code == 401
        assert db_session.query(Customer).count() == 0

    def test_wrong_signature_rejected(self, client, db_session, tenant_a):
        response = post_webhook(client, "customers/create", {"id": 1}, signature="bm90LXZhbGlk")
        assert response.status_code == 401

    def test_unset_secret_rejects_everything(self, app, client, db_session, tenant_a):
        app.config["SHOPIFY_WEBHOOK_SECRET"] = None
        try:
            response = post_webhook(client, "customers/create", {"id": 1})
        finally:
            app.config["SHOPIFY_WEBHOOK_SECRET"] = SECRET
        assert response.status_code == 401


class TestDispatch:
    def test_customer_create_upserts(self, client, db_session, tenant_a):
        response = post_webhook(client, "customers/create", {"id": 77, "email": "w@example.com"})

        assert response.status_code == 200
        customer = db_session.query(Customer).one()
        assert customer.tenant_id == tenant_a.id
        assert customer.shopify_customer_id == "77"

    def test_tenant_resolved_by_shop_domain(self, client, db_session, tenant_a, tenant_b):
        post_webhook(client, "products/update", {"id": 5, "title": "Beta hat"}, shop="beta.myshopify.com")

        product = db_session.query(Product).one()
        assert product.tenant_id == tenant_b.id

    def test_unknown_shop_is_404(self, client, db_session, tenant_a):
        response = post_webhook(client, "customers/create", {"id": 1}, shop="unknown.myshopify.com")
        assert response.status_code == 404

    def test_shop_prefix_does_not_match_another_store(self, client, db_session, tenant_a):
        response = post_webhook(client, "customers/create", {"id": 1}, shop="acme")
        assert response.status_code == 404

    def test_order_webhook_recomputes_statistics(self, client, db_session, tenant_a):
        post_webhook(client, "orders/create", {
            "id": 900, "total_price": "30.00", "customer": {"id": 3},
            "line_items": [{"id": 1, "title": "Socks"}],
        })
        post_webhook(client, "orders/updated", {"id": 900, "total_price": "35.00", "customer": {"id": 3}})
        db_session.expire_all()

        customer = db_session.query(Customer).one()
        assert customer.orders_count == 1
        assert customer.total_spent == Decimal("35.00")
        assert db_session.query(Order).one().items[0].title == "Socks"

    def test_draft_order_webhook_uses_prefixed_key(self, client, db_session, tenant_a):
        post_webhook(client, "draft_orders/create", {"id": 900, "status": "open"})
        assert db_session.query(Order).one().shopify_order_id == "draft_900"

    def test_unknown_topic_is_404(self, client, db_session, tenant_a):
        response = post_webhook(client, "carts/create", {"id": 1})
        assert response.status_code == 404

    def test_payload_without_id_is_422(self, client, db_session, tenant_a):
        response = post_webhook(client, "customers/update", {"email": "x@example.com"})
        assert response.status_code == 422

    def test_inactive_tenant_acknowledged_but_ignored(self, client, db_session, tenant_a):
        tenant_a.is_active = False
        db_session.commit()

        response = post_webhook(client, "customers/create", {"id": 1})
        assert response.status_code == 200
        assert response.json["status"] == "ignored"
        assert db_session.query(Customer).count() == 0
