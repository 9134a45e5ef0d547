# Overview: Shopify webhook endpoints; signature-checked, tenant resolved from the shop domain header.

from flask import Blueprint, current_app, jsonify, request

from ..extensions import db
from ..services import webhook_service
from ..services.errors import ReconciliationError
from ..services.tenant_service import find_tenant_by_shop
from ..services.webhook_service import WebhookError


webhooks_bp = Blueprint("webhooks", __name__, url_prefix="/api/webhooks")


@webhooks_bp.post("/<resource>/<action>")
def receive_webhook_route(resource: str, action: str):
    topic = f"{resource}/{action}"
    body = request.get_data(cache=True)

    # No auth header here: the signature is the authentication
    if not webhook_service.verify_signature(
        current_app.config.get("SHOPIFY_WEBHOOK_SECRET"),
        body,
        request.headers.get("X-Shopify-Hmac-Sha256"),
    ):
        return jsonify({"error": "Unauthorized"}), 401

    tenant = find_tenant_by_shop(db.session, request.headers.get("X-Shopify-Shop-Domain"))
    if not tenant:
        return jsonify({"error": "Tenant not found"}), 404
    if not tenant.is_active:
        # Acknowledge so Shopify stops retrying; nothing is stored for inactive tenants.
        return jsonify({"status": "ignored"}), 200

    payload = request.get_json(silent=True)
    try:
        webhook_service.handle_webhook(db.session, tenant, topic, payload)
    except WebhookError as e:
        return jsonify({"error": str(e)}), e.status_code
    except ReconciliationError as e:
        current_app.logger.warning("Webhook %s rejected for tenant %s: %s", topic, tenant.id, e)
        return jsonify({"error": str(e)}), 422
    except Exception:
        current_app.logger.exception("Webhook %s failed for tenant %s", topic, tenant.id)
        return jsonify({"error": "Webhook processing failed"}), 500

    return jsonify({"success": True}), 200
