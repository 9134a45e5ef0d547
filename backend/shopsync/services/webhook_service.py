# Overview: Shopify webhook receiver logic; signature verification and topic dispatch to the reconciler.

"""
Webhook Service

Shopify signs every webhook with base64(HMAC-SHA256(secret, raw body)) in the
X-Shopify-Hmac-Sha256 header. Verification is required in every
environment; an unset secret rejects everything.

Dispatch goes through the same Reconciler operations as the pull sync, so a
record written by a webhook is indistinguishable from one written by a sync.
Order topics also recompute the tenant's customer statistics.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging
from typing import Any

from sqlalchemy.orm import Session

from .reconcile_service import Reconciler
from .statistics_service import StatisticsRecalculator


logger = logging.getLogger(__name__)


class WebhookError(Exception):
    """Raised for webhook requests that cannot be processed."""

    def __init__(self, message: str, status_code: int = 400):
        self.status_code = status_code
        super().__init__(message)


# topic -> (reconciler operation, recompute statistics afterwards)
TOPICS: dict[str, tuple[str, bool]] = {
    "customers/create": ("reconcile_customer", False),
    "customers/update": ("reconcile_customer", False),
    "orders/create": ("reconcile_order", True),
    "orders/updated": ("reconcile_order", True),
    "draft_orders/create": ("reconcile_draft_order", True),
    "draft_orders/update": ("reconcile_draft_order", True),
    "products/create": ("reconcile_product", False),
    "products/update": ("reconcile_product", False),
}


def compute_signature(secret: str, body: bytes) -> str:
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_signature(secret: str | None, body: bytes, signature: str | None) -> bool:
    """Constant-time check of the X-Shopify-Hmac-Sha256 header."""
    if not secret or not signature:
        return False
    expected = compute_signature(secret, body)
    return hmac.compare_digest(expected.encode("ascii"), signature.strip().encode("ascii", "ignore"))


def handle_webhook(session: Session, tenant, topic: str, payload: Any):
    """
    Reconcile one webhook payload for a tenant.

    Returns the stored row. Raises WebhookError for unknown topics or
    malformed payloads; ReconciliationError propagates from the reconciler.
    """
    if topic not in TOPICS:
        raise WebhookError(f"Unsupported webhook topic: {topic}", 404)
    if not isinstance(payload, dict):
        raise WebhookError("Webhook body must be a JSON object")

    operation, recompute = TOPICS[topic]
    reconciler = Reconciler(session)
    row = getattr(reconciler, operation)(payload, tenant.id)

    if recompute:
        StatisticsRecalculator(session).recompute_customer_stats(tenant.id)

    logger.info("Webhook %s stored for tenant %s", topic, tenant.id)
    return row
