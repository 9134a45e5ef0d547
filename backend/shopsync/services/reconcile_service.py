# Overview: Record reconciler; maps raw Shopify records into local rows with per-record atomic upserts.

"""
Record Reconciler

One operation per entity kind. The pull sync and the webhook receiver both
call these, so the two entry points share a single set of upsert rules.

INVARIANTS:
- Natural key is (shopify id, tenant_id); drafts use "draft_<id>".
- Each record is one atomic unit: upsert(s), line-item replacement and
  commit happen together or not at all.
- Upserts are INSERT ... ON CONFLICT DO UPDATE, never read-then-write.
- created_at_shopify is written on insert only.
- Line items of an order are deleted and re-inserted on every resync.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from sqlalchemy import delete, insert, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import Customer, Order, OrderItem, Product
from .concurrency import run_with_retry, upsert
from .errors import ReconciliationError
from .payloads import (
    DERIVED_CUSTOMER_FIELDS,
    NESTED_CUSTOMER_FIELDS,
    RawCustomer,
    RawDraftOrder,
    RawLineItem,
    RawOrder,
    RawProduct,
    customer_values,
    draft_order_values,
    line_item_values,
    order_values,
    product_values,
)


logger = logging.getLogger(__name__)

_INSERT_ONLY = {"tenant_id", "created_at_shopify"}


def _update_columns(values: dict[str, Any], natural_key: str, exclude: set[str] | frozenset = frozenset()) -> list[str]:
    skip = _INSERT_ONLY | {natural_key} | set(exclude)
    return [column for column in values if column not in skip]


class Reconciler:
    """Upserts raw Shopify records for one database session."""

    def __init__(self, session: Session, *, retry_attempts: int = 3, retry_backoff: float = 0.1):
        self.session = session
        self.retry_attempts = retry_attempts
        self.retry_backoff = retry_backoff

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def reconcile_customer(self, payload: dict[str, Any] | RawCustomer, tenant_id: int) -> Customer:
        raw = payload if isinstance(payload, RawCustomer) else RawCustomer.from_payload(payload)
        customer_id = self._atomic(
            "customer", raw.id, lambda: self._upsert_customer(raw, tenant_id, nested=False)
        )
        return self.session.get(Customer, customer_id)

    def reconcile_order(self, payload: dict[str, Any] | RawOrder, tenant_id: int) -> Order:
        raw = payload if isinstance(payload, RawOrder) else RawOrder.from_payload(payload)
        order_id = self._atomic(
            "order",
            raw.id,
            lambda: self._write_order(order_values(raw), raw.customer, raw.line_items, tenant_id),
        )
        return self.session.get(Order, order_id)

    def reconcile_draft_order(self, payload: dict[str, Any] | RawDraftOrder, tenant_id: int) -> Order:
        raw = payload if isinstance(payload, RawDraftOrder) else RawDraftOrder.from_payload(payload)
        order_id = self._atomic(
            "draft_order",
            raw.id,
            lambda: self._write_order(draft_order_values(raw), raw.customer, raw.line_items, tenant_id),
        )
        return self.session.get(Order, order_id)

    def reconcile_product(self, payload: dict[str, Any] | RawProduct, tenant_id: int) -> Product:
        raw = payload if isinstance(payload, RawProduct) else RawProduct.from_payload(payload)

        def _op() -> int:
            values = {**product_values(raw), "tenant_id": tenant_id}
            return upsert(
                self.session,
                Product,
                values,
                conflict_columns=("shopify_product_id", "tenant_id"),
                update_columns=_update_columns(values, "shopify_product_id"),
            )

        product_id = self._atomic("product", raw.id, _op)
        return self.session.get(Product, product_id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _atomic(self, entity: str, external_id: str, op: Callable[[], int]) -> int:
        """Run op and commit as one unit; wrap storage failures in ReconciliationError."""
        def _unit() -> int:
            row_id = op()
            self.session.commit()
            return row_id

        try:
            return run_with_retry(
                _unit,
                session=self.session,
                attempts=self.retry_attempts,
                backoff_base=self.retry_backoff,
            )
        except ReconciliationError:
            self.session.rollback()
            raise
        except (SQLAlchemyError, OverflowError) as exc:
            # sqlite3 raises OverflowError for integers past 64 bits
            self.session.rollback()
            logger.warning("Failed to store %s %s: %s", entity, external_id, exc)
            raise ReconciliationError(entity, external_id, str(exc.__cause__ or exc)) from exc

    def _upsert_customer(self, raw: RawCustomer, tenant_id: int, *, nested: bool) -> int:
        values = {**customer_values(raw), "tenant_id": tenant_id}
        if nested:
            update_columns = [c for c in NESTED_CUSTOMER_FIELDS if c in values]
        else:
            update_columns = _update_columns(values, "shopify_customer_id", set(DERIVED_CUSTOMER_FIELDS))
        return upsert(
            self.session,
            Customer,
            values,
            conflict_columns=("shopify_customer_id", "tenant_id"),
            update_columns=update_columns,
        )

    def _existing_customer_id(self, shopify_customer_id: str, tenant_id: int) -> int | None:
        return self.session.execute(
            select(Customer.id).where(
                Customer.shopify_customer_id == shopify_customer_id,
                Customer.tenant_id == tenant_id,
            )
        ).scalar_one_or_none()

    def _write_order(
        self,
        values: dict[str, Any],
        customer: RawCustomer | None,
        line_items: tuple[RawLineItem, ...] | None,
        tenant_id: int,
    ) -> int:
        if customer is not None:
            customer_id = self._upsert_customer(customer, tenant_id, nested=True)
        elif values.get("customer_shopify_id"):
            customer_id = self._existing_customer_id(values["customer_shopify_id"], tenant_id)
        else:
            customer_id = None

        values = {**values, "tenant_id": tenant_id, "customer_id": customer_id}
        order_id = upsert(
            self.session,
            Order,
            values,
            conflict_columns=("shopify_order_id", "tenant_id"),
            update_columns=_update_columns(values, "shopify_order_id"),
        )

        if line_items is not None:
            self._replace_line_items(order_id, line_items)
        return order_id

    def _replace_line_items(self, order_id: int, line_items: tuple[RawLineItem, ...]) -> None:
        self.session.execute(delete(OrderItem).where(OrderItem.order_id == order_id))
        rows = [{**line_item_values(item), "order_id": order_id} for item in line_items]
        if rows:
            self.session.execute(insert(OrderItem), rows)
