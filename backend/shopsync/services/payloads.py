# Overview: Typed views of raw Shopify payloads and pure mapping functions into local column values.

"""
Raw Shopify payloads arrive as loosely-typed JSON. Each resource kind gets
a frozen dataclass that makes required and optional fields explicit, and a
pure function that turns it into the column dict the reconciler writes.

Nothing in this module touches the database, so mapping rules can be tested
without a network or a session.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from shopsync.time_utils import parse_iso_datetime
from .errors import ReconciliationError


DRAFT_PREFIX = "draft_"
ZERO = Decimal("0")

# 32-bit INTEGER columns (PostgreSQL)
INT_MIN = -(2 ** 31)
INT_MAX = 2 ** 31 - 1


def to_decimal(value: Any, default: Decimal | None = ZERO) -> Decimal | None:
    """
    "49.99" / 49.99 / 49 -> Decimal; None, "", garbage, NaN and inf -> default.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, Decimal):
        result = value
    else:
        text = str(value).strip().replace(",", "")
        if not text:
            return default
        try:
            result = Decimal(text)
        except (InvalidOperation, ValueError):
            return default
    if not result.is_finite():
        return default
    return result


def to_int(value: Any, default: int | None = None) -> int | None:
    """
    "3" / 3 / "2.0" -> int; None, "", garbage, NaN, inf and values outside
    the INTEGER column range -> default.
    """
    if value is None or value == "" or isinstance(value, bool):
        return default
    if isinstance(value, int):
        result = value
    else:
        try:
            number = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            return default
        if not number.is_finite():
            return default
        result = int(number)
    if not INT_MIN <= result <= INT_MAX:
        return default
    return result


def to_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


def external_id(value: Any) -> str | None:
    """Shopify ids are numbers in JSON; keys are stored as strings."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    return text or None


def _require_id(payload: Any, entity: str) -> str:
    if not isinstance(payload, dict):
        raise ReconciliationError(entity, None, f"{entity} payload must be an object")
    ext_id = external_id(payload.get("id"))
    if ext_id is None:
        raise ReconciliationError(entity, None, f"{entity} payload has no id")
    return ext_id


def _accepts_marketing(payload: dict[str, Any]) -> bool:
    if "accepts_marketing" in payload:
        return bool(payload.get("accepts_marketing"))
    consent = payload.get("email_marketing_consent")
    if isinstance(consent, dict):
        return consent.get("state") == "subscribed"
    return False


@dataclass(frozen=True)
class RawCustomer:
    id: str
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    accepts_marketing: bool = False
    currency: str | None = None
    tags: str | None = None
    orders_count: int = 0
    total_spent: Decimal = ZERO
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_payload(cls, payload: Any) -> "RawCustomer":
        ext_id = _require_id(payload, "customer")
        return cls(
            id=ext_id,
            email=to_text(payload.get("email")),
            first_name=to_text(payload.get("first_name")),
            last_name=to_text(payload.get("last_name")),
            phone=to_text(payload.get("phone")),
            accepts_marketing=_accepts_marketing(payload),
            currency=to_text(payload.get("currency")),
            tags=to_text(payload.get("tags")),
            orders_count=to_int(payload.get("orders_count"), 0),
            total_spent=to_decimal(payload.get("total_spent")),
            created_at=parse_iso_datetime(payload.get("created_at")),
            updated_at=parse_iso_datetime(payload.get("updated_at")),
        )


@dataclass(frozen=True)
class RawLineItem:
    id: str | None = None
    product_id: str | None = None
    variant_id: str | None = None
    title: str | None = None
    variant_title: str | None = None
    quantity: int = 1
    price: Decimal = ZERO
    sku: str | None = None

    @classmethod
    def from_payload(cls, payload: Any) -> "RawLineItem":
        if not isinstance(payload, dict):
            raise ReconciliationError("line_item", None, "line item payload must be an object")
        return cls(
            id=external_id(payload.get("id")),
            product_id=external_id(payload.get("product_id")),
            variant_id=external_id(payload.get("variant_id")),
            title=to_text(payload.get("title")),
            variant_title=to_text(payload.get("variant_title")),
            quantity=to_int(payload.get("quantity"), 1) or 1,
            price=to_decimal(payload.get("price")),
            sku=to_text(payload.get("sku")),
        )


def _nested_customer(payload: dict[str, Any]) -> RawCustomer | None:
    nested = payload.get("customer")
    if isinstance(nested, dict) and external_id(nested.get("id")) is not None:
        return RawCustomer.from_payload(nested)
    return None


def _line_items(payload: dict[str, Any]) -> tuple[RawLineItem, ...] | None:
    # None means the payload carried no line_items key at all
    items = payload.get("line_items")
    if not isinstance(items, list):
        return None
    return tuple(RawLineItem.from_payload(item) for item in items)


@dataclass(frozen=True)
class RawOrder:
    id: str
    order_number: str | None = None
    email: str | None = None
    financial_status: str | None = None
    fulfillment_status: str | None = None
    total_price: Decimal = ZERO
    subtotal_price: Decimal = ZERO
    total_tax: Decimal = ZERO
    total_discounts: Decimal = ZERO
    currency: str | None = None
    customer: RawCustomer | None = None
    customer_id: str | None = None
    line_items: tuple[RawLineItem, ...] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    processed_at: datetime | None = None

    @classmethod
    def from_payload(cls, payload: Any) -> "RawOrder":
        ext_id = _require_id(payload, "order")
        customer = _nested_customer(payload)
        return cls(
            id=ext_id,
            order_number=to_text(payload.get("order_number")) or to_text(payload.get("name")),
            email=to_text(payload.get("email")),
            financial_status=to_text(payload.get("financial_status")),
            fulfillment_status=to_text(payload.get("fulfillment_status")),
            total_price=to_decimal(payload.get("total_price")),
            subtotal_price=to_decimal(payload.get("subtotal_price")),
            total_tax=to_decimal(payload.get("total_tax")),
            total_discounts=to_decimal(payload.get("total_discounts")),
            currency=to_text(payload.get("currency")),
            customer=customer,
            customer_id=customer.id if customer else external_id(payload.get("customer_id")),
            line_items=_line_items(payload),
            created_at=parse_iso_datetime(payload.get("created_at")),
            updated_at=parse_iso_datetime(payload.get("updated_at")),
            processed_at=parse_iso_datetime(payload.get("processed_at")),
        )


@dataclass(frozen=True)
class RawDraftOrder:
    id: str
    name: str | None = None
    email: str | None = None
    status: str | None = None
    total_price: Decimal = ZERO
    subtotal_price: Decimal = ZERO
    total_tax: Decimal = ZERO
    currency: str | None = None
    customer: RawCustomer | None = None
    line_items: tuple[RawLineItem, ...] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_payload(cls, payload: Any) -> "RawDraftOrder":
        ext_id = _require_id(payload, "draft_order")
        return cls(
            id=ext_id,
            name=to_text(payload.get("name")),
            email=to_text(payload.get("email")),
            status=to_text(payload.get("status")),
            total_price=to_decimal(payload.get("total_price")),
            subtotal_price=to_decimal(payload.get("subtotal_price")),
            total_tax=to_decimal(payload.get("total_tax")),
            currency=to_text(payload.get("currency")),
            customer=_nested_customer(payload),
            line_items=_line_items(payload),
            created_at=parse_iso_datetime(payload.get("created_at")),
            updated_at=parse_iso_datetime(payload.get("updated_at")),
        )

    @property
    def order_key(self) -> str:
        return f"{DRAFT_PREFIX}{self.id}"


@dataclass(frozen=True)
class RawProduct:
    id: str
    title: str | None = None
    description: str | None = None
    vendor: str | None = None
    product_type: str | None = None
    tags: str | None = None
    status: str | None = None
    handle: str | None = None
    image_url: str | None = None
    price: Decimal | None = None
    compare_at_price: Decimal | None = None
    inventory_quantity: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_payload(cls, payload: Any) -> "RawProduct":
        ext_id = _require_id(payload, "product")
        variants = payload.get("variants") if isinstance(payload.get("variants"), list) else []
        images = payload.get("images") if isinstance(payload.get("images"), list) else []
        # First variant / first image only
        variant = variants[0] if variants and isinstance(variants[0], dict) else {}
        image = images[0] if images and isinstance(images[0], dict) else {}
        if not image and isinstance(payload.get("image"), dict):
            image = payload["image"]
        return cls(
            id=ext_id,
            title=to_text(payload.get("title")),
            description=payload.get("body_html"),
            vendor=to_text(payload.get("vendor")),
            product_type=to_text(payload.get("product_type")),
            tags=to_text(payload.get("tags")),
            status=to_text(payload.get("status")),
            handle=to_text(payload.get("handle")),
            image_url=to_text(image.get("src")),
            price=to_decimal(variant.get("price"), default=None),
            compare_at_price=to_decimal(variant.get("compare_at_price"), default=None),
            inventory_quantity=to_int(variant.get("inventory_quantity"), 0),
            created_at=parse_iso_datetime(payload.get("created_at")),
            updated_at=parse_iso_datetime(payload.get("updated_at")),
        )


# Columns a nested customer (inside an order) is allowed to overwrite.
NESTED_CUSTOMER_FIELDS = (
    "email", "first_name", "last_name", "phone", "tags", "currency", "updated_at_shopify",
)

# Seeded on insert only; recomputed from local orders afterwards.
DERIVED_CUSTOMER_FIELDS = ("orders_count", "total_spent")


def customer_values(raw: RawCustomer) -> dict[str, Any]:
    return {
        "shopify_customer_id": raw.id,
        "email": raw.email,
        "first_name": raw.first_name,
        "last_name": raw.last_name,
        "phone": raw.phone,
        "accepts_marketing": raw.accepts_marketing,
        "currency": raw.currency,
        "tags": raw.tags,
        "orders_count": raw.orders_count,
        "total_spent": raw.total_spent,
        "created_at_shopify": raw.created_at,
        "updated_at_shopify": raw.updated_at,
    }


def order_values(raw: RawOrder) -> dict[str, Any]:
    return {
        "shopify_order_id": raw.id,
        "order_number": raw.order_number,
        "email": raw.email,
        "financial_status": raw.financial_status,
        "fulfillment_status": raw.fulfillment_status,
        "total_price": raw.total_price,
        "subtotal_price": raw.subtotal_price,
        "total_tax": raw.total_tax,
        "total_discounts": raw.total_discounts,
        "currency": raw.currency,
        "is_draft": False,
        "draft_status": None,
        "customer_shopify_id": raw.customer_id,
        "created_at_shopify": raw.created_at,
        "updated_at_shopify": raw.updated_at,
        "processed_at": raw.processed_at,
    }


def draft_order_values(raw: RawDraftOrder) -> dict[str, Any]:
    return {
        "shopify_order_id": raw.order_key,
        "order_number": raw.name,
        "email": raw.email,
        "financial_status": "draft",
        "fulfillment_status": None,
        "total_price": raw.total_price,
        "subtotal_price": raw.subtotal_price,
        "total_tax": raw.total_tax,
        "total_discounts": ZERO,
        "currency": raw.currency,
        "is_draft": True,
        "draft_status": raw.status,
        "customer_shopify_id": raw.customer.id if raw.customer else None,
        "created_at_shopify": raw.created_at,
        "updated_at_shopify": raw.updated_at,
        "processed_at": None,
    }


def line_item_values(raw: RawLineItem) -> dict[str, Any]:
    return {
        "shopify_line_id": raw.id,
        "product_id": raw.product_id,
        "variant_id": raw.variant_id,
        "title": raw.title,
        "variant_title": raw.variant_title,
        "quantity": raw.quantity,
        "price": raw.price,
        "sku": raw.sku,
    }


def product_values(raw: RawProduct) -> dict[str, Any]:
    return {
        "shopify_product_id": raw.id,
        "title": raw.title,
        "description": raw.description,
        "vendor": raw.vendor,
        "product_type": raw.product_type,
        "tags": raw.tags,
        "status": raw.status,
        "handle": raw.handle,
        "image_url": raw.image_url,
        "price": raw.price,
        "compare_at_price": raw.compare_at_price,
        "inventory_quantity": raw.inventory_quantity,
        "created_at_shopify": raw.created_at,
        "updated_at_shopify": raw.updated_at,
    }
