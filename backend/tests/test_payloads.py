# Overview: Pytest coverage for raw payload DTOs and mapping functions.

from datetime import datetime
from decimal import Decimal

import pytest

from shopsync.services.errors import ReconciliationError
from shopsync.services.payloads import (
    RawCustomer, RawDraftOrder, RawOrder, RawProduct,
    customer_values, draft_order_values, order_values, product_values,
    to_decimal, to_int,
)


class TestCoercion:
    def test_to_decimal(self):
        assert to_decimal("49.99") == Decimal("49.99")
        assert to_decimal(10) == Decimal("10")
        assert to_decimal("1,200.50") == Decimal("1200.50")
        assert to_decimal(None) == Decimal("0")
        assert to_decimal("abc") == Decimal("0")
        assert to_decimal("NaN") == Decimal("0")
        assert to_decimal("", default=None) is None

    def test_to_int(self):
        assert to_int("3") == 3
        assert to_int("2.0") == 2
        assert to_int(None, 0) == 0
        assert to_int("x", 7) == 7

    def test_to_int_rejects_non_finite_and_out_of_range(self):
        assert to_int("Infinity", 1) == 1
        assert to_int("-inf", 0) == 0
        assert to_int("NaN", 0) == 0
        assert to_int(float("inf"), 0) == 0
        assert to_int("1e30", 0) == 0
        assert to_int(10 ** 20, 0) == 0
        assert to_int("2147483647") == 2147483647


class TestCustomerPayload:
    def test_maps_fields_and_ids_to_strings(self):
        raw = RawCustomer.from_payload({
            "id": 207119551,
            "email": "bob@example.com",
            "first_name": "Bob",
            "orders_count": 4,
            "total_spent": "199.65",
            "created_at": "2024-03-01T10:00:00-05:00",
        })
        values = customer_values(raw)

        assert values["shopify_customer_id"] == "207119551"
        assert values["orders_count"] == 4
        assert values["total_spent"] == Decimal("199.65")
        assert values["created_at_shopify"] == datetime(2024, 3, 1, 15, 0, 0)

    def test_marketing_consent_fallback(self):
        raw = RawCustomer.from_payload({"id": 1, "email_marketing_consent": {"state": "subscribed"}})
        assert raw.accepts_marketing is True

    def test_missing_id_rejected(self):
        with pytest.raises(ReconciliationError):
            RawCustomer.from_payload({"email": "nobody@example.com"})


class TestOrderPayload:
    def test_nested_customer_sets_customer_id(self):
        raw = RawOrder.from_payload({"id": 555, "order_number": 1001, "customer": {"id": 9}})
        assert raw.customer.id == "9"
        assert order_values(raw)["customer_shopify_id"] == "9"

    def test_name_used_when_order_number_missing(self):
        raw = RawOrder.from_payload({"id": 1, "name": "#1001"})
        assert raw.order_number == "#1001"

    def test_absent_line_items_is_none_empty_list_is_empty(self):
        assert RawOrder.from_payload({"id": 1}).line_items is None
        assert RawOrder.from_payload({"id": 1, "line_items": []}).line_items == ()

    def test_draft_order_gets_prefixed_key(self):
        raw = RawDraftOrder.from_payload({"id": 555, "name": "#D1", "status": "open", "total_price": "12.00"})
        values = draft_order_values(raw)

        assert values["shopify_order_id"] == "draft_555"
        assert values["is_draft"] is True
        assert values["financial_status"] == "draft"
        assert values["draft_status"] == "open"


class TestProductPayload:
    def test_first_variant_and_first_image_only(self):
        raw = RawProduct.from_payload({
            "id": 632910392,
            "title": "IPod Nano",
            "variants": [
                {"price": "199.00", "compare_at_price": "249.00", "inventory_quantity": 10},
                {"price": "299.00", "inventory_quantity": 99},
            ],
            "images": [{"src": "https://cdn/1.jpg"}, {"src": "https://cdn/2.jpg"}],
        })
        values = product_values(raw)

        assert values["price"] == Decimal("199.00")
        assert values["compare_at_price"] == Decimal("249.00")
        assert values["inventory_quantity"] == 10
        assert values["image_url"] == "https://cdn/1.jpg"

    def test_no_variants_leaves_price_empty(self):
        values = product_values(RawProduct.from_payload({"id": 1, "title": "Gift card"}))
        assert values["price"] is None
        assert values["inventory_quantity"] == 0
