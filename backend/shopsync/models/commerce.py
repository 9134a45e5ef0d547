from __future__ import annotations

from ..extensions import db
from shopsync.time_utils import to_utc_z


def _money(value) -> str | None:
    return str(value) if value is not None else None


class Customer(db.Model):
    """
    Shopify customer mirrored into the local store.

    MULTI-TENANT: Natural key is (shopify_customer_id, tenant_id).

    orders_count and total_spent are derived from local Order rows after
    every order sync; the payload values only seed a freshly inserted row.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.UniqueConstraint("shopify_customer_id", "tenant_id", name="uq_customers_shopify_tenant"),
        db.Index("ix_customers_tenant_id", "tenant_id"),
        db.Index("ix_customers_tenant_email", "tenant_id", "email"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False)
    shopify_customer_id = db.Column(db.String(64), nullable=False)

    email = db.Column(db.String(255), nullable=True)
    first_name = db.Column(db.String(128), nullable=True)
    last_name = db.Column(db.String(128), nullable=True)
    phone = db.Column(db.String(64), nullable=True)
    accepts_marketing = db.Column(db.Boolean, nullable=False, default=False)
    currency = db.Column(db.String(8), nullable=True)
    tags = db.Column(db.Text, nullable=True)

    # Derived aggregates (see statistics_service)
    orders_count = db.Column(db.Integer, nullable=False, default=0)
    total_spent = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    created_at_shopify = db.Column(db.DateTime, nullable=True)
    updated_at_shopify = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    tenant = db.relationship("Tenant", backref=db.backref("customers", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "shopify_customer_id": self.shopify_customer_id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "phone": self.phone,
            "accepts_marketing": self.accepts_marketing,
            "currency": self.currency,
            "tags": self.tags,
            "orders_count": self.orders_count,
            "total_spent": _money(self.total_spent),
            "created_at_shopify": to_utc_z(self.created_at_shopify),
            "updated_at_shopify": to_utc_z(self.updated_at_shopify),
        }


class Order(db.Model):
    """
    Shopify order or draft order.

    Draft orders share the table with a "draft_" prefix on shopify_order_id,
    so a draft and a regular order with the same numeric id never collide.

    customer_shopify_id is kept even when customer_id is NULL so statistics
    and later syncs can still attribute the order.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.UniqueConstraint("shopify_order_id", "tenant_id", name="uq_orders_shopify_tenant"),
        db.Index("ix_orders_tenant_id", "tenant_id"),
        db.Index("ix_orders_tenant_customer_shopify", "tenant_id", "customer_shopify_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False)
    shopify_order_id = db.Column(db.String(64), nullable=False)

    order_number = db.Column(db.String(64), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    financial_status = db.Column(db.String(32), nullable=True)
    fulfillment_status = db.Column(db.String(32), nullable=True)

    total_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    subtotal_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total_tax = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total_discounts = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    currency = db.Column(db.String(8), nullable=True)

    is_draft = db.Column(db.Boolean, nullable=False, default=False)
    draft_status = db.Column(db.String(32), nullable=True)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    customer_shopify_id = db.Column(db.String(64), nullable=True)

    created_at_shopify = db.Column(db.DateTime, nullable=True)
    updated_at_shopify = db.Column(db.DateTime, nullable=True)
    processed_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    tenant = db.relationship("Tenant", backref=db.backref("orders", lazy=True))
    customer = db.relationship("Customer", backref=db.backref("orders", lazy=True))
    items = db.relationship(
        "OrderItem",
        backref="order",
        lazy=True,
        order_by="OrderItem.id",
        passive_deletes=True,
    )

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "shopify_order_id": self.shopify_order_id,
            "order_number": self.order_number,
            "email": self.email,
            "financial_status": self.financial_status,
            "fulfillment_status": self.fulfillment_status,
            "total_price": _money(self.total_price),
            "subtotal_price": _money(self.subtotal_price),
            "total_tax": _money(self.total_tax),
            "total_discounts": _money(self.total_discounts),
            "currency": self.currency,
            "is_draft": self.is_draft,
            "draft_status": self.draft_status,
            "customer_id": self.customer_id,
            "customer_shopify_id": self.customer_shopify_id,
            "created_at_shopify": to_utc_z(self.created_at_shopify),
            "updated_at_shopify": to_utc_z(self.updated_at_shopify),
            "processed_at": to_utc_z(self.processed_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class OrderItem(db.Model):
    """
    Line item of an Order. The full set is replaced on every resync.
    """
    __tablename__ = "order_items"
    __table_args__ = (
        db.Index("ix_order_items_order_id", "order_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    shopify_line_id = db.Column(db.String(64), nullable=True)
    product_id = db.Column(db.String(64), nullable=True)
    variant_id = db.Column(db.String(64), nullable=True)
    title = db.Column(db.String(512), nullable=True)
    variant_title = db.Column(db.String(255), nullable=True)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    sku = db.Column(db.String(128), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "shopify_line_id": self.shopify_line_id,
            "product_id": self.product_id,
            "variant_id": self.variant_id,
            "title": self.title,
            "variant_title": self.variant_title,
            "quantity": self.quantity,
            "price": _money(self.price),
            "sku": self.sku,
        }


class Product(db.Model):
    """
    Shopify product.

    Only the first variant's price, compare-at price and inventory are
    tracked, and only the first image URL.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("shopify_product_id", "tenant_id", name="uq_products_shopify_tenant"),
        db.Index("ix_products_tenant_id", "tenant_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False)
    shopify_product_id = db.Column(db.String(64), nullable=False)

    title = db.Column(db.String(512), nullable=True)
    description = db.Column(db.Text, nullable=True)
    vendor = db.Column(db.String(255), nullable=True)
    product_type = db.Column(db.String(255), nullable=True)
    tags = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(32), nullable=True)
    handle = db.Column(db.String(255), nullable=True)
    image_url = db.Column(db.String(1024), nullable=True)

    price = db.Column(db.Numeric(12, 2), nullable=True)
    compare_at_price = db.Column(db.Numeric(12, 2), nullable=True)
    inventory_quantity = db.Column(db.Integer, nullable=False, default=0)

    created_at_shopify = db.Column(db.DateTime, nullable=True)
    updated_at_shopify = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    tenant = db.relationship("Tenant", backref=db.backref("products", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "shopify_product_id": self.shopify_product_id,
            "title": self.title,
            "description": self.description,
            "vendor": self.vendor,
            "product_type": self.product_type,
            "tags": self.tags,
            "status": self.status,
            "handle": self.handle,
            "image_url": self.image_url,
            "price": _money(self.price),
            "compare_at_price": _money(self.compare_at_price),
            "inventory_quantity": self.inventory_quantity,
            "created_at_shopify": to_utc_z(self.created_at_shopify),
            "updated_at_shopify": to_utc_z(self.updated_at_shopify),
        }
