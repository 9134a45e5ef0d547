# Overview: Tenant-scoped read views; paginated listings, detail views and the analytics summary.

from __future__ import annotations

from datetime import timedelta

from sqlalchemy import func, or_

from ..extensions import db
from ..models import Customer, Order, Product
from shopsync.time_utils import parse_iso_datetime, utcnow


DEFAULT_LIMIT = 20
MAX_LIMIT = 100
RECENT_DAYS = 30


def _paginate(base_query, page: int | None, limit: int | None) -> tuple[list, dict]:
    limit = max(1, min(limit or DEFAULT_LIMIT, MAX_LIMIT))
    page = max(page or 1, 1)

    total = base_query.order_by(None).count()
    total_pages = (total + limit - 1) // limit if total > 0 else 1
    rows = base_query.offset((page - 1) * limit).limit(limit).all()

    return rows, {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": total_pages,
    }


def _contains(search: str):
    return f"%{search.strip()}%"


def list_customers(tenant_id: int, *, page: int | None = None, limit: int | None = None,
                   search: str | None = None) -> dict:
    """
    Customers of one tenant, biggest spenders first.

    search matches email, first name or last name (case-insensitive).
    """
    query = db.session.query(Customer).filter(Customer.tenant_id == tenant_id)
    if search and search.strip():
        pattern = _contains(search)
        query = query.filter(or_(
            Customer.email.ilike(pattern),
            Customer.first_name.ilike(pattern),
            Customer.last_name.ilike(pattern),
        ))
    query = query.order_by(Customer.total_spent.desc(), Customer.id.asc())

    rows, pagination = _paginate(query, page, limit)
    return {"customers": [c.to_dict() for c in rows], "pagination": pagination}


def list_orders(tenant_id: int, *, page: int | None = None, limit: int | None = None,
                search: str | None = None, status: str | None = None,
                start_date: str | None = None, end_date: str | None = None,
                include_drafts: bool = True) -> dict:
    """
    Orders of one tenant, newest first.

    status filters on financial_status; start_date/end_date bound
    created_at_shopify (ISO-8601, unparsable values are ignored).
    """
    query = db.session.query(Order).filter(Order.tenant_id == tenant_id)
    if search and search.strip():
        pattern = _contains(search)
        query = query.filter(or_(Order.order_number.ilike(pattern), Order.email.ilike(pattern)))
    if status:
        query = query.filter(Order.financial_status == status)
    if not include_drafts:
        query = query.filter(Order.is_draft.is_(False))

    start = parse_iso_datetime(start_date)
    end = parse_iso_datetime(end_date)
    if start is not None:
        query = query.filter(Order.created_at_shopify >= start)
    if end is not None:
        query = query.filter(Order.created_at_shopify <= end)

    query = query.order_by(Order.created_at_shopify.desc(), Order.id.desc())

    rows, pagination = _paginate(query, page, limit)
    orders = []
    for order in rows:
        data = order.to_dict()
        data["customer"] = _customer_brief(order.customer)
        orders.append(data)
    return {"orders": orders, "pagination": pagination}


def list_products(tenant_id: int, *, page: int | None = None, limit: int | None = None,
                  search: str | None = None, status: str | None = None) -> dict:
    query = db.session.query(Product).filter(Product.tenant_id == tenant_id)
    if search and search.strip():
        pattern = _contains(search)
        query = query.filter(or_(
            Product.title.ilike(pattern),
            Product.vendor.ilike(pattern),
            Product.product_type.ilike(pattern),
        ))
    if status:
        query = query.filter(Product.status == status)
    query = query.order_by(Product.created_at.desc(), Product.id.desc())

    rows, pagination = _paginate(query, page, limit)
    return {"products": [p.to_dict() for p in rows], "pagination": pagination}


def _customer_brief(customer: Customer | None) -> dict | None:
    if customer is None:
        return None
    return {
        "id": customer.id,
        "email": customer.email,
        "first_name": customer.first_name,
        "last_name": customer.last_name,
    }


def get_customer(tenant_id: int, customer_id: int) -> dict | None:
    """Customer detail with its 10 most recent orders."""
    customer = db.session.query(Customer).filter_by(id=customer_id, tenant_id=tenant_id).first()
    if not customer:
        return None

    recent = (
        db.session.query(Order)
        .filter(Order.tenant_id == tenant_id, Order.customer_shopify_id == customer.shopify_customer_id)
        .order_by(Order.created_at_shopify.desc(), Order.id.desc())
        .limit(10)
        .all()
    )
    data = customer.to_dict()
    data["orders"] = [o.to_dict() for o in recent]
    return data


def get_order(tenant_id: int, order_id: int) -> dict | None:
    order = db.session.query(Order).filter_by(id=order_id, tenant_id=tenant_id).first()
    if not order:
        return None
    data = order.to_dict(include_items=True)
    data["customer"] = order.customer.to_dict() if order.customer else None
    return data


def get_product(tenant_id: int, product_id: int) -> dict | None:
    product = db.session.query(Product).filter_by(id=product_id, tenant_id=tenant_id).first()
    return product.to_dict() if product else None


def summary(tenant_id: int) -> dict:
    """Headline numbers for one tenant; money values as strings."""
    orders = db.session.query(Order).filter(Order.tenant_id == tenant_id)
    revenue, average = (
        db.session.query(
            func.coalesce(func.sum(Order.total_price), 0),
            func.avg(Order.total_price),
        )
        .filter(Order.tenant_id == tenant_id)
        .one()
    )

    since = utcnow() - timedelta(days=RECENT_DAYS)
    recent_count, recent_revenue = (
        db.session.query(func.count(Order.id), func.coalesce(func.sum(Order.total_price), 0))
        .filter(Order.tenant_id == tenant_id, Order.created_at_shopify >= since)
        .one()
    )

    return {
        "totalCustomers": db.session.query(Customer).filter(Customer.tenant_id == tenant_id).count(),
        "totalOrders": orders.count(),
        "totalProducts": db.session.query(Product).filter(Product.tenant_id == tenant_id).count(),
        "totalRevenue": str(revenue),
        "averageOrderValue": str(round(average, 2)) if average is not None else "0",
        "recentOrders": recent_count,
        "recentRevenue": str(recent_revenue),
    }


TOP_CUSTOMERS_LIMIT = 5


def top_customers(tenant_id: int, limit: int | None = None) -> dict:
    """Biggest spenders, read from the recomputed orders_count/total_spent."""
    limit = max(1, min(limit or TOP_CUSTOMERS_LIMIT, MAX_LIMIT))
    rows = (
        db.session.query(Customer)
        .filter(Customer.tenant_id == tenant_id)
        .order_by(Customer.total_spent.desc(), Customer.id.asc())
        .limit(limit)
        .all()
    )
    customers = []
    for customer in rows:
        data = _customer_brief(customer)
        data["total_spent"] = str(customer.total_spent)
        data["orders_count"] = customer.orders_count
        customers.append(data)
    return {"customers": customers}


def _grouped_counts(model, column, tenant_id: int, missing: str, *, revenue=None) -> dict:
    count = func.count(model.id)
    columns = [column, count]
    if revenue is not None:
        columns.append(func.coalesce(func.sum(revenue), 0))

    rows = (
        db.session.query(*columns)
        .filter(model.tenant_id == tenant_id)
        .group_by(column)
        .order_by(count.desc(), column.asc())
        .all()
    )

    data = []
    for row in rows:
        item = {"status": row[0] or missing, "count": row[1]}
        if revenue is not None:
            item["revenue"] = str(row[2])
        data.append(item)
    return {"data": data}


def revenue_by_status(tenant_id: int) -> dict:
    """Order count and revenue per financial_status."""
    return _grouped_counts(Order, Order.financial_status, tenant_id, "unknown", revenue=Order.total_price)


def products_by_status(tenant_id: int) -> dict:
    return _grouped_counts(Product, Product.status, tenant_id, "unknown")


def fulfillment_stats(tenant_id: int) -> dict:
    """Order count per fulfillment_status; Shopify leaves it empty until something ships."""
    return _grouped_counts(Order, Order.fulfillment_status, tenant_id, "unfulfilled")
