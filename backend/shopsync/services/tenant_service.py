"""
Multi-Tenant Service: Tenant Lookup and Registration Helpers

WHY: Centralize tenant resolution for routes, webhooks, the scheduler and
the CLI. Every sync and every read is scoped to exactly one tenant.

SECURITY INVARIANTS:
1. Every authenticated request has g.tenant set (see decorators.require_auth)
2. Webhooks resolve the tenant from the shop domain header by exact match
3. Inactive tenants are skipped by the scheduled sweep and rejected by the API

USAGE:
    from shopsync.services.tenant_service import get_active_tenants, find_tenant_by_shop

    for tenant in get_active_tenants(db.session):
        ...
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models import Tenant
from .shopify_client import normalize_shop_domain


class TenantAccessError(Exception):
    """Raised when a tenant is missing, inactive or not resolvable."""
    pass


def get_tenant(session: Session, tenant_id: int) -> Tenant:
    tenant = session.get(Tenant, tenant_id)
    if not tenant:
        raise TenantAccessError("Tenant not found")
    return tenant


def get_active_tenants(session: Session) -> list[Tenant]:
    """All tenants eligible for the scheduled sync, oldest first."""
    return list(
        session.execute(
            select(Tenant).where(Tenant.is_active.is_(True)).order_by(Tenant.id)
        ).scalars()
    )


def find_tenant_by_shop(session: Session, shop_domain: str | None) -> Tenant | None:
    """
    Resolve a tenant from an X-Shopify-Shop-Domain header value.

    Exact match on the normalized domain only; no prefix or substring
    matching, so one store can never be mistaken for another.
    """
    if not shop_domain:
        return None
    normalized = normalize_shop_domain(shop_domain)
    return session.execute(
        select(Tenant).where(Tenant.shop_domain == normalized)
    ).scalar_one_or_none()


def create_tenant(
    session: Session,
    *,
    name: str,
    shop_domain: str,
    access_token: str,
    api_version: str | None = None,
) -> Tenant:
    normalized = normalize_shop_domain(shop_domain)
    if not name or not normalized or not access_token:
        raise TenantAccessError("name, shop_domain and access_token are required")
    if find_tenant_by_shop(session, normalized):
        raise TenantAccessError("Store already registered")

    tenant = Tenant(
        name=name,
        shop_domain=normalized,
        access_token=access_token,
        api_version=api_version,
        is_active=True,
    )
    session.add(tenant)
    session.commit()
    return tenant


def set_tenant_active(session: Session, tenant_id: int, active: bool) -> Tenant:
    tenant = get_tenant(session, tenant_id)
    tenant.is_active = active
    session.commit()
    return tenant
