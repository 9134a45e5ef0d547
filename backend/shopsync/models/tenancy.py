from __future__ import annotations

from ..extensions import db
from shopsync.time_utils import to_utc_z


class Tenant(db.Model):
    """
    Multi-tenant root: every connected Shopify store is a Tenant.

    WHY: Shared-database multi-tenancy. Customers, orders, products and sync
    logs all carry tenant_id and every query filters on it. Shopify ids are
    only unique within one store, so they are never used as a key on their own.

    DESIGN:
    - shop_domain is the normalized myshopify host (no scheme, no trailing slash)
    - access_token is the Admin API credential handed to the sync engine
    - is_active gates the scheduled sync sweep
    """
    __tablename__ = "tenants"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    shop_domain = db.Column(db.String(255), nullable=False, unique=True, index=True)
    access_token = db.Column(db.String(255), nullable=False)
    api_version = db.Column(db.String(16), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Tenant id={self.id} shop={self.shop_domain!r}>"

    def to_dict(self) -> dict:
        # access_token is never serialized
        return {
            "id": self.id,
            "name": self.name,
            "shop_domain": self.shop_domain,
            "api_version": self.api_version,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class ApiToken(db.Model):
    """
    Bearer token that scopes API requests to one tenant.

    SECURITY: Only the SHA-256 hash is stored; the plaintext is shown once
    when the token is issued from the CLI.
    """
    __tablename__ = "api_tokens"
    __table_args__ = (
        db.Index("ix_api_tokens_tenant_id", "tenant_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False)
    token_hash = db.Column(db.String(64), nullable=False, unique=True, index=True)
    label = db.Column(db.String(120), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)

    tenant = db.relationship("Tenant", backref=db.backref("api_tokens", lazy=True))

    @property
    def is_revoked(self) -> bool:
        return self.revoked_at is not None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "label": self.label,
            "created_at": to_utc_z(self.created_at),
            "last_used_at": to_utc_z(self.last_used_at),
            "revoked_at": to_utc_z(self.revoked_at),
        }
