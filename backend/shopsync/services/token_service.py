# Overview: Tenant API tokens; issue, validate and revoke bearer tokens hashed at rest.

"""
Tenant API Token Service

WHY: Every /api request acts on exactly one tenant. The bearer token is the
tenant context: validating it yields the Tenant the request is scoped to.

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage (fast, one-way)
- Plaintext returned once at issue time, never stored
- Revocable; tokens of an inactive tenant are rejected
"""

import hashlib
import secrets

from ..extensions import db
from ..models import ApiToken, Tenant
from shopsync.time_utils import utcnow


def generate_token() -> str:
    """
    Generate cryptographically secure random token.

    Returns 64-character hex string (32 bytes of entropy).
    """
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    Hash token for database storage using SHA-256.

    WHY SHA-256 not bcrypt: Tokens are already high-entropy (unlike passwords).
    """
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def issue_token(tenant_id: int, label: str | None = None) -> tuple[ApiToken, str]:
    """
    Create a token for a tenant.

    Returns (token_record, plaintext_token).
    Raises ValueError if the tenant is missing or inactive.
    """
    tenant = db.session.get(Tenant, tenant_id)
    if not tenant:
        raise ValueError("Tenant not found")
    if not tenant.is_active:
        raise ValueError("Tenant is not active")

    plaintext_token = generate_token()
    record = ApiToken(
        tenant_id=tenant.id,
        token_hash=hash_token(plaintext_token),
        label=label,
        created_at=utcnow(),
    )
    db.session.add(record)
    db.session.commit()
    return record, plaintext_token


def validate_token(token: str) -> Tenant | None:
    """
    Return the Tenant a token belongs to, or None.

    Returns None if the token is unknown or revoked, or if the tenant is
    deactivated. Updates last_used_at on success.
    """
    if not token:
        return None

    record = db.session.query(ApiToken).filter_by(token_hash=hash_token(token)).first()
    if not record or record.is_revoked:
        return None

    tenant = record.tenant
    if not tenant or not tenant.is_active:
        return None

    record.last_used_at = utcnow()
    db.session.commit()
    return tenant


def revoke_token(token_id: int) -> bool:
    """Revoke a token by id. Returns False if it does not exist."""
    record = db.session.get(ApiToken, token_id)
    if not record:
        return False
    if not record.is_revoked:
        record.revoked_at = utcnow()
        db.session.commit()
    return True
