# Overview: Error taxonomy for the sync engine and readable classification for logs and API results.

"""
Sync Errors

Every failure that can end a sub-sync is one of these. The orchestrator
catches them at the sub-sync boundary, writes describe(exc) into the
SyncLog, and reports it in the SyncResult errors list.

    SyncError
    ├── AuthError             401, bad or revoked access token
    ├── PermissionScopeError  403, token lacks an access scope (names it)
    ├── TransientFault        network, timeout, 429; retryable
    ├── UpstreamError         any other non-2xx from Shopify
    └── ReconciliationError   mapping or persistence failure on one record
"""

from __future__ import annotations


class SyncError(Exception):
    """Base class for sync engine failures."""

    kind = "unknown"
    retryable = False


class AuthError(SyncError):
    kind = "auth"


class PermissionScopeError(SyncError):
    kind = "scope"

    def __init__(self, scope: str | None, message: str | None = None):
        self.scope = scope
        super().__init__(message or f"Missing access scope: {scope or 'unknown'}")


class TransientFault(SyncError):
    kind = "transient"
    retryable = True

    def __init__(self, message: str, retry_after: float | None = None):
        self.retry_after = retry_after
        super().__init__(message)


class UpstreamError(SyncError):
    kind = "upstream"

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class ReconciliationError(SyncError):
    kind = "reconciliation"

    def __init__(self, entity: str, external_id, message: str):
        self.entity = entity
        self.external_id = external_id
        super().__init__(message)


class SyncCancelled(SyncError):
    """Raised at a record boundary when the caller's cancel token is set."""

    kind = "cancelled"


def classify(exc: BaseException) -> str:
    """Short machine-readable class: auth, scope, transient, upstream, reconciliation, cancelled, unknown."""
    if isinstance(exc, SyncError):
        return exc.kind
    return "unknown"


def describe(exc: BaseException, scope: str | None = None) -> str:
    """
    Human-readable message for SyncLog.error_message and API results.

    scope is the access scope the failing sub-sync needs; it is used when
    the exception itself does not name one.
    """
    if isinstance(exc, AuthError):
        return "Invalid API access token"
    if isinstance(exc, PermissionScopeError):
        return f"Access denied - enable '{exc.scope or scope or 'unknown'}' scope in your Shopify app"
    if isinstance(exc, TransientFault):
        return f"Temporary Shopify error: {exc}"
    if isinstance(exc, UpstreamError):
        return f"Shopify error: {exc}"
    if isinstance(exc, ReconciliationError):
        return f"Failed to store {exc.entity} {exc.external_id}: {exc}"
    if isinstance(exc, SyncCancelled):
        return f"Sync cancelled: {exc}"
    return str(exc) or "Unknown error"
