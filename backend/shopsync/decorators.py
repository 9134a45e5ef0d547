# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .services import token_service


def require_auth(f):
    """
    Require a tenant API token and establish tenant context.

    MULTI-TENANT: Sets g.tenant (the Tenant the token belongs to) and
    g.tenant_id. Every tenant-scoped route reads only these.

    SECURITY: Returns 401 if:
    - No Authorization header
    - Unknown or revoked token
    - Tenant deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1].strip()
        tenant = token_service.validate_token(token)

        if not tenant:
            return jsonify({"error": "Invalid or revoked token"}), 401

        g.tenant = tenant
        g.tenant_id = tenant.id

        return f(*args, **kwargs)

    return decorated_function
