# Overview: Flask API routes for manual syncs and sync history.

"""
Sync Routes

POST /api/sync/<scope> runs a sync for the authenticated tenant
(scope: all | customers | orders | products). The response is the
SyncResult; partial success is still HTTP 200, a failed sync is 502.
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..extensions import db
from ..models import SyncLog
from ..services.sync_service import SyncOrchestrator


sync_bp = Blueprint("sync", __name__, url_prefix="/api/sync")

ROUTE_SCOPES = {
    "all": "full",
    "customers": "customers",
    "orders": "orders",
    "products": "products",
}

MAX_LOGS = 200


@sync_bp.post("/<scope>")
@require_auth
def run_sync_route(scope: str):
    if scope not in ROUTE_SCOPES:
        return jsonify({"error": f"Unknown sync scope: {scope}"}), 404

    try:
        orchestrator = SyncOrchestrator.from_config(db.session, current_app.config)
        result = orchestrator.run_sync(g.tenant, ROUTE_SCOPES[scope], trigger="manual")
    except Exception:
        current_app.logger.exception("Sync %s failed for tenant %s", scope, g.tenant_id)
        return jsonify({"error": "Sync failed"}), 500

    body = result.to_dict()
    if result.success:
        body["message"] = "Sync completed with errors" if result.partial else "Sync completed successfully"
        return jsonify(body), 200

    body["error"] = "Sync failed"
    return jsonify(body), 502


@sync_bp.get("/logs")
@require_auth
def list_logs_route():
    limit = request.args.get("limit", 50, type=int)
    limit = max(1, min(limit or 50, MAX_LOGS))

    logs = (
        db.session.query(SyncLog)
        .filter(SyncLog.tenant_id == g.tenant_id)
        .order_by(SyncLog.started_at.desc(), SyncLog.id.desc())
        .limit(limit)
        .all()
    )
    return jsonify({"logs": [log.to_dict() for log in logs]}), 200
