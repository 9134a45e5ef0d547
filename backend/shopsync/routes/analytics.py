# Overview: Flask API routes for the tenant's aggregated numbers; summary, top customers and status breakdowns.

from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth
from ..services import query_service


analytics_bp = Blueprint("analytics", __name__, url_prefix="/api/analytics")


@analytics_bp.get("/summary")
@require_auth
def summary_route():
    return jsonify(query_service.summary(g.tenant_id)), 200


@analytics_bp.get("/top-customers")
@require_auth
def top_customers_route():
    limit = request.args.get("limit", type=int)
    return jsonify(query_service.top_customers(g.tenant_id, limit)), 200


@analytics_bp.get("/revenue-by-status")
@require_auth
def revenue_by_status_route():
    return jsonify(query_service.revenue_by_status(g.tenant_id)), 200


@analytics_bp.get("/products-by-status")
@require_auth
def products_by_status_route():
    return jsonify(query_service.products_by_status(g.tenant_id)), 200


@analytics_bp.get("/fulfillment-stats")
@require_auth
def fulfillment_stats_route():
    return jsonify(query_service.fulfillment_stats(g.tenant_id)), 200
