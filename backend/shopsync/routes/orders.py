# Overview: Flask API routes for synced orders and draft orders; tenant-scoped reads.

from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth
from ..services import query_service


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.get("")
@require_auth
def list_orders_route():
    """
    Query params:
    - page, limit: pagination (limit max 100)
    - search: order number or email
    - status: financial status
    - start_date, end_date: ISO-8601 bounds on the Shopify creation time
    - drafts: "false" to hide draft orders
    """
    result = query_service.list_orders(
        g.tenant_id,
        page=request.args.get("page", 1, type=int),
        limit=request.args.get("limit", type=int),
        search=request.args.get("search"),
        status=request.args.get("status"),
        start_date=request.args.get("start_date"),
        end_date=request.args.get("end_date"),
        include_drafts=request.args.get("drafts", "true").lower() != "false",
    )
    return jsonify(result), 200


@orders_bp.get("/<int:order_id>")
@require_auth
def get_order_route(order_id: int):
    order = query_service.get_order(g.tenant_id, order_id)
    if not order:
        return jsonify({"error": "Order not found"}), 404
    return jsonify({"order": order}), 200
