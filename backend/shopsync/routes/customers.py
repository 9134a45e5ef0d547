# Overview: Flask API routes for synced customers; tenant-scoped reads.

from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth
from ..services import query_service


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_auth
def list_customers_route():
    result = query_service.list_customers(
        g.tenant_id,
        page=request.args.get("page", 1, type=int),
        limit=request.args.get("limit", type=int),
        search=request.args.get("search"),
    )
    return jsonify(result), 200


@customers_bp.get("/<int:customer_id>")
@require_auth
def get_customer_route(customer_id: int):
    customer = query_service.get_customer(g.tenant_id, customer_id)
    if not customer:
        return jsonify({"error": "Customer not found"}), 404
    return jsonify({"customer": customer}), 200
