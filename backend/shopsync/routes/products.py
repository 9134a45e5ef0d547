# Overview: Flask API routes for synced products; tenant-scoped reads.

from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth
from ..services import query_service


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
def list_products_route():
    result = query_service.list_products(
        g.tenant_id,
        page=request.args.get("page", 1, type=int),
        limit=request.args.get("limit", type=int),
        search=request.args.get("search"),
        status=request.args.get("status"),
    )
    return jsonify(result), 200


@products_bp.get("/<int:product_id>")
@require_auth
def get_product_route(product_id: int):
    product = query_service.get_product(g.tenant_id, product_id)
    if not product:
        return jsonify({"error": "Product not found"}), 404
    return jsonify({"product": product}), 200
