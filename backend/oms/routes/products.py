# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/oms/routes/products.py
"""
Product catalog routes.

SECURITY: All routes require authentication. Writes are Super Admin only
(enforced in products_service). DELETE is a soft delete.
"""
from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth
from ..errors import ServiceError
from ..services import products_service

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
def list_products():
    """
    List active products.

    Query params:
    - include_inactive: "true" to include deactivated products
    """
    include_inactive = request.args.get("include_inactive", "").lower() == "true"
    products = products_service.list_products(include_inactive=include_inactive)
    return jsonify({"items": [p.to_dict() for p in products], "count": len(products)})


@products_bp.post("")
@require_auth
def create_product():
    try:
        product = products_service.create_product(request.get_json(silent=True) or {}, actor=g.current_user)
        return jsonify({"product": product.to_dict()}), 201
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.put("/<int:product_id>")
@require_auth
def update_product(product_id: int):
    try:
        product = products_service.update_product(
            product_id, request.get_json(silent=True) or {}, actor=g.current_user
        )
        return jsonify({"product": product.to_dict()})
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.delete("/<int:product_id>")
@require_auth
def delete_product(product_id: int):
    try:
        product = products_service.deactivate_product(product_id, actor=g.current_user)
        return jsonify({"product": product.to_dict(), "message": "Product deactivated"})
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": "Internal server error"}), 500
