# Overview: Flask API routes for customers; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth
from ..errors import ServiceError
from ..services import customer_service


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_auth
def list_customers_route():
    customers = customer_service.list_customers()
    return jsonify({"items": [c.to_dict() for c in customers], "count": len(customers)})


@customers_bp.post("")
@require_auth
def create_customer_route():
    try:
        customer = customer_service.create_customer(request.get_json(silent=True) or {})
        return jsonify({"customer": customer.to_dict()}), 201
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.get("/phone/<phone>")
@require_auth
def get_customer_by_phone_route(phone: str):
    """Customer plus order history, newest first."""
    try:
        customer = customer_service.get_customer_by_phone(phone)
        return jsonify({"customer": customer.to_dict(include_history=True)})
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code


@customers_bp.delete("/bulk-delete")
@require_auth
def bulk_delete_customers_route():
    try:
        data = request.get_json(silent=True) or {}
        result = customer_service.bulk_delete_customers(data.get("password"), actor=g.current_user)
        return jsonify(result)
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to bulk delete customers")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.put("/<int:customer_id>")
@require_auth
def update_customer_route(customer_id: int):
    try:
        customer = customer_service.update_customer(customer_id, request.get_json(silent=True) or {})
        return jsonify({"customer": customer.to_dict()})
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.delete("/<int:customer_id>")
@require_auth
def delete_customer_route(customer_id: int):
    try:
        data = request.get_json(silent=True) or {}
        customer_service.delete_customer(customer_id, data.get("password"), actor=g.current_user)
        return jsonify({"message": "Customer removed"})
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete customer")
        return jsonify({"error": "Internal server error"}), 500
