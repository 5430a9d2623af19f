# Overview: Flask API routes for orders; parses input and returns JSON responses.

# backend/oms/routes/orders.py
"""
Order API routes

All routes require authentication. Role and ownership rules are enforced
by the services; bulk import is additionally limited to Admin/Super Admin
at the route.

Money fields are integer cents in both requests and responses.
"""

import csv
import io

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_roles
from ..errors import ServiceError
from ..permissions import ROLE_ADMIN, ROLE_SUPER_ADMIN
from ..services import export_service, import_service, order_service, reporting_service


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _read_upload_rows(file) -> list[dict] | None:
    """Rows from an uploaded .csv or .xlsx file; None for other formats."""
    filename = file.filename or ""
    ext = filename.split(".")[-1].lower()

    if ext == "csv":
        stream = io.StringIO(file.stream.read().decode("utf-8-sig"))
        return [row for row in csv.DictReader(stream)]

    if ext in {"xlsx", "xlsm"}:
        from openpyxl import load_workbook
        wb = load_workbook(file.stream, data_only=True)
        data = list(wb.active.values)
        if not data:
            return []
        headers = [str(h) if h is not None else "" for h in data[0]]
        return [
            {headers[i]: row[i] for i in range(len(headers))}
            for row in data[1:]
        ]

    return None


@orders_bp.get("")
@require_auth
def list_orders_route():
    """
    List orders newest first.

    Query params:
    - start, end: ISO-8601 (optional; both required to filter)
    """
    try:
        orders = order_service.list_orders(request.args.get("start"), request.args.get("end"))
        return jsonify({"items": [o.to_dict() for o in orders], "count": len(orders)})
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code


@orders_bp.post("")
@require_auth
def create_order_route():
    """
    Create an order owned by the caller.

    Request body:
    {
        "customer_id": 1,
        "items": [{"product_id": 3, "quantity": 2, "unit_price_cents": 50000}],
        "discount_amount_cents": 0,
        "delivery_charge_cents": null,
        "payment_status": "COD",
        "remark": "VIP",
        "additional_remark": null
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        order = order_service.create_order(
            customer_id=data.get("customer_id"),
            items=data.get("items"),
            actor=g.current_user,
            discount_amount_cents=data.get("discount_amount_cents") or 0,
            payment_status=data.get("payment_status") or "COD",
            remark=data.get("remark"),
            additional_remark=data.get("additional_remark"),
            delivery_charge_cents=data.get("delivery_charge_cents"),
        )
        return jsonify({"order": order.to_dict()}), 201
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/stats")
@require_auth
def dashboard_stats_route():
    return jsonify(reporting_service.dashboard_stats())


@orders_bp.get("/matrix")
@require_auth
def order_matrix_route():
    return jsonify(reporting_service.order_matrix())


@orders_bp.get("/my-report")
@require_auth
def my_report_route():
    try:
        orders = order_service.my_report(
            g.current_user,
            request.args.get("start"),
            request.args.get("end"),
            payment_status=request.args.get("payment_status"),
        )
        return jsonify({"items": [o.to_dict() for o in orders], "count": len(orders)})
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code


@orders_bp.get("/pending-edits-count")
@require_auth
def pending_edits_count_route():
    return jsonify({"count": order_service.pending_edit_count(g.current_user)})


@orders_bp.put("/bulk-status")
@require_auth
def bulk_status_route():
    try:
        data = request.get_json(silent=True) or {}
        updated = order_service.bulk_update_status(
            data.get("start"), data.get("end"), data.get("status"), actor=g.current_user
        )
        return jsonify({"updated": updated, "message": f"Updated {updated} orders to {data.get('status')}"})
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to bulk update order status")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.delete("/bulk-delete")
@require_auth
def bulk_delete_route():
    try:
        data = request.get_json(silent=True) or {}
        deleted = order_service.bulk_delete_orders(data.get("password"), actor=g.current_user)
        return jsonify({"deleted": deleted, "message": f"Successfully deleted {deleted} orders"})
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to bulk delete orders")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.put("/export")
@require_auth
def export_route():
    """
    Export an order range. Without agent_id (or "All") the matched orders
    are dispatched.
    """
    try:
        data = request.get_json(silent=True) or {}
        orders = export_service.export_orders(
            data.get("start"),
            data.get("end"),
            actor=g.current_user,
            payment_status=data.get("payment_status"),
            agent_id=data.get("agent_id"),
        )
        return jsonify({"items": [o.to_dict() for o in orders], "count": len(orders)})
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to export orders")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/export-history")
@require_auth
def export_history_route():
    logs = export_service.export_history()
    return jsonify({"items": [log.to_dict() for log in logs], "count": len(logs)})


@orders_bp.post("/bulk-import")
@require_auth
@require_roles(ROLE_SUPER_ADMIN, ROLE_ADMIN)
def bulk_import_route():
    if "file" not in request.files:
        return jsonify({"error": "Please upload a CSV file"}), 400

    try:
        rows = _read_upload_rows(request.files["file"])
    except Exception:
        current_app.logger.exception("Failed to parse order import upload")
        return jsonify({"error": "Failed to parse upload"}), 400

    if rows is None:
        return jsonify({"error": "Unsupported file format"}), 400

    try:
        result = import_service.import_orders(rows, actor=g.current_user)
        return jsonify({"message": "Import processed", **result}), 200
    except Exception:
        current_app.logger.exception("Failed to import orders")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/<int:order_id>")
@require_auth
def get_order_route(order_id: int):
    try:
        order = order_service.get_order(order_id)
        return jsonify({"order": order.to_dict()})
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code


@orders_bp.put("/<int:order_id>")
@require_auth
def update_order_route(order_id: int):
    try:
        data = request.get_json(silent=True) or {}
        order = order_service.update_order(order_id, data, actor=g.current_user)
        return jsonify({"order": order.to_dict()})
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/<int:order_id>/request-edit")
@require_auth
def request_edit_route(order_id: int):
    try:
        data = request.get_json(silent=True) or {}
        order = order_service.request_edit(order_id, data.get("message"), actor=g.current_user)
        return jsonify({"message": "Edit request sent", "order": order.to_dict()})
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to request order edit")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.delete("/<int:order_id>")
@require_auth
def delete_order_route(order_id: int):
    try:
        data = request.get_json(silent=True) or {}
        order_service.delete_order(order_id, data.get("password"), actor=g.current_user)
        return jsonify({"message": "Order removed"})
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete order")
        return jsonify({"error": "Internal server error"}), 500
