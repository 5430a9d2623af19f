"""
Bulk Import Service - web-order export files to orders

WHY: Online orders arrive as a flat export with one row per line item.
Rows are grouped by the source order name and each group becomes one
order owned by the synthetic "Web Orders" agent.

PARTIAL FAILURE: Groups are processed independently. A failing group is
recorded and the batch continues. Customers and products created by
find-or-create are committed as they are resolved, so they survive a later
failure in the same group.
"""

from __future__ import annotations

from typing import Any, Iterable

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..errors import InvalidInputError, ServiceError
from ..models import Order, User
from ..models.orders import EditRequest
from ..permissions import ROLE_AGENT
from oms.time_utils import utcnow
from .auth_service import create_user
from .customer_service import find_or_create_by_phone
from .import_schemas import WebOrderRowSchema
from .order_service import ItemLine, order_items_from_lines
from .pricing import current_policy, price_order
from .products_service import find_or_create_by_name


UNKNOWN_ORDER = "Unknown"


def group_rows(
    rows: Iterable[dict[str, Any]],
    schema: WebOrderRowSchema | None = None,
) -> tuple[dict[str, list[dict[str, Any]]], list[dict[str, str]]]:
    """
    Normalize rows and group them by source order name.

    Groups keep first-seen order. Rows without an order name are returned
    as individual errors.
    """
    schema = schema or WebOrderRowSchema()
    groups: dict[str, list[dict[str, Any]]] = {}
    errors: list[dict[str, str]] = []

    for raw in rows:
        row = schema.normalize_row(raw)
        order_ref = row["order_id"]
        if not order_ref:
            errors.append({"order": UNKNOWN_ORDER, "error": "Missing Order Name"})
            continue
        groups.setdefault(order_ref, []).append(row)

    return groups, errors


def payment_status_for(payment_raw: str | None, keywords: Iterable[str] | None = None) -> str:
    """COD unless the gateway text mentions a prepaid method."""
    if not payment_raw:
        return "COD"
    if keywords is None:
        keywords = current_app.config.get("PAID_PAYMENT_KEYWORDS", ())
    lowered = payment_raw.lower()
    if any(keyword in lowered for keyword in keywords):
        return "Paid"
    return "COD"


def resolve_web_orders_agent(actor: User) -> User:
    """
    Find or create the synthetic agent that owns imported orders.

    Falls back to the importing user when the agent cannot be created.
    """
    config = current_app.config
    name = config["WEB_ORDERS_AGENT_NAME"]

    agent = db.session.query(User).filter_by(name=name, role=ROLE_AGENT).first()
    if agent:
        return agent

    try:
        return create_user(
            name=name,
            email=config["WEB_ORDERS_AGENT_EMAIL"],
            password=config["WEB_ORDERS_AGENT_PASSWORD"],
            role=ROLE_AGENT,
            phone="0000000000",
            address="System",
        )
    except (ServiceError, SQLAlchemyError) as exc:
        db.session.rollback()
        current_app.logger.warning(
            "Failed to create %s agent, falling back to user %s: %s", name, actor.id, exc
        )
        return actor


def _import_group(order_ref: str, rows: list[dict[str, Any]], actor: User, schema: WebOrderRowSchema) -> Order:
    header = rows[0]
    problems = schema.validate_group(header)
    if problems:
        raise InvalidInputError(problems[0])

    customer, _ = find_or_create_by_phone(
        phone=header["phone"],
        name=header["customer_name"],
        phone2=header["phone2"],
        address=header["address"],
        city=header["city"],
        country=header["country"],
        email=header["email"],
    )
    agent = resolve_web_orders_agent(actor)
    payment_status = payment_status_for(header["payment_raw"])

    lines: list[ItemLine] = []
    for row in rows:
        if not row["product_name"]:
            continue
        product, _ = find_or_create_by_name(row["product_name"], price_cents=row["unit_price_cents"])
        lines.append(ItemLine(
            product_id=product.id,
            product_name=row["product_name"],
            quantity=row["quantity"],
            unit_price_cents=row["unit_price_cents"],
        ))

    if not lines:
        raise InvalidInputError("No valid items found")

    pricing = price_order(
        lines,
        policy=current_policy(),
        discount_amount_cents=0,
        total_override_cents=header["subtotal_cents"],
    )

    order = Order(
        customer_id=customer.id,
        agent_id=agent.id,
        total_amount_cents=pricing.total_amount_cents,
        discount_amount_cents=pricing.discount_amount_cents,
        delivery_charge_cents=pricing.delivery_charge_cents,
        final_amount_cents=pricing.final_amount_cents,
        remark=order_ref,
        additional_remark=header["created_at_raw"] or "",
        status="Pending",
        payment_status=payment_status,
        is_downloaded=False,
        # Import time, so imported orders show on today's dashboard.
        created_at=utcnow(),
    )
    order.edit_request = EditRequest()
    order.items = order_items_from_lines(lines)

    db.session.add(order)
    customer.order_history.append(order)
    db.session.commit()
    return order


def import_orders(rows: Iterable[dict[str, Any]], actor: User) -> dict[str, Any]:
    """
    Import raw export rows.

    Returns {"success_count", "error_count", "errors": [{"order", "error"}]}.
    """
    schema = WebOrderRowSchema()
    groups, errors = group_rows(rows, schema)
    success_count = 0

    for order_ref, group in groups.items():
        try:
            _import_group(order_ref, group, actor, schema)
            success_count += 1
        except Exception as exc:  # noqa: BLE001
            db.session.rollback()
            errors.append({"order": order_ref, "error": str(exc)})

    current_app.logger.info(
        "Order import by user %s: %s succeeded, %s failed", actor.id, success_count, len(errors)
    )
    return {
        "success_count": success_count,
        "error_count": len(errors),
        "errors": errors,
    }
