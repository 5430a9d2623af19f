"""
Order Service - creation, update, and the edit-request workflow

WHY: Manual entry and imports must produce orders whose totals, delivery
charge, and remark annotation agree with the pricing rules. This module is
the only writer of those fields outside the bulk importer.

LIFECYCLE:
- create_order: status Pending, no edits, no edit request
- request_edit: an agent flags the order for review (last writer wins)
- update_order: clears any pending request and appends one edit entry
- delete_order: Admin/Super Admin re-confirming their password

All inputs are validated before anything is written.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..extensions import db
from ..errors import ForbiddenError, InvalidInputError, NotFoundError
from ..models import Customer, Order, OrderEdit, OrderItem, Product, User, customer_order_history
from ..models.orders import EditRequest, ORDER_STATUSES, PAYMENT_STATUSES
from ..permissions import is_elevated, require_elevated, require_super_admin
from ..validation import coerce_int
from oms.time_utils import parse_range_bounds, utcnow
from .auth_service import confirm_password
from .concurrency import run_with_retry
from .pricing import PricingResult, current_policy, price_order
from .remarks import annotate_remark


UPDATABLE_FIELDS = {
    "items",
    "discount_amount_cents",
    "delivery_charge_cents",
    "remark",
    "additional_remark",
    "customer_id",
    "payment_status",
    "status",
}

# Any of these keys triggers a full re-price and remark re-annotation.
RECOMPUTE_FIELDS = {"items", "discount_amount_cents", "delivery_charge_cents", "remark"}


@dataclass(frozen=True)
class ItemLine:
    """Validated order line, before it becomes an OrderItem row."""
    product_id: int
    product_name: str
    quantity: int
    unit_price_cents: int

    @property
    def line_total_cents(self) -> int:
        return self.unit_price_cents * self.quantity


def _build_lines(items) -> list[ItemLine]:
    """
    Validate raw item payloads and snapshot product names.

    Each item: {"product_id", "quantity", "unit_price_cents"?, "product_name"?}.
    The unit price defaults to the product's current price.
    """
    if not isinstance(items, list) or not items:
        raise InvalidInputError("No order items")

    lines: list[ItemLine] = []
    for index, raw in enumerate(items):
        if not isinstance(raw, dict):
            raise InvalidInputError("Invalid order item", details={"index": index})

        if raw.get("product_id") is None:
            raise InvalidInputError("product_id is required", details={"index": index})
        product_id = coerce_int(raw["product_id"], "product_id")

        quantity = coerce_int(raw.get("quantity"), "quantity")
        if quantity <= 0:
            raise InvalidInputError("quantity must be > 0", details={"index": index, "quantity": quantity})

        product = db.session.get(Product, product_id)
        if not product:
            raise NotFoundError("Product not found", details={"product_id": product_id})

        if raw.get("unit_price_cents") is None:
            unit_price = product.price_cents
        else:
            unit_price = coerce_int(raw["unit_price_cents"], "unit_price_cents")
        if unit_price < 0:
            raise InvalidInputError("unit_price_cents must be >= 0", details={"index": index})

        name = (raw.get("product_name") or "").strip() or product.name
        lines.append(ItemLine(
            product_id=product.id,
            product_name=name,
            quantity=quantity,
            unit_price_cents=unit_price,
        ))
    return lines


def order_items_from_lines(lines: list[ItemLine]) -> list[OrderItem]:
    return [
        OrderItem(
            position=position,
            product_id=line.product_id,
            product_name=line.product_name,
            quantity=line.quantity,
            unit_price_cents=line.unit_price_cents,
            line_total_cents=line.line_total_cents,
        )
        for position, line in enumerate(lines)
    ]


def _validate_discount(value) -> int:
    if value is None:
        return 0
    return coerce_int(value, "discount_amount_cents", minimum=0)


def _validate_delivery_override(value) -> int | None:
    if value is None:
        return None
    return coerce_int(value, "delivery_charge_cents", minimum=0)


def _validate_text(value, field: str) -> str | None:
    if value is not None and not isinstance(value, str):
        raise InvalidInputError(f"{field} must be a string")
    return value


def _validate_payment_status(value: str) -> str:
    if value not in PAYMENT_STATUSES:
        raise InvalidInputError(f"payment_status must be one of: {', '.join(PAYMENT_STATUSES)}")
    return value


def _apply_pricing(order: Order, pricing: PricingResult) -> None:
    order.total_amount_cents = pricing.total_amount_cents
    order.discount_amount_cents = pricing.discount_amount_cents
    order.delivery_charge_cents = pricing.delivery_charge_cents
    order.final_amount_cents = pricing.final_amount_cents


def _get_customer(customer_id) -> Customer:
    if customer_id is None:
        raise InvalidInputError("customer_id is required")
    customer = db.session.get(Customer, coerce_int(customer_id, "customer_id"))
    if not customer:
        raise NotFoundError("Customer not found")
    return customer


def _resolve_range(start, end) -> tuple:
    if not start or not end:
        raise InvalidInputError("Please provide start and end dates")
    try:
        start_dt, end_dt = parse_range_bounds(start, end)
    except ValueError:
        raise InvalidInputError("start and end must be ISO-8601 dates")
    return start_dt, end_dt


def get_order(order_id: int) -> Order:
    order = db.session.get(Order, order_id)
    if not order:
        raise NotFoundError("Order not found")
    return order


def create_order(
    customer_id: int,
    items: list[dict],
    actor: User,
    discount_amount_cents: int = 0,
    payment_status: str = "COD",
    remark: str | None = None,
    additional_remark: str | None = None,
    delivery_charge_cents: int | None = None,
) -> Order:
    """
    Create a priced order owned by the acting user.

    Raises:
        InvalidInputError: empty items, bad quantity/price/discount/payment status
        NotFoundError: customer or a referenced product does not exist
    """
    lines = _build_lines(items)
    customer = _get_customer(customer_id)
    discount = _validate_discount(discount_amount_cents)
    delivery_override = _validate_delivery_override(delivery_charge_cents)
    payment_status = _validate_payment_status(payment_status or "COD")
    remark = _validate_text(remark, "remark")
    additional_remark = _validate_text(additional_remark, "additional_remark")

    pricing = price_order(
        lines,
        policy=current_policy(),
        discount_amount_cents=discount,
        delivery_charge_override_cents=delivery_override,
    )
    annotated = annotate_remark(remark, discount)
    customer_pk = customer.id

    def _op():
        owner = db.session.get(Customer, customer_pk)
        order = Order(
            customer_id=owner.id,
            agent_id=actor.id,
            remark=annotated or None,
            additional_remark=additional_remark,
            status="Pending",
            payment_status=payment_status,
            is_downloaded=False,
            created_at=utcnow(),
        )
        _apply_pricing(order, pricing)
        order.edit_request = EditRequest()
        order.items = order_items_from_lines(lines)

        db.session.add(order)
        owner.order_history.append(order)
        db.session.commit()
        return order

    return run_with_retry(_op)


def update_order(order_id: int, changes: dict, actor: User) -> Order:
    """
    Apply a partial update.

    Re-prices only when items, discount, delivery override, or remark are
    supplied. Without new items the stored total and delivery charge are
    kept unless a new delivery override is given. Status changes from a
    non-elevated actor are ignored.
    """
    order = get_order(order_id)
    if order.agent_id != actor.id and not is_elevated(actor):
        raise ForbiddenError("Not authorized to update this order")

    changes = changes or {}
    if not isinstance(changes, dict):
        raise InvalidInputError("Invalid JSON payload")
    for key in changes:
        if key not in UPDATABLE_FIELDS:
            raise InvalidInputError(f"Field not allowed: {key}")

    # Validate everything up front; nothing is written on failure.
    new_lines = _build_lines(changes["items"]) if "items" in changes else None
    discount = (
        _validate_discount(changes["discount_amount_cents"])
        if "discount_amount_cents" in changes
        else order.discount_amount_cents
    )
    delivery_override = _validate_delivery_override(changes.get("delivery_charge_cents"))
    for text_field in ("remark", "additional_remark"):
        _validate_text(changes.get(text_field), text_field)

    new_customer = None
    if changes.get("customer_id") is not None:
        new_customer = _get_customer(changes["customer_id"])

    payment_status = None
    if changes.get("payment_status") is not None:
        payment_status = _validate_payment_status(changes["payment_status"])

    status = None
    if changes.get("status") is not None and is_elevated(actor):
        if changes["status"] not in ORDER_STATUSES:
            raise InvalidInputError(f"status must be one of: {', '.join(ORDER_STATUSES)}")
        status = changes["status"]

    pricing = None
    annotated = None
    if RECOMPUTE_FIELDS & changes.keys():
        if new_lines is not None:
            pricing = price_order(
                new_lines,
                policy=current_policy(),
                discount_amount_cents=discount,
                delivery_charge_override_cents=delivery_override,
                recompute=True,
            )
        else:
            pricing = price_order(
                list(order.items),
                policy=current_policy(),
                discount_amount_cents=discount,
                delivery_charge_override_cents=(
                    delivery_override if delivery_override is not None else order.delivery_charge_cents
                ),
                total_override_cents=order.total_amount_cents,
                recompute=True,
            )
        base_remark = changes["remark"] if "remark" in changes else order.remark
        annotated = annotate_remark(base_remark, discount)

    order_pk = order.id
    customer_pk = new_customer.id if new_customer else None

    def _op():
        target = get_order(order_pk)

        if new_lines is not None:
            target.items = order_items_from_lines(new_lines)
        if pricing is not None:
            _apply_pricing(target, pricing)
            target.remark = annotated or None

        if customer_pk is not None and customer_pk != target.customer_id:
            previous = target.customer
            if previous is not None and target in previous.order_history:
                previous.order_history.remove(target)
            owner = db.session.get(Customer, customer_pk)
            target.customer_id = owner.id
            target.customer = owner
            if target not in owner.order_history:
                owner.order_history.append(target)

        if payment_status is not None:
            target.payment_status = payment_status
        if "additional_remark" in changes:
            target.additional_remark = changes["additional_remark"]
        if status is not None:
            target.status = status

        target.edit_request = EditRequest()
        target.edits.append(OrderEdit(user_id=actor.id, edited_at=utcnow()))

        db.session.commit()
        return target

    return run_with_retry(_op)


def request_edit(order_id: int, message: str | None, actor: User) -> Order:
    """Flag an order for review, replacing any earlier request."""
    order = get_order(order_id)

    message = (message or "").strip()
    if not message:
        raise InvalidInputError("Message is required")

    order_pk = order.id

    def _op():
        target = get_order(order_pk)
        target.edit_request = EditRequest(
            pending=True,
            message=message,
            from_user_id=actor.id,
            created_at=utcnow(),
        )
        db.session.commit()
        return target

    return run_with_retry(_op)


def delete_order(order_id: int, password: str | None, actor: User) -> None:
    order = get_order(order_id)
    require_elevated(actor, "Not authorized. Only Admin or Super Admin can delete orders.")
    confirm_password(actor.id, password)

    # History links, items and edits go with the order through its relationships.
    db.session.delete(order)
    db.session.commit()


def bulk_delete_orders(password: str | None, actor: User) -> int:
    """Remove every order. Returns the number deleted."""
    require_super_admin(actor, "Not authorized. Only Super Admin can perform bulk deletion.")
    confirm_password(actor.id, password, action="Bulk deletion")

    count = db.session.query(Order).count()
    db.session.execute(customer_order_history.delete())
    db.session.query(OrderEdit).delete(synchronize_session=False)
    db.session.query(OrderItem).delete(synchronize_session=False)
    db.session.query(Order).delete(synchronize_session=False)
    db.session.commit()
    return count


def bulk_update_status(start, end, status: str | None, actor: User) -> int:
    """
    Set status on every order created in [start, end].

    Each touched order gets one edit entry. Returns the number updated.
    """
    require_elevated(actor, "Not authorized to update order status")
    if not status:
        raise InvalidInputError("Please provide start date, end date, and status")
    if status not in ORDER_STATUSES:
        raise InvalidInputError(f"status must be one of: {', '.join(ORDER_STATUSES)}")
    start_dt, end_dt = _resolve_range(start, end)

    def _op():
        orders = (
            db.session.query(Order)
            .filter(Order.created_at >= start_dt, Order.created_at <= end_dt)
            .all()
        )
        now = utcnow()
        for order in orders:
            order.status = status
            order.edits.append(OrderEdit(user_id=actor.id, edited_at=now))
        db.session.commit()
        return len(orders)

    return run_with_retry(_op)


def list_orders(start=None, end=None) -> list[Order]:
    """All orders newest first; the range applies only when both ends are given."""
    query = db.session.query(Order)
    if start and end:
        start_dt, end_dt = _resolve_range(start, end)
        query = query.filter(Order.created_at >= start_dt, Order.created_at <= end_dt)
    return query.order_by(Order.created_at.desc(), Order.id.desc()).all()


def my_report(actor: User, start, end, payment_status: str | None = None) -> list[Order]:
    """The actor's own orders in a date range (read-only report)."""
    start_dt, end_dt = _resolve_range(start, end)
    query = db.session.query(Order).filter(
        Order.agent_id == actor.id,
        Order.created_at >= start_dt,
        Order.created_at <= end_dt,
    )
    if payment_status and payment_status != "All":
        query = query.filter(Order.payment_status == payment_status)
    return query.order_by(Order.created_at.desc(), Order.id.desc()).all()


def pending_edit_count(actor: User) -> int:
    return (
        db.session.query(Order)
        .filter(Order.agent_id == actor.id, Order.edit_request_pending.is_(True))
        .count()
    )
