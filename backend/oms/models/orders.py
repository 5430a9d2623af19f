from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ..extensions import db
from oms.time_utils import to_utc_z


ORDER_STATUSES = ("Pending", "Dispatched", "Returned")
PAYMENT_STATUSES = ("COD", "Paid", "Export")


@dataclass(frozen=True)
class EditRequest:
    """At most one outstanding edit request, embedded in the order row."""
    pending: bool = False
    message: str | None = None
    from_user_id: int | None = None
    created_at: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "pending": self.pending,
            "message": self.message,
            "from_user_id": self.from_user_id,
            "created_at": to_utc_z(self.created_at) if self.created_at else None,
        }


class Order(db.Model):
    """
    Order aggregate.

    WHY: One row carries the priced totals, the remark annotation, and the
    pending edit request, so a single write keeps them consistent. Items and
    the edit audit trail are child rows owned by the order.

    INVARIANT: final_amount_cents == total_amount_cents - discount_amount_cents
    + delivery_charge_cents. It is always recomputed by the pricing service,
    never set independently.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_created_at", "created_at"),
        db.Index("ix_orders_agent_created", "agent_id", "created_at"),
        db.Index("ix_orders_agent_edit_pending", "agent_id", "edit_request_pending"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    agent_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    # Totals (all amounts in cents)
    total_amount_cents = db.Column(db.Integer, nullable=False)
    discount_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    delivery_charge_cents = db.Column(db.Integer, nullable=False, default=0)
    final_amount_cents = db.Column(db.Integer, nullable=False)

    remark = db.Column(db.Text, nullable=True)
    additional_remark = db.Column(db.Text, nullable=True)

    status = db.Column(db.String(16), nullable=False, default="Pending", index=True)
    payment_status = db.Column(db.String(16), nullable=False, default="COD", index=True)

    is_downloaded = db.Column(db.Boolean, nullable=False, default=False)

    # Embedded edit request (see EditRequest)
    edit_request_pending = db.Column(db.Boolean, nullable=False, default=False)
    edit_request_message = db.Column(db.Text, nullable=True)
    edit_request_from_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    edit_request_created_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    customer = db.relationship("Customer", foreign_keys=[customer_id])
    agent = db.relationship("User", foreign_keys=[agent_id])
    edit_request_from = db.relationship("User", foreign_keys=[edit_request_from_user_id])
    items = db.relationship(
        "OrderItem",
        back_populates="order",
        order_by="OrderItem.position",
        cascade="all, delete-orphan",
        lazy="select",
    )
    edits = db.relationship(
        "OrderEdit",
        back_populates="order",
        order_by="OrderEdit.id",
        cascade="all, delete-orphan",
        lazy="select",
    )

    @property
    def edit_request(self) -> EditRequest:
        return EditRequest(
            pending=bool(self.edit_request_pending),
            message=self.edit_request_message,
            from_user_id=self.edit_request_from_user_id,
            created_at=self.edit_request_created_at,
        )

    @edit_request.setter
    def edit_request(self, value: EditRequest) -> None:
        self.edit_request_pending = value.pending
        self.edit_request_message = value.message
        self.edit_request_from_user_id = value.from_user_id
        self.edit_request_created_at = value.created_at

    def __repr__(self) -> str:
        return f"<Order id={self.id} customer_id={self.customer_id} final={self.final_amount_cents}>"

    def to_dict(self) -> dict:
        edit_request = self.edit_request.to_dict()
        edit_request["from_name"] = self.edit_request_from.name if self.edit_request_from else None
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "customer": {
                "id": self.customer.id,
                "name": self.customer.name,
                "phone": self.customer.phone,
                "phone2": self.customer.phone2,
                "address": self.customer.address,
                "city": self.customer.city,
                "country": self.customer.country,
                "email": self.customer.email,
            } if self.customer else None,
            "agent_id": self.agent_id,
            "agent_name": self.agent.name if self.agent else None,
            "items": [item.to_dict() for item in self.items],
            "total_amount_cents": self.total_amount_cents,
            "discount_amount_cents": self.discount_amount_cents,
            "delivery_charge_cents": self.delivery_charge_cents,
            "final_amount_cents": self.final_amount_cents,
            "remark": self.remark,
            "additional_remark": self.additional_remark,
            "status": self.status,
            "payment_status": self.payment_status,
            "is_downloaded": self.is_downloaded,
            "edit_request": edit_request,
            "edited_by": [edit.to_dict() for edit in self.edits],
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class OrderItem(db.Model):
    """Line item with a product-name snapshot taken at order time."""
    __tablename__ = "order_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    order = db.relationship("Order", back_populates="items")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
        }


class OrderEdit(db.Model):
    """
    Append-only edit audit entry (one per modifying update).

    IMMUTABLE: Records are never updated; they go away only with their order.
    """
    __tablename__ = "order_edits"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    edited_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    order = db.relationship("Order", back_populates="edits")
    user = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "user_name": self.user.name if self.user else None,
            "at": to_utc_z(self.edited_at),
        }
