from __future__ import annotations

from ..extensions import db
from oms.time_utils import to_utc_z


# Ordered order-history links; the autoincrement id preserves append order.
customer_order_history = db.Table(
    "customer_order_history",
    db.Column("id", db.Integer, primary_key=True, autoincrement=True),
    db.Column("customer_id", db.Integer, db.ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True),
    db.Column("order_id", db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True),
    sqlite_autoincrement=True,
)


class Customer(db.Model):
    """
    Customer master data.

    NATURAL KEY: phone is unique. Imports and manual entry both resolve
    customers by phone before creating new ones.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.UniqueConstraint("phone", name="uq_customers_phone"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=False)
    phone2 = db.Column(db.String(32), nullable=True)
    address = db.Column(db.String(512), nullable=False)
    city = db.Column(db.String(128), nullable=True)
    country = db.Column(db.String(128), nullable=True, default="Sri Lanka")
    email = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    order_history = db.relationship(
        "Order",
        secondary=customer_order_history,
        order_by=customer_order_history.c.id,
        lazy="select",
        backref=db.backref("history_customers", lazy=True),
    )

    def __repr__(self) -> str:
        return f"<Customer id={self.id} phone={self.phone!r}>"

    def to_dict(self, include_history: bool = False) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "phone2": self.phone2,
            "address": self.address,
            "city": self.city,
            "country": self.country,
            "email": self.email,
            "order_history": [o.id for o in self.order_history],
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_history:
            data["orders"] = [
                o.to_dict()
                for o in sorted(self.order_history, key=lambda o: (o.created_at, o.id), reverse=True)
            ]
        return data
