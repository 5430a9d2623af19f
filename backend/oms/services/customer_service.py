# Overview: Service-layer operations for customers; encapsulates business logic and database work.

"""
Customer Service

NATURAL KEY: phone. Manual creation rejects a duplicate phone with a
ConflictError; imports use find_or_create_by_phone instead.

Deletion is destructive and requires a Super Admin who re-confirms their
own password. A customer still referenced by orders cannot be removed.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..errors import ConflictError, NotFoundError
from ..models import Customer, Order, User, customer_order_history
from ..permissions import require_super_admin
from ..validation import ModelValidationPolicy, validate_payload
from .auth_service import confirm_password


CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "phone", "phone2", "address", "city", "country", "email"},
    required_on_create={"name", "phone", "address"},
)


def _phone_taken(phone: str, exclude_id: int | None = None) -> bool:
    query = db.session.query(Customer.id).filter(Customer.phone == phone)
    if exclude_id is not None:
        query = query.filter(Customer.id != exclude_id)
    return query.first() is not None


def get_customer(customer_id: int) -> Customer:
    customer = db.session.get(Customer, customer_id)
    if not customer:
        raise NotFoundError("Customer not found")
    return customer


def list_customers() -> list[Customer]:
    return db.session.query(Customer).order_by(Customer.name.asc(), Customer.id.asc()).all()


def get_customer_by_phone(phone: str) -> Customer:
    customer = db.session.query(Customer).filter_by(phone=phone).first()
    if not customer:
        raise NotFoundError("Customer not found")
    return customer


def create_customer(payload: dict) -> Customer:
    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)

    if _phone_taken(patch["phone"]):
        raise ConflictError("Customer with this phone already exists")

    patch.setdefault("country", current_app.config.get("DEFAULT_COUNTRY", "Sri Lanka"))
    customer = Customer(**patch)
    db.session.add(customer)
    db.session.commit()
    return customer


def update_customer(customer_id: int, payload: dict) -> Customer:
    customer = get_customer(customer_id)
    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=True)

    phone = patch.get("phone")
    if phone and phone != customer.phone and _phone_taken(phone, exclude_id=customer.id):
        raise ConflictError("Another customer already has this phone number")

    for key, value in patch.items():
        setattr(customer, key, value)

    db.session.commit()
    return customer


def find_or_create_by_phone(
    *,
    phone: str,
    name: str,
    phone2: str | None = None,
    address: str | None = None,
    city: str | None = None,
    country: str | None = None,
    email: str | None = None,
) -> tuple[Customer, bool]:
    """
    Resolve a customer by phone, creating one from the best available data.

    Returns (customer, created). The lookup-then-insert is not atomic; two
    concurrent callers may race, in which case the unique phone constraint
    rejects the loser's insert.
    """
    customer = db.session.query(Customer).filter_by(phone=phone).first()
    if customer:
        return customer, False

    customer = Customer(
        name=name,
        phone=phone,
        phone2=phone2,
        address=address or "N/A",
        city=city,
        country=country or current_app.config.get("DEFAULT_COUNTRY", "Sri Lanka"),
        email=email,
    )
    db.session.add(customer)
    db.session.commit()
    return customer, True


def _has_orders(customer_id: int) -> bool:
    return db.session.query(Order.id).filter(Order.customer_id == customer_id).first() is not None


def delete_customer(customer_id: int, password: str | None, actor: User) -> None:
    customer = get_customer(customer_id)
    require_super_admin(actor, "Not authorized. Only Super Admin can delete customers.")
    confirm_password(actor.id, password)

    if _has_orders(customer.id):
        raise ConflictError("Customer has orders and cannot be deleted")

    db.session.delete(customer)
    db.session.commit()


def bulk_delete_customers(password: str | None, actor: User) -> dict:
    """
    Delete every customer that no order references.

    Customers with orders are kept and counted as skipped.
    """
    require_super_admin(actor, "Not authorized. Only Super Admin can perform bulk deletion.")
    confirm_password(actor.id, password, action="Bulk deletion")

    referenced = db.select(Order.customer_id).distinct()
    removable_ids = [
        row.id
        for row in db.session.query(Customer.id).filter(~Customer.id.in_(referenced)).all()
    ]
    skipped = db.session.query(Customer).count() - len(removable_ids)

    if removable_ids:
        db.session.execute(
            customer_order_history.delete().where(customer_order_history.c.customer_id.in_(removable_ids))
        )
        db.session.query(Customer).filter(Customer.id.in_(removable_ids)).delete(synchronize_session=False)
    db.session.commit()

    return {"deleted": len(removable_ids), "skipped": skipped}
