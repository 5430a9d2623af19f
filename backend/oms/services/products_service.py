# backend/oms/services/products_service.py
"""
Products Service

Catalog maintenance is Super Admin only. Deletion is soft (is_active=False)
because historical order items reference products by id.

find_or_create_by_name() is the import-side entry point: products are
deduplicated by exact name.
"""
from __future__ import annotations

from ..extensions import db
from ..errors import NotFoundError
from ..models import Product, User
from ..permissions import require_super_admin
from ..validation import ModelValidationPolicy, enforce_rules_product, validate_payload

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "price_cents", "weight", "unit", "is_active"},
    required_on_create={"name", "price_cents"},
)


def list_products(include_inactive: bool = False) -> list[Product]:
    query = db.session.query(Product)
    if not include_inactive:
        query = query.filter(Product.is_active.is_(True))
    return query.order_by(Product.name.asc(), Product.id.asc()).all()


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if not product:
        raise NotFoundError("Product not found")
    return product


def create_product(payload: dict, actor: User) -> Product:
    require_super_admin(actor, "Not authorized. Only Super Admin can create products.")
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    enforce_rules_product(patch)

    product = Product(**patch)
    db.session.add(product)
    db.session.commit()
    return product


def update_product(product_id: int, payload: dict, actor: User) -> Product:
    product = get_product(product_id)
    require_super_admin(actor, "Not authorized. Only Super Admin can update products.")
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
    enforce_rules_product(patch)

    for key, value in patch.items():
        setattr(product, key, value)

    db.session.commit()
    return product


def deactivate_product(product_id: int, actor: User) -> Product:
    """Soft delete."""
    product = get_product(product_id)
    require_super_admin(actor, "Not authorized. Only Super Admin can delete products.")
    product.is_active = False
    db.session.commit()
    return product


def find_or_create_by_name(
    name: str,
    *,
    price_cents: int = 0,
    description: str | None = "Imported",
) -> tuple[Product, bool]:
    """
    Resolve a product by exact name, creating an active one if absent.

    Returns (product, created). An existing product keeps its price; the
    caller decides which price the order line uses.
    """
    product = db.session.query(Product).filter_by(name=name).order_by(Product.id.asc()).first()
    if product:
        return product, False

    product = Product(
        name=name,
        price_cents=max(int(price_cents or 0), 0),
        weight=0,
        unit="g",
        description=description,
        is_active=True,
    )
    db.session.add(product)
    db.session.commit()
    return product, True
