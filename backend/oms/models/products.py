from __future__ import annotations

from ..extensions import db
from oms.time_utils import to_utc_z


PRODUCT_UNITS = ("g", "ml", "capsules")


class Product(db.Model):
    """
    Product catalog entry.

    SOFT DELETE: is_active=False hides the product from catalog listings.
    Historical orders keep referencing it and carry their own name snapshot.

    NATURAL KEY: name is used to deduplicate products during bulk import.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_name", "name"),
        db.Index("ix_products_active", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    # Authoritative storage in cents (frontend may only format for display)
    price_cents = db.Column(db.Integer, nullable=False)

    weight = db.Column(db.Integer, nullable=False, default=0)
    unit = db.Column(db.String(16), nullable=False, default="g")

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price_cents": self.price_cents,
            "weight": self.weight,
            "unit": self.unit,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
