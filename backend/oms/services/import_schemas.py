from __future__ import annotations

import math
from typing import Any


def _to_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    text = str(value).strip()
    if not text:
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    # "inf", "1e400" and "nan" parse as floats but have no integer value.
    return int(number) if math.isfinite(number) else None


def _to_cents(value: Any) -> int | None:
    """Rupee amount ("1,250.50", "Rs. 900", 350) to integer cents."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value * 100
    text = str(value).strip().replace("Rs.", "").replace("LKR", "").replace(",", "").strip()
    if not text:
        return None
    try:
        cents = float(text) * 100
    except ValueError:
        return None
    return int(round(cents)) if math.isfinite(cents) else None


def _to_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


class BaseImportSchema:
    def normalize_row(self, raw_row: dict[str, Any]) -> dict[str, Any]:
        raise NotImplementedError

    def validate_group(self, header: dict[str, Any]) -> list[str]:
        raise NotImplementedError


class WebOrderRowSchema(BaseImportSchema):
    """
    One row of the e-commerce order export.

    Multi-line orders repeat the order-level columns on every row; only the
    first row of a group supplies them.
    """

    ORDER_ID = "Order Name"
    CUSTOMER_NAME = "Customer Name (Shipping)"
    PHONE = "Shipping Address Phone"
    PHONE2 = "Billing Phone"
    ADDRESS = "Shipping Address 1"
    CITY = "Shipping City"
    COUNTRY = "Shipping Country"
    EMAIL = "Email"
    CREATED_AT = "Order Created Date"
    PAYMENT = "Payment Gateway Names"
    SUBTOTAL = "Sum of Total Line Item Price (Total Net)"
    PRODUCT_NAME = "Line Item Name (Product Title + Options)"
    PRICE = "Product Price (Line Item Price)"
    QUANTITY = "Fulfillable Quantity"

    def normalize_row(self, raw_row: dict[str, Any]) -> dict[str, Any]:
        quantity = _to_int(raw_row.get(self.QUANTITY))
        return {
            "order_id": _to_text(raw_row.get(self.ORDER_ID)),
            "customer_name": _to_text(raw_row.get(self.CUSTOMER_NAME)),
            "phone": _to_text(raw_row.get(self.PHONE)),
            "phone2": _to_text(raw_row.get(self.PHONE2)),
            "address": _to_text(raw_row.get(self.ADDRESS)),
            "city": _to_text(raw_row.get(self.CITY)),
            "country": _to_text(raw_row.get(self.COUNTRY)),
            "email": _to_text(raw_row.get(self.EMAIL)),
            "created_at_raw": _to_text(raw_row.get(self.CREATED_AT)),
            "payment_raw": _to_text(raw_row.get(self.PAYMENT)),
            "subtotal_cents": _to_cents(raw_row.get(self.SUBTOTAL)),
            "product_name": _to_text(raw_row.get(self.PRODUCT_NAME)),
            "unit_price_cents": _to_cents(raw_row.get(self.PRICE)) or 0,
            # Missing, zero, or unparseable quantities count as one unit.
            "quantity": quantity if quantity and quantity > 0 else 1,
        }

    def validate_group(self, header: dict[str, Any]) -> list[str]:
        errors: list[str] = []
        if not header.get("customer_name") or not header.get("phone"):
            errors.append("Missing customer Name or Phone")
        return errors
