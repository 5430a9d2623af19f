# Overview: Payload validation for catalog writes and strict integer coercion for money/quantity fields.

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text

from .errors import InvalidInputError


# Rs. 9,999,999.99
MAX_PRICE_CENTS = 999_999_999


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Which columns a client may write, and which must be present on create.

    writable_fields is the allowlist; anything else in a payload is rejected.
    """
    writable_fields: set[str]
    required_on_create: set[str] = field(default_factory=set)


def coerce_int(value: Any, field_name: str, *, minimum: int | None = None) -> int:
    """
    Strict integer coercion for cents, quantities, and ids.

    Accepts ints and plain digit strings. Rejects bools, floats, "12.5",
    and "1e3" so a rupee amount can never be mistaken for cents.
    """
    if isinstance(value, bool) or value is None:
        raise InvalidInputError(f"{field_name} must be an integer")

    if isinstance(value, int):
        result = value
    elif isinstance(value, float):
        raise InvalidInputError(f"{field_name} must be an integer, not a decimal")
    elif isinstance(value, str):
        text = value.strip()
        if "." in text:
            raise InvalidInputError(f"{field_name} must be an integer (no decimals)")
        if "e" in text.lower():
            raise InvalidInputError(f"{field_name} must be a plain integer")
        try:
            result = int(text)
        except ValueError:
            raise InvalidInputError(f"{field_name} must be an integer") from None
    else:
        raise InvalidInputError(f"{field_name} must be an integer")

    if minimum is not None and result < minimum:
        raise InvalidInputError(f"{field_name} must be >= {minimum}")
    return result


def _clean(column, value: Any):
    if isinstance(column.type, Boolean):
        if not isinstance(value, bool):
            raise InvalidInputError(f"{column.key} must be true or false")
        return value

    if isinstance(column.type, Integer):
        return coerce_int(value, column.key)

    if isinstance(column.type, (String, Text)):
        text = str(value).strip()
        if text == "" and not column.nullable:
            raise InvalidInputError(f"{column.key} cannot be blank")
        length = getattr(column.type, "length", None)
        if length and len(text) > length:
            raise InvalidInputError(f"{column.key} exceeds max length {length}")
        return text

    return value


def validate_payload(*, model, payload: dict, policy: ModelValidationPolicy, partial: bool) -> dict:
    """
    Validate a JSON payload against a model's columns and a write policy.

    partial=False is create semantics (required fields enforced);
    partial=True validates only the keys present. Returns the cleaned patch.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise InvalidInputError("Invalid JSON payload")

    if not partial:
        missing = sorted(f for f in policy.required_on_create if payload.get(f) in (None, ""))
        if missing:
            raise InvalidInputError(f"Missing required fields: {', '.join(missing)}")

    columns = {c.key: c for c in model.__mapper__.columns}
    patch: dict = {}

    for key, raw in payload.items():
        if key not in policy.writable_fields or key not in columns:
            raise InvalidInputError(f"Field not allowed: {key}")

        column = columns[key]
        if raw is None:
            if not column.nullable:
                raise InvalidInputError(f"{key} cannot be null")
            patch[key] = None
            continue

        patch[key] = _clean(column, raw)

    return patch


def enforce_rules_product(patch: dict) -> None:
    """Price, weight, and unit rules that column metadata cannot express."""
    from .models.products import PRODUCT_UNITS

    price = patch.get("price_cents")
    if price is not None:
        if price < 0:
            raise InvalidInputError("price_cents must be >= 0")
        if price > MAX_PRICE_CENTS:
            raise InvalidInputError(f"price_cents cannot exceed {MAX_PRICE_CENTS}")

    weight = patch.get("weight")
    if weight is not None and weight < 0:
        raise InvalidInputError("weight must be >= 0")

    if "unit" in patch and patch["unit"] not in PRODUCT_UNITS:
        raise InvalidInputError(f"unit must be one of: {', '.join(PRODUCT_UNITS)}")
