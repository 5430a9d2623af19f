# Overview: Pure pricing rules for orders; totals, delivery charge, and final amount.

"""
Order Pricing

WHY: Manual order entry, order updates, and bulk imports must all price an
order the same way. Everything here is a pure function of its inputs: no
database access, no clock, no app state (the policy is passed in).

DELIVERY CHARGE RULES (first match wins):
1. An explicit override (including 0) is used as-is
2. Any item whose name contains the free-delivery keyword -> 0
3. Total below the threshold -> flat fee
   (recompute mode additionally requires total > 0)
4. Otherwise -> 0

All amounts are integer cents.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Protocol


class PricedLine(Protocol):
    unit_price_cents: int
    quantity: int
    product_name: str | None


@dataclass(frozen=True)
class LineInput:
    """Minimal line shape accepted by the calculator."""
    unit_price_cents: int
    quantity: int
    product_name: str | None = None


@dataclass(frozen=True)
class PricingPolicy:
    free_delivery_keyword: str = "moist curl"
    delivery_fee_cents: int = 35_000
    free_delivery_threshold_cents: int = 250_000

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "PricingPolicy":
        default = cls()
        return cls(
            free_delivery_keyword=str(config.get("FREE_DELIVERY_KEYWORD", default.free_delivery_keyword)),
            delivery_fee_cents=int(config.get("DELIVERY_FEE_CENTS", default.delivery_fee_cents)),
            free_delivery_threshold_cents=int(
                config.get("FREE_DELIVERY_THRESHOLD_CENTS", default.free_delivery_threshold_cents)
            ),
        )


@dataclass(frozen=True)
class PricingResult:
    total_amount_cents: int
    discount_amount_cents: int
    delivery_charge_cents: int
    final_amount_cents: int

    def to_dict(self) -> dict:
        return {
            "total_amount_cents": self.total_amount_cents,
            "discount_amount_cents": self.discount_amount_cents,
            "delivery_charge_cents": self.delivery_charge_cents,
            "final_amount_cents": self.final_amount_cents,
        }


def line_total_cents(line: PricedLine) -> int:
    return int(line.unit_price_cents) * int(line.quantity)


def items_total_cents(lines: Iterable[PricedLine]) -> int:
    return sum(line_total_cents(line) for line in lines)


def has_free_delivery_item(lines: Iterable[PricedLine], keyword: str) -> bool:
    needle = keyword.lower()
    if not needle:
        return False
    return any(
        line.product_name and needle in line.product_name.lower()
        for line in lines
    )


def compute_delivery_charge(
    total_cents: int,
    lines: Iterable[PricedLine],
    policy: PricingPolicy,
    *,
    override_cents: int | None = None,
    recompute: bool = False,
) -> int:
    if override_cents is not None:
        return int(override_cents)

    if has_free_delivery_item(lines, policy.free_delivery_keyword):
        return 0

    if total_cents < policy.free_delivery_threshold_cents:
        # Updates never charge delivery on an empty (zero) total.
        if recompute and total_cents <= 0:
            return 0
        return policy.delivery_fee_cents

    return 0


def price_order(
    lines: Iterable[PricedLine],
    *,
    policy: PricingPolicy,
    discount_amount_cents: int = 0,
    delivery_charge_override_cents: int | None = None,
    total_override_cents: int | None = None,
    recompute: bool = False,
) -> PricingResult:
    """
    Price a set of lines.

    total_override_cents replaces the computed item sum only when positive
    (imports carry a source-of-truth subtotal). The final amount is not
    clamped; callers reject negative discounts before getting here.
    """
    lines = list(lines)
    total = items_total_cents(lines)
    if total_override_cents is not None and total_override_cents > 0:
        total = int(total_override_cents)

    discount = int(discount_amount_cents or 0)
    delivery = compute_delivery_charge(
        total,
        lines,
        policy,
        override_cents=delivery_charge_override_cents,
        recompute=recompute,
    )

    return PricingResult(
        total_amount_cents=total,
        discount_amount_cents=discount,
        delivery_charge_cents=delivery,
        final_amount_cents=total - discount + delivery,
    )


def current_policy() -> PricingPolicy:
    """Policy from the active Flask app config."""
    from flask import current_app

    return PricingPolicy.from_config(current_app.config)
