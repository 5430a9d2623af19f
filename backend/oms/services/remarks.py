# Overview: Discount annotation for order remarks.

"""
Remark annotation.

Orders with a discount carry a machine-written fragment in their remark:

    "VIP | Discount Applied: Rs. 200"

annotate_remark() is idempotent: any existing fragment is stripped before
the current one is appended, so repeated updates never stack fragments.
A zero discount strips the fragment and adds nothing.
"""

from __future__ import annotations

import re


SEPARATOR = " | "
DISCOUNT_PREFIX = "Discount Applied: Rs."

_DISCOUNT_FRAGMENT = re.compile(r"Discount Applied: Rs\. ?\d+(?:\.\d+)?")
# The fragment plus the separator that joined it to the preceding text.
_FRAGMENT_WITH_SEPARATOR = re.compile(r"\s*\|?\s*" + _DISCOUNT_FRAGMENT.pattern)
_LEADING_SEPARATOR = re.compile(r"^\s*\|\s*")


def format_rupees(amount_cents: int) -> str:
    """20000 -> "200", 20050 -> "200.5", 20005 -> "200.05"."""
    whole, fraction = divmod(int(amount_cents), 100)
    if not fraction:
        return str(whole)
    return f"{whole}.{fraction:02d}".rstrip("0")


def discount_fragment(discount_amount_cents: int) -> str:
    return f"{DISCOUNT_PREFIX} {format_rupees(discount_amount_cents)}"


def strip_discount(remark: str | None) -> str:
    """Remove discount fragments; any other text is returned unchanged."""
    if not remark:
        return ""
    if not _DISCOUNT_FRAGMENT.search(remark):
        return remark

    leading = _DISCOUNT_FRAGMENT.match(remark.lstrip()) is not None
    cleaned = _FRAGMENT_WITH_SEPARATOR.sub("", remark)
    if leading:
        # A leading fragment had no separator before it, only after.
        cleaned = _LEADING_SEPARATOR.sub("", cleaned)
    return cleaned.strip()


def annotate_remark(remark: str | None, discount_amount_cents: int | None) -> str:
    base = strip_discount(remark)
    if not discount_amount_cents or discount_amount_cents <= 0:
        return base

    fragment = discount_fragment(discount_amount_cents)
    if base:
        return f"{base}{SEPARATOR}{fragment}"
    return fragment
