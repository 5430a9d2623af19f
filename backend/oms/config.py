# backend/oms/config.py
from __future__ import annotations
import os


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/oms.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///oms.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Delivery pricing (amounts in cents)
    FREE_DELIVERY_KEYWORD = os.environ.get("FREE_DELIVERY_KEYWORD", "moist curl")
    DELIVERY_FEE_CENTS = _env_int("DELIVERY_FEE_CENTS", 35_000)
    FREE_DELIVERY_THRESHOLD_CENTS = _env_int("FREE_DELIVERY_THRESHOLD_CENTS", 250_000)

    # Synthetic agent that owns imported web orders
    WEB_ORDERS_AGENT_NAME = os.environ.get("WEB_ORDERS_AGENT_NAME", "Web Orders")
    WEB_ORDERS_AGENT_EMAIL = os.environ.get("WEB_ORDERS_AGENT_EMAIL", "weborders@oms.local")
    WEB_ORDERS_AGENT_PASSWORD = os.environ.get("WEB_ORDERS_AGENT_PASSWORD", "WebOrders123!")

    DEFAULT_COUNTRY = os.environ.get("DEFAULT_COUNTRY", "Sri Lanka")

    # Payment gateway text containing any of these marks an imported order as Paid
    PAID_PAYMENT_KEYWORDS = ("paid", "card", "visa", "payhere")
