# Overview: Read-side aggregation for the dashboard and the agent x product matrix.

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func

from oms.extensions import db
from oms.models import Customer, Order, OrderItem, User
from oms.time_utils import local_day_bounds_utc


UNKNOWN_AGENT = "Unknown"


def dashboard_stats(now: datetime | None = None) -> dict:
    """
    Headline counters. "Today" starts at local midnight.

    An empty store yields zeros everywhere.
    """
    start_of_day, _ = local_day_bounds_utc(now)

    total_orders = db.session.query(func.count(Order.id)).scalar() or 0
    total_revenue = db.session.query(
        func.coalesce(func.sum(Order.final_amount_cents), 0)
    ).scalar()
    todays_revenue = (
        db.session.query(func.coalesce(func.sum(Order.final_amount_cents), 0))
        .filter(Order.created_at >= start_of_day)
        .scalar()
    )
    total_customers = db.session.query(func.count(Customer.id)).scalar() or 0

    return {
        "total_orders": int(total_orders),
        "total_revenue_cents": int(total_revenue or 0),
        "todays_revenue_cents": int(todays_revenue or 0),
        "total_customers": int(total_customers),
    }


def order_matrix(now: datetime | None = None) -> dict:
    """
    Today's orders counted per (agent name, product name).

    A cell counts distinct orders containing the product, so an order that
    lists the same product twice counts once.
    """
    start_of_day, end_of_day = local_day_bounds_utc(now)

    rows = (
        db.session.query(
            Order.agent_id.label("agent_id"),
            User.name.label("agent_name"),
            OrderItem.product_name.label("product_name"),
            func.count(func.distinct(Order.id)).label("order_count"),
        )
        .join(OrderItem, OrderItem.order_id == Order.id)
        .outerjoin(User, User.id == Order.agent_id)
        .filter(Order.created_at >= start_of_day, Order.created_at <= end_of_day)
        .group_by(Order.agent_id, User.name, OrderItem.product_name)
        .all()
    )

    agents: set[str] = set()
    products: set[str] = set()
    data: dict[str, dict[str, int]] = {}

    for row in rows:
        agent_name = row.agent_name or UNKNOWN_AGENT
        agents.add(agent_name)
        products.add(row.product_name)
        cells = data.setdefault(agent_name, {})
        # Agents sharing a display name are merged into one row.
        cells[row.product_name] = cells.get(row.product_name, 0) + int(row.order_count)

    return {
        "agents": sorted(agents),
        "products": sorted(products),
        "data": data,
    }
