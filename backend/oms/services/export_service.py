# Overview: Admin export of order ranges, dispatch marking, and the export audit log.

"""
Export / Dispatch Service

An export without an agent filter is a dispatch: every matched order is
marked downloaded and moves to Dispatched. An export filtered to one agent
is a read-only report. Either way one ReportLog row is appended.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..errors import InvalidInputError
from ..models import Order, ReportLog, User
from ..models.orders import PAYMENT_STATUSES
from ..permissions import require_elevated
from ..validation import coerce_int
from oms.time_utils import parse_range_bounds
from .concurrency import run_with_retry

ALL = "All"


def export_orders(
    start,
    end,
    actor: User,
    payment_status: str | None = None,
    agent_id=None,
) -> list[Order]:
    """
    Return orders created in [start, end], newest first.

    Raises:
        ForbiddenError: actor is not Admin/Super Admin
        InvalidInputError: missing/invalid range or filter
    """
    require_elevated(actor, "Not authorized. Only Admins can export (dispatch) orders.")
    if not start or not end:
        raise InvalidInputError("Please provide start and end dates")
    try:
        start_dt, end_dt = parse_range_bounds(start, end)
    except ValueError:
        raise InvalidInputError("start and end must be ISO-8601 dates")

    payment_filter = payment_status or ALL
    if payment_filter != ALL and payment_filter not in PAYMENT_STATUSES:
        raise InvalidInputError(f"payment_status must be one of: All, {', '.join(PAYMENT_STATUSES)}")

    agent_filter = None
    if agent_id not in (None, "", ALL):
        agent_filter = coerce_int(agent_id, "agent_id")
    is_dispatch = agent_filter is None

    def _op():
        query = db.session.query(Order).filter(
            Order.created_at >= start_dt,
            Order.created_at <= end_dt,
        )
        if payment_filter != ALL:
            query = query.filter(Order.payment_status == payment_filter)
        if agent_filter is not None:
            query = query.filter(Order.agent_id == agent_filter)

        orders = query.order_by(Order.created_at.desc(), Order.id.desc()).all()

        if is_dispatch:
            for order in orders:
                order.is_downloaded = True
                order.status = "Dispatched"

        db.session.add(ReportLog(
            generated_by_user_id=actor.id,
            start_date=start_dt,
            end_date=end_dt,
            order_count=len(orders),
            status="Success",
            payment_status=payment_filter,
            agent_id=agent_filter,
            is_dispatch=is_dispatch,
        ))
        db.session.commit()
        return orders

    orders = run_with_retry(_op)

    if is_dispatch:
        current_app.logger.info("Export & dispatch: marked %s orders as dispatched", len(orders))
    else:
        current_app.logger.info(
            "Export report: %s orders for agent %s, records not modified", len(orders), agent_filter
        )
    return orders


def export_history() -> list[ReportLog]:
    return (
        db.session.query(ReportLog)
        .order_by(ReportLog.generated_at.desc(), ReportLog.id.desc())
        .all()
    )
