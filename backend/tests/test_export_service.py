from datetime import timedelta

import pytest

from oms.errors import ForbiddenError, InvalidInputError
from oms.models import Order, ReportLog
from oms.services import export_service, order_service
from oms.time_utils import utcnow


def _order(customer, product, actor, **kwargs):
    return order_service.create_order(
        customer.id, [{"product_id": product.id, "quantity": 1}], actor, **kwargs
    )


def _range():
    return (
        (utcnow() - timedelta(days=1)).isoformat(),
        (utcnow() + timedelta(days=1)).isoformat(),
    )


class TestExportOrders:

    def test_dispatch_marks_orders(self, db_session, admin, agent, customer, product):
        first = _order(customer, product, agent)
        second = _order(customer, product, agent)

        start, end = _range()
        orders = export_service.export_orders(start, end, admin)
        assert [o.id for o in orders] == [second.id, first.id]

        db_session.expire_all()
        for order in db_session.query(Order).all():
            assert order.is_downloaded is True
            assert order.status == "Dispatched"

        log = db_session.query(ReportLog).one()
        assert log.is_dispatch is True
        assert log.order_count == 2
        assert log.payment_status == "All"
        assert log.agent_id is None
        assert log.generated_by_user_id == admin.id

    def test_agent_filtered_export_is_read_only(self, db_session, admin, agent, customer, product):
        _order(customer, product, agent)
        _order(customer, product, admin)

        start, end = _range()
        orders = export_service.export_orders(start, end, admin, agent_id=agent.id)
        assert [o.agent_id for o in orders] == [agent.id]

        db_session.expire_all()
        assert all(not o.is_downloaded for o in db_session.query(Order).all())
        log = db_session.query(ReportLog).one()
        assert log.is_dispatch is False
        assert log.agent_id == agent.id

    def test_payment_filter(self, db_session, admin, agent, customer, product):
        paid = _order(customer, product, agent, payment_status="Paid")
        _order(customer, product, agent)

        start, end = _range()
        orders = export_service.export_orders(start, end, admin, payment_status="Paid", agent_id="All")
        assert [o.id for o in orders] == [paid.id]

    def test_empty_range_still_logged(self, db_session, admin):
        start, end = _range()
        assert export_service.export_orders(start, end, admin) == []
        assert db_session.query(ReportLog).one().order_count == 0

    def test_agent_forbidden(self, db_session, agent):
        start, end = _range()
        with pytest.raises(ForbiddenError):
            export_service.export_orders(start, end, agent)

    def test_range_required(self, db_session, admin):
        with pytest.raises(InvalidInputError):
            export_service.export_orders(None, "2026-01-01", admin)

    def test_unknown_payment_filter(self, db_session, admin):
        start, end = _range()
        with pytest.raises(InvalidInputError):
            export_service.export_orders(start, end, admin, payment_status="Crypto")


def test_export_history_newest_first(db_session, admin, super_admin):
    start, end = _range()
    export_service.export_orders(start, end, admin)
    export_service.export_orders(start, end, super_admin)

    history = export_service.export_history()
    assert [log.generated_by_user_id for log in history] == [super_admin.id, admin.id]
