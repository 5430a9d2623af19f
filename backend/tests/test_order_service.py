"""
Order service tests.

Verifies:
- Creation prices orders and annotates the remark
- Updates re-price only when pricing inputs change
- Every update clears the edit request and appends one edit entry
- Ownership and role rules (403) and password confirmation (400/401)
"""

from datetime import timedelta

import pytest

from oms.errors import AuthFailedError, ForbiddenError, InvalidInputError, NotFoundError
from oms.models import Customer, Order, OrderEdit, OrderItem
from oms.services import order_service
from oms.time_utils import utcnow
from conftest import PASSWORD


def _items(product, quantity=1, **extra):
    return [dict(product_id=product.id, quantity=quantity, **extra)]


# =============================================================================
# CREATE
# =============================================================================


class TestCreateOrder:

    def test_create_above_threshold(self, db_session, agent, customer, make_product):
        product = make_product("Gold Serum", 100_000)
        order = order_service.create_order(customer.id, _items(product, 3), agent)

        assert order.total_amount_cents == 300_000
        assert order.delivery_charge_cents == 0
        assert order.final_amount_cents == 300_000
        assert order.status == "Pending"
        assert order.payment_status == "COD"
        assert order.agent_id == agent.id
        assert order.edits == []
        assert order.edit_request.pending is False

    def test_create_below_threshold_adds_delivery(self, db_session, agent, customer, product):
        order = order_service.create_order(customer.id, _items(product, 2), agent)
        assert order.total_amount_cents == 100_000
        assert order.delivery_charge_cents == 35_000
        assert order.final_amount_cents == 135_000

    def test_free_delivery_keyword_item(self, db_session, agent, customer, make_product):
        product = make_product("Moist Curl Cream", 10_000)
        order = order_service.create_order(customer.id, _items(product), agent)
        assert order.delivery_charge_cents == 0
        assert order.final_amount_cents == 10_000

    def test_snapshot_and_unit_price_default(self, db_session, agent, customer, product):
        order = order_service.create_order(customer.id, _items(product, 2), agent)
        item = order.items[0]
        assert item.product_name == product.name
        assert item.unit_price_cents == product.price_cents
        assert item.line_total_cents == product.price_cents * 2

    def test_explicit_unit_price_and_name(self, db_session, agent, customer, product):
        items = _items(product, 1, unit_price_cents=75_000, product_name="Oil (Gift)")
        order = order_service.create_order(customer.id, items, agent)
        assert order.items[0].product_name == "Oil (Gift)"
        assert order.total_amount_cents == 75_000

    def test_discount_annotates_remark(self, db_session, agent, customer, product):
        order = order_service.create_order(
            customer.id, _items(product), agent, discount_amount_cents=20_000, remark="VIP"
        )
        assert order.remark == "VIP | Discount Applied: Rs. 200"
        assert order.final_amount_cents == 50_000 - 20_000 + 35_000

    def test_delivery_override(self, db_session, agent, customer, product):
        order = order_service.create_order(customer.id, _items(product), agent, delivery_charge_cents=0)
        assert order.delivery_charge_cents == 0

    def test_appends_to_customer_history(self, db_session, agent, customer, product):
        first = order_service.create_order(customer.id, _items(product), agent)
        second = order_service.create_order(customer.id, _items(product), agent)
        history = db_session.get(Customer, customer.id).order_history
        assert [o.id for o in history] == [first.id, second.id]

    def test_empty_items_rejected(self, db_session, agent, customer):
        with pytest.raises(InvalidInputError):
            order_service.create_order(customer.id, [], agent)
        assert db_session.query(Order).count() == 0

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_non_positive_quantity_rejected(self, db_session, agent, customer, product, quantity):
        with pytest.raises(InvalidInputError):
            order_service.create_order(customer.id, _items(product, quantity), agent)
        assert db_session.query(Order).count() == 0

    def test_negative_unit_price_rejected(self, db_session, agent, customer, product):
        with pytest.raises(InvalidInputError):
            order_service.create_order(customer.id, _items(product, 1, unit_price_cents=-1), agent)

    def test_negative_discount_rejected(self, db_session, agent, customer, product):
        with pytest.raises(InvalidInputError):
            order_service.create_order(customer.id, _items(product), agent, discount_amount_cents=-100)

    def test_unknown_payment_status_rejected(self, db_session, agent, customer, product):
        with pytest.raises(InvalidInputError):
            order_service.create_order(customer.id, _items(product), agent, payment_status="Barter")

    def test_non_string_remark_rejected(self, db_session, agent, customer, product):
        with pytest.raises(InvalidInputError):
            order_service.create_order(customer.id, _items(product), agent, remark=5)

    def test_missing_customer(self, db_session, agent, product):
        with pytest.raises(NotFoundError):
            order_service.create_order(9999, _items(product), agent)

    def test_missing_product(self, db_session, agent, customer):
        with pytest.raises(NotFoundError):
            order_service.create_order(customer.id, [{"product_id": 9999, "quantity": 1}], agent)


# =============================================================================
# UPDATE
# =============================================================================


class TestUpdateOrder:

    @pytest.fixture
    def order(self, db_session, agent, customer, product):
        return order_service.create_order(customer.id, _items(product, 2), agent, remark="VIP")

    def test_discount_cycle_keeps_one_fragment(self, db_session, agent, order):
        updated = order_service.update_order(order.id, {"discount_amount_cents": 20_000}, agent)
        assert updated.remark == "VIP | Discount Applied: Rs. 200"
        assert updated.final_amount_cents == 100_000 - 20_000 + 35_000

        updated = order_service.update_order(order.id, {"discount_amount_cents": 20_000}, agent)
        assert updated.remark.count("Discount Applied") == 1

        updated = order_service.update_order(order.id, {"discount_amount_cents": 0}, agent)
        assert updated.remark == "VIP"
        assert updated.final_amount_cents == 135_000

    def test_new_items_recompute_total_and_delivery(self, db_session, agent, order, make_product):
        big = make_product("Gold Serum", 100_000)
        updated = order_service.update_order(order.id, {"items": _items(big, 3)}, agent)
        assert updated.total_amount_cents == 300_000
        assert updated.delivery_charge_cents == 0
        assert [i.product_name for i in updated.items] == ["Gold Serum"]
        assert db_session.query(OrderItem).filter_by(order_id=order.id).count() == 1

    def test_discount_only_keeps_stored_delivery(self, db_session, agent, order):
        order_service.update_order(order.id, {"delivery_charge_cents": 10_000}, agent)
        updated = order_service.update_order(order.id, {"discount_amount_cents": 5_000}, agent)
        assert updated.delivery_charge_cents == 10_000
        assert updated.final_amount_cents == 100_000 - 5_000 + 10_000

    def test_scalar_only_update_does_not_reprice(self, db_session, agent, order):
        before = order.final_amount_cents
        updated = order_service.update_order(order.id, {"additional_remark": "Deliver after 5pm"}, agent)
        assert updated.additional_remark == "Deliver after 5pm"
        assert updated.final_amount_cents == before
        assert updated.remark == "VIP"

    def test_update_clears_edit_request_and_appends_edit(self, db_session, agent, admin, order):
        order_service.request_edit(order.id, "Wrong quantity", agent)
        updated = order_service.update_order(order.id, {"payment_status": "Paid"}, admin)

        assert updated.payment_status == "Paid"
        assert updated.edit_request.pending is False
        assert len(updated.edits) == 1
        assert updated.edits[0].user_id == admin.id

    def test_each_update_appends_one_edit(self, db_session, agent, order):
        order_service.update_order(order.id, {"remark": "A"}, agent)
        order_service.update_order(order.id, {"remark": "B"}, agent)
        assert db_session.query(OrderEdit).filter_by(order_id=order.id).count() == 2

    def test_agent_status_change_ignored(self, db_session, agent, order):
        updated = order_service.update_order(order.id, {"status": "Dispatched"}, agent)
        assert updated.status == "Pending"

    def test_admin_status_change_applied(self, db_session, admin, order):
        updated = order_service.update_order(order.id, {"status": "Returned"}, admin)
        assert updated.status == "Returned"

    def test_other_agent_forbidden(self, db_session, make_user, order):
        other = make_user()
        with pytest.raises(ForbiddenError):
            order_service.update_order(order.id, {"remark": "x"}, other)

    def test_customer_change_moves_history(self, db_session, agent, customer, order):
        other = Customer(name="Kamal", phone="0719999999", address="Galle")
        db_session.add(other)
        db_session.commit()

        updated = order_service.update_order(order.id, {"customer_id": other.id}, agent)
        assert updated.customer_id == other.id
        assert order.id in [o.id for o in db_session.get(Customer, other.id).order_history]
        assert order.id not in [o.id for o in db_session.get(Customer, customer.id).order_history]

    @pytest.mark.parametrize("field", ["remark", "additional_remark"])
    def test_non_string_remark_rejected(self, db_session, agent, order, field):
        with pytest.raises(InvalidInputError):
            order_service.update_order(order.id, {field: 5}, agent)

    def test_invalid_items_leave_order_untouched(self, db_session, agent, order):
        with pytest.raises(InvalidInputError):
            order_service.update_order(order.id, {"items": [], "remark": "changed"}, agent)
        db_session.expire_all()
        stored = db_session.get(Order, order.id)
        assert stored.remark == "VIP"
        assert stored.edits == []

    def test_unknown_field_rejected(self, db_session, agent, order):
        with pytest.raises(InvalidInputError):
            order_service.update_order(order.id, {"final_amount_cents": 1}, agent)

    def test_missing_order(self, db_session, agent):
        with pytest.raises(NotFoundError):
            order_service.update_order(9999, {"remark": "x"}, agent)


# =============================================================================
# EDIT REQUESTS / DELETION
# =============================================================================


class TestEditRequests:

    def test_request_edit_sets_pending(self, db_session, agent, customer, product):
        order = order_service.create_order(customer.id, _items(product), agent)
        updated = order_service.request_edit(order.id, "Change address", agent)

        assert updated.edit_request.pending is True
        assert updated.edit_request.message == "Change address"
        assert updated.edit_request.from_user_id == agent.id
        assert order_service.pending_edit_count(agent) == 1

    def test_last_request_wins(self, db_session, agent, admin, customer, product):
        order = order_service.create_order(customer.id, _items(product), agent)
        order_service.request_edit(order.id, "first", agent)
        updated = order_service.request_edit(order.id, "second", admin)
        assert updated.edit_request.message == "second"
        assert updated.edit_request.from_user_id == admin.id

    @pytest.mark.parametrize("message", [None, "", "   "])
    def test_message_required(self, db_session, agent, customer, product, message):
        order = order_service.create_order(customer.id, _items(product), agent)
        with pytest.raises(InvalidInputError):
            order_service.request_edit(order.id, message, agent)


class TestDeleteOrder:

    @pytest.fixture
    def order(self, db_session, agent, customer, product):
        return order_service.create_order(customer.id, _items(product), agent)

    def test_agent_forbidden(self, db_session, agent, order):
        with pytest.raises(ForbiddenError):
            order_service.delete_order(order.id, PASSWORD, agent)

    def test_password_required(self, db_session, admin, order):
        with pytest.raises(InvalidInputError):
            order_service.delete_order(order.id, None, admin)

    def test_wrong_password(self, db_session, admin, order):
        with pytest.raises(AuthFailedError):
            order_service.delete_order(order.id, "Wrong123!", admin)
        assert db_session.query(Order).count() == 1

    def test_admin_deletes_with_password(self, db_session, admin, customer, order):
        order_service.delete_order(order.id, PASSWORD, admin)
        db_session.expire_all()
        assert db_session.query(Order).count() == 0
        assert db_session.get(Customer, customer.id).order_history == []

    def test_bulk_delete_requires_super_admin(self, db_session, admin, order):
        with pytest.raises(ForbiddenError):
            order_service.bulk_delete_orders(PASSWORD, admin)

    def test_bulk_delete(self, db_session, super_admin, order):
        assert order_service.bulk_delete_orders(PASSWORD, super_admin) == 1
        assert db_session.query(Order).count() == 0
        assert db_session.query(OrderItem).count() == 0


# =============================================================================
# BULK STATUS / LISTINGS
# =============================================================================


class TestListingsAndBulkStatus:

    def test_bulk_status_updates_range_and_audits(self, db_session, admin, agent, customer, product):
        inside = order_service.create_order(customer.id, _items(product), agent)
        outside = order_service.create_order(customer.id, _items(product), agent)
        outside.created_at = utcnow() - timedelta(days=10)
        db_session.commit()

        start = (utcnow() - timedelta(days=1)).isoformat()
        end = (utcnow() + timedelta(days=1)).isoformat()
        assert order_service.bulk_update_status(start, end, "Dispatched", admin) == 1

        db_session.expire_all()
        assert db_session.get(Order, inside.id).status == "Dispatched"
        assert len(db_session.get(Order, inside.id).edits) == 1
        assert db_session.get(Order, outside.id).status == "Pending"

    def test_bulk_status_requires_fields(self, db_session, admin):
        with pytest.raises(InvalidInputError):
            order_service.bulk_update_status(None, "2026-01-01", "Dispatched", admin)
        with pytest.raises(InvalidInputError):
            order_service.bulk_update_status("2026-01-01", "2026-01-02", None, admin)

    def test_bulk_status_forbidden_for_agent(self, db_session, agent):
        with pytest.raises(ForbiddenError):
            order_service.bulk_update_status("2026-01-01", "2026-01-02", "Dispatched", agent)

    def test_date_only_end_covers_whole_day(self, db_session, agent, customer, product):
        order = order_service.create_order(customer.id, _items(product), agent)
        today = order.created_at.date().isoformat()
        assert [o.id for o in order_service.list_orders(today, today)] == [order.id]

    def test_list_orders_newest_first(self, db_session, agent, customer, product):
        older = order_service.create_order(customer.id, _items(product), agent)
        older.created_at = utcnow() - timedelta(hours=2)
        db_session.commit()
        newer = order_service.create_order(customer.id, _items(product), agent)
        assert [o.id for o in order_service.list_orders()] == [newer.id, older.id]

    def test_my_report_only_own_orders(self, db_session, agent, admin, customer, product):
        mine = order_service.create_order(customer.id, _items(product), agent, payment_status="Paid")
        order_service.create_order(customer.id, _items(product), admin)
        today = utcnow().date().isoformat()
        start = (utcnow() - timedelta(days=1)).date().isoformat()

        assert [o.id for o in order_service.my_report(agent, start, today)] == [mine.id]
        assert order_service.my_report(agent, start, today, payment_status="COD") == []
        assert len(order_service.my_report(agent, start, today, payment_status="All")) == 1

    def test_get_order_missing(self, db_session):
        with pytest.raises(NotFoundError):
            order_service.get_order(12345)
