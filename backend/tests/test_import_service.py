"""
Bulk order import tests.

Verifies:
- Rows group by order name, first-seen order preserved
- Customers/products/agent are found or created by natural key
- Payment keywords, subtotal override, and delivery rules
- One bad group never aborts the batch
"""

import pytest

from oms.models import Customer, Order, Product, User
from oms.permissions import ROLE_AGENT
from oms.services import import_service
from oms.services.import_schemas import WebOrderRowSchema, _to_cents, _to_int


def row(order="#1001", product="Herbal Oil", price="500", qty="2", **overrides):
    data = {
        "Order Name": order,
        "Customer Name (Shipping)": "Nimali Perera",
        "Shipping Address Phone": "0771234567",
        "Billing Phone": "0112345678",
        "Shipping Address 1": "12 Temple Road",
        "Shipping City": "Kandy",
        "Shipping Country": "",
        "Email": "nimali@example.com",
        "Order Created Date": "2026-10-18 09:15",
        "Payment Gateway Names": "Cash on Delivery (COD)",
        "Sum of Total Line Item Price (Total Net)": "",
        "Line Item Name (Product Title + Options)": product,
        "Product Price (Line Item Price)": price,
        "Fulfillable Quantity": qty,
    }
    data.update(overrides)
    return data


class TestRowSchema:

    def test_normalize_defaults(self):
        normalized = WebOrderRowSchema().normalize_row(row(qty="", price="abc"))
        assert normalized["quantity"] == 1
        assert normalized["unit_price_cents"] == 0
        assert normalized["country"] is None

    @pytest.mark.parametrize(
        "raw,expected",
        [("1,250.50", 125_050), ("Rs. 900", 90_000), (350, 35_000), ("", None), ("n/a", None)],
    )
    def test_to_cents(self, raw, expected):
        assert _to_cents(raw) == expected

    @pytest.mark.parametrize("raw", ["inf", "-inf", "nan", "1e400", float("inf")])
    def test_non_finite_numbers_are_unparseable(self, raw):
        assert _to_cents(raw) is None
        assert _to_int(raw) is None

    def test_group_rows_preserves_first_seen_order(self):
        groups, errors = import_service.group_rows([
            row("#2"), row("#1"), row("#2", product="Soap"), row(order=""),
        ])
        assert list(groups) == ["#2", "#1"]
        assert len(groups["#2"]) == 2
        assert errors == [{"order": "Unknown", "error": "Missing Order Name"}]

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("PayHere", "Paid"),
            ("Visa ending 4242", "Paid"),
            ("Credit Card", "Paid"),
            ("Already paid", "Paid"),
            ("Cash on Delivery (COD)", "COD"),
            (None, "COD"),
        ],
    )
    def test_payment_status(self, text, expected):
        keywords = ("paid", "card", "visa", "payhere")
        assert import_service.payment_status_for(text, keywords) == expected


class TestImportOrders:

    def test_multi_line_group_becomes_one_order(self, db_session, admin):
        result = import_service.import_orders(
            [row(product="Herbal Oil", price="500", qty="2"), row(product="Soap", price="250", qty="1")],
            admin,
        )
        assert result == {"success_count": 1, "error_count": 0, "errors": []}

        order = db_session.query(Order).one()
        assert [i.product_name for i in order.items] == ["Herbal Oil", "Soap"]
        assert order.total_amount_cents == 125_000
        assert order.delivery_charge_cents == 35_000
        assert order.final_amount_cents == 160_000
        assert order.discount_amount_cents == 0
        assert order.remark == "#1001"
        assert order.additional_remark == "2026-10-18 09:15"
        assert order.payment_status == "COD"

    def test_customer_created_with_defaults(self, db_session, admin):
        import_service.import_orders([row(**{"Shipping Address 1": ""})], admin)
        customer = db_session.query(Customer).one()
        assert customer.phone == "0771234567"
        assert customer.phone2 == "0112345678"
        assert customer.address == "N/A"
        assert customer.country == "Sri Lanka"
        assert [o.remark for o in customer.order_history] == ["#1001"]

    def test_existing_customer_and_product_reused(self, db_session, admin, customer, make_product):
        existing = make_product("Herbal Oil", 99_900)
        import_service.import_orders([row(), row("#1002")], admin)

        assert db_session.query(Customer).count() == 1
        assert db_session.query(Product).count() == 1
        # Line price comes from the row, not the catalog.
        assert db_session.query(Order).first().items[0].unit_price_cents == 50_000
        assert existing.price_cents == 99_900

    def test_new_product_created_as_imported(self, db_session, admin):
        import_service.import_orders([row(product="Neem Soap", price="300")], admin)
        product = db_session.query(Product).one()
        assert product.description == "Imported"
        assert product.price_cents == 30_000
        assert product.weight == 0

    def test_orders_owned_by_web_orders_agent(self, db_session, admin):
        import_service.import_orders([row(), row("#1002")], admin)
        agents = db_session.query(User).filter_by(name="Web Orders", role=ROLE_AGENT).all()
        assert len(agents) == 1
        assert {o.agent_id for o in db_session.query(Order).all()} == {agents[0].id}

    def test_agent_fallback_to_importer(self, app, db_session, admin, make_user):
        # Email already taken, so the synthetic agent cannot be created.
        make_user(email=app.config["WEB_ORDERS_AGENT_EMAIL"], name="Someone Else")
        result = import_service.import_orders([row()], admin)
        assert result["success_count"] == 1
        assert db_session.query(Order).one().agent_id == admin.id

    def test_paid_keyword(self, db_session, admin):
        import_service.import_orders([row(**{"Payment Gateway Names": "PayHere"})], admin)
        assert db_session.query(Order).one().payment_status == "Paid"

    def test_positive_subtotal_overrides_sum(self, db_session, admin):
        import_service.import_orders(
            [row(price="500", qty="1", **{"Sum of Total Line Item Price (Total Net)": "3000"})],
            admin,
        )
        order = db_session.query(Order).one()
        assert order.total_amount_cents == 300_000
        assert order.delivery_charge_cents == 0
        assert order.items[0].line_total_cents == 50_000

    def test_free_delivery_keyword(self, db_session, admin):
        import_service.import_orders([row(product="Moist Curl Leave-In", price="100", qty="1")], admin)
        assert db_session.query(Order).one().delivery_charge_cents == 0

    def test_non_finite_cells_do_not_abort_batch(self, db_session, admin):
        rows = [
            row("#1"),
            row("#2", price="500", qty="inf", **{"Sum of Total Line Item Price (Total Net)": "1e400"}),
        ]
        result = import_service.import_orders(rows, admin)

        assert result == {"success_count": 2, "error_count": 0, "errors": []}
        second = db_session.query(Order).filter_by(remark="#2").one()
        assert second.items[0].quantity == 1
        assert second.total_amount_cents == 50_000

    def test_bad_group_does_not_abort_batch(self, db_session, admin):
        rows = [
            row("#1"),
            row("#2", **{"Customer Name (Shipping)": ""}),
            row("#3", **{"Shipping Address Phone": "0779999999"}),
        ]
        result = import_service.import_orders(rows, admin)

        assert result["success_count"] == 2
        assert result["error_count"] == 1
        assert result["errors"] == [{"order": "#2", "error": "Missing customer Name or Phone"}]
        assert db_session.query(Order).count() == 2

    def test_group_without_items_keeps_created_customer(self, db_session, admin):
        result = import_service.import_orders(
            [row("#9", product="", **{"Shipping Address Phone": "0765555555"})], admin
        )
        assert result["errors"] == [{"order": "#9", "error": "No valid items found"}]
        assert db_session.query(Order).count() == 0
        assert db_session.query(Customer).filter_by(phone="0765555555").count() == 1

    def test_rows_without_product_name_are_skipped(self, db_session, admin):
        import_service.import_orders([row(), row(product="")], admin)
        assert len(db_session.query(Order).one().items) == 1

    def test_missing_order_name_counted_as_error(self, db_session, admin):
        result = import_service.import_orders([row(order=""), row("#5")], admin)
        assert result["success_count"] == 1
        assert result["errors"][0]["order"] == "Unknown"
