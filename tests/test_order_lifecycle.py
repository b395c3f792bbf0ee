"""Tests for order status transitions, totals and order numbers."""

import re
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from marketplace.errors import InvalidTransition, ValidationError
from marketplace.services.order_lifecycle import (
    ALLOWED_TRANSITIONS,
    ORDER_STATUSES,
    TERMINAL_STATUSES,
    OrderNumberGenerator,
    allowed_next_statuses,
    build_order_items,
    compute_totals,
    generate_order_number,
    group_by_supplier,
    to_base36,
    transition,
    utcnow,
)


ALL_PAIRS = [(a, b) for a in ORDER_STATUSES for b in ORDER_STATUSES]


class TestTransitions:
    """Tests for the status state machine."""

    def test_table(self):
        assert allowed_next_statuses("pending") == ("confirmed", "cancelled")
        assert allowed_next_statuses("confirmed") == ("preparing", "cancelled")
        assert allowed_next_statuses("preparing") == ("ready", "cancelled")
        assert allowed_next_statuses("ready") == ("delivered",)
        assert TERMINAL_STATUSES == {"delivered", "cancelled"}

    def test_unknown_status_has_no_moves(self):
        assert allowed_next_statuses("shipped") == ()
        assert allowed_next_statuses(None) == ()

    @pytest.mark.parametrize("current,requested", ALL_PAIRS)
    def test_every_pair(self, current, requested):
        order = {"id": "o-1", "status": current, "estimated_delivery_time": None}
        before = dict(order)

        if requested in ALLOWED_TRANSITIONS[current]:
            diff = transition(order, requested)
            assert diff["status"] == requested
            assert "updated_at" in diff
        else:
            with pytest.raises(InvalidTransition):
                transition(order, requested)
        assert order == before

    def test_ready_sets_estimated_delivery(self):
        diff = transition({"status": "preparing"}, "ready")
        expected = utcnow() + timedelta(minutes=30)

        assert abs((diff["estimated_delivery_time"] - expected).total_seconds()) < 1
        assert "actual_delivery_time" not in diff

    def test_delivered_sets_actual_delivery(self):
        now = datetime(2024, 5, 1, 12, 0, 0)
        diff = transition({"status": "ready"}, "delivered", now=now)

        assert diff == {"status": "delivered", "updated_at": now, "actual_delivery_time": now}

    @pytest.mark.parametrize("current,requested", [("pending", "confirmed"), ("confirmed", "preparing"), ("preparing", "cancelled")])
    def test_other_moves_touch_no_delivery_times(self, current, requested):
        diff = transition({"status": current}, requested)

        assert set(diff) == {"status", "updated_at"}

    def test_unknown_requested_status(self):
        with pytest.raises(InvalidTransition) as exc_info:
            transition({"status": "pending"}, "shipped")

        assert exc_info.value.current == "pending"
        assert exc_info.value.requested == "shipped"


class TestComputeTotals:
    """Tests for compute_totals."""

    def test_discounted_price_is_used(self):
        items = [
            {"price": 1000, "quantity": 2},
            {"price": 500, "quantity": 1, "discounted_price": 300},
        ]
        totals = compute_totals(items, delivery_fee=1000, tax_amount=0, discount_amount=0)

        assert totals.subtotal == Decimal("2300")
        assert totals.total_amount == Decimal("3300")
        assert totals.needs_review is False

    def test_tax_and_discount(self):
        totals = compute_totals([{"price": "10.50", "quantity": 2}], delivery_fee="2", tax_amount="1.25", discount_amount="3")

        assert totals.subtotal == Decimal("21.00")
        assert totals.total_amount == Decimal("21.25")

    def test_empty_items(self):
        totals = compute_totals([], delivery_fee=500)

        assert totals.subtotal == 0
        assert totals.total_amount == Decimal("500")

    def test_negative_total_is_clamped_and_flagged(self):
        totals = compute_totals([{"price": 100, "quantity": 1}], discount_amount=250)

        assert totals.total_amount == 0
        assert totals.needs_review is True

    @pytest.mark.parametrize("field", ["delivery_fee", "tax_amount", "discount_amount"])
    def test_negative_fee_rejected(self, field):
        with pytest.raises(ValidationError) as exc_info:
            compute_totals([{"price": 100, "quantity": 1}], **{field: -1})

        assert exc_info.value.field == field

    @pytest.mark.parametrize("qty", [0, -2, "2.5", None, "abc"])
    def test_bad_quantity_rejected(self, qty):
        with pytest.raises(ValidationError):
            compute_totals([{"price": 100, "quantity": qty}])

    def test_negative_price_rejected(self):
        with pytest.raises(ValidationError):
            compute_totals([{"price": -5, "quantity": 1}])

    def test_zero_discounted_price_counts(self):
        totals = compute_totals([{"price": 500, "discounted_price": 0, "quantity": 3}])

        assert totals.subtotal == 0


class TestOrderItemsAndGrouping:
    """Tests for build_order_items and group_by_supplier."""

    def test_build_order_items(self):
        rows = build_order_items(
            [
                {"product_id": "p1", "price": 1000, "quantity": 2},
                {"product_id": "p2", "price": 500, "discounted_price": 300, "quantity": 3,
                 "special_instructions": "no onions"},
            ]
        )

        assert rows[0] == {
            "product_id": "p1",
            "quantity": 2,
            "unit_price": Decimal("1000"),
            "total_price": Decimal("2000"),
            "special_instructions": None,
        }
        assert rows[1]["unit_price"] == Decimal("300")
        assert rows[1]["total_price"] == Decimal("900")
        assert rows[1]["special_instructions"] == "no onions"

    def test_group_by_supplier_keeps_first_seen_order(self):
        lines = [
            {"product_id": "a", "supplier_id": "s2"},
            {"product_id": "b", "supplier_id": "s1"},
            {"product_id": "c", "supplier_id": "s2"},
        ]
        groups = group_by_supplier(lines)

        assert list(groups) == ["s2", "s1"]
        assert [l["product_id"] for l in groups["s2"]] == ["a", "c"]

    def test_group_requires_supplier(self):
        with pytest.raises(ValidationError):
            group_by_supplier([{"product_id": "a"}])


class TestOrderNumbers:
    """Tests for order number generation."""

    def test_format(self):
        assert re.fullmatch(r"ORD-[0-9A-Z]+-[0-9A-Z]{5}", generate_order_number())

    def test_timestamp_and_random_parts(self):
        generator = OrderNumberGenerator(clock=lambda: 1700000000.5, random_chars=lambda n: "ab1cd"[:n])
        number = generator()
        prefix, stamp, token = number.split("-")

        assert prefix == "ORD"
        assert int(stamp, 36) == 1700000000500
        assert token == "AB1CD"

    def test_numbers_differ(self):
        assert len({generate_order_number() for _ in range(50)}) == 50

    @pytest.mark.parametrize("n,expected", [(0, "0"), (35, "z"), (36, "10"), (1295, "zz")])
    def test_base36(self, n, expected):
        assert to_base36(n) == expected
