from __future__ import annotations

from decimal import Decimal

import pytest

from storefront.constant import SUMMARY_DAY_ID
from storefront.models import EventDay
from storefront.pricing import compute_totals, group_by_category, needs_minimum_warning, service_fee_for


def _day(order: dict[str, int], day_id: str = "day-1") -> EventDay:
    return EventDay(id=day_id, label="Order 1", order=dict(order))


def test_worked_example_delivery_four_guests(pricing_menu):
    totals = compute_totals([_day({"a": 3, "b": 2})], pricing_menu, "Delivery", 4)

    assert totals.subtotal == Decimal("40.00")
    assert totals.service_fee == Decimal("40")
    assert totals.gst == Decimal("4.00")
    assert totals.total == Decimal("84.00")
    assert totals.per_head == Decimal("21.00")


@pytest.mark.parametrize("service_type", ["Delivery", "Full Service", "Pickup"])
def test_empty_order_has_no_fee(pricing_menu, service_type):
    totals = compute_totals([_day({})], pricing_menu, service_type, 10)

    assert totals.subtotal == 0
    assert totals.service_fee == 0
    assert totals.gst == 0
    assert totals.total == 0
    assert totals.per_head == 0


def test_service_fee_by_type():
    assert service_fee_for("Delivery", Decimal("1")) == Decimal("40")
    assert service_fee_for("Full Service", Decimal("1")) == Decimal("100")
    assert service_fee_for("Pickup", Decimal("1")) == Decimal("0")
    assert service_fee_for("Unknown", Decimal("1")) == Decimal("0")


def test_unknown_and_unavailable_items_are_not_priced(pricing_menu):
    day = _day({"a": 1, "c": 4, "ghost": 9})

    totals = compute_totals([day], pricing_menu, "Pickup", 1)

    assert [line.item_id for line in totals.days[0].lines] == ["a"]
    assert totals.subtotal == Decimal("10.00")
    assert day.order == {"a": 1, "c": 4, "ghost": 9}


def test_fee_applies_once_across_days(pricing_menu):
    days = [_day({"a": 1}, "day-1"), _day({"b": 2}, "day-2")]

    totals = compute_totals(days, pricing_menu, "Full Service", 2)

    assert [day.subtotal for day in totals.days] == [Decimal("10.00"), Decimal("10.00")]
    assert totals.subtotal == Decimal("20.00")
    assert totals.service_fee == Decimal("100")
    assert totals.total == Decimal("122.00")


def test_compute_totals_is_idempotent(engine):
    engine.set_quantity("a", 7)
    engine.add_day()
    engine.set_quantity("b", 3)

    assert engine.compute_totals(SUMMARY_DAY_ID) == engine.compute_totals(SUMMARY_DAY_ID)


@pytest.mark.parametrize(
    ("quantity", "flagged"),
    [(0, False), (1, True), (3, True), (5, True), (6, False), (40, False)],
)
def test_minimum_quantity_flag(quantity, flagged):
    assert needs_minimum_warning(quantity) is flagged


def test_group_by_category_follows_order_entry(pricing_menu):
    totals = compute_totals([_day({"b": 1, "a": 6})], pricing_menu, "Pickup", 1)

    groups = group_by_category(totals.days[0].lines)

    assert list(groups) == ["Mains"]
    assert [line.name for line in groups["Mains"]] == ["Item B", "Item A"]
    assert [line.below_minimum for line in groups["Mains"]] == [True, False]
