from __future__ import annotations

import copy
from decimal import Decimal

import pytest

from storefront.constant import DEFAULT_DAY_ID, SUMMARY_DAY_ID
from storefront.errors import StoreError


def test_starts_with_one_default_day(engine):
    assert [day.id for day in engine.event_days] == [DEFAULT_DAY_ID]
    assert engine.active_event_day_id == DEFAULT_DAY_ID
    assert engine.event_days[0].label == "Order 1"


def test_set_quantity_then_zero_removes_key(engine):
    engine.set_quantity("a", 3)
    assert engine.active_day.order == {"a": 3}

    engine.set_quantity("a", 0)
    assert "a" not in engine.active_day.order

    engine.set_quantity("b", -4)
    assert engine.active_day.order == {}


def test_fractional_quantity_below_one_removes_item(engine):
    engine.set_quantity("a", 2)

    engine.set_quantity("a", 0.5)
    assert "a" not in engine.active_day.order

    engine.set_quantity("b", 6.7)
    assert engine.active_day.order == {"b": 6}


def test_change_quantity_steps_and_removes(engine):
    engine.change_quantity("a", 1)
    engine.change_quantity("a", 1)
    assert engine.active_day.order["a"] == 2

    engine.change_quantity("a", -2)
    assert "a" not in engine.active_day.order


def test_quantities_ignored_on_summary(engine):
    engine.set_quantity("a", 2)
    engine.set_active_day(SUMMARY_DAY_ID)

    engine.set_quantity("a", 9)
    engine.change_quantity("b", 1)
    engine.clear_active_order()

    assert engine.event_days[0].order == {"a": 2}


def test_add_day_labels_from_count_and_activates(engine):
    second = engine.add_day()
    third = engine.add_day()

    assert [day.label for day in engine.event_days] == ["Order 1", "Order 2", "Order 3"]
    assert engine.active_event_day_id == third.id
    assert len({day.id for day in engine.event_days}) == 3

    engine.remove_day(second.id)
    fourth = engine.add_day()
    assert fourth.label == "Order 3"


def test_remove_days_down_to_zero_keeps_a_default(engine):
    for _ in range(3):
        engine.add_day()
    for day in list(engine.event_days):
        engine.remove_day(day.id)
        assert len(engine.event_days) >= 1

    assert [day.id for day in engine.event_days] == [DEFAULT_DAY_ID]
    assert engine.active_event_day_id == DEFAULT_DAY_ID


def test_remove_active_day_selects_first(engine):
    second = engine.add_day()
    engine.remove_day(second.id)

    assert engine.active_event_day_id == DEFAULT_DAY_ID


def test_remove_inactive_day_keeps_selection(engine):
    second = engine.add_day()
    engine.remove_day(DEFAULT_DAY_ID)

    assert engine.active_event_day_id == second.id
    assert [day.id for day in engine.event_days] == [second.id]


def test_update_day_detail(engine):
    engine.update_day_detail(DEFAULT_DAY_ID, "event", "Wedding lunch")
    engine.update_day_detail("missing", "event", "ignored")

    assert engine.event_days[0].event == "Wedding lunch"
    with pytest.raises(ValueError):
        engine.update_day_detail(DEFAULT_DAY_ID, "order", "{}")


def test_customer_details_patch_and_attendee_coercion(engine):
    engine.set_customer_details(name="Lee", attendees="12")
    assert engine.customer_details.name == "Lee"
    assert engine.customer_details.attendees == 12

    engine.set_customer_details(attendees="")
    assert engine.customer_details.attendees == 1
    engine.set_customer_details(attendees=0)
    assert engine.customer_details.attendees == 1

    with pytest.raises(ValueError):
        engine.set_customer_details(shoe_size=9)


def test_unknown_service_type_is_rejected(engine):
    with pytest.raises(ValueError):
        engine.set_customer_details(service_type="delivery")

    assert engine.customer_details.service_type == "Delivery"
    engine.set_customer_details(service_type="Full Service")
    assert engine.customer_details.service_type == "Full Service"


def test_compute_totals_scopes(engine):
    engine.set_quantity("a", 3)
    second = engine.add_day()
    engine.set_quantity("b", 2)
    engine.set_customer_details(attendees=4)

    assert engine.compute_totals().subtotal == Decimal("10.00")
    assert engine.compute_totals(DEFAULT_DAY_ID).subtotal == Decimal("30.00")
    assert engine.compute_totals("no-such-day").subtotal == Decimal("30.00")

    summary = engine.compute_totals(SUMMARY_DAY_ID)
    assert [day.day_id for day in summary.days] == [DEFAULT_DAY_ID, second.id]
    assert summary.subtotal == Decimal("40.00")
    assert summary.total == Decimal("84.00")
    assert summary.per_head == Decimal("21.00")


def test_save_snapshot_round_trip(engine, history):
    engine.set_customer_details(name="Dana", email="dana@example.com", service_type="Pickup", attendees=8)
    engine.set_quantity("a", 6)
    engine.update_day_detail(DEFAULT_DAY_ID, "day_date", "2025-07-20")
    engine.add_day()
    engine.set_quantity("b", 2)
    expected_customer = copy.deepcopy(engine.customer_details)
    expected_days = copy.deepcopy(engine.event_days)

    order_id = engine.save_snapshot(email_sent_to="kitchen@example.com")
    engine.reset()
    saved = history.get(order_id)
    engine.load_snapshot(saved)

    assert engine.customer_details == expected_customer
    assert engine.event_days == expected_days
    assert engine.active_event_day_id == expected_days[0].id
    assert engine.current_order_id == order_id
    assert saved.status == "sent"
    assert saved.email_sent_to == "kitchen@example.com"
    assert saved.order_number == "ORD-202507-001"
    assert saved.totals.subtotal == Decimal("70.00")


def test_snapshot_is_independent_of_later_edits(engine, history):
    engine.set_quantity("a", 6)
    order_id = engine.save_snapshot()

    engine.set_quantity("a", 1)
    engine.set_customer_details(name="Changed")

    saved = history.get(order_id)
    assert saved.event_days[0].order == {"a": 6}
    assert saved.customer_details.name == ""


def test_resending_a_loaded_order_links_to_it(engine, history):
    engine.set_quantity("a", 6)
    first_id = engine.save_snapshot()
    engine.load_snapshot(history.get(first_id))
    engine.set_quantity("a", 8)

    second_id = engine.save_snapshot()

    second = history.get(second_id)
    assert second.modified_from == first_id
    assert second.order_number == "ORD-202507-002"
    assert [order.id for order in history.lineage(second_id)] == [second_id, first_id]


def test_failed_history_write_leaves_session_unsaved(engine, monkeypatch):
    def broken_append(_snapshot):
        raise StoreError("disk full")

    monkeypatch.setattr(engine.history, "append", broken_append)
    engine.set_quantity("a", 6)

    with pytest.raises(StoreError):
        engine.save_snapshot()
    assert engine.current_order_id is None
    assert engine.active_day.order == {"a": 6}
