from __future__ import annotations

import json
import sqlite3
from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from storefront.history import OrderHistoryStore, filter_orders, generate_order_number, status_counts
from storefront.models import CustomerDetails, EventDay, SavedOrder, SavedTotals


def _order(order_id: str = "", number: str = "ORD-202507-001", timestamp: str = "2025-07-01T10:00:00+00:00", **kw):
    fields = {
        "id": order_id,
        "order_number": number,
        "timestamp": timestamp,
        "status": "sent",
        "customer_details": CustomerDetails(name="Sam Park", email="sam@example.com"),
        "event_days": [EventDay(id="day-1", label="Order 1", order={"item-1": 6})],
        "totals": SavedTotals(Decimal("95.94"), Decimal("40"), Decimal("9.594"), Decimal("145.534")),
    }
    fields.update(kw)
    return SavedOrder(**fields)


def test_fifth_july_order_number():
    existing = [_order(timestamp=f"2025-07-0{day}T12:00:00+00:00") for day in range(1, 5)]

    number = generate_order_number(existing, datetime(2025, 7, 20, tzinfo=timezone.utc))

    assert number == "ORD-202507-005"


def test_order_number_counts_the_whole_year():
    existing = [
        _order(timestamp="2025-01-15T08:00:00+00:00"),
        _order(timestamp="2025-06-30T08:00:00+00:00"),
        _order(timestamp="2024-12-31T08:00:00+00:00"),
    ]

    assert generate_order_number(existing, datetime(2025, 7, 1)) == "ORD-202507-003"
    assert generate_order_number([], datetime(2026, 2, 1)) == "ORD-202602-001"


def test_append_and_get_newest_first(history):
    first = history.append(_order(timestamp="2025-07-01T10:00:00+00:00"))
    second = history.append(_order(number="ORD-202507-002", timestamp="2025-07-02T10:00:00+00:00"))

    assert [order.id for order in history.orders] == [second, first]
    assert history.get(first).order_number == "ORD-202507-001"
    assert history.get("missing") is None


def test_payload_uses_camel_case_contract(history, db_path):
    order_id = history.append(_order(email_sent_to="kitchen@example.com"))

    with sqlite3.connect(db_path) as conn:
        payload = json.loads(conn.execute("SELECT payload FROM orders WHERE id = ?", (order_id,)).fetchone()[0])

    assert set(payload) == {"orderNumber", "timestamp", "status", "customerDetails", "eventDays", "totals", "emailSentTo"}
    assert payload["totals"] == {"subtotal": 95.94, "serviceFee": 40, "gst": 9.594, "total": 145.534}
    assert history.get(order_id).totals.total == Decimal("145.534")
    assert payload["customerDetails"]["contactNumber"] == ""
    assert payload["eventDays"][0]["order"] == {"item-1": 6}


def test_set_status_updates_and_rebroadcasts(history):
    order_id = history.append(_order())
    seen = []
    unsubscribe = history.subscribe(lambda orders: seen.append([order.status for order in orders]))

    history.set_status(order_id, "cancelled")
    unsubscribe()
    history.set_status(order_id, "modified")

    assert seen == [["sent"], ["cancelled"]]
    assert history.get(order_id).status == "modified"


def test_set_status_rejects_unknown_status(history):
    order_id = history.append(_order())

    with pytest.raises(ValueError):
        history.set_status(order_id, "archived")


def test_set_status_unknown_id_is_a_no_op(history):
    history.set_status("does-not-exist", "cancelled")

    assert history.orders == []


def test_new_store_reads_existing_orders(history, db_path):
    order_id = history.append(_order())

    reopened = OrderHistoryStore(db_path)
    assert reopened.loading
    reopened.refresh()

    assert not reopened.loading
    assert [order.id for order in reopened.orders] == [order_id]


def test_filter_by_status_and_query():
    orders = [
        _order("1", customer_details=CustomerDetails(name="Alice Ng", email="alice@corp.example")),
        _order("2", number="ORD-202507-002", status="cancelled"),
        _order("3", number="ORD-202507-003", customer_details=CustomerDetails(name="Bob", email="bob@home.example")),
    ]

    assert [o.id for o in filter_orders(orders, "cancelled")] == ["2"]
    assert [o.id for o in filter_orders(orders, query="ALICE")] == ["1"]
    assert [o.id for o in filter_orders(orders, query="home.example")] == ["3"]
    assert [o.id for o in filter_orders(orders, query="-003")] == ["3"]
    assert [o.id for o in filter_orders(orders, "sent", "  ")] == ["1", "3"]


def test_status_counts():
    orders = [_order(), replace(_order(), status="modified"), replace(_order(), status="modified")]

    assert status_counts(orders) == {"sent": 1, "modified": 2, "cancelled": 0}
