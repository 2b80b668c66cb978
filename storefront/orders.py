"""Multi-day order state: event days, active selector, customer details and snapshots."""

from __future__ import annotations

import copy
import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Callable
from uuid import uuid4

from storefront.constant import DEFAULT_DAY_ID, SERVICE_TYPES, SUMMARY_DAY_ID
from storefront.data import coerce_attendees
from storefront.history import OrderHistory, generate_order_number
from storefront.models import CustomerDetails, EventDay, MenuCategory, SavedOrder, SavedTotals, default_event_day
from storefront.pricing import OrderTotals, compute_totals

logger = logging.getLogger(__name__)

DAY_DETAIL_FIELDS = ("day_date", "drop_time", "event", "notes")
CUSTOMER_FIELDS = (
    "name",
    "email",
    "business",
    "address",
    "contact_number",
    "attendees",
    "equipment_type",
    "service_type",
    "notes",
)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class OrderEngine:
    """
    Owns the event days of one order session.

    Invariants: there is always at least one day, day ids are unique and every
    stored quantity is an integer >= 1. Pricing is derived on every call to
    `compute_totals` and never cached.
    """

    def __init__(
        self,
        menu: Callable[[], list[MenuCategory]],
        history: OrderHistory,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._menu = menu
        self.history = history
        self.clock = clock
        self.event_days: list[EventDay] = [default_event_day()]
        self.active_event_day_id: str = DEFAULT_DAY_ID
        self.customer_details = CustomerDetails()
        self.current_order_id: str | None = None

    @property
    def is_summary(self) -> bool:
        return self.active_event_day_id == SUMMARY_DAY_ID

    @property
    def active_day(self) -> EventDay:
        """The selected day, or the first day when the selector names none."""
        return self.find_day(self.active_event_day_id) or self.event_days[0]

    def find_day(self, day_id: str) -> EventDay | None:
        for day in self.event_days:
            if day.id == day_id:
                return day
        return None

    def reset(self) -> None:
        self.event_days = [default_event_day()]
        self.active_event_day_id = DEFAULT_DAY_ID
        self.customer_details = CustomerDetails()
        self.current_order_id = None

    def set_quantity(self, item_id: str, quantity: int) -> None:
        if self.is_summary:
            return
        day = self.find_day(self.active_event_day_id)
        if day is None:
            return
        quantity = int(quantity)
        if quantity <= 0:
            day.order.pop(item_id, None)
        else:
            day.order[item_id] = quantity

    def change_quantity(self, item_id: str, delta: int) -> None:
        if self.is_summary:
            return
        current = self.active_day.order.get(item_id, 0)
        self.set_quantity(item_id, current + delta)

    def clear_active_order(self) -> None:
        if self.is_summary:
            return
        day = self.find_day(self.active_event_day_id)
        if day is not None:
            day.order = {}

    def add_day(self) -> EventDay:
        """Append a day labelled from the current count and make it active."""
        # Label numbers follow the count at call time, so they can repeat after removals.
        day = EventDay(id=self._new_day_id(), label=f"Order {len(self.event_days) + 1}")
        self.event_days.append(day)
        self.active_event_day_id = day.id
        return day

    def remove_day(self, day_id: str) -> None:
        remaining = [day for day in self.event_days if day.id != day_id]
        if not remaining:
            self.event_days = [default_event_day()]
            self.active_event_day_id = DEFAULT_DAY_ID
            return
        self.event_days = remaining
        if self.active_event_day_id == day_id:
            self.active_event_day_id = remaining[0].id

    def set_active_day(self, day_id: str) -> None:
        self.active_event_day_id = day_id

    def update_day_detail(self, day_id: str, field: str, value: str) -> None:
        if field not in DAY_DETAIL_FIELDS:
            raise ValueError(f"Not an editable day field: {field!r}")
        day = self.find_day(day_id)
        if day is None:
            return
        setattr(day, field, value)

    def set_customer_details(self, **patch: Any) -> CustomerDetails:
        unknown = set(patch) - set(CUSTOMER_FIELDS)
        if unknown:
            raise ValueError(f"Unknown customer fields: {', '.join(sorted(unknown))}")
        if "attendees" in patch:
            patch["attendees"] = coerce_attendees(patch["attendees"])
        if "service_type" in patch and patch["service_type"] not in SERVICE_TYPES:
            raise ValueError(f"Unknown service type: {patch['service_type']!r}")
        self.customer_details = replace(self.customer_details, **patch)
        return self.customer_details

    def compute_totals(self, scope: str | None = None) -> OrderTotals:
        """Price one day, or every day when scope is the summary id."""
        scope = self.active_event_day_id if scope is None else scope
        if scope == SUMMARY_DAY_ID:
            days = self.event_days
        else:
            days = [self.find_day(scope) or self.event_days[0]]
        return compute_totals(
            days,
            self._menu(),
            self.customer_details.service_type,
            self.customer_details.attendees,
        )

    def save_snapshot(self, email_sent_to: str | None = None) -> str:
        """Freeze the whole session into the history and remember its id."""
        totals = self.compute_totals(SUMMARY_DAY_ID)
        now = self.clock()
        snapshot = SavedOrder(
            id="",
            order_number=generate_order_number(self.history.orders, now),
            timestamp=now.isoformat(),
            status="sent",
            customer_details=copy.deepcopy(self.customer_details),
            event_days=copy.deepcopy(self.event_days),
            totals=SavedTotals(
                subtotal=totals.subtotal,
                service_fee=totals.service_fee,
                gst=totals.gst,
                total=totals.total,
            ),
            email_sent_to=email_sent_to,
            modified_from=self.current_order_id,
        )
        order_id = self.history.append(snapshot)
        self.current_order_id = order_id
        logger.info("snapshot saved order_id=%s number=%s days=%d", order_id, snapshot.order_number, len(self.event_days))
        return order_id

    def load_snapshot(self, saved: SavedOrder) -> None:
        self.customer_details = copy.deepcopy(saved.customer_details)
        days = copy.deepcopy(saved.event_days)
        self.event_days = days or [default_event_day()]
        self.active_event_day_id = self.event_days[0].id
        self.current_order_id = saved.id
        logger.info("snapshot loaded order_id=%s number=%s", saved.id, saved.order_number)

    def _new_day_id(self) -> str:
        existing = {day.id for day in self.event_days}
        while True:
            candidate = f"day-{uuid4().hex[:12]}"
            if candidate not in existing:
                return candidate
