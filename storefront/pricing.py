"""Pure pricing derivation for event days and the all-days summary."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from storefront.config import GST_RATE, MINIMUM_ORDER_QUANTITY, SERVICE_FEES
from storefront.models import EventDay, MenuCategory, MenuItem

ZERO = Decimal("0")


@dataclass(frozen=True)
class LineItem:
    item_id: str
    name: str
    category_title: str
    unit_price: Decimal
    quantity: int

    @property
    def amount(self) -> Decimal:
        return self.unit_price * self.quantity

    @property
    def below_minimum(self) -> bool:
        return needs_minimum_warning(self.quantity)


@dataclass(frozen=True)
class DayTotals:
    day_id: str
    label: str
    lines: tuple[LineItem, ...]
    subtotal: Decimal


@dataclass(frozen=True)
class OrderTotals:
    """Totals for one day or for the summary; per-day breakdowns kept alongside."""

    days: tuple[DayTotals, ...]
    subtotal: Decimal
    service_fee: Decimal
    gst: Decimal
    total: Decimal
    per_head: Decimal
    attendees: int


def needs_minimum_warning(quantity: int) -> bool:
    """Quantities from 1 up to the minimum are flagged; 0 and the minimum onwards are not."""
    return 1 <= quantity < MINIMUM_ORDER_QUANTITY


def index_menu(menu: Iterable[MenuCategory]) -> dict[str, tuple[MenuItem, str]]:
    return {item.id: (item, category.title) for category in menu for item in category.items}


def day_totals(day: EventDay, menu_index: dict[str, tuple[MenuItem, str]]) -> DayTotals:
    """Unknown or unavailable items are excluded from totals but left in the order map."""
    lines = []
    for item_id, quantity in day.order.items():
        entry = menu_index.get(item_id)
        if entry is None:
            continue
        item, category_title = entry
        if not item.is_available:
            continue
        lines.append(
            LineItem(
                item_id=item.id,
                name=item.name,
                category_title=category_title,
                unit_price=item.price,
                quantity=quantity,
            )
        )
    subtotal = sum((line.amount for line in lines), ZERO)
    return DayTotals(day_id=day.id, label=day.label, lines=tuple(lines), subtotal=subtotal)


def service_fee_for(service_type: str, base_subtotal: Decimal) -> Decimal:
    if base_subtotal == ZERO:
        return ZERO
    return SERVICE_FEES.get(service_type, ZERO)


def compute_totals(
    days: Iterable[EventDay],
    menu: Iterable[MenuCategory],
    service_type: str,
    attendees: int,
) -> OrderTotals:
    """Price the given days together; pass a single day for a per-day view."""
    menu_index = index_menu(menu)
    breakdown = tuple(day_totals(day, menu_index) for day in days)
    subtotal = sum((day.subtotal for day in breakdown), ZERO)
    service_fee = service_fee_for(service_type, subtotal)
    gst = subtotal * GST_RATE
    total = subtotal + gst + service_fee
    head_count = attendees if attendees > 0 else 1
    return OrderTotals(
        days=breakdown,
        subtotal=subtotal,
        service_fee=service_fee,
        gst=gst,
        total=total,
        per_head=total / head_count,
        attendees=head_count,
    )


def group_by_category(lines: Iterable[LineItem]) -> dict[str, list[LineItem]]:
    groups: dict[str, list[LineItem]] = {}
    for line in lines:
        groups.setdefault(line.category_title, []).append(line)
    return groups
