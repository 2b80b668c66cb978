"""Read-only order document handed to email and PDF/image renderers."""

from __future__ import annotations

import copy
import io
import re
from dataclasses import dataclass
from decimal import Decimal

from rich.console import Console, Group
from rich.table import Table
from rich.text import Text

from storefront.constant import SUMMARY_DAY_ID
from storefront.models import CustomerDetails
from storefront.orders import OrderEngine
from storefront.pricing import LineItem, group_by_category
from storefront.rendering import format_money, quantity_style


@dataclass(frozen=True)
class DayDocument:
    label: str
    day_date: str
    drop_time: str
    event: str
    notes: str
    groups: tuple[tuple[str, tuple[LineItem, ...]], ...]
    subtotal: Decimal


@dataclass(frozen=True)
class OrderDocument:
    customer: CustomerDetails
    days: tuple[DayDocument, ...]
    subtotal: Decimal
    service_fee: Decimal
    gst: Decimal
    total: Decimal
    per_head: Decimal


def build_order_document(engine: OrderEngine) -> OrderDocument:
    """Every day is included, empty ones too."""
    totals = engine.compute_totals(SUMMARY_DAY_ID)
    days = []
    for day, breakdown in zip(engine.event_days, totals.days):
        groups = tuple((title, tuple(lines)) for title, lines in group_by_category(breakdown.lines).items())
        days.append(
            DayDocument(
                label=day.label,
                day_date=day.day_date,
                drop_time=day.drop_time,
                event=day.event,
                notes=day.notes,
                groups=groups,
                subtotal=breakdown.subtotal,
            )
        )
    return OrderDocument(
        customer=copy.deepcopy(engine.customer_details),
        days=tuple(days),
        subtotal=totals.subtotal,
        service_fee=totals.service_fee,
        gst=totals.gst,
        total=totals.total,
        per_head=totals.per_head,
    )


def suggested_filename(document: OrderDocument, extension: str = "pdf") -> str:
    first_event = document.days[0].event if document.days else ""
    base = f"{document.customer.name or 'customer'}_{first_event or 'order'}"
    safe = re.sub(r"[\s/]", "_", base)
    return f"{safe}.{extension}"


def customer_lines(customer: CustomerDetails) -> list[tuple[str, str]]:
    rows = [
        ("Name", customer.name),
        ("Email", customer.email),
        ("Business", customer.business),
        ("Contact", customer.contact_number),
        ("Address", customer.address),
    ]
    rows = [(label, value) for label, value in rows if value]
    rows.extend(
        [
            ("Attendees", str(customer.attendees)),
            ("Service", customer.service_type),
            ("Equipment", customer.equipment_type),
        ]
    )
    if customer.notes:
        rows.append(("Notes", customer.notes))
    return rows


def day_heading(day: DayDocument) -> str:
    parts = [day.label]
    parts.extend(part for part in (day.day_date, day.drop_time, day.event) if part)
    return " · ".join(parts)


def _day_table(day: DayDocument) -> Table:
    table = Table(title=day_heading(day), title_justify="left", expand=True)
    table.add_column("Item")
    table.add_column("Qty", justify="right")
    table.add_column("Price", justify="right")
    table.add_column("Amount", justify="right")
    if not day.groups:
        table.add_row(Text("No items", style="dim"), "", "", "")
    for title, lines in day.groups:
        table.add_row(Text(title, style="bold"), "", "", "")
        for line in lines:
            table.add_row(
                f"  {line.name}",
                Text(str(line.quantity), style=quantity_style(line.quantity)),
                format_money(line.unit_price),
                format_money(line.amount),
            )
    table.add_row(Text("Subtotal", style="bold"), "", "", Text(format_money(day.subtotal), style="bold"))
    if day.notes:
        table.caption = f"Notes: {day.notes}"
    return table


def render_order_html(document: OrderDocument, title: str) -> str:
    """Render the email body with Rich's recording console."""
    console = Console(
        record=True, width=96, file=io.StringIO(), color_system="truecolor", highlight=False, markup=False
    )
    details = Table.grid(padding=(0, 2))
    details.add_column(style="bold")
    details.add_column()
    for label, value in customer_lines(document.customer):
        details.add_row(f"{label}:", value)

    totals = Table.grid(padding=(0, 2))
    totals.add_column(style="bold")
    totals.add_column(justify="right")
    totals.add_row("Subtotal", format_money(document.subtotal))
    totals.add_row("Service Fee", format_money(document.service_fee))
    totals.add_row("GST (10%)", format_money(document.gst))
    totals.add_row("Total", format_money(document.total))
    totals.add_row("Per Head", format_money(document.per_head))

    console.print(Text(title, style="bold"))
    console.print(Text("Customer Details", style="bold yellow"))
    console.print(details)
    console.print(Group(*(_day_table(day) for day in document.days)))
    console.print(Text("Order Totals", style="bold yellow"))
    console.print(totals)
    return console.export_html(inline_styles=True)

