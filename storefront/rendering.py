"""Rendering helpers shared by the app panes and the HTML export."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from rich.text import Text

from storefront.config import MINIMUM_ORDER_QUANTITY
from storefront.constant import DIETARY_TAGS
from storefront.models import MenuItem
from storefront.pricing import needs_minimum_warning

MINIMUM_WARNING_LABEL = f"Min {MINIMUM_ORDER_QUANTITY}!"
CENTS = Decimal("0.01")


def format_money(amount: Decimal) -> str:
    return f"${amount.quantize(CENTS, rounding=ROUND_HALF_UP):,.2f}"


def quantity_style(quantity: int) -> str:
    """Warning colour below the minimum order quantity."""
    if needs_minimum_warning(quantity):
        return "bold #ef4444"
    return "bold #22c55e"


def format_quantity(quantity: int) -> Text:
    text = Text(str(quantity), style=quantity_style(quantity))
    if needs_minimum_warning(quantity):
        text.append(f" {MINIMUM_WARNING_LABEL}", style="#ef4444")
    return text


def status_style(status: str) -> str:
    if status == "modified":
        return "bold #0b1f0f on #facc15"
    if status == "cancelled":
        return "bold #ffffff on #b23a48"
    return "bold #ffffff on #2f6db5"


def format_status(status: str) -> Text:
    return Text(f" {status} ", style=status_style(status))


def format_dietary_tags(item: MenuItem) -> Text:
    text = Text()
    for attr, tag in DIETARY_TAGS.items():
        if getattr(item.dietary, attr):
            if text:
                text.append(" ")
            text.append(tag, style="bold #0b1f0f on #5fbf72")
    if item.dietary.spicy_level:
        if text:
            text.append(" ")
        text.append("🌶" * item.dietary.spicy_level, style="#ef4444")
    return text


def format_menu_row(item: MenuItem, quantity: int, pointer: bool, show_images: bool = False) -> Text:
    text = Text("➤ " if pointer else "  ")
    style = "" if item.is_available else "dim strike"
    text.append(item.name, style=style)
    text.append(f"  {format_money(item.price)}", style="dim" if not item.is_available else "")
    if not item.is_available:
        text.append("  unavailable", style="italic #9ca3af")
    tags = format_dietary_tags(item)
    if tags:
        text.append("  ")
        text.append_text(tags)
    if show_images:
        images = [label for label, image_id in (("fg", item.foreground_image_id), ("bg", item.background_image_id)) if image_id]
        if images:
            text.append(f"  [{' '.join(images)}]", style="italic #93c5fd")
    if quantity:
        text.append("  × ")
        text.append_text(format_quantity(quantity))
    return text


THEME_COLORS = {
    "amber": "#f59e0b",
    "indigo": "#6366f1",
    "cyan": "#06b6d4",
    "blue": "#3b82f6",
    "emerald": "#10b981",
    "rose": "#f43f5e",
    "violet": "#8b5cf6",
    "slate": "#64748b",
    "white": "#ffffff",
    "black": "#000000",
}


def theme_color(name: str, fallback: str = "#f59e0b") -> str:
    """Resolve a theme colour name or hex value to a hex colour."""
    if name.startswith("#"):
        return name
    return THEME_COLORS.get(name.lower(), fallback)
