"""Conversion between stored documents and typed models, plus seed data."""

from __future__ import annotations

import base64
from decimal import Decimal, InvalidOperation
from typing import Any

from storefront.constant import (
    INITIAL_CUSTOMER_DETAILS,
    INITIAL_MEDIA_LIBRARY,
    INITIAL_MENU_DATA,
    INITIAL_THEMES,
)
from storefront.models import (
    CustomerDetails,
    Dietary,
    EventDay,
    MediaFile,
    MediaFolder,
    MediaItem,
    MenuCategory,
    MenuItem,
    SavedOrder,
    SavedTotals,
    Theme,
)


def to_decimal(value: Any) -> Decimal:
    """Parse a stored money value; floats go through str to keep cents exact."""
    try:
        parsed = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        return Decimal("0")
    # NaN and Infinity cannot be formatted as money.
    if not parsed.is_finite():
        return Decimal("0")
    return parsed


def dietary_from_raw(raw: dict[str, Any] | None) -> Dietary:
    raw = raw or {}
    spicy = int(raw.get("spicyLevel", 0) or 0)
    return Dietary(
        gluten_free=bool(raw.get("glutenFree", False)),
        vegetarian=bool(raw.get("vegetarian", False)),
        vegan=bool(raw.get("vegan", False)),
        no_seafood=bool(raw.get("noSeafood", True)),
        spicy_level=min(3, max(0, spicy)),
    )


def dietary_to_raw(dietary: Dietary) -> dict[str, Any]:
    return {
        "glutenFree": dietary.gluten_free,
        "vegetarian": dietary.vegetarian,
        "vegan": dietary.vegan,
        "noSeafood": dietary.no_seafood,
        "spicyLevel": dietary.spicy_level,
    }


def menu_item_from_raw(raw: dict[str, Any]) -> MenuItem:
    return MenuItem(
        id=str(raw["id"]),
        name=str(raw.get("name", "")),
        description=str(raw.get("description", "")),
        price=to_decimal(raw.get("price", "0")),
        background_image_id=raw.get("backgroundImageId") or None,
        foreground_image_id=raw.get("foregroundImageId") or None,
        dietary=dietary_from_raw(raw.get("dietary")),
        is_available=bool(raw.get("isAvailable", True)),
    )


def menu_item_to_raw(item: MenuItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "name": item.name,
        "description": item.description,
        "price": str(item.price),
        "backgroundImageId": item.background_image_id,
        "foregroundImageId": item.foreground_image_id,
        "dietary": dietary_to_raw(item.dietary),
        "isAvailable": item.is_available,
    }


def menu_from_raw(raw: list[dict[str, Any]] | None) -> list[MenuCategory]:
    return [
        MenuCategory(
            id=str(category["id"]),
            title=str(category.get("title", "")),
            items=[menu_item_from_raw(item) for item in category.get("items", [])],
        )
        for category in raw or []
    ]


def menu_to_raw(menu: list[MenuCategory]) -> list[dict[str, Any]]:
    return [
        {"id": category.id, "title": category.title, "items": [menu_item_to_raw(item) for item in category.items]}
        for category in menu
    ]


def theme_from_raw(raw: dict[str, Any]) -> Theme:
    return Theme(
        id=str(raw["id"]),
        name=str(raw.get("name", "")),
        background_image=str(raw.get("backgroundImage", "") or ""),
        primary_color=str(raw.get("primaryColor", "amber")),
        secondary_color=str(raw.get("secondaryColor", "indigo")),
        text_color=str(raw.get("textColor", "white")),
    )


def theme_to_raw(theme: Theme) -> dict[str, str]:
    return {
        "id": theme.id,
        "name": theme.name,
        "backgroundImage": theme.background_image,
        "primaryColor": theme.primary_color,
        "secondaryColor": theme.secondary_color,
        "textColor": theme.text_color,
    }


def themes_from_raw(raw: list[dict[str, Any]] | None) -> list[Theme]:
    return [theme_from_raw(theme) for theme in raw or []]


def themes_to_raw(themes: list[Theme]) -> list[dict[str, str]]:
    return [theme_to_raw(theme) for theme in themes]


def coerce_attendees(value: Any) -> int:
    """Clamp an attendee count to an integer of at least one."""
    try:
        count = int(value)
    except (TypeError, ValueError):
        return 1
    return max(1, count)


def customer_from_raw(raw: dict[str, Any] | None) -> CustomerDetails:
    raw = {**INITIAL_CUSTOMER_DETAILS, **(raw or {})}
    return CustomerDetails(
        name=str(raw["name"]),
        email=str(raw["email"]),
        business=str(raw["business"]),
        address=str(raw["address"]),
        contact_number=str(raw["contactNumber"]),
        attendees=coerce_attendees(raw["attendees"]),
        equipment_type=str(raw["equipmentType"]),
        service_type=str(raw["serviceType"]),
        notes=str(raw["notes"]),
    )


def customer_to_raw(details: CustomerDetails) -> dict[str, Any]:
    return {
        "name": details.name,
        "email": details.email,
        "business": details.business,
        "address": details.address,
        "contactNumber": details.contact_number,
        "attendees": details.attendees,
        "equipmentType": details.equipment_type,
        "serviceType": details.service_type,
        "notes": details.notes,
    }


def event_day_from_raw(raw: dict[str, Any]) -> EventDay:
    order: dict[str, int] = {}
    for item_id, qty in (raw.get("order") or {}).items():
        try:
            quantity = int(qty)
        except (TypeError, ValueError):
            continue
        if quantity >= 1:
            order[str(item_id)] = quantity
    return EventDay(
        id=str(raw["id"]),
        label=str(raw.get("label", "")),
        day_date=str(raw.get("dayDate", "")),
        drop_time=str(raw.get("dropTime", "")),
        event=str(raw.get("event", "")),
        notes=str(raw.get("notes", "")),
        order=order,
    )


def event_day_to_raw(day: EventDay) -> dict[str, Any]:
    return {
        "id": day.id,
        "label": day.label,
        "dayDate": day.day_date,
        "dropTime": day.drop_time,
        "event": day.event,
        "notes": day.notes,
        "order": dict(day.order),
    }


def saved_order_from_raw(order_id: str, raw: dict[str, Any]) -> SavedOrder:
    totals = raw.get("totals") or {}
    status = raw.get("status", "sent")
    if status not in ("sent", "modified", "cancelled"):
        status = "sent"
    return SavedOrder(
        id=order_id,
        order_number=str(raw.get("orderNumber", "")),
        timestamp=str(raw.get("timestamp", "")),
        status=status,
        customer_details=customer_from_raw(raw.get("customerDetails")),
        event_days=[event_day_from_raw(day) for day in raw.get("eventDays", [])],
        totals=SavedTotals(
            subtotal=to_decimal(totals.get("subtotal", "0")),
            service_fee=to_decimal(totals.get("serviceFee", "0")),
            gst=to_decimal(totals.get("gst", "0")),
            total=to_decimal(totals.get("total", "0")),
        ),
        email_sent_to=raw.get("emailSentTo"),
        modified_from=raw.get("modifiedFrom"),
        notes=raw.get("notes"),
    )


def saved_order_to_raw(order: SavedOrder) -> dict[str, Any]:
    """Persisted shape; keys and numeric totals are part of the downstream report contract."""
    raw: dict[str, Any] = {
        "orderNumber": order.order_number,
        "timestamp": order.timestamp,
        "status": order.status,
        "customerDetails": customer_to_raw(order.customer_details),
        "eventDays": [event_day_to_raw(day) for day in order.event_days],
        "totals": {
            "subtotal": float(order.totals.subtotal),
            "serviceFee": float(order.totals.service_fee),
            "gst": float(order.totals.gst),
            "total": float(order.totals.total),
        },
    }
    if order.email_sent_to:
        raw["emailSentTo"] = order.email_sent_to
    if order.modified_from:
        raw["modifiedFrom"] = order.modified_from
    if order.notes:
        raw["notes"] = order.notes
    return raw


def bytes_to_data_url(mime_type: str, data: bytes) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def data_url_to_bytes(data_url: str) -> bytes:
    """Decode a base64 data URL; plain base64 text is accepted too."""
    _, sep, payload = data_url.partition(",")
    return base64.b64decode(payload if sep else data_url)


def normalize_media_library(
    node: dict[str, Any], parent_id: str | None = None
) -> tuple[dict[str, MediaItem], dict[str, bytes]]:
    """Flatten a nested folder/file description into id -> item and id -> data."""
    items: dict[str, MediaItem] = {}
    image_data: dict[str, bytes] = {}
    stack: list[tuple[dict[str, Any], str | None]] = [(node, parent_id)]

    while stack:
        current, current_parent = stack.pop()
        if current["type"] == "folder":
            children = list(current.get("children", []))
            items[current["id"]] = MediaFolder(
                id=current["id"],
                name=current["name"],
                children=[child["id"] for child in children],
                parent_id=current_parent,
            )
            stack.extend((child, current["id"]) for child in reversed(children))
        else:
            items[current["id"]] = MediaFile(
                id=current["id"],
                name=current["name"],
                mime_type=current.get("mimeType", "image/png"),
                parent_id=current_parent,
            )
            data = current.get("data")
            if data:
                image_data[current["id"]] = data if isinstance(data, bytes) else data_url_to_bytes(str(data))

    return items, image_data


def initial_menu() -> list[MenuCategory]:
    return menu_from_raw(INITIAL_MENU_DATA)


def initial_themes() -> list[Theme]:
    return themes_from_raw(INITIAL_THEMES)


def initial_media_library() -> tuple[dict[str, MediaItem], dict[str, bytes]]:
    return normalize_media_library(INITIAL_MEDIA_LIBRARY)
