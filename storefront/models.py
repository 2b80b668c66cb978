"""Domain models for the catering storefront."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Literal

from storefront.constant import DEFAULT_DAY_ID

OrderStatus = Literal["sent", "modified", "cancelled"]


@dataclass
class Dietary:
    """Dietary flags shown on a menu card."""

    gluten_free: bool = False
    vegetarian: bool = False
    vegan: bool = False
    no_seafood: bool = True
    spicy_level: int = 0


@dataclass
class MenuItem:
    """A priced dish in the catalog."""

    id: str
    name: str
    description: str
    price: Decimal
    background_image_id: str | None = None
    foreground_image_id: str | None = None
    dietary: Dietary = field(default_factory=Dietary)
    is_available: bool = True


@dataclass
class MenuCategory:
    id: str
    title: str
    items: list[MenuItem] = field(default_factory=list)


@dataclass
class EventDay:
    """One independently priced order bucket."""

    id: str
    label: str
    day_date: str = ""
    drop_time: str = ""
    event: str = ""
    notes: str = ""
    order: dict[str, int] = field(default_factory=dict)


def default_event_day() -> EventDay:
    return EventDay(id=DEFAULT_DAY_ID, label="Order 1")


@dataclass
class CustomerDetails:
    """Customer record shared by every event day of a session."""

    name: str = ""
    email: str = ""
    business: str = ""
    address: str = ""
    contact_number: str = ""
    attendees: int = 1
    equipment_type: str = "Takeaway"
    service_type: str = "Delivery"
    notes: str = ""


@dataclass
class Theme:
    id: str
    name: str
    background_image: str = ""
    primary_color: str = "amber"
    secondary_color: str = "indigo"
    text_color: str = "white"


@dataclass
class MediaFile:
    """File metadata; binary data lives beside the tree."""

    id: str
    name: str
    mime_type: str = "image/png"
    parent_id: str | None = None
    type: Literal["file"] = "file"


@dataclass
class MediaFolder:
    id: str
    name: str
    children: list[str] = field(default_factory=list)
    parent_id: str | None = None
    type: Literal["folder"] = "folder"


MediaItem = MediaFile | MediaFolder


@dataclass(frozen=True)
class SavedTotals:
    subtotal: Decimal
    service_fee: Decimal
    gst: Decimal
    total: Decimal


@dataclass
class SavedOrder:
    """Snapshot of an order taken when it was sent."""

    id: str
    order_number: str
    timestamp: str
    status: OrderStatus
    customer_details: CustomerDetails
    event_days: list[EventDay]
    totals: SavedTotals
    email_sent_to: str | None = None
    modified_from: str | None = None
    notes: str | None = None
