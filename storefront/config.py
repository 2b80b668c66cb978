"""Runtime configuration defaults for persistence, pricing, sync and email."""

from __future__ import annotations

import os
from decimal import Decimal

DB_PATH = os.environ.get("STOREFRONT_DB_PATH", "data/storefront.db")
DEBUG_LOG_PATH = os.environ.get("STOREFRONT_DEBUG_LOG", "/tmp/storefront-debug.log")

DEFAULT_APP_TITLE = "Nidys Thai Van and Catering"
LEGACY_APP_TITLE = "My Restaurant"

# Pricing rules.
GST_RATE = Decimal("0.10")
SERVICE_FEES: dict[str, Decimal] = {
    "Delivery": Decimal("40"),
    "Full Service": Decimal("100"),
    "Pickup": Decimal("0"),
}
MINIMUM_ORDER_QUANTITY = 6
NEW_MENU_ITEM_PRICE = Decimal("9.99")

# Bulk-state writes are coalesced this long after the last local change.
SYNC_DEBOUNCE_SECONDS = 0.3
SAVING_INDICATOR_SECONDS = 1.0

# Transactional email (EmailJS REST API).
EMAILJS_API_URL = "https://api.emailjs.com/api/v1.0/email/send"
EMAIL_TIMEOUT_SECONDS = 15.0

# Document export.
EXPORT_WIDTH_PX = 794
EXPORT_FONT_SIZE = 18
EXPORT_FONT_PATH = "/System/Library/Fonts/Helvetica.ttc"
EXPORT_MARGIN_PX = 40
EXPORT_DIR = os.environ.get("STOREFRONT_EXPORT_DIR", "exports")
