"""Append-only order history with live subscription and status updates."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, Protocol
from uuid import uuid4

from storefront.config import DB_PATH
from storefront.constant import ORDER_STATUSES
from storefront.data import saved_order_from_raw, saved_order_to_raw
from storefront.errors import StoreError
from storefront.models import SavedOrder
from storefront.persistence import insert_order, load_orders, update_order_status
from storefront.subscription import Broadcaster, ErrorListener, Unsubscribe

logger = logging.getLogger(__name__)


class OrderHistory(Protocol):
    """What the order engine needs from a history backend."""

    @property
    def orders(self) -> list[SavedOrder]: ...

    def append(self, snapshot: SavedOrder) -> str: ...

    def set_status(self, order_id: str, status: str) -> None: ...


class OrderHistoryStore:
    """SQLite-backed order log; `orders` is the last broadcast list, newest first."""

    def __init__(self, db_path: str | Path = DB_PATH) -> None:
        self.db_path = db_path
        self.orders: list[SavedOrder] = []
        self.loading = True
        self._channel: Broadcaster[list[SavedOrder]] = Broadcaster("orders")

    def refresh(self) -> list[SavedOrder]:
        try:
            rows = load_orders(self.db_path)
        except StoreError as exc:
            self.loading = False
            self._channel.publish_error(exc)
            return self.orders
        self.orders = [saved_order_from_raw(order_id, raw) for order_id, raw in rows]
        self.loading = False
        self._channel.publish(list(self.orders))
        return self.orders

    def subscribe(self, on_orders: Callable[[list[SavedOrder]], None], on_error: ErrorListener | None = None) -> Unsubscribe:
        unsubscribe = self._channel.subscribe(on_orders, on_error)
        try:
            rows = load_orders(self.db_path)
        except StoreError as exc:
            self.loading = False
            if on_error is not None:
                on_error(exc)
            return unsubscribe
        self.orders = [saved_order_from_raw(order_id, raw) for order_id, raw in rows]
        self.loading = False
        on_orders(list(self.orders))
        return unsubscribe

    def append(self, snapshot: SavedOrder) -> str:
        """Persist a snapshot under a fresh id and return that id."""
        order_id = uuid4().hex
        insert_order(self.db_path, order_id, saved_order_to_raw(snapshot))
        logger.info("order saved order_id=%s number=%s", order_id, snapshot.order_number)
        self.refresh()
        return order_id

    def set_status(self, order_id: str, status: str) -> None:
        if status not in ORDER_STATUSES:
            raise ValueError(f"Unknown order status: {status!r}")
        if not update_order_status(self.db_path, order_id, status):
            logger.warning("status update for unknown order order_id=%s", order_id)
            return
        logger.info("order status order_id=%s status=%s", order_id, status)
        self.refresh()

    def get(self, order_id: str) -> SavedOrder | None:
        for order in self.orders:
            if order.id == order_id:
                return order
        return None

    def lineage(self, order_id: str) -> list[SavedOrder]:
        """Follow `modified_from` links back from an order, newest first."""
        chain: list[SavedOrder] = []
        seen: set[str] = set()
        current = self.get(order_id)
        while current is not None and current.id not in seen:
            seen.add(current.id)
            chain.append(current)
            current = self.get(current.modified_from) if current.modified_from else None
        return chain


def generate_order_number(existing: Iterable[SavedOrder], now: datetime) -> str:
    """ORD-YYYYMM-NNN where NNN counts existing snapshots from the same year."""
    year = str(now.year)
    count = sum(1 for order in existing if order.timestamp.startswith(year)) + 1
    return f"ORD-{now.year}{now.month:02d}-{count:03d}"


def filter_orders(orders: Iterable[SavedOrder], status: str = "all", query: str = "") -> list[SavedOrder]:
    filtered = list(orders)
    if status != "all":
        filtered = [order for order in filtered if order.status == status]
    needle = query.strip().lower()
    if needle:
        filtered = [
            order
            for order in filtered
            if needle in order.customer_details.name.lower()
            or needle in order.order_number.lower()
            or needle in order.customer_details.email.lower()
        ]
    return filtered


def status_counts(orders: Iterable[SavedOrder]) -> dict[str, int]:
    counts = {status: 0 for status in ORDER_STATUSES}
    for order in orders:
        counts[order.status] = counts.get(order.status, 0) + 1
    return counts
