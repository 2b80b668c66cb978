from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable

import pytest

from storefront.catalog import MenuCatalog
from storefront.data import initial_media_library
from storefront.history import OrderHistoryStore
from storefront.media import MediaTree
from storefront.models import MenuCategory, MenuItem
from storefront.orders import OrderEngine
from storefront.persistence import DocumentStore, MediaStore, bootstrap_schema

FIXED_NOW = datetime(2025, 7, 14, 9, 30, tzinfo=timezone.utc)


class _ManualHandle:
    def __init__(self, scheduler: ManualScheduler, delay: float, callback: Callable[[], None]) -> None:
        self.scheduler = scheduler
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Collects timers so tests decide when debounced writes fire."""

    def __init__(self) -> None:
        self.handles: list[_ManualHandle] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> _ManualHandle:
        handle = _ManualHandle(self, delay, callback)
        self.handles.append(handle)
        return handle

    @property
    def pending(self) -> list[_ManualHandle]:
        return [handle for handle in self.handles if not handle.cancelled]

    def run_all(self) -> int:
        ran = 0
        while self.pending:
            handles, self.handles = self.pending, []
            for handle in handles:
                handle.callback()
                ran += 1
        return ran


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def db_path(tmp_path):
    path = tmp_path / "storefront.db"
    bootstrap_schema(path)
    return path


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def documents(db_path) -> DocumentStore:
    return DocumentStore(db_path)


@pytest.fixture
def catalog(documents, scheduler):
    catalog = MenuCatalog(documents, scheduler=scheduler)
    catalog.start()
    yield catalog
    catalog.stop()


@pytest.fixture
def media_store(db_path) -> MediaStore:
    store = MediaStore(db_path)
    items, image_data = initial_media_library()
    store.seed_if_empty(items, image_data)
    return store


@pytest.fixture
def media(media_store):
    tree = MediaTree(media_store)
    tree.start()
    yield tree
    tree.stop()


@pytest.fixture
def history(db_path) -> OrderHistoryStore:
    store = OrderHistoryStore(db_path)
    store.refresh()
    return store


@pytest.fixture
def pricing_menu() -> list[MenuCategory]:
    return [
        MenuCategory(
            id="cat-a",
            title="Mains",
            items=[
                MenuItem(id="a", name="Item A", description="", price=Decimal("10.00")),
                MenuItem(id="b", name="Item B", description="", price=Decimal("5.00")),
            ],
        ),
        MenuCategory(
            id="cat-b",
            title="Drinks",
            items=[
                MenuItem(id="c", name="Item C", description="", price=Decimal("2.50"), is_available=False),
            ],
        ),
    ]


@pytest.fixture
def engine(pricing_menu, history) -> OrderEngine:
    return OrderEngine(lambda: pricing_menu, history, clock=lambda: FIXED_NOW)
