"""One storefront session: stores, catalog, media tree, history and order engine."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable

from storefront.catalog import MenuCatalog
from storefront.config import DB_PATH
from storefront.data import initial_media_library
from storefront.emailer import EmailConfig, EmailJsSender
from storefront.errors import StoreError
from storefront.history import OrderHistoryStore
from storefront.media import MediaTree
from storefront.orders import OrderEngine, _utc_now
from storefront.persistence import DocumentStore, MediaStore, bootstrap_schema
from storefront.sync import Scheduler

logger = logging.getLogger(__name__)


@dataclass
class Session:
    """Constructed once and handed to whatever needs session-wide state."""

    documents: DocumentStore
    catalog: MenuCatalog
    media_store: MediaStore
    media: MediaTree
    history: OrderHistoryStore
    engine: OrderEngine
    sender: EmailJsSender
    _unsubscribers: list[Callable[[], None]] = field(default_factory=list)

    def start(self) -> None:
        self.catalog.start()
        self.media.start()
        self._unsubscribers.append(self.history.subscribe(lambda _orders: None, self._on_history_error))

    def close(self) -> None:
        """Stop listening and flush pending catalog writes; in-flight writes are not cancelled."""
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        self.media.stop()
        self.catalog.stop()

    def _on_history_error(self, exc: Exception) -> None:
        logger.error("order history unavailable error=%r", exc)


def create_session(
    db_path: str | Path = DB_PATH,
    scheduler: Scheduler | None = None,
    sender: EmailJsSender | None = None,
    clock: Callable[[], datetime] = _utc_now,
    start: bool = True,
) -> Session:
    bootstrap_schema(db_path)
    documents = DocumentStore(db_path)
    media_store = MediaStore(db_path)
    try:
        items, image_data = initial_media_library()
        media_store.seed_if_empty(items, image_data)
    except StoreError as exc:
        logger.error("media seed skipped error=%s", exc)
    catalog = MenuCatalog(documents, scheduler=scheduler)
    history = OrderHistoryStore(db_path)
    session = Session(
        documents=documents,
        catalog=catalog,
        media_store=media_store,
        media=MediaTree(media_store),
        history=history,
        engine=OrderEngine(lambda: catalog.menu, history, clock=clock),
        sender=sender or EmailJsSender(EmailConfig.from_env()),
    )
    if start:
        session.start()
    logger.info("session created db=%s", db_path)
    return session
