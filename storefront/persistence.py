"""SQLite persistence standing in for the hosted document, media and order stores."""

from __future__ import annotations

import json
import logging
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterable

from storefront.config import DB_PATH
from storefront.constant import ROOT_FOLDER_ID, ROOT_FOLDER_NAME
from storefront.data import bytes_to_data_url
from storefront.errors import StoreError
from storefront.models import MediaFile, MediaFolder, MediaItem
from storefront.subscription import Broadcaster, ErrorListener, Unsubscribe

logger = logging.getLogger(__name__)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _connect(db_path: str | Path = DB_PATH) -> sqlite3.Connection:
    db_file = Path(db_path)
    db_file.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_file)
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def bootstrap_schema(db_path: str | Path = DB_PATH) -> None:
    """Create persistence schema if it does not already exist."""
    try:
        with _connect(db_path) as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS app_data (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS media_items (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    type TEXT NOT NULL CHECK (type IN ('folder', 'file')),
                    mime_type TEXT,
                    parent_id TEXT,
                    children TEXT NOT NULL DEFAULT '[]',
                    created_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS media_blobs (
                    id TEXT PRIMARY KEY,
                    data BLOB NOT NULL,
                    FOREIGN KEY(id) REFERENCES media_items(id) ON DELETE CASCADE
                );

                CREATE TABLE IF NOT EXISTS orders (
                    id TEXT PRIMARY KEY,
                    order_number TEXT NOT NULL,
                    timestamp TEXT NOT NULL,
                    status TEXT NOT NULL,
                    payload TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_orders_timestamp
                    ON orders(timestamp);

                CREATE INDEX IF NOT EXISTS idx_media_items_parent
                    ON media_items(parent_id);
                """
            )
            order_columns = {row[1] for row in conn.execute("PRAGMA table_info(orders)")}
            if "modified_from" not in order_columns:
                conn.execute("ALTER TABLE orders ADD COLUMN modified_from TEXT")
    except sqlite3.Error as exc:
        logger.exception("schema bootstrap failed db=%s", db_path)
        raise StoreError(f"Could not prepare database {db_path}: {exc}") from exc


class DocumentStore:
    """Keyed JSON documents with get, set-with-merge and live subscription."""

    def __init__(self, db_path: str | Path = DB_PATH) -> None:
        self.db_path = db_path
        self._channels: dict[str, Broadcaster[Any]] = {}

    def _channel(self, key: str) -> Broadcaster[Any]:
        channel = self._channels.get(key)
        if channel is None:
            channel = Broadcaster(f"app_data/{key}")
            self._channels[key] = channel
        return channel

    def get(self, key: str) -> Any | None:
        """Return the stored value, or None when the document does not exist."""
        try:
            with _connect(self.db_path) as conn:
                row = conn.execute("SELECT value FROM app_data WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as exc:
            logger.exception("document read failed key=%s", key)
            raise StoreError(f"Could not read {key}: {exc}") from exc
        if row is None:
            return None
        return json.loads(row[0])["value"]

    def set(self, key: str, value: Any, merge: bool = True) -> None:
        try:
            with _connect(self.db_path) as conn:
                with conn:
                    if merge and isinstance(value, dict):
                        row = conn.execute("SELECT value FROM app_data WHERE key = ?", (key,)).fetchone()
                        current = json.loads(row[0])["value"] if row else None
                        if isinstance(current, dict):
                            value = {**current, **value}
                    conn.execute(
                        """
                        INSERT INTO app_data (key, value, updated_at) VALUES (?, ?, ?)
                        ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                        """,
                        (key, json.dumps({"value": value}), _utc_now_iso()),
                    )
        except sqlite3.Error as exc:
            logger.exception("document write failed key=%s", key)
            self._channel(key).publish_error(StoreError(str(exc)))
            raise StoreError(f"Could not write {key}: {exc}") from exc
        self._channel(key).publish(value)

    def subscribe(self, key: str, on_value: Callable[[Any], None], on_error: ErrorListener | None = None) -> Unsubscribe:
        """Register a listener and deliver the current value immediately."""
        unsubscribe = self._channel(key).subscribe(on_value, on_error)
        try:
            value = self.get(key)
        except StoreError as exc:
            if on_error is not None:
                on_error(exc)
            return unsubscribe
        on_value(value)
        return unsubscribe


@dataclass(frozen=True)
class MediaSnapshot:
    """Full state of the media collection as last broadcast by the store."""

    items: dict[str, MediaItem]
    image_map: dict[str, str]


class MediaStore:
    """Folder/file metadata and blobs; every tree operation is one transaction."""

    def __init__(self, db_path: str | Path = DB_PATH) -> None:
        self.db_path = db_path
        self._channel: Broadcaster[MediaSnapshot] = Broadcaster("media")

    def seed_if_empty(self, items: dict[str, MediaItem], image_data: dict[str, bytes]) -> bool:
        try:
            with _connect(self.db_path) as conn:
                with conn:
                    existing = conn.execute("SELECT COUNT(*) FROM media_items").fetchone()[0]
                    if existing:
                        return False
                    for item in items.values():
                        self._insert_item(conn, item)
                        if item.id in image_data:
                            conn.execute(
                                "INSERT INTO media_blobs (id, data) VALUES (?, ?)", (item.id, image_data[item.id])
                            )
        except sqlite3.Error as exc:
            logger.exception("media seed failed")
            raise StoreError(f"Could not seed media library: {exc}") from exc
        logger.info("media library seeded items=%d", len(items))
        return True

    def snapshot(self) -> MediaSnapshot:
        try:
            with _connect(self.db_path) as conn:
                rows = conn.execute(
                    "SELECT id, name, type, mime_type, parent_id, children FROM media_items ORDER BY created_at, id"
                ).fetchall()
                blobs = dict(conn.execute("SELECT id, data FROM media_blobs").fetchall())
                if not any(row[0] == ROOT_FOLDER_ID for row in rows):
                    with conn:
                        self._insert_item(conn, MediaFolder(id=ROOT_FOLDER_ID, name=ROOT_FOLDER_NAME))
                    rows.append((ROOT_FOLDER_ID, ROOT_FOLDER_NAME, "folder", None, None, "[]"))
        except sqlite3.Error as exc:
            logger.exception("media read failed")
            raise StoreError(f"Could not read media library: {exc}") from exc

        items: dict[str, MediaItem] = {}
        image_map: dict[str, str] = {}
        for item_id, name, kind, mime_type, parent_id, children in rows:
            if kind == "folder":
                items[item_id] = MediaFolder(id=item_id, name=name, children=json.loads(children), parent_id=parent_id)
                continue
            items[item_id] = MediaFile(id=item_id, name=name, mime_type=mime_type or "image/png", parent_id=parent_id)
            if item_id in blobs:
                image_map[item_id] = bytes_to_data_url(mime_type or "image/png", blobs[item_id])
        return MediaSnapshot(items=items, image_map=image_map)

    def subscribe(self, on_snapshot: Callable[[MediaSnapshot], None], on_error: ErrorListener | None = None) -> Unsubscribe:
        unsubscribe = self._channel.subscribe(on_snapshot, on_error)
        try:
            snapshot = self.snapshot()
        except StoreError as exc:
            if on_error is not None:
                on_error(exc)
            return unsubscribe
        on_snapshot(snapshot)
        return unsubscribe

    def read_blob(self, item_id: str) -> bytes | None:
        try:
            with _connect(self.db_path) as conn:
                row = conn.execute("SELECT data FROM media_blobs WHERE id = ?", (item_id,)).fetchone()
        except sqlite3.Error as exc:
            logger.exception("blob read failed id=%s", item_id)
            raise StoreError(f"Could not read data for {item_id}: {exc}") from exc
        return None if row is None else bytes(row[0])

    def create_item(self, item: MediaItem, data: bytes | None = None) -> None:
        """Insert a file or folder and append it to its parent's children."""

        def apply(conn: sqlite3.Connection) -> None:
            self._insert_item(conn, item)
            if data is not None:
                conn.execute("INSERT INTO media_blobs (id, data) VALUES (?, ?)", (item.id, data))
            if item.parent_id is not None:
                children = self._children(conn, item.parent_id)
                children.append(item.id)
                self._set_children(conn, item.parent_id, children)

        self._write(f"create id={item.id}", apply)

    def rename(self, item_id: str, new_name: str) -> None:
        self._write(
            f"rename id={item_id}",
            lambda conn: conn.execute("UPDATE media_items SET name = ? WHERE id = ?", (new_name, item_id)),
        )

    def delete_items(self, item_id: str, subtree_ids: Iterable[str], parent_id: str | None) -> None:
        """Delete a collected subtree and detach its top from the former parent."""
        ids = list(subtree_ids)

        def apply(conn: sqlite3.Connection) -> None:
            conn.executemany("DELETE FROM media_items WHERE id = ?", [(each,) for each in ids])
            if parent_id is not None:
                children = [child for child in self._children(conn, parent_id) if child != item_id]
                self._set_children(conn, parent_id, children)

        self._write(f"delete id={item_id} count={len(ids)}", apply)

    def move(self, item_id: str, old_parent_id: str, new_parent_id: str) -> None:
        def apply(conn: sqlite3.Connection) -> None:
            conn.execute("UPDATE media_items SET parent_id = ? WHERE id = ?", (new_parent_id, item_id))
            old_children = [child for child in self._children(conn, old_parent_id) if child != item_id]
            self._set_children(conn, old_parent_id, old_children)
            new_children = [child for child in self._children(conn, new_parent_id) if child != item_id]
            new_children.append(item_id)
            self._set_children(conn, new_parent_id, new_children)

        self._write(f"move id={item_id} to={new_parent_id}", apply)

    def _write(self, action: str, apply: Callable[[sqlite3.Connection], Any]) -> None:
        try:
            with _connect(self.db_path) as conn:
                with conn:
                    apply(conn)
        except sqlite3.Error as exc:
            logger.exception("media write failed %s", action)
            raise StoreError(f"Media update failed ({action}): {exc}") from exc
        logger.debug("media write %s", action)
        self._rebroadcast()

    def _rebroadcast(self) -> None:
        try:
            snapshot = self.snapshot()
        except StoreError as exc:
            self._channel.publish_error(exc)
            return
        self._channel.publish(snapshot)

    @staticmethod
    def _insert_item(conn: sqlite3.Connection, item: MediaItem) -> None:
        if isinstance(item, MediaFolder):
            conn.execute(
                """
                INSERT INTO media_items (id, name, type, mime_type, parent_id, children, created_at)
                VALUES (?, ?, 'folder', NULL, ?, ?, ?)
                """,
                (item.id, item.name, item.parent_id, json.dumps(item.children), _utc_now_iso()),
            )
            return
        conn.execute(
            """
            INSERT INTO media_items (id, name, type, mime_type, parent_id, children, created_at)
            VALUES (?, ?, 'file', ?, ?, '[]', ?)
            """,
            (item.id, item.name, item.mime_type, item.parent_id, _utc_now_iso()),
        )

    @staticmethod
    def _children(conn: sqlite3.Connection, folder_id: str) -> list[str]:
        row = conn.execute(
            "SELECT children FROM media_items WHERE id = ? AND type = 'folder'", (folder_id,)
        ).fetchone()
        return [] if row is None else list(json.loads(row[0]))

    @staticmethod
    def _set_children(conn: sqlite3.Connection, folder_id: str, children: list[str]) -> None:
        conn.execute("UPDATE media_items SET children = ? WHERE id = ?", (json.dumps(children), folder_id))


def insert_order(db_path: str | Path, order_id: str, raw: dict[str, Any]) -> None:
    """Persist one order snapshot."""
    try:
        with _connect(db_path) as conn:
            with conn:
                conn.execute(
                    """
                    INSERT INTO orders (id, order_number, timestamp, status, modified_from, payload)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        order_id,
                        raw["orderNumber"],
                        raw["timestamp"],
                        raw["status"],
                        raw.get("modifiedFrom"),
                        json.dumps(raw),
                    ),
                )
    except sqlite3.Error as exc:
        logger.exception("order insert failed order_id=%s", order_id)
        raise StoreError(f"Could not save order: {exc}") from exc


def update_order_status(db_path: str | Path, order_id: str, status: str) -> bool:
    """Update status for a persisted order; False when the id is unknown."""
    try:
        with _connect(db_path) as conn:
            with conn:
                cur = conn.execute("UPDATE orders SET status = ? WHERE id = ?", (status, order_id))
    except sqlite3.Error as exc:
        logger.exception("order status update failed order_id=%s", order_id)
        raise StoreError(f"Could not update order {order_id}: {exc}") from exc
    return cur.rowcount > 0


def load_orders(db_path: str | Path) -> list[tuple[str, dict[str, Any]]]:
    """Return (id, payload) pairs newest first; the status column wins over the payload."""
    try:
        with _connect(db_path) as conn:
            rows = conn.execute("SELECT id, status, payload FROM orders ORDER BY timestamp DESC, rowid DESC").fetchall()
    except sqlite3.Error as exc:
        logger.exception("order read failed")
        raise StoreError(f"Could not load orders: {exc}") from exc
    result = []
    for order_id, status, payload in rows:
        raw = json.loads(payload)
        raw["status"] = status
        result.append((order_id, raw))
    return result
