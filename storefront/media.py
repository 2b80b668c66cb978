"""Media library tree mirrored from the media store."""

from __future__ import annotations

import io
import logging
from collections import deque
from typing import Callable
from uuid import uuid4

from PIL import Image, UnidentifiedImageError

from storefront.constant import ROOT_FOLDER_ID
from storefront.errors import BusinessRuleError, StoreError
from storefront.models import MediaFile, MediaFolder, MediaItem
from storefront.persistence import MediaSnapshot, MediaStore
from storefront.subscription import Broadcaster, Unsubscribe

logger = logging.getLogger(__name__)

COPY_SUFFIX = " (copy)"


def sniff_mime_type(data: bytes, fallback: str = "image/png") -> str:
    """Detect an image MIME type from its bytes with Pillow."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            mime = Image.MIME.get(img.format or "")
    except (UnidentifiedImageError, OSError, ValueError):
        return fallback
    return mime or fallback


def new_media_id(kind: str) -> str:
    return f"{kind}-{uuid4().hex[:12]}"


class MediaTree:
    """
    Read view plus mutation wrappers over the media store.

    `items` and `image_map` are replaced wholesale whenever the store
    rebroadcasts; mutations are validated against the current view and then
    handed to the store, whose next snapshot is the canonical state.
    Every mutation returns True when it was issued and False when rejected.
    """

    def __init__(self, store: MediaStore) -> None:
        self.store = store
        self.items: dict[str, MediaItem] = {}
        self.image_map: dict[str, str] = {}
        self.loading = True
        self.last_error: Exception | None = None
        self._changes: Broadcaster[MediaSnapshot] = Broadcaster("media-tree")
        self._unsubscribe: Unsubscribe | None = None

    def start(self) -> None:
        self._unsubscribe = self.store.subscribe(self._on_snapshot, self._on_error)

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def observe(self, listener: Callable[[MediaSnapshot], None]) -> Unsubscribe:
        return self._changes.subscribe(listener)

    def _on_snapshot(self, snapshot: MediaSnapshot) -> None:
        self.items = snapshot.items
        self.image_map = snapshot.image_map
        self.loading = False
        self.last_error = None
        self._changes.publish(snapshot)

    def _on_error(self, exc: Exception) -> None:
        # Keep the last-known tree.
        logger.error("media subscription failed error=%r", exc)
        self.last_error = exc
        self.loading = False

    def get_item(self, item_id: str) -> MediaItem | None:
        return self.items.get(item_id)

    def get_folder(self, folder_id: str) -> MediaFolder | None:
        item = self.items.get(folder_id)
        return item if isinstance(item, MediaFolder) else None

    def get_folder_contents(self, folder_id: str) -> list[MediaItem]:
        folder = self.get_folder(folder_id)
        if folder is None:
            return []
        # Children not yet present in the snapshot are skipped.
        return [self.items[child_id] for child_id in folder.children if child_id in self.items]

    def breadcrumbs(self, folder_id: str) -> list[MediaItem]:
        """Root-to-current path; stops on a missing lookup or a revisited id."""
        path: list[MediaItem] = []
        seen: set[str] = set()
        current = self.items.get(folder_id)
        while current is not None and current.id not in seen:
            seen.add(current.id)
            path.append(current)
            current = self.items.get(current.parent_id) if current.parent_id else None
        path.reverse()
        return path

    def is_descendant(self, candidate_id: str, ancestor_id: str) -> bool:
        """True when walking up from candidate reaches ancestor."""
        seen: set[str] = set()
        current = self.items.get(candidate_id)
        while current is not None and current.parent_id and current.id not in seen:
            if current.parent_id == ancestor_id:
                return True
            seen.add(current.id)
            current = self.items.get(current.parent_id)
        return False

    def add_file(self, meta: MediaFile, data: bytes, parent_id: str) -> bool:
        if self.get_folder(parent_id) is None:
            logger.warning("add_file rejected id=%s parent=%s reason=no_such_folder", meta.id, parent_id)
            return False
        mime_type = meta.mime_type or sniff_mime_type(data)
        item = MediaFile(id=meta.id, name=meta.name, mime_type=mime_type, parent_id=parent_id)
        return self._issue("add_file", lambda: self.store.create_item(item, data))

    def add_folder(self, meta: MediaFolder, parent_id: str) -> bool:
        if self.get_folder(parent_id) is None:
            logger.warning("add_folder rejected id=%s parent=%s reason=no_such_folder", meta.id, parent_id)
            return False
        folder = MediaFolder(id=meta.id, name=meta.name, children=[], parent_id=parent_id)
        return self._issue("add_folder", lambda: self.store.create_item(folder))

    def rename(self, item_id: str, new_name: str) -> bool:
        if item_id not in self.items:
            return False
        return self._issue("rename", lambda: self.store.rename(item_id, new_name))

    def collect_subtree(self, item_id: str) -> list[str]:
        """Breadth-first list of an item and everything beneath it."""
        collected: list[str] = []
        seen: set[str] = set()
        queue = deque([item_id])
        while queue:
            current_id = queue.popleft()
            if current_id in seen:
                continue
            seen.add(current_id)
            collected.append(current_id)
            item = self.items.get(current_id)
            if isinstance(item, MediaFolder):
                queue.extend(item.children)
        return collected

    def delete(self, item_id: str, is_referenced: Callable[[str], bool] | None = None) -> bool:
        """
        Delete an item and its whole subtree.

        Root is never deleted. When `is_referenced` is given, a file it reports
        as in use blocks the delete with a BusinessRuleError.
        """
        if item_id == ROOT_FOLDER_ID:
            return False
        item = self.items.get(item_id)
        if item is None:
            return False
        subtree = self.collect_subtree(item_id)
        if is_referenced is not None:
            for each in subtree:
                if isinstance(self.items.get(each), MediaFile) and is_referenced(each):
                    raise BusinessRuleError(
                        "This image is currently in use by a menu item or theme and cannot be deleted."
                    )
        return self._issue("delete", lambda: self.store.delete_items(item_id, subtree, item.parent_id))

    def move(self, item_id: str, new_parent_id: str) -> bool:
        if item_id == new_parent_id:
            return False
        item = self.items.get(item_id)
        new_parent = self.get_folder(new_parent_id)
        if item is None or new_parent is None or not item.parent_id:
            return False
        if item.parent_id == new_parent_id:
            return False
        if self.is_descendant(new_parent_id, item_id):
            logger.info("move rejected id=%s to=%s reason=cycle", item_id, new_parent_id)
            return False
        return self._issue("move", lambda: self.store.move(item_id, item.parent_id, new_parent_id))

    def duplicate(self, file_id: str) -> bool:
        item = self.items.get(file_id)
        if not isinstance(item, MediaFile) or not item.parent_id:
            return False
        try:
            data = self.store.read_blob(file_id)
        except StoreError as exc:
            self.last_error = exc
            return False
        if data is None:
            return False
        copy = MediaFile(id=new_media_id("file"), name=f"{item.name}{COPY_SUFFIX}", mime_type=item.mime_type)
        return self.add_file(copy, data, item.parent_id)

    def _issue(self, action: str, write: Callable[[], None]) -> bool:
        try:
            write()
        except StoreError as exc:
            logger.error("media %s failed error=%s", action, exc)
            self.last_error = exc
            return False
        return True
