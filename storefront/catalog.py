"""Menu catalog, themes and app title kept in local state and synced to the document store."""

from __future__ import annotations

import logging
import time
from dataclasses import replace
from typing import Any
from uuid import uuid4

from storefront.config import DEFAULT_APP_TITLE, LEGACY_APP_TITLE, NEW_MENU_ITEM_PRICE, SAVING_INDICATOR_SECONDS
from storefront.data import initial_menu, initial_themes, menu_from_raw, menu_to_raw, themes_from_raw, themes_to_raw
from storefront.errors import BusinessRuleError
from storefront.models import Dietary, MenuCategory, MenuItem, Theme
from storefront.persistence import DocumentStore
from storefront.sync import DocumentSync, LocalState, Scheduler

logger = logging.getLogger(__name__)

MENU_KEY = "menuData"
THEMES_KEY = "themes"
ACTIVE_THEME_KEY = "activeThemeId"
APP_TITLE_KEY = "appTitle"

MENU_ITEM_FIELDS = (
    "name",
    "description",
    "price",
    "background_image_id",
    "foreground_image_id",
    "dietary",
    "is_available",
)


def _new_item_id() -> str:
    return f"item-{int(time.time() * 1000)}-{uuid4().hex[:7]}"


def new_theme(name: str) -> Theme:
    """A theme with the default colours and no background image."""
    return Theme(id=f"theme-{int(time.time() * 1000)}-{uuid4().hex[:7]}", name=name)


class MenuCatalog:
    """
    Admin-editable catalog state.

    Each piece of state is a LocalState that updates synchronously; the
    DocumentSync instances push debounced writes and apply remote values.
    """

    def __init__(self, store: DocumentStore, scheduler: Scheduler | None = None) -> None:
        seed_themes = initial_themes()
        self.menu_state: LocalState[list[MenuCategory]] = LocalState(initial_menu(), MENU_KEY)
        self.themes_state: LocalState[list[Theme]] = LocalState(seed_themes, THEMES_KEY)
        self.active_theme_state: LocalState[str] = LocalState(seed_themes[0].id, ACTIVE_THEME_KEY)
        self.title_state: LocalState[str] = LocalState(DEFAULT_APP_TITLE, APP_TITLE_KEY)
        self.last_saved_at: float | None = None
        self._syncs = [
            DocumentSync(
                store,
                MENU_KEY,
                self.menu_state,
                encode=menu_to_raw,
                decode=menu_from_raw,
                scheduler=scheduler,
                on_saved=self._signal_saved,
            ),
            DocumentSync(
                store,
                THEMES_KEY,
                self.themes_state,
                encode=themes_to_raw,
                decode=themes_from_raw,
                scheduler=scheduler,
                on_saved=self._signal_saved,
            ),
            DocumentSync(
                store,
                ACTIVE_THEME_KEY,
                self.active_theme_state,
                encode=_identity,
                decode=str,
                scheduler=scheduler,
                on_saved=self._signal_saved,
            ),
            DocumentSync(
                store,
                APP_TITLE_KEY,
                self.title_state,
                encode=_identity,
                decode=str,
                scheduler=scheduler,
                on_saved=self._signal_saved,
            ),
        ]

    def start(self) -> None:
        for sync in self._syncs:
            sync.start()
        if self.title_state.value == LEGACY_APP_TITLE:
            self.title_state.set(DEFAULT_APP_TITLE)

    def stop(self) -> None:
        for sync in self._syncs:
            sync.stop()

    @property
    def syncs(self) -> list[DocumentSync[Any]]:
        return list(self._syncs)

    @property
    def is_saving(self) -> bool:
        if any(sync.pending for sync in self._syncs):
            return True
        return self.last_saved_at is not None and time.monotonic() - self.last_saved_at < SAVING_INDICATOR_SECONDS

    def _signal_saved(self) -> None:
        self.last_saved_at = time.monotonic()

    @property
    def menu(self) -> list[MenuCategory]:
        return self.menu_state.value

    @property
    def themes(self) -> list[Theme]:
        return self.themes_state.value

    @property
    def app_title(self) -> str:
        return self.title_state.value

    def set_app_title(self, title: str) -> None:
        self.title_state.set(title)

    def all_items(self) -> list[MenuItem]:
        return [item for category in self.menu for item in category.items]

    def find_item(self, item_id: str) -> MenuItem | None:
        for item in self.all_items():
            if item.id == item_id:
                return item
        return None

    def category_of(self, item_id: str) -> MenuCategory | None:
        for category in self.menu:
            if any(item.id == item_id for item in category.items):
                return category
        return None

    def add_menu_item(self, category_id: str) -> MenuItem | None:
        if not any(category.id == category_id for category in self.menu):
            return None
        item = MenuItem(
            id=_new_item_id(),
            name="New Menu Item",
            description="Enter a description for this item.",
            price=NEW_MENU_ITEM_PRICE,
            dietary=Dietary(),
        )
        self.menu_state.set(
            [
                replace(category, items=[*category.items, item]) if category.id == category_id else category
                for category in self.menu
            ]
        )
        logger.info("menu item added category=%s item=%s", category_id, item.id)
        return item

    def update_menu_item(self, category_id: str, item_id: str, **fields: Any) -> None:
        """Patch one item; a background image applies to the whole category."""
        unknown = set(fields) - set(MENU_ITEM_FIELDS)
        if unknown:
            raise ValueError(f"Unknown menu item fields: {', '.join(sorted(unknown))}")
        if "price" in fields:
            price = fields["price"]
            if not price.is_finite() or price < 0:
                raise ValueError("price must be a finite, non-negative amount")

        def patch(category: MenuCategory) -> MenuCategory:
            if category.id != category_id:
                return category
            own_fields = {key: value for key, value in fields.items() if key != "background_image_id"}
            items = [replace(item, **own_fields) if item.id == item_id else item for item in category.items]
            if "background_image_id" in fields:
                background = fields["background_image_id"] or None
                items = [replace(item, background_image_id=background) for item in items]
            return replace(category, items=items)

        self.menu_state.set([patch(category) for category in self.menu])

    def delete_menu_item(self, category_id: str, item_id: str) -> None:
        self.menu_state.set(
            [
                replace(category, items=[item for item in category.items if item.id != item_id])
                if category.id == category_id
                else category
                for category in self.menu
            ]
        )
        logger.info("menu item deleted category=%s item=%s", category_id, item_id)

    def current_theme(self) -> Theme:
        for theme in self.themes:
            if theme.id == self.active_theme_state.value:
                return theme
        if self.themes:
            return self.themes[0]
        return initial_themes()[0]

    def set_theme(self, theme_id: str) -> None:
        self.active_theme_state.set(theme_id)

    def update_theme(self, theme_id: str, **fields: Any) -> None:
        self.themes_state.set([replace(theme, **fields) if theme.id == theme_id else theme for theme in self.themes])

    def add_theme(self, theme: Theme) -> None:
        self.themes_state.set([*self.themes, theme])
        self.active_theme_state.set(theme.id)

    def delete_theme(self, theme_id: str) -> None:
        if len(self.themes) <= 1:
            raise BusinessRuleError("Cannot delete the last theme!")
        if theme_id == self.active_theme_state.value:
            raise BusinessRuleError("Cannot delete the currently active theme. Please switch to another theme first.")
        self.themes_state.set([theme for theme in self.themes if theme.id != theme_id])

    def is_media_referenced(self, file_id: str) -> bool:
        for item in self.all_items():
            if file_id in (item.background_image_id, item.foreground_image_id):
                return True
        return any(theme.background_image == file_id for theme in self.themes)


def _identity(value: Any) -> Any:
    return value
