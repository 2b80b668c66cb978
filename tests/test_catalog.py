from __future__ import annotations

from decimal import Decimal

import pytest

from storefront.catalog import APP_TITLE_KEY, MENU_KEY, THEMES_KEY, MenuCatalog, new_theme
from storefront.config import DEFAULT_APP_TITLE, LEGACY_APP_TITLE
from storefront.data import menu_from_raw
from storefront.errors import BusinessRuleError
from storefront.models import Theme


def test_start_seeds_missing_documents(catalog, documents):
    stored = menu_from_raw(documents.get(MENU_KEY))

    assert [category.title for category in stored] == ["Mains", "Sides", "Drinks"]
    assert [theme["name"] for theme in documents.get(THEMES_KEY)] == ["Default", "Ocean"]
    assert documents.get(APP_TITLE_KEY) == DEFAULT_APP_TITLE
    assert catalog.current_theme().id == "theme-1"


def test_stored_values_win_over_seed(documents, scheduler):
    documents.set(APP_TITLE_KEY, "Lunch Co")
    catalog = MenuCatalog(documents, scheduler=scheduler)

    catalog.start()

    assert catalog.app_title == "Lunch Co"
    assert scheduler.pending == []


def test_legacy_title_is_migrated(documents, scheduler):
    documents.set(APP_TITLE_KEY, LEGACY_APP_TITLE)
    catalog = MenuCatalog(documents, scheduler=scheduler)

    catalog.start()
    scheduler.run_all()

    assert catalog.app_title == DEFAULT_APP_TITLE
    assert documents.get(APP_TITLE_KEY) == DEFAULT_APP_TITLE


def test_add_menu_item_defaults(catalog, scheduler, documents):
    item = catalog.add_menu_item("cat-2")

    assert item.name == "New Menu Item"
    assert item.price == Decimal("9.99")
    assert item.is_available
    assert item.background_image_id is None
    assert [each.id for each in catalog.menu[1].items][-1] == item.id
    assert catalog.is_saving

    scheduler.run_all()
    stored = menu_from_raw(documents.get(MENU_KEY))
    assert stored[1].items[-1].id == item.id


def test_add_menu_item_unknown_category(catalog):
    assert catalog.add_menu_item("cat-404") is None


def test_update_menu_item_fields(catalog):
    catalog.update_menu_item("cat-1", "item-1", name="Smash Burger", price=Decimal("17.50"), is_available=False)

    item = catalog.find_item("item-1")
    assert (item.name, item.price, item.is_available) == ("Smash Burger", Decimal("17.50"), False)
    assert catalog.find_item("item-2").name == "Margherita Pizza"


def test_background_image_applies_to_whole_category(catalog):
    catalog.update_menu_item("cat-1", "item-1", background_image_id="file-bg", foreground_image_id="file-fg")

    assert [item.background_image_id for item in catalog.menu[0].items] == ["file-bg", "file-bg"]
    assert catalog.find_item("item-1").foreground_image_id == "file-fg"
    assert catalog.find_item("item-2").foreground_image_id is None
    assert catalog.find_item("item-3").background_image_id is None


def test_update_menu_item_validation(catalog):
    with pytest.raises(ValueError):
        catalog.update_menu_item("cat-1", "item-1", price=Decimal("-1"))
    with pytest.raises(ValueError):
        catalog.update_menu_item("cat-1", "item-1", colour="red")


@pytest.mark.parametrize("raw", ["NaN", "Infinity", "-Infinity"])
def test_update_menu_item_rejects_non_finite_price(catalog, raw):
    with pytest.raises(ValueError):
        catalog.update_menu_item("cat-1", "item-1", price=Decimal(raw))

    assert catalog.find_item("item-1").price == Decimal("15.99")


@pytest.mark.parametrize("raw", ["NaN", "Infinity", "-Infinity"])
def test_stored_non_finite_price_loads_as_zero(raw):
    menu = menu_from_raw([{"id": "cat-x", "title": "X", "items": [{"id": "i", "name": "I", "price": raw}]}])

    assert menu[0].items[0].price == Decimal("0")


def test_delete_menu_item(catalog):
    catalog.delete_menu_item("cat-3", "item-4")

    assert catalog.find_item("item-4") is None
    assert catalog.category_of("item-5").id == "cat-3"


def test_theme_delete_rules(catalog):
    with pytest.raises(BusinessRuleError, match="currently active"):
        catalog.delete_theme("theme-1")

    catalog.delete_theme("theme-2")
    assert [theme.id for theme in catalog.themes] == ["theme-1"]

    with pytest.raises(BusinessRuleError, match="last theme"):
        catalog.delete_theme("theme-1")


def test_new_theme_defaults():
    first, second = new_theme("Brunch"), new_theme("Brunch")

    assert first.id.startswith("theme-")
    assert first.id != second.id
    assert (first.background_image, first.primary_color, first.secondary_color, first.text_color) == (
        "",
        "amber",
        "indigo",
        "white",
    )


def test_add_theme_activates_it(catalog):
    catalog.add_theme(Theme(id="theme-3", name="Forest", primary_color="emerald"))

    assert catalog.current_theme().name == "Forest"

    catalog.set_theme("gone")
    assert catalog.current_theme().id == "theme-1"


def test_media_reference_checks(catalog):
    catalog.update_menu_item("cat-2", "item-3", foreground_image_id="file-fries")
    catalog.update_theme("theme-2", background_image="file-waves")

    assert catalog.is_media_referenced("file-fries")
    assert catalog.is_media_referenced("file-waves")
    assert not catalog.is_media_referenced("file-unused")


def test_remote_change_is_applied_without_write_back(catalog, documents, scheduler):
    documents.set(APP_TITLE_KEY, "Edited elsewhere")

    assert catalog.app_title == "Edited elsewhere"
    assert scheduler.pending == []


def test_stop_flushes_pending_writes(documents, scheduler):
    catalog = MenuCatalog(documents, scheduler=scheduler)
    catalog.start()
    catalog.set_app_title("Flushed")

    catalog.stop()

    assert documents.get(APP_TITLE_KEY) == "Flushed"
