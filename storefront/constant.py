"""Editable seed data for the menu, themes and media library."""

from __future__ import annotations

ROOT_FOLDER_ID = "root"
ROOT_FOLDER_NAME = "Media Library"

SUMMARY_DAY_ID = "summary"
DEFAULT_DAY_ID = "day-1"

SERVICE_TYPES = ("Delivery", "Pickup", "Full Service")
EQUIPMENT_TYPES = ("Takeaway", "Chafing Dishes", "Platters")
ORDER_STATUSES = ("sent", "modified", "cancelled")

INITIAL_CUSTOMER_DETAILS: dict[str, object] = {
    "name": "",
    "email": "",
    "business": "",
    "address": "",
    "contactNumber": "",
    "attendees": 1,
    "equipmentType": "Takeaway",
    "serviceType": "Delivery",
    "notes": "",
}

# Nested form; normalized into id -> item on first load.
INITIAL_MEDIA_LIBRARY: dict[str, object] = {
    "id": ROOT_FOLDER_ID,
    "name": ROOT_FOLDER_NAME,
    "type": "folder",
    "children": [
        {"id": "folder-bg", "name": "Backgrounds", "type": "folder", "children": []},
        {"id": "folder-fg", "name": "Foregrounds", "type": "folder", "children": []},
        {"id": "folder-themes", "name": "Themes", "type": "folder", "children": []},
        {"id": "folder-app", "name": "App", "type": "folder", "children": []},
    ],
}

INITIAL_MENU_DATA: list[dict[str, object]] = [
    {
        "id": "cat-1",
        "title": "Mains",
        "items": [
            {
                "id": "item-1",
                "name": "Gourmet Burger",
                "description": "A delicious burger with all the toppings, including a juicy patty, fresh lettuce, tomatoes, and our special sauce.",
                "price": "15.99",
                "backgroundImageId": None,
                "foregroundImageId": None,
                "dietary": {"glutenFree": False, "vegetarian": False, "vegan": False, "noSeafood": True, "spicyLevel": 1},
                "isAvailable": True,
            },
            {
                "id": "item-2",
                "name": "Margherita Pizza",
                "description": "Classic pizza with fresh mozzarella, San Marzano tomatoes, fresh basil, salt and extra-virgin olive oil.",
                "price": "12.99",
                "backgroundImageId": None,
                "foregroundImageId": None,
                "dietary": {"glutenFree": False, "vegetarian": True, "vegan": False, "noSeafood": True, "spicyLevel": 0},
                "isAvailable": True,
            },
        ],
    },
    {
        "id": "cat-2",
        "title": "Sides",
        "items": [
            {
                "id": "item-3",
                "name": "Crispy Fries",
                "description": "Golden, crispy fries served with our house-made aioli.",
                "price": "4.99",
                "backgroundImageId": None,
                "foregroundImageId": None,
                "dietary": {"glutenFree": True, "vegetarian": True, "vegan": True, "noSeafood": True, "spicyLevel": 0},
                "isAvailable": True,
            },
        ],
    },
    {
        "id": "cat-3",
        "title": "Drinks",
        "items": [
            {
                "id": "item-4",
                "name": "Cola",
                "description": "A refreshing can of your favorite cola.",
                "price": "2.99",
                "backgroundImageId": None,
                "foregroundImageId": None,
                "dietary": {"glutenFree": True, "vegetarian": True, "vegan": True, "noSeafood": True, "spicyLevel": 0},
                "isAvailable": True,
            },
            {
                "id": "item-5",
                "name": "Mineral Water",
                "description": "Chilled mineral water.",
                "price": "1.99",
                "backgroundImageId": None,
                "foregroundImageId": None,
                "dietary": {"glutenFree": True, "vegetarian": True, "vegan": True, "noSeafood": True, "spicyLevel": 0},
                "isAvailable": False,
            },
        ],
    },
]

INITIAL_THEMES: list[dict[str, str]] = [
    {
        "id": "theme-1",
        "name": "Default",
        "backgroundImage": "",
        "primaryColor": "amber",
        "secondaryColor": "indigo",
        "textColor": "white",
    },
    {
        "id": "theme-2",
        "name": "Ocean",
        "backgroundImage": "",
        "primaryColor": "cyan",
        "secondaryColor": "blue",
        "textColor": "white",
    },
]

DIETARY_TAGS: dict[str, str] = {
    "gluten_free": "GF",
    "vegetarian": "V",
    "vegan": "VG",
    "no_seafood": "NS",
}
