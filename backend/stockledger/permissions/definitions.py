# Overview: All action definitions organized by category.
# Each action is defined as: (code, name, description, category)

from .categories import ActionCategory


# -- ADMINISTRATION --

ADMINISTRATION_ACTIONS = [
    (
        "admin",
        "Administer",
        "Manage user accounts and add ingredients to the catalogue",
        ActionCategory.ADMINISTRATION,
    ),
]


# -- INVENTORY --

INVENTORY_ACTIONS = [
    (
        "inventory",
        "Inventory Access",
        "Open inventory workflows (stock screens, low-stock lists)",
        ActionCategory.INVENTORY,
    ),
    (
        "create_movement",
        "Record Movement",
        "Record stock-in and stock-out movements, including compensating movements",
        ActionCategory.INVENTORY,
    ),
    (
        "read",
        "Read",
        "View ingredients, movement history and analytics",
        ActionCategory.INVENTORY,
    ),
]


# -- CATALOGUE --

CATALOGUE_ACTIONS = [
    (
        "update",
        "Update Ingredients",
        "Edit ingredient records, including administrative stock overrides",
        ActionCategory.CATALOGUE,
    ),
    (
        "delete",
        "Delete Records",
        "Delete ingredients and movement records",
        ActionCategory.CATALOGUE,
    ),
]


ACTION_DEFINITIONS = (
    ADMINISTRATION_ACTIONS
    + INVENTORY_ACTIONS
    + CATALOGUE_ACTIONS
)
