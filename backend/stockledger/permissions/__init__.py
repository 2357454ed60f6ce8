# Overview: Access policy package.
# Re-exports all public APIs so callers import from one place.

from .categories import ActionCategory
from .definitions import (
    ACTION_DEFINITIONS,
    ADMINISTRATION_ACTIONS,
    INVENTORY_ACTIONS,
    CATALOGUE_ACTIONS,
)
from .roles import (
    POLICY_VERSION,
    ROLE_PERMISSIONS,
    ROLE_ADMIN,
    ROLE_INVENTORY,
    DEFAULT_ROLES,
)
from .helpers import (
    get_all_action_codes,
    get_actions_by_category,
    get_action_definition,
    validate_action_code,
    permitted_actions,
    has_permission,
)

__all__ = [
    "ActionCategory",
    "ACTION_DEFINITIONS",
    "ADMINISTRATION_ACTIONS",
    "INVENTORY_ACTIONS",
    "CATALOGUE_ACTIONS",
    "POLICY_VERSION",
    "ROLE_PERMISSIONS",
    "ROLE_ADMIN",
    "ROLE_INVENTORY",
    "DEFAULT_ROLES",
    "get_all_action_codes",
    "get_actions_by_category",
    "get_action_definition",
    "validate_action_code",
    "permitted_actions",
    "has_permission",
]
