# Overview: Versioned role -> action table used by the access policy.

"""
Role names are lookup keys into this table; a role record carries no
behavior of its own. Adding a role or action means editing this table,
never the call sites.

Bump POLICY_VERSION whenever a grant changes.
"""

from .definitions import ACTION_DEFINITIONS

POLICY_VERSION = 1

ROLE_ADMIN = "admin"
ROLE_INVENTORY = "inventory"

ROLE_PERMISSIONS: dict[str, frozenset[str]] = {
    # Admin gets ALL actions
    ROLE_ADMIN: frozenset(code for code, _name, _desc, _cat in ACTION_DEFINITIONS),
    ROLE_INVENTORY: frozenset({
        "inventory",
        "create_movement",
        "read",
    }),
}

DEFAULT_ROLES = [
    (ROLE_ADMIN, "Full system access"),
    (ROLE_INVENTORY, "Record stock movements and view inventory"),
]
