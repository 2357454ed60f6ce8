# Overview: Access policy lookups and validation.

from __future__ import annotations

from .definitions import ACTION_DEFINITIONS
from .roles import ROLE_PERMISSIONS


def get_all_action_codes():
    """Get list of all action codes."""
    return [action[0] for action in ACTION_DEFINITIONS]


def get_actions_by_category(category):
    """Get all actions in a category."""
    return [action for action in ACTION_DEFINITIONS if action[3] == category]


def get_action_definition(code):
    """Get full definition for an action code."""
    for action in ACTION_DEFINITIONS:
        if action[0] == code:
            return {
                "code": action[0],
                "name": action[1],
                "description": action[2],
                "category": action[3],
            }
    return None


def validate_action_code(code):
    """Check if an action code is valid."""
    return code in get_all_action_codes()


def permitted_actions(role: str | None) -> frozenset[str]:
    """Actions granted to a role; unknown or missing roles get none."""
    if not isinstance(role, str):
        return frozenset()
    return ROLE_PERMISSIONS.get(role, frozenset())


def has_permission(role: str | None, action: str | None) -> bool:
    """
    Pure, total access check.

    Fail closed: unknown roles and unknown actions evaluate to False.
    """
    return action in permitted_actions(role)
