# Overview: Action category constants for grouping related actions.


class ActionCategory:
    """Action categories for organization and UI display."""
    ADMINISTRATION = "ADMINISTRATION"
    INVENTORY = "INVENTORY"
    CATALOGUE = "CATALOGUE"
