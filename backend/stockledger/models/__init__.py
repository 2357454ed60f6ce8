from .inventory import Ingredient, IngredientMovement, MOVEMENT_IN, MOVEMENT_OUT, MOVEMENT_TYPES
from .auth import Role, User, SessionToken

__all__ = [
    'Ingredient', 'IngredientMovement', 'MOVEMENT_IN', 'MOVEMENT_OUT', 'MOVEMENT_TYPES',
    'Role', 'User', 'SessionToken',
]
