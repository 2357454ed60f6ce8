# Overview: Read-only inventory aggregations over the current ingredient snapshot.

"""
Inventory Analytics

All computations are pure functions of an ingredient snapshot. The public
Result-returning wrappers take the snapshot from the repository at call
time; there is no caching, so results are "as of last repository read".

Definitions:
- low stock: stock_quantity <= minimum_stock
- criticality ratio: stock_quantity / minimum_stock * 100. When
  minimum_stock is 0 the ratio is defined as 0 (critical sentinel)
  instead of dividing by zero.
- stock value: SUM(stock_quantity * unit_cost)
- average: stock value / ingredient count, 0 for an empty catalogue
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable

from flask import current_app

from ..errors import ValidationError, service_boundary
from ..models import Ingredient
from .ingredient_service import load_snapshot
from .movement_service import count_movements

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def low_stock(ingredients: Iterable[Ingredient]) -> list[Ingredient]:
    return [i for i in ingredients if i.stock_quantity <= i.minimum_stock]


def criticality_ratio(ingredient: Ingredient) -> Decimal:
    if ingredient.minimum_stock == 0:
        return ZERO
    return ingredient.stock_quantity / ingredient.minimum_stock * HUNDRED


def is_critical(ingredient: Ingredient, threshold_percent: Decimal | int) -> bool:
    """Low-stock ingredients at or under threshold_percent of their minimum."""
    if ingredient.stock_quantity > ingredient.minimum_stock:
        return False
    return criticality_ratio(ingredient) <= Decimal(threshold_percent)


def ingredient_value(ingredient: Ingredient) -> Decimal:
    return ingredient.stock_quantity * ingredient.unit_cost


def stock_value(ingredients: Iterable[Ingredient]) -> Decimal:
    return sum((ingredient_value(i) for i in ingredients), ZERO)


def top_by_value(ingredients: Iterable[Ingredient], n: int) -> list[tuple[Ingredient, Decimal]]:
    """Highest stock value first; ties broken by id so the order is stable."""
    if n < 0:
        raise ValidationError("n must be >= 0")
    ranked = sorted(
        ((i, ingredient_value(i)) for i in ingredients),
        key=lambda pair: (-pair[1], pair[0].id),
    )
    return ranked[:n]


def average_cost(ingredients: Iterable[Ingredient]) -> Decimal:
    ingredients = list(ingredients)
    if not ingredients:
        return ZERO
    return stock_value(ingredients) / len(ingredients)


def _critical_threshold() -> int:
    return int(current_app.config.get("LOW_STOCK_CRITICAL_PERCENT", 50))


def low_stock_entry(ingredient: Ingredient, threshold: int) -> dict:
    return {
        **ingredient.to_dict(),
        "criticality_ratio": str(criticality_ratio(ingredient)),
        "is_critical": is_critical(ingredient, threshold),
    }


@service_boundary
def get_low_stock() -> list[Ingredient]:
    return low_stock(load_snapshot())


@service_boundary
def get_stock_value() -> Decimal:
    return stock_value(load_snapshot())


@service_boundary
def get_top_by_value(n: int | None = None) -> list[tuple[Ingredient, Decimal]]:
    if n is None:
        n = int(current_app.config.get("TOP_BY_VALUE_DEFAULT", 5))
    return top_by_value(load_snapshot(), n)


@service_boundary
def get_average_cost() -> Decimal:
    return average_cost(load_snapshot())


@service_boundary
def inventory_summary(top_n: int | None = None) -> dict:
    """Dashboard aggregate computed from one snapshot read."""
    if top_n is None:
        top_n = int(current_app.config.get("TOP_BY_VALUE_DEFAULT", 5))

    snapshot = load_snapshot()
    threshold = _critical_threshold()
    low = low_stock(snapshot)

    return {
        "total_ingredients": len(snapshot),
        "low_stock_count": len(low),
        "critical_count": sum(1 for i in low if is_critical(i, threshold)),
        "total_value": str(stock_value(snapshot)),
        "average_cost": str(average_cost(snapshot)),
        "top_ingredients": [
            {**ingredient.to_dict(), "total_value": str(value)}
            for ingredient, value in top_by_value(snapshot, top_n)
        ],
        "movement_count": count_movements(),
    }
