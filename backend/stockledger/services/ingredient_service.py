# backend/stockledger/services/ingredient_service.py
"""
Ingredient Repository

CRUD over ingredient records. Every public function returns a Result
(see stockledger.errors); callers branch on result.ok.

- create stamps created_at/updated_at, defaults stock_quantity to 0 and
  requires unit_cost > 0
- update is an administrative override: it may set stock_quantity
  directly, bypassing the movement ledger. The override is absorbed into
  baseline_quantity so the ledger invariant keeps holding.
- delete does not cascade to movements (orphans are tolerated)
"""
from __future__ import annotations

from ..errors import ConflictError, NotFound, service_boundary
from ..extensions import db
from ..models import Ingredient
from ..validation import INGREDIENT_POLICY, validate_payload, enforce_rules_ingredient
from .concurrency import lock_for_update, run_with_retry
from stockledger.time_utils import utcnow

INGREDIENT_MUTABLE_FIELDS = {"name", "unit", "stock_quantity", "unit_cost", "minimum_stock"}


def apply_ingredient_patch(ingredient: Ingredient, patch: dict) -> None:
    for k, v in patch.items():
        if k not in INGREDIENT_MUTABLE_FIELDS:
            continue
        if k == "stock_quantity":
            # Keep stock == baseline + SUM(in) - SUM(out)
            current = ingredient.stock_quantity or 0
            ingredient.baseline_quantity = (ingredient.baseline_quantity or 0) + (v - current)
        setattr(ingredient, k, v)


def require_ingredient(ingredient_id: str, *, lock: bool = False) -> Ingredient:
    query = db.session.query(Ingredient).filter_by(id=ingredient_id).populate_existing()
    if lock:
        query = lock_for_update(query)
    ingredient = query.first()
    if ingredient is None:
        raise NotFound("Ingredient", ingredient_id)
    return ingredient


def load_snapshot() -> list[Ingredient]:
    """Current ingredient snapshot, ordered by name then id."""
    return (
        db.session.query(Ingredient)
        .order_by(Ingredient.name.asc(), Ingredient.id.asc())
        .all()
    )


@service_boundary
def list_ingredients() -> list[Ingredient]:
    return load_snapshot()


@service_boundary
def get_ingredient(ingredient_id: str) -> Ingredient:
    return require_ingredient(ingredient_id)


@service_boundary
def create_ingredient(attrs: dict) -> Ingredient:
    """
    Create an ingredient from raw attributes.

    Raises (as Result.failure):
        ValidationError: missing/unknown fields, unit_cost <= 0, negative quantities
    """
    patch = validate_payload(
        model=Ingredient,
        payload=attrs,
        policy=INGREDIENT_POLICY,
        partial=False,
    )
    enforce_rules_ingredient(patch)

    now = utcnow()
    ingredient = Ingredient(
        stock_quantity=0,
        baseline_quantity=0,
        minimum_stock=0,
        created_at=now,
        updated_at=now,
    )
    apply_ingredient_patch(ingredient, patch)

    db.session.add(ingredient)
    db.session.commit()
    return ingredient


@service_boundary
def update_ingredient(ingredient_id: str, attrs: dict, expected_version: int | None = None) -> Ingredient:
    """
    Administrative update of an ingredient.

    expected_version: when given, the update only applies if the record is
    still at that version (ConflictError otherwise). Without it, concurrent
    ledger writes are retried against (bounded), then surface as ConflictError.
    """
    patch = validate_payload(
        model=Ingredient,
        payload=attrs,
        policy=INGREDIENT_POLICY,
        partial=True,
    )
    enforce_rules_ingredient(patch)

    def _op():
        ingredient = require_ingredient(ingredient_id)
        if expected_version is not None and ingredient.version_id != expected_version:
            raise ConflictError(
                "Ingredient was modified concurrently",
                expected_version=expected_version,
                current_version=ingredient.version_id,
            )
        apply_ingredient_patch(ingredient, patch)
        ingredient.updated_at = utcnow()
        db.session.commit()
        return ingredient

    return run_with_retry(_op)


@service_boundary
def delete_ingredient(ingredient_id: str) -> None:
    def _op():
        ingredient = require_ingredient(ingredient_id)
        db.session.delete(ingredient)
        db.session.commit()

    run_with_retry(_op)
