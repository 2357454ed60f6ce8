# Overview: Service-layer operations for the movement ledger; encapsulates business logic and database work.

# backend/stockledger/services/movement_service.py

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from flask import current_app
from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, InsufficientStock, NotFound, PermissionDenied, ValidationError, service_boundary
from ..extensions import db
from ..models import Ingredient, IngredientMovement, MOVEMENT_IN, MOVEMENT_OUT
from ..permissions import has_permission
from ..validation import MOVEMENT_POLICY, validate_payload, enforce_rules_movement
from .concurrency import run_with_retry
from .ingredient_service import require_ingredient
from stockledger.time_utils import utcnow
"""
Stock Ledger Invariants (authoritative)

Ledger equation (per ingredient, at all times):
- stock_quantity == baseline_quantity + SUM(in) - SUM(out) over surviving movements.

Business invariants:
- A ledger-issued movement never drives stock_quantity below zero. An 'out'
  movement that would is rejected before any state is mutated.
- A movement references a live ingredient at creation time.
- Movements are append-only: never updated in place. Corrections are done
  with a compensating movement or explicit deletion.

Deletion:
- delete_movement removes the record only and does NOT reverse its stock
  effect (log correction, not undo). baseline_quantity absorbs the removed
  movement's effect so the ledger equation still holds.

Concurrency:
- The read-modify-write of stock_quantity is a single conditional UPDATE
  (stock_quantity = stock_quantity +/- q, with stock_quantity >= q
  re-checked inside the statement for 'out'), executed in the same DB
  transaction as the movement INSERT. Two concurrent movements on one
  ingredient serialize on the row; neither can lose the other's update.
- Lock timeouts are retried (bounded) and surface as TransientError.
"""


@dataclass(frozen=True)
class LedgerCheck:
    """Recomputed ledger equation for one ingredient."""
    ingredient_id: str
    stock_quantity: Decimal
    baseline_quantity: Decimal
    total_in: Decimal
    total_out: Decimal
    movement_count: int

    @property
    def expected_quantity(self) -> Decimal:
        return self.baseline_quantity + self.total_in - self.total_out

    @property
    def drift(self) -> Decimal:
        return self.stock_quantity - self.expected_quantity

    @property
    def consistent(self) -> bool:
        return self.drift == 0

    def to_dict(self) -> dict:
        return {
            "ingredient_id": self.ingredient_id,
            "stock_quantity": str(self.stock_quantity),
            "baseline_quantity": str(self.baseline_quantity),
            "total_in": str(self.total_in),
            "total_out": str(self.total_out),
            "expected_quantity": str(self.expected_quantity),
            "drift": str(self.drift),
            "movement_count": self.movement_count,
            "consistent": self.consistent,
        }


def _require_action(acting_role: str | None, action: str) -> None:
    if not has_permission(acting_role, action):
        raise PermissionDenied(acting_role, action)


def _require_movement(movement_id: str) -> IngredientMovement:
    movement = db.session.get(IngredientMovement, movement_id)
    if movement is None:
        raise NotFound("Movement", movement_id)
    return movement


def _clean_movement_input(
    ingredient_id, movement_type, quantity, reason, notes
) -> dict:
    payload = {
        "ingredient_id": ingredient_id,
        "movement_type": movement_type.strip().lower() if isinstance(movement_type, str) else movement_type,
        "quantity": quantity,
        "reason": reason,
        "notes": notes,
    }
    patch = validate_payload(
        model=IngredientMovement,
        payload=payload,
        policy=MOVEMENT_POLICY,
        partial=False,
    )
    enforce_rules_movement(patch)
    return patch


def _apply_stock_delta(ingredient_id: str, movement_type: str, quantity: Decimal) -> None:
    """
    Atomically apply a movement's effect to stock_quantity.

    For 'out' the non-negativity check is part of the UPDATE's WHERE clause,
    so it is validated against the row as committed, not a pre-read snapshot.
    """
    if movement_type == MOVEMENT_IN:
        new_stock = Ingredient.stock_quantity + quantity
    else:
        new_stock = Ingredient.stock_quantity - quantity

    stmt = update(Ingredient).where(Ingredient.id == ingredient_id)
    if movement_type == MOVEMENT_OUT:
        stmt = stmt.where(Ingredient.stock_quantity >= quantity)
    stmt = stmt.values(
        stock_quantity=new_stock,
        version_id=Ingredient.version_id + 1,
        updated_at=utcnow(),
    ).execution_options(synchronize_session=False)

    result = db.session.execute(stmt)
    if result.rowcount == 1:
        return

    # Nothing updated: either the ingredient vanished or stock is short
    db.session.rollback()
    ingredient = require_ingredient(ingredient_id)
    raise InsufficientStock(current_stock=ingredient.stock_quantity, requested=quantity)


def _append_movement(
    *,
    ingredient_id: str,
    movement_type: str,
    quantity: Decimal,
    reason: str | None,
    notes: str | None,
    actor_user_id: int | None,
    compensates_movement_id: str | None = None,
) -> IngredientMovement:
    """Core append logic: stock update + movement insert in one transaction, with retry."""

    def _op():
        # Reject dangling references before touching anything
        require_ingredient(ingredient_id, lock=True)

        _apply_stock_delta(ingredient_id, movement_type, quantity)

        movement = IngredientMovement(
            ingredient_id=ingredient_id,
            movement_type=movement_type,
            quantity=quantity,
            reason=reason,
            notes=notes,
            created_by_user_id=actor_user_id,
            compensates_movement_id=compensates_movement_id,
            created_at=utcnow(),
        )
        db.session.add(movement)
        db.session.commit()
        return movement

    return run_with_retry(_op)


@service_boundary
def create_movement(
    *,
    ingredient_id: str,
    movement_type: str,
    quantity,
    acting_role: str | None,
    reason: str | None = None,
    notes: str | None = None,
    actor_user_id: int | None = None,
) -> IngredientMovement:
    """
    Record a stock-in or stock-out movement and apply it to the ingredient.

    acting_role is the explicit role of the caller's session; it must
    grant 'create_movement'.

    Failures (as Result.failure):
    - PermissionDenied: role lacks create_movement (checked first, no state read)
    - ValidationError: quantity <= 0, unknown movement_type, malformed fields
    - NotFound: ingredient does not exist
    - InsufficientStock: 'out' exceeds current stock (carries max_removable)
    - TransientError: storage timed out after bounded retries
    """
    _require_action(acting_role, "create_movement")

    patch = _clean_movement_input(ingredient_id, movement_type, quantity, reason, notes)

    movement = _append_movement(
        ingredient_id=patch["ingredient_id"],
        movement_type=patch["movement_type"],
        quantity=patch["quantity"],
        reason=patch.get("reason"),
        notes=patch.get("notes"),
        actor_user_id=actor_user_id,
    )
    current_app.logger.info(
        "Recorded %s movement %s of %s on ingredient %s",
        movement.movement_type, movement.id, movement.quantity, movement.ingredient_id,
    )
    return movement


@service_boundary
def compensate_movement(
    *,
    movement_id: str,
    acting_role: str | None,
    reason: str | None = None,
    actor_user_id: int | None = None,
) -> IngredientMovement:
    """
    Append the opposite movement for an existing one.

    This is the explicit way to undo a movement's stock effect while keeping
    both records in the log. Compensating an 'in' is an 'out' and is subject
    to the same insufficient-stock check.
    """
    _require_action(acting_role, "create_movement")

    original = _require_movement(movement_id)
    if original.compensates_movement_id is not None:
        raise ValidationError("A compensating movement cannot itself be compensated")

    already = db.session.query(IngredientMovement).filter_by(
        compensates_movement_id=original.id
    ).first()
    if already is not None:
        raise ValidationError(
            f"Movement {original.id} is already compensated by {already.id}",
            compensating_movement_id=already.id,
        )

    opposite = MOVEMENT_OUT if original.movement_type == MOVEMENT_IN else MOVEMENT_IN

    try:
        return _append_movement(
            ingredient_id=original.ingredient_id,
            movement_type=opposite,
            quantity=original.quantity,
            reason=reason or f"Compensates movement {original.id}",
            notes=None,
            actor_user_id=actor_user_id,
            compensates_movement_id=original.id,
        )
    except IntegrityError as exc:
        # Lost a race with another compensation of the same movement
        db.session.rollback()
        raise ConflictError(f"Movement {movement_id} was compensated concurrently") from exc


@service_boundary
def delete_movement(*, movement_id: str, acting_role: str | None) -> None:
    """
    Remove a movement record without reversing its stock effect.

    Deletion is a log correction, not an undo: stock_quantity is left as is
    and baseline_quantity absorbs the removed movement's effect. Use
    compensate_movement to actually reverse stock.
    """
    _require_action(acting_role, "delete")

    def _op():
        movement = _require_movement(movement_id)
        signed = movement.signed_quantity
        summary = (movement.movement_type, movement.quantity, movement.ingredient_id)

        db.session.execute(
            update(Ingredient)
            .where(Ingredient.id == movement.ingredient_id)
            .values(
                baseline_quantity=Ingredient.baseline_quantity + signed,
                version_id=Ingredient.version_id + 1,
            )
            .execution_options(synchronize_session=False)
        )
        db.session.delete(movement)
        db.session.commit()
        return summary

    movement_type, quantity, ingredient_id = run_with_retry(_op)
    current_app.logger.warning(
        "Deleted %s movement %s of %s on ingredient %s; stock was not reversed",
        movement_type, movement_id, quantity, ingredient_id,
    )
    return None


@service_boundary
def get_movement(movement_id: str) -> IngredientMovement:
    return _require_movement(movement_id)


@service_boundary
def list_movements(*, ingredient_id: str | None = None, limit: int | None = None) -> list[IngredientMovement]:
    """Movement history, newest first. Optional equality filter on ingredient_id."""
    if limit is not None and limit <= 0:
        raise ValidationError("limit must be > 0")

    q = db.session.query(IngredientMovement)
    if ingredient_id is not None:
        q = q.filter(IngredientMovement.ingredient_id == ingredient_id)
    q = q.order_by(
        IngredientMovement.created_at.desc(),
        IngredientMovement.id.desc(),
    )
    if limit is not None:
        q = q.limit(limit)
    return q.all()


def count_movements() -> int:
    return db.session.query(func.count(IngredientMovement.id)).scalar() or 0


def _movement_totals(ingredient_id: str) -> tuple[Decimal, Decimal, int]:
    # Sum in Python so SQLite float arithmetic never leaks into the check
    rows = (
        db.session.query(IngredientMovement.movement_type, IngredientMovement.quantity)
        .filter(IngredientMovement.ingredient_id == ingredient_id)
        .all()
    )
    totals = {MOVEMENT_IN: Decimal("0"), MOVEMENT_OUT: Decimal("0")}
    for movement_type, qty in rows:
        totals[movement_type] += qty
    return totals[MOVEMENT_IN], totals[MOVEMENT_OUT], len(rows)


def _check_ingredient(ingredient: Ingredient) -> LedgerCheck:
    total_in, total_out, count = _movement_totals(ingredient.id)
    return LedgerCheck(
        ingredient_id=ingredient.id,
        stock_quantity=ingredient.stock_quantity,
        baseline_quantity=ingredient.baseline_quantity,
        total_in=total_in,
        total_out=total_out,
        movement_count=count,
    )


@service_boundary
def verify_ledger(ingredient_id: str) -> LedgerCheck:
    """Recompute the ledger equation for one ingredient."""
    return _check_ingredient(require_ingredient(ingredient_id))


@service_boundary
def verify_all_ledgers() -> list[LedgerCheck]:
    ingredients = db.session.query(Ingredient).order_by(Ingredient.name.asc(), Ingredient.id.asc()).all()
    return [_check_ingredient(ingredient) for ingredient in ingredients]
