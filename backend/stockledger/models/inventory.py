from __future__ import annotations

import uuid

from sqlalchemy import event

from ..extensions import db
from .types import ScaledDecimal
from stockledger.time_utils import utcnow, to_utc_z


MOVEMENT_IN = "in"
MOVEMENT_OUT = "out"
MOVEMENT_TYPES = (MOVEMENT_IN, MOVEMENT_OUT)


def _new_id() -> str:
    return uuid.uuid4().hex


def _decimal_str(value):
    return str(value) if value is not None else None


class Ingredient(db.Model):
    """
    Ingredient master data plus its current stock quantity.

    LEDGER INVARIANT:
        stock_quantity == baseline_quantity + SUM(in) - SUM(out)
    over the surviving movements for this ingredient.

    baseline_quantity holds the part of stock not explained by surviving
    movements: opening stock, administrative overrides, and the effect of
    deleted movements (deletion never reverses stock).

    Ledger writes change stock_quantity with a single conditional UPDATE;
    ORM updates (administrative edits) are guarded by version_id.
    """
    __tablename__ = "ingredients"
    __table_args__ = (
        db.CheckConstraint("unit_cost > 0", name="ck_ingredients_unit_cost_positive"),
        db.CheckConstraint("minimum_stock >= 0", name="ck_ingredients_minimum_stock_non_negative"),
        db.CheckConstraint("stock_quantity >= 0", name="ck_ingredients_stock_non_negative"),
        db.Index("ix_ingredients_name", "name"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_new_id)

    name = db.Column(db.String(255), nullable=False)
    unit = db.Column(db.String(32), nullable=False)

    stock_quantity = db.Column(ScaledDecimal(3), nullable=False, default=0)
    baseline_quantity = db.Column(ScaledDecimal(3), nullable=False, default=0)
    unit_cost = db.Column(ScaledDecimal(4), nullable=False)
    minimum_stock = db.Column(ScaledDecimal(3), nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Ingredient id={self.id} name={self.name!r} stock={self.stock_quantity} {self.unit}>"

    @property
    def stock_value(self):
        return self.stock_quantity * self.unit_cost

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "unit": self.unit,
            "stock_quantity": _decimal_str(self.stock_quantity),
            "unit_cost": _decimal_str(self.unit_cost),
            "minimum_stock": _decimal_str(self.minimum_stock),
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class IngredientMovement(db.Model):
    """
    Append-only stock movement.

    - Never updated in place (enforced below); corrections are compensating
      movements or explicit deletion.
    - ingredient_id has no FK constraint: deleting an ingredient may orphan
      historic movements, which is tolerated.
    """
    __tablename__ = "ingredient_movements"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_movements_quantity_positive"),
        db.CheckConstraint("movement_type IN ('in', 'out')", name="ck_movements_type"),
        db.Index("ix_movements_ingredient_created", "ingredient_id", "created_at"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_new_id)

    ingredient_id = db.Column(db.String(36), nullable=False, index=True)

    movement_type = db.Column(db.String(8), nullable=False)
    quantity = db.Column(ScaledDecimal(3), nullable=False)

    reason = db.Column(db.Text, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_by_user_id = db.Column(db.Integer, nullable=True)
    compensates_movement_id = db.Column(db.String(36), nullable=True, unique=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    @property
    def signed_quantity(self):
        return self.quantity if self.movement_type == MOVEMENT_IN else -self.quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ingredient_id": self.ingredient_id,
            "movement_type": self.movement_type,
            "quantity": _decimal_str(self.quantity),
            "reason": self.reason,
            "notes": self.notes,
            "created_by_user_id": self.created_by_user_id,
            "compensates_movement_id": self.compensates_movement_id,
            "created_at": to_utc_z(self.created_at),
        }


@event.listens_for(IngredientMovement, "before_update")
def _reject_movement_update(mapper, connection, target):
    raise ValueError("ingredient movements are immutable; append a compensating movement instead")
