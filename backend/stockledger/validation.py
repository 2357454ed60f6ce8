from __future__ import annotations
from decimal import Decimal, InvalidOperation

from dataclasses import dataclass
from typing import Any

from sqlalchemy import String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError
from .models import MOVEMENT_TYPES
from .models.types import ScaledDecimal


# Upper bound for any quantity or cost; stays well inside BIGINT once scaled
MAX_DECIMAL_VALUE = Decimal("99999999999")


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for create
    """
    writable_fields: frozenset[str]
    required_on_create: frozenset[str] = frozenset()


INGREDIENT_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"name", "unit", "stock_quantity", "unit_cost", "minimum_stock"}),
    required_on_create=frozenset({"name", "unit", "unit_cost"}),
)

MOVEMENT_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"ingredient_id", "movement_type", "quantity", "reason", "notes"}),
    required_on_create=frozenset({"ingredient_id", "movement_type", "quantity"}),
)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def coerce_decimal(field: str, value: Any, scale: int | None = None) -> Decimal:
    """
    Strict decimal coercion.

    Accepts int, Decimal, float and numeric strings. Rejects booleans,
    NaN/Infinity and anything unparseable. With scale set, values carrying
    more significant fractional digits than the column stores are rejected
    rather than rounded.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, Decimal):
        dec = value
    elif isinstance(value, int):
        dec = Decimal(value)
    elif isinstance(value, float):
        # via str() so 0.1 stays 0.1
        dec = Decimal(str(value))
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be a number")
        try:
            dec = Decimal(stripped)
        except InvalidOperation:
            raise ValidationError(f"{field} must be a number")
    else:
        raise ValidationError(f"{field} must be a number")

    if not dec.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    if abs(dec) > MAX_DECIMAL_VALUE:
        raise ValidationError(f"{field} cannot exceed {MAX_DECIMAL_VALUE}")

    if scale is not None:
        quantized = dec.quantize(Decimal(1).scaleb(-scale))
        if quantized != dec:
            raise ValidationError(f"{field} allows at most {scale} decimal places")
        dec = quantized
    return dec


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, ScaledDecimal):
        return coerce_decimal(col.key, value, scale=coltype.scale)

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming attributes against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid payload")

    if not partial:
        missing = sorted(f for f in policy.required_on_create if payload.get(f) is None)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable and col.default is None:
                raise ValidationError(f"{k} cannot be null")
            # nullable-with-default columns fall back to their default on create
            if not col.nullable:
                continue
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def enforce_rules_ingredient(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    if "unit_cost" in patch and patch["unit_cost"] <= 0:
        raise ValidationError("unit_cost must be > 0")

    if "stock_quantity" in patch and patch["stock_quantity"] < 0:
        raise ValidationError("stock_quantity must be >= 0")

    if "minimum_stock" in patch and patch["minimum_stock"] < 0:
        raise ValidationError("minimum_stock must be >= 0")


def enforce_rules_movement(patch: dict) -> None:
    # Movements require qty > 0 and a known direction
    if patch.get("movement_type") not in MOVEMENT_TYPES:
        raise ValidationError("movement_type must be 'in' or 'out'")

    quantity = patch.get("quantity")
    if quantity is None or quantity <= 0:
        raise ValidationError("quantity must be > 0")
