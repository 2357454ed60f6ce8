# Overview: Flask API routes for stock movements; parses input and returns JSON responses.

# backend/stockledger/routes/movements.py
"""
Stock movement routes.

The session's role is passed explicitly into the ledger, which makes the
authoritative permission decision. The route-level gate is a fast path
for the same table.

Insufficient stock responds 409 with current_stock and max_removable so
the client can correct the quantity without re-reading the ingredient.
"""
from flask import Blueprint, request, g

from ..services import movement_service
from ..decorators import require_auth, require_permission, acting_role

movements_bp = Blueprint("movements", __name__, url_prefix="/api/movements")


@movements_bp.get("")
@require_auth
@require_permission("read")
def list_movements_route():
    """
    List movements, newest first.

    Query params:
    - ingredient_id: str (optional) - filter by ingredient
    - limit: int (optional)
    """
    result = movement_service.list_movements(
        ingredient_id=request.args.get("ingredient_id"),
        limit=request.args.get("limit", type=int),
    )
    if not result.ok:
        return result.error.to_dict(), result.error.http_status

    return {"items": [m.to_dict() for m in result.value]}


@movements_bp.post("")
@require_auth
@require_permission("create_movement")
def create_movement_route():
    """
    Record a stock movement.

    Body: ingredient_id, movement_type ("in" | "out"), quantity (> 0),
    reason?, notes?
    """
    payload = request.get_json(silent=True) or {}

    result = movement_service.create_movement(
        ingredient_id=payload.get("ingredient_id"),
        movement_type=payload.get("movement_type"),
        quantity=payload.get("quantity"),
        reason=payload.get("reason"),
        notes=payload.get("notes"),
        acting_role=acting_role(),
        actor_user_id=g.current_user.id,
    )
    if not result.ok:
        return result.error.to_dict(), result.error.http_status

    return result.value.to_dict(), 201


@movements_bp.get("/<movement_id>")
@require_auth
@require_permission("read")
def get_movement_route(movement_id: str):
    result = movement_service.get_movement(movement_id)
    if not result.ok:
        return result.error.to_dict(), result.error.http_status
    return result.value.to_dict()


@movements_bp.delete("/<movement_id>")
@require_auth
@require_permission("delete")
def delete_movement_route(movement_id: str):
    """Remove a movement record. Stock is NOT reversed; use /compensate for that."""
    result = movement_service.delete_movement(movement_id=movement_id, acting_role=acting_role())
    if not result.ok:
        return result.error.to_dict(), result.error.http_status
    return {"ok": True, "stock_reversed": False}, 200


@movements_bp.post("/<movement_id>/compensate")
@require_auth
@require_permission("create_movement")
def compensate_movement_route(movement_id: str):
    payload = request.get_json(silent=True) or {}

    result = movement_service.compensate_movement(
        movement_id=movement_id,
        acting_role=acting_role(),
        reason=payload.get("reason"),
        actor_user_id=g.current_user.id,
    )
    if not result.ok:
        return result.error.to_dict(), result.error.http_status

    return result.value.to_dict(), 201
