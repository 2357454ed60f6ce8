# Overview: Flask API routes for ingredient operations; parses input and returns JSON responses.

# backend/stockledger/routes/ingredients.py
"""
Ingredient management routes.

SECURITY: All routes require authentication.
- Read operations require "read"
- Create requires "admin"
- Update requires "update" (administrative override; may set stock directly)
- Delete requires "delete" (movements are not cascaded)
"""
from flask import Blueprint, request

from ..services import ingredient_service, movement_service
from ..decorators import require_auth, require_permission

ingredients_bp = Blueprint("ingredients", __name__, url_prefix="/api/ingredients")


@ingredients_bp.get("")
@require_auth
@require_permission("read")
def list_ingredients_route():
    result = ingredient_service.list_ingredients()
    if not result.ok:
        return result.error.to_dict(), result.error.http_status
    return {"items": [i.to_dict() for i in result.value]}


@ingredients_bp.post("")
@require_auth
@require_permission("admin")
def create_ingredient_route():
    """
    Create a new ingredient.

    Body: name, unit, unit_cost (required); stock_quantity, minimum_stock (optional, default 0).
    """
    payload = request.get_json(silent=True) or {}

    result = ingredient_service.create_ingredient(payload)
    if not result.ok:
        return result.error.to_dict(), result.error.http_status

    return result.value.to_dict(), 201


@ingredients_bp.get("/<ingredient_id>")
@require_auth
@require_permission("read")
def get_ingredient_route(ingredient_id: str):
    result = ingredient_service.get_ingredient(ingredient_id)
    if not result.ok:
        return result.error.to_dict(), result.error.http_status
    return result.value.to_dict()


@ingredients_bp.patch("/<ingredient_id>")
@require_auth
@require_permission("update")
def update_ingredient_route(ingredient_id: str):
    """
    Partially update an ingredient.

    Optional optimistic check: pass "expected_version" in the body (or an
    If-Match header) to fail with 409 if the record changed since it was read.
    """
    payload = dict(request.get_json(silent=True) or {})

    expected_version = payload.pop("expected_version", None)
    if expected_version is None and request.headers.get("If-Match"):
        expected_version = request.headers["If-Match"].strip('"')
    if expected_version is not None:
        try:
            expected_version = int(expected_version)
        except (TypeError, ValueError):
            return {"error": "validation_error", "message": "expected_version must be an integer"}, 400

    result = ingredient_service.update_ingredient(
        ingredient_id, payload, expected_version=expected_version
    )
    if not result.ok:
        return result.error.to_dict(), result.error.http_status

    return result.value.to_dict()


@ingredients_bp.delete("/<ingredient_id>")
@require_auth
@require_permission("delete")
def delete_ingredient_route(ingredient_id: str):
    result = ingredient_service.delete_ingredient(ingredient_id)
    if not result.ok:
        return result.error.to_dict(), result.error.http_status
    return {"ok": True}, 200


@ingredients_bp.get("/<ingredient_id>/movements")
@require_auth
@require_permission("read")
def list_ingredient_movements_route(ingredient_id: str):
    """Movement history for one ingredient, newest first. Query: limit (optional)."""
    limit = request.args.get("limit", type=int)

    result = movement_service.list_movements(ingredient_id=ingredient_id, limit=limit)
    if not result.ok:
        return result.error.to_dict(), result.error.http_status

    return {"items": [m.to_dict() for m in result.value]}


@ingredients_bp.get("/<ingredient_id>/ledger-check")
@require_auth
@require_permission("read")
def ledger_check_route(ingredient_id: str):
    result = movement_service.verify_ledger(ingredient_id)
    if not result.ok:
        return result.error.to_dict(), result.error.http_status
    return result.value.to_dict()
