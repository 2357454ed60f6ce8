# Overview: Flask API routes for analytics; parses input and returns JSON responses.

"""
Analytics Routes

Low stock (with criticality), total stock value, top ingredients by value,
and the dashboard summary. All read-only; require "read".
"""

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth, require_permission
from ..services import analytics_service


analytics_bp = Blueprint("analytics", __name__, url_prefix="/api/analytics")


@analytics_bp.get("/low-stock")
@require_auth
@require_permission("read")
def low_stock_route():
    result = analytics_service.get_low_stock()
    if not result.ok:
        return jsonify(result.error.to_dict()), result.error.http_status

    threshold = int(current_app.config.get("LOW_STOCK_CRITICAL_PERCENT", 50))
    return jsonify({
        "critical_threshold_percent": threshold,
        "items": [analytics_service.low_stock_entry(i, threshold) for i in result.value],
    })


@analytics_bp.get("/stock-value")
@require_auth
@require_permission("read")
def stock_value_route():
    total = analytics_service.get_stock_value()
    average = analytics_service.get_average_cost()
    for result in (total, average):
        if not result.ok:
            return jsonify(result.error.to_dict()), result.error.http_status

    return jsonify({
        "total_value": str(total.value),
        "average_cost": str(average.value),
    })


@analytics_bp.get("/top")
@require_auth
@require_permission("read")
def top_by_value_route():
    """Query: n (optional, defaults to TOP_BY_VALUE_DEFAULT)."""
    result = analytics_service.get_top_by_value(request.args.get("n", type=int))
    if not result.ok:
        return jsonify(result.error.to_dict()), result.error.http_status

    return jsonify({
        "items": [
            {**ingredient.to_dict(), "total_value": str(value)}
            for ingredient, value in result.value
        ],
    })


@analytics_bp.get("/summary")
@require_auth
@require_permission("read")
def summary_route():
    result = analytics_service.inventory_summary(request.args.get("top", type=int))
    if not result.ok:
        return jsonify(result.error.to_dict()), result.error.http_status
    return jsonify(result.value)
