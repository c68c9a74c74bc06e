# Overview: Flask API routes for stock movements and ledger-derived inventory.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..errors import ServiceError
from ..services import inventory_service


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.post("/events")
@require_auth
def record_event_route():
    """
    Append a RECEIVE / TRANSFER / ADJUSTMENT event.

    ADJUSTMENT is owner-only; store managers go through /api/approvals.
    """
    try:
        data = request.get_json(silent=True) or {}
        event = inventory_service.record_stock_event(data, g.scope)
        return jsonify({"event": event.to_dict()}), 201

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record stock event")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/<store_id>")
@require_auth
def store_inventory_route(store_id: str):
    try:
        rows = inventory_service.store_inventory(store_id, g.scope)
        return jsonify({"store_id": store_id, "inventory": rows}), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code


@inventory_bp.get("/<store_id>/<product_id>")
@require_auth
def product_inventory_route(store_id: str, product_id: str):
    try:
        return jsonify(inventory_service.product_inventory(store_id, product_id, g.scope)), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
