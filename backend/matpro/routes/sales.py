# Overview: Flask API routes for sales; parses input and returns JSON responses.

"""Sales API routes. Every call is checked against the caller's store scope."""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..errors import ServiceError
from ..services import sales_service


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
@require_auth
def create_sale_route():
    """
    Create an ACTIVE sale with line items, stock movements and the initial
    payment in one transaction.
    """
    try:
        data = request.get_json(silent=True) or {}
        sale = sales_service.create_sale(data, g.scope)
        return jsonify({"sale": sale.to_dict(include_lines=True)}), 201

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/<sale_id>")
@require_auth
def get_sale_route(sale_id: str):
    try:
        sale = sales_service.get_sale(sale_id, g.scope)
        return jsonify({"sale": sale.to_dict(include_lines=True)}), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code


@sales_bp.post("/<sale_id>/void")
@require_auth
def void_sale_route(sale_id: str):
    """
    Void a sale. Owner only; reason required.

    Stock comes back through compensating ADJUSTMENT events.
    """
    try:
        data = request.get_json(silent=True) or {}
        sale = sales_service.void_sale(sale_id, data.get("reason"), g.scope)
        return jsonify({"message": "Sale voided successfully", "sale": sale.to_dict(include_lines=True)}), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to void sale")
        return jsonify({"error": "Internal server error"}), 500
