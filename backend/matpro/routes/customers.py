# Overview: Flask API routes for customers and their receivables.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..errors import ServiceError
from ..services import customer_service


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.post("")
@require_auth
def create_customer_route():
    try:
        data = request.get_json(silent=True) or {}
        customer = customer_service.create_customer(data)
        return jsonify({"customer": customer.to_dict()}), 201

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.patch("/<customer_id>")
@require_auth
def update_customer_route(customer_id: str):
    try:
        data = request.get_json(silent=True) or {}
        customer = customer_service.update_customer(customer_id, data)
        return jsonify({"customer": customer.to_dict()}), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.get("/<customer_id>/ledger")
@require_auth
def customer_ledger_route(customer_id: str):
    try:
        return jsonify(customer_service.customer_ledger(customer_id, g.scope)), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
