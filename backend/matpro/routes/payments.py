# Overview: Flask API routes for customer payments.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..errors import ServiceError
from ..services import payment_service


payments_bp = Blueprint("payments", __name__, url_prefix="/api/payments")


@payments_bp.post("")
@require_auth
def create_payment_route():
    """
    Record a payment, optionally against a sale.

    Body: customer_id, amount, sale_id?, payment_method?, reference?, notes?
    """
    try:
        data = request.get_json(silent=True) or {}
        payment = payment_service.create_payment(data, g.scope)
        return jsonify({"payment": payment.to_dict()}), 201

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record payment")
        return jsonify({"error": "Internal server error"}), 500
