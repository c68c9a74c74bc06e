# Overview: Flask API routes for inventory adjustment approvals.

"""
Approval workflow routes.

Store managers submit requests for their own store; owners approve or
reject them. An approved request becomes an ADJUSTMENT stock event.
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_owner
from ..errors import ServiceError
from ..services import approval_service


approvals_bp = Blueprint("approvals", __name__, url_prefix="/api/approvals")


@approvals_bp.get("")
@require_auth
def list_approvals_route():
    try:
        requests_ = approval_service.list_requests(
            g.scope,
            status=request.args.get("status"),
            store_id=request.args.get("store_id"),
        )
        return jsonify({"requests": [r.to_dict() for r in requests_]}), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code


@approvals_bp.post("")
@require_auth
def create_approval_route():
    try:
        data = request.get_json(silent=True) or {}
        approval = approval_service.create_request(data, g.scope)
        return jsonify({"request": approval.to_dict()}), 201

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create approval request")
        return jsonify({"error": "Internal server error"}), 500


@approvals_bp.post("/<request_id>/approve")
@require_auth
@require_owner
def approve_route(request_id: str):
    try:
        data = request.get_json(silent=True) or {}
        approval = approval_service.approve_request(request_id, data.get("notes"), g.scope)
        return jsonify({"message": "Request approved", "request": approval.to_dict()}), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to approve request")
        return jsonify({"error": "Internal server error"}), 500


@approvals_bp.post("/<request_id>/reject")
@require_auth
@require_owner
def reject_route(request_id: str):
    try:
        data = request.get_json(silent=True) or {}
        approval = approval_service.reject_request(request_id, data.get("notes"), g.scope)
        return jsonify({"message": "Request rejected", "request": approval.to_dict()}), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to reject request")
        return jsonify({"error": "Internal server error"}), 500
