# Overview: Flask API routes for operator login; parses input and returns JSON responses.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..services import auth_service, session_service
from ..time_utils import to_utc_z


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate with phone + PIN and create a session token.

    The token goes in the Authorization header of every other request.
    """
    try:
        data = request.get_json(silent=True) or {}
        phone = data.get("phone")
        pin = data.get("pin")

        if not all([phone, pin]):
            return jsonify({"error": "phone and pin required"}), 400

        user = auth_service.authenticate(phone, pin)
        if not user:
            current_app.logger.warning("Failed login for phone %s", phone)
            return jsonify({"error": "Invalid credentials"}), 401

        session, token = session_service.create_session(user)

        return jsonify({
            "token": token,
            "expires_at": to_utc_z(session.expires_at),
            "user": user.to_dict(),
        }), 200

    except Exception:
        current_app.logger.exception("Login failed")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    token = request.headers["Authorization"].split(" ", 1)[1].strip()
    session_service.revoke_session(token)
    return jsonify({"message": "Logged out"}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"user": g.current_user.to_dict()}), 200
