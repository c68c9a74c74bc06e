# Overview: Flask API routes for offline client synchronization.

"""
Sync API

POST /api/sync/push  merge a batch of offline records
GET  /api/sync/pull  changes since a watermark, paginated with a cursor
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..errors import ServiceError
from ..services import sync_service


sync_bp = Blueprint("sync", __name__, url_prefix="/api/sync")


@sync_bp.post("/push")
@require_auth
def push_route():
    """
    Per-record failures are reported inside `results` with a 200; only a
    malformed batch or a database failure fails the whole request.
    """
    try:
        data = request.get_json(silent=True)
        if data is None:
            return jsonify({"error": "JSON body required"}), 400
        return jsonify(sync_service.push_batch(data, g.scope)), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Sync push failed")
        return jsonify({"error": "Internal server error"}), 500


@sync_bp.get("/pull")
@require_auth
def pull_route():
    try:
        result = sync_service.pull_changes(
            g.scope,
            since=request.args.get("since"),
            cursor=request.args.get("cursor"),
        )
        return jsonify(result), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Sync pull failed")
        return jsonify({"error": "Internal server error"}), 500
