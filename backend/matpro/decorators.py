# Overview: Request decorators for API routes.

from functools import wraps

from flask import g, jsonify, request

from .services import session_service


def require_auth(f):
    """
    Require a valid bearer token.

    Sets on flask.g:
    - g.current_user: the authenticated User
    - g.scope: AccessScope derived from the user's role and store
    - g.session_context: the full SessionContext
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")
        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1].strip()
        context = session_service.validate_session(token)
        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = context.user
        g.scope = context.scope
        g.session_context = context

        return f(*args, **kwargs)

    return decorated_function


def require_owner(f):
    """Reject callers without unrestricted scope. Use after @require_auth."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        scope = getattr(g, "scope", None)
        if scope is None:
            return jsonify({"error": "Authentication required"}), 401
        if not scope.is_unrestricted:
            return jsonify({"error": "Owner access required"}), 403
        return f(*args, **kwargs)

    return decorated_function
