# Overview: Request and category decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .services import session_service


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user') and hasattr(g, 'session_context')


def require_auth(f):
    """
    Require a bearer session token and establish the caller's context.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.session_context: SessionContext (user_id + category from login)

    Returns 401 if the header is missing, or the token is invalid, expired,
    revoked, or belongs to a retired/deactivated user.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1]
        context = session_service.validate_session(token)

        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = context.user
        g.session_context = context

        return f(*args, **kwargs)

    return decorated_function


def require_category(*categories: str):
    """
    Restrict a route to callers whose session category is in `categories`.

    Must be applied after @require_auth.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            if g.session_context.category not in categories:
                return jsonify({
                    "error": "Permission denied",
                    "required_category": list(categories),
                }), 403

            return f(*args, **kwargs)

        return decorated_function

    return decorator


def is_admin() -> bool:
    """Webmaster sessions can operate every storefront."""
    return _is_authenticated() and g.session_context.category == "webmaster"
