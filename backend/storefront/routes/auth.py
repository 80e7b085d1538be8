# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

- POST /api/auth/signup  - customer self-registration (returns a session)
- POST /api/auth/login   - email or username + password -> bearer token
- POST /api/auth/logout  - revoke the presented token
- GET  /api/auth/me      - the caller's profile and session
"""

from flask import Blueprint, request, jsonify, g

from ..services import auth_service, session_service, user_service
from ..decorators import require_auth
from ..validation import require_fields


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _session_payload(user, session, token) -> dict:
    return {
        "user": user.to_dict(),
        "token": token,
        "session": session.to_dict(),
    }


@auth_bp.post("/signup")
def signup_route():
    """
    Register a customer account and log it in.

    Request body:
        {"email", "password", "first_name", "last_name", ...contact fields}

    Error responses:
        400: Missing/invalid fields or weak password
        409: Email already registered
    """
    data = request.get_json(silent=True) or {}
    require_fields(data, ["email", "password", "first_name", "last_name"])

    contact = {k: v for k, v in data.items() if k in user_service.CONTACT_FIELDS}
    user = user_service.register_customer(
        data["email"],
        data["password"],
        data["first_name"],
        data["last_name"],
        **contact,
    )
    session, token = session_service.create_session(user.id)
    return jsonify(_session_payload(user, session, token)), 201


@auth_bp.post("/login")
def login_route():
    """
    Authenticate and create a session token.

    The token must be sent as "Authorization: Bearer <token>".
    """
    data = request.get_json(silent=True) or {}
    identifier = data.get("identifier") or data.get("email") or data.get("username")
    password = data.get("password")

    if not all([identifier, password]):
        return jsonify({"error": "email/username and password required"}), 400

    user = auth_service.authenticate(identifier, password)
    session, token = session_service.create_session(user.id)

    payload = _session_payload(user, session, token)
    payload["message"] = "Login successful"
    return jsonify(payload), 200


@auth_bp.post("/logout")
@require_auth
def logout_route():
    token = request.headers["Authorization"].split(" ", 1)[1]
    session_service.revoke_session(token, reason="User logout")
    return jsonify({"message": "Logged out"}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({
        "user": g.current_user.to_dict(),
        "category": g.session_context.category,
        "session": g.session_context.session.to_dict(),
    }), 200
