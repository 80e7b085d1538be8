# Overview: Flask API routes for user administration; webmaster only.

"""
User Administration API

- GET    /api/users                 - list (?category=, ?active=true|false)
- POST   /api/users                 - create any category
- GET    /api/users/<id>
- PATCH  /api/users/<id>            - profile fields (not category)
- DELETE /api/users/<id>
- POST   /api/users/<id>/migrate    - {"category": "franchise"|"customer"}
- POST   /api/users/<id>/active     - {"is_active": bool}
- POST   /api/users/<id>/backfill   - fill attributes missing from old records
"""

from flask import Blueprint, request, jsonify

from ..decorators import require_auth, require_category
from ..services import migration_service, user_service
from ..validation import ValidationError, require_fields


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


def _parse_bool_arg(name: str) -> bool | None:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    lowered = raw.strip().lower()
    if lowered in ("true", "1", "yes"):
        return True
    if lowered in ("false", "0", "no"):
        return False
    raise ValidationError(f"{name} must be true or false")


def _user_payload(user) -> dict:
    payload = user.to_dict()
    payload["needs_schema_update"] = user_service.needs_schema_update(user)
    return payload


@users_bp.get("")
@require_auth
@require_category("webmaster")
def list_users_route():
    users = user_service.list_users(
        category=request.args.get("category") or None,
        active=_parse_bool_arg("active"),
    )
    return jsonify({"users": [_user_payload(u) for u in users]}), 200


@users_bp.post("")
@require_auth
@require_category("webmaster")
def create_user_route():
    data = request.get_json(silent=True) or {}
    require_fields(data, ["category", "email", "password", "first_name", "last_name"])

    contact = {k: v for k, v in data.items() if k in user_service.CONTACT_FIELDS}
    user = user_service.create_user(
        data["category"],
        data["email"],
        data["password"],
        data["first_name"],
        data["last_name"],
        username=data.get("username"),
        **contact,
    )
    return jsonify({"user": _user_payload(user)}), 201


@users_bp.get("/<user_id>")
@require_auth
@require_category("webmaster")
def get_user_route(user_id: str):
    return jsonify({"user": _user_payload(user_service.get_user(user_id))}), 200


@users_bp.patch("/<user_id>")
@require_auth
@require_category("webmaster")
def update_user_route(user_id: str):
    data = request.get_json(silent=True) or {}
    user = user_service.update_user(user_id, **data)
    return jsonify({"user": _user_payload(user)}), 200


@users_bp.delete("/<user_id>")
@require_auth
@require_category("webmaster")
def delete_user_route(user_id: str):
    user_service.delete_user(user_id)
    return jsonify({"message": f"User {user_id} deleted"}), 200


@users_bp.post("/<user_id>/migrate")
@require_auth
@require_category("webmaster")
def migrate_user_route(user_id: str):
    """
    Change category. The response carries the user's NEW id; the old id
    stops resolving immediately.
    """
    data = request.get_json(silent=True) or {}
    require_fields(data, ["category"])

    new_id = migration_service.migrate_category(user_id, data["category"])
    user = user_service.get_user(new_id)
    return jsonify({"previous_id": user_id, "user": _user_payload(user)}), 200


@users_bp.post("/<user_id>/active")
@require_auth
@require_category("webmaster")
def set_active_route(user_id: str):
    data = request.get_json(silent=True) or {}
    if "is_active" not in data:
        raise ValidationError("Missing required fields: is_active")

    user = user_service.set_active(user_id, data["is_active"])
    return jsonify({"user": _user_payload(user)}), 200


@users_bp.post("/<user_id>/backfill")
@require_auth
@require_category("webmaster")
def backfill_user_route(user_id: str):
    user = user_service.backfill_schema(user_id)
    return jsonify({"user": _user_payload(user)}), 200
