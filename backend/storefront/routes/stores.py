# Overview: Flask API routes for stores operations; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request, g

from ..decorators import require_auth, require_category
from ..services import store_service
from ..validation import NotFoundError, require_fields


stores_bp = Blueprint("stores", __name__, url_prefix="/api/stores")


@stores_bp.post("/claim")
@require_auth
@require_category("franchise")
def claim_store():
    """Name the caller's storefront; responds with the slug actually assigned."""
    data = request.get_json(silent=True) or {}
    require_fields(data, ["store_name"])

    slug = store_service.claim_store(g.session_context.user_id, data["store_name"])
    store = store_service.get_store_by_slug(slug)
    return jsonify({"slug": slug, "store": store.to_dict()}), 200


@stores_bp.get("/<slug>")
def get_store(slug: str):
    """Public lookup used by storefront pages."""
    store = store_service.get_store_by_slug(slug)
    if not store:
        raise NotFoundError(f"Store '{slug}' not found")
    return jsonify(store.to_dict()), 200
