# backend/storefront/routes/orders.py
"""
Order API Routes

Customer:
- POST /api/orders                       - checkout
- GET  /api/orders/mine                  - caller's orders, newest first
- GET  /api/orders/track?code=...        - caller's orders matching a code
- POST /api/orders/<id>/payment          - submit payment (pending -> verify payment)
- POST /api/orders/<id>/follow-up        - ask the seller to follow up

Operator (franchise owning the order, or webmaster):
- POST /api/orders/<id>/confirm-payment  - verify payment -> processing order
- POST /api/orders/<id>/confirm-shipment - processing order -> order sent
- POST /api/orders/<id>/complete         - order sent -> completed
- GET  /api/orders/franchise/<id>        - storefront orders + dashboard summary

Webmaster:
- POST /api/orders/<id>/status           - set any status (override)
- POST /api/orders/<id>/follow-up-status - set the follow-up flag

SECURITY:
- The owner id always comes from the session, never the request body.
- Orders outside the caller's scope answer 404, not 403, so ids and codes
  cannot be probed.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_category, is_admin
from ..services import order_query_service, order_service, store_service
from ..validation import NotFoundError, ValidationError, require_fields


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _operator_order(order_id: int):
    order = order_query_service.get_order_by_id(order_id)
    if order is None or (not is_admin() and order.franchise_id != g.session_context.user_id):
        raise NotFoundError(f"Order {order_id} not found")
    return order


def _resolve_franchise(data: dict) -> tuple[str, str]:
    """Pick (franchise_id, store_slug) for a checkout; the platform store by default."""
    store_slug = data.get("store_slug") or ""
    if store_slug:
        store = store_service.get_store_by_slug(store_slug)
        if store is None or store.status != "active":
            raise NotFoundError(f"Store '{store_slug}' not found")
        return store.franchise_id, store_slug
    return current_app.config["DEFAULT_FRANCHISE_ID"], ""


@orders_bp.post("")
@require_auth
@require_category("customer")
def create_order_route():
    """
    Place an order.

    Request body:
        {
            "items": [{"id": "p1", "name": "Tofu", "price": "2.50", "quantity": 2}],
            "shipping_address": {"street", "city", "state", "postal_code", "country_code"},
            "customer_info": {"first_name", "last_name", "email", "phone", ...},
            "seller_message": "...",
            "store_slug": "tofu-house"   // optional; omitted = platform store
        }

    Response (201): order_id, order_code, order_code_with_franchise,
    customer_user_id, tracking_number
    """
    data = request.get_json(silent=True) or {}
    require_fields(data, ["items", "shipping_address"])
    franchise_id, store_slug = _resolve_franchise(data)

    result = order_service.create_order(
        owner_id=g.session_context.user_id,
        franchise_id=franchise_id,
        items=data["items"],
        shipping_address=data["shipping_address"],
        customer_info=data.get("customer_info"),
        seller_message=data.get("seller_message") or "",
        store_slug=store_slug,
    )
    return jsonify(result.to_dict()), 201


@orders_bp.get("/mine")
@require_auth
def my_orders_route():
    orders = order_query_service.get_orders_by_owner(g.session_context.user_id)
    return jsonify({"orders": [o.to_dict() for o in orders]}), 200


@orders_bp.get("/track")
@require_auth
def track_route():
    code = (request.args.get("code") or "").strip()
    if not code:
        raise ValidationError("code query parameter is required")

    orders = order_query_service.get_orders_by_code(code, g.session_context.user_id)
    return jsonify({"orders": [o.to_dict() for o in orders]}), 200


@orders_bp.post("/<int:order_id>/payment")
@require_auth
@require_category("customer")
def submit_payment_route(order_id: int):
    """
    Request body: {"amount": "250.00", "reference_number": "...", "payment_method": "gcash"}

    Error responses:
        400: Bad payment fields, or order not pending
        404: Order missing or not the caller's
    """
    data = request.get_json(silent=True) or {}
    require_fields(data, ["amount", "reference_number", "payment_method"])

    order = order_service.submit_payment(
        order_id,
        g.session_context.user_id,
        data["amount"],
        data["reference_number"],
        data["payment_method"],
    )
    return jsonify({"order": order.to_dict()}), 200


@orders_bp.post("/<int:order_id>/follow-up")
@require_auth
@require_category("customer")
def request_follow_up_route(order_id: int):
    order = order_service.request_follow_up(order_id, g.session_context.user_id)
    return jsonify({"order": order.to_dict()}), 200


@orders_bp.post("/<int:order_id>/confirm-payment")
@require_auth
@require_category("franchise", "webmaster")
def confirm_payment_route(order_id: int):
    _operator_order(order_id)
    order = order_service.confirm_payment(order_id)
    return jsonify({"order": order.to_dict()}), 200


@orders_bp.post("/<int:order_id>/confirm-shipment")
@require_auth
@require_category("franchise", "webmaster")
def confirm_shipment_route(order_id: int):
    _operator_order(order_id)
    order = order_service.confirm_shipment(order_id)
    return jsonify({"order": order.to_dict()}), 200


@orders_bp.post("/<int:order_id>/complete")
@require_auth
@require_category("franchise", "webmaster")
def complete_order_route(order_id: int):
    _operator_order(order_id)
    order = order_service.complete_order(order_id)
    return jsonify({"order": order.to_dict()}), 200


@orders_bp.post("/<int:order_id>/status")
@require_auth
@require_category("webmaster")
def update_status_route(order_id: int):
    """Administrative override. Request body: {"status": "order sent"}"""
    data = request.get_json(silent=True) or {}
    require_fields(data, ["status"])

    order = order_service.update_order_status(order_id, data["status"])
    return jsonify({"order": order.to_dict()}), 200


@orders_bp.post("/<int:order_id>/follow-up-status")
@require_auth
@require_category("webmaster")
def update_follow_up_route(order_id: int):
    """Request body: {"follow_up": true}"""
    data = request.get_json(silent=True) or {}
    if "follow_up" not in data:
        raise ValidationError("Missing required fields: follow_up")

    order = order_service.update_follow_up_status(order_id, data["follow_up"])
    return jsonify({"order": order.to_dict()}), 200


@orders_bp.get("/franchise/<franchise_id>")
@require_auth
@require_category("franchise", "webmaster")
def franchise_orders_route(franchise_id: str):
    """A franchise sees its own storefront; webmasters see any, including the platform store."""
    if not is_admin() and franchise_id != g.session_context.user_id:
        return jsonify({"error": "Permission denied"}), 403

    orders = order_query_service.get_orders_by_franchise(franchise_id)
    summary = order_query_service.summarize_orders(orders)
    return jsonify({
        "orders": [o.to_dict() for o in orders],
        "summary": summary.to_dict(),
    }), 200
