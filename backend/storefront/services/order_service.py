# Overview: Service-layer operations for orders; checkout plus the fulfilment workflow.

"""
Order Lifecycle Service

STATE MACHINE:
    pending -> verify payment -> processing order -> order sent -> completed

    pending:          created at checkout, awaiting the customer's payment details
    verify payment:   customer submitted payment, operator must confirm it
    processing order: payment confirmed, being packed
    order sent:       shipped
    completed:        terminal; only reached by an explicit complete_order()

WHO MOVES IT:
- Customer:  pending -> verify payment (submit_payment)
- Operator:  verify payment -> processing order (confirm_payment)
             processing order -> order sent (confirm_shipment)
             order sent -> completed (complete_order)
- Admin:     update_order_status() sets any known status (override, no
             ordering check).

FOLLOW-UP FLAG:
- Any status change resets follow_up to False.
- The customer may raise it once the order has left 'pending'; only the next
  status change clears it.

Status and follow-up writes are last-writer-wins.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Mapping

from ..extensions import db
from ..models import Order, OrderLine
from ..time_utils import utcnow
from ..validation import (
    NotFoundError,
    ValidationError,
    clean_text,
    parse_price_cents,
    parse_quantity,
)
from .concurrency import begin_write, run_with_retry
from .order_code_service import generate_order_code, generate_tracking_number
from .order_feed_service import publish
from .order_query_service import count_orders_by_owner


STATUS_PENDING = "pending"
STATUS_VERIFY_PAYMENT = "verify payment"
STATUS_PROCESSING = "processing order"
STATUS_SENT = "order sent"
STATUS_COMPLETED = "completed"

# Forward order matters: index = position in the workflow
STATUS_FLOW = (
    STATUS_PENDING,
    STATUS_VERIFY_PAYMENT,
    STATUS_PROCESSING,
    STATUS_SENT,
    STATUS_COMPLETED,
)
VALID_STATUSES = set(STATUS_FLOW)
OrderStatus = Literal["pending", "verify payment", "processing order", "order sent", "completed"]

PAYMENT_METHODS = {"gcash", "maya", "bank"}

SHIPPING_FIELDS = ("street", "city", "state", "postal_code", "country_code")
CUSTOMER_FIELDS = ("first_name", "last_name", "email", "phone", "primary_phone", "secondary_phone")


class OrderLifecycleError(ValidationError):
    """
    Raised when a workflow step is attempted from the wrong status.

    A domain error: the request is well-formed but the order is not in a
    state that allows it.
    """
    pass


@dataclass(frozen=True)
class OrderResult:
    order_id: int
    order_code: str
    order_code_with_franchise: str
    customer_user_id: str
    tracking_number: str

    def to_dict(self) -> dict:
        return {
            "order_id": self.order_id,
            "order_code": self.order_code,
            "order_code_with_franchise": self.order_code_with_franchise,
            "customer_user_id": self.customer_user_id,
            "tracking_number": self.tracking_number,
        }


def normalize_status(status: Any) -> str:
    if not isinstance(status, str):
        raise ValidationError("status must be a string")
    return status.strip().lower()


def validate_status(status: str) -> None:
    if status not in VALID_STATUSES:
        raise ValidationError(
            f"Invalid status '{status}'. Must be one of: {', '.join(STATUS_FLOW)}"
        )


def can_transition(from_status: str, to_status: str) -> bool:
    """
    True when to_status is the single next step after from_status.

    Skips, reversals and same-state moves are not workflow transitions
    (the admin override in update_order_status bypasses this check).
    """
    validate_status(from_status)
    validate_status(to_status)
    return STATUS_FLOW.index(to_status) == STATUS_FLOW.index(from_status) + 1


def _parse_items(items: Any) -> list[dict]:
    if not isinstance(items, (list, tuple)) or not items:
        raise ValidationError("items must be a non-empty list")

    parsed = []
    for index, item in enumerate(items):
        if not isinstance(item, Mapping):
            raise ValidationError(f"items[{index}] must be an object")
        name = item.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ValidationError(f"items[{index}].name is required")
        if len(name) > 255:
            raise ValidationError(f"items[{index}].name exceeds max length 255")
        parsed.append({
            "item_id": clean_text(item.get("id"), max_length=64, field=f"items[{index}].id"),
            # Kept as given: the order code reads its first two characters
            "name": name,
            "price_cents": parse_price_cents(item.get("price"), field=f"items[{index}].price"),
            "quantity": parse_quantity(item.get("quantity"), field=f"items[{index}].quantity"),
        })
    return parsed


def _parse_fields(data: Any, fields: tuple[str, ...], label: str) -> dict:
    if data is None:
        data = {}
    if not isinstance(data, Mapping):
        raise ValidationError(f"{label} must be an object")
    return {name: clean_text(data.get(name), max_length=255, field=f"{label}.{name}") for name in fields}


def _code_part(data: Mapping | None, name: str) -> str:
    """Raw address value for the order code; not stripped or re-cased here."""
    value = (data or {}).get(name)
    return "" if value is None else str(value)


def create_order(
    owner_id: str,
    franchise_id: str,
    items: list[dict],
    shipping_address: dict,
    customer_info: dict | None = None,
    seller_message: str = "",
    store_slug: str = "",
) -> OrderResult:
    """
    Place one order for owner_id at franchise_id.

    The owner's order sequence is counted and the new order inserted under
    one write transaction, so two checkouts by the same customer cannot
    share a sequence number.

    Raises:
        ValidationError: missing owner/franchise, empty or malformed items
        StorageError: the transaction could not complete (nothing persisted)
    """
    if not owner_id:
        raise ValidationError("owner_id is required")
    if not franchise_id:
        raise ValidationError("franchise_id is required")

    lines = _parse_items(items)
    address = _parse_fields(shipping_address, SHIPPING_FIELDS, "shipping_address")
    customer = _parse_fields(customer_info, CUSTOMER_FIELDS, "customer_info")
    message = clean_text(seller_message, max_length=2000, field="seller_message")
    total_cents = sum(line["price_cents"] * line["quantity"] for line in lines)

    def _op() -> OrderResult:
        begin_write()
        order_number = count_orders_by_owner(owner_id) + 1
        order_code = generate_order_code(
            lines,
            _code_part(shipping_address, "postal_code"),
            _code_part(shipping_address, "country_code"),
            order_number,
            franchise_id,
        )
        now = utcnow()

        order = Order(
            user_id=owner_id,
            franchise_id=franchise_id,
            store_slug=store_slug or "",
            order_code=order_code,
            order_number=order_number,
            tracking_number=generate_tracking_number(),
            seller_message=message,
            status=STATUS_PENDING,
            follow_up=False,
            total_amount_cents=total_cents,
            created_at=now,
            updated_at=now,
            **{f"shipping_{k}": v for k, v in address.items()},
            **{f"customer_{k}": v for k, v in customer.items()},
        )
        for position, line in enumerate(lines):
            order.lines.append(OrderLine(position=position, **line))

        db.session.add(order)
        db.session.commit()

        return OrderResult(
            order_id=order.id,
            order_code=order.order_code,
            order_code_with_franchise=order.order_code,
            customer_user_id=owner_id,
            tracking_number=order.tracking_number,
        )

    result = run_with_retry(_op)
    publish(franchise_id)
    return result


def _get_order(order_id: int, *, owner_id: str | None = None) -> Order:
    order = db.session.get(Order, order_id)
    # Another customer's order is reported as missing, not forbidden
    if order is None or (owner_id is not None and order.user_id != owner_id):
        raise NotFoundError(f"Order {order_id} not found")
    return order


def _write(order_id: int, mutate, *, owner_id: str | None = None) -> Order:
    def _op() -> Order:
        order = _get_order(order_id, owner_id=owner_id)
        if mutate(order):
            order.updated_at = utcnow()
            db.session.commit()
        return order

    order = run_with_retry(_op)
    publish(order.franchise_id)
    return order


def _set_status(order: Order, status: str) -> None:
    order.status = status
    order.follow_up = False


def update_order_status(order_id: int, new_status: str) -> Order:
    """
    Administrative status write: any known status, no ordering check.

    Resets follow_up. Raises NotFoundError for an unknown order id.
    """
    status = normalize_status(new_status)
    validate_status(status)

    def _mutate(order: Order) -> bool:
        _set_status(order, status)
        return True

    return _write(order_id, _mutate)


def update_follow_up_status(order_id: int, follow_up: bool) -> Order:
    """Persist only the follow-up flag (and updated_at). Repeating a value is harmless."""
    if not isinstance(follow_up, bool):
        raise ValidationError("follow_up must be a boolean")

    def _mutate(order: Order) -> bool:
        order.follow_up = follow_up
        return True

    return _write(order_id, _mutate)


def _advance(order_id: int, to_status: str) -> Order:
    """Operator step; repeating one that already landed returns the order unchanged."""
    def _mutate(order: Order) -> bool:
        if order.status == to_status:
            return False
        if not can_transition(order.status, to_status):
            raise OrderLifecycleError(
                f"Cannot move order {order_id} to '{to_status}': "
                f"current status is '{order.status}'"
            )
        _set_status(order, to_status)
        return True

    return _write(order_id, _mutate)


def submit_payment(
    order_id: int,
    owner_id: str,
    amount: Any,
    reference_number: Any,
    payment_method: Any,
) -> Order:
    """
    Customer submits payment details for a pending order (pending -> verify payment).

    The details are stored on the order so the operator confirming payment
    can see what was claimed.

    Raises:
        NotFoundError: order missing or not owned by owner_id
        ValidationError: malformed amount, reference or method
        OrderLifecycleError: order is no longer pending
    """
    amount_cents = parse_price_cents(amount, field="amount")
    reference = clean_text(reference_number, max_length=128, field="reference_number")
    if not reference:
        raise ValidationError("reference_number is required")
    method = clean_text(payment_method, max_length=32, field="payment_method").lower()
    if method not in PAYMENT_METHODS:
        raise ValidationError(
            f"Invalid payment_method '{method}'. Must be one of: {', '.join(sorted(PAYMENT_METHODS))}"
        )

    def _mutate(order: Order) -> bool:
        if order.status != STATUS_PENDING:
            raise OrderLifecycleError(
                f"Cannot submit payment for order {order_id}: "
                f"current status is '{order.status}', must be '{STATUS_PENDING}'"
            )
        _set_status(order, STATUS_VERIFY_PAYMENT)
        order.payment_method = method
        order.payment_reference = reference
        order.payment_amount_cents = amount_cents
        order.payment_submitted_at = utcnow()
        return True

    return _write(order_id, _mutate, owner_id=owner_id)


def confirm_payment(order_id: int) -> Order:
    return _advance(order_id, STATUS_PROCESSING)


def confirm_shipment(order_id: int) -> Order:
    return _advance(order_id, STATUS_SENT)


def complete_order(order_id: int) -> Order:
    return _advance(order_id, STATUS_COMPLETED)


def request_follow_up(order_id: int, owner_id: str) -> Order:
    """Customer asks the seller to follow up. Not allowed while pending."""
    def _mutate(order: Order) -> bool:
        if order.status == STATUS_PENDING:
            raise OrderLifecycleError(
                f"Cannot request follow-up for order {order_id} while it is '{STATUS_PENDING}'"
            )
        if order.follow_up:
            return False
        order.follow_up = True
        return True

    return _write(order_id, _mutate, owner_id=owner_id)
