# Overview: Read-side order lookups for tracking, customer and franchise views.

from __future__ import annotations

from collections import Counter as Tally
from dataclasses import dataclass, field
from typing import Iterable

from ..extensions import db
from ..models import Order
from ..time_utils import newest_first_key


def get_order_by_id(order_id: int) -> Order | None:
    return db.session.get(Order, order_id)


def get_orders_by_code(order_code: str, owner_id: str) -> list[Order]:
    """
    Orders matching a code AND owned by the caller.

    Both filters are required: codes are guessable, so a code-only lookup
    would expose other customers' orders.
    """
    if not order_code or not owner_id:
        return []
    return (
        db.session.query(Order)
        .filter(Order.order_code == order_code, Order.user_id == owner_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )


def get_orders_by_owner(owner_id: str) -> list[Order]:
    """All orders placed by one customer, newest first."""
    orders = db.session.query(Order).filter_by(user_id=owner_id).all()
    return sorted(orders, key=newest_first_key, reverse=True)


def get_orders_by_franchise(franchise_id: str) -> list[Order]:
    """All orders for one storefront, newest first (sorted in memory)."""
    orders = db.session.query(Order).filter_by(franchise_id=franchise_id).all()
    return sorted(orders, key=newest_first_key, reverse=True)


def count_orders_by_owner(owner_id: str) -> int:
    return db.session.query(Order).filter_by(user_id=owner_id).count()


@dataclass
class OrderSummary:
    order_count: int = 0
    revenue_cents: int = 0
    unique_customers: int = 0
    by_status: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "order_count": self.order_count,
            "revenue_cents": self.revenue_cents,
            "unique_customers": self.unique_customers,
            "by_status": dict(self.by_status),
        }


def summarize_orders(orders: Iterable[Order]) -> OrderSummary:
    """Dashboard totals: every order counts toward revenue regardless of status."""
    orders = list(orders)
    return OrderSummary(
        order_count=len(orders),
        revenue_cents=sum(o.total_amount_cents for o in orders),
        unique_customers=len({o.user_id for o in orders}),
        by_status=dict(Tally(o.status for o in orders)),
    )
