"""
Live order feed for admin and franchise dashboards.

A subscriber registers for one franchise id and receives the full,
refreshed order list (newest first) right away and again after every
committed change to that franchise's orders. Lists, not deltas.

Orders are delivered as plain dicts (Order.to_dict()) built inside the
writer's session, so a listener may keep them after the request ends.

Subscriptions must be torn down with unsubscribe() (or by leaving the
`with` block) when the consuming view goes away; the feed holds a strong
reference to every callback until then.
"""

from __future__ import annotations

import threading
from typing import Callable

from flask import current_app

from .order_query_service import get_orders_by_franchise


OrderListCallback = Callable[[list[dict]], None]


def _snapshot(franchise_id: str) -> list[dict]:
    return [order.to_dict() for order in get_orders_by_franchise(franchise_id)]


class Subscription:
    def __init__(self, feed: "OrderFeed", franchise_id: str, callback: OrderListCallback):
        self._feed = feed
        self.franchise_id = franchise_id
        self.callback = callback
        self.active = True

    def unsubscribe(self) -> None:
        """Stop receiving updates. Safe to call more than once."""
        if self.active:
            self._feed._remove(self)
            self.active = False

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.unsubscribe()


class OrderFeed:
    def __init__(self):
        self._lock = threading.Lock()
        self._subscribers: dict[str, list[Subscription]] = {}

    def subscribe(
        self,
        franchise_id: str,
        callback: OrderListCallback,
        *,
        deliver_initial: bool = True,
    ) -> Subscription:
        subscription = Subscription(self, franchise_id, callback)
        with self._lock:
            self._subscribers.setdefault(franchise_id, []).append(subscription)
        if deliver_initial:
            self._deliver(subscription, _snapshot(franchise_id))
        return subscription

    def publish(self, franchise_id: str) -> int:
        """Push the current order list to every subscriber of a franchise."""
        with self._lock:
            targets = list(self._subscribers.get(franchise_id, ()))
        if not targets:
            return 0

        orders = _snapshot(franchise_id)
        for subscription in targets:
            self._deliver(subscription, orders)
        return len(targets)

    def subscriber_count(self, franchise_id: str | None = None) -> int:
        with self._lock:
            if franchise_id is not None:
                return len(self._subscribers.get(franchise_id, ()))
            return sum(len(subs) for subs in self._subscribers.values())

    def _deliver(self, subscription: Subscription, orders: list[dict]) -> None:
        if not subscription.active:
            return
        try:
            subscription.callback(list(orders))
        except Exception:
            # The write has already committed; one broken listener must not
            # stop the others.
            current_app.logger.exception(
                "Order feed subscriber failed for franchise %s", subscription.franchise_id
            )

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            subs = self._subscribers.get(subscription.franchise_id, [])
            if subscription in subs:
                subs.remove(subscription)
            if not subs:
                self._subscribers.pop(subscription.franchise_id, None)


def init_app(app) -> OrderFeed:
    feed = OrderFeed()
    app.extensions["order_feed"] = feed
    return feed


def get_feed() -> OrderFeed:
    return current_app.extensions["order_feed"]


def subscribe(franchise_id: str, callback: OrderListCallback, *, deliver_initial: bool = True) -> Subscription:
    return get_feed().subscribe(franchise_id, callback, deliver_initial=deliver_initial)


def publish(franchise_id: str) -> int:
    return get_feed().publish(franchise_id)
