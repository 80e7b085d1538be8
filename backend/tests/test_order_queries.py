# Overview: Pytest coverage for order lookups and the live order feed.

from datetime import timedelta

from storefront.extensions import db
from storefront.models import Order
from storefront.services import order_feed_service, order_query_service, order_service
from storefront.time_utils import utcnow

from conftest import place_order


class TestOrderQueries:
    def test_code_lookup_requires_matching_owner(self, customer, other_customer):
        result = place_order(other_customer.id)

        assert order_query_service.get_orders_by_code(result.order_code, customer.id) == []
        found = order_query_service.get_orders_by_code(result.order_code, other_customer.id)
        assert [o.id for o in found] == [result.order_id]

    def test_code_lookup_rejects_blank_inputs(self, customer):
        result = place_order(customer.id)
        assert order_query_service.get_orders_by_code("", customer.id) == []
        assert order_query_service.get_orders_by_code(result.order_code, "") == []

    def test_get_order_by_id(self, customer):
        result = place_order(customer.id)
        assert order_query_service.get_order_by_id(result.order_id).id == result.order_id
        assert order_query_service.get_order_by_id(999999) is None

    def test_owner_orders_newest_first(self, customer, other_customer):
        ids = [place_order(customer.id).order_id for _ in range(3)]
        place_order(other_customer.id)

        # Make the first order the most recent
        first = db.session.get(Order, ids[0])
        first.created_at = utcnow() + timedelta(minutes=5)
        db.session.commit()

        orders = order_query_service.get_orders_by_owner(customer.id)
        assert [o.id for o in orders] == [ids[0], ids[2], ids[1]]

    def test_equal_timestamps_fall_back_to_id(self, customer):
        ids = [place_order(customer.id).order_id for _ in range(3)]
        stamp = utcnow()
        for order in db.session.query(Order).all():
            order.created_at = stamp
        db.session.commit()

        orders = order_query_service.get_orders_by_franchise("default")
        assert [o.id for o in orders] == sorted(ids, reverse=True)

    def test_franchise_scope(self, customer):
        mine = place_order(customer.id, "fr000001").order_id
        place_order(customer.id, "fr000002")
        place_order(customer.id, "default")

        orders = order_query_service.get_orders_by_franchise("fr000001")
        assert [o.id for o in orders] == [mine]
        assert order_query_service.get_orders_by_franchise("fr000099") == []

    def test_summarize_orders(self, customer, other_customer):
        a = place_order(customer.id, items=[{"name": "Tofu", "price": "2.00", "quantity": 3}])
        place_order(customer.id, items=[{"name": "Tofu", "price": "1.00", "quantity": 1}])
        place_order(other_customer.id, items=[{"name": "Milk", "price": "4.50", "quantity": 2}])
        order_service.update_order_status(a.order_id, "verify payment")

        summary = order_query_service.summarize_orders(order_query_service.get_orders_by_franchise("default"))
        assert summary.order_count == 3
        assert summary.revenue_cents == 600 + 100 + 900
        assert summary.unique_customers == 2
        assert summary.by_status == {"pending": 2, "verify payment": 1}

    def test_summarize_empty(self):
        summary = order_query_service.summarize_orders([])
        assert summary.to_dict() == {
            "order_count": 0,
            "revenue_cents": 0,
            "unique_customers": 0,
            "by_status": {},
        }


class TestOrderFeed:
    def test_subscriber_gets_initial_list_then_refreshes(self, customer):
        existing = place_order(customer.id, "fr000001").order_id
        received = []

        sub = order_feed_service.subscribe("fr000001", lambda orders: received.append([o["id"] for o in orders]))
        assert received == [[existing]]

        new = place_order(customer.id, "fr000001").order_id
        assert received[-1] == [new, existing]

        order_service.update_order_status(existing, "verify payment")
        assert len(received) == 3
        sub.unsubscribe()

    def test_only_matching_franchise_is_notified(self, customer):
        received = []
        with order_feed_service.subscribe("fr000001", received.append):
            place_order(customer.id, "fr000002")
        assert received == [[]]

    def test_unsubscribe_stops_updates_and_is_idempotent(self, customer):
        feed = order_feed_service.get_feed()
        received = []
        sub = feed.subscribe("default", received.append)
        assert feed.subscriber_count("default") == 1

        sub.unsubscribe()
        sub.unsubscribe()
        assert feed.subscriber_count("default") == 0
        assert feed.subscriber_count() == 0

        place_order(customer.id)
        assert len(received) == 1

    def test_context_manager_tears_down(self, customer):
        feed = order_feed_service.get_feed()
        with feed.subscribe("default", lambda orders: None) as sub:
            assert sub.active
            assert feed.subscriber_count("default") == 1
        assert not sub.active
        assert feed.subscriber_count("default") == 0

    def test_failing_subscriber_does_not_block_others_or_the_write(self, customer):
        def broken(orders):
            raise RuntimeError("dashboard went away")

        received = []
        feed = order_feed_service.get_feed()
        feed.subscribe("default", broken, deliver_initial=False)
        feed.subscribe("default", received.append, deliver_initial=False)

        result = place_order(customer.id)

        assert db.session.get(Order, result.order_id) is not None
        assert [o["id"] for o in received[0]] == [result.order_id]

    def test_publish_without_subscribers(self, customer):
        assert order_feed_service.publish("default") == 0

    def test_delivered_orders_outlive_the_writer_session(self, customer):
        received = []
        order_feed_service.subscribe("default", received.append, deliver_initial=False)

        result = place_order(customer.id)
        db.session.remove()

        delivered = received[-1][0]
        assert isinstance(delivered, dict)
        assert delivered["id"] == result.order_id
        assert [item["name"] for item in delivered["items"]] == ["Tofu", "Soy Powder"]
        assert delivered["status"] == "pending"
