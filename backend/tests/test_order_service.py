# Overview: Pytest coverage for checkout and the order workflow.

"""
Order Lifecycle Tests

Covers:
- Checkout validation and derived fields (code, sequence, total, tracking)
- Administrative status writes and the follow-up flag
- Customer/operator workflow transitions and their guards
"""

import pytest

from storefront.extensions import db
from storefront.models import Order, OrderLine
from storefront.services import order_service
from storefront.services.order_code_service import generate_order_code
from storefront.services.order_service import OrderLifecycleError
from storefront.validation import NotFoundError, ValidationError

from conftest import DEFAULT_ADDRESS, place_order


class TestCreateOrder:
    def test_returns_result_and_persists_pending_order(self, customer):
        result = place_order(customer.id, "fr000001", items=[{"name": "Tofu", "price": 3, "quantity": 1}])

        assert result.customer_user_id == customer.id
        assert result.order_code == "cu1000phto1fr000001"
        assert result.order_code_with_franchise == result.order_code
        assert len(result.tracking_number) == 10

        order = db.session.get(Order, result.order_id)
        assert order.status == "pending"
        assert order.follow_up is False
        assert order.user_id == customer.id
        assert order.franchise_id == "fr000001"
        assert order.order_number == 1
        assert order.tracking_number == result.tracking_number
        assert order.created_at is not None

    def test_total_equals_sum_of_persisted_lines(self, customer):
        items = [
            {"id": "a", "name": "Tofu", "price": "2.50", "quantity": 2},
            {"id": "b", "name": "Soy Milk", "price": 1.1, "quantity": 3},
            {"id": "c", "name": "Tempeh", "price": "0", "quantity": 7},
        ]
        result = place_order(customer.id, items=items)
        order = db.session.get(Order, result.order_id)

        assert [line.name for line in order.lines] == ["Tofu", "Soy Milk", "Tempeh"]
        assert [line.price_cents for line in order.lines] == [250, 110, 0]
        assert order.total_amount_cents == sum(l.price_cents * l.quantity for l in order.lines)
        assert order.total_amount_cents == 830

    def test_order_number_is_per_customer(self, customer, other_customer):
        first = place_order(customer.id)
        second = place_order(customer.id)
        other = place_order(other_customer.id)

        assert db.session.get(Order, first.order_id).order_number == 1
        assert db.session.get(Order, second.order_id).order_number == 2
        assert db.session.get(Order, other.order_id).order_number == 1

    def test_identical_inputs_may_share_code_but_not_tracking(self, customer, other_customer):
        a = place_order(customer.id)
        b = place_order(other_customer.id)
        assert a.order_code == b.order_code
        assert a.order_id != b.order_id

    def test_code_uses_item_names_and_postal_code_as_given(self, customer):
        items = [{"name": " Tofu", "price": 1, "quantity": 1}]
        address = dict(DEFAULT_ADDRESS, postal_code=" 1000", country_code="PH")

        result = place_order(customer.id, "fr000001", items=items, address=address)

        expected = generate_order_code(items, " 1000", "PH", 1, "fr000001")
        assert result.order_code == expected == "cu 1000ph t1fr000001"
        order = db.session.get(Order, result.order_id)
        assert order.lines[0].name == " Tofu"
        assert order.shipping_address["postal_code"] == "1000"

    def test_whitespace_only_item_name_is_rejected(self, customer):
        with pytest.raises(ValidationError):
            place_order(customer.id, items=[{"name": "   ", "price": 1, "quantity": 1}])

    def test_shipping_and_customer_snapshot(self, customer):
        result = place_order(
            customer.id,
            customer_info={"first_name": "Ana", "email": "ana@example.com"},
            seller_message="  leave at gate  ",
            store_slug="tofu-house",
        )
        order = db.session.get(Order, result.order_id)
        assert order.shipping_address == DEFAULT_ADDRESS
        assert order.customer_info["first_name"] == "Ana"
        assert order.customer_info["phone"] == ""
        assert order.seller_message == "leave at gate"
        assert order.store_slug == "tofu-house"

    @pytest.mark.parametrize("owner,franchise", [("", "default"), (None, "default"), ("cu000001", ""), ("cu000001", None)])
    def test_requires_owner_and_franchise(self, db_session, owner, franchise):
        with pytest.raises(ValidationError):
            place_order(owner, franchise)
        assert db_session.query(Order).count() == 0

    @pytest.mark.parametrize("items", [
        [],
        None,
        [{"price": 1, "quantity": 1}],
        [{"name": "", "price": 1, "quantity": 1}],
        [{"name": "Tofu", "price": "abc", "quantity": 1}],
        [{"name": "Tofu", "price": "NaN", "quantity": 1}],
        [{"name": "Tofu", "price": float("inf"), "quantity": 1}],
        [{"name": "Tofu", "price": -1, "quantity": 1}],
        [{"name": "Tofu", "price": True, "quantity": 1}],
        [{"name": "Tofu", "price": None, "quantity": 1}],
        [{"name": "Tofu", "price": 1, "quantity": 0}],
        [{"name": "Tofu", "price": 1, "quantity": 1.5}],
        [{"name": "Tofu", "price": 1, "quantity": "two"}],
        [{"name": "Tofu", "price": 1}],
    ])
    def test_rejects_malformed_items_without_coercion(self, customer, items):
        with pytest.raises(ValidationError):
            order_service.create_order(customer.id, "default", items, DEFAULT_ADDRESS)
        assert db.session.query(Order).count() == 0
        assert db.session.query(OrderLine).count() == 0


class TestStatusWrites:
    def test_update_status_normalizes_and_resets_follow_up(self, customer):
        order_id = place_order(customer.id).order_id
        order_service.update_follow_up_status(order_id, True)

        order = order_service.update_order_status(order_id, "  Verify Payment ")
        assert order.status == "verify payment"
        assert order.follow_up is False
        assert order.updated_at is not None

    def test_update_status_is_an_override(self, customer):
        order_id = place_order(customer.id).order_id
        assert order_service.update_order_status(order_id, "order sent").status == "order sent"
        assert order_service.update_order_status(order_id, "pending").status == "pending"

    def test_update_status_rejects_unknown_status(self, customer):
        order_id = place_order(customer.id).order_id
        with pytest.raises(ValidationError):
            order_service.update_order_status(order_id, "shipped")
        assert db.session.get(Order, order_id).status == "pending"

    def test_update_status_missing_order(self, db_session):
        with pytest.raises(NotFoundError):
            order_service.update_order_status(999999, "completed")

    def test_follow_up_toggle_is_idempotent(self, customer):
        order_id = place_order(customer.id).order_id
        order_service.update_follow_up_status(order_id, True)
        order = order_service.update_follow_up_status(order_id, True)
        assert order.follow_up is True
        assert order.status == "pending"

    def test_follow_up_missing_order(self, db_session):
        with pytest.raises(NotFoundError):
            order_service.update_follow_up_status(999999, True)

    def test_follow_up_requires_boolean(self, customer):
        order_id = place_order(customer.id).order_id
        with pytest.raises(ValidationError):
            order_service.update_follow_up_status(order_id, "yes")


class TestWorkflow:
    def _submit(self, order_id, owner_id):
        return order_service.submit_payment(order_id, owner_id, "12.50", "REF-123", "gcash")

    def test_full_forward_path(self, customer):
        order_id = place_order(customer.id).order_id

        order = self._submit(order_id, customer.id)
        assert order.status == "verify payment"
        assert order.payment_method == "gcash"
        assert order.payment_reference == "REF-123"
        assert order.payment_amount_cents == 1250
        assert order.payment_submitted_at is not None

        assert order_service.confirm_payment(order_id).status == "processing order"
        assert order_service.confirm_shipment(order_id).status == "order sent"
        assert order_service.complete_order(order_id).status == "completed"

    def test_payment_by_other_customer_is_not_found(self, customer, other_customer):
        order_id = place_order(customer.id).order_id
        with pytest.raises(NotFoundError):
            self._submit(order_id, other_customer.id)
        assert db.session.get(Order, order_id).status == "pending"

    def test_payment_only_from_pending(self, customer):
        order_id = place_order(customer.id).order_id
        self._submit(order_id, customer.id)
        with pytest.raises(OrderLifecycleError):
            self._submit(order_id, customer.id)

    @pytest.mark.parametrize("amount,reference,method", [
        ("abc", "REF", "gcash"),
        ("10", "", "gcash"),
        ("10", "REF", "paypal"),
    ])
    def test_payment_field_validation(self, customer, amount, reference, method):
        order_id = place_order(customer.id).order_id
        with pytest.raises(ValidationError):
            order_service.submit_payment(order_id, customer.id, amount, reference, method)

    def test_operator_steps_cannot_skip(self, customer):
        order_id = place_order(customer.id).order_id
        with pytest.raises(OrderLifecycleError):
            order_service.confirm_shipment(order_id)
        with pytest.raises(OrderLifecycleError):
            order_service.confirm_payment(order_id)
        assert db.session.get(Order, order_id).status == "pending"

    def test_repeated_confirmation_is_harmless(self, customer):
        order_id = place_order(customer.id).order_id
        self._submit(order_id, customer.id)
        first = order_service.confirm_payment(order_id)
        stamp = first.updated_at

        again = order_service.confirm_payment(order_id)
        assert again.status == "processing order"
        assert again.updated_at == stamp

    def test_follow_up_request_rules(self, customer, other_customer):
        order_id = place_order(customer.id).order_id
        with pytest.raises(OrderLifecycleError):
            order_service.request_follow_up(order_id, customer.id)

        self._submit(order_id, customer.id)
        assert order_service.request_follow_up(order_id, customer.id).follow_up is True
        assert order_service.request_follow_up(order_id, customer.id).follow_up is True

        with pytest.raises(NotFoundError):
            order_service.request_follow_up(order_id, other_customer.id)

        # Next status change clears it
        assert order_service.confirm_payment(order_id).follow_up is False

    def test_can_transition(self):
        assert order_service.can_transition("pending", "verify payment")
        assert order_service.can_transition("order sent", "completed")
        assert not order_service.can_transition("pending", "order sent")
        assert not order_service.can_transition("order sent", "pending")
        assert not order_service.can_transition("pending", "pending")
        with pytest.raises(ValidationError):
            order_service.can_transition("pending", "lost")
