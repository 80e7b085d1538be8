# Overview: Pytest coverage for category-prefixed identifier allocation.

import pytest

from storefront.extensions import db
from storefront.models import Counter, User
from storefront.services.concurrency import begin_write
from storefront.services.identifier_service import (
    allocate_id,
    current_count,
    detect_category,
    format_id,
    has_prefix,
    next_scanned_id,
    prefix_for_category,
)
from storefront.validation import ValidationError


class TestAllocateId:
    def test_absent_counter_starts_at_one(self, db_session):
        assert current_count("cu") == 0
        assert allocate_id("cu") == "cu000001"
        assert current_count("cu") == 1

    def test_sequential_without_gaps(self, db_session):
        ids = [allocate_id("fr") for _ in range(5)]
        assert ids == [f"fr{n:06d}" for n in range(1, 6)]

    def test_namespaces_are_independent(self, db_session):
        allocate_id("cu")
        allocate_id("cu")
        assert allocate_id("fr") == "fr000001"
        assert allocate_id("cu") == "cu000003"

    def test_existing_counter_value_is_continued(self, db_session):
        db_session.add(Counter(name="cu", current_count=41))
        db_session.commit()
        assert allocate_id("cu") == "cu000042"

    @pytest.mark.parametrize("prefix", ["", "xx", "web", "te", None])
    def test_rejects_non_counter_prefix(self, db_session, prefix):
        with pytest.raises(ValidationError):
            allocate_id(prefix)

    def test_uncommitted_allocation_rolls_back_with_caller(self, db_session):
        allocate_id("cu")

        begin_write()
        assert allocate_id("cu", commit=False) == "cu000002"
        db.session.rollback()

        assert current_count("cu") == 1
        assert allocate_id("cu") == "cu000002"


class TestScannedIds:
    def _add_user(self, user_id, email):
        db.session.add(User(
            id=user_id, category="test", email=email, password_hash="x",
            first_name="T", last_name="User",
        ))
        db.session.commit()

    def test_first_scanned_id(self, db_session):
        assert next_scanned_id("web") == "web000001"

    def test_highest_suffix_plus_one(self, db_session):
        self._add_user("te000001", "t1@example.com")
        self._add_user("te000007", "t7@example.com")
        assert next_scanned_id("te") == "te000008"

    def test_ignores_ids_without_numeric_suffix(self, db_session):
        self._add_user("te000002", "t2@example.com")
        self._add_user("teacher1x", "tx@example.com")
        assert next_scanned_id("te") == "te000003"


class TestCategoryPrefixes:
    @pytest.mark.parametrize("user_id,category", [
        ("cu000010", "customer"),
        ("fr000003", "franchise"),
        ("web000001", "webmaster"),
        ("te000002", "test"),
    ])
    def test_detect_category(self, user_id, category):
        assert detect_category(user_id) == category
        assert has_prefix(user_id, category)

    @pytest.mark.parametrize("user_id", ["", "ad000001", "cu", "cuabc", None])
    def test_detect_category_rejects_unknown(self, user_id):
        with pytest.raises(ValidationError):
            detect_category(user_id)
        assert not has_prefix(user_id, "customer")

    def test_prefix_for_category(self):
        assert prefix_for_category("franchise") == "fr"
        with pytest.raises(ValidationError):
            prefix_for_category("admin")

    def test_format_id_pads_to_six(self):
        assert format_id("cu", 12) == "cu000012"
        assert format_id("fr", 1234567) == "fr1234567"
