# Overview: Pytest coverage for credential checks and session tokens.

from datetime import timedelta

import pytest

from storefront.extensions import db
from storefront.models import SessionToken
from storefront.services import auth_service, session_service, user_service
from storefront.services.auth_service import AuthenticationError
from storefront.time_utils import utcnow
from storefront.validation import NotFoundError

from conftest import PASSWORD


class TestPasswords:
    def test_hash_is_salted_bcrypt(self, app):
        first = auth_service.hash_password(PASSWORD)
        second = auth_service.hash_password(PASSWORD)
        assert first != second
        assert auth_service.verify_password(PASSWORD, first)
        assert not auth_service.verify_password("Wrong123!", first)

    def test_malformed_hash_never_matches(self):
        assert not auth_service.verify_password(PASSWORD, "plaintext")
        assert not auth_service.verify_password(PASSWORD, "")


class TestAuthenticate:
    def test_by_email_or_username(self, customer, franchise):
        assert auth_service.authenticate("ANA@example.com", PASSWORD).id == customer.id
        assert auth_service.authenticate("fr_owner", PASSWORD).id == franchise.id

    def test_stamps_last_login(self, customer):
        assert customer.last_login_at is None
        user = auth_service.authenticate("ana@example.com", PASSWORD)
        assert user.last_login_at is not None

    @pytest.mark.parametrize("identifier,password", [
        ("ana@example.com", "WrongPass1!"),
        ("nobody@example.com", PASSWORD),
        ("", PASSWORD),
        ("ana@example.com", ""),
    ])
    def test_rejects_bad_credentials(self, customer, identifier, password):
        with pytest.raises(AuthenticationError):
            auth_service.authenticate(identifier, password)

    def test_rejects_inactive_user(self, customer):
        user_service.set_active(customer.id, False)
        with pytest.raises(AuthenticationError):
            auth_service.authenticate("ana@example.com", PASSWORD)


class TestSessions:
    def test_context_carries_identity_and_category(self, franchise):
        session, token = session_service.create_session(franchise.id)
        assert session.token_hash != token

        context = session_service.validate_session(token)
        assert context.user_id == franchise.id
        assert context.category == "franchise"
        assert context.user.id == franchise.id

    def test_unknown_token(self, db_session):
        assert session_service.validate_session("not-a-token") is None
        assert session_service.validate_session("") is None

    def test_expired_session(self, customer):
        session, token = session_service.create_session(customer.id)
        session.expires_at = utcnow() - timedelta(minutes=1)
        db.session.commit()
        assert session_service.validate_session(token) is None

    def test_revoke(self, customer):
        _, token = session_service.create_session(customer.id)
        assert session_service.revoke_session(token) is True
        assert session_service.revoke_session(token) is False
        assert session_service.validate_session(token) is None

    def test_revoke_user_sessions(self, customer):
        tokens = [session_service.create_session(customer.id)[1] for _ in range(3)]
        assert session_service.revoke_user_sessions(customer.id) == 3
        assert all(session_service.validate_session(t) is None for t in tokens)
        assert db.session.query(SessionToken).filter_by(is_revoked=False).count() == 0

    def test_create_session_for_missing_user(self, db_session):
        with pytest.raises(NotFoundError):
            session_service.create_session("cu404404")
