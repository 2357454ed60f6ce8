"""
Identity collaborator tests: accounts, authentication and sessions.
"""

from datetime import timedelta

import pytest

from stockledger.errors import ConflictError, NotFound, ValidationError
from stockledger.models import Role, SessionToken, User
from stockledger.services import auth_service, session_service
from stockledger.services.auth_service import PasswordValidationError, validate_password_strength
from stockledger.time_utils import utcnow

TEST_PASSWORD = "Password123!"


class TestPasswords:

    @pytest.mark.parametrize("password", [
        "Short1!",          # too short
        "alllowercase1!",   # no uppercase
        "ALLUPPERCASE1!",   # no lowercase
        "NoDigitsHere!",    # no digit
        "NoSpecial123",     # no special char
        None,
    ])
    def test_weak_passwords(self, password):
        with pytest.raises(PasswordValidationError):
            validate_password_strength(password)

    def test_hash_and_verify(self, app):
        hashed = auth_service.hash_password(TEST_PASSWORD)
        assert hashed != TEST_PASSWORD
        assert auth_service.verify_password(TEST_PASSWORD, hashed)
        assert not auth_service.verify_password("Wrong123!", hashed)
        assert not auth_service.verify_password(TEST_PASSWORD, "not-a-bcrypt-hash")


class TestAccounts:

    def test_default_roles_idempotent(self, db_session):
        assert auth_service.create_default_roles() == 2
        assert auth_service.create_default_roles() == 0
        assert {r.role_name for r in db_session.query(Role).all()} == {"admin", "inventory"}

    def test_create_account(self, setup_roles):
        user_id = auth_service.create_account(
            "Baker@Example.com", TEST_PASSWORD, {"first_name": "Ada", "role": "admin"}
        ).unwrap()
        user = auth_service.authenticate("baker@example.com", TEST_PASSWORD)
        assert user.id == user_id
        assert user.username == "baker"
        assert user.role_name == "admin"
        assert user.last_login_at is not None

    def test_default_role_is_inventory(self, setup_roles):
        auth_service.create_account("clerk2@example.com", TEST_PASSWORD).unwrap()
        assert auth_service.authenticate("clerk2", TEST_PASSWORD).role_name == "inventory"

    def test_duplicate_email(self, inventory_user):
        result = auth_service.create_account(inventory_user.email, TEST_PASSWORD, {"username": "other"})
        assert isinstance(result.error, ConflictError)

    def test_unknown_role(self, setup_roles):
        result = auth_service.create_account("x@example.com", TEST_PASSWORD, {"role": "owner"})
        assert isinstance(result.error, NotFound)

    def test_weak_password_is_validation_failure(self, setup_roles):
        result = auth_service.create_account("x@example.com", "weak")
        assert isinstance(result.error, ValidationError)

    def test_bad_email(self, setup_roles):
        assert isinstance(auth_service.create_account("nope", TEST_PASSWORD).error, ValidationError)

    def test_wrong_password(self, inventory_user):
        assert auth_service.authenticate(inventory_user.email, "Wrong123!") is None

    def test_inactive_user_cannot_authenticate(self, db_session, inventory_user):
        inventory_user.is_active = False
        db_session.commit()
        assert auth_service.authenticate(inventory_user.email, TEST_PASSWORD) is None

    def test_email_taken_after_duplicate_check_is_conflict(self, db_session, setup_roles, monkeypatch):
        real_hash = auth_service.hash_password
        role = db_session.query(Role).filter_by(role_name="inventory").one()

        def hash_after_concurrent_insert(password):
            # Another request registers the same email between the duplicate
            # check and this insert
            db_session.add(User(username="first", email="race@example.com", password_hash="x", role_id=role.id))
            db_session.commit()
            return real_hash(password)

        monkeypatch.setattr(auth_service, "hash_password", hash_after_concurrent_insert)
        result = auth_service.create_account("race@example.com", TEST_PASSWORD, {"username": "second"})

        assert isinstance(result.error, ConflictError)
        assert db_session.query(User).filter_by(email="race@example.com").count() == 1


class TestSessions:

    def test_round_trip(self, inventory_user):
        session, token = session_service.create_session(inventory_user.id, user_agent="pytest")
        assert session.token_hash == session_service.hash_token(token)
        assert session.token_hash != token

        context = session_service.validate_session(token)
        assert context.user.id == inventory_user.id
        assert context.role_name == "inventory"

    def test_invalid_tokens(self, db_session):
        assert session_service.validate_session(None) is None
        assert session_service.validate_session("") is None
        assert session_service.validate_session("deadbeef") is None

    def test_unknown_user(self, db_session):
        with pytest.raises(ValueError):
            session_service.create_session(999)

    def test_end_session(self, inventory_user):
        _, token = session_service.create_session(inventory_user.id)
        assert session_service.end_session(token) is True
        assert session_service.validate_session(token) is None
        assert session_service.end_session(token) is False
        assert session_service.end_session(None) is False

    def test_absolute_expiry(self, db_session, inventory_user):
        session, token = session_service.create_session(inventory_user.id)
        session.expires_at = utcnow() - timedelta(seconds=1)
        db_session.commit()
        assert session_service.validate_session(token) is None

    def test_idle_timeout_revokes(self, db_session, inventory_user):
        session, token = session_service.create_session(inventory_user.id)
        session.last_used_at = utcnow() - timedelta(hours=3)
        db_session.commit()

        assert session_service.validate_session(token) is None
        revoked = db_session.get(SessionToken, session.id)
        assert revoked.is_revoked
        assert revoked.revoked_reason == "Idle timeout"

    def test_deactivated_user_revokes(self, db_session, inventory_user):
        _, token = session_service.create_session(inventory_user.id)
        inventory_user.is_active = False
        db_session.commit()
        assert session_service.validate_session(token) is None

    def test_end_session_failure_is_swallowed(self, inventory_user, monkeypatch, caplog):
        _, token = session_service.create_session(inventory_user.id)

        def boom(*args, **kwargs):
            raise RuntimeError("store down")

        monkeypatch.setattr(session_service, "_revoke", boom)
        assert session_service.end_session(token) is False
        assert "Failed to end session" in caplog.text


class TestUserManagement:

    def test_list_users(self, admin_user, inventory_user):
        users = auth_service.list_users().unwrap()
        assert [u.username for u in users] == ["admin", "clerk"]
        assert [u.role_name for u in users] == ["admin", "inventory"]

    def test_list_active_only(self, db_session, admin_user, inventory_user):
        inventory_user.is_active = False
        db_session.commit()
        active = auth_service.list_users(include_inactive=False).unwrap()
        assert [u.username for u in active] == ["admin"]

    def test_deactivate_revokes_sessions(self, db_session, admin_user, inventory_user):
        _, first = session_service.create_session(inventory_user.id)
        _, second = session_service.create_session(inventory_user.id)
        _, admin_token = session_service.create_session(admin_user.id)

        user, revoked = auth_service.set_user_active(
            inventory_user.id, False, acting_user_id=admin_user.id
        ).unwrap()

        assert user.is_active is False
        assert revoked == 2
        assert session_service.validate_session(first) is None
        assert session_service.validate_session(second) is None
        assert session_service.validate_session(admin_token) is not None

        reasons = {
            s.revoked_reason
            for s in db_session.query(SessionToken).filter_by(user_id=inventory_user.id)
        }
        assert reasons == {"Account deactivated by admin"}
        assert auth_service.authenticate(inventory_user.email, TEST_PASSWORD) is None

    def test_reactivate(self, inventory_user):
        auth_service.set_user_active(inventory_user.id, False).unwrap()
        user, revoked = auth_service.set_user_active(inventory_user.id, True).unwrap()
        assert user.is_active is True
        assert revoked == 0
        assert auth_service.authenticate(inventory_user.email, TEST_PASSWORD) is not None

    def test_failures(self, admin_user, inventory_user):
        assert isinstance(auth_service.set_user_active(9999, False).error, NotFound)
        assert isinstance(auth_service.set_user_active(inventory_user.id, True).error, ValidationError)
        assert isinstance(auth_service.set_user_active(inventory_user.id, "no").error, ValidationError)

        own = auth_service.set_user_active(admin_user.id, False, acting_user_id=admin_user.id)
        assert isinstance(own.error, ValidationError)
        assert admin_user.is_active is True
