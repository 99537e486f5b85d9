"""
Tests for authentication and session tracking
"""

import logging

import pytest

from bankpro.errors import InvalidCredentials, NotAuthenticated
from bankpro.identity import SessionManager
from bankpro.models import Session, User
from bankpro.state import StateStore
from bankpro.storage import InMemorySnapshotStorage


@pytest.fixture
def store():
    """Seeded in-memory store"""
    return StateStore(InMemorySnapshotStorage())


@pytest.fixture
def sessions(store):
    return SessionManager(store)


class TestAuthenticate:
    """Credential matching"""

    def test_valid_credentials(self, sessions):
        user = sessions.authenticate("sharmila", "password123")

        assert user.id == 1
        assert user.full_name == "Sharmila R"

    def test_authenticate_does_not_log_in(self, sessions):
        sessions.authenticate("john", "johnpwd")
        assert sessions.current_user() is None

    def test_wrong_password(self, sessions):
        with pytest.raises(InvalidCredentials):
            sessions.authenticate("sharmila", "wrong")

    def test_unknown_user(self, sessions):
        with pytest.raises(InvalidCredentials):
            sessions.authenticate("nobody", "password123")

    def test_username_is_case_sensitive(self, sessions):
        with pytest.raises(InvalidCredentials):
            sessions.authenticate("Sharmila", "password123")

    def test_password_from_another_user(self, sessions):
        with pytest.raises(InvalidCredentials):
            sessions.authenticate("sharmila", "johnpwd")

    def test_error_code(self, sessions):
        with pytest.raises(InvalidCredentials) as exc_info:
            sessions.authenticate("john", "nope")
        assert exc_info.value.code == "invalid_credentials"

    def test_failed_login_logged_without_password(self, sessions, caplog):
        with caplog.at_level(logging.WARNING, logger="bankpro"):
            with pytest.raises(InvalidCredentials):
                sessions.authenticate("john", "s3cret-guess")

        assert "Login failed" in caplog.text
        assert "s3cret-guess" not in caplog.text


class TestSession:
    """Login, logout and current user resolution"""

    def test_no_session_initially(self, sessions):
        assert sessions.current_user() is None

    def test_login_sets_current_user(self, sessions, store):
        user = sessions.authenticate("sharmila", "password123")
        sessions.login(user)

        assert sessions.current_user() == user
        assert store.load().session == Session(user_id=1)

    def test_session_persists_across_managers(self, sessions, store):
        sessions.sign_in("john", "johnpwd")

        assert SessionManager(store).current_user().username == "john"

    def test_login_replaces_previous_session(self, sessions):
        sessions.sign_in("sharmila", "password123")
        sessions.sign_in("john", "johnpwd")

        assert sessions.current_user().id == 2

    def test_logout_clears_session(self, sessions, store):
        sessions.sign_in("sharmila", "password123")
        sessions.logout()

        assert sessions.current_user() is None
        assert store.load().session.user_id is None

    def test_logout_without_session(self, sessions):
        sessions.logout()
        assert sessions.current_user() is None

    def test_wrong_password_leaves_session_unset(self, sessions, store):
        with pytest.raises(InvalidCredentials):
            sessions.sign_in("sharmila", "wrong")

        assert sessions.current_user() is None
        assert store.load().session.user_id is None

    def test_failed_sign_in_keeps_existing_session(self, sessions):
        sessions.sign_in("john", "johnpwd")

        with pytest.raises(InvalidCredentials):
            sessions.sign_in("sharmila", "wrong")

        assert sessions.current_user().username == "john"

    def test_session_pointing_at_missing_user(self, sessions, store):
        with store.mutate() as state:
            state.session = Session(user_id=99)

        assert sessions.current_user() is None

    def test_require_user(self, sessions):
        with pytest.raises(NotAuthenticated):
            sessions.require_user()

        sessions.sign_in("john", "johnpwd")
        assert sessions.require_user().username == "john"


class TestUserLookup:
    """Read access to stored users"""

    def test_get_user(self, sessions):
        assert sessions.get_user(2).username == "john"
        assert sessions.get_user(42) is None

    def test_get_user_by_username(self, sessions):
        assert sessions.get_user_by_username("sharmila").id == 1
        assert sessions.get_user_by_username("SHARMILA") is None

    def test_added_user_can_sign_in(self, sessions, store):
        with store.mutate() as state:
            user_id = state.allocate_id("user")
            state.users[user_id] = User(id=user_id, username="asha", password="pw", full_name="Asha K")

        assert sessions.sign_in("asha", "pw").id == 3
