"""
Identity & Session Module

Authenticates users against the stored snapshot and tracks which user, if
any, is signed in. Passwords are compared in clear text; this is a demo
identity layer, not a security boundary.
"""

from typing import Optional

from .errors import InvalidCredentials, NotAuthenticated
from .logging_config import get_logger, log_action
from .models import Session, User
from .state import StateStore


class SessionManager:
    """
    Manages sign-in state for the single local actor
    """

    def __init__(self, store: StateStore):
        self.store = store
        self.logger = get_logger("bankpro.identity")

    def authenticate(self, username: str, password: str) -> User:
        """
        Find the user with exactly this username and password.

        Raises:
            InvalidCredentials: If no user matches
        """
        state = self.store.load()
        for user in state.users.values():
            if user.username == username and user.password == password:
                return user

        log_action(
            self.logger, "warning", "Login failed",
            action="authenticate", resource=f"username:{username}",
            extra={"error": InvalidCredentials.code}
        )
        raise InvalidCredentials("Invalid credentials")

    def login(self, user: User) -> None:
        """Make user the current session user and persist"""
        with self.store.mutate() as state:
            state.session = Session(user_id=user.id)

        log_action(
            self.logger, "info", f"User {user.username} logged in",
            user_id=user.id, action="login", resource=f"user:{user.id}"
        )

    def logout(self) -> None:
        """Clear the session and persist"""
        with self.store.mutate() as state:
            previous = state.session.user_id
            state.session = Session()

        log_action(
            self.logger, "info", "Logged out",
            user_id=previous, action="logout"
        )

    def sign_in(self, username: str, password: str) -> User:
        """Authenticate and log in; the session is untouched on failure"""
        user = self.authenticate(username, password)
        self.login(user)
        return user

    def current_user(self) -> Optional[User]:
        """Resolve the session user, or None if nobody is signed in"""
        state = self.store.load()
        if state.session.user_id is None:
            return None
        # Session may reference a user that no longer exists
        return state.users.get(state.session.user_id)

    def require_user(self) -> User:
        """
        Current user, for commands that need a signed-in actor.

        Raises:
            NotAuthenticated: If nobody is signed in
        """
        user = self.current_user()
        if user is None:
            raise NotAuthenticated("Please login first")
        return user

    def get_user(self, user_id: int) -> Optional[User]:
        """Get user by ID"""
        return self.store.load().users.get(user_id)

    def get_user_by_username(self, username: str) -> Optional[User]:
        """Get user by login name"""
        for user in self.store.load().users.values():
            if user.username == username:
                return user
        return None
