"""Who is logged in, and in which role.

There are no passwords: the login screen lists the known users and picking
one starts a session as that user. The login belongs to the ``AuthService``
instance, which the app keeps in ``st.session_state``, so browser sessions
never see each other's login. Given a ``session_key``, the login is also
kept in that key's ``current_user:<key>`` document and survives a reload.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, MutableMapping, Optional

from . import storage as st
from .errors import PersistenceError, RecordValidationError, ValidationError
from .models import User, UserRole, default_users
from .repository import UserRepository
from .schemas import parse_user
from .storage import StorageService
from .utils import generate_unique_id, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoginResult:
    success: bool
    user: Optional[User] = None
    error: Optional[str] = None


class AuthService:
    def __init__(
        self,
        storage: StorageService,
        seed_defaults: bool = True,
        on_change: Optional[Callable[[Dict[str, Any]], None]] = None,
        session_key: Optional[str] = None,
    ):
        self.storage = storage
        self.session_document = st.session_document(session_key) if session_key else None
        self.seed_defaults = seed_defaults
        self.on_change = on_change
        self.users = UserRepository(storage)
        self._current: Optional[User] = None
        self._init_users()
        self._restore_session()

    def _init_users(self) -> None:
        self.users.load()
        if len(self.users) == 0 and self.seed_defaults:
            self.users.reset(default_users())
            self.users.save()
            logger.info("Seeded %d default users", len(self.users))

    def _restore_session(self) -> None:
        if self.session_document is None:
            return
        stored = self.storage.load_value(self.session_document)
        if not stored:
            return
        try:
            saved = parse_user(stored)
        except RecordValidationError as exc:
            logger.warning("Discarding stored session: %s", exc)
            self.storage.clear(self.session_document)
            return
        user = self.users.get(saved.id)
        if user is None:
            logger.warning("Stored session user %s no longer exists", saved.id)
            self.storage.clear(self.session_document)
            return
        self._current = user
        logger.info("Session restored for %s", user.name)

    def _notify(self) -> None:
        if self.on_change is not None:
            self.on_change(self.auth_state())

    # ---------------- session ----------------

    def auth_state(self) -> Dict[str, Any]:
        return {
            "is_authenticated": self.is_authenticated,
            "current_user": self._current,
            "role": self._current.role.value if self._current else None,
        }

    def login(self, user_id: str) -> LoginResult:
        user = self.users.get(user_id)
        if user is None:
            logger.warning("Login refused for unknown user %s", user_id)
            return LoginResult(success=False, error="User not found")
        self._current = user
        if self.session_document and not self.storage.save_value(self.session_document, user.to_record()):
            logger.warning("Session for %s will not survive a reload", user.id)
        logger.info("Logged in as %s (%s)", user.name, user.role.value)
        self._notify()
        return LoginResult(success=True, user=user)

    def logout(self) -> None:
        if self._current is not None:
            logger.info("Logged out %s", self._current.name)
        self._current = None
        if self.session_document:
            self.storage.clear(self.session_document)
        self._notify()

    @property
    def is_authenticated(self) -> bool:
        return self._current is not None

    @property
    def current_user(self) -> Optional[User]:
        return self._current

    @property
    def current_role(self) -> Optional[UserRole]:
        return self._current.role if self._current else None

    @property
    def is_admin(self) -> bool:
        return self._current is not None and self._current.is_admin

    @property
    def is_client(self) -> bool:
        return self._current is not None and self._current.is_client

    def has_role(self, role: UserRole | str) -> bool:
        return self._current is not None and self._current.role == UserRole(role)

    # ---------------- users ----------------

    def all_users(self) -> List[User]:
        return self.users.all()

    def clients(self) -> List[User]:
        return self.users.clients()

    def admins(self) -> List[User]:
        return self.users.admins()

    def get_user(self, user_id: Optional[str]) -> Optional[User]:
        return self.users.get(user_id)

    def search_users(self, query: str) -> List[User]:
        return self.users.search(query)

    def user_counts(self) -> Dict[str, int]:
        return {
            "total": len(self.users),
            "admins": len(self.users.admins()),
            "clients": len(self.users.clients()),
        }

    def add_user(self, name: str, role: UserRole | str = UserRole.CLIENT, email: str = "") -> User:
        if not name or not name.strip():
            raise ValidationError("User name is required")
        try:
            role = UserRole(role)
        except ValueError:
            raise ValidationError(f"Unknown role: {role}") from None
        # other sessions may have changed the users since we loaded them
        self.users.load()
        user = User(
            id=generate_unique_id("user"),
            name=name.strip(),
            role=role,
            email=(email or "").strip(),
            created_at=utcnow(),
        )
        self.users.add(user)
        self.users.commit(user)
        logger.info("Added %s user %s", role.value, user.name)
        return user

    def remove_user(self, user_id: str) -> bool:
        if self._current is not None and self._current.id == user_id:
            logger.warning("Cannot remove the currently logged in user")
            return False
        self.users.load()
        if not self.users.remove(user_id):
            return False
        self.users.commit()
        logger.info("Removed user %s", user_id)
        return True

    def reset(self) -> None:
        """Log out and restore the default users."""
        self.logout()
        self.users.reset(default_users())
        if not self.users.save():
            raise PersistenceError(st.USERS)


# Streamlit session helpers

def is_logged_in(session_state: MutableMapping[str, Any]) -> bool:
    return session_state.get("logged_in", False)


def set_login_state(session_state: MutableMapping[str, Any], user: Optional[User]) -> None:
    session_state["logged_in"] = user is not None
    session_state["user_id"] = user.id if user else None
