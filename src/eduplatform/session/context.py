"""Explicitly passed session object shared by every view."""

from __future__ import annotations

import logging
import threading
from typing import Any, Mapping, Protocol

from marketplace.models import USER_ROLES, ModelValidationError, User

from .model import SessionError, SessionRecord
from .store import SessionStore

logger = logging.getLogger(__name__)


class JsonPoster(Protocol):
    def post(self, path: str, payload: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """POST a JSON body and return the decoded JSON object."""


class Session:
    """Current user, bearer token and the operations that change them.

    The cached state is read by every view and mutated only by `login`,
    `register`, `logout`, `update_profile` and `refresh`.
    """

    def __init__(self, store: SessionStore) -> None:
        self._store = store
        self._lock = threading.Lock()
        self._record: SessionRecord | None = None
        self.refresh()

    def refresh(self) -> None:
        """Reload the cached state from the store."""
        record = self._store.load()
        with self._lock:
            self._record = record

    def current_user(self) -> User | None:
        with self._lock:
            return self._record.user if self._record is not None else None

    def token(self) -> str | None:
        with self._lock:
            return self._record.token if self._record is not None else None

    def is_authenticated(self) -> bool:
        with self._lock:
            return self._record is not None

    def login(self, client: JsonPoster, email: str, password: str) -> User:
        if not isinstance(email, str) or not email.strip():
            raise SessionError("email is required")
        if not isinstance(password, str) or not password:
            raise SessionError("password is required")
        response = client.post("/auth/login", {"gmail": email.strip(), "password": password})
        user = self._accept_auth_response(response)
        logger.info("Signed in user %s as %s", user.id, user.role)
        return user

    def register(
        self,
        client: JsonPoster,
        *,
        name: str,
        email: str,
        password: str,
        age: int,
        address: str,
        role: str,
    ) -> User:
        if role not in USER_ROLES:
            raise SessionError(f"unsupported role '{role}'")
        response = client.post(
            "/auth/register",
            {
                "name": name,
                "gmail": email,
                "password": password,
                "age": age,
                "address": address,
                "role": role,
            },
        )
        user = self._accept_auth_response(response, fallback_role=role)
        logger.info("Registered user %s as %s", user.id, user.role)
        return user

    def logout(self) -> None:
        self._store.clear()
        with self._lock:
            self._record = None
        logger.info("Signed out")

    def update_profile(self, user: User) -> None:
        """Replace the cached profile after a profile edit."""
        with self._lock:
            record = self._record
        if record is None:
            raise SessionError("cannot update the profile of a signed-out session")
        if user.id != record.user.id:
            raise SessionError("profile update must keep the same user id")
        if user.role != record.user.role:
            raise SessionError("user role cannot change after creation")
        updated = record.with_user(user)
        self._store.save(updated)
        with self._lock:
            self._record = updated

    def _accept_auth_response(self, response: Mapping[str, Any], *, fallback_role: str | None = None) -> User:
        raw_user = response.get("user")
        if not isinstance(raw_user, Mapping):
            raise SessionError("auth response is missing the user profile")
        if fallback_role is not None and not raw_user.get("role"):
            raw_user = {**raw_user, "role": fallback_role}
        try:
            user = User.from_api_dict(raw_user)
        except ModelValidationError as exc:
            raise SessionError(f"auth response user profile is invalid: {exc}") from exc

        token = response.get("token")
        if isinstance(token, str) and token.strip():
            record = SessionRecord.create(token=token, user=user)
            self._store.save(record)
            with self._lock:
                self._record = record
        return user
