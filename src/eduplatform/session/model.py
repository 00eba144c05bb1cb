"""Persisted session record: bearer token plus cached user profile."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import json
import re
from typing import Any, Mapping

from marketplace.models import ModelValidationError, User

_RFC3339_UTC_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z$")


class SessionError(ValueError):
    """Raised when session records or session operations are invalid."""


def utc_now_rfc3339() -> str:
    """Return the current UTC timestamp in RFC3339 form with trailing Z."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass(frozen=True)
class SessionRecord:
    """Token and profile saved on login/register and removed on logout."""

    token: str
    user: User
    saved_at: str

    def __post_init__(self) -> None:
        if not isinstance(self.token, str) or not self.token.strip():
            raise SessionError("token must not be empty")
        if not isinstance(self.user, User):
            raise SessionError("user must be a User")
        if not isinstance(self.saved_at, str) or not _RFC3339_UTC_RE.match(self.saved_at):
            raise SessionError("saved_at must be RFC3339 UTC with trailing Z")

    @classmethod
    def create(cls, *, token: str, user: User, saved_at: str | None = None) -> "SessionRecord":
        return cls(token=token, user=user, saved_at=saved_at or utc_now_rfc3339())

    def with_user(self, user: User) -> "SessionRecord":
        """Return a record carrying an updated profile for the same token."""
        return SessionRecord(token=self.token, user=user, saved_at=utc_now_rfc3339())

    def to_item(self) -> dict[str, Any]:
        """Serialize as the two storage entries: `token` and JSON `user`."""
        return {
            "token": self.token,
            "user": json.dumps(self.user.to_api_dict(), sort_keys=True),
            "savedAt": self.saved_at,
        }

    @classmethod
    def from_item(cls, item: Mapping[str, Any]) -> "SessionRecord":
        token = item.get("token")
        raw_user = item.get("user")
        saved_at = item.get("savedAt") or utc_now_rfc3339()
        if not isinstance(raw_user, str):
            raise SessionError("user must be a serialized profile")
        try:
            user = User.from_api_dict(json.loads(raw_user))
        except (json.JSONDecodeError, ModelValidationError) as exc:
            raise SessionError(f"stored user profile is invalid: {exc}") from exc
        return cls(token=token, user=user, saved_at=saved_at)
