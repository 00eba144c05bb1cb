"""User profile model as returned by the auth and users endpoints."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from ._fields import (
    ModelValidationError,
    document_id,
    optional_string,
    require_mapping,
    validate_non_empty_string,
)

ROLE_STUDENT = "student"
ROLE_TEACHER = "teacher"
ROLE_ADMIN = "admin"
USER_ROLES = frozenset((ROLE_STUDENT, ROLE_TEACHER, ROLE_ADMIN))


@dataclass(frozen=True)
class User:
    """Authenticated identity plus the role that drives UI capability."""

    id: str
    name: str
    email: str
    role: str
    age: int | None = None
    address: str | None = None

    def __post_init__(self) -> None:
        validate_non_empty_string(self.id, "id")
        validate_non_empty_string(self.name, "name")
        optional_string(self.email, "gmail")
        role = validate_non_empty_string(self.role, "role")
        if role not in USER_ROLES:
            raise ModelValidationError(f"role: unsupported value '{role}'")
        if self.age is not None and (not isinstance(self.age, int) or isinstance(self.age, bool)):
            raise ModelValidationError("age: expected integer")

    @property
    def is_student(self) -> bool:
        return self.role == ROLE_STUDENT

    @property
    def is_teacher(self) -> bool:
        return self.role == ROLE_TEACHER

    @classmethod
    def from_api_dict(cls, payload: Mapping[str, Any]) -> "User":
        """Build model from an auth or users payload.

        Profiles cached before roles existed carry no `role`; they are
        treated as students, which is the backend's default role.
        """
        payload = require_mapping(payload, "User")
        age = payload.get("age")
        address = payload.get("address")
        return cls(
            id=document_id(payload, "User"),
            name=payload.get("name"),
            email=optional_string(payload.get("gmail", payload.get("email")), "gmail"),
            role=payload.get("role") or ROLE_STUDENT,
            age=age if isinstance(age, int) and not isinstance(age, bool) else None,
            address=address if isinstance(address, str) else None,
        )

    def to_api_dict(self) -> dict[str, Any]:
        """Serialize using the backend's field names."""
        payload: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "gmail": self.email,
            "role": self.role,
        }
        if self.age is not None:
            payload["age"] = self.age
        if self.address is not None:
            payload["address"] = self.address
        return payload
