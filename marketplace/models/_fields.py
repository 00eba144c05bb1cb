"""Shared payload validation helpers for marketplace models."""

from __future__ import annotations

from typing import Any, Mapping


class ModelValidationError(ValueError):
    """Raised when model payloads fail validation."""


def validate_non_empty_string(value: Any, field_name: str) -> str:
    """Require non-empty strings for payload string fields."""
    if not isinstance(value, str):
        raise ModelValidationError(f"{field_name}: expected string")
    if not value.strip():
        raise ModelValidationError(f"{field_name}: must not be empty")
    return value


def optional_string(value: Any, field_name: str, default: str = "") -> str:
    if value is None:
        return default
    if not isinstance(value, str):
        raise ModelValidationError(f"{field_name}: expected string")
    return value


def validate_non_negative_number(value: Any, field_name: str) -> int | float:
    """Require numeric values that are >= 0."""
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        raise ModelValidationError(f"{field_name}: expected number")
    if value < 0:
        raise ModelValidationError(f"{field_name}: must be >= 0")
    return value


def document_id(payload: Mapping[str, Any], label: str) -> str:
    """Return the document id, accepting both `_id` and `id` keys."""
    raw = payload.get("_id")
    if raw is None:
        raw = payload.get("id")
    if raw is None:
        raise ModelValidationError(f"{label}: missing required field(s): ['_id']")
    return validate_non_empty_string(str(raw), f"{label}._id")


def reference_id(value: Any, field_name: str) -> str:
    """Resolve a reference that is either a bare id or a populated document."""
    if isinstance(value, Mapping):
        return document_id(value, field_name)
    if isinstance(value, (str, int)) and not isinstance(value, bool):
        return validate_non_empty_string(str(value), field_name)
    raise ModelValidationError(f"{field_name}: expected id or object")


def reference_field(value: Any, key: str) -> str:
    """Read a display field from a populated reference, empty when unpopulated."""
    if isinstance(value, Mapping):
        raw = value.get(key)
        if isinstance(raw, str):
            return raw
    return ""


def require_mapping(payload: Any, label: str) -> Mapping[str, Any]:
    if not isinstance(payload, Mapping):
        raise ModelValidationError(f"{label}: expected object")
    return payload
