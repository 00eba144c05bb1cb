"""Environment-driven client configuration and wiring."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import os
from pathlib import Path
from typing import Mapping

from eduplatform.session import (
    DynamoDbSessionStore,
    FileSessionStore,
    MemorySessionStore,
    Session,
    SessionStore,
    dynamodb_session_table,
)

from .api_client import ApiClient

DEFAULT_API_BASE_URL = "http://localhost:5000/api"
DEFAULT_USER_AGENT = "EduPlatform-Client/0.1"
DEFAULT_HTTP_TIMEOUT_SECONDS = 20.0
DEFAULT_POLL_INTERVAL_SECONDS = 3.0
DEFAULT_SESSION_FILE = "~/.eduplatform/session.json"


class ConfigError(ValueError):
    """Raised when environment configuration is invalid."""


class SessionStoreKind(str, Enum):
    """Supported session persistence backends."""

    MEMORY = "memory"
    FILE = "file"
    DYNAMODB = "dynamodb"


def _positive_float(source: Mapping[str, str], name: str, default: float) -> float:
    raw = source.get(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number") from exc
    if value <= 0:
        raise ConfigError(f"{name} must be > 0")
    return value


@dataclass(frozen=True)
class ClientConfig:
    api_base_url: str = DEFAULT_API_BASE_URL
    user_agent: str = DEFAULT_USER_AGENT
    http_timeout_seconds: float = DEFAULT_HTTP_TIMEOUT_SECONDS
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS
    session_store: SessionStoreKind = SessionStoreKind.FILE
    session_file: str = DEFAULT_SESSION_FILE
    session_table: str | None = None

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "ClientConfig":
        source = os.environ if env is None else env
        raw_store = source.get("EDUPLATFORM_SESSION_STORE", SessionStoreKind.FILE.value)
        try:
            store = SessionStoreKind(raw_store.strip().lower())
        except ValueError as exc:
            raise ConfigError(
                "EDUPLATFORM_SESSION_STORE must be 'memory', 'file' or 'dynamodb'"
            ) from exc

        session_table = source.get("EDUPLATFORM_SESSION_TABLE", "").strip() or None
        if store is SessionStoreKind.DYNAMODB and session_table is None:
            raise ConfigError(
                "EDUPLATFORM_SESSION_TABLE is required when EDUPLATFORM_SESSION_STORE=dynamodb"
            )

        return cls(
            api_base_url=source.get("EDUPLATFORM_API_BASE_URL", "").strip() or DEFAULT_API_BASE_URL,
            user_agent=source.get("EDUPLATFORM_USER_AGENT", "").strip() or DEFAULT_USER_AGENT,
            http_timeout_seconds=_positive_float(
                source, "EDUPLATFORM_HTTP_TIMEOUT_SECONDS", DEFAULT_HTTP_TIMEOUT_SECONDS
            ),
            poll_interval_seconds=_positive_float(
                source, "EDUPLATFORM_POLL_INTERVAL_SECONDS", DEFAULT_POLL_INTERVAL_SECONDS
            ),
            session_store=store,
            session_file=source.get("EDUPLATFORM_SESSION_FILE", "").strip() or DEFAULT_SESSION_FILE,
            session_table=session_table,
        )


def build_session_store(config: ClientConfig) -> SessionStore:
    if config.session_store is SessionStoreKind.MEMORY:
        return MemorySessionStore()
    if config.session_store is SessionStoreKind.DYNAMODB:
        return DynamoDbSessionStore(dynamodb_session_table(config.session_table or ""))
    return FileSessionStore(Path(config.session_file))


def build_client(config: ClientConfig, session: Session) -> ApiClient:
    return ApiClient(
        config.api_base_url,
        token_provider=session.token,
        user_agent=config.user_agent,
        timeout_seconds=config.http_timeout_seconds,
    )
