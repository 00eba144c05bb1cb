"""Client session: token, cached profile and their storage."""

from .context import Session
from .model import SessionError, SessionRecord, utc_now_rfc3339
from .store import (
    DynamoDbSessionStore,
    FileSessionStore,
    MemorySessionStore,
    SessionStore,
    dynamodb_session_table,
)

__all__ = [
    "DynamoDbSessionStore",
    "FileSessionStore",
    "MemorySessionStore",
    "Session",
    "SessionError",
    "SessionRecord",
    "SessionStore",
    "dynamodb_session_table",
    "utc_now_rfc3339",
]
