"""Persistence boundaries for client session storage."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from .model import SessionError, SessionRecord

logger = logging.getLogger(__name__)


@runtime_checkable
class SessionStore(Protocol):
    """Storage interface for the single active session."""

    def load(self) -> SessionRecord | None:
        """Return the saved session, if any."""

    def save(self, record: SessionRecord) -> None:
        """Persist a session record, replacing any previous one."""

    def clear(self) -> None:
        """Remove the saved session."""


class MemorySessionStore:
    """Process-local store; nothing survives a restart."""

    def __init__(self, record: SessionRecord | None = None) -> None:
        self._record = record

    def load(self) -> SessionRecord | None:
        return self._record

    def save(self, record: SessionRecord) -> None:
        self._record = record

    def clear(self) -> None:
        self._record = None


class FileSessionStore:
    """JSON file store, the desktop counterpart of browser local storage.

    An unreadable file loads as a signed-out state.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path).expanduser()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> SessionRecord | None:
        if not self._path.exists():
            return None
        try:
            item = json.loads(self._path.read_text(encoding="utf-8"))
            if not isinstance(item, dict):
                raise SessionError("session file must hold a JSON object")
            return SessionRecord.from_item(item)
        except (json.JSONDecodeError, SessionError):
            logger.warning("Ignoring unreadable session file %s", self._path, exc_info=True)
            return None

    def save(self, record: SessionRecord) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(record.to_item(), sort_keys=True), encoding="utf-8")
        os.replace(tmp_path, self._path)
        try:
            os.chmod(self._path, 0o600)
        except OSError:  # pragma: no cover - platform dependent
            logger.debug("Could not restrict permissions on %s", self._path)

    def clear(self) -> None:
        try:
            self._path.unlink()
        except FileNotFoundError:
            return


class DynamoDbSessionStore:
    """DynamoDB adapter that stores the session as one item keyed by `sessionKey`."""

    def __init__(self, table: Any, *, session_key: str = "default") -> None:
        if not isinstance(session_key, str) or not session_key.strip():
            raise SessionError("session_key must not be empty")
        self._table = table
        self._session_key = session_key

    def load(self) -> SessionRecord | None:
        response = self._table.get_item(Key={"sessionKey": self._session_key})
        item = response.get("Item")
        if item is None:
            return None
        return SessionRecord.from_item(item)

    def save(self, record: SessionRecord) -> None:
        self._table.put_item(Item={"sessionKey": self._session_key, **record.to_item()})

    def clear(self) -> None:
        self._table.delete_item(Key={"sessionKey": self._session_key})


def dynamodb_session_table(table_name: str) -> Any:
    import boto3

    if not table_name.strip():
        raise SessionError("a DynamoDB table name is required for the dynamodb session store")
    return boto3.resource("dynamodb").Table(table_name.strip())
