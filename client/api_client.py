"""REST client for the course marketplace backend."""

from __future__ import annotations

from http.client import HTTPException
import json
import logging
from typing import Any, Callable, Mapping
from urllib.error import HTTPError, URLError
from urllib.parse import quote
from urllib.request import Request, urlopen

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT_SECONDS = 20
_DEFAULT_USER_AGENT = "EduPlatform-Client/0.1"

TokenProvider = Callable[[], "str | None"]


class ApiError(RuntimeError):
    """Raised when backend requests fail or return malformed payloads."""

    def __init__(self, message: str, *, status_code: int | None = None, server_message: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.server_message = server_message


class ApiAuthError(ApiError):
    """Raised when the backend returns 401 or 403."""


class ApiNotFoundError(ApiError):
    """Raised when the backend returns 404."""


def normalize_base_url(base_url: str) -> str:
    """Normalize a user-provided API base URL (no trailing slash)."""
    normalized = base_url.strip().rstrip("/")
    if not normalized:
        raise ValueError("base_url must not be empty")
    return normalized


def extract_server_message(detail: str) -> str | None:
    """Pull the human-readable `message` or `error` field out of an error body."""
    try:
        payload = json.loads(detail)
    except (json.JSONDecodeError, TypeError):
        return None
    if not isinstance(payload, dict):
        return None
    for key in ("message", "error"):
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def path_segment(value: str) -> str:
    """Quote an id for safe use as one URL path segment."""
    if not isinstance(value, str) or not value.strip():
        raise ValueError("path ids must be non-empty strings")
    return quote(value.strip(), safe="")


class ApiClient:
    """JSON-over-HTTP client that attaches the bearer token automatically."""

    def __init__(
        self,
        base_url: str,
        *,
        token_provider: TokenProvider | None = None,
        user_agent: str = _DEFAULT_USER_AGENT,
        timeout_seconds: float = _DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._base_url = normalize_base_url(base_url)
        self._token_provider = token_provider
        self._user_agent = user_agent
        self._timeout_seconds = timeout_seconds

    @property
    def base_url(self) -> str:
        return self._base_url

    def get(self, path: str) -> dict[str, Any]:
        return self._request_json("GET", path)

    def post(self, path: str, payload: Mapping[str, Any] | None = None) -> dict[str, Any]:
        return self._request_json("POST", path, payload)

    def put(self, path: str, payload: Mapping[str, Any] | None = None) -> dict[str, Any]:
        return self._request_json("PUT", path, payload)

    def delete(self, path: str) -> dict[str, Any]:
        return self._request_json("DELETE", path)

    def _headers(self, *, has_body: bool) -> dict[str, str]:
        headers = {
            "Accept": "application/json",
            "User-Agent": self._user_agent,
        }
        if has_body:
            headers["Content-Type"] = "application/json"
        token = self._token_provider() if self._token_provider is not None else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _request_json(self, method: str, path: str, payload: Mapping[str, Any] | None = None) -> dict[str, Any]:
        url = f"{self._base_url}/{path.lstrip('/')}"
        data = json.dumps(payload).encode("utf-8") if payload is not None else None
        req = Request(url=url, data=data, headers=self._headers(has_body=data is not None), method=method)
        logger.debug("%s %s", method, url)
        try:
            with urlopen(req, timeout=self._timeout_seconds) as resp:
                raw = resp.read().decode("utf-8")
        except HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="ignore") if exc.fp is not None else ""
            server_message = extract_server_message(detail)
            message = f"{method} {url} failed ({exc.code}): {server_message or detail}"
            if exc.code in (401, 403):
                raise ApiAuthError(message, status_code=exc.code, server_message=server_message) from exc
            if exc.code == 404:
                raise ApiNotFoundError(message, status_code=exc.code, server_message=server_message) from exc
            raise ApiError(message, status_code=exc.code, server_message=server_message) from exc
        except URLError as exc:
            raise ApiError(f"{method} {url} failed: {exc.reason}") from exc
        except (OSError, HTTPException) as exc:
            # Read timeouts and dropped connections are not wrapped in URLError.
            raise ApiError(f"{method} {url} failed: {exc!r}") from exc
        except UnicodeDecodeError as exc:
            raise ApiError(f"response was not valid UTF-8 for {method} {url}") from exc

        if not raw.strip():
            return {}
        try:
            decoded = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ApiError(f"response was not valid JSON for {method} {url}") from exc
        if not isinstance(decoded, dict):
            raise ApiError(f"response expected object for {method} {url}")
        return decoded
