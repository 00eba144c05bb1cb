"""Inbox: one row per (counterpart, course) pair, aggregated by the backend."""

from __future__ import annotations

import logging

from marketplace.models import ConversationKey, ConversationSummary

from . import endpoints
from .api_client import ApiClient, ApiError
from .notifications import LoggingNotifier, Notifier, user_message

logger = logging.getLogger(__name__)


class InboxView:
    """Renders the server's conversation list as-is; no client-side grouping."""

    def __init__(self, client: ApiClient, *, notifier: Notifier | None = None) -> None:
        self._client = client
        self._notifier = notifier or LoggingNotifier()
        self.conversations: list[ConversationSummary] = []
        self.loading = False

    def load(self) -> list[ConversationSummary]:
        self.loading = True
        try:
            self.conversations = endpoints.fetch_conversations(self._client)
        except ApiError as exc:
            logger.warning("Failed to fetch conversations: %s", exc)
            self._notifier.error("Error", user_message(exc, "Failed to load conversations"))
        finally:
            self.loading = False
        return self.conversations

    @property
    def total_unread(self) -> int:
        return sum(row.unread_count for row in self.conversations)

    def open(self, summary: ConversationSummary) -> ConversationKey:
        """Key of the detail view to navigate to for an inbox row."""
        return summary.key
