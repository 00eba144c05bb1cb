"""Two-party, course-scoped message thread kept fresh by polling."""

from __future__ import annotations

from dataclasses import dataclass, replace
import itertools
import logging
import threading
from typing import Callable

from eduplatform.session import Session, SessionError
from marketplace.models import ConversationKey, CourseRef, Message, Participant

from . import endpoints
from .api_client import ApiClient, ApiError
from .config import DEFAULT_POLL_INTERVAL_SECONDS
from .notifications import LoggingNotifier, Notifier, user_message
from .polling import PollingTask

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConversationState:
    key: ConversationKey
    messages: tuple[Message, ...] = ()
    counterpart: Participant | None = None
    course: CourseRef | None = None
    loading: bool = False
    sending: bool = False
    draft: str = ""
    at_bottom: bool = True
    scroll_to_latest: bool = False

    @property
    def can_send(self) -> bool:
        return not self.sending and bool(self.draft.strip())


StateListener = Callable[[ConversationState], None]


class ConversationView:
    """Poll-and-replace view of the thread for one (counterpart, course) pair.

    The server's message list is always the source of truth: every fetch
    replaces the whole list and sent messages are never appended locally.
    Responses are tagged with a sequence number and a response older than the
    last one applied is dropped, as is any response that lands after `close()`
    or after the view switched to another pair.
    """

    def __init__(
        self,
        client: ApiClient,
        session: Session,
        key: ConversationKey,
        *,
        notifier: Notifier | None = None,
        poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
        on_change: StateListener | None = None,
    ) -> None:
        self._client = client
        self._session = session
        self._notifier = notifier or LoggingNotifier()
        self._poll_interval_seconds = poll_interval_seconds
        self._on_change = on_change
        self._lock = threading.Lock()
        self._sequence = itertools.count(1)
        self._last_applied = 0
        self._generation = 0
        self._open = False
        self._local_send_pending = False
        self._poller: PollingTask | None = None
        self._state = ConversationState(key=key)

    @property
    def state(self) -> ConversationState:
        with self._lock:
            return self._state

    @property
    def is_open(self) -> bool:
        with self._lock:
            return self._open

    @property
    def polling(self) -> bool:
        return self._poller is not None and self._poller.running

    def _emit(self, state: ConversationState) -> None:
        if self._on_change is not None:
            self._on_change(state)

    def _update(self, generation: int | None = None, **changes: object) -> None:
        with self._lock:
            if generation is not None and generation != self._generation:
                return
            self._state = replace(self._state, **changes)
            state = self._state
        self._emit(state)

    def open(self) -> None:
        """Load the thread, mark it read once, then start polling."""
        if not self._session.is_authenticated():
            raise SessionError("conversations require a signed-in user")
        with self._lock:
            if self._open:
                return
            self._open = True
            key = self._state.key
        logger.info("Opening conversation with %s in course %s", key.counterpart_id, key.course_id)
        try:
            self.refresh(silent=False)
        except Exception:
            with self._lock:
                self._open = False
                self._state = replace(self._state, loading=False)
                state = self._state
            self._emit(state)
            raise
        self.mark_read()
        poller = PollingTask(
            lambda: self.refresh(silent=True),
            self._poll_interval_seconds,
            name=f"conversation-{key.counterpart_id}-{key.course_id}",
        )
        with self._lock:
            if not self._open:
                return
            self._poller = poller
        poller.start()

    def close(self) -> None:
        """Stop polling; any in-flight response is discarded when it lands."""
        with self._lock:
            self._open = False
            self._generation += 1
            poller = self._poller
            self._poller = None
        if poller is not None:
            poller.stop()

    def switch_to(self, key: ConversationKey) -> None:
        """Tear down the current pair and open `key` with fresh state."""
        self.close()
        with self._lock:
            self._state = ConversationState(key=key)
            self._last_applied = 0
            self._local_send_pending = False
            state = self._state
        self._emit(state)
        self.open()

    def refresh(self, *, silent: bool = True) -> bool:
        """Fetch and replace the message list.

        Silent refreshes show no loading state and surface no errors.
        Returns True when the response was applied.
        """
        with self._lock:
            if not self._open:
                return False
            generation = self._generation
            key = self._state.key
            known_counterpart = self._state.counterpart
            known_course = self._state.course
        seq = next(self._sequence)

        if not silent:
            self._update(generation, loading=True)
        try:
            messages = endpoints.fetch_conversation(self._client, key)
            counterpart, course = self._resolve_identity(key, messages, known_counterpart, known_course)
        except ApiError as exc:
            logger.warning("Failed to fetch conversation %s/%s: %s", key.counterpart_id, key.course_id, exc)
            if not silent:
                self._notifier.error("Error", user_message(exc, "Failed to load messages"))
                self._update(generation, loading=False)
            return False

        return self._apply(generation, seq, tuple(messages), counterpart, course, silent=silent)

    def _resolve_identity(
        self,
        key: ConversationKey,
        messages: list[Message],
        known_counterpart: Participant | None,
        known_course: CourseRef | None,
    ) -> tuple[Participant, CourseRef]:
        if messages:
            user = self._session.current_user()
            first = messages[0]
            if user is not None:
                return first.counterpart_for(user.id), first.course
            # Signed out mid-poll: the viewer is unknown, so match the key instead.
            if known_counterpart is not None:
                return known_counterpart, first.course
            if first.sender.id == key.counterpart_id:
                return first.sender, first.course
            return first.receiver, first.course
        if known_counterpart is not None and known_course is not None:
            return known_counterpart, known_course

        # New conversation with no messages yet: look both up directly.
        other = endpoints.fetch_user(self._client, key.counterpart_id)
        course = endpoints.fetch_course(self._client, key.course_id)
        return (
            Participant(id=other.id, name=other.name, role=other.role),
            CourseRef(id=course.id, title=course.title),
        )

    def _apply(
        self,
        generation: int,
        seq: int,
        messages: tuple[Message, ...],
        counterpart: Participant,
        course: CourseRef,
        *,
        silent: bool,
    ) -> bool:
        with self._lock:
            if generation != self._generation or not self._open:
                logger.debug("Dropping conversation response %s for a closed view", seq)
                return False
            if seq < self._last_applied:
                logger.debug("Dropping stale conversation response %s (applied %s)", seq, self._last_applied)
                if silent:
                    return False
                self._state = replace(self._state, loading=False)
                state = self._state
                self._emit(state)
                return False
            self._last_applied = seq

            changed = messages != self._state.messages
            scroll = self._state.scroll_to_latest
            if changed and (self._state.at_bottom or self._local_send_pending):
                scroll = True
            if changed:
                self._local_send_pending = False
            changes: dict[str, object] = {
                "messages": messages,
                "counterpart": counterpart,
                "course": course,
                "scroll_to_latest": scroll,
            }
            if not silent:
                changes["loading"] = False
            self._state = replace(self._state, **changes)
            state = self._state
        self._emit(state)
        return True

    def mark_read(self) -> None:
        """Mark the thread read; a failure is logged and otherwise ignored."""
        key = self.state.key
        try:
            endpoints.mark_conversation_read(self._client, key)
        except ApiError:
            logger.exception("Failed to mark conversation %s/%s as read", key.counterpart_id, key.course_id)

    def set_draft(self, text: str) -> None:
        self._update(draft=text)

    def set_scrolled_to_bottom(self, at_bottom: bool) -> None:
        """Record whether the viewer is at the latest message."""
        self._update(at_bottom=at_bottom)

    def scrolled_to_latest(self) -> None:
        """Acknowledge a scroll request once the UI has scrolled."""
        self._update(scroll_to_latest=False, at_bottom=True)

    def send(self, text: str | None = None) -> bool:
        """Send `text` (or the draft); the thread then refreshes silently."""
        with self._lock:
            if self._state.sending:
                return False
            body = (self._state.draft if text is None else text).strip()
            if not body:
                return False
            key = self._state.key
            generation = self._generation
            self._state = replace(self._state, sending=True)
            state = self._state
        self._emit(state)

        try:
            endpoints.send_message(self._client, key, body)
        except ApiError as exc:
            self._notifier.error("Error", user_message(exc, "Failed to send message"))
            return False
        finally:
            self._update(sending=False)

        with self._lock:
            self._local_send_pending = True
        self._update(generation, draft="")
        self.refresh(silent=True)
        return True
