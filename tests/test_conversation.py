"""Unit tests for the polling conversation view."""

from __future__ import annotations

import threading
import time
import unittest
from typing import Any, Mapping
from unittest.mock import patch

from client.api_client import ApiClient, ApiError
from client.conversation import ConversationView
from client.notifications import RecordingNotifier
from eduplatform.session import MemorySessionStore, Session, SessionError, SessionRecord
from marketplace.models import ConversationKey, User

_ME = User(id="s1", name="Ana", email="ana@x.com", role="student")
_KEY = ConversationKey("t1", "c1")
_THREAD = "/messages/conversation/t1/c1"


def _row(msg_id: str, sender: str, receiver: str, text: str, course: str = "c1") -> dict:
    return {
        "_id": msg_id,
        "senderId": {"_id": sender, "name": f"name-{sender}", "role": "student" if sender == "s1" else "teacher"},
        "receiverId": {"_id": receiver, "name": f"name-{receiver}"},
        "courseId": {"_id": course, "title": f"title-{course}"},
        "message": text,
        "isRead": False,
        "createdAt": "2026-09-01T10:00:00Z",
    }


class _FakeApi:
    def __init__(self, routes: dict[tuple[str, str], Any]) -> None:
        self.routes = dict(routes)
        self.calls: list[tuple[str, str, Mapping[str, Any] | None]] = []
        self._lock = threading.Lock()

    def _handle(self, method: str, path: str, payload: Mapping[str, Any] | None = None) -> dict[str, Any]:
        with self._lock:
            self.calls.append((method, path, payload))
        result = self.routes.get((method, path), {})
        if callable(result):
            result = result()
        if isinstance(result, Exception):
            raise result
        return result

    def get(self, path: str) -> dict[str, Any]:
        return self._handle("GET", path)

    def post(self, path: str, payload: Mapping[str, Any] | None = None) -> dict[str, Any]:
        return self._handle("POST", path, payload)

    def put(self, path: str, payload: Mapping[str, Any] | None = None) -> dict[str, Any]:
        return self._handle("PUT", path, payload)

    def delete(self, path: str) -> dict[str, Any]:
        return self._handle("DELETE", path)

    def count(self, method: str, path: str) -> int:
        with self._lock:
            return sum(1 for m, p, _ in self.calls if m == method and p == path)


def _session(user: User | None = _ME) -> Session:
    store = MemorySessionStore()
    if user is not None:
        store.save(SessionRecord.create(token="tok", user=user))
    return Session(store)


class ConversationViewTests(unittest.TestCase):
    def _view(self, api: _FakeApi, *, interval: float = 60, notifier: RecordingNotifier | None = None):
        view = ConversationView(
            api,
            _session(),
            _KEY,
            notifier=notifier or RecordingNotifier(),
            poll_interval_seconds=interval,
        )
        self.addCleanup(view.close)
        return view

    def test_open_fetches_marks_read_and_derives_counterpart(self) -> None:
        api = _FakeApi({("GET", _THREAD): {"messages": [_row("m1", "t1", "s1", "Welcome")]}})
        view = self._view(api)
        view.open()

        state = view.state
        self.assertEqual([m.text for m in state.messages], ["Welcome"])
        self.assertEqual(state.counterpart.id, "t1")
        self.assertEqual(state.counterpart.name, "name-t1")
        self.assertEqual(state.course.title, "title-c1")
        self.assertFalse(state.loading)
        self.assertEqual(api.count("PUT", "/messages/read/t1/c1"), 1)
        self.assertTrue(view.polling)

    def test_empty_thread_falls_back_to_profile_and_course_lookups(self) -> None:
        api = _FakeApi(
            {
                ("GET", _THREAD): {"messages": []},
                ("GET", "/users/t1"): {"user": {"_id": "t1", "name": "Dr. T", "gmail": "t@x.com", "role": "teacher"}},
                ("GET", "/courses/c1"): {"course": {"_id": "c1", "title": "Biology", "teacherId": "t1"}},
            }
        )
        view = self._view(api)
        view.open()
        view.refresh(silent=True)

        self.assertEqual(view.state.counterpart.name, "Dr. T")
        self.assertEqual(view.state.course.title, "Biology")
        self.assertEqual(api.count("GET", "/users/t1"), 1)
        self.assertEqual(api.count("GET", "/courses/c1"), 1)

    def test_requires_signed_in_user(self) -> None:
        view = ConversationView(_FakeApi({}), _session(None), _KEY)
        with self.assertRaises(SessionError):
            view.open()

    def test_mark_read_failure_is_swallowed(self) -> None:
        notifier = RecordingNotifier()
        api = _FakeApi(
            {
                ("GET", _THREAD): {"messages": [_row("m1", "t1", "s1", "Hi")]},
                ("PUT", "/messages/read/t1/c1"): ApiError("down", status_code=503),
            }
        )
        view = self._view(api, notifier=notifier)
        with self.assertLogs("client.conversation", level="ERROR"):
            view.open()
        self.assertEqual(notifier.errors, [])
        self.assertEqual(len(view.state.messages), 1)

    def test_foreground_failure_notifies_but_silent_failure_does_not(self) -> None:
        notifier = RecordingNotifier()
        api = _FakeApi({("GET", _THREAD): ApiError("down", status_code=500)})
        view = self._view(api, notifier=notifier)
        view.open()
        self.assertEqual([n.description for n in notifier.errors], ["Failed to load messages"])
        self.assertFalse(view.state.loading)

        self.assertFalse(view.refresh(silent=True))
        self.assertEqual(len(notifier.errors), 1)

    def test_poll_replaces_full_list_with_server_state(self) -> None:
        thread = [_row("m1", "t1", "s1", "one"), _row("m2", "s1", "t1", "two")]
        api = _FakeApi({("GET", _THREAD): lambda: {"messages": list(thread)}})
        view = self._view(api)
        view.open()
        self.assertEqual(len(view.state.messages), 2)

        thread[:] = [_row("m2", "s1", "t1", "two")]
        view.refresh(silent=True)
        self.assertEqual([m.id for m in view.state.messages], ["m2"])

    def test_sent_message_appears_only_through_refresh(self) -> None:
        thread: list[dict] = [_row("m1", "t1", "s1", "Welcome")]

        def on_send() -> dict:
            thread.append(_row("m2", "s1", "t1", "Hello"))
            return {"message": "sent"}

        api = _FakeApi(
            {
                ("GET", _THREAD): lambda: {"messages": list(thread)},
                ("POST", "/messages/send"): on_send,
            }
        )
        view = self._view(api)
        view.open()
        view.set_draft("  Hello ")
        self.assertTrue(view.send())

        sent = [call for call in api.calls if call[0] == "POST"]
        self.assertEqual(sent, [("POST", "/messages/send", {"receiverId": "t1", "courseId": "c1", "message": "Hello"})])
        last = view.state.messages[-1]
        self.assertEqual(last.text, "Hello")
        self.assertEqual(last.sender.id, "s1")
        self.assertEqual(view.state.draft, "")
        self.assertFalse(view.state.sending)

    def test_send_failure_keeps_draft_and_does_not_append(self) -> None:
        notifier = RecordingNotifier()
        api = _FakeApi(
            {
                ("GET", _THREAD): {"messages": [_row("m1", "t1", "s1", "Welcome")]},
                ("POST", "/messages/send"): ApiError("bad", status_code=400, server_message="Not enrolled"),
            }
        )
        view = self._view(api, notifier=notifier)
        view.open()
        view.set_draft("Hello")
        self.assertFalse(view.send())
        self.assertEqual(view.state.draft, "Hello")
        self.assertEqual(len(view.state.messages), 1)
        self.assertEqual(notifier.errors[-1].description, "Not enrolled")

    def test_blank_message_is_not_sent(self) -> None:
        api = _FakeApi({("GET", _THREAD): {"messages": []}})
        view = self._view(api)
        self.assertFalse(view.send("   "))
        self.assertEqual(api.count("POST", "/messages/send"), 0)

    def test_stale_response_is_discarded(self) -> None:
        view_holder: list[ConversationView] = []
        first_call = [True]

        def thread_payload() -> dict:
            if first_call[0]:
                first_call[0] = False
                # A newer refresh completes while this one is still in flight.
                view_holder[0].refresh(silent=True)
                return {"messages": [_row("m1", "t1", "s1", "old")]}
            return {"messages": [_row("m1", "t1", "s1", "old"), _row("m2", "t1", "s1", "new")]}

        api = _FakeApi({("GET", _THREAD): thread_payload})
        view = self._view(api)
        view_holder.append(view)
        view.open()

        self.assertEqual([m.id for m in view.state.messages], ["m1", "m2"])
        self.assertFalse(view.state.loading)

    def test_response_after_close_is_dropped(self) -> None:
        view_holder: list[ConversationView] = []
        calls = [0]

        def thread_payload() -> dict:
            calls[0] += 1
            if calls[0] == 2:
                view_holder[0].close()
                return {"messages": [_row("m9", "t1", "s1", "late")]}
            return {"messages": [_row("m1", "t1", "s1", "hi")]}

        api = _FakeApi({("GET", _THREAD): thread_payload})
        view = self._view(api)
        view_holder.append(view)
        view.open()
        self.assertFalse(view.refresh(silent=True))
        self.assertEqual([m.id for m in view.state.messages], ["m1"])

    def test_polling_stops_after_close(self) -> None:
        polled = threading.Event()
        api = _FakeApi({("GET", _THREAD): lambda: (polled.set(), {"messages": []})[1]})
        api.routes[("GET", "/users/t1")] = {"user": {"_id": "t1", "name": "Dr. T", "role": "teacher"}}
        api.routes[("GET", "/courses/c1")] = {"course": {"_id": "c1", "title": "Biology", "teacherId": "t1"}}
        view = self._view(api, interval=0.01)
        view.open()
        polled.clear()
        self.assertTrue(polled.wait(2))

        view.close()
        after_close = api.count("GET", _THREAD)
        time.sleep(0.1)
        self.assertEqual(api.count("GET", _THREAD), after_close)
        self.assertFalse(view.polling)

    def test_switch_to_other_course_keeps_threads_separate(self) -> None:
        api = _FakeApi(
            {
                ("GET", _THREAD): {"messages": [_row("m1", "t1", "s1", "biology")]},
                ("GET", "/messages/conversation/t1/c2"): {"messages": [_row("m2", "t1", "s1", "chemistry", course="c2")]},
            }
        )
        view = self._view(api)
        view.open()
        view.switch_to(ConversationKey("t1", "c2"))

        state = view.state
        self.assertEqual(state.key, ConversationKey("t1", "c2"))
        self.assertEqual([m.text for m in state.messages], ["chemistry"])
        self.assertEqual(state.course.id, "c2")
        self.assertEqual(api.count("PUT", "/messages/read/t1/c2"), 1)

        before = api.count("GET", _THREAD)
        view.refresh(silent=True)
        self.assertEqual(api.count("GET", _THREAD), before)

    def test_network_timeout_on_open_notifies_and_still_polls(self) -> None:
        notifier = RecordingNotifier()
        client = ApiClient("http://api.test/api", token_provider=lambda: "tok")
        view = self._view(client, notifier=notifier)
        with patch("client.api_client.urlopen", side_effect=TimeoutError("timed out")):
            with self.assertLogs("client.conversation", level="WARNING"):
                view.open()

        self.assertEqual([n.description for n in notifier.errors], ["Failed to load messages"])
        self.assertFalse(view.state.loading)
        self.assertTrue(view.is_open)
        self.assertTrue(view.polling)

    def test_unexpected_error_on_open_leaves_view_reopenable(self) -> None:
        api = _FakeApi({("GET", _THREAD): RuntimeError("socket closed")})
        view = self._view(api)
        with self.assertRaises(RuntimeError):
            view.open()
        self.assertFalse(view.is_open)
        self.assertFalse(view.state.loading)
        self.assertFalse(view.polling)

        api.routes[("GET", _THREAD)] = {"messages": [_row("m1", "t1", "s1", "Welcome")]}
        view.open()
        self.assertEqual(len(view.state.messages), 1)
        self.assertTrue(view.polling)

    def test_stale_foreground_response_clears_loading_for_listeners(self) -> None:
        states: list = []
        view_holder: list[ConversationView] = []
        first_call = [True]

        def thread_payload() -> dict:
            if first_call[0]:
                first_call[0] = False
                view_holder[0].refresh(silent=True)
            return {"messages": [_row("m1", "t1", "s1", "hi")]}

        api = _FakeApi({("GET", _THREAD): thread_payload})
        view = ConversationView(api, _session(), _KEY, poll_interval_seconds=60, on_change=states.append)
        self.addCleanup(view.close)
        view_holder.append(view)
        view.open()

        self.assertTrue(any(state.loading for state in states))
        self.assertFalse(states[-1].loading)

    def test_counterpart_kept_after_sign_out(self) -> None:
        session = _session()
        thread = [_row("m1", "t1", "s1", "Welcome")]
        api = _FakeApi({("GET", _THREAD): lambda: {"messages": list(thread)}})
        view = ConversationView(api, session, _KEY, poll_interval_seconds=60)
        self.addCleanup(view.close)
        view.open()

        session.logout()
        thread[:] = [_row("m2", "s1", "t1", "mine")]
        self.assertTrue(view.refresh(silent=True))
        self.assertEqual(view.state.counterpart.id, "t1")


class ScrollPolicyTests(unittest.TestCase):
    def _open_view(self, thread: list[dict]) -> ConversationView:
        api = _FakeApi(
            {
                ("GET", _THREAD): lambda: {"messages": list(thread)},
                ("POST", "/messages/send"): lambda: (thread.append(_row(f"m{len(thread) + 1}", "s1", "t1", "mine")), {})[1],
            }
        )
        view = ConversationView(api, _session(), _KEY, poll_interval_seconds=60)
        self.addCleanup(view.close)
        view.open()
        return view

    def test_new_content_scrolls_when_at_bottom(self) -> None:
        thread = [_row("m1", "t1", "s1", "one")]
        view = self._open_view(thread)
        self.assertTrue(view.state.scroll_to_latest)
        view.scrolled_to_latest()

        thread.append(_row("m2", "t1", "s1", "two"))
        view.refresh(silent=True)
        self.assertTrue(view.state.scroll_to_latest)

    def test_unchanged_poll_does_not_request_scroll(self) -> None:
        view = self._open_view([_row("m1", "t1", "s1", "one")])
        view.scrolled_to_latest()
        view.refresh(silent=True)
        self.assertFalse(view.state.scroll_to_latest)

    def test_poll_does_not_yank_reader_who_scrolled_up(self) -> None:
        thread = [_row("m1", "t1", "s1", "one")]
        view = self._open_view(thread)
        view.scrolled_to_latest()
        view.set_scrolled_to_bottom(False)

        thread.append(_row("m2", "t1", "s1", "two"))
        view.refresh(silent=True)
        self.assertFalse(view.state.scroll_to_latest)
        self.assertEqual(len(view.state.messages), 2)

    def test_local_send_scrolls_even_when_scrolled_up(self) -> None:
        thread = [_row("m1", "t1", "s1", "one")]
        view = self._open_view(thread)
        view.scrolled_to_latest()
        view.set_scrolled_to_bottom(False)

        self.assertTrue(view.send("mine"))
        self.assertTrue(view.state.scroll_to_latest)


if __name__ == "__main__":
    unittest.main()
