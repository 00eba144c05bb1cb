"""Unit tests for the inbox view and the course review section."""

from __future__ import annotations

import unittest
from typing import Any, Mapping

from client.api_client import ApiError, ApiNotFoundError
from client.inbox import InboxView
from client.notifications import RecordingNotifier
from client.reviews import ReviewSection
from eduplatform.session import MemorySessionStore, Session, SessionRecord
from marketplace.models import ConversationKey, User

_STUDENT = User(id="s1", name="Ana", email="ana@x.com", role="student")


class _FakeApi:
    def __init__(self, routes: dict[tuple[str, str], Any]) -> None:
        self.routes = dict(routes)
        self.calls: list[tuple[str, str, Mapping[str, Any] | None]] = []

    def _handle(self, method: str, path: str, payload: Mapping[str, Any] | None = None) -> dict[str, Any]:
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


def _summary(user_id: str, course_id: str, unread: int) -> dict:
    return {
        "user": {"_id": user_id, "name": f"name-{user_id}", "role": "teacher"},
        "course": {"_id": course_id, "title": f"title-{course_id}"},
        "lastMessage": {"message": "latest", "createdAt": "2026-09-01T10:00:00Z"},
        "unreadCount": unread,
    }


class InboxViewTests(unittest.TestCase):
    def test_renders_server_rows_in_order_without_merging(self) -> None:
        api = _FakeApi(
            {
                ("GET", "/messages/conversations"): {
                    "conversations": [_summary("t1", "c2", 1), _summary("t1", "c1", 2), _summary("t2", "c1", 0)]
                }
            }
        )
        inbox = InboxView(api)
        rows = inbox.load()

        self.assertEqual(
            [row.key for row in rows],
            [ConversationKey("t1", "c2"), ConversationKey("t1", "c1"), ConversationKey("t2", "c1")],
        )
        self.assertEqual(inbox.total_unread, 3)
        self.assertEqual(inbox.open(rows[1]), ConversationKey("t1", "c1"))
        self.assertFalse(inbox.loading)

    def test_failure_notifies_and_keeps_previous_rows(self) -> None:
        notifier = RecordingNotifier()
        api = _FakeApi({("GET", "/messages/conversations"): {"conversations": [_summary("t1", "c1", 1)]}})
        inbox = InboxView(api, notifier=notifier)
        inbox.load()

        api.routes[("GET", "/messages/conversations")] = ApiError("down", status_code=500)
        rows = inbox.load()
        self.assertEqual(len(rows), 1)
        self.assertEqual([n.description for n in notifier.errors], ["Failed to load conversations"])


class ReviewSectionTests(unittest.TestCase):
    def _section(self, routes: dict, *, can_review: bool = True, notifier: RecordingNotifier | None = None):
        api = _FakeApi(
            {
                ("GET", "/reviews/course/c1"): {
                    "reviews": [{"_id": "r1", "studentId": {"_id": "s2", "name": "Bo"}, "rating": 4, "review": "Solid course"}],
                    "stats": {"totalReviews": 1, "averageRating": 4, "ratingDistribution": {"4": 1}},
                },
                **routes,
            }
        )
        session = Session(MemorySessionStore(SessionRecord.create(token="tok", user=_STUDENT)))
        section = ReviewSection(api, session, "c1", can_review=can_review, notifier=notifier or RecordingNotifier())
        return section, api

    def test_load_without_own_review(self) -> None:
        section, api = self._section(
            {("GET", "/reviews/my-review/c1"): ApiNotFoundError("none", status_code=404)}
        )
        section.load()
        self.assertEqual(len(section.reviews), 1)
        self.assertEqual(section.stats.total_reviews, 1)
        self.assertIsNone(section.my_review)

    def test_viewer_who_cannot_review_skips_own_lookup(self) -> None:
        section, api = self._section({}, can_review=False)
        section.load()
        self.assertNotIn(("GET", "/reviews/my-review/c1", None), api.calls)

    def test_list_failure_is_logged_only(self) -> None:
        notifier = RecordingNotifier()
        section, _ = self._section(
            {("GET", "/reviews/course/c1"): ApiError("down", status_code=500)}, can_review=False, notifier=notifier
        )
        with self.assertLogs("client.reviews", level="ERROR"):
            section.load()
        self.assertEqual(notifier.errors, [])

    def test_submit_validates_length_and_rating(self) -> None:
        notifier = RecordingNotifier()
        section, api = self._section({}, notifier=notifier)
        self.assertFalse(section.submit(5, "   short   "))
        self.assertFalse(section.submit(9, "long enough review"))
        self.assertEqual([c for c in api.calls if c[0] == "POST"], [])
        self.assertEqual(notifier.errors[0].title, "Review too short")

    def test_submit_posts_and_refetches(self) -> None:
        notifier = RecordingNotifier()
        section, api = self._section(
            {
                ("POST", "/reviews"): {"message": "ok"},
                ("GET", "/reviews/my-review/c1"): {
                    "review": {"_id": "r2", "studentId": "s1", "rating": 5, "review": "Loved every lesson"}
                },
            },
            notifier=notifier,
        )
        self.assertTrue(section.submit(5, " Loved every lesson "))
        self.assertIn(("POST", "/reviews", {"courseId": "c1", "rating": 5, "review": "Loved every lesson"}), api.calls)
        self.assertEqual(section.my_review.id, "r2")
        self.assertEqual(notifier.notifications[-1].description, "Review submitted")
        self.assertFalse(section.submitting)

    def test_only_author_can_delete(self) -> None:
        section, api = self._section(
            {
                ("GET", "/reviews/my-review/c1"): {
                    "review": {"_id": "r2", "studentId": "s1", "rating": 5, "review": "Loved every lesson"}
                },
            }
        )
        section.load()
        api.routes[("GET", "/reviews/my-review/c1")] = ApiNotFoundError("gone", status_code=404)
        self.assertTrue(section.delete())
        self.assertIn(("DELETE", "/reviews/c1", None), api.calls)
        self.assertIsNone(section.my_review)
        self.assertFalse(section.delete())

    def test_non_reviewers_cannot_submit(self) -> None:
        section, api = self._section({}, can_review=False)
        self.assertFalse(section.submit(5, "long enough review"))
        self.assertEqual([c for c in api.calls if c[0] == "POST"], [])


if __name__ == "__main__":
    unittest.main()
