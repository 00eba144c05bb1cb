"""Typed wrappers for the backend routes the client core depends on."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from marketplace.models import (
    ConversationKey,
    ConversationSummary,
    Course,
    Enrollment,
    Material,
    Message,
    ModelValidationError,
    Review,
    ReviewStats,
    User,
)

from .api_client import ApiClient, ApiError, path_segment

logger = logging.getLogger(__name__)


def _require_object(payload: Mapping[str, Any], key: str, route: str) -> Mapping[str, Any]:
    value = payload.get(key)
    if not isinstance(value, Mapping):
        raise ApiError(f"response for {route} is missing object '{key}'")
    return value


def _require_list(payload: Mapping[str, Any], key: str, route: str) -> list[Any]:
    value = payload.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ApiError(f"response for {route} expected list '{key}'")
    return value


def _parse(model: Any, payload: Any, route: str) -> Any:
    try:
        return model.from_api_dict(payload)
    except ModelValidationError as exc:
        raise ApiError(f"response for {route} failed validation: {exc}") from exc


def fetch_course(client: ApiClient, course_id: str) -> Course:
    """Fetch a course including its lessons."""
    route = f"/courses/{path_segment(course_id)}"
    payload = client.get(route)
    return _parse(Course, _require_object(payload, "course", route), route)


def fetch_courses(client: ApiClient) -> list[Course]:
    """List the published course catalog."""
    route = "/courses"
    payload = client.get(route)
    return [_parse(Course, row, route) for row in _require_list(payload, "courses", route)]


def fetch_user(client: ApiClient, user_id: str) -> User:
    route = f"/users/{path_segment(user_id)}"
    payload = client.get(route)
    raw = payload.get("user", payload.get("data"))
    if not isinstance(raw, Mapping):
        raise ApiError(f"response for {route} is missing object 'user'")
    return _parse(User, raw, route)


def fetch_my_enrollments(client: ApiClient) -> list[Enrollment]:
    """List the current student's enrollments."""
    route = "/enrollments/my-enrollments"
    payload = client.get(route)
    enrollments: list[Enrollment] = []
    for row in _require_list(payload, "enrollments", route):
        try:
            enrollments.append(Enrollment.from_api_dict(row))
        except ModelValidationError as exc:
            logger.warning("Skipping invalid enrollment row from %s: %s", route, exc)
    return enrollments


def fetch_course_enrollments(client: ApiClient, course_id: str) -> list[Enrollment]:
    route = f"/enrollments/course/{path_segment(course_id)}"
    payload = client.get(route)
    return [_parse(Enrollment, row, route) for row in _require_list(payload, "enrollments", route)]


def request_enrollment(client: ApiClient, course_id: str) -> None:
    """Create a pending enrollment; the caller re-fetches state afterwards."""
    client.post("/enrollments/request", {"courseId": course_id})


def complete_lesson(client: ApiClient, enrollment_id: str, lesson_id: str) -> None:
    client.put(f"/enrollments/{path_segment(enrollment_id)}/complete-lesson", {"lessonId": lesson_id})


def uncomplete_lesson(client: ApiClient, enrollment_id: str, lesson_id: str) -> None:
    client.put(f"/enrollments/{path_segment(enrollment_id)}/uncomplete-lesson", {"lessonId": lesson_id})


def fetch_pending_enrollments(client: ApiClient) -> list[Enrollment]:
    """List enrollment requests awaiting the current teacher's decision."""
    route = "/enrollments/pending"
    payload = client.get(route)
    return [_parse(Enrollment, row, route) for row in _require_list(payload, "enrollments", route)]


def approve_enrollment(client: ApiClient, enrollment_id: str) -> None:
    client.put(f"/enrollments/{path_segment(enrollment_id)}/approve")


def reject_enrollment(client: ApiClient, enrollment_id: str) -> None:
    client.put(f"/enrollments/{path_segment(enrollment_id)}/reject")


def fetch_course_materials(client: ApiClient, course_id: str) -> list[Material]:
    route = f"/materials/course/{path_segment(course_id)}"
    payload = client.get(route)
    return [_parse(Material, row, route) for row in _require_list(payload, "materials", route)]


def fetch_conversation(client: ApiClient, key: ConversationKey) -> list[Message]:
    """Fetch the full thread for a (counterpart, course) pair."""
    route = f"/messages/conversation/{path_segment(key.counterpart_id)}/{path_segment(key.course_id)}"
    payload = client.get(route)
    return [_parse(Message, row, route) for row in _require_list(payload, "messages", route)]


def mark_conversation_read(client: ApiClient, key: ConversationKey) -> None:
    client.put(f"/messages/read/{path_segment(key.counterpart_id)}/{path_segment(key.course_id)}")


def send_message(client: ApiClient, key: ConversationKey, text: str) -> None:
    client.post(
        "/messages/send",
        {"receiverId": key.counterpart_id, "courseId": key.course_id, "message": text},
    )


def fetch_conversations(client: ApiClient) -> list[ConversationSummary]:
    """Fetch the server-aggregated inbox, one row per (counterpart, course)."""
    route = "/messages/conversations"
    payload = client.get(route)
    return [_parse(ConversationSummary, row, route) for row in _require_list(payload, "conversations", route)]


def fetch_course_reviews(client: ApiClient, course_id: str) -> tuple[list[Review], ReviewStats]:
    route = f"/reviews/course/{path_segment(course_id)}"
    payload = client.get(route)
    reviews = [_parse(Review, row, route) for row in _require_list(payload, "reviews", route)]
    stats = payload.get("stats")
    try:
        return reviews, ReviewStats.from_api_dict(stats if isinstance(stats, Mapping) else None)
    except ModelValidationError as exc:
        raise ApiError(f"response for {route} failed validation: {exc}") from exc


def fetch_my_review(client: ApiClient, course_id: str) -> Review:
    """Fetch the viewer's review; raises `ApiNotFoundError` when there is none."""
    route = f"/reviews/my-review/{path_segment(course_id)}"
    payload = client.get(route)
    return _parse(Review, _require_object(payload, "review", route), route)


def submit_review(client: ApiClient, course_id: str, rating: int, text: str) -> None:
    """Create or replace the viewer's review of a course."""
    client.post("/reviews", {"courseId": course_id, "rating": rating, "review": text})


def delete_review(client: ApiClient, course_id: str) -> None:
    client.delete(f"/reviews/{path_segment(course_id)}")
