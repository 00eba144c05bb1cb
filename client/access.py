"""Enrollment-gated course content: who sees lessons, and which call-to-action."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
import logging
import threading
from typing import Callable, Iterable

from eduplatform.session import Session
from learning import compute_progress
from marketplace.models import (
    STATUS_APPROVED,
    STATUS_PENDING,
    STATUS_REJECTED,
    ConversationKey,
    Course,
    Enrollment,
    Lesson,
    Material,
    User,
)

from . import endpoints
from .api_client import ApiClient, ApiError
from .notifications import LoggingNotifier, Notifier, user_message

logger = logging.getLogger(__name__)


class AccessState(str, Enum):
    SIGN_IN_TO_ENROLL = "sign_in_to_enroll"
    ENROLLMENT_DISABLED = "enrollment_disabled"
    REQUEST_ENROLLMENT = "request_enrollment"
    PENDING_APPROVAL = "pending_approval"
    UNLOCKED = "unlocked"
    REQUEST_AGAIN = "request_again"


@dataclass(frozen=True)
class AccessDecision:
    state: AccessState
    label: str
    can_request: bool = False

    @property
    def unlocked(self) -> bool:
        return self.state is AccessState.UNLOCKED


_DECISIONS = {
    AccessState.SIGN_IN_TO_ENROLL: AccessDecision(AccessState.SIGN_IN_TO_ENROLL, "Sign in to enroll"),
    AccessState.ENROLLMENT_DISABLED: AccessDecision(
        AccessState.ENROLLMENT_DISABLED, "Teachers cannot enroll"
    ),
    AccessState.REQUEST_ENROLLMENT: AccessDecision(
        AccessState.REQUEST_ENROLLMENT, "Request enrollment", can_request=True
    ),
    AccessState.PENDING_APPROVAL: AccessDecision(AccessState.PENDING_APPROVAL, "Pending approval"),
    AccessState.UNLOCKED: AccessDecision(AccessState.UNLOCKED, "Enrolled"),
    AccessState.REQUEST_AGAIN: AccessDecision(
        AccessState.REQUEST_AGAIN, "Request again", can_request=True
    ),
}

_ADMIN_DISABLED = AccessDecision(AccessState.ENROLLMENT_DISABLED, "Only students can enroll")

_STATUS_STATES = {
    STATUS_PENDING: AccessState.PENDING_APPROVAL,
    STATUS_APPROVED: AccessState.UNLOCKED,
    STATUS_REJECTED: AccessState.REQUEST_AGAIN,
}


def decide_access(user: User | None, enrollment: Enrollment | None) -> AccessDecision:
    """Map viewer and enrollment status to the rendered state.

    Only an approved enrollment unlocks content. Admins are not students and
    get the same disabled controls as teachers.
    """
    if user is None:
        return _DECISIONS[AccessState.SIGN_IN_TO_ENROLL]
    if user.is_teacher:
        return _DECISIONS[AccessState.ENROLLMENT_DISABLED]
    if not user.is_student:
        return _ADMIN_DISABLED
    if enrollment is None:
        return _DECISIONS[AccessState.REQUEST_ENROLLMENT]
    return _DECISIONS[_STATUS_STATES[enrollment.status]]


def find_enrollment(enrollments: Iterable[Enrollment], course_id: str) -> Enrollment | None:
    for enrollment in enrollments:
        if enrollment.course_id == course_id:
            return enrollment
    return None


def materials_for_lesson(materials: Iterable[Material], lesson_title: str) -> list[Material]:
    """Materials whose title carries the lesson title (e.g. "Intro - slides")."""
    if not lesson_title:
        return []
    return [m for m in materials if lesson_title in m.title]


@dataclass(frozen=True)
class CourseContentState:
    course: Course | None = None
    enrollment: Enrollment | None = None
    decision: AccessDecision = field(default_factory=lambda: _DECISIONS[AccessState.SIGN_IN_TO_ENROLL])
    materials: tuple[Material, ...] = ()
    student_count: int = 0
    loading: bool = False
    enrolling: bool = False
    updating: bool = False

    @property
    def lessons(self) -> tuple[Lesson, ...]:
        """Lesson list, empty while the content is locked."""
        if self.course is None or not self.decision.unlocked:
            return ()
        return self.course.lessons

    @property
    def progress(self) -> int:
        if self.course is None or self.enrollment is None or not self.decision.unlocked:
            return 0
        return compute_progress(self.course.lesson_ids, self.enrollment.completed_lessons)

    def is_lesson_completed(self, lesson_id: str) -> bool:
        return self.enrollment is not None and lesson_id in self.enrollment.completed_lessons

    @property
    def teacher_conversation(self) -> ConversationKey | None:
        """Thread with the course teacher, open to approved students only."""
        if self.course is None or not self.decision.unlocked:
            return None
        return ConversationKey(self.course.teacher_id, self.course.id)


StateListener = Callable[[CourseContentState], None]


class CourseContentView:
    """Loads a course for the current viewer and applies the gating decision."""

    def __init__(
        self,
        client: ApiClient,
        session: Session,
        course_id: str,
        *,
        notifier: Notifier | None = None,
        on_change: StateListener | None = None,
    ) -> None:
        self._client = client
        self._session = session
        self._course_id = course_id
        self._notifier = notifier or LoggingNotifier()
        self._on_change = on_change
        self._lock = threading.Lock()
        self._state = CourseContentState(decision=decide_access(session.current_user(), None))

    @property
    def state(self) -> CourseContentState:
        with self._lock:
            return self._state

    def _update(self, **changes: object) -> None:
        with self._lock:
            self._state = replace(self._state, **changes)
            state = self._state
        if self._on_change is not None:
            self._on_change(state)

    def load(self) -> CourseContentState:
        self._update(loading=True)
        try:
            return self._load()
        except Exception:
            self._update(loading=False)
            raise

    def _load(self) -> CourseContentState:
        try:
            course = endpoints.fetch_course(self._client, self._course_id)
        except ApiError as exc:
            logger.warning("Failed to load course %s: %s", self._course_id, exc)
            self._notifier.error("Error", user_message(exc, "Failed to load course"))
            self._update(loading=False)
            return self.state

        user = self._session.current_user()
        enrollment = self._lookup_enrollment(user)
        decision = decide_access(user, enrollment)
        materials: tuple[Material, ...] = ()
        if decision.unlocked:
            materials = self._load_materials()
        self._update(
            course=course,
            enrollment=enrollment,
            decision=decision,
            materials=materials,
            student_count=self._count_students(),
            loading=False,
        )
        return self.state

    def _lookup_enrollment(self, user: User | None) -> Enrollment | None:
        if user is None or not user.is_student:
            return None
        try:
            enrollments = endpoints.fetch_my_enrollments(self._client)
        except ApiError as exc:
            logger.info("No enrollment found for course %s: %s", self._course_id, exc)
            return None
        return find_enrollment(enrollments, self._course_id)

    def _count_students(self) -> int:
        """Approved enrollments for the course; 0 when the count is unavailable."""
        try:
            enrollments = endpoints.fetch_course_enrollments(self._client, self._course_id)
        except ApiError as exc:
            logger.info("Could not fetch student count for course %s: %s", self._course_id, exc)
            return 0
        return sum(1 for enrollment in enrollments if enrollment.is_approved)

    def _load_materials(self) -> tuple[Material, ...]:
        try:
            return tuple(endpoints.fetch_course_materials(self._client, self._course_id))
        except ApiError:
            logger.exception("Failed to load materials for course %s", self._course_id)
            return ()

    def request_enrollment(self) -> bool:
        """Send an enrollment request; state is re-fetched, never assumed."""
        user = self._session.current_user()
        if user is None:
            self._notifier.error("Authentication required", "You need to sign in to enroll in courses")
            return False
        if not user.is_student:
            self._notifier.error("Not allowed", "Only students can enroll in courses")
            return False
        if not self.state.decision.can_request:
            return False

        self._update(enrolling=True)
        try:
            endpoints.request_enrollment(self._client, self._course_id)
        except ApiError as exc:
            self._notifier.error("Enrollment failed", user_message(exc, "Could not request enrollment"))
            return False
        finally:
            self._update(enrolling=False)

        self._notifier.info("Request sent!", "Your enrollment request has been sent to the teacher.")
        self.load()
        return True

    def complete_lesson(self, lesson_id: str) -> bool:
        return self._set_lesson(lesson_id, done=True)

    def uncomplete_lesson(self, lesson_id: str) -> bool:
        return self._set_lesson(lesson_id, done=False)

    def toggle_lesson(self, lesson_id: str) -> bool:
        return self._set_lesson(lesson_id, done=not self.state.is_lesson_completed(lesson_id))

    def _set_lesson(self, lesson_id: str, *, done: bool) -> bool:
        state = self.state
        if not state.decision.unlocked or state.enrollment is None or state.course is None:
            return False
        if state.course.lesson(lesson_id) is None:
            raise LookupError(f"lesson {lesson_id} is not part of course {self._course_id}")

        self._update(updating=True)
        try:
            if done:
                endpoints.complete_lesson(self._client, state.enrollment.id, lesson_id)
            else:
                endpoints.uncomplete_lesson(self._client, state.enrollment.id, lesson_id)
        except ApiError as exc:
            self._notifier.error("Error", user_message(exc, "Could not update progress"))
            return False
        finally:
            self._update(updating=False)

        if done:
            self._notifier.info("Lesson Completed!", "Great job! Keep going!")
        else:
            self._notifier.info("Lesson Unmarked", "Lesson marked as incomplete")
        self.load()
        return True

    def lesson_materials(self, lesson_title: str) -> list[Material]:
        return materials_for_lesson(self.state.materials, lesson_title)
