"""Course catalog with per-course enrollment state, and the student's enrolled courses."""

from __future__ import annotations

from dataclasses import dataclass
import logging

from eduplatform.session import Session
from marketplace.models import Course, Enrollment, User

from . import endpoints
from .access import AccessDecision, decide_access, find_enrollment
from .api_client import ApiClient, ApiError
from .notifications import LoggingNotifier, Notifier, user_message

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CatalogRow:
    course: Course
    enrollment: Enrollment | None
    decision: AccessDecision


def _my_enrollments(client: ApiClient, user: User | None) -> list[Enrollment]:
    if user is None or not user.is_student:
        return []
    try:
        return endpoints.fetch_my_enrollments(client)
    except ApiError as exc:
        logger.info("Could not fetch enrollments for catalog: %s", exc)
        return []


class CourseCatalogView:
    """Every published course with the viewer's access decision for it."""

    def __init__(self, client: ApiClient, session: Session, *, notifier: Notifier | None = None) -> None:
        self._client = client
        self._session = session
        self._notifier = notifier or LoggingNotifier()
        self.rows: list[CatalogRow] = []
        self.requesting: str | None = None

    def load(self) -> list[CatalogRow]:
        try:
            courses = endpoints.fetch_courses(self._client)
        except ApiError as exc:
            logger.warning("Failed to fetch course catalog: %s", exc)
            return self.rows
        user = self._session.current_user()
        enrollments = _my_enrollments(self._client, user)
        rows = []
        for course in courses:
            enrollment = find_enrollment(enrollments, course.id)
            rows.append(CatalogRow(course, enrollment, decide_access(user, enrollment)))
        self.rows = rows
        return self.rows

    def row(self, course_id: str) -> CatalogRow | None:
        for row in self.rows:
            if row.course.id == course_id:
                return row
        return None

    def request_enrollment(self, course_id: str) -> bool:
        """Request a seat in one catalog course, then re-fetch every row."""
        user = self._session.current_user()
        if user is None:
            self._notifier.error("Authentication required", "You need to sign in to enroll in courses")
            return False
        if not user.is_student:
            self._notifier.error("Not allowed", "Only students can enroll in courses")
            return False
        row = self.row(course_id)
        if row is None or not row.decision.can_request:
            return False

        self.requesting = course_id
        try:
            endpoints.request_enrollment(self._client, course_id)
        except ApiError as exc:
            self._notifier.error("Request Failed", user_message(exc, "Could not request enrollment"))
            return False
        finally:
            self.requesting = None

        self._notifier.info("Enrollment Requested!", "Your enrollment request has been sent to the teacher.")
        self.load()
        return True


def display_progress(enrollment: Enrollment) -> int:
    """Stored progress clamped to 0-100 for dashboards."""
    return max(0, min(100, round(enrollment.progress)))


class EnrolledCoursesView:
    """Approved enrollments of the signed-in student."""

    def __init__(self, client: ApiClient, session: Session, *, notifier: Notifier | None = None) -> None:
        self._client = client
        self._session = session
        self._notifier = notifier or LoggingNotifier()
        self.enrollments: list[Enrollment] = []

    def load(self) -> list[Enrollment]:
        user = self._session.current_user()
        if user is None or not user.is_student:
            self.enrollments = []
            return self.enrollments
        try:
            rows = endpoints.fetch_my_enrollments(self._client)
        except ApiError as exc:
            logger.warning("Failed to fetch enrolled courses: %s", exc)
            self._notifier.error("Error", user_message(exc, "Failed to load enrolled courses"))
            return self.enrollments
        self.enrollments = [row for row in rows if row.is_approved]
        return self.enrollments
