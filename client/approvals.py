"""Teacher-side queue of enrollment requests awaiting approval."""

from __future__ import annotations

import logging

from eduplatform.session import Session
from marketplace.models import Enrollment

from . import endpoints
from .api_client import ApiClient, ApiError
from .notifications import LoggingNotifier, Notifier, user_message

logger = logging.getLogger(__name__)


class PendingEnrollmentsView:
    """Pending requests for the signed-in teacher's courses.

    Approving or rejecting re-fetches the queue rather than removing the row
    locally.
    """

    def __init__(self, client: ApiClient, session: Session, *, notifier: Notifier | None = None) -> None:
        self._client = client
        self._session = session
        self._notifier = notifier or LoggingNotifier()
        self.pending: list[Enrollment] = []

    def _is_teacher(self) -> bool:
        user = self._session.current_user()
        return user is not None and user.is_teacher

    def load(self) -> list[Enrollment]:
        if not self._is_teacher():
            self.pending = []
            return self.pending
        try:
            self.pending = endpoints.fetch_pending_enrollments(self._client)
        except ApiError as exc:
            logger.warning("Failed to fetch pending enrollments: %s", exc)
            self._notifier.error("Error", user_message(exc, "Failed to load enrollment requests"))
        return self.pending

    def approve(self, enrollment_id: str) -> bool:
        return self._decide(enrollment_id, approve=True)

    def reject(self, enrollment_id: str) -> bool:
        return self._decide(enrollment_id, approve=False)

    def _decide(self, enrollment_id: str, *, approve: bool) -> bool:
        if not self._is_teacher():
            self._notifier.error("Not allowed", "Only teachers can review enrollment requests")
            return False
        try:
            if approve:
                endpoints.approve_enrollment(self._client, enrollment_id)
            else:
                endpoints.reject_enrollment(self._client, enrollment_id)
        except ApiError as exc:
            self._notifier.error("Error", user_message(exc, "Could not update enrollment"))
            return False

        logger.info("Enrollment %s %s", enrollment_id, "approved" if approve else "rejected")
        self._notifier.info(
            "Enrollment approved" if approve else "Enrollment rejected",
            "The student has been notified.",
        )
        self.load()
        return True
