"""Course review section: list, stats, and the viewer's own review."""

from __future__ import annotations

import logging

from eduplatform.session import Session
from marketplace.models import MIN_REVIEW_LENGTH, ModelValidationError, Review, ReviewStats, validate_rating

from . import endpoints
from .api_client import ApiClient, ApiError, ApiNotFoundError
from .notifications import LoggingNotifier, Notifier, user_message

logger = logging.getLogger(__name__)


class ReviewSection:
    """Reviews for one course.

    `can_review` is true only for students with an approved enrollment; the
    backend keeps one review per (student, course) so submitting again
    replaces the earlier one.
    """

    def __init__(
        self,
        client: ApiClient,
        session: Session,
        course_id: str,
        *,
        can_review: bool,
        notifier: Notifier | None = None,
    ) -> None:
        self._client = client
        self._session = session
        self._course_id = course_id
        self._notifier = notifier or LoggingNotifier()
        self.can_review = can_review
        self.reviews: list[Review] = []
        self.stats = ReviewStats()
        self.my_review: Review | None = None
        self.loading = False
        self.submitting = False

    def load(self) -> None:
        self.loading = True
        try:
            self.reviews, self.stats = endpoints.fetch_course_reviews(self._client, self._course_id)
        except ApiError:
            logger.exception("Failed to fetch reviews for course %s", self._course_id)
        finally:
            self.loading = False
        if self.can_review:
            self._load_my_review()

    def _load_my_review(self) -> None:
        try:
            self.my_review = endpoints.fetch_my_review(self._client, self._course_id)
        except ApiNotFoundError:
            self.my_review = None
        except ApiError:
            logger.exception("Failed to fetch own review for course %s", self._course_id)

    def submit(self, rating: int, text: str) -> bool:
        if not self.can_review:
            self._notifier.error("Not allowed", "Only enrolled students can review this course")
            return False
        body = text.strip()
        if len(body) < MIN_REVIEW_LENGTH:
            self._notifier.error("Review too short", f"Please write at least {MIN_REVIEW_LENGTH} characters")
            return False
        try:
            validate_rating(rating)
        except ModelValidationError as exc:
            self._notifier.error("Invalid rating", str(exc))
            return False

        updating = self.my_review is not None
        self.submitting = True
        try:
            endpoints.submit_review(self._client, self._course_id, rating, body)
        except ApiError as exc:
            self._notifier.error("Error", user_message(exc, "Failed to submit review"))
            return False
        finally:
            self.submitting = False

        self._notifier.info("Success!", "Review updated" if updating else "Review submitted")
        self.load()
        return True

    def delete(self) -> bool:
        user = self._session.current_user()
        if self.my_review is None or not self.my_review.is_authored_by(user.id if user else None):
            return False
        try:
            endpoints.delete_review(self._client, self._course_id)
        except ApiError as exc:
            self._notifier.error("Error", user_message(exc, "Failed to delete review"))
            return False

        self._notifier.info("Deleted", "Review deleted successfully")
        self.my_review = None
        self.load()
        return True
