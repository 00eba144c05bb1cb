"""Course review and review statistics models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from ._fields import (
    ModelValidationError,
    document_id,
    optional_string,
    reference_field,
    reference_id,
    require_mapping,
    validate_non_negative_number,
)

MIN_RATING = 1
MAX_RATING = 5
MIN_REVIEW_LENGTH = 10


def validate_rating(value: Any) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ModelValidationError("rating: expected integer")
    if value < MIN_RATING or value > MAX_RATING:
        raise ModelValidationError(f"rating: must be between {MIN_RATING} and {MAX_RATING}")
    return value


@dataclass(frozen=True)
class Review:
    """One review per (student, course) pair, editable only by its author."""

    id: str
    student_id: str
    rating: int
    text: str
    course_id: str = ""
    student_name: str = ""
    created_at: str = ""

    def __post_init__(self) -> None:
        validate_rating(self.rating)
        if not isinstance(self.text, str):
            raise ModelValidationError("review: expected string")

    def is_authored_by(self, user_id: str | None) -> bool:
        return user_id is not None and self.student_id == user_id

    @classmethod
    def from_api_dict(cls, payload: Mapping[str, Any]) -> "Review":
        payload = require_mapping(payload, "Review")
        student = payload.get("studentId")
        course = payload.get("courseId")
        return cls(
            id=document_id(payload, "Review"),
            student_id=reference_id(student, "studentId"),
            rating=payload.get("rating"),
            text=optional_string(payload.get("review"), "review"),
            course_id=reference_id(course, "courseId") if course is not None else "",
            student_name=reference_field(student, "name"),
            created_at=optional_string(payload.get("createdAt"), "createdAt"),
        )


@dataclass(frozen=True)
class ReviewStats:
    total_reviews: int = 0
    average_rating: float = 0.0
    rating_distribution: dict[int, int] = field(default_factory=dict)

    def share(self, rating: int) -> int:
        """Percentage of reviews with `rating`, rounded to an integer."""
        if self.total_reviews <= 0:
            return 0
        return round(100 * self.rating_distribution.get(rating, 0) / self.total_reviews)

    @classmethod
    def from_api_dict(cls, payload: Mapping[str, Any] | None) -> "ReviewStats":
        if payload is None:
            return cls()
        payload = require_mapping(payload, "ReviewStats")
        total = payload.get("totalReviews", 0) or 0
        average = payload.get("averageRating", 0) or 0
        validate_non_negative_number(total, "totalReviews")
        validate_non_negative_number(average, "averageRating")
        raw_distribution = payload.get("ratingDistribution") or {}
        if not isinstance(raw_distribution, Mapping):
            raise ModelValidationError("ratingDistribution: expected object")
        distribution: dict[int, int] = {}
        for rating in range(MIN_RATING, MAX_RATING + 1):
            count = raw_distribution.get(str(rating), raw_distribution.get(rating, 0)) or 0
            distribution[rating] = int(validate_non_negative_number(count, f"ratingDistribution.{rating}"))
        return cls(total_reviews=int(total), average_rating=float(average), rating_distribution=distribution)
