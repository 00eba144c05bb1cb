"""Enrollment model joining a student to a course."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from ._fields import (
    ModelValidationError,
    document_id,
    optional_string,
    reference_field,
    reference_id,
    require_mapping,
    validate_non_empty_string,
    validate_non_negative_number,
)

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"
ENROLLMENT_STATUSES = frozenset((STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED))


@dataclass(frozen=True)
class Enrollment:
    """Approval status plus progress for one (student, course) pair."""

    id: str
    student_id: str
    course_id: str
    status: str
    progress: int | float = 0
    completed_lessons: frozenset[str] = frozenset()
    enrollment_date: str = ""
    course_title: str = ""

    def __post_init__(self) -> None:
        validate_non_empty_string(self.id, "_id")
        validate_non_empty_string(self.student_id, "studentId")
        validate_non_empty_string(self.course_id, "courseId")
        if self.status not in ENROLLMENT_STATUSES:
            raise ModelValidationError(f"status: unsupported value '{self.status}'")
        # Stored progress may exceed 100 after lessons are removed.
        validate_non_negative_number(self.progress, "progress")

    @property
    def is_approved(self) -> bool:
        return self.status == STATUS_APPROVED

    @classmethod
    def from_api_dict(cls, payload: Mapping[str, Any]) -> "Enrollment":
        payload = require_mapping(payload, "Enrollment")
        raw_completed = payload.get("completedLessons") or []
        if not isinstance(raw_completed, list):
            raise ModelValidationError("completedLessons: expected list")
        course = payload.get("courseId")
        return cls(
            id=document_id(payload, "Enrollment"),
            student_id=reference_id(payload.get("studentId"), "studentId"),
            course_id=reference_id(course, "courseId"),
            status=payload.get("status"),
            progress=payload.get("progress", 0) or 0,
            completed_lessons=frozenset(
                reference_id(row, "completedLessons[]") for row in raw_completed
            ),
            enrollment_date=optional_string(payload.get("enrollmentDate"), "enrollmentDate"),
            course_title=reference_field(course, "title"),
        )
