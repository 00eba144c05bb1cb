"""Domain models for the course marketplace client."""

from ._fields import ModelValidationError
from .course import MATERIAL_TYPES, Course, Lesson, Material
from .enrollment import (
    ENROLLMENT_STATUSES,
    STATUS_APPROVED,
    STATUS_PENDING,
    STATUS_REJECTED,
    Enrollment,
)
from .message import ConversationKey, ConversationSummary, CourseRef, Message, Participant
from .review import MIN_REVIEW_LENGTH, Review, ReviewStats, validate_rating
from .user import ROLE_ADMIN, ROLE_STUDENT, ROLE_TEACHER, USER_ROLES, User

__all__ = [
    "ConversationKey",
    "ConversationSummary",
    "Course",
    "CourseRef",
    "ENROLLMENT_STATUSES",
    "Enrollment",
    "Lesson",
    "MATERIAL_TYPES",
    "MIN_REVIEW_LENGTH",
    "Material",
    "Message",
    "ModelValidationError",
    "Participant",
    "ROLE_ADMIN",
    "ROLE_STUDENT",
    "ROLE_TEACHER",
    "Review",
    "ReviewStats",
    "STATUS_APPROVED",
    "STATUS_PENDING",
    "STATUS_REJECTED",
    "USER_ROLES",
    "User",
    "validate_rating",
]
