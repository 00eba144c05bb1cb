"""Client core: REST access, gated course content, conversations and reviews."""

from .access import (
    AccessDecision,
    AccessState,
    CourseContentState,
    CourseContentView,
    decide_access,
    find_enrollment,
    materials_for_lesson,
)
from .api_client import ApiAuthError, ApiClient, ApiError, ApiNotFoundError
from .approvals import PendingEnrollmentsView
from .catalog import CatalogRow, CourseCatalogView, EnrolledCoursesView, display_progress
from .config import ClientConfig, ConfigError, build_client, build_session_store
from .conversation import ConversationState, ConversationView
from .inbox import InboxView
from .notifications import LoggingNotifier, Notifier, RecordingNotifier, user_message
from .polling import PollingTask
from .reviews import ReviewSection

__all__ = [
    "AccessDecision",
    "AccessState",
    "CatalogRow",
    "ApiAuthError",
    "ApiClient",
    "ApiError",
    "ApiNotFoundError",
    "ClientConfig",
    "ConfigError",
    "ConversationState",
    "ConversationView",
    "CourseCatalogView",
    "CourseContentState",
    "CourseContentView",
    "EnrolledCoursesView",
    "InboxView",
    "LoggingNotifier",
    "Notifier",
    "PendingEnrollmentsView",
    "PollingTask",
    "RecordingNotifier",
    "ReviewSection",
    "build_client",
    "build_session_store",
    "decide_access",
    "display_progress",
    "find_enrollment",
    "materials_for_lesson",
    "user_message",
]
