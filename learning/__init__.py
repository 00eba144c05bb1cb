"""Learning progress helpers."""

from .progress import (
    LessonNavigator,
    compute_progress,
    format_duration,
    format_file_size,
    set_completed,
    toggle_completed,
)

__all__ = [
    "LessonNavigator",
    "compute_progress",
    "format_duration",
    "format_file_size",
    "set_completed",
    "toggle_completed",
]
