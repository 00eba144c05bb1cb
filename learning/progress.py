"""Pure, deterministic helpers for lesson progress and lesson navigation."""

from __future__ import annotations

from typing import Iterable

from marketplace.models import Course, Lesson

_KIB = 1024
_MIB = 1024 * 1024


def compute_progress(lesson_ids: Iterable[str], completed: Iterable[str]) -> int:
    """Percentage of course lessons completed, rounded half up.

    Completed ids that are not lessons of the course are ignored, and a
    course with no lessons has a progress of 0.
    """
    lessons = set(lesson_ids)
    if not lessons:
        return 0
    done = len(lessons.intersection(completed))
    # Integer form of floor(100 * done / total + 0.5).
    return (200 * done + len(lessons)) // (2 * len(lessons))


def toggle_completed(completed: Iterable[str], lesson_id: str) -> frozenset[str]:
    """Return the completed-set with `lesson_id` membership flipped."""
    current = frozenset(completed)
    if lesson_id in current:
        return current - {lesson_id}
    return current | {lesson_id}


def set_completed(completed: Iterable[str], lesson_id: str, done: bool) -> frozenset[str]:
    """Return the completed-set with `lesson_id` present iff `done`."""
    current = frozenset(completed)
    if done:
        return current | {lesson_id}
    return current - {lesson_id}


def format_file_size(size_bytes: int) -> str:
    if size_bytes < _KIB:
        return f"{size_bytes} B"
    if size_bytes < _MIB:
        return f"{size_bytes / _KIB:.1f} KB"
    return f"{size_bytes / _MIB:.1f} MB"


def format_duration(minutes: int | float) -> str:
    """Render a minute count as `Xh Ym`."""
    total = int(minutes)
    return f"{total // 60}h {total % 60}m"


class LessonNavigator:
    """Previous/next navigation over a course's ordered lessons."""

    def __init__(self, course: Course, lesson_id: str) -> None:
        self._lessons = course.lessons
        for idx, lesson in enumerate(self._lessons):
            if lesson.id == lesson_id:
                self._index = idx
                break
        else:
            raise LookupError(f"lesson {lesson_id} is not part of course {course.id}")

    @property
    def index(self) -> int:
        return self._index

    @property
    def current(self) -> Lesson:
        return self._lessons[self._index]

    @property
    def is_first(self) -> bool:
        return self._index == 0

    @property
    def is_last(self) -> bool:
        return self._index == len(self._lessons) - 1

    def previous(self) -> Lesson | None:
        if self.is_first:
            return None
        return self._lessons[self._index - 1]

    def next(self) -> Lesson | None:
        if self.is_last:
            return None
        return self._lessons[self._index + 1]
