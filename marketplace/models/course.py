"""Course, lesson and material models."""

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
    validate_non_empty_string,
    validate_non_negative_number,
)

MATERIAL_TYPES = frozenset(("pdf", "video", "image", "document", "other"))


@dataclass(frozen=True)
class Lesson:
    """One entry of a course's ordered lesson sequence."""

    id: str
    title: str
    description: str
    duration: int | float
    order: int

    def __post_init__(self) -> None:
        validate_non_empty_string(self.id, "lesson._id")
        validate_non_empty_string(self.title, "lesson.title")
        validate_non_negative_number(self.duration, "lesson.duration")
        validate_non_negative_number(self.order, "lesson.order")

    @classmethod
    def from_api_dict(cls, payload: Mapping[str, Any], *, position: int = 0) -> "Lesson":
        payload = require_mapping(payload, "Lesson")
        order = payload.get("order")
        if order is None:
            order = position + 1
        return cls(
            id=document_id(payload, "Lesson"),
            title=payload.get("title"),
            description=optional_string(payload.get("description"), "lesson.description"),
            duration=payload.get("duration", 0) or 0,
            order=order,
        )


@dataclass(frozen=True)
class Course:
    """Course owned by exactly one teacher, with lessons sorted by `order`."""

    id: str
    title: str
    teacher_id: str
    lessons: tuple[Lesson, ...] = ()
    description: str = ""
    level: str = ""
    category: str = ""
    teacher_name: str = ""

    def __post_init__(self) -> None:
        validate_non_empty_string(self.id, "_id")
        validate_non_empty_string(self.title, "title")
        validate_non_empty_string(self.teacher_id, "teacherId")
        seen: set[str] = set()
        for lesson in self.lessons:
            if lesson.id in seen:
                raise ModelValidationError(f"lessons: duplicate lesson id '{lesson.id}'")
            seen.add(lesson.id)

    @property
    def lesson_ids(self) -> tuple[str, ...]:
        return tuple(lesson.id for lesson in self.lessons)

    @property
    def total_duration(self) -> int | float:
        """Sum of lesson durations in minutes."""
        return sum(lesson.duration for lesson in self.lessons)

    def lesson(self, lesson_id: str) -> Lesson | None:
        for lesson in self.lessons:
            if lesson.id == lesson_id:
                return lesson
        return None

    @classmethod
    def from_api_dict(cls, payload: Mapping[str, Any]) -> "Course":
        """Build model from a course document, populated teacher or not."""
        payload = require_mapping(payload, "Course")
        raw_lessons = payload.get("lessons") or []
        if not isinstance(raw_lessons, list):
            raise ModelValidationError("lessons: expected list")
        lessons = [Lesson.from_api_dict(row, position=idx) for idx, row in enumerate(raw_lessons)]
        lessons.sort(key=lambda lesson: lesson.order)

        teacher = payload.get("teacherId")
        return cls(
            id=document_id(payload, "Course"),
            title=payload.get("title"),
            teacher_id=reference_id(teacher, "teacherId"),
            lessons=tuple(lessons),
            description=optional_string(payload.get("description"), "description"),
            level=optional_string(payload.get("level"), "level"),
            category=optional_string(payload.get("category"), "category"),
            teacher_name=reference_field(teacher, "name"),
        )


@dataclass(frozen=True)
class Material:
    """Typed file reference attached to a course."""

    id: str
    title: str
    type: str
    url: str
    filename: str = ""
    filesize: int = 0
    uploaded_at: str = field(default="")

    def __post_init__(self) -> None:
        validate_non_empty_string(self.id, "_id")
        validate_non_empty_string(self.title, "title")
        if self.type not in MATERIAL_TYPES:
            raise ModelValidationError(f"type: unsupported value '{self.type}'")
        validate_non_empty_string(self.url, "url")
        validate_non_negative_number(self.filesize, "filesize")

    @classmethod
    def from_api_dict(cls, payload: Mapping[str, Any]) -> "Material":
        payload = require_mapping(payload, "Material")
        material_type = payload.get("type")
        if not isinstance(material_type, str) or material_type.strip().lower() not in MATERIAL_TYPES:
            material_type = "other"
        filesize = payload.get("filesize")
        if not isinstance(filesize, int) or isinstance(filesize, bool) or filesize < 0:
            filesize = 0
        return cls(
            id=document_id(payload, "Material"),
            title=payload.get("title"),
            type=material_type.strip().lower(),
            url=payload.get("url"),
            filename=optional_string(payload.get("filename"), "filename"),
            filesize=filesize,
            uploaded_at=optional_string(payload.get("uploadedAt"), "uploadedAt"),
        )
