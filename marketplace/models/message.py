"""Direct message, conversation identity and inbox row models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, NamedTuple

from ._fields import (
    ModelValidationError,
    document_id,
    optional_string,
    reference_field,
    reference_id,
    require_mapping,
    validate_non_empty_string,
)


class ConversationKey(NamedTuple):
    """A thread is identified by the counterpart and the course, never by users alone."""

    counterpart_id: str
    course_id: str


@dataclass(frozen=True)
class Participant:
    id: str
    name: str = ""
    role: str = ""

    @classmethod
    def from_reference(cls, value: Any, field_name: str) -> "Participant":
        return cls(
            id=reference_id(value, field_name),
            name=reference_field(value, "name"),
            role=reference_field(value, "role"),
        )


@dataclass(frozen=True)
class CourseRef:
    id: str
    title: str = ""

    @classmethod
    def from_reference(cls, value: Any, field_name: str) -> "CourseRef":
        return cls(id=reference_id(value, field_name), title=reference_field(value, "title"))


@dataclass(frozen=True)
class Message:
    """A message sent from one user to another, scoped to one course."""

    id: str
    sender: Participant
    receiver: Participant
    course: CourseRef
    text: str
    is_read: bool = False
    created_at: str = ""

    def __post_init__(self) -> None:
        validate_non_empty_string(self.id, "_id")
        if not isinstance(self.text, str):
            raise ModelValidationError("message: expected string")
        if self.sender.id == self.receiver.id:
            raise ModelValidationError("receiverId: must differ from senderId")

    def counterpart_for(self, user_id: str) -> Participant:
        """Return whichever participant is not `user_id`."""
        if self.sender.id == user_id:
            return self.receiver
        return self.sender

    def key_for(self, user_id: str) -> ConversationKey:
        return ConversationKey(self.counterpart_for(user_id).id, self.course.id)

    @classmethod
    def from_api_dict(cls, payload: Mapping[str, Any]) -> "Message":
        payload = require_mapping(payload, "Message")
        is_read = payload.get("isRead", False)
        if not isinstance(is_read, bool):
            raise ModelValidationError("isRead: expected boolean")
        return cls(
            id=document_id(payload, "Message"),
            sender=Participant.from_reference(payload.get("senderId"), "senderId"),
            receiver=Participant.from_reference(payload.get("receiverId"), "receiverId"),
            course=CourseRef.from_reference(payload.get("courseId"), "courseId"),
            text=payload.get("message"),
            is_read=is_read,
            created_at=optional_string(payload.get("createdAt"), "createdAt"),
        )


@dataclass(frozen=True)
class ConversationSummary:
    """One inbox row, aggregated by the backend per (counterpart, course)."""

    counterpart: Participant
    course: CourseRef
    last_message: str = ""
    last_message_at: str = ""
    unread_count: int = 0

    def __post_init__(self) -> None:
        if not isinstance(self.unread_count, int) or self.unread_count < 0:
            raise ModelValidationError("unreadCount: must be a non-negative integer")

    @property
    def key(self) -> ConversationKey:
        return ConversationKey(self.counterpart.id, self.course.id)

    @classmethod
    def from_api_dict(cls, payload: Mapping[str, Any]) -> "ConversationSummary":
        payload = require_mapping(payload, "Conversation")
        last = payload.get("lastMessage")
        if not isinstance(last, Mapping):
            last = {}
        unread = payload.get("unreadCount", 0)
        if isinstance(unread, bool) or not isinstance(unread, int):
            raise ModelValidationError("unreadCount: expected integer")
        return cls(
            counterpart=Participant.from_reference(payload.get("user"), "user"),
            course=CourseRef.from_reference(payload.get("course"), "course"),
            last_message=optional_string(last.get("message"), "lastMessage.message"),
            last_message_at=optional_string(last.get("createdAt"), "lastMessage.createdAt"),
            unread_count=unread,
        )
