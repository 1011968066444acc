"""Domain models: queue views, peeked snapshots and outbound messages."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any

UNREADABLE_BODY = "[unreadable-body]"


class SubQueue(str, Enum):
    ACTIVE = "active"
    DEAD_LETTER = "deadletter"


@dataclass(frozen=True)
class QueueView:
    """A queue plus the sub-queue being paged (live or dead-letter)."""

    queue_name: str
    sub_queue: SubQueue = SubQueue.ACTIVE

    @classmethod
    def active(cls, queue_name: str) -> "QueueView":
        return cls(queue_name, SubQueue.ACTIVE)

    @classmethod
    def dead_letter(cls, queue_name: str) -> "QueueView":
        return cls(queue_name, SubQueue.DEAD_LETTER)

    @property
    def is_dead_letter(self) -> bool:
        return self.sub_queue == SubQueue.DEAD_LETTER

    @property
    def label(self) -> str:
        return "dead-letter queue" if self.is_dead_letter else "queue"


@dataclass(frozen=True)
class PeekedMessage:
    """Read-only snapshot of one queue entry. Peeking never changes delivery state."""

    sequence_number: int
    message_id: str | None = None
    correlation_id: str | None = None
    session_id: str | None = None
    content_type: str | None = None
    subject: str | None = None
    application_properties: dict[str, Any] = field(default_factory=dict)
    enqueued_time: datetime | None = None
    locked_until: datetime | None = None
    expires_at: datetime | None = None
    scheduled_enqueue_time: datetime | None = None
    delivery_count: int | None = None
    dead_letter_reason: str | None = None
    dead_letter_error_description: str | None = None
    body: bytes = b""

    def body_text(self) -> str:
        if not self.body:
            return ""
        try:
            return self.body.decode("utf-8")
        except UnicodeDecodeError:
            return UNREADABLE_BODY


@dataclass(frozen=True)
class OutboundMessage:
    """A new message to publish; transport assigns sequence number and enqueue time."""

    body: bytes
    content_type: str | None = None
    correlation_id: str | None = None
    message_id: str | None = None
    subject: str | None = None
    session_id: str | None = None
    application_properties: dict[str, Any] = field(default_factory=dict)
    time_to_live: timedelta | None = None


@dataclass(frozen=True)
class SessionHandle:
    """An accepted session on a session-enabled queue."""

    queue_name: str
    session_id: str
    receiver: Any = None
