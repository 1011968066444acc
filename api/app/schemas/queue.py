from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Responses use camelCase on the wire; serialise with by_alias=True."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MessageItem(CamelModel):
    sequence_number: int
    enqueued_time: datetime | None = None
    expires_at: datetime | None = None
    scheduled_enqueue_time: datetime | None = None
    locked_until: datetime | None = None
    message_id: str | None = None
    correlation_id: str | None = None
    session_id: str | None = None
    content_type: str | None = None
    subject: str | None = None
    dead_letter_reason: str | None = None
    application_properties: dict[str, Any] = {}
    body: str = ""


class FindMessageResponse(MessageItem):
    found: bool = True
    location: str


class ListMessagesResponse(CamelModel):
    deadletter: bool
    count: int
    next_sequence_number: int | None = None
    items: list[MessageItem]


class RequeueResponse(CamelModel):
    requeued: bool = True
    message_id: str | None = None
    sequence_number: int
    session_id: str | None = None


class SendResponse(CamelModel):
    message: str
    message_id: str | None = None
    scheduled_enqueue_time: datetime | None = None
    sequence_number: int | None = None
    ttl_seconds: int | None = None


class ScheduleResponse(CamelModel):
    scheduled: bool = True
    scheduled_enqueue_time: datetime
    sequence_number: int | None = None


class SessionResponse(CamelModel):
    session_id: str
    sent: bool | None = None
    closed: bool | None = None
