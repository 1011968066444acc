"""Helpers to serialise operation outcomes into API responses."""
from __future__ import annotations

from fastapi import Response
from pydantic import BaseModel

from api.app.domain.models import PeekedMessage
from api.app.schemas.queue import FindMessageResponse, ListMessagesResponse, MessageItem
from api.app.services.find_message import FindMessageOutcome
from api.app.services.list_messages import MessagePage


def json_response(model: BaseModel, status_code: int = 200) -> Response:
    return Response(
        status_code=status_code,
        media_type="application/json",
        content=model.model_dump_json(by_alias=True),
    )


def _item_fields(message: PeekedMessage, body: str) -> dict:
    return {
        "sequence_number": message.sequence_number,
        "enqueued_time": message.enqueued_time,
        "expires_at": message.expires_at,
        "scheduled_enqueue_time": message.scheduled_enqueue_time,
        "locked_until": message.locked_until,
        "message_id": message.message_id,
        "correlation_id": message.correlation_id,
        "session_id": message.session_id,
        "content_type": message.content_type,
        "subject": message.subject,
        "dead_letter_reason": message.dead_letter_reason,
        "application_properties": dict(message.application_properties),
        "body": body,
    }


def response_from_find(outcome: FindMessageOutcome) -> Response:
    """found -> 200 with metadata and body; not found -> 404 naming the view and scan limit."""
    if not outcome.found or outcome.message is None:
        return Response(status_code=404, content=outcome.not_found_detail)
    return json_response(
        FindMessageResponse(
            location=outcome.location,
            **_item_fields(outcome.message, outcome.body or ""),
        )
    )


def response_from_page(page: MessagePage) -> Response:
    return json_response(
        ListMessagesResponse(
            deadletter=page.view.is_dead_letter,
            count=page.count,
            next_sequence_number=page.next_sequence_number,
            items=[MessageItem(**_item_fields(i.message, i.body)) for i in page.items],
        )
    )
