from __future__ import annotations

from fastapi import APIRouter, Query, Request, Response

from api.app.domain.errors import QueueInspectorError
from api.app.routers.serializers import json_response, response_from_find, response_from_page
from api.app.routers.utils import error_response, queue_dependencies, read_body_text
from api.app.schemas.queue import ScheduleResponse
from api.app.services.find_message import find_message
from api.app.services.list_messages import list_messages
from api.app.services.send_orders import schedule_send

queue_router = APIRouter(prefix="/queue", tags=["Queue"])


@queue_router.get(
    "/list",
    summary="List queue messages (peek)",
    description="Returns one page of messages without consuming them. Use nextSequenceNumber as `from` for the next page. `top` is clamped to 1..200; bodies are truncated to `maxBody` characters (0 disables truncation).",
    responses={
        200: {"description": "Page of peeked messages."},
        503: {"description": "Service Bus not configured or unavailable."},
    },
)
async def list_queue_messages(
    request: Request,
    top: int | None = None,
    deadletter: bool = False,
    from_sequence: int | None = Query(None, alias="from"),
    max_body: int | None = Query(None, alias="maxBody"),
) -> Response:
    try:
        transport, config = queue_dependencies(request)
        page = await list_messages(
            transport,
            config,
            dead_letter=deadletter,
            top=top,
            from_sequence=from_sequence,
            max_body=max_body,
        )
    except QueueInspectorError as e:
        return error_response(e, operation="list_messages")
    return response_from_page(page)


@queue_router.get(
    "/find",
    summary="Find a message by id or order number (peek)",
    description="Scans the active queue (or the dead-letter queue with deadletter=true) up to `max` messages and returns the first match.",
    responses={
        200: {"description": "Message found."},
        400: {"description": "Neither messageId nor orderNumber supplied."},
        404: {"description": "No match within the scan limit."},
        503: {"description": "Service Bus not configured or unavailable."},
    },
)
async def find_queue_message(
    request: Request,
    message_id: str | None = Query(None, alias="messageId"),
    order_number: str | None = Query(None, alias="orderNumber"),
    deadletter: bool = False,
    max_to_scan: int | None = Query(None, alias="max"),
) -> Response:
    try:
        transport, config = queue_dependencies(request)
        outcome = await find_message(
            transport,
            config,
            message_id=message_id,
            field_value=order_number,
            dead_letter=deadletter,
            max_to_scan=max_to_scan,
        )
    except QueueInspectorError as e:
        return error_response(e, operation="find_message")
    return response_from_find(outcome)


@queue_router.post(
    "/schedule",
    summary="Schedule a message for future delivery",
    responses={
        200: {"description": "Message scheduled."},
        400: {"description": "Empty body or scheduleInSeconds not > 0."},
        503: {"description": "Service Bus not configured or unavailable."},
    },
)
async def schedule_message(
    request: Request,
    schedule_in_seconds: int | None = Query(None, alias="scheduleInSeconds"),
) -> Response:
    body = await read_body_text(request)
    try:
        transport, config = queue_dependencies(request)
        outcome = await schedule_send(transport, config, body, schedule_in_seconds)
    except QueueInspectorError as e:
        return error_response(e, operation="schedule_send")
    return json_response(
        ScheduleResponse(
            scheduled_enqueue_time=outcome.scheduled_for,
            sequence_number=outcome.sequence_number,
        )
    )
