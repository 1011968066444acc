from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Query, Request, Response
from loguru import logger

from api.app.core import SERVICE_NAME
from api.app.domain.errors import QueueInspectorError
from api.app.routers.serializers import json_response, response_from_find
from api.app.routers.utils import error_response, queue_dependencies, read_body_text
from api.app.schemas.queue import SendResponse
from api.app.services.find_message import find_message
from api.app.services.send_orders import send_enriched_order, send_order


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


orders_router = APIRouter(prefix="/orders", tags=["Orders"])


@orders_router.get(
    "/find/{order_number}",
    summary="Find an order in the queue (peek)",
    description="Looks for the order number in the orderNumber attribute, then in header.orderNumber of the JSON body. Messages are not consumed.",
    responses={
        200: {"description": "Order found."},
        404: {"description": "Order not found within the scan limit."},
        503: {"description": "Service Bus not configured or unavailable."},
    },
)
async def find_order(
    request: Request,
    order_number: str,
    deadletter: bool = False,
    max_to_scan: int | None = Query(None, alias="max"),
) -> Response:
    try:
        transport, config = queue_dependencies(request)
        outcome = await find_message(
            transport,
            config,
            field_value=order_number,
            dead_letter=deadletter,
            max_to_scan=max_to_scan,
        )
    except QueueInspectorError as e:
        return error_response(e, operation="find_order")
    return response_from_find(outcome)


@orders_router.post(
    "/send",
    summary="Send an order to the queue",
    responses={
        200: {"description": "Order sent."},
        400: {"description": "Missing or invalid JSON body."},
        503: {"description": "Service Bus not configured or unavailable."},
    },
)
async def post_order(request: Request) -> Response:
    _log("order_send_requested")
    body = await read_body_text(request)
    try:
        transport, config = queue_dependencies(request)
        await send_order(transport, config, body)
    except QueueInspectorError as e:
        return error_response(e, operation="send_order")
    return json_response(SendResponse(message="Message sent to the Service Bus queue."))


@orders_router.post(
    "/send-enriched",
    summary="Send an order with message id, correlation id and attributes",
    description="Requires header.orderNumber in the body. ttlSeconds>0 sets a time-to-live; scheduleInSeconds>0 schedules the message instead of sending it now.",
    responses={
        200: {"description": "Order sent or scheduled."},
        400: {"description": "Missing or invalid JSON body, or no order number."},
        503: {"description": "Service Bus not configured or unavailable."},
    },
)
async def post_enriched_order(
    request: Request,
    ttl_seconds: int | None = Query(None, alias="ttlSeconds"),
    schedule_in_seconds: int | None = Query(None, alias="scheduleInSeconds"),
) -> Response:
    _log("order_send_enriched_requested")
    body = await read_body_text(request)
    try:
        transport, config = queue_dependencies(request)
        outcome = await send_enriched_order(
            transport,
            config,
            body,
            ttl_seconds=ttl_seconds,
            schedule_in_seconds=schedule_in_seconds,
        )
    except QueueInspectorError as e:
        return error_response(e, operation="send_enriched_order")
    return json_response(
        SendResponse(
            message="Enriched message scheduled." if outcome.scheduled else "Enriched message sent.",
            message_id=outcome.message_id,
            scheduled_enqueue_time=outcome.scheduled_for,
            sequence_number=outcome.sequence_number,
            ttl_seconds=outcome.ttl_seconds,
        )
    )
