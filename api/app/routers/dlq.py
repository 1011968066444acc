from __future__ import annotations

from fastapi import APIRouter, Query, Request, Response

from api.app.domain.errors import QueueInspectorError
from api.app.routers.serializers import json_response
from api.app.routers.utils import error_response, queue_dependencies
from api.app.schemas.queue import RequeueResponse
from api.app.services.requeue_dead_letter import requeue_from_dead_letter

NOT_FOUND_IN_DLQ = "Message not found in the dead-letter queue within the scan limit."

dlq_router = APIRouter(prefix="/dlq", tags=["Dead-letter"])


@dlq_router.post(
    "/requeue",
    summary="Copy a dead-lettered message back to the queue",
    description="Finds the message in the dead-letter queue by messageId or orderNumber and sends a copy to the active queue. The original stays in the dead-letter queue.",
    responses={
        200: {"description": "Copy published to the active queue."},
        400: {"description": "Neither messageId nor orderNumber supplied."},
        404: {"description": "No match within the scan limit."},
        503: {"description": "Service Bus not configured or unavailable."},
    },
)
async def requeue(
    request: Request,
    message_id: str | None = Query(None, alias="messageId"),
    order_number: str | None = Query(None, alias="orderNumber"),
    max_to_scan: int | None = Query(None, alias="max"),
) -> Response:
    try:
        transport, config = queue_dependencies(request)
        outcome = await requeue_from_dead_letter(
            transport,
            config,
            message_id=message_id,
            field_value=order_number,
            max_to_scan=max_to_scan,
        )
    except QueueInspectorError as e:
        return error_response(e, operation="dlq_requeue")

    if not outcome.requeued or outcome.sequence_number is None:
        return Response(status_code=404, content=NOT_FOUND_IN_DLQ)
    return json_response(
        RequeueResponse(
            message_id=outcome.message_id,
            sequence_number=outcome.sequence_number,
            session_id=outcome.session_id,
        )
    )
