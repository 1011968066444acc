from __future__ import annotations

from fastapi import APIRouter, Request, Response

from api.app.domain.errors import QueueInspectorError
from api.app.routers.serializers import json_response
from api.app.routers.utils import error_response, queue_dependencies, read_body_text
from api.app.schemas.queue import SessionResponse
from api.app.services.sessions import close_session, send_session_message

sessions_router = APIRouter(prefix="/sessions", tags=["Sessions"])


@sessions_router.post(
    "/send/{session_id}",
    summary="Send a message to the session-enabled queue",
    responses={
        200: {"description": "Message sent with the session id."},
        400: {"description": "Empty body."},
        503: {"description": "Session queue not configured or unavailable."},
    },
)
async def send_to_session(request: Request, session_id: str) -> Response:
    body = await read_body_text(request)
    try:
        transport, config = queue_dependencies(request)
        await send_session_message(transport, config, session_id, body)
    except QueueInspectorError as e:
        return error_response(e, operation="send_session_message")
    return json_response(SessionResponse(session_id=session_id, sent=True))


@sessions_router.post(
    "/close/{session_id}",
    summary="Accept and close a session",
    description="Takes the session lock and releases it immediately.",
    responses={
        200: {"description": "Session closed."},
        503: {"description": "Session queue not configured, session locked elsewhere, or broker unavailable."},
    },
)
async def close(request: Request, session_id: str) -> Response:
    try:
        transport, config = queue_dependencies(request)
        await close_session(transport, config, session_id)
    except QueueInspectorError as e:
        return error_response(e, operation="close_session")
    return json_response(SessionResponse(session_id=session_id, closed=True))
