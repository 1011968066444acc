"""Session-queue passthroughs: send with a session id, and accept-then-close a session."""
from __future__ import annotations

from api.app.domain.errors import ValidationError
from api.app.domain.models import OutboundMessage
from api.app.ports.queue_transport import QueueTransport
from api.app.services.operation_config import OperationConfig
from api.app.services.send_orders import JSON_CONTENT_TYPE


async def send_session_message(
    transport: QueueTransport,
    config: OperationConfig,
    session_id: str,
    body: str,
) -> None:
    queue_name = config.require_session_queue()
    if not session_id or not session_id.strip() or not body or not body.strip():
        raise ValidationError("sessionId and body are required.")
    message = OutboundMessage(
        body=body.encode("utf-8"),
        session_id=session_id,
        content_type=JSON_CONTENT_TYPE,
    )
    await transport.publish(queue_name, message)


async def close_session(transport: QueueTransport, config: OperationConfig, session_id: str) -> None:
    """Accept the session (taking its lock) and release it immediately."""
    queue_name = config.require_session_queue()
    if not session_id or not session_id.strip():
        raise ValidationError("sessionId is required.")
    handle = await transport.accept_session(queue_name, session_id)
    await transport.close_session(handle)
