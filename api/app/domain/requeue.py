"""Requeue clone: a new outbound message duplicating a dead-lettered one."""
from __future__ import annotations

from api.app.domain.models import OutboundMessage, PeekedMessage


def clone_for_requeue(message: PeekedMessage) -> OutboundMessage:
    """Copy body and envelope fields verbatim.

    Sequence number, enqueue time, lock and delivery count are assigned by the
    broker on publish and are not carried over. The source entry is untouched.
    """
    return OutboundMessage(
        body=bytes(message.body),
        content_type=message.content_type,
        correlation_id=message.correlation_id,
        message_id=message.message_id,
        subject=message.subject,
        session_id=message.session_id,
        application_properties=dict(message.application_properties),
    )
