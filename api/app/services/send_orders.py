"""
Publish orders to the active queue: plain, enriched and scheduled sends.
Accepts plain Python types and the QueueTransport port; returns outcomes.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from api.app.domain.errors import ValidationError
from api.app.domain.models import OutboundMessage
from api.app.domain.predicates import extract_path, try_parse_json
from api.app.ports.queue_transport import QueueTransport
from api.app.services.operation_config import OperationConfig

JSON_CONTENT_TYPE = "application/json"
ORDER_SUBJECT = "Order"


@dataclass(frozen=True)
class SendOutcome:
    message_id: str | None = None
    scheduled_for: datetime | None = None
    sequence_number: int | None = None
    ttl_seconds: int | None = None

    @property
    def scheduled(self) -> bool:
        return self.scheduled_for is not None


def _require_body(body: str) -> str:
    if not body or not body.strip():
        raise ValidationError("A JSON body is required.")
    return body


def _require_json(body: str) -> object:
    document = try_parse_json(_require_body(body).encode("utf-8"))
    if document is None:
        raise ValidationError("Invalid JSON in request body.")
    return document


async def send_order(transport: QueueTransport, config: OperationConfig, body: str) -> SendOutcome:
    """Validate the body is JSON and publish it unchanged."""
    _require_json(body)
    await transport.publish(config.queue_name, OutboundMessage(body=body.encode("utf-8")))
    return SendOutcome()


async def send_enriched_order(
    transport: QueueTransport,
    config: OperationConfig,
    body: str,
    *,
    ttl_seconds: int | None = None,
    schedule_in_seconds: int | None = None,
    now: datetime | None = None,
) -> SendOutcome:
    """Publish with order number as message id, correlation id and attribute.

    ttl_seconds > 0 sets a time-to-live; schedule_in_seconds > 0 schedules
    the message instead of sending it now. Other values are ignored.
    """
    document = _require_json(body)
    order_number = extract_path(document, config.field_path)
    if not order_number or not order_number.strip():
        raise ValidationError(f"The JSON must include {config.field_path}.")

    now = now or datetime.now(timezone.utc)
    ttl = timedelta(seconds=ttl_seconds) if ttl_seconds and ttl_seconds > 0 else None
    message = OutboundMessage(
        body=body.encode("utf-8"),
        content_type=JSON_CONTENT_TYPE,
        subject=ORDER_SUBJECT,
        message_id=order_number,
        correlation_id=order_number,
        application_properties={
            config.field_attribute: order_number,
            "createdAtUtc": now.astimezone(timezone.utc).isoformat(),
            "createdAtLocal": now.astimezone().isoformat(),
        },
        time_to_live=ttl,
    )
    ttl_out = int(ttl.total_seconds()) if ttl else None

    if schedule_in_seconds and schedule_in_seconds > 0:
        when = now + timedelta(seconds=schedule_in_seconds)
        sequence_number = await transport.schedule(config.queue_name, message, when)
        return SendOutcome(
            message_id=order_number,
            scheduled_for=when,
            sequence_number=sequence_number,
            ttl_seconds=ttl_out,
        )

    await transport.publish(config.queue_name, message)
    return SendOutcome(message_id=order_number, ttl_seconds=ttl_out)


async def schedule_send(
    transport: QueueTransport,
    config: OperationConfig,
    body: str,
    schedule_in_seconds: int | None,
    *,
    now: datetime | None = None,
) -> SendOutcome:
    _require_body(body)
    if schedule_in_seconds is None or schedule_in_seconds <= 0:
        raise ValidationError("Provide scheduleInSeconds > 0.")
    when = (now or datetime.now(timezone.utc)) + timedelta(seconds=schedule_in_seconds)
    message = OutboundMessage(body=body.encode("utf-8"), content_type=JSON_CONTENT_TYPE)
    sequence_number = await transport.schedule(config.queue_name, message, when)
    return SendOutcome(scheduled_for=when, sequence_number=sequence_number)
