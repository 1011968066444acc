"""
Azure Service Bus transport: QueueTransport implementation on the aio SDK.

Lifecycle:
  DISCONNECTED -> CONNECTING (backoff, probe peek on the active queue) -> READY.
  On shutdown: READY -> CLOSING -> close client -> CLOSED.

One ServiceBusClient is shared for the process. A scan holds one receiver
for all of its batches (`open_view`); senders are opened per call. Peeks never lock, settle or remove
messages. SDK failures are wrapped in TransportError.
"""
from __future__ import annotations

import asyncio
import json
import time
from contextlib import asynccontextmanager
from datetime import datetime
from collections.abc import AsyncIterator, Iterable
from typing import Any

from azure.core.exceptions import AzureError
from azure.servicebus import ServiceBusMessage, ServiceBusReceivedMessage, ServiceBusSubQueue
from azure.servicebus.amqp import AmqpMessageBodyType
from azure.servicebus.aio import ServiceBusClient, ServiceBusReceiver
from loguru import logger

from api.app.config.settings import Settings
from api.app.core import SERVICE_NAME
from api.app.core.backoff import exponential_backoff
from api.app.domain.errors import ConfigurationError, TransportError
from api.app.domain.models import OutboundMessage, PeekedMessage, QueueView, SessionHandle
from api.app.infrastructure.messaging.servicebus.constants import TransportState


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


def _text(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


def _body_bytes(message: ServiceBusReceivedMessage) -> bytes:
    body = message.body
    if body is None:
        return b""
    body_type = getattr(message, "body_type", AmqpMessageBodyType.DATA)
    if body_type in (AmqpMessageBodyType.VALUE, AmqpMessageBodyType.SEQUENCE):
        # AMQP value/sequence bodies are decoded objects, not byte sections.
        if isinstance(body, (bytes, bytearray)):
            return bytes(body)
        if isinstance(body, str):
            return body.encode("utf-8")
        return json.dumps(_jsonable(body), default=str).encode("utf-8")
    if isinstance(body, (bytes, bytearray)):
        return bytes(body)
    if isinstance(body, str):
        return body.encode("utf-8")
    if isinstance(body, Iterable):
        # DATA bodies arrive as a generator of byte sections.
        return b"".join(bytes(section) for section in body)
    return str(body).encode("utf-8")


def _jsonable(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return _text(value)
    if isinstance(value, dict):
        return {_text(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, Iterable) and not isinstance(value, str):
        return [_jsonable(v) for v in value]
    return value


def _properties(message: ServiceBusReceivedMessage) -> dict[str, Any]:
    props = message.application_properties or {}
    return {
        _text(key): (_text(value) if isinstance(value, (bytes, bytearray)) else value)
        for key, value in props.items()
    }


def to_peeked_message(message: ServiceBusReceivedMessage) -> PeekedMessage:
    """Snapshot an SDK message into the transport-agnostic PeekedMessage."""
    return PeekedMessage(
        sequence_number=int(message.sequence_number),
        message_id=message.message_id,
        correlation_id=message.correlation_id,
        session_id=message.session_id,
        content_type=message.content_type,
        subject=message.subject,
        application_properties=_properties(message),
        enqueued_time=message.enqueued_time_utc,
        locked_until=getattr(message, "locked_until_utc", None),
        expires_at=message.expires_at_utc,
        scheduled_enqueue_time=message.scheduled_enqueue_time_utc,
        delivery_count=message.delivery_count,
        dead_letter_reason=message.dead_letter_reason,
        dead_letter_error_description=message.dead_letter_error_description,
        body=_body_bytes(message),
    )


def to_servicebus_message(message: OutboundMessage) -> ServiceBusMessage:
    return ServiceBusMessage(
        message.body,
        application_properties=dict(message.application_properties) or None,
        session_id=message.session_id,
        message_id=message.message_id,
        content_type=message.content_type,
        correlation_id=message.correlation_id,
        subject=message.subject,
        time_to_live=message.time_to_live,
    )


class ServiceBusViewReader:
    """Peeks through a receiver that stays open across batches."""

    def __init__(self, receiver: ServiceBusReceiver, view: QueueView) -> None:
        self._receiver = receiver
        self._view = view

    async def peek(self, max_count: int, from_sequence: int | None = None) -> list[PeekedMessage]:
        try:
            if from_sequence is None:
                batch = await self._receiver.peek_messages(max_message_count=max_count)
            else:
                batch = await self._receiver.peek_messages(
                    max_message_count=max_count,
                    sequence_number=from_sequence,
                )
        except AzureError as e:
            _log("peek_failed", queue=self._view.queue_name, sub_queue=self._view.sub_queue.value, error=str(e))
            raise TransportError(f"peek failed on {self._view.queue_name}: {e}") from e
        return [to_peeked_message(m) for m in batch]


class ServiceBusQueueTransport:
    """QueueTransport implementation using azure.servicebus.aio."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._state = TransportState.DISCONNECTED
        self._client: ServiceBusClient | None = None

    @property
    def state(self) -> TransportState:
        return self._state

    @property
    def ready(self) -> bool:
        return self._state == TransportState.READY

    @property
    def client(self) -> ServiceBusClient:
        if self._client is None:
            raise TransportError("servicebus_not_connected")
        return self._client

    async def connect(self) -> None:
        if not self._settings.servicebus_configured:
            raise ConfigurationError("Service Bus configuration not found.")
        self._state = TransportState.CONNECTING
        async for attempt, delay in exponential_backoff(
            self._settings.initial_backoff_seconds,
            self._settings.max_backoff_seconds,
            self._settings.backoff_multiplier,
            self._settings.max_connection_attempts,
        ):
            _log("servicebus_connect_attempt", attempt=attempt, delay=delay)
            try:
                if self._client is None:
                    self._client = ServiceBusClient.from_connection_string(
                        self._settings.servicebus_connection,
                    )
                await self._probe()
                self._state = TransportState.READY
                _log("servicebus_connected", queue=self._settings.servicebus_queue_name)
                return
            except (AzureError, asyncio.TimeoutError, ValueError) as e:
                logger.warning("servicebus connect failed: {}", e)
                if attempt >= self._settings.max_connection_attempts:
                    _log("servicebus_connect_failed", attempt=attempt)
                    await self._close_client()
                    self._state = TransportState.DISCONNECTED
                    raise TransportError(f"servicebus_connect_failed: {e}") from e

    async def _probe(self) -> None:
        async with self.client.get_queue_receiver(self._settings.servicebus_queue_name) as receiver:
            await receiver.peek_messages(max_message_count=1)

    async def ping(self) -> bool:
        """True if a one-message peek on the active queue succeeds."""
        if self._client is None:
            return False
        try:
            await self._probe()
            return True
        except (AzureError, asyncio.TimeoutError):
            return False

    @asynccontextmanager
    async def open_view(self, view: QueueView) -> AsyncIterator[ServiceBusViewReader]:
        """Open one receiver on view for a whole scan; closed when the block exits."""
        sub_queue = ServiceBusSubQueue.DEAD_LETTER if view.is_dead_letter else None
        try:
            async with self.client.get_queue_receiver(view.queue_name, sub_queue=sub_queue) as receiver:
                yield ServiceBusViewReader(receiver, view)
        except AzureError as e:
            _log("open_view_failed", queue=view.queue_name, sub_queue=view.sub_queue.value, error=str(e))
            raise TransportError(f"receiver failed on {view.queue_name}: {e}") from e

    async def peek(
        self,
        view: QueueView,
        max_count: int,
        from_sequence: int | None = None,
    ) -> list[PeekedMessage]:
        async with self.open_view(view) as reader:
            return await reader.peek(max_count, from_sequence)

    async def publish(self, queue_name: str, message: OutboundMessage) -> None:
        start = time.perf_counter()
        try:
            async with self.client.get_queue_sender(queue_name) as sender:
                await sender.send_messages(
                    to_servicebus_message(message),
                    timeout=self._settings.send_timeout_seconds,
                )
        except (AzureError, asyncio.TimeoutError) as e:
            _log("publish_failed", queue=queue_name, message_id=message.message_id, error=str(e))
            raise TransportError(f"send failed on {queue_name}: {e}") from e
        latency_ms = (time.perf_counter() - start) * 1000
        _log("publish_success", queue=queue_name, message_id=message.message_id, latency_ms=round(latency_ms, 2))

    async def schedule(self, queue_name: str, message: OutboundMessage, when_utc: datetime) -> int:
        try:
            async with self.client.get_queue_sender(queue_name) as sender:
                sequence_numbers = await sender.schedule_messages(
                    to_servicebus_message(message),
                    when_utc,
                    timeout=self._settings.send_timeout_seconds,
                )
        except (AzureError, asyncio.TimeoutError) as e:
            _log("schedule_failed", queue=queue_name, message_id=message.message_id, error=str(e))
            raise TransportError(f"schedule failed on {queue_name}: {e}") from e
        _log("schedule_success", queue=queue_name, scheduled_for=when_utc.isoformat())
        return int(sequence_numbers[0]) if sequence_numbers else 0

    async def accept_session(self, queue_name: str, session_id: str) -> SessionHandle:
        receiver = self.client.get_queue_receiver(queue_name, session_id=session_id)
        try:
            await receiver.__aenter__()
        except AzureError as e:
            await receiver.close()
            raise TransportError(f"accept session {session_id} failed: {e}") from e
        _log("session_accepted", queue=queue_name, session_id=session_id)
        return SessionHandle(queue_name=queue_name, session_id=session_id, receiver=receiver)

    async def close_session(self, handle: SessionHandle) -> None:
        try:
            await handle.receiver.close()
        except AzureError as e:
            raise TransportError(f"close session {handle.session_id} failed: {e}") from e
        _log("session_closed", queue=handle.queue_name, session_id=handle.session_id)

    async def _close_client(self) -> None:
        if self._client is not None:
            try:
                await self._client.close()
            except AzureError as e:
                logger.warning("servicebus client close failed: {}", e)
            self._client = None

    async def close(self) -> None:
        self._state = TransportState.CLOSING
        _log("transport_shutdown")
        await self._close_client()
        self._state = TransportState.CLOSED
