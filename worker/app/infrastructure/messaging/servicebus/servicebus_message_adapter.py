"""Adapter: wrap a received Service Bus message to implement ports.IncomingMessage."""
from __future__ import annotations

import json
from collections.abc import Iterable
from typing import Any, Mapping

from azure.servicebus import ServiceBusReceivedMessage
from azure.servicebus.aio import ServiceBusReceiver
from azure.servicebus.amqp import AmqpMessageBodyType


def _text(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


def body_bytes(message: ServiceBusReceivedMessage) -> bytes:
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


class ServiceBusMessageAdapter:
    """Implements worker.app.ports.incoming_message.IncomingMessage for azure.servicebus.aio."""

    def __init__(self, receiver: ServiceBusReceiver, message: ServiceBusReceivedMessage) -> None:
        self._receiver = receiver
        self._message = message
        self._body = body_bytes(message)
        self._settled = False

    @property
    def body(self) -> bytes:
        return self._body

    @property
    def message_id(self) -> str | None:
        return self._message.message_id

    @property
    def sequence_number(self) -> int | None:
        return self._message.sequence_number

    @property
    def application_properties(self) -> Mapping[str, Any]:
        props = self._message.application_properties or {}
        return {
            _text(key): (_text(value) if isinstance(value, (bytes, bytearray)) else value)
            for key, value in props.items()
        }

    @property
    def dead_letter_reason(self) -> str | None:
        return self._message.dead_letter_reason

    @property
    def dead_letter_error_description(self) -> str | None:
        return self._message.dead_letter_error_description

    @property
    def settled(self) -> bool:
        return self._settled

    async def complete(self) -> None:
        await self._receiver.complete_message(self._message)
        self._settled = True

    async def abandon(self) -> None:
        await self._receiver.abandon_message(self._message)
        self._settled = True
