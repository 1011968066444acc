from __future__ import annotations

import asyncio
import json
from typing import Any

import pytest
from fastapi import FastAPI

from api.app.domain.errors import TransportError
from api.app.domain.models import OutboundMessage, QueueView
from api.app.infrastructure.messaging.inmemory.in_memory_transport import InMemoryQueueTransport
from api.app.routers.dlq import dlq_router
from api.app.routers.health import health_router
from api.app.routers.orders import orders_router
from api.app.routers.queue import queue_router
from api.app.routers.sessions import sessions_router
from api.app.services.operation_config import OperationConfig

QUEUE_NAME = "orders"
SESSION_QUEUE_NAME = "orders-sessions"


def order_body(order_number: str, **extra: Any) -> bytes:
    return json.dumps({"header": {"orderNumber": order_number}, **extra}).encode()


def order_message(
    order_number: str | None = None,
    *,
    message_id: str | None = None,
    attribute: str | None = None,
    body: bytes | None = None,
    **envelope: Any,
) -> OutboundMessage:
    """Outbound order; body defaults to a JSON order when order_number is given."""
    if body is None:
        body = order_body(order_number) if order_number is not None else b"{}"
    properties = dict(envelope.pop("application_properties", {}))
    if attribute is not None:
        properties["orderNumber"] = attribute
    return OutboundMessage(
        body=body,
        message_id=message_id,
        application_properties=properties,
        **envelope,
    )


class FakeTransport:
    """Health-probe double; routers depend only on .ready and .ping()."""

    def __init__(self, ready: bool = True, ping_ok: bool = True, ping_delay: float = 0.0) -> None:
        self._ready = ready
        self._ping_ok = ping_ok
        self._ping_delay = ping_delay

    @property
    def ready(self) -> bool:
        return self._ready

    async def ping(self) -> bool:
        if self._ping_delay:
            await asyncio.sleep(self._ping_delay)
        return self._ping_ok


class FailingTransport(InMemoryQueueTransport):
    """Every broker call fails the way ServiceBusQueueTransport reports SDK errors."""

    async def ping(self) -> bool:
        return False

    async def peek(self, view: QueueView, max_count: int, from_sequence: int | None = None):
        raise TransportError("peek failed: connection refused")

    async def publish(self, queue_name: str, message: OutboundMessage) -> None:
        raise TransportError("send failed: connection refused")

    async def schedule(self, queue_name, message, when_utc) -> int:
        raise TransportError("schedule failed: connection refused")

    async def accept_session(self, queue_name: str, session_id: str):
        raise TransportError("accept session failed: connection refused")


@pytest.fixture()
def transport() -> InMemoryQueueTransport:
    return InMemoryQueueTransport()


@pytest.fixture()
def operation_config() -> OperationConfig:
    return OperationConfig(queue_name=QUEUE_NAME, session_queue_name=SESSION_QUEUE_NAME)


@pytest.fixture()
def test_app(transport: InMemoryQueueTransport, operation_config: OperationConfig) -> FastAPI:
    app = FastAPI()
    app.state.transport = transport
    app.state.operation_config = operation_config
    app.include_router(health_router)
    app.include_router(queue_router)
    app.include_router(orders_router)
    app.include_router(dlq_router)
    app.include_router(sessions_router)
    return app
