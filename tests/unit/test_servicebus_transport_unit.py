"""ServiceBusQueueTransport against fake SDK objects (no broker)."""
import asyncio
import json
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from azure.core.exceptions import AzureError
from azure.servicebus import ServiceBusSubQueue
from azure.servicebus.amqp import AmqpMessageBodyType

from api.app.config.settings import Settings
from api.app.domain.errors import ConfigurationError, TransportError
from api.app.domain.models import OutboundMessage, QueueView
from api.app.domain.predicates import ByField
from api.app.domain.scanner import QueueScanner, ScanStatus
from api.app.infrastructure.messaging.servicebus import servicebus_transport
from api.app.infrastructure.messaging.servicebus.constants import TransportState
from api.app.infrastructure.messaging.servicebus.servicebus_transport import (
    ServiceBusQueueTransport,
    to_peeked_message,
)


def _settings(**overrides) -> Settings:
    values = {
        "SERVICEBUS_CONNECTION": "Endpoint=sb://fake.servicebus.windows.net/;SharedAccessKeyName=k;SharedAccessKey=v",
        "SERVICEBUS_QUEUE_NAME": "orders",
        "INITIAL_BACKOFF_SECONDS": 0.0,
        "MAX_BACKOFF_SECONDS": 0.0,
        "MAX_CONNECTION_ATTEMPTS": 2,
    }
    values.update(overrides)
    return Settings(**values)


def _received(sequence_number: int, body, **fields) -> SimpleNamespace:
    defaults = {
        "message_id": f"m-{sequence_number}",
        "correlation_id": None,
        "session_id": None,
        "content_type": None,
        "subject": None,
        "application_properties": None,
        "enqueued_time_utc": datetime(2024, 1, 1, tzinfo=timezone.utc),
        "locked_until_utc": None,
        "expires_at_utc": None,
        "scheduled_enqueue_time_utc": None,
        "delivery_count": 0,
        "dead_letter_reason": None,
        "dead_letter_error_description": None,
    }
    defaults.update(fields)
    return SimpleNamespace(sequence_number=sequence_number, body=body, **defaults)


class _FakeReceiver:
    def __init__(self, client: "_FakeClient", kwargs: dict) -> None:
        self._client = client
        self.kwargs = kwargs

    async def __aenter__(self):
        if self._client.open_raises:
            raise self._client.open_raises
        return self

    async def __aexit__(self, *exc):
        return None

    async def peek_messages(self, max_message_count: int, sequence_number: int = 0):
        self._client.peeks.append(
            {"max_message_count": max_message_count, "sequence_number": sequence_number, **self.kwargs}
        )
        if self._client.peek_raises:
            raise self._client.peek_raises
        return self._client.batch[:max_message_count]

    async def close(self):
        self._client.closed_receivers += 1


class _FakeSender:
    def __init__(self, client: "_FakeClient") -> None:
        self._client = client

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return None

    async def send_messages(self, message, timeout=None):
        if self._client.send_raises:
            raise self._client.send_raises
        self._client.sent.append(message)

    async def schedule_messages(self, message, when, timeout=None):
        self._client.scheduled.append((message, when))
        return [77]


class _FakeClient:
    def __init__(self) -> None:
        self.batch: list = []
        self.peeks: list[dict] = []
        self.sent: list = []
        self.scheduled: list = []
        self.peek_raises: Exception | None = None
        self.send_raises: Exception | None = None
        self.open_raises: Exception | None = None
        self.closed = False
        self.closed_receivers = 0
        self.receivers_opened = 0

    def get_queue_receiver(self, queue_name, **kwargs):
        self.receivers_opened += 1
        return _FakeReceiver(self, {"queue_name": queue_name, **kwargs})

    def get_queue_sender(self, queue_name, **kwargs):
        return _FakeSender(self)

    async def close(self):
        self.closed = True


@pytest.fixture()
def fake_client(monkeypatch) -> _FakeClient:
    client = _FakeClient()
    monkeypatch.setattr(
        servicebus_transport.ServiceBusClient,
        "from_connection_string",
        staticmethod(lambda conn_str, **kwargs: client),
    )
    return client


def test_connect_without_configuration_raises():
    transport = ServiceBusQueueTransport(_settings(SERVICEBUS_CONNECTION=""))
    with pytest.raises(ConfigurationError):
        asyncio.run(transport.connect())
    assert not transport.ready


def test_connect_probes_and_becomes_ready(fake_client):
    transport = ServiceBusQueueTransport(_settings())

    asyncio.run(transport.connect())

    assert transport.ready
    assert fake_client.peeks[0]["queue_name"] == "orders"
    assert fake_client.peeks[0]["max_message_count"] == 1


def test_connect_gives_up_after_max_attempts(fake_client):
    fake_client.peek_raises = AzureError("unreachable")
    transport = ServiceBusQueueTransport(_settings())

    with pytest.raises(TransportError):
        asyncio.run(transport.connect())

    assert len(fake_client.peeks) == 2
    assert fake_client.closed
    assert transport.state == TransportState.DISCONNECTED


def test_peek_dead_letter_from_sequence(fake_client):
    fake_client.batch = [
        _received(10, [b'{"header": ', b'{"orderNumber": "A"}}'], dead_letter_reason="TTLExpired"),
        _received(11, b"plain", application_properties={b"orderNumber": b"B"}),
    ]
    transport = ServiceBusQueueTransport(_settings())
    asyncio.run(transport.connect())

    batch = asyncio.run(transport.peek(QueueView.dead_letter("orders"), 50, 10))

    peek = fake_client.peeks[-1]
    assert peek["sub_queue"] == ServiceBusSubQueue.DEAD_LETTER
    assert peek["sequence_number"] == 10
    assert peek["max_message_count"] == 50
    assert batch[0].body == b'{"header": {"orderNumber": "A"}}'
    assert batch[0].dead_letter_reason == "TTLExpired"
    assert batch[1].application_properties == {"orderNumber": "B"}


def test_peek_failure_becomes_transport_error(fake_client):
    transport = ServiceBusQueueTransport(_settings())
    asyncio.run(transport.connect())
    fake_client.peek_raises = AzureError("boom")

    with pytest.raises(TransportError):
        asyncio.run(transport.peek(QueueView.active("orders"), 5))


def test_publish_maps_outbound_fields(fake_client):
    transport = ServiceBusQueueTransport(_settings())
    asyncio.run(transport.connect())

    asyncio.run(
        transport.publish(
            "orders",
            OutboundMessage(
                body=b'{"a": 1}',
                message_id="ORD-1",
                correlation_id="ORD-1",
                subject="Order",
                application_properties={"orderNumber": "ORD-1"},
                time_to_live=timedelta(seconds=60),
            ),
        )
    )

    [sent] = fake_client.sent
    assert sent.message_id == "ORD-1"
    assert sent.correlation_id == "ORD-1"
    assert sent.subject == "Order"
    assert sent.time_to_live == timedelta(seconds=60)
    assert dict(sent.application_properties)["orderNumber"] == "ORD-1"


def test_publish_failure_becomes_transport_error(fake_client):
    transport = ServiceBusQueueTransport(_settings())
    asyncio.run(transport.connect())
    fake_client.send_raises = AzureError("throttled")

    with pytest.raises(TransportError):
        asyncio.run(transport.publish("orders", OutboundMessage(body=b"{}")))


def test_schedule_returns_sequence_number(fake_client):
    transport = ServiceBusQueueTransport(_settings())
    asyncio.run(transport.connect())
    when = datetime(2030, 1, 1, tzinfo=timezone.utc)

    sequence_number = asyncio.run(transport.schedule("orders", OutboundMessage(body=b"{}"), when))

    assert sequence_number == 77
    assert fake_client.scheduled[0][1] == when


def test_accept_and_close_session(fake_client):
    transport = ServiceBusQueueTransport(_settings())
    asyncio.run(transport.connect())

    handle = asyncio.run(transport.accept_session("orders-sessions", "cust-1"))
    asyncio.run(transport.close_session(handle))

    assert handle.session_id == "cust-1"
    assert handle.receiver.kwargs["session_id"] == "cust-1"
    assert fake_client.closed_receivers == 1


def test_accept_session_failure_becomes_transport_error(fake_client):
    transport = ServiceBusQueueTransport(_settings())
    asyncio.run(transport.connect())
    fake_client.open_raises = AzureError("session locked")

    with pytest.raises(TransportError):
        asyncio.run(transport.accept_session("orders-sessions", "cust-1"))


def test_to_peeked_message_handles_missing_body():
    peeked = to_peeked_message(_received(5, None))
    assert peeked.body == b""
    assert peeked.body_text() == ""


def test_value_body_is_rendered_as_json_and_findable_by_path():
    message = _received(
        6,
        {"header": {"orderNumber": "ORD-42"}, "lines": [1, 2]},
        body_type=AmqpMessageBodyType.VALUE,
    )

    peeked = to_peeked_message(message)

    assert json.loads(peeked.body) == {"header": {"orderNumber": "ORD-42"}, "lines": [1, 2]}
    assert ByField("ord-42").matches(peeked)


def test_data_body_sections_are_joined():
    message = _received(7, [b'{"a": ', b"1}"], body_type=AmqpMessageBodyType.DATA)
    assert to_peeked_message(message).body == b'{"a": 1}'


def test_multi_batch_scan_holds_one_receiver(fake_client):
    fake_client.batch = [_received(n, b"{}") for n in range(1, 6)]
    transport = ServiceBusQueueTransport(_settings())
    asyncio.run(transport.connect())
    opened_by_connect = fake_client.receivers_opened
    peeks_by_connect = len(fake_client.peeks)

    result = asyncio.run(
        QueueScanner(transport, batch_size=2).scan(QueueView.active("orders"), ByField("missing"), 6)
    )

    assert result.status == ScanStatus.EXHAUSTED
    assert len(fake_client.peeks) - peeks_by_connect == 3
    assert fake_client.receivers_opened - opened_by_connect == 1


def test_open_view_failure_becomes_transport_error(fake_client):
    transport = ServiceBusQueueTransport(_settings())
    asyncio.run(transport.connect())
    fake_client.open_raises = AzureError("link refused")

    async def run() -> None:
        async with transport.open_view(QueueView.dead_letter("orders")):
            pass

    with pytest.raises(TransportError):
        asyncio.run(run())
