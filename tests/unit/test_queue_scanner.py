"""Unit tests for QueueScanner pagination, budget and termination."""
from __future__ import annotations

import asyncio

import pytest

from api.app.domain.models import QueueView
from api.app.domain.predicates import ById, ByField
from api.app.domain.scanner import (
    QueueScanner,
    ScanCursor,
    ScanStatus,
    normalize_batch_size,
    normalize_max_to_scan,
)
from api.app.infrastructure.messaging.inmemory.in_memory_transport import InMemoryQueueTransport
from tests.conftest import QUEUE_NAME, order_message

ACTIVE = QueueView.active(QUEUE_NAME)
DEAD = QueueView.dead_letter(QUEUE_NAME)


def _fill(transport: InMemoryQueueTransport, count: int) -> None:
    for i in range(count):
        transport.enqueue(QUEUE_NAME, order_message(f"ORD-{i}", message_id=f"m-{i}"))


def test_cursor_budget_decreases_by_batch_sizes():
    transport = InMemoryQueueTransport()
    _fill(transport, 7)
    batch = transport.messages(ACTIVE)[:3]

    cursor = ScanCursor(remaining_budget=10)
    cursor.advance(batch)
    assert cursor.remaining_budget == 7
    assert cursor.next_sequence == batch[-1].sequence_number + 1
    assert cursor.next_batch_size(50) == 7
    assert not cursor.exhausted


def test_exhausted_when_budget_spent_without_match():
    transport = InMemoryQueueTransport()
    _fill(transport, 120)
    scanner = QueueScanner(transport)

    result = asyncio.run(scanner.scan(ACTIVE, ById("nope"), 120))

    assert result.status == ScanStatus.EXHAUSTED
    assert result.scanned == 120
    assert [c["max_count"] for c in transport.peek_calls] == [50, 50, 20]
    assert [c["from_sequence"] for c in transport.peek_calls] == [None, 51, 101]


def test_budget_smaller_than_batch_limits_peek_size():
    transport = InMemoryQueueTransport()
    _fill(transport, 30)

    result = asyncio.run(QueueScanner(transport).scan(ACTIVE, ById("nope"), 5))

    assert result.status == ScanStatus.EXHAUSTED
    assert result.scanned == 5
    assert transport.peek_calls[0]["max_count"] == 5
    assert len(transport.peek_calls) == 1


def test_empty_view_returns_empty_on_first_peek():
    transport = InMemoryQueueTransport()

    for predicate in (ById("x"), ByField("y")):
        result = asyncio.run(QueueScanner(transport).scan(DEAD, predicate, 500))
        assert result.status == ScanStatus.EMPTY
        assert result.scanned == 0
    assert len(transport.peek_calls) == 2


def test_short_queue_ends_empty_after_last_batch():
    transport = InMemoryQueueTransport()
    _fill(transport, 60)

    result = asyncio.run(QueueScanner(transport).scan(ACTIVE, ById("nope"), 500))

    assert result.status == ScanStatus.EMPTY
    assert result.scanned == 60


def test_first_match_in_sequence_order_wins():
    transport = InMemoryQueueTransport()
    _fill(transport, 3)
    transport.enqueue(QUEUE_NAME, order_message("dup", message_id="target"))
    transport.enqueue(QUEUE_NAME, order_message("dup2", message_id="TARGET"))

    result = asyncio.run(QueueScanner(transport).scan(ACTIVE, ById("target"), 500))

    assert result.found
    assert result.message.sequence_number == 4
    assert result.scanned == 4


def test_scan_is_idempotent_on_unchanged_view():
    transport = InMemoryQueueTransport()
    _fill(transport, 80)
    scanner = QueueScanner(transport)

    first = asyncio.run(scanner.scan(ACTIVE, ByField("ORD-70"), 500))
    second = asyncio.run(scanner.scan(ACTIVE, ByField("ORD-70"), 500))

    assert first == second
    assert len(transport.messages(ACTIVE)) == 80


def test_malformed_body_does_not_abort_the_batch():
    transport = InMemoryQueueTransport()
    transport.enqueue(QUEUE_NAME, order_message(body=b"{not json"))
    transport.enqueue(QUEUE_NAME, order_message(body=b"\xff\xfe"))
    transport.enqueue(QUEUE_NAME, order_message("ORD-3"))

    result = asyncio.run(QueueScanner(transport).scan(ACTIVE, ByField("ord-3"), 500))

    assert result.found
    assert result.message.sequence_number == 3
    assert len(transport.peek_calls) == 1


@pytest.mark.parametrize(
    "value, expected",
    [(None, 500), (0, 500), (-3, 500), (7, 7), (5000, 5000)],
)
def test_normalize_max_to_scan(value, expected):
    assert normalize_max_to_scan(value) == expected


@pytest.mark.parametrize("value, expected", [(None, 50), (0, 50), (10, 10), (500, 50)])
def test_normalize_batch_size(value, expected):
    assert normalize_batch_size(value) == expected


def test_fetch_page_is_a_single_peek():
    transport = InMemoryQueueTransport()
    _fill(transport, 10)

    page = asyncio.run(QueueScanner(transport).fetch_page(ACTIVE, 4, 3))

    assert [m.sequence_number for m in page] == [3, 4, 5, 6]
    assert len(transport.peek_calls) == 1


def test_scan_opens_the_view_once_for_all_batches():
    transport = InMemoryQueueTransport()
    _fill(transport, 120)

    asyncio.run(QueueScanner(transport).scan(ACTIVE, ById("nope"), 120))

    assert len(transport.peek_calls) == 3
    assert transport.views_opened == [ACTIVE]
