"""Unit tests for requeue_from_dead_letter."""
from __future__ import annotations

import pytest

from api.app.domain.errors import TransportError, ValidationError
from api.app.domain.models import QueueView
from api.app.services.find_message import find_message
from api.app.services.requeue_dead_letter import requeue_from_dead_letter
from tests.conftest import QUEUE_NAME, FailingTransport, order_message

ACTIVE = QueueView.active(QUEUE_NAME)
DEAD = QueueView.dead_letter(QUEUE_NAME)


def _dead_letter_10_to_12(transport) -> None:
    """Active queue gets sequences 1..12; 10, 11 and 12 are moved to the dead-letter view."""
    for i in range(1, 13):
        message_id = "ORD-7" if i == 11 else f"m-{i}"
        transport.enqueue(
            QUEUE_NAME,
            order_message(
                f"N-{i}",
                message_id=message_id,
                attribute=f"N-{i}",
                application_properties={"source": "erp", "priority": i},
            ),
        )
    for sequence in (10, 11, 12):
        transport.dead_letter(QUEUE_NAME, sequence, reason="MaxDeliveryCountExceeded")


@pytest.mark.asyncio
async def test_requeue_scenario(transport, operation_config):
    _dead_letter_10_to_12(transport)
    active_before = len(transport.messages(ACTIVE))

    outcome = await requeue_from_dead_letter(transport, operation_config, message_id="ORD-7", max_to_scan=500)

    assert outcome.requeued
    assert outcome.message_id == "ORD-7"
    assert outcome.sequence_number == 11

    active = transport.messages(ACTIVE)
    assert len(active) == active_before + 1
    original = next(m for m in transport.messages(DEAD) if m.sequence_number == 11)
    copy = active[-1]
    assert copy.body == original.body
    assert copy.application_properties == original.application_properties
    assert copy.message_id == "ORD-7"
    assert copy.sequence_number not in (10, 11, 12)
    assert [m.sequence_number for m in transport.messages(DEAD)] == [10, 11, 12]


@pytest.mark.asyncio
async def test_source_still_found_after_requeue(transport, operation_config):
    _dead_letter_10_to_12(transport)

    await requeue_from_dead_letter(transport, operation_config, field_value="n-11")
    again = await find_message(transport, operation_config, field_value="N-11", dead_letter=True)

    assert again.found
    assert again.message.sequence_number == 11


@pytest.mark.asyncio
async def test_not_found_publishes_nothing(transport, operation_config):
    _dead_letter_10_to_12(transport)
    active_before = len(transport.messages(ACTIVE))

    outcome = await requeue_from_dead_letter(transport, operation_config, message_id="missing", max_to_scan=2)

    assert not outcome.requeued
    assert outcome.scanned == 2
    assert outcome.max_to_scan == 2
    assert len(transport.messages(ACTIVE)) == active_before


@pytest.mark.asyncio
async def test_empty_dead_letter_view_is_not_found(transport, operation_config):
    outcome = await requeue_from_dead_letter(transport, operation_config, message_id="ORD-7")
    assert not outcome.requeued
    assert outcome.scanned == 0


@pytest.mark.asyncio
async def test_requires_a_key(transport, operation_config):
    with pytest.raises(ValidationError):
        await requeue_from_dead_letter(transport, operation_config)


@pytest.mark.asyncio
async def test_transport_failure_propagates(operation_config):
    with pytest.raises(TransportError):
        await requeue_from_dead_letter(FailingTransport(), operation_config, message_id="ORD-7")
