from __future__ import annotations

import json
from typing import Any

from loguru import logger

from worker.app.core import SERVICE_NAME
from worker.app.domain.models import OrderPayload, parse_order
from worker.app.ports.dead_letter_remediation import DeadLetterRemediation
from worker.app.ports.incoming_message import IncomingMessage


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


class ProcessingService:
    """
    Handles messages delivered from the order queue and its dead-letter sub-queue.

    Active queue: an empty body is logged and completed; a body that is not JSON is
    abandoned so the broker redelivers it and, after the queue's max delivery count,
    moves it to the dead-letter queue. Anything else is logged and completed.

    Dead-letter queue: the dead-letter reason and description are logged together
    with the order number (when the body parses), the remediation hook runs, and the
    message is completed.
    """

    def __init__(
        self,
        order_number_path: str,
        remediation: DeadLetterRemediation,
    ) -> None:
        self._order_number_path = order_number_path
        self._remediation = remediation

    def _parse(self, body: bytes) -> OrderPayload | None:
        try:
            return parse_order(body, self._order_number_path)
        except (UnicodeDecodeError, json.JSONDecodeError):
            return None

    async def process_order(self, message: IncomingMessage) -> None:
        body = message.body
        if not body or not body.strip():
            logger.warning("empty order message {}", message.message_id)
            _log("order_empty", message_id=message.message_id, sequence_number=message.sequence_number)
            await message.complete()
            return

        order = self._parse(body)
        if order is None:
            _log("order_invalid_json", message_id=message.message_id, sequence_number=message.sequence_number)
            await message.abandon()
            return

        _log(
            "order_received",
            message_id=message.message_id,
            sequence_number=message.sequence_number,
            order_number=order.order_number,
            application_properties=dict(message.application_properties),
        )
        logger.debug("order {} body:\n{}", order.order_number, order.pretty())
        await message.complete()

    async def process_dead_letter(self, message: IncomingMessage) -> None:
        order = self._parse(message.body) if message.body else None
        _log(
            "dead_letter_received",
            message_id=message.message_id,
            sequence_number=message.sequence_number,
            reason=message.dead_letter_reason,
            description=message.dead_letter_error_description,
            order_number=order.order_number if order else None,
        )
        await self._remediation.remediate(message, order)
        await message.complete()
