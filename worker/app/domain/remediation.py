"""Default dead-letter remediation: record the order and leave the fix to an operator."""
from __future__ import annotations

from typing import Any

from loguru import logger

from worker.app.core import SERVICE_NAME
from worker.app.domain.models import OrderPayload
from worker.app.ports.incoming_message import IncomingMessage


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


class LogOnlyRemediation:
    """DeadLetterRemediation that only logs."""

    async def remediate(self, message: IncomingMessage, order: OrderPayload | None) -> None:
        _log(
            "dead_letter_remediation_skipped",
            message_id=message.message_id,
            order_number=order.order_number if order else None,
        )
