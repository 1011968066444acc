"""
Copy a dead-lettered message back onto the active queue.

The dead-letter entry is left in place: this publishes a clone and does not
complete or delete the original. A failed publish may be retried by the caller
at the cost of a possible duplicate.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from loguru import logger

from api.app.core import SERVICE_NAME
from api.app.domain.models import QueueView
from api.app.domain.predicates import build_predicate
from api.app.domain.requeue import clone_for_requeue
from api.app.domain.scanner import QueueScanner, normalize_max_to_scan
from api.app.ports.queue_transport import QueueTransport
from api.app.services.operation_config import OperationConfig


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


@dataclass(frozen=True)
class RequeueOutcome:
    requeued: bool
    max_to_scan: int
    scanned: int
    message_id: str | None = None
    sequence_number: int | None = None
    session_id: str | None = None


async def requeue_from_dead_letter(
    transport: QueueTransport,
    config: OperationConfig,
    *,
    message_id: str | None = None,
    field_value: str | None = None,
    max_to_scan: int | None = None,
) -> RequeueOutcome:
    predicate = build_predicate(
        message_id,
        field_value,
        attribute=config.field_attribute,
        path=config.field_path,
    )
    view = QueueView.dead_letter(config.queue_name)
    limit = normalize_max_to_scan(max_to_scan, config.default_max_to_scan)

    result = await QueueScanner(transport, batch_size=config.batch_size).scan(view, predicate, limit)
    if not result.found or result.message is None:
        _log("requeue_not_found", queue=config.queue_name, status=result.status.value, scanned=result.scanned)
        return RequeueOutcome(requeued=False, max_to_scan=limit, scanned=result.scanned)

    source = result.message
    await transport.publish(config.queue_name, clone_for_requeue(source))
    _log(
        "requeue_published",
        queue=config.queue_name,
        message_id=source.message_id,
        sequence_number=source.sequence_number,
        session_id=source.session_id,
    )
    return RequeueOutcome(
        requeued=True,
        max_to_scan=limit,
        scanned=result.scanned,
        message_id=source.message_id,
        sequence_number=source.sequence_number,
        session_id=source.session_id,
    )
