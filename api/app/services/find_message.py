"""
Find a message in the active queue or its dead-letter sub-queue by peeking.
Returns an outcome; router maps it to 200/404.
"""
from __future__ import annotations

import json
from dataclasses import dataclass

from api.app.domain.models import PeekedMessage, QueueView, SubQueue
from api.app.domain.predicates import MatchSource, build_predicate
from api.app.domain.scanner import QueueScanner, ScanResult, normalize_max_to_scan
from api.app.ports.queue_transport import QueueTransport
from api.app.services.operation_config import OperationConfig


@dataclass(frozen=True)
class FindMessageOutcome:
    """found=True => message and body set. found=False => view and max_to_scan describe the search."""

    found: bool
    view: QueueView
    max_to_scan: int
    scanned: int
    query: str
    message: PeekedMessage | None = None
    body: str | None = None

    @property
    def location(self) -> str:
        return self.view.sub_queue.value

    @property
    def not_found_detail(self) -> str:
        return f"{self.query} not found in {self.view.label} (inspected up to {self.max_to_scan} messages)"


def _body_for(result: ScanResult) -> str:
    if result.match is not None and result.match.source == MatchSource.BODY:
        return json.dumps(result.match.document, indent=2, ensure_ascii=False)
    return result.message.body_text() if result.message is not None else ""


async def find_message(
    transport: QueueTransport,
    config: OperationConfig,
    *,
    message_id: str | None = None,
    field_value: str | None = None,
    dead_letter: bool = False,
    max_to_scan: int | None = None,
) -> FindMessageOutcome:
    """Scan one view for the first message matching the id or field value.

    Raises ValidationError when neither key is supplied (before any peek).
    """
    predicate = build_predicate(
        message_id,
        field_value,
        attribute=config.field_attribute,
        path=config.field_path,
    )
    view = QueueView(config.queue_name, SubQueue.DEAD_LETTER if dead_letter else SubQueue.ACTIVE)
    limit = normalize_max_to_scan(max_to_scan, config.default_max_to_scan)
    query = (
        f"{config.field_attribute} {field_value.strip()}"
        if field_value and field_value.strip()
        else f"messageId {(message_id or '').strip()}"
    )

    result = await QueueScanner(transport, batch_size=config.batch_size).scan(view, predicate, limit)
    if not result.found:
        return FindMessageOutcome(
            found=False,
            view=view,
            max_to_scan=limit,
            scanned=result.scanned,
            query=query,
        )
    return FindMessageOutcome(
        found=True,
        view=view,
        max_to_scan=limit,
        scanned=result.scanned,
        query=query,
        message=result.message,
        body=_body_for(result),
    )
