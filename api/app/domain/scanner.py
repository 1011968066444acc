"""Non-destructive queue scanner: cursor-based peek pagination with a scan budget.

Lifecycle of a scan:
  SCANNING -> MATCH_FOUND  (first message satisfying the predicate, lowest sequence wins)
  SCANNING -> EXHAUSTED    (budget spent without a match)
  SCANNING -> EMPTY        (transport returned an empty batch)

The scan is not a snapshot: producers and consumers may change the view
between batches. Sequence numbers are never reused, so advancing the cursor
past the last peeked sequence does not repeat messages.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Sequence

from loguru import logger

from api.app.core import SERVICE_NAME
from api.app.domain.models import PeekedMessage, QueueView
from api.app.domain.predicates import Match, MatchPredicate
from api.app.ports.queue_transport import QueueTransport

DEFAULT_MAX_TO_SCAN = 500
MAX_BATCH_SIZE = 50


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


class ScanStatus(str, Enum):
    MATCH_FOUND = "MATCH_FOUND"
    EXHAUSTED = "EXHAUSTED"
    EMPTY = "EMPTY"


@dataclass
class ScanCursor:
    """Pagination watermark and remaining budget for one scan."""

    remaining_budget: int
    next_sequence: int | None = None

    @property
    def exhausted(self) -> bool:
        return self.remaining_budget <= 0

    def next_batch_size(self, batch_size: int) -> int:
        return min(self.remaining_budget, batch_size)

    def advance(self, batch: Sequence[PeekedMessage]) -> None:
        self.next_sequence = batch[-1].sequence_number + 1
        self.remaining_budget -= len(batch)


@dataclass(frozen=True)
class ScanResult:
    status: ScanStatus
    view: QueueView
    max_to_scan: int
    scanned: int
    message: PeekedMessage | None = None
    match: Match | None = None

    @property
    def found(self) -> bool:
        return self.status == ScanStatus.MATCH_FOUND


def normalize_max_to_scan(max_to_scan: int | None, default: int = DEFAULT_MAX_TO_SCAN) -> int:
    if max_to_scan is None or max_to_scan <= 0:
        return default
    return max_to_scan


def normalize_batch_size(batch_size: int | None) -> int:
    if batch_size is None or batch_size <= 0:
        return MAX_BATCH_SIZE
    return min(batch_size, MAX_BATCH_SIZE)


class QueueScanner:
    """Pages through a queue view with peek, applying a predicate per message."""

    def __init__(self, transport: QueueTransport, *, batch_size: int = MAX_BATCH_SIZE) -> None:
        self._transport = transport
        self._batch_size = normalize_batch_size(batch_size)

    @property
    def batch_size(self) -> int:
        return self._batch_size

    async def scan(
        self,
        view: QueueView,
        predicate: MatchPredicate,
        max_to_scan: int | None = DEFAULT_MAX_TO_SCAN,
    ) -> ScanResult:
        limit = normalize_max_to_scan(max_to_scan)
        cursor = ScanCursor(remaining_budget=limit)
        scanned = 0

        async with self._transport.open_view(view) as reader:
            while not cursor.exhausted:
                batch = await reader.peek(cursor.next_batch_size(self._batch_size), cursor.next_sequence)
                if not batch:
                    _log("scan_empty", queue=view.queue_name, sub_queue=view.sub_queue.value, scanned=scanned)
                    return ScanResult(ScanStatus.EMPTY, view, limit, scanned)

                for message in batch:
                    scanned += 1
                    match = predicate.evaluate(message)
                    if match is not None:
                        _log(
                            "scan_match_found",
                            queue=view.queue_name,
                            sub_queue=view.sub_queue.value,
                            sequence_number=message.sequence_number,
                            source=match.source.value,
                            scanned=scanned,
                        )
                        return ScanResult(ScanStatus.MATCH_FOUND, view, limit, scanned, message, match)

                cursor.advance(batch)

        _log("scan_exhausted", queue=view.queue_name, sub_queue=view.sub_queue.value, scanned=scanned)
        return ScanResult(ScanStatus.EXHAUSTED, view, limit, scanned)

    async def fetch_page(
        self,
        view: QueueView,
        top: int,
        from_sequence: int | None = None,
    ) -> Sequence[PeekedMessage]:
        """Single bounded peek with no matching and no looping."""
        return await self._transport.peek(view, top, from_sequence)
