"""List one page of messages with peek. Pagination is client-driven through next_sequence_number."""
from __future__ import annotations

from dataclasses import dataclass

from api.app.domain.models import PeekedMessage, QueueView, SubQueue
from api.app.domain.scanner import QueueScanner
from api.app.ports.queue_transport import QueueTransport
from api.app.services.operation_config import OperationConfig

DEFAULT_TOP = 50
MAX_TOP = 200
DEFAULT_MAX_BODY = 2048
TRUNCATION_MARKER = "..."


def clamp_top(top: int | None) -> int:
    if top is None or top <= 0:
        return DEFAULT_TOP
    return min(top, MAX_TOP)


def normalize_max_body(max_body: int | None) -> int:
    """0 disables truncation; negative or missing falls back to the default."""
    if max_body is None or max_body < 0:
        return DEFAULT_MAX_BODY
    return max_body


def truncate_body(text: str, max_body: int) -> str:
    if max_body > 0 and len(text) > max_body:
        return text[:max_body] + TRUNCATION_MARKER
    return text


@dataclass(frozen=True)
class ListedMessage:
    message: PeekedMessage
    body: str


@dataclass(frozen=True)
class MessagePage:
    view: QueueView
    top: int
    max_body: int
    items: list[ListedMessage]
    next_sequence_number: int | None

    @property
    def count(self) -> int:
        return len(self.items)


async def list_messages(
    transport: QueueTransport,
    config: OperationConfig,
    *,
    dead_letter: bool = False,
    top: int | None = None,
    from_sequence: int | None = None,
    max_body: int | None = None,
) -> MessagePage:
    view = QueueView(config.queue_name, SubQueue.DEAD_LETTER if dead_letter else SubQueue.ACTIVE)
    page_size = clamp_top(top)
    body_limit = normalize_max_body(max_body)

    batch = await QueueScanner(transport, batch_size=config.batch_size).fetch_page(
        view, page_size, from_sequence
    )
    items = [ListedMessage(m, truncate_body(m.body_text(), body_limit)) for m in batch]
    next_sequence = batch[-1].sequence_number + 1 if batch else from_sequence
    return MessagePage(
        view=view,
        top=page_size,
        max_body=body_limit,
        items=items,
        next_sequence_number=next_sequence,
    )
