"""Port: queue transport used by the scan engine and the send operations. Implementations live in infrastructure."""
from __future__ import annotations

from datetime import datetime
from typing import AsyncContextManager, Protocol, Sequence

from api.app.domain.models import OutboundMessage, PeekedMessage, QueueView, SessionHandle


class ViewReader(Protocol):
    """Peek access to one view, valid inside `QueueTransport.open_view`."""

    async def peek(self, max_count: int, from_sequence: int | None = None) -> Sequence[PeekedMessage]: ...


class QueueTransport(Protocol):
    """Interface for non-destructive peeks, publishing and session handling.

    Implementations raise `TransportError` when the broker call fails.
    """

    @property
    def ready(self) -> bool: ...

    async def connect(self) -> None: ...

    async def ping(self) -> bool: ...

    async def close(self) -> None: ...

    def open_view(self, view: QueueView) -> AsyncContextManager[ViewReader]:
        """Hold one receiver on view for several peeks (one scan)."""
        ...

    async def peek(
        self,
        view: QueueView,
        max_count: int,
        from_sequence: int | None = None,
    ) -> Sequence[PeekedMessage]:
        """Return up to max_count messages in sequence order, starting at from_sequence (head when None)."""
        ...

    async def publish(self, queue_name: str, message: OutboundMessage) -> None: ...

    async def schedule(self, queue_name: str, message: OutboundMessage, when_utc: datetime) -> int:
        """Schedule message for future enqueue; returns the scheduled sequence number."""
        ...

    async def accept_session(self, queue_name: str, session_id: str) -> SessionHandle: ...

    async def close_session(self, handle: SessionHandle) -> None: ...
