"""In-memory queue transport for tests and local mode.

Keeps an active and a dead-letter list per queue. Sequence numbers are
assigned per queue on enqueue and kept when a message is dead-lettered, the
same way the broker does. Not shared across processes.
"""
from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any

from api.app.domain.errors import TransportError
from api.app.domain.models import OutboundMessage, PeekedMessage, QueueView, SessionHandle, SubQueue


class _InMemoryViewReader:
    def __init__(self, transport: "InMemoryQueueTransport", view: QueueView) -> None:
        self._transport = transport
        self._view = view

    async def peek(self, max_count: int, from_sequence: int | None = None) -> list[PeekedMessage]:
        return await self._transport.peek(self._view, max_count, from_sequence)


class InMemoryQueueTransport:
    def __init__(self) -> None:
        self._queues: dict[tuple[str, SubQueue], list[PeekedMessage]] = {}
        self._next_sequence: dict[str, int] = {}
        self.open_sessions: set[tuple[str, str]] = set()
        self.peek_calls: list[dict[str, Any]] = []
        self.views_opened: list[QueueView] = []

    async def connect(self) -> None:
        return

    @property
    def ready(self) -> bool:
        return True

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        return

    def messages(self, view: QueueView) -> list[PeekedMessage]:
        return list(self._queues.get((view.queue_name, view.sub_queue), []))

    def enqueue(
        self,
        queue_name: str,
        message: OutboundMessage,
        *,
        scheduled_for: datetime | None = None,
    ) -> PeekedMessage:
        sequence_number = self._next_sequence.get(queue_name, 1)
        self._next_sequence[queue_name] = sequence_number + 1
        now = datetime.now(timezone.utc)
        peeked = PeekedMessage(
            sequence_number=sequence_number,
            message_id=message.message_id,
            correlation_id=message.correlation_id,
            session_id=message.session_id,
            content_type=message.content_type,
            subject=message.subject,
            application_properties=dict(message.application_properties),
            enqueued_time=now,
            expires_at=(now + message.time_to_live) if message.time_to_live else None,
            scheduled_enqueue_time=scheduled_for,
            delivery_count=0,
            body=bytes(message.body),
        )
        self._queues.setdefault((queue_name, SubQueue.ACTIVE), []).append(peeked)
        return peeked

    def dead_letter(
        self,
        queue_name: str,
        sequence_number: int,
        *,
        reason: str | None = None,
        description: str | None = None,
    ) -> PeekedMessage:
        """Move an active message to the dead-letter sub-queue, keeping its sequence number."""
        active = self._queues.get((queue_name, SubQueue.ACTIVE), [])
        for index, message in enumerate(active):
            if message.sequence_number == sequence_number:
                del active[index]
                moved = replace(
                    message,
                    dead_letter_reason=reason,
                    dead_letter_error_description=description,
                )
                dead = self._queues.setdefault((queue_name, SubQueue.DEAD_LETTER), [])
                dead.append(moved)
                dead.sort(key=lambda m: m.sequence_number)
                return moved
        raise KeyError(f"sequence {sequence_number} not in {queue_name}")

    @asynccontextmanager
    async def open_view(self, view: QueueView) -> AsyncIterator[_InMemoryViewReader]:
        self.views_opened.append(view)
        yield _InMemoryViewReader(self, view)

    async def peek(
        self,
        view: QueueView,
        max_count: int,
        from_sequence: int | None = None,
    ) -> list[PeekedMessage]:
        self.peek_calls.append(
            {"view": view, "max_count": max_count, "from_sequence": from_sequence}
        )
        start = from_sequence if from_sequence is not None else 0
        entries = [m for m in self.messages(view) if m.sequence_number >= start]
        return entries[: max(max_count, 0)]

    async def publish(self, queue_name: str, message: OutboundMessage) -> None:
        self.enqueue(queue_name, message)

    async def schedule(self, queue_name: str, message: OutboundMessage, when_utc: datetime) -> int:
        return self.enqueue(queue_name, message, scheduled_for=when_utc).sequence_number

    async def accept_session(self, queue_name: str, session_id: str) -> SessionHandle:
        key = (queue_name, session_id)
        if key in self.open_sessions:
            raise TransportError(f"session {session_id} is locked by another receiver")
        self.open_sessions.add(key)
        return SessionHandle(queue_name=queue_name, session_id=session_id)

    async def close_session(self, handle: SessionHandle) -> None:
        self.open_sessions.discard((handle.queue_name, handle.session_id))
