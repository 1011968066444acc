"""Port: abstraction for a received queue message. Implementations live in infrastructure."""
from __future__ import annotations

from typing import Any, Mapping, Protocol


class IncomingMessage(Protocol):
    """Transport-agnostic received message. Application uses this; broker adapters implement it."""

    @property
    def body(self) -> bytes: ...

    @property
    def message_id(self) -> str | None: ...

    @property
    def sequence_number(self) -> int | None: ...

    @property
    def application_properties(self) -> Mapping[str, Any]: ...

    @property
    def dead_letter_reason(self) -> str | None: ...

    @property
    def dead_letter_error_description(self) -> str | None: ...

    @property
    def settled(self) -> bool: ...

    async def complete(self) -> None: ...

    async def abandon(self) -> None:
        """Release the lock so the broker redelivers; after max delivery count it dead-letters."""
        ...
