"""Port: receives from one queue view (active or dead-letter) and feeds a handler."""
from __future__ import annotations

from typing import Awaitable, Callable, Protocol

from worker.app.ports.incoming_message import IncomingMessage

MessageHandler = Callable[[IncomingMessage], Awaitable[None]]


class MessageConsumer(Protocol):
    @property
    def name(self) -> str:
        """Queue name, suffixed with `/deadletter` for the dead-letter view."""
        ...

    async def connect(self) -> None: ...

    async def start_consuming(self, handler: MessageHandler) -> str:
        """Deliver every received message to handler, which must settle it. Returns a tag for cancel()."""
        ...

    async def cancel(self, consumer_tag: str) -> None:
        """Stop delivering; the connection stays open until close()."""
        ...

    async def close(self) -> None: ...
