"""Message handler wrapper shared by the queue and dead-letter consumers."""
from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

from loguru import logger

from worker.app.core import SERVICE_NAME
from worker.app.ports.incoming_message import IncomingMessage


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


def create_message_handler(
    handle: Callable[[IncomingMessage], Awaitable[None]],
    message_handler_errors: asyncio.Queue[Exception],
    processing_lock: asyncio.Lock,
) -> Callable[[IncomingMessage], Awaitable[None]]:
    """Create an async message handler that processes messages and records errors.

    A message left unsettled by a failing handler is abandoned so the broker redelivers it.
    """

    async def on_message(message: IncomingMessage) -> None:
        async with processing_lock:
            try:
                await handle(message)
            except Exception as e:
                logger.exception("message handling failed: {}", e)
                try:
                    if not message.settled:
                        await message.abandon()
                        _log("message_abandoned", message_id=message.message_id)
                except Exception as abandon_error:
                    # Lock lost or link dropped; the broker redelivers after lock expiry.
                    logger.warning("abandon failed for {}: {}", message.message_id, abandon_error)
                finally:
                    await message_handler_errors.put(e)

    return on_message
