"""
Service Bus consumer: client lifecycle and receive loop for one queue view.

Lifecycle:
  DISCONNECTED -> CONNECTING (backoff, probe peek) -> READY.
  start_consuming: READY -> CONSUMING; a background task receives batches in
  peek-lock mode and hands each message, wrapped in ServiceBusMessageAdapter, to
  the handler. The handler settles the message.
  On shutdown: CONSUMING/READY -> CLOSING -> cancel receive task, close receiver
  and client -> CLOSED.

Receive errors are logged and retried after a backoff delay; the loop only
stops when cancelled.
"""
from __future__ import annotations

import asyncio
from typing import Any

from azure.core.exceptions import AzureError
from azure.servicebus import ServiceBusSubQueue
from azure.servicebus.aio import ServiceBusClient, ServiceBusReceiver
from loguru import logger

from worker.app.config.settings import Settings
from worker.app.core import SERVICE_NAME
from worker.app.core.backoff import exponential_backoff
from worker.app.infrastructure.messaging.servicebus.constants import ConsumerState
from worker.app.ports.message_consumer import MessageHandler
from worker.app.infrastructure.messaging.servicebus.servicebus_message_adapter import (
    ServiceBusMessageAdapter,
)

RECEIVE_BATCH_SIZE = 10


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


class ServiceBusConsumer:
    """MessageConsumer implementation"""

    def __init__(self, settings: Settings, *, dead_letter: bool = False) -> None:
        self._settings = settings
        self._dead_letter = dead_letter
        self._state = ConsumerState.DISCONNECTED
        self._client: ServiceBusClient | None = None
        self._receiver: ServiceBusReceiver | None = None
        self._task: asyncio.Task[None] | None = None
        self._lock = asyncio.Lock()
        self._closing = False

    @property
    def name(self) -> str:
        suffix = "/deadletter" if self._dead_letter else ""
        return f"{self._settings.servicebus_queue_name}{suffix}"

    @property
    def state(self) -> ConsumerState:
        return self._state

    def _open_receiver(self) -> ServiceBusReceiver:
        if self._client is None:
            raise RuntimeError("consumer not connected")
        sub_queue = ServiceBusSubQueue.DEAD_LETTER if self._dead_letter else None
        return self._client.get_queue_receiver(
            self._settings.servicebus_queue_name,
            sub_queue=sub_queue,
            max_wait_time=self._settings.max_wait_time_seconds,
            prefetch_count=self._settings.prefetch_count,
        )

    async def connect(self) -> None:
        self._state = ConsumerState.CONNECTING
        _log("servicebus_connecting", consumer=self.name)
        async for attempt, delay in exponential_backoff(
            self._settings.initial_backoff_seconds,
            self._settings.max_backoff_seconds,
            self._settings.backoff_multiplier,
            self._settings.max_connection_attempts,
        ):
            _log("servicebus_connect_attempt", consumer=self.name, attempt=attempt, delay=delay)
            try:
                if self._client is None:
                    self._client = ServiceBusClient.from_connection_string(
                        self._settings.servicebus_connection,
                    )
                async with self._open_receiver() as probe:
                    await probe.peek_messages(max_message_count=1)
                break
            except (AzureError, ValueError) as e:
                logger.warning("servicebus connect failed: {}", e)
                if attempt >= self._settings.max_connection_attempts:
                    _log("servicebus_connect_failed", consumer=self.name, attempt=attempt)
                    await self._close_client()
                    self._state = ConsumerState.DISCONNECTED
                    raise
        self._state = ConsumerState.READY
        _log("servicebus_connected", consumer=self.name)

    async def start_consuming(
        self,
        handler: MessageHandler,
    ) -> str:
        async with self._lock:
            if self._client is None or self._state != ConsumerState.READY:
                raise RuntimeError("consumer not connected")
            self._receiver = self._open_receiver()
            await self._receiver.__aenter__()
            self._task = asyncio.create_task(self._receive_loop(self._receiver, handler))
            self._task.add_done_callback(self._on_task_done)
            self._state = ConsumerState.CONSUMING
            _log("consumer_started", consumer=self.name)
            return self.name

    async def _receive_loop(
        self,
        receiver: ServiceBusReceiver,
        handler: MessageHandler,
    ) -> None:
        delay = self._settings.initial_backoff_seconds
        while not self._closing:
            try:
                batch = await receiver.receive_messages(
                    max_message_count=RECEIVE_BATCH_SIZE,
                    max_wait_time=self._settings.max_wait_time_seconds,
                )
            except AzureError as e:
                logger.warning("receive failed on {}: {}", self.name, e)
                await asyncio.sleep(delay)
                delay = min(delay * self._settings.backoff_multiplier, self._settings.max_backoff_seconds)
                continue
            delay = self._settings.initial_backoff_seconds
            for message in batch:
                try:
                    await handler(ServiceBusMessageAdapter(receiver, message))
                except Exception as e:
                    # One message failing to settle must not stop the loop.
                    logger.exception("handler failed on {} for message {}: {}", self.name, message.message_id, e)
                    _log("message_handler_escaped", consumer=self.name, message_id=message.message_id, error=str(e))

    def _on_task_done(self, task: asyncio.Task[None]) -> None:
        if task.cancelled() or self._closing:
            return
        exc = task.exception()
        _log("receive_loop_stopped", consumer=self.name, error=str(exc) if exc else None)
        if self._state == ConsumerState.CONSUMING:
            self._state = ConsumerState.READY

    async def cancel(self, consumer_tag: str) -> None:
        async with self._lock:
            await self._stop_task()
            if self._state == ConsumerState.CONSUMING:
                self._state = ConsumerState.READY
            _log("consumer_cancelled", consumer=consumer_tag)

    async def _stop_task(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        if self._receiver is not None:
            try:
                await self._receiver.close()
            except AzureError as e:
                logger.warning("receiver close failed: {}", e)
            self._receiver = None

    async def _close_client(self) -> None:
        if self._client is not None:
            try:
                await self._client.close()
            except AzureError as e:
                logger.warning("servicebus client close failed: {}", e)
            self._client = None

    async def close(self) -> None:
        self._closing = True
        self._state = ConsumerState.CLOSING
        _log("consumer_shutdown", consumer=self.name)
        async with self._lock:
            await self._stop_task()
            await self._close_client()
        self._state = ConsumerState.CLOSED
