"""Worker composition root: build and lifecycle-manage concrete dependencies.

Composition may: import concrete classes, call factories, store interface types,
manage high-level lifecycle.
"""
from __future__ import annotations

from typing import Any

from loguru import logger

from worker.app.application.processing_service import ProcessingService
from worker.app.config.settings import Settings
from worker.app.core import SERVICE_NAME
from worker.app.domain.remediation import LogOnlyRemediation
from worker.app.infrastructure.messaging.factory import create_message_consumer
from worker.app.ports.dead_letter_remediation import DeadLetterRemediation
from worker.app.ports.message_consumer import MessageConsumer


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


class WorkerDependencies:
    """Holds wired worker dependencies and their lifecycle."""

    def __init__(
        self,
        *,
        settings: Settings,
        remediation: DeadLetterRemediation | None = None,
    ) -> None:
        self._settings = settings
        self._remediation = remediation or LogOnlyRemediation()
        self._queue_consumer: MessageConsumer | None = None
        self._dead_letter_consumer: MessageConsumer | None = None
        self._processing_service: ProcessingService | None = None

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def queue_consumer(self) -> MessageConsumer:
        if self._queue_consumer is None:
            raise RuntimeError("queue_consumer is not initialized")
        return self._queue_consumer

    @property
    def dead_letter_consumer(self) -> MessageConsumer | None:
        return self._dead_letter_consumer

    @property
    def processing_service(self) -> ProcessingService:
        if self._processing_service is None:
            raise RuntimeError("processing_service is not initialized")
        return self._processing_service

    async def connect(self) -> None:
        self._processing_service = ProcessingService(
            self._settings.order_number_path,
            self._remediation,
        )

        self._queue_consumer = create_message_consumer(self._settings)
        await self._queue_consumer.connect()

        if self._settings.consume_dead_letter:
            self._dead_letter_consumer = create_message_consumer(self._settings, dead_letter=True)
            await self._dead_letter_consumer.connect()
        else:
            _log("dead_letter_consumer_disabled", queue=self._settings.servicebus_queue_name)

    async def close(self) -> None:
        for consumer in (self._dead_letter_consumer, self._queue_consumer):
            if consumer is None:
                continue
            try:
                await consumer.close()
            except Exception as exc:
                logger.warning("message consumer close failed: {}", exc)

        self._queue_consumer = None
        self._dead_letter_consumer = None
        self._processing_service = None


def create_worker_dependencies(settings: Settings | None = None) -> WorkerDependencies:
    return WorkerDependencies(settings=settings or Settings())
