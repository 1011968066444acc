"""Message consumer factory: selects implementation from config. Only place that imports concrete consumers."""
from __future__ import annotations

from worker.app.config.settings import Settings
from worker.app.ports.message_consumer import MessageConsumer
from worker.app.infrastructure.messaging.servicebus.servicebus_consumer import ServiceBusConsumer


def create_message_consumer(settings: Settings, *, dead_letter: bool = False) -> MessageConsumer:
    backend = settings.transport_backend.strip().lower()

    if backend == "servicebus":
        return ServiceBusConsumer(settings, dead_letter=dead_letter)

    raise ValueError(f"Unsupported consumer backend: {backend}")
