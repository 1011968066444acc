"""Transport factory: selects implementation from config. Only place that imports concrete transports."""
from __future__ import annotations

from api.app.config.settings import Settings
from api.app.ports.queue_transport import QueueTransport
from api.app.infrastructure.messaging.inmemory.in_memory_transport import InMemoryQueueTransport
from api.app.infrastructure.messaging.servicebus.servicebus_transport import ServiceBusQueueTransport


def create_queue_transport(settings: Settings) -> QueueTransport:
    backend = settings.transport_backend.strip().lower()

    if backend == "servicebus":
        return ServiceBusQueueTransport(settings)

    if backend == "inmemory":
        return InMemoryQueueTransport()

    raise ValueError(f"Unsupported transport backend: {backend}")
