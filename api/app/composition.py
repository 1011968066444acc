"""
Composition root: single place where concrete implementations are wired.

Builds settings, the operation config and the queue transport; provides
connect/close lifecycle. Used by lifespan to populate app.state. No DI
container library, explicit wiring only. When the queue name or connection
string is missing, the transport and/or config are left as None and every
queue route answers 503 instead of failing startup.
"""
from __future__ import annotations

from typing import Any

from loguru import logger

from api.app.config.settings import Settings
from api.app.core import SERVICE_NAME
from api.app.domain.errors import ConfigurationError
from api.app.infrastructure.messaging.factory import create_queue_transport
from api.app.ports.queue_transport import QueueTransport
from api.app.services.operation_config import OperationConfig


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


class AppDependencies:
    """Holds wired dependencies and their lifecycle. Built only in composition root."""

    def __init__(
        self,
        *,
        settings: Settings,
        transport: QueueTransport | None,
        operation_config: OperationConfig | None,
    ) -> None:
        self._settings = settings
        self._transport = transport
        self._operation_config = operation_config
        self._transport_connected = False

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def transport(self) -> QueueTransport | None:
        return self._transport

    @property
    def operation_config(self) -> OperationConfig | None:
        return self._operation_config

    async def connect(self) -> None:
        if self._transport is None:
            _log("transport_skipped", reason="configuration_missing")
            return
        await self._transport.connect()
        self._transport_connected = True

    async def close(self) -> None:
        if self._transport_connected and self._transport is not None:
            await self._transport.close()
            self._transport_connected = False


def create_app_dependencies(settings: Settings | None = None) -> AppDependencies:
    """
    Composition root: build all app dependencies in one place.
    Caller owns lifecycle (connect/close). Transport backend is selected from
    settings (transport_backend).
    """
    _settings = settings or Settings()

    operation_config: OperationConfig | None
    try:
        operation_config = OperationConfig.from_settings(_settings)
    except ConfigurationError:
        operation_config = None

    backend = _settings.transport_backend.strip().lower()
    transport: QueueTransport | None = None
    if backend != "servicebus" or _settings.servicebus_configured:
        transport = create_queue_transport(_settings)

    return AppDependencies(
        settings=_settings,
        transport=transport,
        operation_config=operation_config,
    )
