from __future__ import annotations

from typing import Any

from fastapi import Request, Response
from loguru import logger

from api.app.core import SERVICE_NAME
from api.app.domain.errors import (
    ConfigurationError,
    QueueInspectorError,
    TransportError,
    ValidationError,
)
from api.app.ports.queue_transport import QueueTransport
from api.app.services.operation_config import OperationConfig

READINESS_PING_TIMEOUT_DEFAULT = 30.0
CONFIGURATION_MISSING = "Service Bus configuration not found."


def readiness_ping_timeout_seconds(request: Request) -> float:
    """Read readiness ping timeout from app.state.settings or default."""
    settings = getattr(request.app.state, "settings", None)
    if settings is not None:
        return getattr(settings, "readiness_ping_timeout_seconds", READINESS_PING_TIMEOUT_DEFAULT)
    return READINESS_PING_TIMEOUT_DEFAULT


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).warning("")


def queue_dependencies(request: Request) -> tuple[QueueTransport, OperationConfig]:
    """Transport and operation config from app.state; ConfigurationError when either is missing."""
    transport = getattr(request.app.state, "transport", None)
    config = getattr(request.app.state, "operation_config", None)
    if transport is None or config is None:
        raise ConfigurationError(CONFIGURATION_MISSING)
    return transport, config


def error_response(exc: QueueInspectorError, *, operation: str) -> Response:
    """ValidationError -> 400; ConfigurationError and TransportError -> 503."""
    if isinstance(exc, ValidationError):
        return Response(status_code=400, content=str(exc))
    if isinstance(exc, ConfigurationError):
        _log("configuration_missing", operation=operation, error=str(exc))
        return Response(status_code=503, content=str(exc) or CONFIGURATION_MISSING)
    if isinstance(exc, TransportError):
        _log("transport_failed", operation=operation, error=str(exc))
        return Response(status_code=503, content="Service Bus unavailable; try again later.")
    _log("operation_failed", operation=operation, error=str(exc))
    return Response(status_code=503, content=str(exc))


async def read_body_text(request: Request) -> str:
    raw = await request.body()
    return raw.decode("utf-8", errors="replace")


__all__ = [
    "readiness_ping_timeout_seconds",
    "queue_dependencies",
    "error_response",
    "read_body_text",
]
