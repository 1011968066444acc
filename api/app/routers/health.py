import asyncio
from typing import Any

from fastapi import APIRouter, Request, Response
from loguru import logger

from api.app.core import SERVICE_NAME
from api.app.routers.utils import readiness_ping_timeout_seconds

health_router = APIRouter(prefix="/health", tags=["Health"])


def _not_ready(reason: str, content: str, **kwargs: Any) -> Response:
    logger.bind(service_name=SERVICE_NAME, event="readiness_failed", reason=reason, **kwargs).warning("")
    return Response(status_code=503, content=content)


@health_router.get(
    "/live",
    summary="Liveness probe",
    description="Returns 200 while the process is up. Does not touch Service Bus.",
    responses={200: {"description": "Service is alive."}},
)
async def live() -> dict:
    return {"status": "ok"}


@health_router.get(
    "/ready",
    summary="Readiness probe",
    description="Returns 200 only when a queue is configured, the transport is connected and a one-message peek succeeds within the readiness timeout.",
    responses={
        200: {"description": "Queue reachable."},
        503: {"description": "Queue not configured, transport not connected, or probe peek failed."},
    },
)
async def ready(request: Request) -> Response:
    transport = getattr(request.app.state, "transport", None)
    if transport is None:
        return _not_ready("not_configured", "Service Bus configuration not found.")
    if not transport.ready:
        return _not_ready("not_connected", "Transport not ready")

    timeout_s = readiness_ping_timeout_seconds(request)
    try:
        reachable = await asyncio.wait_for(transport.ping(), timeout=timeout_s)
    except asyncio.TimeoutError:
        return _not_ready("probe_timeout", "Queue not reachable", timeout_s=timeout_s)
    if not reachable:
        return _not_ready("probe_failed", "Queue not reachable")
    return Response(status_code=200, content="OK")
