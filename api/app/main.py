from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from api.app.composition import create_app_dependencies
from api.app.core import SERVICE_NAME
from api.app.routers.dlq import dlq_router
from api.app.routers.health import health_router
from api.app.routers.orders import orders_router
from api.app.routers.queue import queue_router
from api.app.routers.sessions import sessions_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.bind(service_name=SERVICE_NAME, event="api_starting").info("")
    deps = create_app_dependencies()
    try:
        try:
            await deps.connect()
        except Exception as e:
            logger.exception("transport connect failed: {}", e)
            raise

        app.state.settings = deps.settings
        app.state.transport = deps.transport
        app.state.operation_config = deps.operation_config
        yield
    finally:
        logger.bind(service_name=SERVICE_NAME, event="api_stopping").info("")
        await deps.close()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Service Bus Queue Inspector API",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(health_router)
    app.include_router(queue_router)
    app.include_router(orders_router)
    app.include_router(dlq_router)
    app.include_router(sessions_router)
    return app


app = create_app()
