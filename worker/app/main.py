import asyncio
import signal
from typing import Any

from loguru import logger

from worker.app.composition import create_worker_dependencies
from worker.app.core import SERVICE_NAME
from worker.app.messaging.consumer import create_message_handler


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


async def _report_handler_errors(errors: asyncio.Queue[Exception]) -> None:
    count = 0
    while True:
        exc = await errors.get()
        count += 1
        _log("message_handler_error", error=str(exc), error_count=count)


async def run_worker() -> None:
    deps = create_worker_dependencies()
    await deps.connect()

    message_handler_errors: asyncio.Queue[Exception] = asyncio.Queue()
    processing_lock = asyncio.Lock()
    service = deps.processing_service

    consumers = [(deps.queue_consumer, service.process_order)]
    if deps.dead_letter_consumer is not None:
        consumers.append((deps.dead_letter_consumer, service.process_dead_letter))

    tags = []
    for consumer, handle in consumers:
        handler = create_message_handler(handle, message_handler_errors, processing_lock)
        tags.append((consumer, await consumer.start_consuming(handler)))

    shutdown = asyncio.Event()

    def request_shutdown() -> None:
        if not shutdown.is_set():
            _log("shutdown_signal")
            shutdown.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, request_shutdown)
        except NotImplementedError:
            pass

    error_reporter = asyncio.create_task(_report_handler_errors(message_handler_errors))
    _log("worker_started", consumers=[tag for _, tag in tags])
    try:
        await shutdown.wait()
    finally:
        for consumer, tag in tags:
            await consumer.cancel(tag)
        error_reporter.cancel()
        try:
            await error_reporter
        except asyncio.CancelledError:
            pass
        await deps.close()
        _log("worker_stopped")


def main() -> None:
    try:
        asyncio.run(run_worker())
    except KeyboardInterrupt:
        _log("worker_interrupted")
    except Exception as e:
        logger.exception("worker failed: {}", e)
        raise


if __name__ == "__main__":
    main()
