"""
ClearCause Platform - Main Entry Point
Serves the HTTP API and runs the campaign scheduler in one process.
"""
import asyncio
import logging
import signal
import sys

import uvicorn

import config
from api.app import app
from scheduler import scheduler

logger = logging.getLogger(__name__)

shutdown_event = asyncio.Event()


async def main():
    errors = config.validate_config()
    if errors:
        logger.critical(f"Config Validation Error: {errors}")
        sys.exit(1)

    server = uvicorn.Server(uvicorn.Config(
        app, host=config.API_HOST, port=config.API_PORT, log_level=config.LOG_LEVEL.lower(),
    ))
    # Signals are handled here so the scheduler stops with the server
    server.install_signal_handlers = lambda: None

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, shutdown_event.set)

    server_task = asyncio.create_task(server.serve())
    scheduler_task = None
    try:
        # The pool is created by the app lifespan; wait for it before sweeping
        while not server.started and not server_task.done():
            await asyncio.sleep(0.1)
        if server.started:
            scheduler_task = asyncio.create_task(scheduler(shutdown_event))
            logger.info(f"API listening on {config.API_HOST}:{config.API_PORT}")

        stop_waiter = asyncio.create_task(shutdown_event.wait())
        await asyncio.wait(
            {server_task, stop_waiter},
            return_when=asyncio.FIRST_COMPLETED,
        )
    except Exception as e:
        logger.critical(f"Main loop error: {e}")
    finally:
        shutdown_event.set()
        server.should_exit = True
        if scheduler_task:
            await scheduler_task
        await server_task
        logger.info("Platform stopped")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        logger.info("Platform stopped")
