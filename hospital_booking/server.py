"""
Process entry point.

Serves the application with uvicorn. An exception that escapes to the event
loop (a task nobody awaited, a failing callback) stops the server: the
listener is closed through uvicorn's graceful shutdown and the process exits
with status 1 instead of running on in an unknown state. A server that never
starts, for instance because the database is unreachable, also exits with 1.
"""
import asyncio
import logging
import sys

import uvicorn

from .core.config import settings

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class FailFastServer(uvicorn.Server):
    def __init__(self, config: uvicorn.Config):
        super().__init__(config)
        self.exit_code = 0

    def handle_loop_exception(self, loop: asyncio.AbstractEventLoop, context: dict):
        exc = context.get("exception")
        logger.error(f"Error : {exc if exc is not None else context.get('message')}")
        self.exit_code = 1
        self.should_exit = True

    async def serve(self, sockets=None):
        asyncio.get_running_loop().set_exception_handler(self.handle_loop_exception)
        await super().serve(sockets=sockets)


def run():
    config = uvicorn.Config(
        "hospital_booking.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level="debug" if settings.DEBUG else "info",
    )
    server = FailFastServer(config)
    logger.info(f"Server running in {settings.ENVIRONMENT} mode on port {settings.PORT}")
    try:
        server.run()
    except SystemExit as exc:
        if exc.code not in (None, 0):
            server.exit_code = 1
    if not server.started:
        logger.error("Server failed to start")
        server.exit_code = 1
    sys.exit(server.exit_code)


if __name__ == "__main__":
    run()
