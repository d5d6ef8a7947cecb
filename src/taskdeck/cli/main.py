# src/taskdeck/cli/main.py

"""
Server entrypoint.

Initializes logging, builds AppState, then runs on one event loop:
- the HTTP JSON API (aiohttp),
- the terminal WebSocket endpoint (websockets).
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal

from aiohttp import web

from ..api.routes import create_app
from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..core.state import AppState
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


async def serve(state: AppState) -> None:
    settings = state.settings
    stop = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        # Not every platform supports loop signal handlers.
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(sig, stop.set)

    ws_server = await state.terminal.start(settings.host, settings.ws_port)

    runner = web.AppRunner(create_app(state))
    await runner.setup()
    site = web.TCPSite(runner, settings.host, settings.http_port)
    await site.start()
    logger.info("HTTP API listening on http://%s:%s", settings.host, settings.http_port)

    try:
        await stop.wait()
        logger.info("Signal received, shutting down...")
    finally:
        ws_server.close()
        await ws_server.wait_closed()
        await runner.cleanup()


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.data_dir.parent / "logs", console_level=console_level)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)

    logger.info("Starting %s...", settings.app_name)

    state = create_initial_state(settings=settings)
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(serve(state))
    logger.info("Bye.")


if __name__ == "__main__":
    main()
