# src/taskdeck/terminal/server.py

from __future__ import annotations

import logging
from collections.abc import Callable
from http import HTTPStatus
from urllib.parse import urlsplit

from websockets.asyncio.server import Server, ServerConnection, serve
from websockets.http11 import Request, Response

from ..core.ports import CommandTranslator, InteractiveProcess
from ..taskwarrior.errors import ExecutionError
from ..taskwarrior.rc import TaskwarriorConfig
from .bridge import FAREWELL_TEXT, TerminalSessionBridge
from .process import SessionProcess
from .protocol import ErrorEnvelope, OutputEnvelope, encode
from .shaping import InputShaper

logger = logging.getLogger(__name__)

ProcessFactory = Callable[[], InteractiveProcess]


class TerminalServer:
    """WebSocket endpoint: one tasksh subprocess per accepted connection."""

    def __init__(
        self,
        config: TaskwarriorConfig,
        *,
        path: str = "/terminal",
        shaper: InputShaper | None = None,
        translator: CommandTranslator | None = None,
        process_factory: ProcessFactory | None = None,
    ) -> None:
        self._config = config
        self._path = path
        self._shaper = shaper or InputShaper()
        self._translator = translator
        self._process_factory = process_factory or (lambda: SessionProcess(config))

    def process_request(self, connection: ServerConnection, request: Request) -> Response | None:
        if urlsplit(request.path).path != self._path:
            return connection.respond(HTTPStatus.NOT_FOUND, "Not found\n")
        return None

    async def handle(self, connection: ServerConnection) -> None:
        logger.info("Terminal connection from %s", connection.remote_address)
        process = self._process_factory()
        try:
            await process.start()
        except ExecutionError as e:
            logger.error("Cannot start terminal session: %s", e)
            await connection.send(encode(ErrorEnvelope(str(e))))
            await connection.send(encode(OutputEnvelope(FAREWELL_TEXT)))
            await connection.close()
            return

        bridge = TerminalSessionBridge(
            connection,
            process,
            shaper=self._shaper,
            translator=self._translator,
        )
        await bridge.run()
        logger.info("Terminal connection closed (%s)", connection.remote_address)

    async def start(self, host: str, port: int) -> Server:
        server = await serve(
            self.handle,
            host,
            port,
            process_request=self.process_request,
            ping_interval=30,
            ping_timeout=120,
        )
        logger.info("Terminal WebSocket listening on ws://%s:%s%s", host, port, self._path)
        return server
