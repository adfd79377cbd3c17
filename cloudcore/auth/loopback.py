"""
Loopback HTTP listener receiving the OAuth redirect.

A FastAPI app is served by uvicorn on a socket bound to an ephemeral port
of 127.0.0.1; the port becomes the redirect target of the authorize URL.
"""

import asyncio
import logging
import socket
from typing import Awaitable, Callable, Optional, Set

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse

from ..config.constants import LOOPBACK_HOST

logger = logging.getLogger(__name__)

UrlHandler = Callable[[str], Awaitable[object]]

_DONE_PAGE = """<!doctype html>
<html><head><title>Authentication complete</title></head>
<body><p>Authentication finished. You can close this window and return to the application.</p></body>
</html>"""


class LoopbackListener:
    """Single-use local HTTP server for one authorization round trip."""

    SHUTDOWN_TIMEOUT = 5.0

    def __init__(self, host: str = LOOPBACK_HOST):
        self.host = host
        self.port = 0
        self._server: Optional[uvicorn.Server] = None
        self._serve_task: Optional[asyncio.Task] = None
        self._handlers: Set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._serve_task is not None and not self._serve_task.done()

    @property
    def ready(self) -> bool:
        """True once the server accepts connections."""
        return self.running and self._server is not None and self._server.started

    async def start(self, on_url: UrlHandler) -> int:
        """
        Bind an ephemeral port and start serving.

        Args:
            on_url: Coroutine called with the full redirect URL

        Returns:
            The bound port
        """
        if self.running:
            raise RuntimeError(f"Loopback listener already running on port {self.port}")

        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((self.host, 0))
        self.port = sock.getsockname()[1]

        config = uvicorn.Config(
            self._build_app(on_url),
            log_level="warning",
            lifespan="off",
            access_log=False,
        )
        self._server = uvicorn.Server(config)
        self._serve_task = asyncio.create_task(self._server.serve(sockets=[sock]))

        logger.info(f"Loopback listener started on {self.host}:{self.port}")
        return self.port

    async def stop(self) -> None:
        """Stop serving; safe to call when not running."""
        server, task = self._server, self._serve_task
        self._server = None
        self._serve_task = None
        self.port = 0

        if server is None or task is None:
            return

        server.should_exit = True
        try:
            await asyncio.wait_for(task, timeout=self.SHUTDOWN_TIMEOUT)
        except asyncio.TimeoutError:
            logger.warning("Loopback listener did not stop in time, cancelling")
            task.cancel()
        logger.info("Loopback listener stopped")

    def _build_app(self, on_url: UrlHandler) -> FastAPI:
        app = FastAPI(docs_url=None, redoc_url=None, openapi_url=None)

        @app.get("/{path:path}", response_class=HTMLResponse)
        async def redirect_target(request: Request, path: str = ""):
            # Browsers also ask for favicons and the like
            if "code" not in request.query_params and "error" not in request.query_params:
                logger.debug(f"Ignoring loopback request for /{path}")
                return HTMLResponse("Not found", status_code=404)

            # The handler may stop this server, so it must not run inside the request
            task = asyncio.create_task(on_url(str(request.url)))
            self._handlers.add(task)
            task.add_done_callback(self._handlers.discard)
            return HTMLResponse(_DONE_PAGE)

        return app
