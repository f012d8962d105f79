"""Run the completions server with uvicorn, in the foreground or on a thread."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from fastapi import FastAPI

from localchat.config import ServerConfig

logger = logging.getLogger(__name__)


def _uvicorn_config(app: FastAPI, config: ServerConfig, access_log: bool):
    import uvicorn

    return uvicorn.Config(
        app,
        host=config.host,
        port=config.port,
        log_level="info" if access_log else "warning",
        access_log=access_log,
        # Keep the logging setup from __main__ instead of uvicorn's defaults.
        log_config=None,
    )


class ServerStartError(OSError):
    """uvicorn could not start listening (it exits instead of raising)."""


class ServerThread(threading.Thread):
    """The completions listener, on its own thread with its own event loop.

    *on_error* is called from the server thread with a message when the
    listener fails, e.g. because the port is taken.
    """

    def __init__(
        self,
        app: FastAPI,
        config: ServerConfig,
        on_error: Callable[[str], None] | None = None,
    ) -> None:
        super().__init__(name="localchat-server", daemon=True)
        import uvicorn

        self.config = config
        self.on_error = on_error
        self.error: str | None = None
        # The TUI owns the terminal, so no access log here.
        self.server = uvicorn.Server(_uvicorn_config(app, config, access_log=False))

    @property
    def address(self) -> str:
        return f"http://{self.config.host}:{self.config.port}/v1"

    def run(self) -> None:
        logger.info("Completions server listening on %s", self.address)
        try:
            _run_server(self.server, self.config)
        except ServerStartError as exc:
            self.error = str(exc)
            logger.error("%s", exc)
        except Exception as exc:
            self.error = f"Completions server stopped unexpectedly: {exc}"
            logger.exception("Completions server stopped unexpectedly")
        if self.error and self.on_error is not None:
            self.on_error(self.error)

    def stop(self, timeout: float = 5.0) -> None:
        self.server.should_exit = True
        if self.is_alive():
            self.join(timeout)


def serve_forever(app: FastAPI, config: ServerConfig) -> None:
    """Run the server in the calling thread until interrupted (headless mode).

    Raises ``ServerStartError`` when the listener cannot be started.
    """
    import uvicorn

    server = uvicorn.Server(_uvicorn_config(app, config, access_log=True))
    _run_server(server, config)


def _run_server(server, config: ServerConfig) -> None:
    try:
        server.run()
    except SystemExit as exc:
        # uvicorn logs the bind failure and calls sys.exit(1).
        raise ServerStartError(
            f"Unable to serve on {config.host}:{config.port} (exit status {exc.code})"
        ) from exc
