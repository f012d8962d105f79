"""Synchronous hand-off of API prompts/responses to the UI transcript.

The completions handler runs on a server worker thread while the transcript
belongs to the Textual event loop.  :class:`TranscriptNotifier` schedules the
UI's handler on that loop and blocks the caller until it has run, so the UI
always shows a prompt before generation starts.  Unlike a plain blocking
call, the wait is bounded: after ``timeout`` seconds the pending delivery is
cancelled and :class:`TranscriptTimeoutError` is raised.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from localchat.server.errors import TranscriptError, TranscriptTimeoutError

logger = logging.getLogger(__name__)


class EventKind(Enum):
    PROMPT = "prompt"
    RESPONSE = "response"


@dataclass(frozen=True)
class TranscriptEvent:
    kind: EventKind
    entry_id: str
    text: str


TranscriptHandler = Callable[[TranscriptEvent], None]


class TranscriptNotifier:
    """Rendezvous channel between request handling and the UI actor.

    With no loop attached the handler runs inline on the calling thread
    (headless mode).  With no handler at all, events are only logged.
    """

    def __init__(
        self,
        handler: TranscriptHandler | None = None,
        timeout: float | None = 10.0,
    ) -> None:
        self._handler = handler
        self._loop: asyncio.AbstractEventLoop | None = None
        self.timeout = timeout

    def attach(self, loop: asyncio.AbstractEventLoop, handler: TranscriptHandler) -> None:
        """Route events to *handler*, executed on *loop*."""
        self._loop = loop
        self._handler = handler

    def attach_inline(self, handler: TranscriptHandler) -> None:
        """Run *handler* directly on the calling thread (no UI loop)."""
        self._loop = None
        self._handler = handler

    def detach(self) -> None:
        self._loop = None
        self._handler = None

    def notify_prompt(self, prompt: str) -> str:
        """Record a new prompt; returns the transcript entry id."""
        entry_id = uuid.uuid4().hex
        self._deliver(TranscriptEvent(EventKind.PROMPT, entry_id, prompt))
        return entry_id

    def notify_response(self, entry_id: str, text: str) -> None:
        self._deliver(TranscriptEvent(EventKind.RESPONSE, entry_id, text))

    def _deliver(self, event: TranscriptEvent) -> None:
        handler, loop = self._handler, self._loop
        if handler is None:
            logger.debug("No transcript attached, dropping %s event", event.kind.value)
            return

        if loop is None or _running_loop() is loop:
            _call_handler(handler, event)
            return

        future: concurrent.futures.Future[None] = concurrent.futures.Future()

        def _run() -> None:
            if not future.set_running_or_notify_cancel():
                logger.debug("Transcript %s event cancelled before delivery", event.kind.value)
                return
            try:
                _call_handler(handler, event)
            except TranscriptError as exc:
                future.set_exception(exc)
            else:
                future.set_result(None)

        try:
            loop.call_soon_threadsafe(_run)
        except RuntimeError as exc:  # loop closed
            raise TranscriptTimeoutError("The UI is no longer running") from exc

        try:
            future.result(timeout=self.timeout)
        except TimeoutError as exc:
            future.cancel()
            logger.warning(
                "UI did not record %s event within %ss", event.kind.value, self.timeout
            )
            raise TranscriptTimeoutError(
                f"The UI did not acknowledge the {event.kind.value} within {self.timeout}s"
            ) from exc


def _call_handler(handler: TranscriptHandler, event: TranscriptEvent) -> None:
    try:
        handler(event)
    except TranscriptError:
        raise
    except Exception as exc:
        logger.exception("Transcript handler failed on %s event", event.kind.value)
        raise TranscriptError(
            f"The UI failed to record the {event.kind.value}: {exc}"
        ) from exc


def _running_loop() -> asyncio.AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None
