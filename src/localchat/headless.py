"""Headless mode: run only the completions server, no TUI.

Usage: localchat --serve

API prompts and responses are echoed to stderr in place of the chat
transcript.
"""

from __future__ import annotations

import sys

from localchat.config import LocalChatConfig
from localchat.server.notifier import EventKind, TranscriptEvent
from localchat.transcript import EntrySource, Transcript


class HeadlessTranscript:
    """Transcript handler that records events and prints them to stderr."""

    def __init__(self, echo: bool = True) -> None:
        self.transcript = Transcript()
        self.echo = echo

    def __call__(self, event: TranscriptEvent) -> None:
        match event.kind:
            case EventKind.PROMPT:
                self.transcript.new_prompt_response_pair(
                    event.text, source=EntrySource.SERVER, entry_id=event.entry_id
                )
                if self.echo:
                    _err(f"[prompt] {event.text}")
            case EventKind.RESPONSE:
                self.transcript.set_response(event.entry_id, event.text)
                if self.echo:
                    _err(f"[response] {event.text}")


def run_headless(app, config: LocalChatConfig) -> int:
    """Serve the completions API in the foreground until interrupted.

    Returns the process exit code.
    """
    from localchat.server.runner import serve_forever

    _err(f"Serving completions on http://{config.server.host}:{config.server.port}/v1")
    try:
        serve_forever(app, config.server)
    except KeyboardInterrupt:
        pass
    except OSError as e:
        _err(f"[error] {e}")
        return 1
    return 0


def _err(msg: str) -> None:
    """Print a message to stderr."""
    print(msg, file=sys.stderr, flush=True)
