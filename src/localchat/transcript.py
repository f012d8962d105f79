"""The chat transcript: ordered prompt/response pairs shown in the UI."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum


class EntrySource(Enum):
    USER = "user"  # typed into the TUI
    SERVER = "server"  # arrived through the completions API


@dataclass
class TranscriptEntry:
    prompt: str
    response: str = ""
    source: EntrySource = EntrySource.USER
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created: float = field(default_factory=time.time)


class Transcript:
    """In-memory transcript.  Owned by the UI; not thread-safe."""

    def __init__(self) -> None:
        self.entries: list[TranscriptEntry] = []

    def __len__(self) -> int:
        return len(self.entries)

    def new_prompt_response_pair(
        self, prompt: str, source: EntrySource = EntrySource.USER, entry_id: str | None = None
    ) -> TranscriptEntry:
        entry = TranscriptEntry(prompt=prompt, source=source)
        if entry_id:
            entry.id = entry_id
        self.entries.append(entry)
        return entry

    def get(self, entry_id: str) -> TranscriptEntry | None:
        for entry in reversed(self.entries):
            if entry.id == entry_id:
                return entry
        return None

    def set_response(self, entry_id: str, text: str) -> TranscriptEntry | None:
        entry = self.get(entry_id)
        if entry is not None:
            entry.response = text
        return entry

    def clear(self) -> None:
        self.entries.clear()
