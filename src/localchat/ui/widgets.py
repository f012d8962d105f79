"""Custom Textual widgets for the LocalChat TUI."""

from __future__ import annotations

from textual import on
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.widgets import Button, Input, Static


def _escape(text: str) -> str:
    """Escape Rich markup characters in untrusted text."""
    return text.replace("[", "\\[")


class HistoryInput(Input):
    """Input widget with shell-like up/down arrow history navigation."""

    BINDINGS = [
        Binding("up", "history_back", "Previous", show=False),
        Binding("down", "history_forward", "Next", show=False),
    ]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._history: list[str] = []
        self._history_index: int = -1  # -1 = not navigating
        self._draft: str = ""

    def add_to_history(self, text: str) -> None:
        """Add text to history. Skips empty and consecutive duplicates."""
        text = text.strip()
        if not text:
            return
        if self._history and self._history[-1] == text:
            self._history_index = -1
            return
        self._history.append(text)
        self._history_index = -1

    def action_history_back(self) -> None:
        """Navigate to the previous (older) history entry."""
        if not self._history:
            return
        if self._history_index == -1:
            # First press: save current input as draft
            self._draft = self.value
            self._history_index = len(self._history) - 1
        elif self._history_index > 0:
            self._history_index -= 1
        else:
            return  # Already at oldest
        self.value = self._history[self._history_index]
        self.cursor_position = len(self.value)

    def action_history_forward(self) -> None:
        """Navigate to the next (newer) history entry."""
        if self._history_index == -1:
            return  # Not navigating
        if self._history_index < len(self._history) - 1:
            self._history_index += 1
            self.value = self._history[self._history_index]
        else:
            # Past newest: restore draft
            self._history_index = -1
            self.value = self._draft
        self.cursor_position = len(self.value)


# Thinking indicator with bouncing highlight dot
_THINKING_FRAMES = [
    "  [#00ccaa]Generating[/]  [bold #00ffff]●[/] [#007766]●[/] [#007766]●[/]",
    "  [#00ccaa]Generating[/]  [#007766]●[/] [bold #00ffff]●[/] [#007766]●[/]",
    "  [#00ccaa]Generating[/]  [#007766]●[/] [#007766]●[/] [bold #00ffff]●[/]",
    "  [#00ccaa]Generating[/]  [#007766]●[/] [bold #00ffff]●[/] [#007766]●[/]",
]


class CopyableMessage(Horizontal):
    """Base for message widgets with a copy button."""

    def __init__(self, formatted: str, raw_text: str, **kwargs) -> None:
        super().__init__(**kwargs)
        self._formatted = formatted
        self._raw_text = raw_text

    @property
    def copyable_text(self) -> str:
        return self._raw_text

    def compose(self) -> ComposeResult:
        yield Static(self._formatted, classes="msg-text")
        yield Button("Copy", classes="msg-copy-btn")

    @on(Button.Pressed, ".msg-copy-btn")
    def on_copy_pressed(self) -> None:
        self.app.copy_to_clipboard(self._raw_text)
        self.app.notify("Copied!", timeout=2)


class UserMessage(CopyableMessage):
    """A prompt typed by the user."""

    def __init__(self, text: str, **kwargs) -> None:
        super().__init__(f"[bold cyan]You:[/] {_escape(text)}", text, **kwargs)


class ApiPromptMessage(CopyableMessage):
    """A prompt that arrived through the completions API."""

    def __init__(self, text: str, **kwargs) -> None:
        super().__init__(f"[bold magenta]API request:[/] {_escape(text)}", text, **kwargs)


class AssistantMessage(CopyableMessage):
    """A response generated by the model."""

    def __init__(self, text: str, **kwargs) -> None:
        super().__init__(f"[bold green]Model:[/] {_escape(text)}", text, **kwargs)


class SystemMessage(CopyableMessage):
    """A system/feedback message for slash command responses."""

    def __init__(self, text: str, **kwargs) -> None:
        super().__init__(f"[bold yellow]System:[/] {text}", text, **kwargs)


class HelpMessage(CopyableMessage):
    """A bordered help display showing available commands."""

    def __init__(self, text: str) -> None:
        super().__init__(text, text)


class ThinkingIndicator(Static):
    """Animated indicator shown while a generation is running."""

    def __init__(self, **kwargs) -> None:
        super().__init__(_THINKING_FRAMES[0], **kwargs)
        self._frame = 0
        self._timer = None

    def on_mount(self) -> None:
        self._timer = self.set_interval(0.3, self._tick)

    def on_unmount(self) -> None:
        if self._timer is not None:
            self._timer.stop()
            self._timer = None

    def _tick(self) -> None:
        self._frame = (self._frame + 1) % len(_THINKING_FRAMES)
        self.update(_THINKING_FRAMES[self._frame])
