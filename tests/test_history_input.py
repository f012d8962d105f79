"""Tests for prompt history navigation in the chat input."""

from localchat.ui.widgets import HistoryInput


class _PlainInput(HistoryInput):
    """HistoryInput with plain attributes in place of Textual reactives."""

    def __init__(self, *entries: str):
        self._history = []
        self._history_index = -1
        self._draft = ""
        self._text = ""
        self._cursor = 0
        for entry in entries:
            self.add_to_history(entry)

    @property
    def value(self) -> str:
        return self._text

    @value.setter
    def value(self, text: str) -> None:
        self._text = text

    @property
    def cursor_position(self) -> int:
        return self._cursor

    @cursor_position.setter
    def cursor_position(self, pos: int) -> None:
        self._cursor = pos


class TestHistory:
    def test_strips_and_skips_blank(self):
        w = _PlainInput("  ask  ", "", "   ")
        assert w._history == ["ask"]

    def test_collapses_repeats(self):
        w = _PlainInput("a", "a", "b", "a")
        assert w._history == ["a", "b", "a"]

    def test_back_walks_to_oldest(self):
        w = _PlainInput("first", "second")
        w.action_history_back()
        assert w.value == "second"
        w.action_history_back()
        w.action_history_back()
        assert w.value == "first"
        assert w.cursor_position == len("first")

    def test_forward_restores_draft(self):
        w = _PlainInput("first", "second")
        w.value = "half-typed"
        w.action_history_back()
        w.action_history_back()
        w.action_history_forward()
        assert w.value == "second"
        w.action_history_forward()
        assert w.value == "half-typed"
        assert w._history_index == -1

    def test_forward_without_navigating_is_noop(self):
        w = _PlainInput("first")
        w.value = "draft"
        w.action_history_forward()
        assert w.value == "draft"

    def test_back_with_no_history(self):
        w = _PlainInput()
        w.value = "draft"
        w.action_history_back()
        assert w.value == "draft"

    def test_slash_commands_recorded(self):
        w = _PlainInput("/model list", "hello")
        w.action_history_back()
        w.action_history_back()
        assert w.value == "/model list"
