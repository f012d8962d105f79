"""Tests for the in-memory chat transcript."""

from __future__ import annotations

from localchat.transcript import EntrySource, Transcript


class TestTranscript:
    def test_new_pair_defaults(self):
        t = Transcript()
        entry = t.new_prompt_response_pair("hi")
        assert entry.response == ""
        assert entry.source is EntrySource.USER
        assert len(t) == 1

    def test_explicit_id(self):
        t = Transcript()
        entry = t.new_prompt_response_pair("hi", source=EntrySource.SERVER, entry_id="abc")
        assert entry.id == "abc"
        assert t.get("abc") is entry

    def test_set_response(self):
        t = Transcript()
        entry = t.new_prompt_response_pair("hi")
        t.set_response(entry.id, "hello")
        assert t.get(entry.id).response == "hello"

    def test_set_response_unknown_id(self):
        t = Transcript()
        assert t.set_response("missing", "x") is None

    def test_order_and_clear(self):
        t = Transcript()
        t.new_prompt_response_pair("a")
        t.new_prompt_response_pair("b")
        assert [e.prompt for e in t.entries] == ["a", "b"]
        t.clear()
        assert len(t) == 0
