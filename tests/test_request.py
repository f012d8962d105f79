"""Tests for completion request normalization."""

from __future__ import annotations

import json

import pytest

from localchat.server.errors import MalformedInputError, MissingFieldError
from localchat.server.request import END_OF_TEXT, CompletionRequest, parse_completion_request


def _parse(payload) -> CompletionRequest:
    return parse_completion_request(json.dumps(payload).encode())


# ─── Rejections ─────────────────────────────────────────────────────────────


class TestRejections:
    def test_invalid_json(self):
        with pytest.raises(MalformedInputError):
            parse_completion_request(b"{not json")

    def test_invalid_utf8(self):
        with pytest.raises(MalformedInputError):
            parse_completion_request(b"\x80abc")

    def test_empty_body(self):
        with pytest.raises(MalformedInputError):
            parse_completion_request(b"")

    @pytest.mark.parametrize(
        "body",
        [b"[" * 100000, b"[" * 100000 + b"]" * 100000],
        ids=["unclosed", "balanced"],
    )
    def test_nesting_too_deep(self, body: bytes):
        with pytest.raises(MalformedInputError):
            parse_completion_request(body)

    @pytest.mark.parametrize("body", [b"[]", b'"text"', b"42", b"null"])
    def test_top_level_not_object(self, body: bytes):
        with pytest.raises(MalformedInputError):
            parse_completion_request(body)

    def test_missing_model(self):
        with pytest.raises(MissingFieldError) as exc_info:
            _parse({"prompt": "hi"})
        assert exc_info.value.field == "model"

    def test_non_string_model(self):
        with pytest.raises(MalformedInputError):
            _parse({"model": 7, "prompt": "hi"})


# ─── Defaults ───────────────────────────────────────────────────────────────


class TestDefaults:
    def test_only_model(self):
        req = _parse({"model": "alpha"})
        assert req.model == "alpha"
        assert req.prompts == [END_OF_TEXT]
        assert req.max_tokens == 16
        assert req.temperature == 1.0
        assert req.top_p == 1.0
        assert req.n == 1
        assert req.stream is False
        assert req.logprobs is None
        assert req.echo is False
        assert req.stop == []
        assert req.presence_penalty == 0.0
        assert req.frequency_penalty == 0.0
        assert req.best_of == 1
        assert req.user == ""
        assert req.suffix == ""

    def test_wrong_types_fall_back_to_defaults(self):
        req = _parse({
            "model": "alpha",
            "max_tokens": "lots",
            "temperature": None,
            "stream": "yes",
            "top_p": True,
            "user": 5,
        })
        assert req.max_tokens == 16
        assert req.temperature == 1.0
        assert req.stream is False
        assert req.top_p == 1.0
        assert req.user == ""


# ─── Coercions ──────────────────────────────────────────────────────────────


class TestCoercions:
    def test_prompt_string(self):
        assert _parse({"model": "m", "prompt": "hi"}).prompts == ["hi"]

    def test_prompt_array_keeps_order(self):
        req = _parse({"model": "m", "prompt": ["a", "b"]})
        assert req.prompts == ["a", "b"]
        assert req.prompt == "a"

    def test_empty_prompt_array_uses_end_of_text(self):
        assert _parse({"model": "m", "prompt": []}).prompt == END_OF_TEXT

    def test_stop_string_or_array(self):
        assert _parse({"model": "m", "stop": "\n"}).stop == ["\n"]
        assert _parse({"model": "m", "stop": ["a", "b"]}).stop == ["a", "b"]

    def test_float_max_tokens_truncated(self):
        assert _parse({"model": "m", "max_tokens": 7.9}).max_tokens == 7

    def test_negative_max_tokens_passed_through(self):
        assert _parse({"model": "m", "max_tokens": -1}).max_tokens == -1

    def test_int_temperature_becomes_float(self):
        req = _parse({"model": "m", "temperature": 0})
        assert req.temperature == 0.0
        assert isinstance(req.temperature, float)

    def test_infinite_max_tokens_falls_back(self):
        req = parse_completion_request(b'{"model": "m", "max_tokens": Infinity}')
        assert req.max_tokens == 16

    def test_unknown_fields_ignored(self):
        req = _parse({"model": "m", "logit_bias": {"50256": -100}, "foo": 1})
        assert req.model == "m"


# ─── Independent fields ─────────────────────────────────────────────────────


class TestIndependentFields:
    def test_penalties_do_not_touch_top_p(self):
        req = _parse({
            "model": "m",
            "top_p": 0.5,
            "presence_penalty": 1.5,
            "frequency_penalty": -0.5,
        })
        assert req.top_p == 0.5
        assert req.presence_penalty == 1.5
        assert req.frequency_penalty == -0.5

    def test_best_of_does_not_touch_logprobs(self):
        req = _parse({"model": "m", "logprobs": 2, "best_of": 5})
        assert req.logprobs == 2
        assert req.best_of == 5

    def test_user_does_not_touch_suffix(self):
        req = _parse({"model": "m", "suffix": "end", "user": "bob"})
        assert req.suffix == "end"
        assert req.user == "bob"
