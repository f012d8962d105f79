"""Tests for OpenAI JSON serialization."""

from __future__ import annotations

from localchat.inference.engine import CompletionResult
from localchat.server.errors import (
    EngineBusyError,
    MissingFieldError,
    UnknownModelError,
)
from localchat.server.request import CompletionRequest
from localchat.server.responses import (
    build_completion_response,
    build_model_list,
    error_body,
    model_to_json,
)


class TestModelJson:
    def test_fields(self):
        data = model_to_json("alpha")
        assert data["id"] == data["root"] == "alpha"
        assert data["object"] == "model"
        assert data["created"] == "who can keep track?"
        assert data["permissions"][0]["id"] == "foobarbaz"
        assert data["permissions"][0]["created"] == "does it really matter?"

    def test_list_preserves_order(self):
        data = build_model_list(["b", "a"])
        assert [m["id"] for m in data["data"]] == ["b", "a"]

    def test_empty_list(self):
        assert build_model_list([]) == {"object": "list", "data": []}


class TestCompletionResponse:
    def test_usage_adds_up(self):
        req = CompletionRequest(model="alpha")
        result = CompletionResult(text=" hi", prompt_tokens=5, completion_tokens=2)
        data = build_completion_response(req, result)
        assert data["usage"] == {"prompt_tokens": 5, "completion_tokens": 2, "total_tokens": 7}
        assert data["choices"][0]["text"] == " hi"

    def test_negative_counts_clamped(self):
        req = CompletionRequest(model="alpha")
        result = CompletionResult(text="", prompt_tokens=-1, completion_tokens=-3)
        usage = build_completion_response(req, result)["usage"]
        assert usage == {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0}

    def test_finish_reason(self):
        req = CompletionRequest(model="alpha")
        result = CompletionResult(text="x", finish_reason="length")
        assert build_completion_response(req, result)["choices"][0]["finish_reason"] == "stop"
        reported = build_completion_response(req, result, report_finish_reason=True)
        assert reported["choices"][0]["finish_reason"] == "length"


class TestErrorBody:
    def test_unknown_model(self):
        exc = UnknownModelError("ghost")
        body = error_body(exc)["error"]
        assert "ghost" in body["message"]
        assert body["code"] == "model_not_found"
        assert exc.status_code == 404

    def test_missing_field(self):
        exc = MissingFieldError("model")
        assert exc.status_code == 400
        assert error_body(exc)["error"]["code"] == "missing_field"

    def test_busy(self):
        assert EngineBusyError("busy").status_code == 503
