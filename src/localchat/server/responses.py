"""Serialize models, completions and errors into the OpenAI JSON schema."""

from __future__ import annotations

import time
import uuid
from typing import Any

from localchat.inference.engine import CompletionResult
from localchat.server.errors import BridgeError
from localchat.server.request import CompletionRequest


def model_to_json(model_id: str) -> dict[str, Any]:
    """ModelJson for an installed model.  Timestamps and owners are opaque."""
    return {
        "id": model_id,
        "object": "model",
        "created": "who can keep track?",
        "owned_by": "humanity",
        "root": model_id,
        "parent": None,
        "permissions": [
            {
                "id": "foobarbaz",
                "object": "model_permission",
                "created": "does it really matter?",
                "allow_create_engine": False,
                "allow_sampling": False,
                "allow_logprobs": False,
                "allow_search_indices": False,
                "allow_view": True,
                "allow_fine_tuning": False,
                "organization": "*",
                "group": None,
                "is_blocking": False,
            }
        ],
    }


def build_model_list(model_ids: list[str]) -> dict[str, Any]:
    return {"object": "list", "data": [model_to_json(m) for m in model_ids]}


def build_completion_response(
    request: CompletionRequest,
    result: CompletionResult,
    report_finish_reason: bool = False,
) -> dict[str, Any]:
    """Build the ``text_completion`` envelope.

    ``finish_reason`` is always ``"stop"`` unless *report_finish_reason* is
    set, in which case the engine's own reason is passed through.
    """
    prompt_tokens = max(result.prompt_tokens, 0)
    total_tokens = prompt_tokens + max(result.completion_tokens, 0)
    return {
        "id": f"cmpl-{uuid.uuid4().hex}",
        "object": "text_completion",
        "created": int(time.time()),
        "model": request.model,
        "choices": [
            {
                "text": result.text,
                "index": 0,
                "logprobs": None,
                "finish_reason": result.finish_reason if report_finish_reason else "stop",
            }
        ],
        "usage": {
            "prompt_tokens": prompt_tokens,
            "completion_tokens": total_tokens - prompt_tokens,
            "total_tokens": total_tokens,
        },
    }


def error_body(exc: BridgeError) -> dict[str, Any]:
    return {
        "error": {
            "message": exc.message,
            "type": exc.error_type,
            "code": exc.code,
        }
    }
