"""Parse raw ``/v1/completions`` bodies into a canonical CompletionRequest.

All defaults and coercions are applied here, once; downstream code only sees
fully populated :class:`CompletionRequest` values.  Fields of the wrong JSON
type fall back to their defaults instead of failing the request.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from localchat.server.errors import MalformedInputError, MissingFieldError

logger = logging.getLogger(__name__)

# Prompt used when the request carries none.
END_OF_TEXT = "<|endoftext|>"


@dataclass(frozen=True)
class CompletionRequest:
    """Normalized completion request.

    Only ``prompts[0]`` drives generation; further prompts are accepted and
    ignored.  ``n``, ``stream``, ``logprobs``, ``echo``, ``stop``,
    ``suffix``, ``presence_penalty``, ``frequency_penalty``, ``best_of``
    and ``user`` are carried for completeness but not honoured.
    """

    model: str
    prompts: list[str] = field(default_factory=lambda: [END_OF_TEXT])
    suffix: str = ""
    max_tokens: int = 16
    temperature: float = 1.0
    top_p: float = 1.0
    n: int = 1
    stream: bool = False
    logprobs: int | None = None
    echo: bool = False
    stop: list[str] = field(default_factory=list)
    presence_penalty: float = 0.0
    frequency_penalty: float = 0.0
    best_of: int = 1
    user: str = ""

    @property
    def prompt(self) -> str:
        return self.prompts[0]


def _as_int(value: Any, default: int | None) -> int | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    try:
        return int(value)
    except (OverflowError, ValueError):  # inf / nan
        return default


def _as_float(value: Any, default: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return float(value)


def _as_bool(value: Any, default: bool) -> bool:
    return value if isinstance(value, bool) else default


def _as_str(value: Any, default: str) -> str:
    return value if isinstance(value, str) else default


def _as_str_list(value: Any) -> list[str]:
    """Accept a single string or an array of strings."""
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [v if isinstance(v, str) else "" for v in value]
    return []


def parse_completion_request(body: bytes) -> CompletionRequest:
    """Decode *body* and build a CompletionRequest.

    Raises ``MalformedInputError`` if the body is not a JSON object and
    ``MissingFieldError`` if ``model`` is absent.
    """
    try:
        payload = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError, RecursionError) as exc:
        raise MalformedInputError(f"Invalid JSON in completions body: {exc}") from exc
    if not isinstance(payload, dict):
        raise MalformedInputError("Request body must be a JSON object")

    logger.debug("/v1/completions %s", json.dumps(payload, indent=2))

    if "model" not in payload:
        raise MissingFieldError("model")
    model = payload["model"]
    if not isinstance(model, str):
        raise MalformedInputError("'model' must be a string")

    prompts = _as_str_list(payload.get("prompt")) or [END_OF_TEXT]
    if len(prompts) > 1:
        logger.info("Ignoring %d extra prompt(s); only the first is used", len(prompts) - 1)

    # logit_bias is accepted and ignored.
    return CompletionRequest(
        model=model,
        prompts=prompts,
        suffix=_as_str(payload.get("suffix"), ""),
        max_tokens=_as_int(payload.get("max_tokens"), 16),
        temperature=_as_float(payload.get("temperature"), 1.0),
        top_p=_as_float(payload.get("top_p"), 1.0),
        n=_as_int(payload.get("n"), 1),
        stream=_as_bool(payload.get("stream"), False),
        logprobs=_as_int(payload.get("logprobs"), None),
        echo=_as_bool(payload.get("echo"), False),
        stop=_as_str_list(payload.get("stop")),
        presence_penalty=_as_float(payload.get("presence_penalty"), 0.0),
        frequency_penalty=_as_float(payload.get("frequency_penalty"), 0.0),
        best_of=_as_int(payload.get("best_of"), 1),
        user=_as_str(payload.get("user"), ""),
    )
