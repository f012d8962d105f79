"""Inference engine abstraction: protocol and shared types."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class GenerationParams:
    """Sampling parameters for a single generation call."""

    max_tokens: int = 16
    temperature: float = 1.0
    top_p: float = 1.0
    top_k: int = 40
    n_batch: int = 128
    repeat_penalty: float = 1.18
    repeat_last_n: int = 64
    n_threads: int = 0


@dataclass
class CompletionResult:
    """Result from a raw text completion."""

    text: str = ""
    prompt_tokens: int = 0
    completion_tokens: int = 0
    finish_reason: str = "stop"

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


@dataclass
class EngineInfo:
    """Metadata about the loaded backend."""

    engine_type: str  # "local" or "mock"
    model_name: str = ""
    model_path: str = ""
    n_ctx: int = 0
    n_gpu_layers: int = 0


class InferenceEngine(Protocol):
    """Protocol for text-completion backends.

    Implementations are synchronous; callers serialize access through
    :class:`localchat.inference.context.EngineContext`.
    """

    def complete(self, prompt: str, params: GenerationParams) -> CompletionResult: ...

    def engine_info(self) -> EngineInfo: ...

    def close(self) -> None: ...
