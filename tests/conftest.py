"""Shared fixtures: a deterministic fake engine and a temporary model directory."""

from __future__ import annotations

from pathlib import Path

import pytest

from localchat.inference.context import EngineContext
from localchat.inference.engine import CompletionResult, EngineInfo, GenerationParams
from localchat.models import ModelRegistry


class FakeEngine:
    """Stand-in for LocalEngine whose output depends only on the full prompt.

    One "token" per whitespace-separated word.  Generated text has
    ``min(max_tokens, 4)`` words and encodes the prompt length, so any
    history leaking into the prompt changes the output.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self.calls: list[tuple[str, GenerationParams]] = []
        self.closed = False
        self.fail_generation = False

    def complete(self, prompt: str, params: GenerationParams) -> CompletionResult:
        self.calls.append((prompt, params))
        if self.fail_generation:
            raise RuntimeError("decode failed")
        n = max(0, min(params.max_tokens, 4))
        words = [f"w{len(prompt)}.{i}" for i in range(n)]
        return CompletionResult(
            text=" " + " ".join(words) if words else "",
            prompt_tokens=len(prompt.split()),
            completion_tokens=n,
            finish_reason="length" if n == params.max_tokens else "stop",
        )

    def engine_info(self) -> EngineInfo:
        return EngineInfo(engine_type="mock", model_name=self.path.name, model_path=str(self.path))

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def model_dir(tmp_path: Path) -> Path:
    """A model directory with two installed models and one stray file."""
    d = tmp_path / "models"
    d.mkdir()
    (d / "ggml-alpha.gguf").write_bytes(b"GGUF")
    (d / "ggml-beta-7b.gguf").write_bytes(b"GGUF")
    (d / "notes.txt").write_text("not a model")
    return d


@pytest.fixture()
def registry(model_dir: Path) -> ModelRegistry:
    return ModelRegistry(model_dir, prefix="ggml-", suffix=".gguf")


@pytest.fixture()
def engines() -> list[FakeEngine]:
    """Every FakeEngine the context has loaded, in load order."""
    return []


@pytest.fixture()
def context(engines: list[FakeEngine]) -> EngineContext:
    def _load(path: Path) -> FakeEngine:
        engine = FakeEngine(path)
        engines.append(engine)
        return engine

    return EngineContext(loader=_load)
