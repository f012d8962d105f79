"""The shared engine context: one loaded model plus its conversation history.

Exactly one :class:`EngineContext` exists per process.  It is created in
``__main__`` and handed by reference to both the TUI and the completions
server.  Every operation that touches the loaded model or the history must
run inside :meth:`EngineContext.claim`, which serializes the two callers.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path

from localchat.config import GenerationConfig
from localchat.inference.engine import (
    CompletionResult,
    EngineInfo,
    GenerationParams,
    InferenceEngine,
)

logger = logging.getLogger(__name__)

# Prompt template that feeds the prompt through unchanged.
PASSTHROUGH_TEMPLATE = "{prompt}"

EngineLoader = Callable[[Path], InferenceEngine]


class EngineBusy(RuntimeError):
    """The engine stayed claimed by another caller past the wait limit."""


class NoModelLoaded(RuntimeError):
    """A generation was attempted before any model was loaded."""


def generation_params(
    config: GenerationConfig,
    *,
    max_tokens: int,
    temperature: float,
    top_p: float,
) -> GenerationParams:
    """Combine per-call sampling values with the process-wide defaults."""
    return GenerationParams(
        max_tokens=max_tokens,
        temperature=temperature,
        top_p=top_p,
        top_k=config.top_k,
        n_batch=config.n_batch,
        repeat_penalty=config.repeat_penalty,
        repeat_last_n=config.repeat_last_n,
        n_threads=config.n_threads,
    )


class EngineContext:
    """Owns the loaded engine, which model it is, and the chat history."""

    def __init__(self, loader: EngineLoader) -> None:
        self._loader = loader
        self._lock = threading.Lock()
        self._engine: InferenceEngine | None = None
        self._model_id: str | None = None
        self.history: list[str] = []

    @contextmanager
    def claim(self, timeout: float | None = None) -> Iterator[EngineContext]:
        """Hold exclusive access to the engine for the duration of the block."""
        acquired = self._lock.acquire(timeout=-1 if timeout is None else timeout)
        if not acquired:
            raise EngineBusy(f"Engine still busy after {timeout}s")
        try:
            yield self
        finally:
            self._lock.release()

    @property
    def model_id(self) -> str | None:
        return self._model_id

    @property
    def is_loaded(self) -> bool:
        return self._engine is not None

    def engine_info(self) -> EngineInfo:
        if self._engine is None:
            return EngineInfo(engine_type="none")
        return self._engine.engine_info()

    def ensure_loaded(self, model_id: str, path: Path) -> bool:
        """Load *model_id* from *path* unless it is already the loaded model.

        Returns True when a load actually happened.  Any model that was
        loaded before is released first; if the new load fails, the context
        is left with no model so the next caller tries again.
        """
        if self._engine is not None and self._model_id == model_id:
            return False

        self.unload()
        logger.info("Loading model %s from %s", model_id, path)
        engine = self._loader(path)
        self._engine = engine
        self._model_id = model_id
        self.history.clear()
        return True

    def unload(self) -> None:
        """Release the current engine, if any."""
        if self._engine is None:
            return
        old, self._engine = self._engine, None
        old_id, self._model_id = self._model_id, None
        self.history.clear()
        try:
            old.close()
        except Exception:
            logger.warning("Error closing engine for %s", old_id, exc_info=True)

    def reset_context(self) -> None:
        """Forget the conversation so the next prompt starts from scratch."""
        self.history.clear()

    def prompt(
        self,
        text: str,
        params: GenerationParams,
        template: str = PASSTHROUGH_TEMPLATE,
    ) -> CompletionResult:
        """Generate a continuation of the history plus *text*.

        The rendered turn and the generated text are appended to the
        history, so consecutive calls behave like a conversation until
        :meth:`reset_context` is called.
        """
        if self._engine is None:
            raise NoModelLoaded("No model is loaded")

        rendered = template.replace("{prompt}", text)
        full_prompt = "".join(self.history) + rendered
        result = self._engine.complete(full_prompt, params)
        self.history.append(rendered + result.text)
        return result
