"""Local inference backend using llama-cpp-python."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

from localchat.inference.engine import CompletionResult, EngineInfo, GenerationParams

logger = logging.getLogger(__name__)


class LocalEngine:
    """Raw text completion via bundled llama.cpp (llama-cpp-python).

    ``n_batch``, ``repeat_last_n`` and ``n_threads`` are fixed when the model
    is loaded; the remaining sampling parameters are applied per call.
    """

    def __init__(
        self,
        model_path: str,
        n_ctx: int = 2048,
        n_gpu_layers: int = 0,
        n_batch: int = 128,
        repeat_last_n: int = 64,
        n_threads: int = 0,
    ) -> None:
        from llama_cpp import Llama

        self.model_path = model_path
        self.n_ctx = n_ctx
        self.n_gpu_layers = n_gpu_layers

        llama_kwargs: dict[str, Any] = {
            "model_path": model_path,
            "n_ctx": n_ctx,
            "n_batch": n_batch,
            "last_n_tokens_size": repeat_last_n,
            "n_threads": n_threads or os.cpu_count() or 4,
            "n_gpu_layers": n_gpu_layers,
            "verbose": False,
        }
        self.llm = Llama(**llama_kwargs)

        if n_gpu_layers != 0:
            try:
                from llama_cpp import llama_supports_gpu_offload

                if not llama_supports_gpu_offload():
                    logger.warning(
                        "GPU layers requested but llama-cpp-python"
                        " has no GPU support, running on CPU"
                    )
            except ImportError:
                pass
        logger.info(
            "Loaded model: %s (ctx=%d, batch=%d, threads=%d)",
            model_path, n_ctx, n_batch, llama_kwargs["n_threads"],
        )

    def engine_info(self) -> EngineInfo:
        return EngineInfo(
            engine_type="local",
            model_name=Path(self.model_path).name,
            model_path=self.model_path,
            n_ctx=self.n_ctx,
            n_gpu_layers=self.n_gpu_layers,
        )

    def complete(self, prompt: str, params: GenerationParams) -> CompletionResult:
        """Run a raw completion; the prompt is fed to the model verbatim."""
        response = self.llm.create_completion(
            prompt=prompt,
            max_tokens=params.max_tokens,
            temperature=params.temperature,
            top_p=params.top_p,
            top_k=params.top_k,
            repeat_penalty=params.repeat_penalty,
        )
        return self._parse_response(response)

    def _parse_response(self, response: dict) -> CompletionResult:
        """Parse a llama-cpp-python completion dict into our CompletionResult."""
        choice = response["choices"][0]
        usage = response.get("usage", {})
        prompt_tokens = usage.get("prompt_tokens", 0)
        total_tokens = usage.get("total_tokens", prompt_tokens)
        return CompletionResult(
            text=choice.get("text") or "",
            prompt_tokens=prompt_tokens,
            completion_tokens=max(total_tokens - prompt_tokens, 0),
            finish_reason=choice.get("finish_reason") or "stop",
        )

    def close(self) -> None:
        """Release the llama.cpp context."""
        close = getattr(self.llm, "close", None)
        if callable(close):
            close()
