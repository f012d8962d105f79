"""Run one API completion against the shared engine context."""

from __future__ import annotations

import logging

from localchat.config import GenerationConfig
from localchat.inference.context import (
    PASSTHROUGH_TEMPLATE,
    EngineBusy,
    EngineContext,
    generation_params,
)
from localchat.inference.engine import CompletionResult
from localchat.models import ModelInfo, ModelRegistry
from localchat.server.errors import (
    EngineBusyError,
    GenerationFailureError,
    LoadFailureError,
    TranscriptError,
    UnknownModelError,
)
from localchat.server.notifier import TranscriptNotifier
from localchat.server.request import CompletionRequest
from localchat.server.resolver import find_model

logger = logging.getLogger(__name__)


class CompletionOrchestrator:
    """Resolve, load, reset, notify, generate, in that order.

    The engine context is shared with the interactive chat, so every request
    clears the conversation history before generating; API callers never see
    each other's (or the user's) earlier turns.
    """

    def __init__(
        self,
        context: EngineContext,
        registry: ModelRegistry,
        notifier: TranscriptNotifier,
        generation: GenerationConfig,
        engine_timeout: float | None = 300.0,
    ) -> None:
        self.context = context
        self.registry = registry
        self.notifier = notifier
        self.generation = generation
        self.engine_timeout = engine_timeout

    def complete(self, request: CompletionRequest) -> CompletionResult:
        info = find_model(self.registry, request.model)
        if info is None:
            logger.warning("Couldn't find model for completion: %s", request.model)
            raise UnknownModelError(request.model)

        try:
            with self.context.claim(self.engine_timeout) as ctx:
                return self._complete_claimed(ctx, request, info)
        except EngineBusy as exc:
            logger.warning("Completion for %s rejected: %s", request.model, exc)
            raise EngineBusyError(str(exc)) from exc

    def _complete_claimed(
        self, ctx: EngineContext, request: CompletionRequest, info: ModelInfo
    ) -> CompletionResult:
        try:
            ctx.ensure_loaded(request.model, info.path)
        except Exception as exc:
            logger.exception("Couldn't load model %s", request.model)
            raise LoadFailureError(f"Failed to load model '{request.model}': {exc}") from exc

        ctx.reset_context()

        # Blocks until the UI has the prompt on screen.
        entry_id = self.notifier.notify_prompt(request.prompt)

        params = generation_params(
            self.generation,
            max_tokens=request.max_tokens,
            temperature=request.temperature,
            top_p=request.top_p,
        )
        try:
            result = ctx.prompt(request.prompt, params, template=PASSTHROUGH_TEMPLATE)
        except Exception as exc:
            logger.exception("Couldn't prompt model %s", request.model)
            # Force a fresh load on the next request.
            ctx.unload()
            raise GenerationFailureError(f"Generation failed for '{request.model}': {exc}") from exc

        try:
            self.notifier.notify_response(entry_id, result.text)
        except TranscriptError as exc:
            logger.warning(
                "Response for entry %s was not recorded in the transcript: %s", entry_id, exc
            )

        return result
