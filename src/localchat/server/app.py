"""FastAPI app exposing the OpenAI-style models and completions endpoints.

All generation is delegated to :class:`CompletionOrchestrator`; this module
only binds routes and maps errors to HTTP responses.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import FastAPI, Request
from starlette.concurrency import run_in_threadpool
from starlette.responses import JSONResponse, Response

from localchat.config import ServerConfig
from localchat.models import ModelRegistry
from localchat.server.errors import BridgeError, UnknownModelError
from localchat.server.orchestrator import CompletionOrchestrator
from localchat.server.request import parse_completion_request
from localchat.server.resolver import ModelNamingError, find_model, installed_models
from localchat.server.responses import (
    build_completion_response,
    build_model_list,
    error_body,
    model_to_json,
)

logger = logging.getLogger(__name__)


def create_app(
    *,
    orchestrator: CompletionOrchestrator,
    registry: ModelRegistry,
    config: ServerConfig | None = None,
) -> FastAPI:
    config = config or ServerConfig()
    app = FastAPI(title="LocalChat Completions Server", version="0.1.0")

    @app.exception_handler(BridgeError)
    async def _bridge_error(request: Request, exc: BridgeError) -> Response:
        logger.warning("%s %s -> %d: %s", request.method, request.url.path, exc.status_code, exc)
        if config.legacy_compat:
            return Response(status_code=exc.status_code)
        return JSONResponse(error_body(exc), status_code=exc.status_code)

    @app.exception_handler(ModelNamingError)
    async def _naming_error(request: Request, exc: ModelNamingError) -> Response:
        logger.error("Model registry contract violated: %s", exc)
        if config.legacy_compat:
            return Response(status_code=500)
        return JSONResponse(
            {"error": {"message": str(exc), "type": "server_error", "code": "invalid_model_name"}},
            status_code=500,
        )

    # -------------------------------------------------------------------------
    # Health & Models
    # -------------------------------------------------------------------------

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/v1/models")
    def list_models() -> dict[str, Any]:
        return build_model_list([name for name, _ in installed_models(registry)])

    @app.get("/v1/models/{model_id}")
    def get_model(model_id: str) -> dict[str, Any]:
        if find_model(registry, model_id) is not None:
            return model_to_json(model_id)
        if config.legacy_compat:
            return {}
        raise UnknownModelError(model_id)

    # -------------------------------------------------------------------------
    # Completions
    # -------------------------------------------------------------------------

    def _complete(body: bytes) -> dict[str, Any]:
        completion_req = parse_completion_request(body)
        result = orchestrator.complete(completion_req)
        response = build_completion_response(
            completion_req, result, report_finish_reason=config.report_finish_reason
        )
        logger.debug("/v1/completions %s", json.dumps(response, indent=2))
        return response

    @app.post("/v1/completions")
    async def completions(request: Request) -> Any:
        body = await request.body()
        # Generation blocks; keep it off the listener's event loop.
        return JSONResponse(await run_in_threadpool(_complete, body))

    return app
