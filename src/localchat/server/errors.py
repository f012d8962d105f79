"""Error taxonomy for the completions bridge.

Each error knows the HTTP status it maps to and the machine-readable
``type``/``code`` pair used in the JSON error body.
"""

from __future__ import annotations


class BridgeError(Exception):
    """Base class for every failure surfaced by the completions API."""

    status_code = 500
    error_type = "server_error"
    code = "internal_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class MalformedInputError(BridgeError):
    """Request body is not valid JSON or not a JSON object."""

    status_code = 400
    error_type = "invalid_request_error"
    code = "malformed_input"


class MissingFieldError(BridgeError):
    """A required request field is absent."""

    status_code = 400
    error_type = "invalid_request_error"
    code = "missing_field"

    def __init__(self, field: str) -> None:
        super().__init__(f"'{field}' is required")
        self.field = field


class UnknownModelError(BridgeError):
    status_code = 404
    error_type = "invalid_request_error"
    code = "model_not_found"

    def __init__(self, model_id: str) -> None:
        super().__init__(f"The model '{model_id}' does not exist or is not installed")
        self.model_id = model_id


class EngineBusyError(BridgeError):
    status_code = 503
    error_type = "server_error"
    code = "engine_busy"


class TranscriptError(BridgeError):
    """The UI failed to record a transcript update."""

    status_code = 503
    error_type = "server_error"
    code = "transcript_failure"


class TranscriptTimeoutError(TranscriptError):
    """The UI did not acknowledge a transcript update in time."""

    code = "transcript_timeout"


class LoadFailureError(BridgeError):
    status_code = 500
    error_type = "server_error"
    code = "load_failure"


class GenerationFailureError(BridgeError):
    status_code = 500
    error_type = "server_error"
    code = "generation_failure"
