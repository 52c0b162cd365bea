"""
Error Taxonomy
Every failure the service reports is an EditorError rendered as
{"error": ..., "kind": ..., "details": ...} with its own HTTP status.
"""
from typing import Any, Dict, Optional


class EditorError(Exception):
    """Base exception for all classified failures."""
    kind = "EditorError"
    http_status = 500

    def __init__(self, message: str, details: Any = None):
        self.message = message
        self.details = details
        self.stage: Optional[str] = None
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.message, "kind": self.kind}
        if self.details is not None:
            payload["details"] = self.details
        if self.stage is not None:
            payload["stage"] = self.stage
        return payload


class ConfigError(EditorError):
    """A required setting is missing. Raised before any network attempt."""
    kind = "ConfigError"


# =============================================================================
# STORE (n8n REST API) ERRORS
# =============================================================================
class StoreError(EditorError):
    """n8n answered with a non-2xx status or an unreadable body."""
    kind = "ServerError"
    http_status = 502

    def __init__(self, upstream_status: int, message: str, body: Any = None, context: str = ""):
        self.upstream_status = upstream_status
        self.body = body
        self.context = context
        super().__init__(message, details={"status": upstream_status, "body": body})


class StoreNotFoundError(StoreError):
    kind = "NotFound"


class StoreValidationError(StoreError):
    kind = "ValidationError"


class StoreConflictError(StoreError):
    kind = "Conflict"


class StoreUnavailableError(StoreError):
    """Network/connection failure talking to n8n."""
    kind = "ServerError"


# =============================================================================
# EDIT PIPELINE ERRORS
# =============================================================================
class FetchError(EditorError):
    kind = "FetchError"


class ModelError(EditorError):
    kind = "ModelError"


class NoJsonFound(EditorError):
    kind = "NoJsonFound"


class TruncatedJson(NoJsonFound):
    """An opening brace was found but the object never closes."""
    kind = "TruncatedJson"


class ParseError(EditorError):
    kind = "ParseError"


class UpdateRejected(EditorError):
    """n8n refused the sanitized payload; details carry its body verbatim."""
    kind = "UpdateRejected"


class ConflictError(EditorError):
    """The workflow changed upstream between fetch and update."""
    kind = "ConflictError"
    http_status = 409
