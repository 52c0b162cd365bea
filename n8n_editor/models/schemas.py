"""
Data Contracts - Pydantic Models
Defines the structure of data exchanged over the HTTP surface and the audit log.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class EditRequest(BaseModel):
    """Natural-language edit of one workflow."""
    workflowId: str = Field(..., min_length=1)
    userRequest: str = Field(..., min_length=1)


class EditResponse(BaseModel):
    response: str
    updatedWorkflow: Dict[str, Any]
    editorUrl: Optional[str] = None


class ErrorResponse(BaseModel):
    error: str
    kind: Optional[str] = None
    details: Optional[Any] = None
    stage: Optional[str] = None


class SimpleWorkflowRequest(BaseModel):
    """Simple mode: only a name. Anything else the caller sends is ignored."""
    model_config = ConfigDict(extra="ignore")

    name: str = Field(..., min_length=1)


class WorkflowSummary(BaseModel):
    """Lightweight workflow info for listing."""
    id: str
    name: str
    active: bool = False
    tags: List[str] = Field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class AuditLogEntry(BaseModel):
    """One AI edit attempt, as written to the audit log."""
    timestamp: str = Field(default_factory=_now)
    workflowId: str
    userRequest: str
    response: str
    rawOutput: str = ""
    success: bool
    error: Optional[str] = None


class ProxyLogEntry(BaseModel):
    """One proxied create request and what n8n answered."""
    timestamp: str = Field(default_factory=_now)
    request: Any
    response: Any
    status: int
