"""
Workflow Parser & Sanitizer
Turns model output into a payload n8n accepts, dropping server-owned metadata.
"""
import json
from typing import Any, Dict, List

from n8n_editor.core.exceptions import ParseError

# n8n rejects these on create/update: they are read-only and owned by the server.
SERVER_MANAGED_FIELDS = ("id", "createdAt", "updatedAt", "active", "isArchived", "versionId", "tags")

DEFAULT_SETTINGS = {"executionOrder": "v1"}


def parse_workflow(json_text: str) -> Dict[str, Any]:
    """
    Strict JSON parse of extracted model output.
    Provides detailed error messages on parse failure.
    """
    try:
        workflow = json.loads(json_text)
    except json.JSONDecodeError as e:
        raise ParseError(
            "Failed to parse AI response",
            details={
                "message": e.msg,
                "line": e.lineno,
                "column": e.colno,
                "excerpt": json_text[max(0, e.pos - 20):e.pos + 20]
            }
        ) from e

    if not isinstance(workflow, dict):
        raise ParseError(
            "AI response is not a JSON object",
            details={"type": type(workflow).__name__}
        )
    return workflow


def sanitize_for_update(workflow: Dict[str, Any]) -> Dict[str, Any]:
    """
    Project a workflow onto the fields the update endpoint accepts.
    Never fails; node and connection shapes are passed through untouched.
    """
    sanitized = {
        "name": workflow.get("name"),
        "nodes": workflow.get("nodes"),
        "connections": workflow.get("connections"),
        "settings": workflow.get("settings") or dict(DEFAULT_SETTINGS),
    }
    if workflow.get("staticData"):
        sanitized["staticData"] = workflow["staticData"]
    return sanitized


def sanitize_for_create(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Raw JSON import: drop server-owned fields (active, id, ...) from a copy."""
    return {key: value for key, value in payload.items() if key not in SERVER_MANAGED_FIELDS}


def build_simple_workflow(name: str) -> Dict[str, Any]:
    """Empty workflow created from a name only."""
    return {
        "name": name,
        "nodes": [],
        "connections": {},
        "settings": {"saveManualExecutions": True, "callers": []},
    }


def is_disabled(node: Any) -> bool:
    """A node is disabled by the convention parameters.disabled === true."""
    if not isinstance(node, dict):
        return False
    parameters = node.get("parameters")
    return isinstance(parameters, dict) and parameters.get("disabled") is True


def disabled_node_names(workflow: Dict[str, Any]) -> List[str]:
    nodes = workflow.get("nodes")
    if not isinstance(nodes, list):
        return []
    return [node.get("name") for node in nodes if is_disabled(node)]
