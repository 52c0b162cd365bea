"""
Workflow Service
Listing, reading, creating and AI-editing workflows as agent tools.
"""
import json
from typing import Any, Dict, List, Optional, Union

from n8n_editor.core.client import get_client, safe_tool
from n8n_editor.core.config import settings
from n8n_editor.core.logging import gateway_logger as logger
from n8n_editor.models.schemas import WorkflowSummary
from n8n_editor.services.editor import EditPipeline
from n8n_editor.services.sanitizer import build_simple_workflow, sanitize_for_create


def _parse_json_safe(data: Union[str, List, Dict], field_name: str) -> Union[List, Dict]:
    """
    Smart parser: accepts both JSON strings and native Python objects.
    Provides detailed error messages on parse failure.
    """
    if isinstance(data, (list, dict)):
        return data

    try:
        return json.loads(data)
    except json.JSONDecodeError as e:
        raise ValueError(
            f"Invalid JSON in '{field_name}': {e.msg} at line {e.lineno}, column {e.colno}. "
            f"Character position: {e.pos}. Content preview: '{data[max(0, e.pos-20):e.pos+20]}...'"
        )


def editor_url(workflow_id: str) -> str:
    return f"{settings.n8n_editor_url.rstrip('/')}/workflow/{workflow_id}"


def summarize(workflow: Dict[str, Any]) -> WorkflowSummary:
    return WorkflowSummary(
        id=str(workflow["id"]),
        name=workflow.get("name", ""),
        active=bool(workflow.get("active", False)),
        tags=[tag.get("name") for tag in workflow.get("tags") or []],
        created_at=workflow.get("createdAt"),
        updated_at=workflow.get("updatedAt")
    )


@safe_tool
async def list_all_workflows(tags: Optional[List[str]] = None) -> str:
    """
    List all workflows, optionally filtering by tags.

    Args:
        tags: Optional list of tag names to filter by.

    Returns:
        JSON string with workflow summaries (ID, Name, Active, Tags).
    """
    logger.info("Listing all workflows" + (f" with tags: {tags}" if tags else ""))

    client = get_client()
    workflows = await client.list_workflows()

    result = []
    for wf in workflows:
        summary = summarize(wf)
        if tags and not any(tag in summary.tags for tag in tags):
            continue
        result.append(summary.model_dump())

    logger.info(f"Found {len(result)} workflows")
    return json.dumps(result, indent=2)


@safe_tool
async def read_workflow_structure(workflow_id: str) -> str:
    """
    Get the full JSON structure (nodes & connections) of a workflow.

    Args:
        workflow_id: The ID of the workflow to read.
    """
    logger.info(f"Reading workflow structure: {workflow_id}")
    client = get_client()
    data = await client.fetch_workflow(workflow_id)
    return json.dumps(data, indent=2)


async def _create(payload: Dict[str, Any]) -> str:
    client = get_client()
    data = await client.create_workflow(payload)
    workflow_id = data.get("id")
    logger.info(f"Workflow created: {workflow_id}")

    return json.dumps({
        "status": "success",
        "action": "created",
        "id": workflow_id,
        "name": data.get("name", payload.get("name")),
        "editor_url": editor_url(workflow_id) if workflow_id else None,
        "node_count": len(payload.get("nodes") or [])
    }, indent=2)


@safe_tool
async def create_workflow(name: str) -> str:
    """
    Simple mode: create an empty workflow with the given name.

    Args:
        name: Name of the workflow.

    Returns:
        JSON string with the new workflow ID and editor URL.
    """
    if not name or not name.strip():
        raise ValueError("Workflow name must not be empty.")
    logger.info(f"Creating empty workflow '{name}'")
    return await _create(build_simple_workflow(name))


@safe_tool
async def import_workflow(workflow: Union[str, Dict[str, Any]]) -> str:
    """
    Raw JSON import: create a workflow from a full workflow object.
    Server-owned fields such as id and active are removed before sending.

    Args:
        workflow: Workflow definition (JSON string or dict).
    """
    parsed = _parse_json_safe(workflow, "workflow")
    if not isinstance(parsed, dict):
        raise ValueError("Workflow must be a JSON object.")
    payload = sanitize_for_create(parsed)
    logger.info(f"Importing workflow '{payload.get('name')}'")
    return await _create(payload)


@safe_tool
async def edit_workflow(workflow_id: str, user_request: str) -> str:
    """
    Edit a workflow from a natural-language request, e.g. "remove disabled nodes".
    The model rewrites the workflow JSON and the result is written back to n8n.

    Args:
        workflow_id: ID of the workflow to edit.
        user_request: What to change, in plain language.
    """
    pipeline = EditPipeline.from_settings(settings)
    result = await pipeline.run(workflow_id, user_request)
    return json.dumps({
        "response": result.message,
        "updatedWorkflow": result.workflow,
        "editorUrl": editor_url(workflow_id)
    }, indent=2)
