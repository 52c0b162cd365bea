"""
Main Application Gateway
Proxies the n8n workflow API, runs AI edits, and exposes the same
operations as MCP tools.
"""
import asyncio
from contextlib import asynccontextmanager
from typing import Any, Dict

from fastapi import Body, Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastmcp import FastMCP

from n8n_editor.core.client import WorkflowStoreClient, close_client, get_client
from n8n_editor.core.config import Settings, get_settings, settings
from n8n_editor.core.exceptions import EditorError, StoreUnavailableError
from n8n_editor.core.llm import close_model_client, get_model_client
from n8n_editor.core.logging import gateway_logger as logger
from n8n_editor.models.schemas import (
    EditRequest,
    EditResponse,
    ErrorResponse,
    ProxyLogEntry,
    SimpleWorkflowRequest,
)
from n8n_editor.services.audit import AuditSink, get_audit_log, get_proxy_log
from n8n_editor.services.editor import EditPipeline, TextGenerator
from n8n_editor.services.sanitizer import build_simple_workflow, sanitize_for_create
from n8n_editor.services.workflows import (
    create_workflow,
    edit_workflow,
    editor_url,
    import_workflow,
    list_all_workflows,
    read_workflow_structure,
)

VERSION = "1.0.0"


# =============================================================================
# LIFESPAN MANAGER
# =============================================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manages the application lifecycle.
    - Startup: Log configuration
    - Shutdown: Close HTTP clients
    """
    logger.info("=" * 60)
    logger.info("n8n AI Workflow Editor Starting")
    logger.info(f"n8n API: {settings.api_url or 'NOT CONFIGURED'}")
    logger.info(f"Editor: {settings.n8n_editor_url}")
    logger.info(f"Model: {settings.gemini_model}")
    logger.info("=" * 60)

    yield

    await close_client()
    await close_model_client()
    logger.info("n8n AI Workflow Editor Shutdown")


# =============================================================================
# FASTAPI APP INITIALIZATION
# =============================================================================
app = FastAPI(
    title="n8n AI Workflow Editor",
    description="Create n8n workflows and edit them with natural-language requests.",
    version=VERSION,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================
@app.exception_handler(EditorError)
async def editor_error_handler(request: Request, exc: EditorError):
    """Classified failures keep their own status and structured body."""
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Catches any unhandled error and returns it as a structured error body.
    Ensures callers never receive a raw traceback.
    """
    logger.error(f"Unhandled exception: {str(exc)}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "details": str(exc),
            "path": str(request.url.path)
        }
    )


# =============================================================================
# DEPENDENCIES
# =============================================================================
def get_store_client() -> WorkflowStoreClient:
    return get_client()


def get_text_generator() -> TextGenerator:
    return get_model_client()


def get_edit_pipeline(
    model: TextGenerator = Depends(get_text_generator),
    store: WorkflowStoreClient = Depends(get_store_client),
    config: Settings = Depends(get_settings),
    audit_log: AuditSink = Depends(get_audit_log)
) -> EditPipeline:
    """One pipeline per request. The model key is checked before the store settings."""
    return EditPipeline(
        store=store,
        model=model,
        audit_log=audit_log,
        reprompt_on_invalid_json=config.reprompt_on_invalid_json
    )


async def _proxy_create(store: WorkflowStoreClient, payload: Dict[str, Any], proxy_log: AuditSink) -> JSONResponse:
    logger.info(f"Forwarding request to: {store.base_url}workflows")
    response = await store.forward("POST", "workflows", json_data=payload)

    entry = ProxyLogEntry(request=payload, response=response.data, status=response.status_code)
    try:
        await asyncio.to_thread(proxy_log.append, entry.model_dump())
    except (OSError, TypeError, ValueError) as e:
        logger.error(f"Failed to write proxy log: {e}")

    return JSONResponse(content=response.data, status_code=response.status_code)


def _proxy_failure(exc: StoreUnavailableError) -> JSONResponse:
    logger.error(f"Proxy Error: {exc.context}")
    return JSONResponse(
        status_code=500,
        content={"error": "Failed to proxy request", "details": exc.context}
    )


# =============================================================================
# WORKFLOW PROXY ENDPOINTS
# =============================================================================
@app.get("/workflows")
async def list_workflows(store: WorkflowStoreClient = Depends(get_store_client)):
    """Proxy the n8n workflow list; status and body pass through."""
    logger.info(f"Testing connectivity to: {store.base_url}workflows")
    try:
        response = await store.forward("GET", "workflows")
    except StoreUnavailableError as e:
        return _proxy_failure(e)
    return JSONResponse(content=response.data, status_code=response.status_code)


@app.post("/workflows")
async def import_workflow_route(
    payload: Dict[str, Any] = Body(...),
    store: WorkflowStoreClient = Depends(get_store_client),
    proxy_log: AuditSink = Depends(get_proxy_log)
):
    """Raw JSON import: server-owned fields are dropped, then proxied to n8n."""
    try:
        return await _proxy_create(store, sanitize_for_create(payload), proxy_log)
    except StoreUnavailableError as e:
        return _proxy_failure(e)


@app.post("/workflows/simple")
async def create_simple_workflow(
    body: SimpleWorkflowRequest,
    store: WorkflowStoreClient = Depends(get_store_client),
    proxy_log: AuditSink = Depends(get_proxy_log)
):
    """Simple mode: create an empty workflow from a name."""
    try:
        return await _proxy_create(store, build_simple_workflow(body.name), proxy_log)
    except StoreUnavailableError as e:
        return _proxy_failure(e)


@app.get("/workflows/{workflow_id}")
async def read_workflow(workflow_id: str, store: WorkflowStoreClient = Depends(get_store_client)):
    try:
        response = await store.forward("GET", f"workflows/{workflow_id}")
    except StoreUnavailableError as e:
        return _proxy_failure(e)
    return JSONResponse(content=response.data, status_code=response.status_code)


# =============================================================================
# AI EDIT ENDPOINT
# =============================================================================
@app.post(
    "/edit",
    response_model=EditResponse,
    responses={409: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}
)
async def edit(body: EditRequest, pipeline: EditPipeline = Depends(get_edit_pipeline)):
    """Apply a natural-language edit to a workflow and write it back to n8n."""
    result = await pipeline.run(body.workflowId, body.userRequest)
    return EditResponse(
        response=result.message,
        updatedWorkflow=result.workflow,
        editorUrl=editor_url(body.workflowId)
    )


# =============================================================================
# HEALTH & INFO ENDPOINTS
# =============================================================================
@app.get("/health")
async def health_check():
    """Check server and n8n connectivity status."""
    try:
        client = get_client()
        await client.get("workflows", params={"limit": 1})
        n8n_status = "connected"
    except EditorError as e:
        n8n_status = f"error: {e.message[:50]}"

    return {
        "status": "healthy",
        "n8n_connection": n8n_status,
        "version": VERSION
    }


@app.get("/info")
async def server_info():
    """Get non-secret server configuration."""
    return {
        "name": "n8n AI Workflow Editor",
        "version": VERSION,
        "n8n_api_url": settings.api_url,
        "n8n_editor_url": settings.n8n_editor_url,
        "gemini_model": settings.gemini_model,
        "reprompt_on_invalid_json": settings.reprompt_on_invalid_json
    }


# =============================================================================
# FASTMCP SERVER INITIALIZATION
# =============================================================================
mcp = FastMCP("n8n AI Workflow Editor")

mcp.tool()(list_all_workflows)
mcp.tool()(read_workflow_structure)
mcp.tool()(create_workflow)
mcp.tool()(import_workflow)
mcp.tool()(edit_workflow)


def get_mcp() -> FastMCP:
    """Get the FastMCP server instance."""
    return mcp


def get_app() -> FastAPI:
    """Get the FastAPI app instance."""
    return app


if __name__ == "__main__":
    mcp.run()
