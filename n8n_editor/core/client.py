"""
HTTP Client Layer - n8n Workflow Store
Async client for the n8n public REST API with standardized error handling.
"""
import json
from dataclasses import dataclass, field
from functools import wraps
from typing import Any, Dict, List, Mapping, Optional, Tuple

import httpx

from n8n_editor.core.config import settings
from n8n_editor.core.exceptions import (
    ConfigError,
    EditorError,
    StoreConflictError,
    StoreError,
    StoreNotFoundError,
    StoreUnavailableError,
    StoreValidationError,
)
from n8n_editor.core.logging import excerpt, store_logger as logger

INVALID_JSON_MESSAGE = "Invalid JSON response from n8n"


@dataclass
class StoreResponse:
    """Raw outcome of a store call: status, decoded body and headers."""
    status_code: int
    data: Any
    headers: Mapping[str, str] = field(default_factory=dict)
    valid_json: bool = True

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


def _error_for(response: StoreResponse) -> StoreError:
    status = response.status_code
    message = f"n8n API Error ({status})"
    if status == 404:
        return StoreNotFoundError(status, message, body=response.data)
    if status in (400, 422):
        return StoreValidationError(status, message, body=response.data)
    if status in (409, 412):
        return StoreConflictError(status, message, body=response.data)
    return StoreError(status, message, body=response.data)


class WorkflowStoreClient:
    """
    HTTP client for the n8n workflow store.
    Manages connection lifecycle, headers, and error handling.
    """

    def __init__(
        self,
        base_url: Optional[str],
        api_key: Optional[str],
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        if not base_url:
            raise ConfigError("N8N_API_URL not configured")
        if not api_key:
            raise ConfigError("N8N_API_KEY not configured")

        self._base_url = base_url
        self._headers = {
            "X-N8N-API-KEY": api_key,
            "Content-Type": "application/json",
            "Accept": "application/json"
        }
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers=self._headers,
            timeout=timeout,
            transport=transport
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    async def close(self):
        """Close the HTTP client connection."""
        await self._client.aclose()

    async def forward(
        self,
        method: str,
        endpoint: str,
        json_data: Optional[Any] = None,
        params: Optional[Dict] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> StoreResponse:
        """
        Execute a request and return whatever n8n answered, whatever the status.
        Bodies that are not JSON are wrapped instead of propagated raw.
        """
        try:
            response = await self._client.request(
                method=method,
                url=endpoint,
                json=json_data,
                params=params,
                headers=headers
            )
        except httpx.RequestError as e:
            logger.error(f"{method} {endpoint} failed: {e}")
            raise StoreUnavailableError(
                upstream_status=503,
                message="Network/Connection Failure",
                body=str(e),
                context=str(e)
            ) from e

        try:
            data = response.json()
            valid_json = True
        except ValueError:
            data = {"error": INVALID_JSON_MESSAGE, "text": response.text}
            valid_json = False

        return StoreResponse(
            status_code=response.status_code,
            data=data,
            headers=response.headers,
            valid_json=valid_json
        )

    async def request(
        self,
        method: str,
        endpoint: str,
        json_data: Optional[Any] = None,
        params: Optional[Dict] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> StoreResponse:
        """Like forward(), but non-2xx and non-JSON answers raise a StoreError."""
        response = await self.forward(method, endpoint, json_data, params, headers)
        if not response.ok:
            logger.error(f"{method} {endpoint} -> {response.status_code}: {excerpt(response.data)}")
            raise _error_for(response)
        if not response.valid_json:
            raise StoreError(response.status_code, INVALID_JSON_MESSAGE, body=response.data)
        return response

    # Convenience methods
    async def get(self, endpoint: str, params: Optional[Dict] = None) -> Any:
        return (await self.request("GET", endpoint, params=params)).data

    async def post(self, endpoint: str, json_data: Optional[Any] = None) -> Any:
        return (await self.request("POST", endpoint, json_data=json_data)).data

    async def put(
        self,
        endpoint: str,
        json_data: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> Any:
        return (await self.request("PUT", endpoint, json_data=json_data, headers=headers)).data

    # Workflow operations
    async def list_workflows(self, page_size: int = 100) -> List[Dict[str, Any]]:
        """Return every workflow, following n8n's cursor pagination."""
        workflows: List[Dict[str, Any]] = []
        cursor = None
        while True:
            params: Dict[str, Any] = {"limit": page_size}
            if cursor:
                params["cursor"] = cursor
            data = await self.get("workflows", params=params)
            if isinstance(data, list):
                workflows.extend(data)
                return workflows
            page = data.get("data", []) if isinstance(data, dict) else None
            if not isinstance(page, list):
                raise StoreError(200, "Unexpected workflow list from n8n", body=data)
            workflows.extend(page)
            cursor = data.get("nextCursor")
            if not cursor:
                return workflows

    async def fetch_workflow_versioned(self, workflow_id: str) -> Tuple[Dict[str, Any], Optional[str]]:
        """
        Read a workflow together with whatever version token n8n offers:
        the ETag header when present, otherwise the versionId field.
        """
        response = await self.request("GET", f"workflows/{workflow_id}")
        workflow = response.data
        version = response.headers.get("etag")
        if not version and isinstance(workflow, dict):
            version = workflow.get("versionId")
        return workflow, version

    async def fetch_workflow(self, workflow_id: str) -> Dict[str, Any]:
        workflow, _ = await self.fetch_workflow_versioned(workflow_id)
        return workflow

    async def update_workflow(
        self,
        workflow_id: str,
        workflow: Dict[str, Any],
        version: Optional[str] = None
    ) -> Dict[str, Any]:
        headers = {"If-Match": version} if version else None
        return await self.put(f"workflows/{workflow_id}", json_data=workflow, headers=headers)

    async def create_workflow(self, workflow: Dict[str, Any]) -> Dict[str, Any]:
        return await self.post("workflows", json_data=workflow)


_client: Optional[WorkflowStoreClient] = None


def get_client() -> WorkflowStoreClient:
    """Factory returning the shared store client built from settings."""
    global _client
    if _client is None:
        base_url, api_key = settings.require_store()
        _client = WorkflowStoreClient(base_url, api_key, timeout=settings.http_timeout)
    return _client


async def close_client():
    global _client
    if _client is not None:
        await _client.close()
        _client = None


def safe_tool(func):
    """
    Decorator for MCP tools.
    Catches classified errors and returns a JSON error response instead of crashing.
    """
    @wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except EditorError as e:
            return json.dumps(e.to_dict(), indent=2)
        except ValueError as e:
            return json.dumps({
                "error": f"Validation Error: {str(e)}",
                "kind": "ValidationError"
            }, indent=2)
        except Exception as e:
            return json.dumps({
                "error": f"Internal Error: {str(e)}",
                "kind": "InternalError"
            }, indent=2)
    return wrapper
