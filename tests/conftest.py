import copy
import json
import os
import sys
from pathlib import Path

import httpx
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("N8N_API_URL", "http://n8n.test/api/v1")
os.environ.setdefault("N8N_API_KEY", "test-n8n-key")
os.environ.setdefault("GEMINI_API_KEY", "test-gemini-key")

from n8n_editor.core.client import WorkflowStoreClient  # noqa: E402

STORE_URL = "http://n8n.test/api/v1/"


SAMPLE_WORKFLOW = {
    "id": "wf1",
    "name": "Lead Router",
    "active": True,
    "isArchived": False,
    "versionId": "v-123",
    "createdAt": "2025-01-01T00:00:00.000Z",
    "updatedAt": "2025-01-02T00:00:00.000Z",
    "tags": [{"id": "t1", "name": "sales"}],
    "nodes": [
        {"id": "n1", "name": "A", "type": "n8n-nodes-base.set", "typeVersion": 1,
         "position": [0, 0], "parameters": {"disabled": True}},
        {"id": "n2", "name": "B", "type": "n8n-nodes-base.noOp", "typeVersion": 1,
         "position": [200, 0], "parameters": {}},
    ],
    "connections": {"A": {"main": [[{"node": "B", "type": "main", "index": 0}]]}},
    "settings": {"executionOrder": "v1"},
}

EDITED_WORKFLOW = {
    "name": "Lead Router",
    "nodes": [
        {"id": "n2", "name": "B", "type": "n8n-nodes-base.noOp", "typeVersion": 1,
         "position": [200, 0], "parameters": {}},
    ],
    "connections": {},
    "settings": {"executionOrder": "v1"},
}


class FakeN8N:
    """In-memory stand-in for the n8n REST API, served through httpx.MockTransport."""

    def __init__(self, workflows=None):
        self.workflows = copy.deepcopy(workflows) if workflows is not None else {"wf1": copy.deepcopy(SAMPLE_WORKFLOW)}
        self.requests = []
        self.fail_with = None
        self.update_response = None
        self.etag = None

    def calls(self, method):
        return sum(1 for request in self.requests if request.method == method)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with is not None:
            raise self.fail_with

        parts = request.url.path.rstrip("/").split("/")
        assert parts[:4] == ["", "api", "v1", "workflows"], request.url.path
        workflow_id = parts[4] if len(parts) > 4 else None

        if workflow_id is None and request.method == "GET":
            return httpx.Response(200, json={"data": list(self.workflows.values()), "nextCursor": None})

        if workflow_id is None and request.method == "POST":
            body = json.loads(request.content)
            created = dict(body, id="new1", active=False)
            self.workflows["new1"] = created
            return httpx.Response(200, json=created)

        if workflow_id not in self.workflows:
            return httpx.Response(404, json={"message": "Not Found"})

        if request.method == "GET":
            headers = {"ETag": self.etag} if self.etag else {}
            return httpx.Response(200, json=self.workflows[workflow_id], headers=headers)

        if request.method == "PUT":
            if self.update_response is not None:
                status, body = self.update_response
                return httpx.Response(status, json=body)
            body = json.loads(request.content)
            self.workflows[workflow_id] = dict(self.workflows[workflow_id], **body)
            return httpx.Response(200, json=self.workflows[workflow_id])

        return httpx.Response(405, json={"message": "Method not allowed"})

    def last(self, method):
        return [request for request in self.requests if request.method == method][-1]


class FakeModel:
    """Returns queued outputs in order and counts calls."""

    def __init__(self, *outputs, error=None):
        self.outputs = list(outputs)
        self.error = error
        self.prompts = []

    @property
    def calls(self):
        return len(self.prompts)

    async def generate(self, prompt):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.outputs.pop(0)


class MemorySink:
    def __init__(self):
        self.entries = []

    def append(self, entry):
        self.entries.append(dict(entry))


class BrokenSink:
    def append(self, entry):
        raise OSError("disk full")


@pytest.fixture
def fake_n8n():
    return FakeN8N()


@pytest.fixture
def store(fake_n8n):
    return WorkflowStoreClient(STORE_URL, "test-n8n-key", transport=httpx.MockTransport(fake_n8n))


@pytest.fixture
def audit_sink():
    return MemorySink()


@pytest.fixture
def sample_workflow():
    return copy.deepcopy(SAMPLE_WORKFLOW)


@pytest.fixture
def edited_workflow():
    return copy.deepcopy(EDITED_WORKFLOW)
