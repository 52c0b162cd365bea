import json

import pytest

from n8n_editor.core.config import settings
from n8n_editor.services import editor, workflows

from conftest import FakeModel


@pytest.fixture
def tools_store(store, monkeypatch):
    monkeypatch.setattr(workflows, "get_client", lambda: store)
    monkeypatch.setattr(editor, "get_client", lambda: store)
    return store


@pytest.mark.asyncio
async def test_list_all_workflows_filters_by_tag(tools_store, fake_n8n):
    fake_n8n.workflows["wf2"] = {"id": "wf2", "name": "Other", "active": False, "tags": []}

    everything = json.loads(await workflows.list_all_workflows())
    assert [wf["id"] for wf in everything] == ["wf1", "wf2"]
    assert everything[0]["tags"] == ["sales"]

    sales = json.loads(await workflows.list_all_workflows(tags=["sales"]))
    assert [wf["id"] for wf in sales] == ["wf1"]


@pytest.mark.asyncio
async def test_read_missing_workflow_returns_error_json(tools_store):
    result = json.loads(await workflows.read_workflow_structure("missing"))
    assert result["kind"] == "NotFound"
    assert result["details"]["status"] == 404


@pytest.mark.asyncio
async def test_create_workflow_simple_mode(tools_store, fake_n8n):
    result = json.loads(await workflows.create_workflow("My Flow"))
    assert result["status"] == "success"
    assert result["id"] == "new1"
    assert result["editor_url"].endswith("/workflow/new1")
    sent = json.loads(fake_n8n.last("POST").content)
    assert "id" not in sent and "active" not in sent


@pytest.mark.asyncio
async def test_create_workflow_rejects_blank_name(tools_store, fake_n8n):
    result = json.loads(await workflows.create_workflow("   "))
    assert result["kind"] == "ValidationError"
    assert fake_n8n.calls("POST") == 0


@pytest.mark.asyncio
async def test_import_workflow_from_json_string(tools_store, fake_n8n):
    raw = json.dumps({"id": "9", "active": True, "name": "Imported", "nodes": [], "connections": {}, "settings": {}})
    result = json.loads(await workflows.import_workflow(raw))
    assert result["name"] == "Imported"
    sent = json.loads(fake_n8n.last("POST").content)
    assert set(sent) == {"name", "nodes", "connections", "settings"}


@pytest.mark.asyncio
async def test_import_workflow_reports_bad_json(tools_store):
    result = json.loads(await workflows.import_workflow('{"name": '))
    assert result["kind"] == "ValidationError"
    assert "Invalid JSON in 'workflow'" in result["error"]


@pytest.mark.asyncio
async def test_edit_workflow_tool(tools_store, fake_n8n, edited_workflow, monkeypatch, tmp_path):
    model = FakeModel(json.dumps(edited_workflow))
    monkeypatch.setattr(editor, "get_model_client", lambda: model)
    monkeypatch.setattr(settings, "audit_log_path", str(tmp_path / "ai_edit_logs.json"))

    result = json.loads(await workflows.edit_workflow("wf1", "remove disabled nodes"))

    assert result["updatedWorkflow"]["connections"] == {}
    assert fake_n8n.calls("PUT") == 1
    with open(tmp_path / "ai_edit_logs.json", encoding="utf-8") as f:
        assert json.load(f)[0]["success"] is True


@pytest.mark.asyncio
async def test_edit_workflow_tool_reports_failures(tools_store, monkeypatch, tmp_path):
    monkeypatch.setattr(editor, "get_model_client", lambda: FakeModel("no json at all"))
    monkeypatch.setattr(settings, "audit_log_path", str(tmp_path / "ai_edit_logs.json"))

    result = json.loads(await workflows.edit_workflow("wf1", "x"))
    assert result["kind"] == "NoJsonFound"
    assert result["stage"] == "extracting"
