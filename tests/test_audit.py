import json

import pytest

from n8n_editor.services.audit import JsonArrayLog


def test_append_creates_array_file(tmp_path):
    log = JsonArrayLog(str(tmp_path / "ai_edit_logs.json"))
    log.append({"workflowId": "wf1", "success": True})
    log.append({"workflowId": "wf2", "success": False})

    with open(log.path, encoding="utf-8") as f:
        entries = json.load(f)
    assert [entry["workflowId"] for entry in entries] == ["wf1", "wf2"]


def test_corrupt_file_is_kept_aside(tmp_path):
    path = tmp_path / "api_responses.json"
    path.write_text("{not json", encoding="utf-8")

    log = JsonArrayLog(str(path))
    log.append({"status": 200})
    assert log.read() == [{"status": 200}]
    assert (tmp_path / "api_responses.json.corrupt").read_text(encoding="utf-8") == "{not json"


def test_non_array_file_is_kept_aside(tmp_path):
    path = tmp_path / "log.json"
    path.write_text('{"status": 1}', encoding="utf-8")

    log = JsonArrayLog(str(path))
    assert log.read() == []
    log.append({"status": 2})
    assert log.read() == [{"status": 2}]
    assert json.loads((tmp_path / "log.json.corrupt").read_text(encoding="utf-8")) == {"status": 1}


def test_missing_directory_raises_os_error(tmp_path):
    log = JsonArrayLog(str(tmp_path / "missing" / "log.json"))
    with pytest.raises(OSError):
        log.append({"a": 1})
