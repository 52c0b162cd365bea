import json

import pytest

from n8n_editor.core.exceptions import NoJsonFound, TruncatedJson
from n8n_editor.services.extractor import extract_json_object, strip_code_fences

OBJECT = '{"name": "Flow", "nodes": [{"name": "B", "parameters": {}}], "connections": {}}'


@pytest.mark.parametrize(
    "text",
    [
        OBJECT,
        f"```json\n{OBJECT}\n```",
        f"```\n{OBJECT}\n```",
        f"Here is the updated workflow:\n```json\n{OBJECT}\n```\nLet me know if you need anything else.",
        f"Sure! {OBJECT} Done.",
        f"   \n{OBJECT}\n\n",
    ],
)
def test_extracts_single_object_from_fences_and_prose(text):
    assert extract_json_object(text) == OBJECT


def test_strip_code_fences_removes_all_markers():
    assert strip_code_fences("```json\n{}\n```\n```JSON\n[]\n```") == "{}\n\n\n[]"


@pytest.mark.parametrize("text", ["", "no json here", "```json\n```", "[1, 2, 3]", "}"])
def test_no_opening_brace_raises_no_json_found(text):
    with pytest.raises(NoJsonFound) as exc_info:
        extract_json_object(text)
    assert not isinstance(exc_info.value, TruncatedJson)
    assert exc_info.value.kind == "NoJsonFound"


def test_unterminated_object_is_truncated_not_absent():
    with pytest.raises(TruncatedJson) as exc_info:
        extract_json_object('{"name": "Flow", "nodes": [')
    assert exc_info.value.kind == "TruncatedJson"
    # Still a NoJsonFound for callers that only care about "no usable object".
    assert isinstance(exc_info.value, NoJsonFound)


def test_stray_brace_in_trailing_prose_is_ignored():
    text = OBJECT + "\nNote: I removed node {A} and kept the rest }"
    assert extract_json_object(text) == OBJECT


def test_braces_inside_strings_do_not_affect_depth():
    obj = json.dumps({"name": "Flow {draft}", "parameters": {"jsCode": "if (x) { return \"}\"; }"}})
    assert extract_json_object(f"Result: {obj} ok") == obj
    assert json.loads(extract_json_object(obj)) == json.loads(obj)


def test_returns_first_complete_object_when_several_present():
    assert extract_json_object('{"a": 1} and then {"b": 2}') == '{"a": 1}'
