"""
Text Extractor
Isolates the JSON object a model answered with, ignoring code fences and prose.
"""
import re

from n8n_editor.core.exceptions import NoJsonFound, TruncatedJson

CODE_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    """Remove every opening and closing fence marker, then trim."""
    return CODE_FENCE.sub("", text).strip()


def extract_json_object(text: str) -> str:
    """
    Return the first complete, balanced JSON object in the text.

    Scanning starts at the first '{' and tracks depth, skipping braces that
    appear inside JSON strings, so stray braces in trailing prose are ignored.

    Raises:
        NoJsonFound: the text contains no '{' at all.
        TruncatedJson: an object starts but never closes.
    """
    cleaned = strip_code_fences(text)
    start = cleaned.find("{")
    if start == -1:
        raise NoJsonFound("No valid JSON in AI response", details={"excerpt": cleaned[:200]})

    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(cleaned)):
        char = cleaned[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return cleaned[start:index + 1]

    raise TruncatedJson(
        "AI response contains an unterminated JSON object",
        details={"depth": depth, "excerpt": cleaned[-200:]}
    )
