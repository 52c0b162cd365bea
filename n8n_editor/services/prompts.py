"""
Prompt Assembly
Instruction template for the workflow editor model and its placeholders.
"""
import json
import re
from typing import Any, Dict

USER_REQUEST_PLACEHOLDER = "{{user_request}}"
CURRENT_WORKFLOW_PLACEHOLDER = "{{current_workflow}}"
PLACEHOLDER = re.compile(r"\{\{(?:user_request|current_workflow)\}\}")

AI_EDITOR_PROMPT = """You are an n8n Workflow Editor AI Assistant.

Your job: Modify n8n workflows based on user requests.

CRITICAL RULES:
1. Output ONLY valid JSON (no explanations, no markdown)
2. Return ONLY these fields: { "name", "nodes", "connections", "settings" }
3. Do NOT include: id, createdAt, updatedAt, active, isArchived, tags, versionId
4. n8n uses "disabled": true in node parameters to disable nodes - if user says "remove disabled nodes", filter out nodes where parameters.disabled === true
5. When removing nodes, also remove their connections
6. Keep all other nodes and connections unchanged unless explicitly requested

n8n Node Structure:
- Each node has: id, name, type, typeVersion, position, parameters, credentials
- "disabled" nodes have: "parameters": { "disabled": true, ... }
- Connections format: { "NodeName": { "main": [[ { "node": "TargetNode", "type": "main", "index": 0 } ]] } }

Common User Requests:
- "remove disabled nodes" -> Filter out nodes where parameters.disabled === true
- "remove [node name]" -> Remove node by name and its connections
- "add delay" -> Add n8n-nodes-base.wait node with amount/unit parameters
- "undo" -> You CANNOT undo, respond with explanation

User Request: {{user_request}}

Current Workflow (JSON):
{{current_workflow}}

RETURN ONLY: { "name": "...", "nodes": [...], "connections": {...}, "settings": {...} }"""

REPROMPT_SUFFIX = """

Your previous output was not valid JSON ({error}).
Previous output (truncated):
{previous_output}

Respond again with ONLY the JSON object, nothing else."""


def build_prompt(template: str, user_request: str, current_workflow: Dict[str, Any]) -> str:
    """Substitute the user request and the pretty-printed workflow into the template."""
    values = {
        USER_REQUEST_PLACEHOLDER: user_request,
        CURRENT_WORKFLOW_PLACEHOLDER: json.dumps(current_workflow, indent=2),
    }
    # Single pass: substituted text is never scanned for placeholders again.
    return PLACEHOLDER.sub(lambda match: values[match.group(0)], template)


def build_reprompt(prompt: str, previous_output: str, error: str, limit: int = 1000) -> str:
    return prompt + REPROMPT_SUFFIX.format(error=error, previous_output=previous_output[:limit])
