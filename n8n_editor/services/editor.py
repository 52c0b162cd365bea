"""
AI Edit Pipeline
fetch -> prompt -> generate -> extract -> parse -> sanitize -> update.
Each external call is attempted once; any failure short-circuits the run.
"""
import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Protocol

from n8n_editor.core.client import WorkflowStoreClient, get_client
from n8n_editor.core.config import Settings, settings as process_settings
from n8n_editor.core.exceptions import (
    ConflictError,
    EditorError,
    FetchError,
    NoJsonFound,
    ParseError,
    StoreConflictError,
    StoreError,
    UpdateRejected,
)
from n8n_editor.core.llm import GeminiClient, get_model_client
from n8n_editor.core.logging import editor_logger as logger, excerpt
from n8n_editor.models.schemas import AuditLogEntry
from n8n_editor.services.audit import AuditSink, JsonArrayLog
from n8n_editor.services.extractor import extract_json_object
from n8n_editor.services.prompts import AI_EDITOR_PROMPT, build_prompt, build_reprompt
from n8n_editor.services.sanitizer import disabled_node_names, parse_workflow, sanitize_for_update

SUCCESS_MESSAGE = "Workflow updated successfully! The changes are now live in the editor."
RESPONSE_EXCERPT_LIMIT = 1000


class TextGenerator(Protocol):
    async def generate(self, prompt: str) -> str:
        ...


class PipelineStage(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    PROMPTING = "prompting"
    GENERATING = "generating"
    EXTRACTING = "extracting"
    PARSING = "parsing"
    SANITIZING = "sanitizing"
    UPDATING = "updating"
    DONE = "done"
    FAILED = "failed"


@dataclass
class EditResult:
    workflow_id: str
    message: str
    workflow: Dict[str, Any]
    raw_output: str


class EditPipeline:
    """
    Runs one natural-language edit against one workflow.

    Instances are single-use: `stage` records how far the run got, and the
    error raised on failure carries the stage it failed in.
    """

    def __init__(
        self,
        store,
        model: TextGenerator,
        audit_log: Optional[AuditSink] = None,
        template: str = AI_EDITOR_PROMPT,
        reprompt_on_invalid_json: bool = False
    ):
        self.store = store
        self.model = model
        self.audit_log = audit_log
        self.template = template
        self.reprompt_on_invalid_json = reprompt_on_invalid_json
        self.stage = PipelineStage.IDLE
        self.raw_output: Optional[str] = None
        self.extracted: Optional[str] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "EditPipeline":
        """
        Wire real clients from `settings`. Raises ConfigError before any network attempt.

        The process settings reuse the shared clients; any other Settings gets
        its own clients, which the caller closes.
        """
        api_key = settings.require_model()
        base_url, store_key = settings.require_store()
        if settings is process_settings:
            store, model = get_client(), get_model_client()
        else:
            store = WorkflowStoreClient(base_url, store_key, timeout=settings.http_timeout)
            model = GeminiClient(
                api_key,
                model=settings.gemini_model,
                base_url=settings.gemini_base_url,
                timeout=settings.model_timeout
            )
        return cls(
            store=store,
            model=model,
            audit_log=JsonArrayLog(settings.audit_log_path),
            reprompt_on_invalid_json=settings.reprompt_on_invalid_json
        )

    def _enter(self, stage: PipelineStage):
        self.stage = stage
        logger.debug(f"stage -> {stage.value}")

    async def run(self, workflow_id: str, user_request: str) -> EditResult:
        logger.info(f"Received edit request for workflow: {workflow_id}")
        try:
            result = await self._run(workflow_id, user_request)
        except EditorError as e:
            e.stage = self.stage.value
            logger.error(f"Edit failed at {self.stage.value}: {e.message}")
            if e.details is not None:
                logger.debug(f"Failure details: {excerpt(e.details)}")
            self._enter(PipelineStage.FAILED)
            if self.raw_output is not None:
                await self._record(workflow_id, user_request, success=False, error=e.message)
            raise

        await self._record(workflow_id, user_request, success=True)
        return result

    async def _run(self, workflow_id: str, user_request: str) -> EditResult:
        self._enter(PipelineStage.FETCHING)
        try:
            current, version = await self.store.fetch_workflow_versioned(workflow_id)
        except StoreError as e:
            raise FetchError("Failed to fetch workflow from n8n", details=e.details) from e

        if not isinstance(current, dict):
            raise FetchError("n8n returned an unexpected workflow body", details=current)

        nodes = current.get("nodes")
        logger.info(
            f"Current workflow nodes: {len(nodes) if isinstance(nodes, list) else 0} "
            f"(disabled: {len(disabled_node_names(current))})"
        )

        self._enter(PipelineStage.PROMPTING)
        prompt = build_prompt(self.template, user_request, current)

        edited = await self._generate_workflow(prompt)

        self._enter(PipelineStage.SANITIZING)
        sanitized = sanitize_for_update(edited)
        logger.info("Sanitized workflow - removed metadata fields")

        self._enter(PipelineStage.UPDATING)
        try:
            await self.store.update_workflow(workflow_id, sanitized, version=version)
        except StoreConflictError as e:
            raise ConflictError("Workflow was modified in n8n since it was read", details=e.body) from e
        except StoreError as e:
            raise UpdateRejected("Failed to update workflow in n8n", details=e.body) from e

        self._enter(PipelineStage.DONE)
        logger.info(f"Workflow {workflow_id} updated successfully")
        return EditResult(
            workflow_id=workflow_id,
            message=SUCCESS_MESSAGE,
            workflow=sanitized,
            raw_output=self.raw_output
        )

    async def _generate_workflow(self, prompt: str) -> Dict[str, Any]:
        """Generate, extract and parse; at most one re-prompt when enabled."""
        attempts = 2 if self.reprompt_on_invalid_json else 1
        current_prompt = prompt
        for attempt in range(1, attempts + 1):
            self._enter(PipelineStage.GENERATING)
            self.raw_output = await self.model.generate(current_prompt)
            logger.info(f"Model output ({len(self.raw_output)} chars): {excerpt(self.raw_output)}")
            try:
                return self._parse_output(self.raw_output)
            except (NoJsonFound, ParseError) as e:
                if attempt == attempts:
                    raise
                logger.warning(f"Invalid JSON from model ({e.kind}), re-prompting once")
                current_prompt = build_reprompt(prompt, self.raw_output, e.message)

    def _parse_output(self, raw_output: str) -> Dict[str, Any]:
        self._enter(PipelineStage.EXTRACTING)
        self.extracted = None
        self.extracted = extract_json_object(raw_output)

        self._enter(PipelineStage.PARSING)
        workflow = parse_workflow(self.extracted)
        nodes = workflow.get("nodes")
        logger.info(f"Parsed updated workflow, nodes: {len(nodes) if isinstance(nodes, list) else nodes!r}")
        return workflow

    async def _record(self, workflow_id: str, user_request: str, success: bool, error: Optional[str] = None):
        """Append to the audit log. Failures are reported, never raised."""
        if self.audit_log is None:
            return
        text = self.extracted if self.extracted is not None else (self.raw_output or "")
        entry = AuditLogEntry(
            workflowId=workflow_id,
            userRequest=user_request,
            response=text[:RESPONSE_EXCERPT_LIMIT],
            rawOutput=self.raw_output or "",
            success=success,
            error=error
        )
        try:
            await asyncio.to_thread(self.audit_log.append, entry.model_dump(exclude_none=True))
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to write audit log: {e}")

