"""
Audit Log
Append-only JSON array files used for diagnostics. Nothing reads them back.
"""
import json
import os
from typing import Any, Dict, List, Mapping, Protocol

from n8n_editor.core.config import settings
from n8n_editor.core.logging import audit_logger as logger


class AuditSink(Protocol):
    """Anything with append(entry); append may raise OSError."""

    def append(self, entry: Mapping[str, Any]) -> None:
        ...


class JsonArrayLog:
    """
    Read-modify-write log stored as a single JSON array.
    No locking: concurrent writers can lose entries (last write wins).
    """

    def __init__(self, path: str):
        self.path = path

    def _load(self) -> List[Dict[str, Any]]:
        if not os.path.exists(self.path):
            return []
        with open(self.path, "r", encoding="utf-8") as f:
            entries = json.load(f)
        if not isinstance(entries, list):
            raise ValueError(f"{self.path} holds {type(entries).__name__}, not a JSON array")
        return entries

    def read(self) -> List[Dict[str, Any]]:
        try:
            return self._load()
        except ValueError as e:
            logger.warning(f"{self.path} is not a JSON array: {e}")
            return []

    def append(self, entry: Mapping[str, Any]) -> None:
        """Add one entry. A file that is not a JSON array is kept as <path>.corrupt."""
        try:
            entries = self._load()
        except ValueError as e:
            backup = f"{self.path}.corrupt"
            logger.warning(f"{self.path} is not a JSON array ({e}), moved to {backup}")
            os.replace(self.path, backup)
            entries = []
        entries.append(dict(entry))
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(entries, f, indent=2)


def get_audit_log() -> JsonArrayLog:
    """Sink for AI edit records."""
    return JsonArrayLog(settings.audit_log_path)


def get_proxy_log() -> JsonArrayLog:
    """Sink for proxied create requests and n8n's answers."""
    return JsonArrayLog(settings.proxy_log_path)
