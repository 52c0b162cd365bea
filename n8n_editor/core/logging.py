"""
Logging Configuration
One stdout logger per service; DEBUG=true lowers every level to DEBUG.
"""
import logging
import sys
from typing import Any, Optional

from n8n_editor.core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(name: str, level: Optional[int] = None) -> logging.Logger:
    """
    Configure and return a logger instance.

    Args:
        name: Logger name, "n8n.<service>"
        level: Logging level (defaults to DEBUG when settings.debug, else INFO)
    """
    if level is None:
        level = logging.DEBUG if settings.debug else logging.INFO

    logger = logging.getLogger(name)

    # Avoid adding handlers multiple times
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(level)
    return logger


def excerpt(value: Any, limit: int = 200) -> str:
    """Single-line preview of model output or upstream bodies for log lines."""
    text = value if isinstance(value, str) else repr(value)
    text = " ".join(text.split())
    return text if len(text) <= limit else text[:limit] + "..."


store_logger = setup_logging("n8n.store")
model_logger = setup_logging("n8n.model")
editor_logger = setup_logging("n8n.editor")
audit_logger = setup_logging("n8n.audit")
gateway_logger = setup_logging("n8n.gateway")
