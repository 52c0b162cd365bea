"""
Entrypoint - HTTP Server Launcher
"""
import sys
from pathlib import Path

# Ensure the package is importable when run from a checkout
sys.path.insert(0, str(Path(__file__).parent))

import uvicorn

from n8n_editor.core.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "n8n_editor.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info"
    )
