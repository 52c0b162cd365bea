"""
Stdio Entrypoint - For MCP Client Integration
Runs the FastMCP server in stdio mode so an agent can list, create and edit workflows.
"""
import os
import sys
from pathlib import Path

# Change to script directory and ensure the package is in path
script_dir = Path(__file__).parent.resolve()
os.chdir(script_dir)
sys.path.insert(0, str(script_dir))

from n8n_editor.main import mcp

if __name__ == "__main__":
    try:
        mcp.run()
    except KeyboardInterrupt:
        pass
