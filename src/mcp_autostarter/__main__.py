"""Allow running MCP Autostarter with ``python -m mcp_autostarter``."""

from mcp_autostarter.cli import main

if __name__ == "__main__":
    main()
