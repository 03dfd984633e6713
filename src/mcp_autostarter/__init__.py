"""MCP Autostarter: start MCP servers automatically and keep them running."""
