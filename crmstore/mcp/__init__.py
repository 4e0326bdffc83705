"""MCP surface for crmstore: tool/resource registry and server."""
