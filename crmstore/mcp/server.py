"""crmstore MCP Server - Model Context Protocol server for the CRM person store.

Provides 15 tools (see crmstore.mcp.registry for the full table):

Lookup (7):
- get_person_by_id, get_person_by_name, get_person_by_surname
- get_persons_by_skill, get_persons_by_department, get_persons_by_role
- get_all_persons

Search (1):
- search_persons: case-insensitive substring search

Mutation (3):
- add_person, update_person, delete_person

Analytics (4):
- get_skill_statistics, get_average_age
- get_oldest_person, get_most_skilled_person

Resources: person schema, department/role/skill lookups, database info,
and the full person list.

"Nothing found" is a normal result (null, [] or deleted=false). Errors
come back as {"success": false, "error_code": ..., "error": ...}.
"""

import json
from typing import Any, Dict, Optional

try:
    from mcp.server import Server
    from mcp.server.stdio import stdio_server
    from mcp.types import Resource, TextContent, Tool

    MCP_AVAILABLE = True
except ImportError:
    MCP_AVAILABLE = False

from crmstore.core.store import StorageError
from crmstore.mcp import handlers
from crmstore.mcp.registry import RESOURCES, TOOLS, ToolSpec, get_resource, get_tool
from crmstore.mcp.validation import (
    ErrorCode,
    error_response,
    is_error_response,
    missing_arguments,
)

configure = handlers.configure


# ============================================================================
# Dispatch
# ============================================================================


def _log_result(spec: ToolSpec, arguments: Dict[str, Any], result: Any) -> None:
    """Record a completed tool call in the activity log."""
    logger = handlers.logger_instance()
    if logger is None:
        return

    if is_error_response(result):
        logger.log_error(result["error_code"], result["error"], tool=spec.name, details={"arguments": arguments})
    elif spec.operation == "read":
        logger.log_read(spec.name, arguments, found=result is not None)
    elif spec.operation == "search":
        logger.log_search(spec.name, arguments, result_count=len(result))
    elif spec.operation == "aggregate":
        logger.log_aggregate(spec.name, result)
    elif spec.operation == "create":
        logger.log_write(result.get("id"), "create", changed=True, tool=spec.name)
    elif spec.operation == "update":
        logger.log_write(arguments.get("id"), "update", changed=result is not None, tool=spec.name)
    elif spec.operation == "delete":
        logger.log_write(result.get("id"), "delete", changed=result.get("deleted", False), tool=spec.name)


def _log_failure(tool: str, response: Dict[str, Any]) -> None:
    logger = handlers.logger_instance()
    if logger is not None:
        logger.log_error(response["error_code"], response["error"], tool=tool)


def call_tool(name: str, arguments: Optional[Dict[str, Any]] = None) -> Any:
    """Resolve and run a tool by name or alias.

    Arguments not declared in the tool's schema are ignored.

    Returns:
        The handler result, or a structured error response for unknown
        tools, missing arguments, an unconfigured server, or storage failures
    """
    arguments = arguments or {}

    spec = get_tool(name)
    if spec is None:
        return error_response(
            ErrorCode.UNKNOWN_TOOL,
            f"Unknown tool: {name}",
            hint=f"Available tools: {', '.join(t.name for t in TOOLS)}",
        )

    if not handlers.is_configured():
        return error_response(ErrorCode.NOT_INITIALIZED, handlers.NOT_INIT_MSG)

    missing = missing_arguments(arguments, spec.required)
    if missing:
        response = error_response(
            ErrorCode.VALIDATION_ERROR,
            f"Missing required arguments: {', '.join(missing)}",
            details={"missing_fields": missing},
        )
        _log_failure(spec.name, response)
        return response

    kwargs = {k: v for k, v in arguments.items() if k in spec.properties}

    try:
        result = spec.handler(**kwargs)
    except StorageError as e:
        response = error_response(
            ErrorCode.SYSTEM_ERROR,
            str(e),
            details={"type": type(e).__name__},
        )
        _log_failure(spec.name, response)
        return response

    _log_result(spec, kwargs, result)
    return result


def read_resource(uri: str) -> Any:
    """Read a resource by URI.

    Raises:
        ValueError: If no resource has this URI
    """
    spec = get_resource(uri)
    if spec is None:
        raise ValueError(f"Unknown resource: {uri}")
    return spec.reader()


# ============================================================================
# MCP Server Setup
# ============================================================================


def _tool_description(spec: ToolSpec) -> str:
    if spec.aliases:
        return f"{spec.description} Aliases: {', '.join(spec.aliases)}."
    return spec.description


def create_server(name: str = "crmstore") -> "Server":
    """Create and configure the MCP server."""
    if not MCP_AVAILABLE:
        raise RuntimeError("MCP package not installed. Install with: pip install 'crmstore[mcp]'")

    server = Server(name)

    @server.list_tools()
    async def list_tools():
        return [
            Tool(
                name=spec.name,
                description=_tool_description(spec),
                inputSchema=spec.input_schema,
            )
            for spec in TOOLS
        ]

    @server.call_tool()
    async def handle_call_tool(tool_name: str, arguments: dict):
        try:
            result = call_tool(tool_name, arguments)
            return [TextContent(type="text", text=json.dumps(result, indent=2, default=str))]

        except Exception as e:
            error_result = error_response(
                ErrorCode.SYSTEM_ERROR, str(e), details={"type": type(e).__name__}
            )
            _log_failure(tool_name, error_result)
            return [TextContent(type="text", text=json.dumps(error_result))]

    @server.list_resources()
    async def list_resources():
        return [
            Resource(
                uri=spec.uri,
                name=spec.name,
                description=spec.description,
                mimeType=spec.mime_type,
            )
            for spec in RESOURCES
        ]

    @server.read_resource()
    async def handle_read_resource(uri) -> str:
        return json.dumps(read_resource(str(uri)), indent=2, default=str)

    return server


async def run_server(name: str = "crmstore"):
    """Run the MCP server over stdio."""
    if not MCP_AVAILABLE:
        raise RuntimeError("MCP package not installed. Install with: pip install 'crmstore[mcp]'")

    server = create_server(name)
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


def serve(config) -> None:
    """Build the configured store, serve until stdin closes, then close the store."""
    import asyncio

    from crmstore.core.config import create_logger, create_store

    store = create_store(config)
    logger = create_logger(config)
    configure(store, logger)
    if logger:
        logger.log("server", {"event": "start", "backend": config.storage.backend})
    try:
        asyncio.run(run_server(config.server.name))
    finally:
        if logger:
            logger.log("server", {"event": "stop"})
        configure(None)
        store.close()


def main():
    """CLI entry point for the MCP server."""
    from crmstore.core.config import load_config

    serve(load_config())


if __name__ == "__main__":
    main()
