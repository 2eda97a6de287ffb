"""
Server entry points.

Two transports share one registry and one dispatcher:

- ``line``: the built-in line-delimited JSON-RPC loop in ``transport``
- ``sdk``: the official MCP Python SDK (``mcp.server.Server`` over stdio)
"""

import logging
from typing import Any, Dict, List

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import CallToolResult, Tool

from .config import ServerConfig
from .core.dispatcher import Dispatcher
from .core.tools import ToolRegistry
from .results import text_content
from .transport import MessageHandler, run_stdio

logger = logging.getLogger(__name__)

TRANSPORTS = ("line", "sdk")


def create_sdk_server(config: ServerConfig, dispatcher: Dispatcher) -> Server:
    """Build an MCP SDK server whose handlers delegate to ``dispatcher``."""
    server = Server(config.server_name, version=config.server_version)
    registry = dispatcher.registry

    @server.list_tools()
    async def list_tools() -> List[Tool]:
        """Return available git tools"""
        return registry.list_tools()

    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: Dict[str, Any]) -> CallToolResult:
        result = await dispatcher.dispatch(name, arguments or {})
        return CallToolResult(content=text_content(result), isError=result.is_error)

    return server


async def serve_sdk(config: ServerConfig, dispatcher: Dispatcher) -> None:
    server = create_sdk_server(config, dispatcher)
    options = server.create_initialization_options()
    async with stdio_server() as (read_stream, write_stream):
        logger.info("Server running. Waiting for requests...")
        await server.run(read_stream, write_stream, options)


async def serve(config: ServerConfig, transport: str = "line") -> None:
    if transport not in TRANSPORTS:
        raise ValueError(f"Unknown transport: {transport}")

    logger.info(f"Starting git MCP server ({transport} transport)")
    logger.info(f"Repository: {config.repository}")

    registry = ToolRegistry()
    dispatcher = Dispatcher(config, registry)
    try:
        if transport == "sdk":
            await serve_sdk(config, dispatcher)
        else:
            await run_stdio(MessageHandler(config, dispatcher, registry))
    finally:
        logger.info("Git MCP server shutting down.")
