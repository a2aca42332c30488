"""Helios-9 MCP Server - Expose projects, tasks and documents to AI assistants."""
import logging
import sys
from typing import Any, Optional

from mcp.server import Server
from mcp.server.lowlevel.helper_types import ReadResourceContents
from mcp.server.stdio import stdio_server
from mcp.types import CallToolResult, GetPromptResult, Prompt, Resource, ResourceTemplate, Tool
from pydantic import AnyUrl

from .gateway import HeliosGateway

logger = logging.getLogger("helios-mcp")

SERVER_NAME = "helios9-mcp"

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(level: str = "INFO") -> None:
    """Send logs to stderr; stdout carries the MCP stream."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        stream=sys.stderr,
        force=True
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def create_server(gateway: HeliosGateway) -> Server:
    """Bind the gateway to a low-level MCP server."""
    app = Server(SERVER_NAME)

    @app.list_tools()
    async def list_tools() -> list[Tool]:
        return gateway.list_tools()

    # The gateway validates arguments itself so errors use its envelope
    @app.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: Optional[dict[str, Any]]) -> CallToolResult:
        return await gateway.call_tool(name, arguments)

    @app.list_resources()
    async def list_resources() -> list[Resource]:
        return gateway.list_resources()

    @app.list_resource_templates()
    async def list_resource_templates() -> list[ResourceTemplate]:
        return gateway.list_resource_templates()

    @app.read_resource()
    async def read_resource(uri: AnyUrl) -> list[ReadResourceContents]:
        text, mime_type = await gateway.read_resource(str(uri))
        return [ReadResourceContents(content=text, mime_type=mime_type)]

    @app.list_prompts()
    async def list_prompts() -> list[Prompt]:
        return gateway.list_prompts()

    @app.get_prompt()
    async def get_prompt(name: str, arguments: Optional[dict[str, str]] = None) -> GetPromptResult:
        return await gateway.get_prompt(name, arguments)

    return app


async def run_stdio(gateway: HeliosGateway) -> None:
    """Run the MCP server over stdio until the client disconnects."""
    app = create_server(gateway)
    try:
        async with stdio_server() as (read_stream, write_stream):
            await app.run(read_stream, write_stream, app.create_initialization_options())
    finally:
        await gateway.aclose()
        logger.info("MCP Server stopped")
