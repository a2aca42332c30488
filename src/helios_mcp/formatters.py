"""Response envelope for MCP tool calls.

Every tool call produces one ``CallToolResult`` with a single text block:
the pretty-printed JSON result on success, or an error object carrying the
error kind, the tool name and a UTC timestamp.
"""
import json
from datetime import datetime, timezone
from typing import Any, Optional

from mcp.types import CallToolResult, TextContent
from pydantic_core import to_jsonable_python

from .errors import GatewayError
from .registry import ToolOutcome


def to_json(value: Any) -> str:
    """Serialize results (models, UUIDs, datetimes included) as indented JSON."""
    return json.dumps(to_jsonable_python(value), indent=2, ensure_ascii=False)


def format_error(error: GatewayError, tool: str, timestamp: Optional[datetime] = None) -> dict:
    timestamp = timestamp or datetime.now(timezone.utc)
    return {
        "error": f"{error.kind}: {error.message}",
        "tool": tool,
        "timestamp": timestamp.isoformat(),
    }


def success_result(value: Any) -> CallToolResult:
    return CallToolResult(content=[TextContent(type="text", text=to_json(value))], isError=False)


def error_result(error: GatewayError, tool: str) -> CallToolResult:
    return CallToolResult(
        content=[TextContent(type="text", text=to_json(format_error(error, tool)))],
        isError=True,
    )


def format_outcome(outcome: ToolOutcome) -> CallToolResult:
    if outcome.ok:
        return success_result(outcome.value)
    return error_result(outcome.error, outcome.tool)
