"""Helios-9 MCP Server - Model Context Protocol gateway for Helios-9.

This package exposes Helios-9 projects, initiatives, milestones, tasks,
documents and AI conversations to AI assistants over MCP.

Modules:
- server: stdio MCP server binding
- gateway: tools, resources and prompts behind one object
- registry: tool descriptors and the call pipeline
- tools: the tool catalogue
- handlers: tool implementations
- api_client: Helios-9 REST API client
- auth: API key resolution and request scoping
- formatters: response envelope
"""

__version__ = "1.0.0"

from . import formatters
from . import handlers
from . import tools

__all__ = ["formatters", "tools", "handlers", "__version__"]
