"""The Helios-9 gateway: tools, resources and prompts behind one object.

``HeliosGateway`` is transport independent. ``server.create_server`` binds it
to the MCP low-level server for stdio, and tests drive it directly.
"""
import logging
from typing import Any, Optional

import httpx
from mcp.types import CallToolResult, GetPromptResult, Prompt, Resource, ResourceTemplate, Tool

from . import formatters
from .api_client import ApiSession, RemoteDataClient
from .auth import AuthContext, AuthGate
from .config import Settings, get_settings
from .errors import InternalError
from .prompts import PromptCatalog
from .registry import ToolRegistry
from .resources import ResourceRouter
from .tools import build_registry, get_tools

logger = logging.getLogger("helios-mcp.gateway")


class HeliosGateway:
    """Owns the HTTP session, auth gate and registry for one server process."""

    def __init__(self, settings: Settings, session: ApiSession, gate: AuthGate, registry: ToolRegistry):
        self.settings = settings
        self.session = session
        self.gate = gate
        self.registry = registry
        self.resources = ResourceRouter(registry)
        self.prompts = PromptCatalog(registry)

    @classmethod
    def create(
        cls,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "HeliosGateway":
        """Wire up a gateway from settings.

        Args:
            settings: Defaults to ``get_settings()``
            transport: Custom httpx transport, e.g. ``httpx.MockTransport`` in tests
        """
        settings = settings or get_settings()
        session = ApiSession(settings, transport=transport)
        gate = AuthGate(session, settings)
        client = RemoteDataClient(session, gate)
        registry = build_registry(client, gate)
        logger.info(f"Registered {len(registry)} tools against {settings.api_url}")
        return cls(settings, session, gate, registry)

    async def authenticate(self) -> AuthContext:
        return await self.gate.authenticate()

    def list_tools(self) -> list[Tool]:
        """Every registered tool. Needs no authentication."""
        return get_tools(self.registry)

    async def call_tool(self, name: str, arguments: Any = None) -> CallToolResult:
        """Run a tool and wrap the outcome in the response envelope. Never raises."""
        logger.info(f"Tool call: {name}")
        outcome = await self.registry.dispatch(name, arguments)
        try:
            return formatters.format_outcome(outcome)
        except Exception:
            logger.exception(f"{name}: result could not be serialized")
            return formatters.error_result(InternalError(), name)

    def list_resources(self) -> list[Resource]:
        return self.resources.list_resources()

    def list_resource_templates(self) -> list[ResourceTemplate]:
        return self.resources.list_resource_templates()

    async def read_resource(self, uri: str) -> tuple[str, str]:
        return await self.resources.read(uri)

    def list_prompts(self) -> list[Prompt]:
        return self.prompts.list_prompts()

    async def get_prompt(self, name: str, arguments: Optional[dict] = None) -> GetPromptResult:
        return await self.prompts.get_prompt(name, arguments)

    async def aclose(self) -> None:
        self.gate.clear_auth()
        await self.session.aclose()
