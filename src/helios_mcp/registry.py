"""Tool registry and dispatch.

A tool is a frozen ``ToolDescriptor``: a name, a description, a pydantic
argument model and an async handler. Every call goes through the same
pipeline::

    Received -> Validating -> Authenticating -> Executing -> Completed
                    |               |               |
                    +---------------+---------------+--> Rejected

``execute`` raises classified ``GatewayError``s. ``dispatch`` is the single
boundary that turns any outcome, including unexpected exceptions, into a
``ToolOutcome`` value.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

from .api_client import RemoteDataClient
from .auth import AuthGate
from .errors import DuplicateToolError, GatewayError, InternalError, UnknownToolError
from .schemas import ToolArguments
from .validation import validate_arguments

logger = logging.getLogger("helios-mcp.registry")

ToolHandler = Callable[[Any, RemoteDataClient], Awaitable[dict]]


@dataclass(frozen=True)
class ToolDescriptor:
    name: str
    description: str
    arguments_model: type[ToolArguments]
    handler: ToolHandler
    input_schema: dict = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "input_schema", self.arguments_model.model_json_schema())


@dataclass(frozen=True)
class ToolOutcome:
    """Result of one tool call: exactly one of ``value`` or ``error`` is set."""

    tool: str
    value: Optional[dict] = None
    error: Optional[GatewayError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ToolRegistry:
    """Name-unique table of tools plus the call pipeline."""

    def __init__(self, client: RemoteDataClient, gate: AuthGate):
        self.client = client
        self.gate = gate
        self._tools: dict[str, ToolDescriptor] = {}
        self._frozen = False

    def register(self, descriptor: ToolDescriptor) -> None:
        if self._frozen:
            raise RuntimeError("Tool registry is frozen")
        if descriptor.name in self._tools:
            raise DuplicateToolError(descriptor.name)
        self._tools[descriptor.name] = descriptor

    def freeze(self) -> None:
        self._frozen = True

    def list(self) -> list[ToolDescriptor]:
        return list(self._tools.values())

    def get(self, name: str) -> ToolDescriptor:
        try:
            return self._tools[name]
        except KeyError:
            raise UnknownToolError(name) from None

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    async def execute(self, name: str, raw_arguments: Any = None) -> dict:
        """Run one tool call and return its result.

        Raises:
            UnknownToolError: No tool with that name
            ValidationError: Arguments violate the tool's schema
            UnauthorizedError: No valid identity could be established
            GatewayError: Any classified failure from the handler
        """
        descriptor = self.get(name)

        logger.debug(f"{name}: validating")
        arguments = validate_arguments(descriptor.arguments_model, raw_arguments)

        logger.debug(f"{name}: authenticating")
        await self.gate.ensure_authenticated()

        logger.debug(f"{name}: executing")
        result = await descriptor.handler(arguments, self.client)
        logger.debug(f"{name}: completed")
        return result

    async def dispatch(self, name: str, raw_arguments: Any = None) -> ToolOutcome:
        """Run a tool call and capture the outcome. Never raises."""
        try:
            value = await self.execute(name, raw_arguments)
        except GatewayError as e:
            logger.info(f"{name}: rejected ({e.kind}: {e.message})")
            return ToolOutcome(tool=name, error=e)
        except Exception:
            logger.exception(f"{name}: unexpected error")
            return ToolOutcome(tool=name, error=InternalError())
        return ToolOutcome(tool=name, value=value)
