"""Error taxonomy for the gateway.

Every error that can reach an agent is a ``GatewayError``. The class name is the
error kind shown in the response envelope, so renaming a class changes the wire
format.
"""
from typing import Any, Optional


class GatewayError(Exception):
    """Base exception for all classified gateway errors.

    Attributes:
        message: Human readable description, safe to show to the caller.
        code: Stable machine readable code.
    """

    code = "GATEWAY_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    @property
    def kind(self) -> str:
        return type(self).__name__

    def __str__(self) -> str:
        return self.message


class ValidationError(GatewayError):
    """Raised when tool arguments (or a backend write) violate the schema.

    Attributes:
        violations: One ``"<field>: <problem>"`` entry per violated constraint.
    """

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, violations: Optional[list[str]] = None):
        super().__init__(message)
        self.violations = list(violations or [])


class BackendValidationError(ValidationError):
    """Raised when the remote backend rejects a request as invalid."""


class UnauthorizedError(GatewayError):
    """Raised when no valid caller identity is available."""

    code = "UNAUTHORIZED"

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class NotFoundError(GatewayError):
    """Raised when the requested entity does not exist for the caller.

    Attributes:
        resource: Entity kind, e.g. ``"Project"``.
        resource_id: Identifier that was looked up.
    """

    code = "NOT_FOUND"

    def __init__(self, resource: str, resource_id: Optional[str] = None):
        if resource_id:
            message = f"{resource} with ID {resource_id} not found"
        else:
            message = f"{resource} not found"
        super().__init__(message)
        self.resource = resource
        self.resource_id = resource_id


class RemoteFailure(GatewayError):
    """Raised on transport errors, timeouts and 5xx responses.

    Attributes:
        status_code: HTTP status when the backend answered, otherwise None.
    """

    code = "REMOTE_FAILURE"
    retryable = True

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class UnknownToolError(GatewayError):
    """Raised when a tool name is not in the registry."""

    code = "UNKNOWN_TOOL"

    def __init__(self, tool_name: str):
        super().__init__(f"Unknown tool: {tool_name}")
        self.tool_name = tool_name


class InternalError(GatewayError):
    """Raised for unexpected failures. Details stay in the server log."""

    code = "INTERNAL_ERROR"

    def __init__(self, message: str = "Internal error while executing tool"):
        super().__init__(message)


class UnknownRemoteError(InternalError):
    """Raised when the backend answers in a way we cannot classify.

    Attributes:
        status_code: HTTP status of the response.
        payload: Original response body, kept for logging only.
    """

    code = "UNKNOWN_REMOTE_ERROR"

    def __init__(self, message: str, status_code: Optional[int] = None, payload: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class DuplicateToolError(GatewayError):
    """Raised at startup when two tools share a name."""

    code = "DUPLICATE_TOOL"

    def __init__(self, tool_name: str):
        super().__init__(f"Tool '{tool_name}' is already registered")
        self.tool_name = tool_name


class ConfigurationError(GatewayError):
    """Raised at startup when the server cannot be configured."""

    code = "CONFIGURATION_ERROR"
