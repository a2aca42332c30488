"""Tests for HTTP error mapping in the API session."""
import httpx
import pytest

from helios_mcp.api_client import ApiSession
from helios_mcp.config import Settings
from helios_mcp.errors import (
    BackendValidationError,
    NotFoundError,
    RemoteFailure,
    UnauthorizedError,
    UnknownRemoteError,
    ValidationError,
)

from conftest import API_URL


def session_returning(response: httpx.Response) -> ApiSession:
    return ApiSession(Settings(api_url=API_URL), transport=httpx.MockTransport(lambda request: response))


def session_raising(exc: Exception) -> ApiSession:
    def handler(request):
        raise exc

    return ApiSession(Settings(api_url=API_URL), transport=httpx.MockTransport(handler))


class TestErrorMapping:
    """Test that every HTTP outcome maps onto the error taxonomy."""

    @pytest.mark.parametrize("status", [401, 403])
    async def test_auth_failures(self, status):
        """Test that 401 and 403 raise UnauthorizedError with the backend's message."""
        session = session_returning(httpx.Response(status, json={"error": "Key revoked"}))
        with pytest.raises(UnauthorizedError) as exc_info:
            await session.request("GET", "/api/mcp/projects")
        assert exc_info.value.message == "Authentication failed: Key revoked"
        await session.aclose()

    async def test_not_found(self):
        """Test that 404 names the requested resource."""
        session = session_returning(httpx.Response(404, json={"error": "nope"}))
        with pytest.raises(NotFoundError) as exc_info:
            await session.request("GET", "/api/mcp/tasks/abc", resource="Task", resource_id="abc")
        assert exc_info.value.message == "Task with ID abc not found"
        assert exc_info.value.resource == "Task"
        await session.aclose()

    @pytest.mark.parametrize("status", [400, 409, 422])
    async def test_rejected_requests(self, status):
        """Test that 400, 409 and 422 raise a ValidationError subclass."""
        session = session_returning(httpx.Response(status, json={"message": "title is too long"}))
        with pytest.raises(BackendValidationError) as exc_info:
            await session.request("POST", "/api/mcp/tasks", json={})
        assert isinstance(exc_info.value, ValidationError)
        assert exc_info.value.violations == ["title is too long"]
        await session.aclose()

    @pytest.mark.parametrize("status", [500, 502, 503])
    async def test_server_errors(self, status):
        """Test that 5xx responses are retryable RemoteFailures."""
        session = session_returning(httpx.Response(status, text="upstream down"))
        with pytest.raises(RemoteFailure) as exc_info:
            await session.request("GET", "/api/mcp/projects")
        assert exc_info.value.status_code == status
        assert exc_info.value.retryable is True
        await session.aclose()

    async def test_unexpected_status(self):
        """Test that an unclassified status keeps the payload for logging."""
        session = session_returning(httpx.Response(418, text="teapot"))
        with pytest.raises(UnknownRemoteError) as exc_info:
            await session.request("GET", "/api/mcp/projects")
        assert exc_info.value.status_code == 418
        assert exc_info.value.payload == "teapot"
        await session.aclose()

    async def test_non_json_body(self):
        """Test that an undecodable success body is an UnknownRemoteError."""
        session = session_returning(httpx.Response(200, text="<html>"))
        with pytest.raises(UnknownRemoteError):
            await session.request("GET", "/api/mcp/projects")
        await session.aclose()

    async def test_empty_body(self):
        """Test that 204 responses decode to an empty dict."""
        session = session_returning(httpx.Response(204))
        assert await session.request("PATCH", "/api/mcp/projects/x/tasks", json={}) == {}
        await session.aclose()

    async def test_timeout(self):
        """Test that timeouts become RemoteFailure."""
        session = session_raising(httpx.ReadTimeout("slow"))
        with pytest.raises(RemoteFailure) as exc_info:
            await session.request("GET", "/api/mcp/projects")
        assert "timed out" in exc_info.value.message
        await session.aclose()

    async def test_connection_error(self):
        """Test that transport errors become RemoteFailure without a status."""
        session = session_raising(httpx.ConnectError("refused"))
        with pytest.raises(RemoteFailure) as exc_info:
            await session.request("GET", "/api/mcp/projects")
        assert exc_info.value.status_code is None
        await session.aclose()


class TestCredentialValidation:
    """Test the credential validation call."""

    async def test_profile_returned(self):
        """Test that the validated user is returned as a Profile."""
        captured = []

        def handler(request):
            captured.append(request)
            return httpx.Response(200, json={"user": {"id": "u-1", "email": "a@b.c", "tenant_id": "t-1"}})

        session = ApiSession(Settings(api_url=API_URL), transport=httpx.MockTransport(handler))
        session.set_credential("secret")
        profile = await session.validate_credential()
        await session.aclose()

        assert profile.id == "u-1"
        assert profile.tenant_id == "t-1"
        assert captured[0].method == "POST"
        assert captured[0].url.path == "/api/auth/validate"
        assert captured[0].headers["Authorization"] == "Bearer secret"

    async def test_malformed_response(self):
        """Test that a response without a user is an UnknownRemoteError."""
        session = session_returning(httpx.Response(200, json={"ok": True}))
        with pytest.raises(UnknownRemoteError):
            await session.validate_credential()
        await session.aclose()
