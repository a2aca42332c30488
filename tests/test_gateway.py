"""Tests for the gateway call pipeline and response envelope."""
import asyncio
import json
from datetime import datetime

import pytest

from helios_mcp.config import Settings
from helios_mcp.errors import DuplicateToolError, InternalError
from helios_mcp.gateway import HeliosGateway
from helios_mcp.registry import ToolDescriptor, ToolRegistry
from helios_mcp.schemas import NoArguments

from conftest import API_KEY, API_URL, TENANT_ID, USER_ID, result_payload

OTHER_USER_ID = "44444444-4444-4444-8444-444444444444"
OTHER_TENANT_ID = "55555555-5555-4555-8555-555555555555"


class TestToolListing:
    """Test tool discovery."""

    async def test_list_tools_needs_no_authentication(self, backend):
        """Test that listing tools works without a key and makes no backend request."""
        gateway = HeliosGateway.create(Settings(api_url=API_URL), transport=backend.transport())
        try:
            tools = gateway.list_tools()
        finally:
            await gateway.aclose()

        assert len(tools) > 0
        assert backend.requests == []

    async def test_list_tools_is_idempotent(self, gateway):
        """Test that two listings return the same tools in the same order."""
        first = [(tool.name, tool.inputSchema) for tool in gateway.list_tools()]
        second = [(tool.name, tool.inputSchema) for tool in gateway.list_tools()]
        assert first == second

    async def test_every_tool_has_object_schema(self, gateway):
        """Test that every tool advertises an object input schema."""
        for tool in gateway.list_tools():
            assert tool.inputSchema["type"] == "object", tool.name
            assert tool.description, tool.name

    async def test_core_tools_registered(self, gateway):
        """Test that the core entity tools are present."""
        names = {tool.name for tool in gateway.list_tools()}
        for expected in [
            "list_projects", "get_project", "create_project", "update_project",
            "list_tasks", "create_task", "update_task",
            "list_documents", "create_document", "search_documents",
            "list_initiatives", "create_milestone",
            "save_conversation", "get_smart_context", "universal_search",
            "get_project_analytics", "debug_environment",
        ]:
            assert expected in names

    async def test_required_fields_in_schema(self, gateway):
        """Test that required arguments are marked required in the schema."""
        tools = {tool.name: tool for tool in gateway.list_tools()}
        assert tools["create_project"].inputSchema["required"] == ["name"]
        assert set(tools["create_document"].inputSchema["required"]) == {
            "project_id", "title", "content", "document_type"
        }


class TestEnvelope:
    """Test the success and error envelope."""

    async def test_unknown_tool(self, gateway, backend):
        """Test that an unknown tool yields an error envelope and no backend call."""
        result = await gateway.call_tool("launch_rockets", {})

        assert result.isError is True
        payload = result_payload(result)
        assert payload["error"] == "UnknownToolError: Unknown tool: launch_rockets"
        assert payload["tool"] == "launch_rockets"
        datetime.fromisoformat(payload["timestamp"])
        assert backend.requests == []

    async def test_validation_happens_before_authentication(self, gateway, backend):
        """Test that invalid arguments are rejected without touching the backend."""
        result = await gateway.call_tool("create_project", {"name": ""})

        assert result.isError is True
        assert result_payload(result)["error"].startswith("ValidationError: Invalid arguments: name")
        assert backend.requests == []

    async def test_all_violations_reported(self, gateway):
        """Test that every violated constraint is listed in one error."""
        result = await gateway.call_tool("create_task", {"title": "", "priority": "extreme"})

        message = result_payload(result)["error"]
        assert "project_id" in message
        assert "title" in message
        assert "priority" in message

    async def test_non_object_arguments(self, gateway):
        """Test that a non-object argument value is a validation error."""
        result = await gateway.call_tool("list_projects", ["not", "an", "object"])

        assert result.isError is True
        assert "expected an object" in result_payload(result)["error"]

    async def test_missing_key_is_unauthorized(self, backend):
        """Test that calls without a configured key fail with UnauthorizedError."""
        gateway = HeliosGateway.create(Settings(api_url=API_URL), transport=backend.transport())
        try:
            result = await gateway.call_tool("list_projects", {})
        finally:
            await gateway.aclose()

        assert result.isError is True
        assert result_payload(result)["error"].startswith("UnauthorizedError:")
        assert backend.requests == []

    async def test_rejected_key_makes_no_data_request(self, backend):
        """Test that a rejected key stops the call before any data request."""
        gateway = HeliosGateway.create(
            Settings(api_key="wrong-key", api_url=API_URL), transport=backend.transport()
        )
        try:
            result = await gateway.call_tool("list_projects", {})
        finally:
            await gateway.aclose()

        assert result_payload(result)["error"] == "UnauthorizedError: Authentication failed: Invalid API key"
        assert backend.data_requests == []

    async def test_success_envelope(self, gateway, backend):
        """Test that a successful call returns pretty-printed JSON."""
        backend.add("projects", name="Apollo", status="active", user_id=USER_ID)

        result = await gateway.call_tool("list_projects", {})

        assert result.isError is False
        assert result.content[0].text.startswith("{\n  ")
        payload = result_payload(result)
        assert payload["total"] == 1
        assert payload["projects"][0]["name"] == "Apollo"

    async def test_remote_failure(self, gateway, backend):
        """Test that a backend 5xx becomes a RemoteFailure envelope."""
        backend.fail_status = 503

        result = await gateway.call_tool("list_projects", {})

        assert result_payload(result)["error"] == "RemoteFailure: Helios-9 API error (HTTP 503)"

    async def test_every_tool_answers_with_an_envelope(self, gateway):
        """Test that each tool returns a JSON envelope for empty and non-object arguments."""
        for tool in gateway.list_tools():
            required = tool.inputSchema.get("required", [])

            empty = await gateway.call_tool(tool.name, {})
            assert isinstance(empty.isError, bool), tool.name
            payload = result_payload(empty)
            if required:
                assert empty.isError is True, tool.name
                assert payload["error"].startswith("ValidationError:"), tool.name
                for field in required:
                    assert field in payload["error"], (tool.name, field)

            wrong_shape = await gateway.call_tool(tool.name, "not an object")
            assert wrong_shape.isError is True, tool.name
            assert result_payload(wrong_shape)["tool"] == tool.name

    async def test_unserializable_result_is_internal_error(self, gateway):
        """Test that a result that cannot be encoded still yields an error envelope."""
        async def opaque(args, client):
            return {"value": object()}

        registry = ToolRegistry(gateway.registry.client, gateway.gate)
        registry.register(ToolDescriptor("opaque", "Returns an opaque object", NoArguments, opaque))
        custom = HeliosGateway(gateway.settings, gateway.session, gateway.gate, registry)

        result = await custom.call_tool("opaque", {})

        assert result.isError is True
        payload = result_payload(result)
        assert payload["error"] == "InternalError: Internal error while executing tool"
        assert payload["tool"] == "opaque"

    async def test_not_found(self, gateway):
        """Test that a missing entity names the resource and id."""
        project_id = "33333333-3333-4333-8333-333333333333"

        result = await gateway.call_tool("get_project", {"project_id": project_id})

        assert result_payload(result)["error"] == f"NotFoundError: Project with ID {project_id} not found"


class TestCreateProjectScenario:
    """Test the create_project round trip end to end."""

    async def test_create_project(self, gateway, backend):
        """Test that create_project validates, authenticates, scopes and wraps the result."""
        result = await gateway.call_tool("create_project", {"name": "Apollo", "description": "Moonshot"})

        assert result.isError is False
        payload = result_payload(result)
        assert payload["project"]["name"] == "Apollo"
        assert payload["project"]["status"] == "active"
        assert payload["message"] == 'Project "Apollo" created successfully'

        assert backend.validate_calls == 1
        create = backend.data_requests[0]
        assert create.method == "POST"
        assert create.url.path == "/api/mcp/projects"
        assert create.headers["Authorization"] == "Bearer test-api-key"
        assert create.headers["X-MCP-Client"] == "helios9-mcp-server"
        assert payload["project"]["user_id"] == USER_ID


class TestScoping:
    """Test that every data request carries the caller's scope."""

    async def test_spoofed_user_id_is_replaced(self, gateway, backend):
        """Test that caller-supplied user ids never reach the backend."""
        spoofed = "99999999-9999-4999-8999-999999999999"

        await gateway.call_tool("list_projects", {"user_id": spoofed})
        await gateway.call_tool("create_project", {"name": "Mine", "user_id": spoofed})

        assert len(backend.data_requests) == 2
        for request in backend.data_requests:
            assert request.url.params["user_id"] == USER_ID
            assert spoofed not in str(request.url)
            assert spoofed.encode() not in request.content

    async def test_each_identity_keeps_its_own_scope(self, backend):
        """Test that two identities never see each other's user or tenant in requests."""
        other_key = "other-api-key"
        backend.valid_keys.add(other_key)
        backend.users[other_key] = {"id": OTHER_USER_ID, "email": "other@helios.test", "tenant_id": OTHER_TENANT_ID}
        mine = HeliosGateway.create(Settings(api_key=API_KEY, api_url=API_URL), transport=backend.transport())
        theirs = HeliosGateway.create(Settings(api_key=other_key, api_url=API_URL), transport=backend.transport())
        try:
            await mine.call_tool("list_projects", {"tenant_id": OTHER_TENANT_ID})
            await theirs.call_tool("create_project", {"name": "Theirs", "user_id": USER_ID, "tenant_id": TENANT_ID})
            await mine.call_tool("create_project", {"name": "Mine", "tenant_id": OTHER_TENANT_ID})
            await theirs.call_tool("list_tasks", {"user_id": USER_ID})
        finally:
            await mine.aclose()
            await theirs.aclose()

        assert len(backend.data_requests) == 4
        for request in backend.data_requests:
            owner = backend.user_for(request)
            assert request.url.params["user_id"] == owner["id"]
            assert request.url.params["tenant_id"] == owner["tenant_id"]
            if request.content:
                body = json.loads(request.content)
                assert body["user_id"] == owner["id"]
                assert body["tenant_id"] == owner["tenant_id"]

        owners = {project["name"]: project["user_id"] for project in backend.store["projects"].values()}
        assert owners == {"Theirs": OTHER_USER_ID, "Mine": USER_ID}

    async def test_concurrent_first_calls_share_one_validation(self, gateway, backend):
        """Test that concurrent first calls trigger a single credential check."""
        backend.delay = 0.01

        results = await asyncio.gather(*(gateway.call_tool("list_projects", {}) for _ in range(5)))

        assert all(result.isError is False for result in results)
        assert backend.validate_calls == 1


class TestRegistry:
    """Test registry construction and the dispatch boundary."""

    async def test_duplicate_tool_rejected(self, gateway):
        """Test that registering a second tool with the same name fails."""
        registry = ToolRegistry(gateway.registry.client, gateway.gate)
        descriptor = ToolDescriptor("ping", "Ping", NoArguments, handler=lambda args, client: None)
        registry.register(descriptor)

        with pytest.raises(DuplicateToolError):
            registry.register(descriptor)

    async def test_frozen_registry_rejects_registration(self, gateway):
        """Test that the built registry cannot be extended."""
        descriptor = ToolDescriptor("ping", "Ping", NoArguments, handler=lambda args, client: None)
        with pytest.raises(RuntimeError):
            gateway.registry.register(descriptor)

    async def test_unexpected_error_is_hidden(self, gateway):
        """Test that unclassified exceptions become a generic InternalError."""
        async def explode(args, client):
            raise RuntimeError("database password is hunter2")

        registry = ToolRegistry(gateway.registry.client, gateway.gate)
        registry.register(ToolDescriptor("explode", "Always fails", NoArguments, explode))

        outcome = await registry.dispatch("explode", {})

        assert not outcome.ok
        assert isinstance(outcome.error, InternalError)
        assert "hunter2" not in outcome.error.message
