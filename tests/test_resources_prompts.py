"""Tests for helios9:// resources and prompt templates."""
import json

import pytest

from helios_mcp.errors import NotFoundError, UnauthorizedError, ValidationError
from helios_mcp.resources import JSON, MARKDOWN, resolve


class TestResolve:
    """Test URI routing."""

    @pytest.mark.parametrize("uri,tool,arguments", [
        ("helios9://projects", "list_projects", {}),
        ("helios9://project/abc", "get_project", {"project_id": "abc"}),
        ("helios9://projects/abc/context", "get_project_context", {"project_id": "abc"}),
        ("helios9://initiatives/abc/milestones", "list_milestones", {"initiative_id": "abc"}),
        ("helios9://tasks?project_id=p1", "list_tasks", {"project_id": "p1"}),
        ("helios9://conversations?project_id=p1", "get_conversations",
         {"project_id": "p1", "include_messages": False}),
        ("helios9://search?q=auth", "universal_search", {"query": "auth"}),
        ("helios9://search/semantic?q=auth", "semantic_search", {"query": "auth"}),
    ])
    def test_routes(self, uri, tool, arguments):
        route = resolve(uri)
        assert route.tool == tool
        assert route.arguments == arguments
        assert route.mime_type == JSON

    def test_fixed_arguments(self):
        """Test that workspace resources carry their preset arguments."""
        route = resolve("helios9://workspace/overview")
        assert route.tool == "get_workspace_overview"
        assert route.arguments == {"include_analytics": True, "time_range": "week"}

    def test_unsupported_query_parameters_dropped(self):
        assert resolve("helios9://projects?limit=5&user_id=x").arguments == {}

    def test_documents_are_markdown(self):
        route = resolve("helios9://documents/abc")
        assert route.tool == "get_document"
        assert route.mime_type == MARKDOWN

    @pytest.mark.parametrize("uri", [
        "helios9://unicorns",
        "https://projects",
        "helios9://projects/abc/secrets",
        "helios9://projects/a/b/c",
        "helios9://",
    ])
    def test_unknown_uri(self, uri):
        """Test that unknown URIs raise NotFoundError naming the URI."""
        with pytest.raises(NotFoundError) as exc_info:
            resolve(uri)
        assert exc_info.value.resource_id == uri


class TestResourceReads:
    """Test reading resources through the gateway."""

    async def test_listing(self, gateway, backend):
        uris = {str(resource.uri) for resource in gateway.list_resources()}
        templates = {template.uriTemplate for template in gateway.list_resource_templates()}

        assert any(uri.startswith("helios9://projects") for uri in uris)
        assert "helios9://documents/{document_id}" in templates
        assert backend.requests == []

    async def test_read_collection(self, gateway, backend):
        backend.add("projects", name="Apollo")

        text, mime_type = await gateway.read_resource("helios9://projects")

        assert mime_type == JSON
        assert json.loads(text)["projects"][0]["name"] == "Apollo"

    async def test_read_document_as_markdown(self, gateway, backend):
        document = backend.add("documents", title="Plan", content="Ship it.", document_type="design")

        text, mime_type = await gateway.read_resource(f"helios9://document/{document['id']}")

        assert mime_type == MARKDOWN
        assert text.startswith("# Plan\n\n**Type**: design")
        assert text.endswith("Ship it.")

    async def test_invalid_id_is_validation_error(self, gateway, backend):
        """Test that resource arguments go through tool validation."""
        with pytest.raises(ValidationError):
            await gateway.read_resource("helios9://projects/not-a-uuid")
        assert backend.requests == []

    async def test_missing_entity(self, gateway):
        with pytest.raises(NotFoundError):
            await gateway.read_resource("helios9://tasks/33333333-3333-4333-8333-333333333333")

    async def test_reads_need_authentication(self, gateway, backend):
        backend.valid_keys = set()
        with pytest.raises(UnauthorizedError):
            await gateway.read_resource("helios9://projects")
        assert backend.data_requests == []


class TestPrompts:
    """Test prompt listing and rendering."""

    async def test_list_prompts(self, gateway):
        prompts = {prompt.name: prompt for prompt in gateway.list_prompts()}

        assert set(prompts) == {
            "project_kickoff", "daily_standup", "document_review",
            "sprint_planning", "project_health_check", "task_breakdown",
        }
        standup_args = {arg.name: arg.required for arg in prompts["daily_standup"].arguments}
        assert standup_args == {"project_id": True, "date": False}

    async def test_unknown_prompt(self, gateway):
        with pytest.raises(NotFoundError):
            await gateway.get_prompt("write_poem", {})

    async def test_invalid_arguments(self, gateway, backend):
        """Test that prompt arguments are validated before any data is fetched."""
        with pytest.raises(ValidationError) as exc_info:
            await gateway.get_prompt("daily_standup", {})
        assert "project_id" in exc_info.value.message
        assert backend.requests == []

    async def test_project_kickoff(self, gateway, backend):
        """Test that string arguments are coerced and rendered without backend calls."""
        result = await gateway.get_prompt(
            "project_kickoff", {"description": "A mobile banking app", "team_size": "5"}
        )

        assert result.description == "Generated project_kickoff prompt"
        assert result.messages[0].role == "user"
        text = result.messages[0].content.text
        assert '"A mobile banking app"' in text
        assert "Define roles and responsibilities for 5 team members" in text
        assert "2-3 months" in text
        assert backend.requests == []

    async def test_daily_standup_uses_project_context(self, gateway, backend):
        project = backend.add("projects", name="Apollo", status="active")
        backend.add("tasks", project_id=project["id"], title="Wire telemetry", status="in_progress")

        result = await gateway.get_prompt("daily_standup", {"project_id": project["id"], "date": "2026-03-02"})

        text = result.messages[0].content.text
        assert text.startswith("# Daily Standup Report - 2026-03-02")
        assert "## Project: Apollo" in text
        assert "- Wire telemetry (in_progress)" in text
        assert "- **In Progress**: 1" in text
        assert "- No recent document updates" in text

    async def test_project_health_check(self, gateway, backend):
        project = backend.add("projects", name="Apollo")
        backend.add("tasks", project_id=project["id"], title="Done already", status="done")

        result = await gateway.get_prompt("project_health_check", {"project_id": project["id"]})

        text = result.messages[0].content.text
        assert text.startswith("# Project Health Analysis: Apollo")
        assert "**Health Score**: 85/100" in text
        assert "Create project documentation" in text

    async def test_task_breakdown_criteria_optional(self, gateway):
        with_criteria = await gateway.get_prompt(
            "task_breakdown", {"feature_description": "SSO login", "acceptance_criteria": "Works with Okta"}
        )
        without = await gateway.get_prompt("task_breakdown", {"feature_description": "SSO login"})

        assert "## Acceptance Criteria\nWorks with Okta" in with_criteria.messages[0].content.text
        assert "Acceptance Criteria" not in without.messages[0].content.text
