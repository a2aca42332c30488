"""Read-only ``helios9://`` resources.

A resource URI is mapped onto a tool call and read through the registry, so
resources share tool validation and the auth gate::

    helios9://projects                 -> list_projects
    helios9://projects/{id}/context    -> get_project_context
    helios9://documents/{id}           -> get_document (as markdown)
    helios9://search?q=...             -> universal_search

Collection names may be singular or plural.
"""
import logging
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import parse_qs, urlsplit

from mcp.types import Resource, ResourceTemplate

from .errors import NotFoundError
from .formatters import to_json
from .handlers.documents import document_markdown
from .registry import ToolRegistry

logger = logging.getLogger("helios-mcp.resources")

SCHEME = "helios9"
JSON = "application/json"
MARKDOWN = "text/markdown"

ALIASES = {
    "project": "projects",
    "task": "tasks",
    "document": "documents",
    "initiative": "initiatives",
    "conversation": "conversations",
}

ALL_INSIGHTS = ["progress", "bottlenecks", "team_performance", "documentation_health", "ai_readiness"]

# (collection, subresource) -> (tool, id argument, fixed arguments)
ITEM_ROUTES: dict[tuple[str, Optional[str]], tuple[str, str, dict]] = {
    ("projects", None): ("get_project", "project_id", {}),
    ("projects", "context"): ("get_project_context", "project_id", {}),
    ("projects", "health"): (
        "get_project_insights", "project_id", {"insight_types": ALL_INSIGHTS, "include_recommendations": True}
    ),
    ("projects", "timeline"): ("get_project_timeline", "project_id", {"include_completed": True, "time_range": "all"}),
    ("initiatives", None): ("get_initiative", "initiative_id", {}),
    ("initiatives", "context"): ("get_initiative_context", "initiative_id", {}),
    ("initiatives", "milestones"): ("list_milestones", "initiative_id", {}),
    ("tasks", None): ("get_task", "task_id", {}),
    ("documents", None): ("get_document", "document_id", {}),
    ("conversations", None): ("analyze_conversation", "conversation_id", {}),
}

# collection -> (tool, accepted query parameters, fixed arguments)
COLLECTION_ROUTES: dict[str, tuple[str, tuple[str, ...], dict]] = {
    "projects": ("list_projects", (), {}),
    "initiatives": ("list_initiatives", ("project_id",), {}),
    "tasks": ("list_tasks", ("project_id", "initiative_id"), {}),
    "documents": ("list_documents", ("project_id",), {}),
    "conversations": ("get_conversations", ("project_id",), {"include_messages": False}),
}

# (collection, path) -> (tool, fixed arguments); ``q`` becomes ``query``
FIXED_ROUTES: dict[tuple[str, Optional[str]], tuple[str, dict]] = {
    ("workspace", "overview"): ("get_workspace_overview", {"include_analytics": True, "time_range": "week"}),
    ("workspace", "analytics"): ("get_project_analytics", {"time_range": "month", "include_predictions": True}),
    ("search", None): ("universal_search", {}),
    ("search", "semantic"): ("semantic_search", {}),
}


@dataclass(frozen=True)
class ResourceRoute:
    tool: str
    arguments: dict
    mime_type: str = JSON


def resolve(uri: str) -> ResourceRoute:
    """Map a resource URI to the tool call that serves it.

    Raises:
        NotFoundError: The URI does not name a known resource
    """
    parsed = urlsplit(uri)
    if parsed.scheme != SCHEME or not parsed.netloc:
        raise NotFoundError("Resource", uri)

    collection = ALIASES.get(parsed.netloc, parsed.netloc)
    segments = [segment for segment in parsed.path.split("/") if segment]
    query = {key: values[-1] for key, values in parse_qs(parsed.query).items()}

    if len(segments) <= 1 and (collection, segments[0] if segments else None) in FIXED_ROUTES:
        tool, fixed = FIXED_ROUTES[(collection, segments[0] if segments else None)]
        arguments: dict[str, Any] = dict(fixed)
        if "q" in query:
            arguments["query"] = query["q"]
        return ResourceRoute(tool, arguments)

    if not segments and collection in COLLECTION_ROUTES:
        tool, accepted, fixed = COLLECTION_ROUTES[collection]
        arguments = {key: query[key] for key in accepted if key in query}
        arguments.update(fixed)
        return ResourceRoute(tool, arguments)

    if 1 <= len(segments) <= 2:
        subresource = segments[1] if len(segments) == 2 else None
        route = ITEM_ROUTES.get((collection, subresource))
        if route is not None:
            tool, id_argument, fixed = route
            mime_type = MARKDOWN if (collection, subresource) == ("documents", None) else JSON
            return ResourceRoute(tool, {id_argument: segments[0], **fixed}, mime_type)

    raise NotFoundError("Resource", uri)


class ResourceRouter:
    """Serves resource reads through the tool registry."""

    def __init__(self, registry: ToolRegistry):
        self.registry = registry

    def list_resources(self) -> list[Resource]:
        return [
            Resource(uri=f"{SCHEME}://projects", name="Projects",
                     description="All projects you can access", mimeType=JSON),
            Resource(uri=f"{SCHEME}://tasks", name="Tasks",
                     description="Recently updated tasks", mimeType=JSON),
            Resource(uri=f"{SCHEME}://documents", name="Documents",
                     description="Recently updated documents", mimeType=JSON),
            Resource(uri=f"{SCHEME}://initiatives", name="Initiatives",
                     description="All initiatives you can access", mimeType=JSON),
            Resource(uri=f"{SCHEME}://workspace/overview", name="Workspace overview",
                     description="Workspace health, productivity and recommendations for the past week",
                     mimeType=JSON),
            Resource(uri=f"{SCHEME}://workspace/analytics", name="Workspace analytics",
                     description="Project analytics for the past month with forecasts", mimeType=JSON),
        ]

    def list_resource_templates(self) -> list[ResourceTemplate]:
        templates = [
            ("projects/{project_id}", "Project", "A single project", JSON),
            ("projects/{project_id}/context", "Project context", "Project with tasks, documents and summary", JSON),
            ("projects/{project_id}/health", "Project health", "Every project insight with a health score", JSON),
            ("projects/{project_id}/timeline", "Project timeline", "Chronological project events", JSON),
            ("initiatives/{initiative_id}", "Initiative", "Initiative with tasks and milestones", JSON),
            ("initiatives/{initiative_id}/context", "Initiative context", "Aggregated initiative context", JSON),
            ("initiatives/{initiative_id}/milestones", "Milestones", "An initiative's milestones", JSON),
            ("tasks/{task_id}", "Task", "A single task", JSON),
            ("tasks?project_id={project_id}", "Project tasks", "Tasks of one project", JSON),
            ("documents/{document_id}", "Document", "Document content as markdown", MARKDOWN),
            ("documents?project_id={project_id}", "Project documents", "Documents of one project", JSON),
            ("conversations?project_id={project_id}", "Conversations", "A project's AI conversations", JSON),
            ("conversations/{conversation_id}", "Conversation analysis", "Analysis of one conversation", JSON),
            ("search?q={query}", "Search", "Keyword search across the workspace", JSON),
            ("search/semantic?q={query}", "Semantic search", "Expanded keyword search", JSON),
        ]
        return [
            ResourceTemplate(uriTemplate=f"{SCHEME}://{path}", name=name, description=description, mimeType=mime)
            for path, name, description, mime in templates
        ]

    async def read(self, uri: str) -> tuple[str, str]:
        """Return ``(text, mime_type)`` for a resource URI.

        Raises:
            NotFoundError: Unknown URI, or the entity does not exist
            GatewayError: Any error raised by the underlying tool
        """
        route = resolve(uri)
        logger.info(f"Resource read: {uri} -> {route.tool}")
        result = await self.registry.execute(route.tool, route.arguments)
        if route.mime_type == MARKDOWN:
            return document_markdown(result["document"]), MARKDOWN
        return to_json(result), JSON
