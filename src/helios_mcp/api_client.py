"""HTTP access to the Helios-9 REST API.

``ApiSession`` owns the httpx client and maps every failure onto the gateway
error taxonomy. ``RemoteDataClient`` sits on top of it and is the only place
that knows endpoint paths. It also adds the caller's scope to every request,
so handlers never pass user or tenant identifiers themselves.
"""
import logging
from typing import Any, Optional, TypeVar

import httpx
import pydantic

from .config import Settings
from .errors import (
    BackendValidationError,
    NotFoundError,
    RemoteFailure,
    UnauthorizedError,
    UnknownRemoteError,
)
from .models import (
    Conversation,
    Document,
    HeliosModel,
    Initiative,
    Milestone,
    Profile,
    Project,
    Task,
)

logger = logging.getLogger("helios-mcp.api_client")

ModelT = TypeVar("ModelT", bound=HeliosModel)

SCOPE_KEYS = ("user_id", "tenant_id")


def _error_message(response: httpx.Response) -> Optional[str]:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        for key in ("error", "message", "detail"):
            if isinstance(body.get(key), str):
                return body[key]
    return None


def _without_scope(data: Optional[dict]) -> dict:
    return {k: v for k, v in (data or {}).items() if v is not None and k not in SCOPE_KEYS}


class ApiSession:
    """Thin async HTTP session against the Helios-9 API."""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self._credential: Optional[str] = None
        self._client = httpx.AsyncClient(
            base_url=settings.api_url,
            timeout=settings.request_timeout,
            headers={
                "Content-Type": "application/json",
                "X-MCP-Client": settings.client_name,
            },
            transport=transport,
        )

    def set_credential(self, credential: Optional[str]) -> None:
        self._credential = credential

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict] = None,
        json: Any = None,
        resource: str = "Resource",
        resource_id: Optional[str] = None,
    ) -> Any:
        """Send one request and return the decoded JSON body.

        Raises:
            UnauthorizedError: 401 or 403
            NotFoundError: 404, reported against ``resource``/``resource_id``
            BackendValidationError: 400, 409 or 422
            RemoteFailure: 5xx, timeout or transport failure
            UnknownRemoteError: any other status or an undecodable body
        """
        headers = {}
        if self._credential:
            headers["Authorization"] = f"Bearer {self._credential}"

        logger.debug(f"{method} {path} params={params}")
        try:
            response = await self._client.request(method, path, params=params, json=json, headers=headers)
        except httpx.TimeoutException as e:
            raise RemoteFailure(f"Request to Helios-9 API timed out after {self.settings.request_timeout}s") from e
        except httpx.TransportError as e:
            raise RemoteFailure(f"Could not reach Helios-9 API: {type(e).__name__}") from e

        return self._decode(response, resource, resource_id)

    def _decode(self, response: httpx.Response, resource: str, resource_id: Optional[str]) -> Any:
        status = response.status_code
        if status in (401, 403):
            detail = _error_message(response) or "Invalid or expired API key"
            raise UnauthorizedError(f"Authentication failed: {detail}")
        if status == 404:
            raise NotFoundError(resource, resource_id)
        if status in (400, 409, 422):
            detail = _error_message(response) or "Request rejected by Helios-9 API"
            raise BackendValidationError(detail, violations=[detail])
        if status >= 500:
            raise RemoteFailure(f"Helios-9 API error (HTTP {status})", status_code=status)
        if not 200 <= status < 300:
            raise UnknownRemoteError(
                f"Unexpected response from Helios-9 API (HTTP {status})",
                status_code=status,
                payload=response.text,
            )

        if status == 204 or not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise UnknownRemoteError(
                "Helios-9 API returned a response that is not JSON",
                status_code=status,
                payload=response.text,
            ) from e

    async def validate_credential(self) -> Profile:
        """Resolve the session's credential to the profile it belongs to."""
        body = await self.request("POST", "/api/auth/validate", resource="API key")
        try:
            return Profile.model_validate(body["user"])
        except (KeyError, TypeError, pydantic.ValidationError) as e:
            raise UnknownRemoteError("Unexpected response from credential validation", payload=body) from e

    async def aclose(self) -> None:
        await self._client.aclose()


class RemoteDataClient:
    """Scoped CRUD access to Helios-9 entities.

    Every call resolves the caller's scope through the auth gate first, drops
    any ``user_id``/``tenant_id`` supplied by the caller, and injects the
    gate's values instead: into the query string always, and into the JSON
    body for writes.
    """

    def __init__(self, session: ApiSession, gate):
        self.session = session
        self.gate = gate

    async def _get(self, path: str, params: Optional[dict] = None, **kwargs) -> Any:
        scope = await self.gate.current_scope()
        query = _without_scope(params)
        query.update(scope)
        return await self.session.request("GET", path, params=query, **kwargs)

    async def _write(self, method: str, path: str, payload: Optional[dict] = None, **kwargs) -> Any:
        scope = await self.gate.current_scope()
        body = _without_scope(payload)
        body.update(scope)
        return await self.session.request(method, path, params=dict(scope), json=body, **kwargs)

    @staticmethod
    def _one(body: Any, key: str, model: type[ModelT]) -> ModelT:
        try:
            return model.model_validate(body[key])
        except (KeyError, TypeError, pydantic.ValidationError) as e:
            raise UnknownRemoteError(f"Unexpected response shape: missing or invalid '{key}'", payload=body) from e

    @staticmethod
    def _many(body: Any, key: str, model: type[ModelT]) -> list[ModelT]:
        try:
            return [model.model_validate(item) for item in body[key] or []]
        except (KeyError, TypeError, pydantic.ValidationError) as e:
            raise UnknownRemoteError(f"Unexpected response shape: missing or invalid '{key}'", payload=body) from e

    @staticmethod
    def _section(body: Any, key: str) -> dict:
        if not isinstance(body, dict) or not isinstance(body.get(key), dict):
            raise UnknownRemoteError(f"Unexpected response shape: missing '{key}'", payload=body)
        return body[key]

    @staticmethod
    def _list_params(filters: Optional[dict], limit: int, offset: int, sort_field: str, sort_order: str) -> dict:
        params = dict(filters or {})
        params.update(limit=limit, offset=offset, sort_field=sort_field, sort_order=sort_order)
        return params

    # Projects

    async def list_projects(
        self,
        filters: Optional[dict] = None,
        limit: int = 20,
        offset: int = 0,
        sort_field: str = "updated_at",
        sort_order: str = "desc",
    ) -> list[Project]:
        params = self._list_params(filters, limit, offset, sort_field, sort_order)
        body = await self._get("/api/mcp/projects", params)
        return self._many(body, "projects", Project)

    async def get_project(self, project_id: str) -> Project:
        body = await self._get(f"/api/mcp/projects/{project_id}", resource="Project", resource_id=project_id)
        return self._one(body, "project", Project)

    async def create_project(self, payload: dict) -> Project:
        body = await self._write("POST", "/api/mcp/projects", payload)
        return self._one(body, "project", Project)

    async def update_project(self, project_id: str, payload: dict) -> Project:
        body = await self._write(
            "PATCH", f"/api/mcp/projects/{project_id}", payload, resource="Project", resource_id=project_id
        )
        return self._one(body, "project", Project)

    async def get_project_context(self, project_id: str) -> dict:
        body = await self._get(
            f"/api/mcp/projects/{project_id}/context", resource="Project", resource_id=project_id
        )
        return self._section(body, "context")

    async def get_enhanced_project_context(self, project_id: str) -> dict:
        body = await self._get(
            f"/api/mcp/projects/{project_id}/context-enhanced", resource="Project", resource_id=project_id
        )
        return self._section(body, "context")

    async def update_tasks_by_project(self, project_id: str, payload: dict) -> dict:
        return await self._write(
            "PATCH", f"/api/mcp/projects/{project_id}/tasks", payload, resource="Project", resource_id=project_id
        )

    # Tasks

    async def list_tasks(
        self,
        filters: Optional[dict] = None,
        limit: int = 20,
        offset: int = 0,
        sort_field: str = "updated_at",
        sort_order: str = "desc",
    ) -> list[Task]:
        params = self._list_params(filters, limit, offset, sort_field, sort_order)
        body = await self._get("/api/mcp/tasks", params)
        return self._many(body, "tasks", Task)

    async def get_task(self, task_id: str) -> Task:
        body = await self._get(f"/api/mcp/tasks/{task_id}", resource="Task", resource_id=task_id)
        return self._one(body, "task", Task)

    async def create_task(self, payload: dict) -> Task:
        body = await self._write("POST", "/api/mcp/tasks", payload)
        return self._one(body, "task", Task)

    async def update_task(self, task_id: str, payload: dict) -> Task:
        body = await self._write("PATCH", f"/api/mcp/tasks/{task_id}", payload, resource="Task", resource_id=task_id)
        return self._one(body, "task", Task)

    # Documents

    async def list_documents(
        self,
        filters: Optional[dict] = None,
        limit: int = 20,
        offset: int = 0,
        sort_field: str = "updated_at",
        sort_order: str = "desc",
    ) -> list[Document]:
        params = self._list_params(filters, limit, offset, sort_field, sort_order)
        body = await self._get("/api/mcp/documents", params)
        return self._many(body, "documents", Document)

    async def get_document(self, document_id: str) -> Document:
        body = await self._get(f"/api/mcp/documents/{document_id}", resource="Document", resource_id=document_id)
        return self._one(body, "document", Document)

    async def create_document(self, payload: dict) -> Document:
        body = await self._write("POST", "/api/mcp/documents", payload)
        return self._one(body, "document", Document)

    async def update_document(self, document_id: str, payload: dict) -> Document:
        body = await self._write(
            "PATCH", f"/api/mcp/documents/{document_id}", payload, resource="Document", resource_id=document_id
        )
        return self._one(body, "document", Document)

    # Initiatives and milestones

    async def list_initiatives(
        self,
        filters: Optional[dict] = None,
        limit: int = 20,
        offset: int = 0,
        sort_field: str = "updated_at",
        sort_order: str = "desc",
    ) -> list[Initiative]:
        params = self._list_params(filters, limit, offset, sort_field, sort_order)
        body = await self._get("/api/mcp/initiatives", params)
        return self._many(body, "initiatives", Initiative)

    async def get_initiative(self, initiative_id: str) -> Initiative:
        body = await self._get(
            f"/api/mcp/initiatives/{initiative_id}", resource="Initiative", resource_id=initiative_id
        )
        return self._one(body, "initiative", Initiative)

    async def create_initiative(self, payload: dict) -> Initiative:
        body = await self._write("POST", "/api/mcp/initiatives", payload)
        return self._one(body, "initiative", Initiative)

    async def update_initiative(self, initiative_id: str, payload: dict) -> Initiative:
        body = await self._write(
            "PATCH",
            f"/api/mcp/initiatives/{initiative_id}",
            payload,
            resource="Initiative",
            resource_id=initiative_id,
        )
        return self._one(body, "initiative", Initiative)

    async def get_initiative_context(self, initiative_id: str) -> dict:
        body = await self._get(
            f"/api/mcp/initiatives/{initiative_id}/context", resource="Initiative", resource_id=initiative_id
        )
        return self._section(body, "context")

    async def get_initiative_insights(self, initiative_id: str) -> dict:
        body = await self._get(
            f"/api/mcp/initiatives/{initiative_id}/insights", resource="Initiative", resource_id=initiative_id
        )
        return self._section(body, "insights")

    async def list_milestones(self, initiative_id: str) -> list[Milestone]:
        body = await self._get(
            f"/api/mcp/initiatives/{initiative_id}/milestones", resource="Initiative", resource_id=initiative_id
        )
        return self._many(body, "milestones", Milestone)

    async def create_milestone(self, initiative_id: str, payload: dict) -> Milestone:
        body = await self._write(
            "POST",
            f"/api/mcp/initiatives/{initiative_id}/milestones",
            payload,
            resource="Initiative",
            resource_id=initiative_id,
        )
        return self._one(body, "milestone", Milestone)

    async def update_milestone(self, milestone_id: str, payload: dict) -> Milestone:
        body = await self._write(
            "PATCH", f"/api/mcp/milestones/{milestone_id}", payload, resource="Milestone", resource_id=milestone_id
        )
        return self._one(body, "milestone", Milestone)

    # Conversations

    async def list_conversations(self, filters: Optional[dict] = None, limit: int = 20) -> list[Conversation]:
        params = self._list_params(filters, limit, 0, "created_at", "desc")
        body = await self._get("/api/mcp/conversations", params)
        return self._many(body, "conversations", Conversation)

    async def get_conversation(self, conversation_id: str) -> Conversation:
        body = await self._get(
            f"/api/mcp/conversations/{conversation_id}", resource="Conversation", resource_id=conversation_id
        )
        return self._one(body, "conversation", Conversation)

    async def create_conversation(self, payload: dict) -> Conversation:
        body = await self._write("POST", "/api/mcp/conversations", payload)
        return self._one(body, "conversation", Conversation)

    # Workspace

    async def search_workspace(self, query: str, filters: Optional[dict] = None, limit: int = 20) -> dict:
        body = await self._write("POST", "/api/mcp/search", {"query": query, "filters": filters or {}, "limit": limit})
        if not isinstance(body, dict):
            raise UnknownRemoteError("Unexpected response shape from workspace search", payload=body)
        return body

    async def get_workspace_context(self) -> dict:
        body = await self._get("/api/mcp/workspace/context")
        return self._section(body, "context")
