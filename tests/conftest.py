"""Shared fixtures: an in-memory Helios-9 backend behind httpx.MockTransport."""
import asyncio
import json
import uuid
from datetime import datetime, timezone
from typing import Optional

import httpx
import pytest

from helios_mcp.config import Settings, get_settings
from helios_mcp.gateway import HeliosGateway

API_KEY = "test-api-key"
SERVICE_KEY = "hel9_service-key"
USER_ID = "11111111-1111-4111-8111-111111111111"
TENANT_ID = "22222222-2222-4222-8222-222222222222"
API_URL = "https://helios.test"

# collection -> key of a single item in responses
COLLECTIONS = {
    "projects": "project",
    "tasks": "task",
    "documents": "document",
    "initiatives": "initiative",
    "conversations": "conversation",
    "milestones": "milestone",
}

IGNORED_PARAMS = {"limit", "offset", "sort_field", "sort_order", "user_id", "tenant_id", "search"}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class FakeBackend:
    """Minimal Helios-9 REST API kept in memory.

    Every request is recorded in ``requests``. ``validate_calls`` counts
    credential checks and ``fail_status`` makes every data call answer with
    that HTTP status.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.store: dict[str, dict[str, dict]] = {name: {} for name in COLLECTIONS}
        self.valid_keys = {API_KEY, SERVICE_KEY}
        self.user = {"id": USER_ID, "email": "agent@helios.test", "tenant_id": TENANT_ID}
        # API key -> profile for keys that belong to someone other than ``user``
        self.users: dict[str, dict] = {}
        self.validate_calls = 0
        self.delay = 0.0
        self.fail_status: Optional[int] = None

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def add(self, collection: str, **fields) -> dict:
        item = {"id": str(uuid.uuid4()), "created_at": _now(), "updated_at": _now(), **fields}
        self.store[collection][item["id"]] = item
        return item

    @property
    def data_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path.startswith("/api/mcp/")]

    @staticmethod
    def _credential(request: httpx.Request) -> str:
        header = request.headers.get("Authorization", "")
        return header[len("Bearer "):] if header.startswith("Bearer ") else ""

    def _authorized(self, request: httpx.Request) -> bool:
        return self._credential(request) in self.valid_keys

    def user_for(self, request: httpx.Request) -> dict:
        return self.users.get(self._credential(request), self.user)

    @staticmethod
    def _matches(item: dict, params: httpx.QueryParams) -> bool:
        search = params.get("search")
        if search:
            text = f"{item.get('name', '')} {item.get('title', '')} {item.get('description', '')} {item.get('content', '')}"
            if search.lower() not in text.lower():
                return False
        for key, value in params.items():
            if key in IGNORED_PARAMS:
                continue
            if str(item.get(key)) != value:
                return False
        return True

    async def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)

        path = request.url.path
        if path == "/api/auth/validate":
            self.validate_calls += 1
            if not self._authorized(request):
                return httpx.Response(401, json={"error": "Invalid API key"})
            return httpx.Response(200, json={"user": self.user_for(request)})

        if not self._authorized(request):
            return httpx.Response(401, json={"error": "Invalid API key"})
        if self.fail_status is not None:
            return httpx.Response(self.fail_status, json={"error": "Backend exploded"})

        parts = path[len("/api/mcp/"):].split("/")
        collection = parts[0]
        if collection not in COLLECTIONS:
            return httpx.Response(404, json={"error": "Not found"})
        store = self.store[collection]
        key = COLLECTIONS[collection]
        body = json.loads(request.content) if request.content else {}

        if len(parts) == 1:
            if request.method == "GET":
                limit = int(request.url.params.get("limit", 20))
                items = [item for item in store.values() if self._matches(item, request.url.params)]
                return httpx.Response(200, json={collection: items[:limit]})
            if request.method == "POST":
                item = self.add(collection, **body)
                return httpx.Response(201, json={key: item})

        item = store.get(parts[1])
        if item is None:
            return httpx.Response(404, json={"error": f"{key} not found"})

        if len(parts) == 2:
            if request.method == "PATCH":
                item.update(body, updated_at=_now())
            return httpx.Response(200, json={key: item})

        if collection == "projects" and parts[2] == "context":
            tasks = [t for t in self.store["tasks"].values() if t.get("project_id") == item["id"]]
            documents = [d for d in self.store["documents"].values() if d.get("project_id") == item["id"]]
            task_status: dict[str, int] = {}
            for task in tasks:
                task_status[task.get("status", "todo")] = task_status.get(task.get("status", "todo"), 0) + 1
            return httpx.Response(200, json={"context": {
                "project": item,
                "recent_tasks": tasks[:5],
                "recent_documents": documents[:5],
                "statistics": {
                    "total_tasks": len(tasks),
                    "total_documents": len(documents),
                    "task_status": task_status,
                },
            }})
        if collection == "projects" and parts[2] == "tasks" and request.method == "PATCH":
            updated = 0
            for task in self.store["tasks"].values():
                if task.get("project_id") == item["id"]:
                    task.update({k: v for k, v in body.items() if k not in ("user_id", "tenant_id")})
                    updated += 1
            return httpx.Response(200, json={"updated": updated})
        if collection == "initiatives" and parts[2] == "milestones":
            if request.method == "POST":
                milestone = self.add("milestones", **{**body, "initiative_id": item["id"]})
                return httpx.Response(201, json={"milestone": milestone})
            milestones = [m for m in self.store["milestones"].values() if m.get("initiative_id") == item["id"]]
            return httpx.Response(200, json={"milestones": milestones})
        return httpx.Response(404, json={"error": "Not found"})


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep HELIOS_* variables from the developer's shell out of the tests."""
    for name in ("HELIOS_API_KEY", "HELIOS_API_URL", "HELIOS_LAZY_SERVICE_KEYS", "HELIOS_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def settings() -> Settings:
    return Settings(api_key=API_KEY, api_url=API_URL)


@pytest.fixture
async def gateway(backend, settings):
    gw = HeliosGateway.create(settings, transport=backend.transport())
    yield gw
    await gw.aclose()


def result_payload(result) -> dict:
    """Decode the JSON text block of a CallToolResult."""
    assert len(result.content) == 1
    return json.loads(result.content[0].text)
