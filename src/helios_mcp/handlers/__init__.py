"""Tool handlers, one module per entity family.

Every handler has the signature ``async def handle_x(args, client) -> dict``:
``args`` is the validated argument model and ``client`` is the scoped
``RemoteDataClient``. Handlers raise ``GatewayError`` subclasses and never
build response envelopes themselves.

Modules:
- projects: project CRUD, context, archive, duplicate, timeline, bulk update
- tasks: task CRUD, context, bulk update
- documents: document CRUD, search, content analysis
- initiatives: initiatives, milestones and workspace-level backend views
- conversations: saving and analysing AI conversations
- context: cross-entity context aggregation
- search: universal and semantic keyword search
- analytics: project analytics
- debug: environment diagnostics
"""

from . import analytics
from . import context
from . import conversations
from . import debug
from . import documents
from . import initiatives
from . import projects
from . import search
from . import tasks

__all__ = [
    "analytics",
    "context",
    "conversations",
    "debug",
    "documents",
    "initiatives",
    "projects",
    "search",
    "tasks",
]
