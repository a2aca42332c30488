"""Pydantic schemas for tool arguments.

Each tool takes exactly one of these models. The JSON Schema advertised to
clients is generated from the model, so the advertised contract and the
validation that runs on every call come from the same definition.
"""
from datetime import datetime
from typing import Any, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .models import (
    ConversationType,
    DocumentType,
    InitiativePriority,
    InitiativeStatus,
    MessageRole,
    MilestoneStatus,
    ProjectStatus,
    TaskPriority,
    TaskStatus,
)


class ToolArguments(BaseModel):
    """Base for all tool argument models. Unknown fields are ignored."""

    model_config = ConfigDict(extra="ignore")

    def to_payload(self, *, exclude: Optional[set[str]] = None) -> dict[str, Any]:
        """Dump set fields as JSON-ready values for the backend."""
        return self.model_dump(mode="json", exclude_none=True, exclude=exclude)


class NoArguments(ToolArguments):
    pass


class ListQuery(ToolArguments):
    limit: int = Field(20, ge=1, le=100, description="Maximum number of results (default: 20, max: 100)")


# Project Schemas

class ProjectRef(ToolArguments):
    project_id: UUID = Field(..., description="UUID of the project")


class ProjectListQuery(ListQuery):
    status: Optional[ProjectStatus] = Field(None, description="Filter by project status")
    search: Optional[str] = Field(None, description="Search in project names and descriptions")


class ProjectCreate(ToolArguments):
    name: str = Field(..., min_length=1, max_length=255, description="Project name")
    description: Optional[str] = Field(None, description="Optional project description")
    status: ProjectStatus = ProjectStatus.ACTIVE


class ProjectUpdate(ProjectRef):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    status: Optional[ProjectStatus] = None


class ProjectArchive(ProjectRef):
    archive: bool = Field(True, description="True to archive, false to restore to active")
    reason: Optional[str] = Field(None, description="Why the project is being archived")


class ProjectDuplicate(ToolArguments):
    source_project_id: UUID = Field(..., description="UUID of the project to copy")
    new_name: str = Field(..., min_length=1, max_length=255)
    include_tasks: bool = True
    include_documents: bool = True
    reset_dates: bool = Field(True, description="Clear task due dates on the copies")


class ProjectTimelineQuery(ProjectRef):
    include_completed: bool = True
    time_range: Literal["all", "past_month", "next_month", "current_quarter"] = "all"


class ProjectBulkChanges(ToolArguments):
    status: Optional[ProjectStatus] = None


class ProjectBulkUpdate(ToolArguments):
    project_ids: list[UUID] = Field(..., min_length=1, max_length=100)
    updates: ProjectBulkChanges
    reason: Optional[str] = None


# Task Schemas

class TaskRef(ToolArguments):
    task_id: UUID = Field(..., description="UUID of the task")


class TaskListQuery(ListQuery):
    project_id: Optional[UUID] = Field(None, description="Only tasks in this project")
    initiative_id: Optional[UUID] = Field(None, description="Only tasks linked to this initiative")
    status: Optional[TaskStatus] = None
    assignee_id: Optional[UUID] = None
    search: Optional[str] = Field(None, description="Search in task titles and descriptions")


class TaskCreate(ToolArguments):
    project_id: UUID = Field(..., description="Project the task belongs to")
    title: str = Field(..., min_length=1, max_length=500)
    initiative_id: Optional[UUID] = None
    description: Optional[str] = None
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: Optional[datetime] = None
    assignee_id: Optional[UUID] = None


class TaskUpdate(TaskRef):
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[datetime] = None
    assignee_id: Optional[UUID] = None
    initiative_id: Optional[UUID] = None


class TaskBulkChanges(ToolArguments):
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    assignee_id: Optional[UUID] = None
    due_date: Optional[datetime] = None


class TaskBulkUpdate(ToolArguments):
    task_ids: list[UUID] = Field(..., min_length=1, max_length=100)
    updates: TaskBulkChanges


# Document Schemas

class DocumentRef(ToolArguments):
    document_id: UUID = Field(..., description="UUID of the document")


class DocumentListQuery(ListQuery):
    project_id: Optional[UUID] = None
    document_type: Optional[DocumentType] = None
    search: Optional[str] = Field(None, description="Search in document titles and content")


class DocumentCreate(ToolArguments):
    project_id: UUID
    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., description="Markdown content, optionally with YAML frontmatter")
    document_type: DocumentType


class DocumentUpdate(DocumentRef):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    content: Optional[str] = None
    document_type: Optional[DocumentType] = None


class DocumentSearch(ToolArguments):
    query: str = Field(..., min_length=1)
    project_id: Optional[UUID] = None
    document_types: Optional[list[DocumentType]] = None
    limit: int = Field(10, ge=1, le=50)
    include_content: bool = False


# Initiative Schemas

class InitiativeRef(ToolArguments):
    initiative_id: UUID = Field(..., description="UUID of the initiative")


class InitiativeListQuery(ListQuery):
    project_id: Optional[UUID] = Field(None, description="Only initiatives linked to this project")
    status: Optional[InitiativeStatus] = None
    priority: Optional[InitiativePriority] = None
    search: Optional[str] = None


class InitiativeCreate(ToolArguments):
    name: str = Field(..., min_length=1, max_length=255)
    objective: str = Field(..., min_length=1, description="What the initiative should achieve")
    description: Optional[str] = None
    status: InitiativeStatus = InitiativeStatus.PLANNING
    priority: InitiativePriority = InitiativePriority.MEDIUM
    project_ids: list[UUID] = Field(..., min_length=1, description="Projects the initiative spans")
    owner_id: UUID
    start_date: Optional[datetime] = None
    target_date: Optional[datetime] = None


class InitiativeUpdate(InitiativeRef):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    objective: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    status: Optional[InitiativeStatus] = None
    priority: Optional[InitiativePriority] = None
    project_ids: Optional[list[UUID]] = None
    owner_id: Optional[UUID] = None
    start_date: Optional[datetime] = None
    target_date: Optional[datetime] = None


class WorkspaceSearchFilters(ToolArguments):
    type: Optional[Literal["project", "initiative", "task", "document", "milestone"]] = None
    project_id: Optional[UUID] = None
    initiative_id: Optional[UUID] = None
    status: Optional[str] = None


class WorkspaceSearch(ToolArguments):
    query: str = Field(..., min_length=2, description="Search text (at least 2 characters)")
    filters: Optional[WorkspaceSearchFilters] = None
    limit: int = Field(20, ge=1, le=100)


class MilestoneRef(ToolArguments):
    milestone_id: UUID


class MilestoneCreate(InitiativeRef):
    name: str = Field(..., min_length=1, max_length=255)
    target_date: datetime
    description: Optional[str] = None
    status: MilestoneStatus = MilestoneStatus.PENDING
    order_index: int = Field(0, ge=0)


class MilestoneUpdate(MilestoneRef):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    target_date: Optional[datetime] = None
    completed_date: Optional[datetime] = None
    status: Optional[MilestoneStatus] = None
    order_index: Optional[int] = Field(None, ge=0)


# Conversation Schemas

class MessageIn(ToolArguments):
    role: MessageRole
    content: str = Field(..., min_length=1)
    timestamp: Optional[datetime] = None
    metadata: Optional[dict[str, Any]] = None


class ConversationContextIn(ToolArguments):
    task_id: Optional[UUID] = None
    document_id: Optional[UUID] = None
    conversation_type: ConversationType = ConversationType.GENERAL
    ai_model: Optional[str] = None
    temperature: Optional[float] = Field(None, ge=0, le=2)
    tokens_used: Optional[int] = Field(None, ge=0)


class ConversationSave(ToolArguments):
    project_id: UUID
    messages: list[MessageIn] = Field(..., min_length=1)
    title: Optional[str] = Field(None, max_length=255)
    context: Optional[ConversationContextIn] = None
    metadata: Optional[dict[str, Any]] = None


class ConversationListQuery(ListQuery):
    project_id: UUID
    conversation_type: Optional[ConversationType] = None
    related_to: Optional[UUID] = Field(None, description="Task or document the conversation is about")
    include_messages: bool = True


class ConversationRef(ToolArguments):
    conversation_id: UUID


class ActionItemExtraction(ConversationRef):
    auto_create_tasks: bool = Field(False, description="Create a task for every extracted action item")


class ConversationSummaryQuery(ConversationRef):
    summary_type: Literal["brief", "detailed", "action_items", "decisions"] = "brief"


# Context Aggregation Schemas

ContextType = Literal["projects", "tasks", "documents", "conversations"]
InsightType = Literal["progress", "bottlenecks", "team_performance", "documentation_health", "ai_readiness"]
FocusArea = Literal["productivity", "collaboration", "documentation", "ai_readiness"]


class SmartContextQuery(ToolArguments):
    query: str = Field(..., min_length=1, description="Natural language description of what you need")
    project_id: Optional[UUID] = None
    context_types: list[ContextType] = Field(default_factory=lambda: ["projects", "tasks", "documents"])
    max_results_per_type: int = Field(5, ge=1, le=20)
    include_related: bool = True


class WorkspaceOverviewQuery(ToolArguments):
    include_analytics: bool = True
    time_range: Literal["today", "week", "month", "all"] = "week"
    focus_areas: Optional[list[FocusArea]] = None


class ProjectInsightsQuery(ProjectRef):
    insight_types: list[InsightType] = Field(default_factory=lambda: ["progress", "bottlenecks"])
    include_recommendations: bool = True


class RelatedContentQuery(ToolArguments):
    entity_type: Literal["project", "task", "document"]
    entity_id: UUID
    relation_types: list[Literal["similar", "linked", "referenced"]] = Field(
        default_factory=lambda: ["similar", "linked"]
    )
    max_results: int = Field(10, ge=1, le=50)


# Search Schemas

SearchType = Literal["projects", "tasks", "documents"]


class SearchFilters(ToolArguments):
    project_id: Optional[UUID] = None
    status: Optional[str] = None
    created_after: Optional[datetime] = None
    created_before: Optional[datetime] = None


class UniversalSearchQuery(ToolArguments):
    query: str = Field(..., min_length=1)
    search_types: list[SearchType] = Field(default_factory=lambda: ["projects", "tasks", "documents"])
    filters: Optional[SearchFilters] = None
    limit: int = Field(20, ge=1, le=100)
    include_snippets: bool = True


class SemanticSearchQuery(ToolArguments):
    query: str = Field(..., min_length=1)
    context_type: Literal[
        "technical_documentation", "meeting_notes", "code_related", "project_context", "general"
    ] = "general"
    similarity_threshold: float = Field(0.7, ge=0, le=1)
    max_results: int = Field(10, ge=1, le=50)
    include_explanations: bool = False


# Analytics Schemas

AnalyticsMetric = Literal["completion_rate", "velocity", "team_performance"]


class ProjectAnalyticsQuery(ToolArguments):
    project_ids: Optional[list[UUID]] = Field(None, description="Defaults to every project you can see")
    time_range: Literal["week", "month", "quarter", "year"] = "month"
    metrics: list[AnalyticsMetric] = Field(
        default_factory=lambda: ["completion_rate", "velocity", "team_performance"]
    )
    include_predictions: bool = False
