"""Domain enums and read models for Helios-9 entities.

The backend owns every entity. These models describe what it returns: only
``id`` is required, status fields stay plain strings on read, and unknown
fields are preserved so nothing the backend sends is dropped.
"""
import enum
import re
from datetime import datetime, timezone
from typing import Annotated, Any, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field


_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _widen_date(value: Any) -> Any:
    # Due and target dates arrive as plain dates
    if isinstance(value, str) and _DATE_ONLY.match(value):
        return f"{value}T00:00:00+00:00"
    return value


FlexibleDatetime = Annotated[datetime, BeforeValidator(_widen_date)]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes from the backend as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def days_since(value: Optional[datetime], now: Optional[datetime] = None) -> Optional[float]:
    if value is None:
        return None
    now = now or utc_now()
    return (now - as_utc(value)).total_seconds() / 86400


class ProjectStatus(str, enum.Enum):
    """Project status enum."""

    ACTIVE = "active"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class TaskStatus(str, enum.Enum):
    """Task status enum."""

    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"


class TaskPriority(str, enum.Enum):
    """Task priority enum."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class DocumentType(str, enum.Enum):
    """Document type enum."""

    REQUIREMENT = "requirement"
    DESIGN = "design"
    TECHNICAL = "technical"
    MEETING_NOTES = "meeting_notes"
    OTHER = "other"


class InitiativeStatus(str, enum.Enum):
    """Initiative lifecycle status enum."""

    PLANNING = "planning"
    ACTIVE = "active"
    ON_HOLD = "on_hold"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class InitiativePriority(str, enum.Enum):
    """Initiative priority enum."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class MilestoneStatus(str, enum.Enum):
    """Initiative milestone status enum."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    MISSED = "missed"


class MessageRole(str, enum.Enum):
    """Author of a conversation message."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class ConversationType(str, enum.Enum):
    """What an AI conversation was about."""

    TASK_DISCUSSION = "task_discussion"
    DOCUMENT_REVIEW = "document_review"
    PROJECT_PLANNING = "project_planning"
    TROUBLESHOOTING = "troubleshooting"
    GENERAL = "general"


class HeliosModel(BaseModel):
    """Base for entities read from the backend."""

    model_config = ConfigDict(extra="allow")

    id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Profile(HeliosModel):
    email: Optional[str] = None
    username: Optional[str] = None
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    tenant_id: Optional[str] = None


class Project(HeliosModel):
    user_id: Optional[str] = None
    name: str = ""
    description: Optional[str] = None
    status: str = ProjectStatus.ACTIVE.value


class Task(HeliosModel):
    project_id: Optional[str] = None
    initiative_id: Optional[str] = None
    title: str = ""
    description: Optional[str] = None
    status: str = TaskStatus.TODO.value
    priority: str = TaskPriority.MEDIUM.value
    due_date: Optional[FlexibleDatetime] = None
    assignee_id: Optional[str] = None
    created_by: Optional[str] = None

    def is_overdue(self, now: Optional[datetime] = None) -> bool:
        if self.due_date is None or self.status == TaskStatus.DONE.value:
            return False
        return as_utc(self.due_date) < (now or utc_now())


class Document(HeliosModel):
    project_id: Optional[str] = None
    title: str = ""
    content: Optional[str] = None
    document_type: str = DocumentType.OTHER.value
    created_by: Optional[str] = None


class Initiative(HeliosModel):
    name: str = ""
    objective: Optional[str] = None
    description: Optional[str] = None
    status: str = InitiativeStatus.PLANNING.value
    priority: str = InitiativePriority.MEDIUM.value
    project_ids: list[str] = Field(default_factory=list)
    owner_id: Optional[str] = None
    start_date: Optional[FlexibleDatetime] = None
    target_date: Optional[FlexibleDatetime] = None
    created_by: Optional[str] = None
    tenant_id: Optional[str] = None


class Milestone(HeliosModel):
    initiative_id: Optional[str] = None
    name: str = ""
    description: Optional[str] = None
    target_date: Optional[FlexibleDatetime] = None
    completed_date: Optional[FlexibleDatetime] = None
    status: str = MilestoneStatus.PENDING.value
    order_index: int = 0
    created_by: Optional[str] = None


class ConversationMessage(BaseModel):
    model_config = ConfigDict(extra="allow")

    role: str
    content: str = ""
    timestamp: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None


class Conversation(HeliosModel):
    project_id: Optional[str] = None
    user_id: Optional[str] = None
    title: Optional[str] = None
    messages: list[ConversationMessage] = Field(default_factory=list)
    metadata: Optional[dict[str, Any]] = None
