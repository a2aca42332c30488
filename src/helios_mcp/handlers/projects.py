"""Project tool handlers."""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from ..api_client import RemoteDataClient
from ..errors import NotFoundError, RemoteFailure, ValidationError
from ..models import Project, ProjectStatus, Task, TaskStatus, as_utc, utc_now
from ..schemas import (
    ProjectArchive,
    ProjectBulkUpdate,
    ProjectCreate,
    ProjectDuplicate,
    ProjectListQuery,
    ProjectRef,
    ProjectTimelineQuery,
    ProjectUpdate,
)

logger = logging.getLogger("helios-mcp.handlers.projects")

# Errors reported per item by bulk tools instead of aborting the batch
ITEM_ERRORS = (NotFoundError, ValidationError, RemoteFailure)

MAX_PAGE = 100


async def handle_list_projects(args: ProjectListQuery, client: RemoteDataClient) -> dict:
    """List projects, most recently updated first."""
    filters = args.to_payload(exclude={"limit"})
    projects = await client.list_projects(filters, limit=args.limit)
    logger.info(f"Successfully listed {len(projects)} projects")
    return {"projects": projects, "total": len(projects), "filters_applied": filters}


async def handle_get_project(args: ProjectRef, client: RemoteDataClient) -> dict:
    project = await client.get_project(str(args.project_id))
    logger.info(f"Successfully retrieved project {project.id}: {project.name}")
    return {"project": project}


async def handle_create_project(args: ProjectCreate, client: RemoteDataClient) -> dict:
    project = await client.create_project(args.to_payload())
    logger.info(f"Successfully created project: {project.name} (ID: {project.id})")
    return {"project": project, "message": f'Project "{project.name}" created successfully'}


async def handle_update_project(args: ProjectUpdate, client: RemoteDataClient) -> dict:
    project_id = str(args.project_id)
    project = await client.update_project(project_id, args.to_payload(exclude={"project_id"}))
    logger.info(f"Successfully updated project {project_id}: {project.name}")
    return {"project": project, "message": f'Project "{project.name}" updated successfully'}


def project_recommendations(context: dict) -> list[str]:
    stats = context.get("statistics") or {}
    task_status = stats.get("task_status") or {}
    recommendations = []

    if not stats.get("total_documents"):
        recommendations.append(
            "Consider creating project documentation to help team members understand the project goals and requirements"
        )
    if not stats.get("total_tasks"):
        recommendations.append("Break down the project into specific tasks to track progress and assign work")
    if task_status.get("in_progress", 0) > task_status.get("todo", 0) * 2:
        recommendations.append("Consider focusing on completing in-progress tasks before starting new ones")
    if not (stats.get("document_types") or {}).get("other"):
        recommendations.append("Add a README document to provide project overview and setup instructions")
    if not context.get("recent_documents") and not context.get("recent_tasks"):
        recommendations.append("Project appears inactive - consider reviewing and updating project status")
    return recommendations


async def handle_get_project_context(args: ProjectRef, client: RemoteDataClient) -> dict:
    """Project context from the backend plus a heuristic summary for agents.

    The summary covers activity level, documentation maturity, task
    completion and a list of recommendations.
    """
    context = await client.get_project_context(str(args.project_id))
    project = context.get("project") or {}
    stats = context.get("statistics") or {}
    task_status = stats.get("task_status") or {}
    total_tasks = stats.get("total_tasks") or 0
    total_documents = stats.get("total_documents") or 0
    done = task_status.get("done", 0)

    if total_documents > 5:
        maturity = "mature"
    elif total_documents > 0:
        maturity = "developing"
    else:
        maturity = "none"

    ai_summary = {
        "project_overview": (
            f"Project '{project.get('name', 'Unknown')}' is {project.get('status', 'unknown')} "
            f"with {total_documents} documents and {total_tasks} tasks"
        ),
        "activity_level": "active" if context.get("recent_documents") or context.get("recent_tasks") else "inactive",
        "documentation_maturity": maturity,
        "task_completion_rate": round(done / total_tasks * 100) if total_tasks else 0,
        "team_size": len(context.get("team_members") or []),
        "recommendations": project_recommendations(context),
    }
    logger.info(f"Successfully built context for project {args.project_id}")
    return {**context, "ai_summary": ai_summary}


async def handle_archive_project(args: ProjectArchive, client: RemoteDataClient) -> dict:
    """Archive a project (closing out its tasks) or restore it to active."""
    project_id = str(args.project_id)
    status = ProjectStatus.ARCHIVED if args.archive else ProjectStatus.ACTIVE
    project = await client.update_project(project_id, {"status": status.value})

    if args.archive:
        await client.update_tasks_by_project(project_id, {"status": TaskStatus.DONE.value})

    action = "archived" if args.archive else "unarchived"
    logger.info(f"Successfully {action} project {project_id}")
    return {
        "project": project,
        "message": f'Project "{project.name}" {action} successfully',
        "reason": args.reason,
    }


async def handle_duplicate_project(args: ProjectDuplicate, client: RemoteDataClient) -> dict:
    """Copy a project, optionally with its tasks and documents."""
    source_id = str(args.source_project_id)
    source = await client.get_project(source_id)
    project = await client.create_project({
        "name": args.new_name,
        "description": source.description,
        "status": ProjectStatus.ACTIVE.value,
    })

    tasks_copied = 0
    if args.include_tasks:
        for task in await client.list_tasks({"project_id": source_id}, limit=MAX_PAGE):
            payload = {
                "project_id": project.id,
                "title": task.title,
                "description": task.description,
                "priority": task.priority,
                "status": TaskStatus.TODO.value,
                "assignee_id": task.assignee_id,
                "initiative_id": task.initiative_id,
            }
            if task.due_date and not args.reset_dates:
                payload["due_date"] = task.due_date.isoformat()
            await client.create_task(payload)
            tasks_copied += 1

    documents_copied = 0
    if args.include_documents:
        for document in await client.list_documents({"project_id": source_id}, limit=MAX_PAGE):
            await client.create_document({
                "project_id": project.id,
                "title": document.title,
                "content": document.content or "",
                "document_type": document.document_type,
            })
            documents_copied += 1

    logger.info(f"Duplicated project {source_id} as {project.id} ({tasks_copied} tasks, {documents_copied} documents)")
    return {
        "project": project,
        "source_project_id": source_id,
        "tasks_copied": tasks_copied,
        "documents_copied": documents_copied,
        "message": f'Project "{source.name}" duplicated as "{project.name}"',
    }


def _time_window(time_range: str, now: datetime) -> tuple[Optional[datetime], Optional[datetime]]:
    if time_range == "past_month":
        return now - timedelta(days=30), now
    if time_range == "next_month":
        return now, now + timedelta(days=30)
    if time_range == "current_quarter":
        first_month = (now.month - 1) // 3 * 3 + 1
        start = datetime(now.year, first_month, 1, tzinfo=timezone.utc)
        if first_month == 10:
            end = datetime(now.year + 1, 1, 1, tzinfo=timezone.utc)
        else:
            end = datetime(now.year, first_month + 3, 1, tzinfo=timezone.utc)
        return start, end
    return None, None


def filter_events(events: list[dict], time_range: str, now: Optional[datetime] = None) -> list[dict]:
    start, end = _time_window(time_range, now or utc_now())
    if start is None:
        return events
    return [event for event in events if start <= event["date"] <= end]


def build_timeline_events(project: Project, tasks: list[Task], include_completed: bool) -> list[dict]:
    now = utc_now()
    events = []
    if project.created_at:
        events.append({
            "type": "project_created",
            "date": as_utc(project.created_at),
            "title": f"Project '{project.name}' created",
            "metadata": {"project_id": project.id},
        })

    for task in tasks:
        if task.created_at:
            events.append({
                "type": "task_created",
                "date": as_utc(task.created_at),
                "title": f"Task created: {task.title}",
                "metadata": {"task_id": task.id, "priority": task.priority},
            })
        if include_completed and task.status == TaskStatus.DONE.value and task.updated_at:
            events.append({
                "type": "task_completed",
                "date": as_utc(task.updated_at),
                "title": f"Task completed: {task.title}",
                "metadata": {"task_id": task.id, "priority": task.priority},
            })
        if task.due_date:
            events.append({
                "type": "task_due",
                "date": as_utc(task.due_date),
                "title": f"Task due: {task.title}",
                "metadata": {"task_id": task.id, "is_overdue": task.is_overdue(now)},
            })
    return events


def identify_milestones(events: list[dict], tasks: list[Task]) -> list[dict]:
    priorities = {task.id: task.priority for task in tasks}
    milestones = []
    for event in events:
        if event["type"] == "project_created":
            milestones.append({**event, "milestone_type": "project_start", "significance": "high"})
        elif event["type"] == "task_completed" and priorities.get(event["metadata"]["task_id"]) == "high":
            milestones.append({**event, "milestone_type": "major_completion", "significance": "medium"})
        elif event["type"] == "task_due" and event["metadata"]["is_overdue"]:
            milestones.append({**event, "milestone_type": "overdue_alert", "significance": "high"})
    return milestones


async def handle_get_project_timeline(args: ProjectTimelineQuery, client: RemoteDataClient) -> dict:
    """Chronological project events with milestones and overdue alerts."""
    project_id = str(args.project_id)
    project = await client.get_project(project_id)
    tasks = await client.list_tasks({"project_id": project_id}, limit=MAX_PAGE)

    events = build_timeline_events(project, tasks, args.include_completed)
    events = sorted(filter_events(events, args.time_range), key=lambda event: event["date"])
    milestones = identify_milestones(events, tasks)

    return {
        "project": project,
        "timeline": events,
        "milestones": milestones,
        "summary": {
            "total_events": len(events),
            "completed_tasks": sum(1 for task in tasks if task.status == TaskStatus.DONE.value),
            "overdue_tasks": sum(1 for task in tasks if task.is_overdue()),
            "time_range": args.time_range,
        },
    }


async def handle_bulk_update_projects(args: ProjectBulkUpdate, client: RemoteDataClient) -> dict:
    """Apply the same change to many projects, reporting each outcome."""
    changes = args.updates.to_payload()
    if not changes:
        raise ValidationError("Invalid arguments: updates: at least one field is required",
                              violations=["updates: at least one field is required"])

    results: list[dict[str, Any]] = []
    for project_id in map(str, args.project_ids):
        try:
            project = await client.update_project(project_id, changes)
        except ITEM_ERRORS as e:
            results.append({"project_id": project_id, "success": False, "error": f"{e.kind}: {e.message}"})
        else:
            results.append({"project_id": project_id, "success": True, "project": project})

    successful = sum(1 for result in results if result["success"])
    logger.info(f"Bulk updated {successful}/{len(results)} projects")
    return {
        "summary": {
            "total": len(results),
            "successful": successful,
            "failed": len(results) - successful,
            "success_rate": successful / len(results) * 100,
        },
        "results": results,
        "applied_updates": changes,
        "reason": args.reason,
    }
