"""Task tool handlers."""
import logging
from typing import Any

from ..api_client import RemoteDataClient
from ..errors import ValidationError
from ..models import Task, TaskStatus
from ..schemas import TaskBulkUpdate, TaskCreate, TaskListQuery, TaskRef, TaskUpdate
from .projects import ITEM_ERRORS

logger = logging.getLogger("helios-mcp.handlers.tasks")


async def handle_list_tasks(args: TaskListQuery, client: RemoteDataClient) -> dict:
    """List tasks with optional filters.

    The backend has no initiative filter, so ``initiative_id`` is applied to
    the returned page.
    """
    filters = args.to_payload(exclude={"limit", "initiative_id"})
    tasks = await client.list_tasks(filters, limit=args.limit)
    if args.initiative_id is not None:
        tasks = [task for task in tasks if task.initiative_id == str(args.initiative_id)]
    logger.info(f"Successfully listed {len(tasks)} tasks")
    return {"tasks": tasks, "total": len(tasks), "filters_applied": args.to_payload(exclude={"limit"})}


async def handle_get_task(args: TaskRef, client: RemoteDataClient) -> dict:
    task = await client.get_task(str(args.task_id))
    logger.info(f"Successfully retrieved task {task.id}: {task.title}")
    return {"task": task}


async def handle_create_task(args: TaskCreate, client: RemoteDataClient) -> dict:
    """Create a task. New tasks always start in ``todo``."""
    payload = args.to_payload()
    payload["status"] = TaskStatus.TODO.value
    task = await client.create_task(payload)
    logger.info(f"Successfully created task: {task.title} (ID: {task.id})")
    return {"task": task, "message": f'Task "{task.title}" created successfully'}


async def handle_update_task(args: TaskUpdate, client: RemoteDataClient) -> dict:
    task_id = str(args.task_id)
    task = await client.update_task(task_id, args.to_payload(exclude={"task_id"}))
    logger.info(f"Successfully updated task {task_id}: {task.title}")
    return {"task": task, "message": f'Task "{task.title}" updated successfully'}


def completion_status(task: Task) -> str:
    if task.status == TaskStatus.DONE.value:
        return "done"
    if task.is_overdue():
        return "overdue"
    if task.status == TaskStatus.IN_PROGRESS.value:
        return "active"
    return "todo"


def estimate_hours(task: Task) -> dict:
    # two hours per 500 characters of description, up to four blocks
    hours = 2 + 2 * min(len(task.description or "") // 500, 4)
    if task.priority == "high":
        hours += 1
    return {
        "estimated_hours": hours,
        "confidence": "low",
        "factors_considered": ["description_length", "priority"],
    }


def task_suggestions(task: Task) -> list[str]:
    suggestions = []
    if not task.description:
        suggestions.append("Add a detailed description to help with task execution")
    if not task.due_date:
        suggestions.append("Set a due date to improve planning and prioritization")
    if not task.assignee_id:
        suggestions.append("Assign the task to a team member for accountability")
    if task.status == TaskStatus.TODO.value and task.priority == "high":
        suggestions.append("Consider moving this high-priority task to in_progress")
    return suggestions


def ai_suggestions(analysis: dict) -> list[str]:
    suggestions = []
    if analysis["completion_status"] == "overdue":
        suggestions.append("This task is overdue. Consider reassessing the scope or extending the deadline.")
    if analysis["time_estimate"]["estimated_hours"] > 8:
        suggestions.append("This task seems complex. Consider breaking it into smaller subtasks.")
    if not analysis["related_documentation"]:
        suggestions.append("No related documentation found. Consider creating supporting documents.")
    return suggestions


async def handle_get_task_context(args: TaskRef, client: RemoteDataClient) -> dict:
    """Task with its project, related documents and a heuristic analysis."""
    task = await client.get_task(str(args.task_id))
    project = None
    related_documents = []
    if task.project_id:
        project = await client.get_project(task.project_id)
        related_documents = await client.list_documents({"project_id": task.project_id}, limit=5)

    analysis = {
        "completion_status": completion_status(task),
        "time_estimate": estimate_hours(task),
        "suggestions": task_suggestions(task),
        "related_documentation": [
            {"id": doc.id, "title": doc.title, "document_type": doc.document_type} for doc in related_documents
        ],
    }
    return {
        "task": task,
        "project": project,
        "related_documents": related_documents,
        "analysis": analysis,
        "ai_suggestions": ai_suggestions(analysis),
    }


async def handle_bulk_update_tasks(args: TaskBulkUpdate, client: RemoteDataClient) -> dict:
    """Apply the same change to many tasks, reporting each outcome."""
    changes = args.updates.to_payload()
    if not changes:
        raise ValidationError("Invalid arguments: updates: at least one field is required",
                              violations=["updates: at least one field is required"])

    results: list[dict[str, Any]] = []
    for task_id in map(str, args.task_ids):
        try:
            task = await client.update_task(task_id, changes)
        except ITEM_ERRORS as e:
            results.append({"task_id": task_id, "success": False, "error": f"{e.kind}: {e.message}"})
        else:
            results.append({"task_id": task_id, "success": True, "task": task})

    successful = sum(1 for result in results if result["success"])
    logger.info(f"Bulk updated {successful}/{len(results)} tasks")
    return {
        "summary": {"total": len(results), "successful": successful, "failed": len(results) - successful},
        "results": results,
        "applied_updates": changes,
    }
