"""Initiative, milestone and workspace tool handlers."""
import logging

from ..api_client import RemoteDataClient
from ..models import Initiative, MilestoneStatus, Task, TaskStatus, days_since
from ..schemas import (
    InitiativeCreate,
    InitiativeListQuery,
    InitiativeRef,
    InitiativeUpdate,
    MilestoneCreate,
    MilestoneUpdate,
    NoArguments,
    ProjectRef,
    WorkspaceSearch,
)

logger = logging.getLogger("helios-mcp.handlers.initiatives")

MAX_PAGE = 100


async def _initiative_tasks(client: RemoteDataClient, initiative: Initiative) -> list[Task]:
    tasks: list[Task] = []
    for project_id in initiative.project_ids:
        project_tasks = await client.list_tasks({"project_id": project_id}, limit=MAX_PAGE)
        tasks.extend(task for task in project_tasks if task.initiative_id == initiative.id)
    return tasks


async def handle_list_initiatives(args: InitiativeListQuery, client: RemoteDataClient) -> dict:
    filters = args.to_payload(exclude={"limit"})
    initiatives = await client.list_initiatives(filters, limit=args.limit)
    logger.info(f"Successfully listed {len(initiatives)} initiatives")
    return {"initiatives": initiatives, "total": len(initiatives), "filters_applied": filters}


async def handle_get_initiative(args: InitiativeRef, client: RemoteDataClient) -> dict:
    """Initiative with its tasks, milestones and progress statistics.

    Tasks are gathered from every project the initiative spans.
    """
    initiative = await client.get_initiative(str(args.initiative_id))
    tasks = await _initiative_tasks(client, initiative)
    milestones = await client.list_milestones(initiative.id)

    completed = sum(1 for task in tasks if task.status == TaskStatus.DONE.value)
    statistics = {
        "total_tasks": len(tasks),
        "completed_tasks": completed,
        "in_progress_tasks": sum(1 for task in tasks if task.status == TaskStatus.IN_PROGRESS.value),
        "overdue_tasks": sum(1 for task in tasks if task.is_overdue()),
        "total_milestones": len(milestones),
        "completed_milestones": sum(1 for m in milestones if m.status == MilestoneStatus.COMPLETED.value),
        "project_count": len(initiative.project_ids),
    }
    if initiative.target_date:
        statistics["days_until_target"] = round(-days_since(initiative.target_date))

    logger.info(f"Successfully retrieved initiative {initiative.id}: {initiative.name}")
    return {
        "initiative": {
            **initiative.model_dump(mode="json"),
            "completion_percentage": round(completed / len(tasks) * 100) if tasks else 0,
            "tasks": tasks,
            "milestones": milestones,
            "statistics": statistics,
        }
    }


async def handle_create_initiative(args: InitiativeCreate, client: RemoteDataClient) -> dict:
    initiative = await client.create_initiative(args.to_payload())
    logger.info(f"Successfully created initiative: {initiative.name} (ID: {initiative.id})")
    return {"initiative": initiative, "message": f'Initiative "{initiative.name}" created successfully'}


async def handle_update_initiative(args: InitiativeUpdate, client: RemoteDataClient) -> dict:
    initiative_id = str(args.initiative_id)
    initiative = await client.update_initiative(initiative_id, args.to_payload(exclude={"initiative_id"}))
    logger.info(f"Successfully updated initiative {initiative_id}: {initiative.name}")
    return {"initiative": initiative, "message": f'Initiative "{initiative.name}" updated successfully'}


async def handle_get_initiative_context(args: InitiativeRef, client: RemoteDataClient) -> dict:
    return {"context": await client.get_initiative_context(str(args.initiative_id))}


async def handle_get_initiative_insights(args: InitiativeRef, client: RemoteDataClient) -> dict:
    return {"insights": await client.get_initiative_insights(str(args.initiative_id))}


async def handle_search_workspace(args: WorkspaceSearch, client: RemoteDataClient) -> dict:
    filters = args.filters.to_payload() if args.filters else {}
    results = await client.search_workspace(args.query, filters, args.limit)
    logger.info(f"Workspace search for '{args.query}' completed")
    return results


async def handle_get_enhanced_project_context(args: ProjectRef, client: RemoteDataClient) -> dict:
    return {"context": await client.get_enhanced_project_context(str(args.project_id))}


async def handle_get_workspace_context(args: NoArguments, client: RemoteDataClient) -> dict:
    return {"context": await client.get_workspace_context()}


async def handle_list_milestones(args: InitiativeRef, client: RemoteDataClient) -> dict:
    milestones = sorted(await client.list_milestones(str(args.initiative_id)), key=lambda m: m.order_index)
    return {"milestones": milestones, "total": len(milestones)}


async def handle_create_milestone(args: MilestoneCreate, client: RemoteDataClient) -> dict:
    initiative_id = str(args.initiative_id)
    milestone = await client.create_milestone(initiative_id, args.to_payload())
    logger.info(f"Successfully created milestone {milestone.name} for initiative {initiative_id}")
    return {"milestone": milestone, "message": f'Milestone "{milestone.name}" created successfully'}


async def handle_update_milestone(args: MilestoneUpdate, client: RemoteDataClient) -> dict:
    milestone_id = str(args.milestone_id)
    milestone = await client.update_milestone(milestone_id, args.to_payload(exclude={"milestone_id"}))
    logger.info(f"Successfully updated milestone {milestone_id}: {milestone.name}")
    return {"milestone": milestone, "message": f'Milestone "{milestone.name}" updated successfully'}
