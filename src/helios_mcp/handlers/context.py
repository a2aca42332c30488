"""Context aggregation tool handlers.

These tools pull several entity lists at once and summarise them for an
agent. All scoring is heuristic.
"""
import logging
from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Optional

from .. import markdown_utils
from ..api_client import RemoteDataClient
from ..models import Document, Project, Task, TaskStatus, as_utc, days_since, utc_now
from ..schemas import ProjectInsightsQuery, RelatedContentQuery, SmartContextQuery, WorkspaceOverviewQuery
from ..text_analysis import analyze_query, extract_keywords, relevance_score

logger = logging.getLogger("helios-mcp.handlers.context")

MAX_PAGE = 100


async def handle_get_smart_context(args: SmartContextQuery, client: RemoteDataClient) -> dict:
    """Interpret a natural language query and gather matching entities."""
    query_analysis = analyze_query(args.query)
    terms = " ".join(query_analysis["search_terms"]) or args.query
    filters: dict[str, Any] = {"search": terms}
    if args.project_id:
        filters["project_id"] = str(args.project_id)
    limit = args.max_results_per_type

    results: dict[str, list] = {}
    if "projects" in args.context_types:
        results["projects"] = await client.list_projects({"search": terms}, limit=limit)
    if "tasks" in args.context_types:
        results["tasks"] = await client.list_tasks(filters, limit=limit)
    if "documents" in args.context_types:
        results["documents"] = await client.list_documents(filters, limit=limit)
    if "conversations" in args.context_types and args.project_id:
        results["conversations"] = await client.list_conversations({"project_id": str(args.project_id)}, limit=limit)

    context: dict[str, Any] = {"query_analysis": query_analysis, "results": results}
    if args.include_related:
        project_ids = {item.project_id for key in ("tasks", "documents") for item in results.get(key, [])}
        project_ids.update(project.id for project in results.get("projects", []))
        context["related"] = {"project_ids": sorted(pid for pid in project_ids if pid)}

    distribution = {key: len(items) for key, items in results.items()}
    total = sum(distribution.values())
    context["insights"] = {
        "total_results": total,
        "result_distribution": distribution,
        "primary_intent": query_analysis["intent"],
        "urgency": query_analysis["urgency"],
    }
    context["summary"] = (
        f"Found {total} relevant items for '{args.query}' "
        f"(intent: {query_analysis['intent']}, urgency: {query_analysis['urgency']})"
    )
    logger.info(f"Smart context for '{args.query}' returned {total} items")
    return context


def documentation_coverage(projects: list[Project], documents: list[Document]) -> int:
    if not projects:
        return 0
    documented = {document.project_id for document in documents}
    return round(sum(1 for project in projects if project.id in documented) / len(projects) * 100)


def project_health(projects: list[Project], tasks: list[Task]) -> dict:
    by_project: dict[str, list[Task]] = {}
    for task in tasks:
        by_project.setdefault(task.project_id, []).append(task)

    def at_risk(project: Project) -> bool:
        project_tasks = by_project.get(project.id, [])
        todo = sum(1 for task in project_tasks if task.status == TaskStatus.TODO.value)
        return bool(project_tasks) and todo > len(project_tasks) * 0.5

    def stale(project: Project) -> bool:
        age = days_since(project.updated_at)
        return age is not None and age > 30

    return {
        "healthy_projects": sum(1 for project in projects if project.status == "active"),
        "at_risk_projects": sum(1 for project in projects if at_risk(project)),
        "stale_projects": sum(1 for project in projects if stale(project)),
    }


def _range_start(time_range: str, now: datetime) -> Optional[datetime]:
    if time_range == "today":
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    if time_range == "week":
        return now - timedelta(days=7)
    if time_range == "month":
        return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    return None


def average_completion_hours(completed: list[Task]) -> Optional[float]:
    durations = [
        (as_utc(task.updated_at) - as_utc(task.created_at)).total_seconds() / 3600
        for task in completed
        if task.created_at and task.updated_at
    ]
    if not durations:
        return None
    return round(sum(durations) / len(durations), 1)


def productivity_metrics(tasks: list[Task], time_range: str) -> dict:
    start = _range_start(time_range, utc_now())
    recent = [
        task for task in tasks
        if start is None or (task.updated_at is not None and as_utc(task.updated_at) >= start)
    ]
    completed = [task for task in recent if task.status == TaskStatus.DONE.value]
    return {
        "tasks_completed": len(completed),
        "tasks_in_progress": sum(1 for task in recent if task.status == TaskStatus.IN_PROGRESS.value),
        "completion_rate": len(completed) / len(recent) if recent else 0,
        "average_completion_hours": average_completion_hours(completed),
    }


def collaboration_metrics(tasks: list[Task], documents: list[Document]) -> dict:
    assigned = [task for task in tasks if task.assignee_id]
    collaborative = [
        document for document in documents
        if "team" in document.title.lower()
        or "collaborative" in document.title.lower()
        or document.document_type == "meeting_notes"
    ]
    return {
        "task_assignment_rate": len(assigned) / len(tasks) if tasks else 0,
        "collaborative_documents": len(collaborative),
        "team_distribution": dict(Counter(task.assignee_id for task in assigned)),
    }


def ai_readiness(documents: list[Document]) -> dict:
    ready = [
        document for document in documents
        if document.document_type in ("technical", "design")
        or markdown_utils.split_frontmatter(document.content or "")[0] is not None
    ]
    recommendations = []
    if len(ready) < len(documents):
        recommendations.append(
            f"Add YAML frontmatter to {len(documents) - len(ready)} document(s) to improve AI context"
        )
    if not any(document.document_type == "technical" for document in documents):
        recommendations.append("Create technical documentation to give AI assistants implementation context")
    return {
        "ai_ready_documents": len(ready),
        "readiness_percentage": len(ready) / len(documents) * 100 if documents else 0,
        "missing_ai_metadata": len(documents) - len(ready),
        "recommendations": recommendations,
    }


def workspace_recommendations(projects: list[Project], tasks: list[Task], documents: list[Document]) -> list[str]:
    recommendations = []
    in_progress = sum(1 for task in tasks if task.status == TaskStatus.IN_PROGRESS.value)
    done = sum(1 for task in tasks if task.status == TaskStatus.DONE.value)
    todo = sum(1 for task in tasks if task.status == TaskStatus.TODO.value)

    if in_progress > done * 2:
        recommendations.append("Consider focusing on completing existing tasks before starting new ones")

    readme_projects = {document.project_id for document in documents if document.document_type == "other"}
    undocumented = [project for project in projects if project.id not in readme_projects]
    if undocumented:
        recommendations.append(f"Add README documentation for {len(undocumented)} project(s)")

    if todo > in_progress * 2:
        recommendations.append(f"Focus on starting {todo} pending task(s) to improve team velocity")
    return recommendations


async def handle_get_workspace_overview(args: WorkspaceOverviewQuery, client: RemoteDataClient) -> dict:
    projects = await client.list_projects(limit=MAX_PAGE)
    tasks = await client.list_tasks(limit=MAX_PAGE)
    documents = await client.list_documents(limit=MAX_PAGE)

    overview: dict[str, Any] = {
        "summary": {
            "total_projects": len(projects),
            "active_projects": sum(1 for project in projects if project.status == "active"),
            "total_tasks": len(tasks),
            "total_documents": len(documents),
            "documentation_coverage": documentation_coverage(projects, documents),
        },
        "project_health": project_health(projects, tasks),
        "time_range": args.time_range,
    }

    analytics = {
        "productivity": productivity_metrics(tasks, args.time_range),
        "collaboration": collaboration_metrics(tasks, documents),
        "ai_readiness": ai_readiness(documents),
    }
    if args.include_analytics:
        overview["analytics"] = analytics
    if args.focus_areas:
        sections = {**analytics, "documentation": {"coverage": overview["summary"]["documentation_coverage"]}}
        overview["focus_insights"] = {area: sections[area] for area in args.focus_areas}

    overview["recommendations"] = workspace_recommendations(projects, tasks, documents)
    logger.info(f"Workspace overview built from {len(projects)} projects, {len(tasks)} tasks")
    return overview


def progress_insight(tasks: list[Task]) -> dict:
    total = len(tasks)
    completed = sum(1 for task in tasks if task.status == TaskStatus.DONE.value)
    return {
        "total_tasks": total,
        "completed": completed,
        "in_progress": sum(1 for task in tasks if task.status == TaskStatus.IN_PROGRESS.value),
        "todo": sum(1 for task in tasks if task.status == TaskStatus.TODO.value),
        "overdue": sum(1 for task in tasks if task.is_overdue()),
        "completion_rate": round(completed / total * 100, 1) if total else 0,
    }


def bottleneck_insight(tasks: list[Task]) -> list[str]:
    progress = progress_insight(tasks)
    bottlenecks = []
    if progress["in_progress"] > max(progress["todo"], 1) * 2:
        bottlenecks.append("Too many tasks in progress - consider focusing on completion")
    if progress["overdue"]:
        bottlenecks.append(f"{progress['overdue']} overdue task(s) need attention")
    unassigned_high = sum(
        1 for task in tasks
        if task.priority == "high" and not task.assignee_id and task.status != TaskStatus.DONE.value
    )
    if unassigned_high:
        bottlenecks.append(f"{unassigned_high} high-priority task(s) have no assignee")
    return bottlenecks


def team_insight(tasks: list[Task]) -> dict:
    members: dict[str, dict] = {}
    for task in tasks:
        if not task.assignee_id:
            continue
        stats = members.setdefault(task.assignee_id, {"assigned": 0, "completed": 0, "overdue": 0})
        stats["assigned"] += 1
        if task.status == TaskStatus.DONE.value:
            stats["completed"] += 1
        if task.is_overdue():
            stats["overdue"] += 1
    return {
        "team_size": len(members),
        "members": [
            {"user_id": user_id, **stats, "completion_rate": round(stats["completed"] / stats["assigned"] * 100, 1)}
            for user_id, stats in members.items()
        ],
        "unassigned_tasks": sum(1 for task in tasks if not task.assignee_id),
    }


def documentation_insight(documents: list[Document]) -> dict:
    scores = [
        markdown_utils.analyze_content(document.content or "", document.document_type)["ai_readiness_score"]
        for document in documents
    ]
    return {
        "total_documents": len(documents),
        "document_types": dict(Counter(document.document_type for document in documents)),
        "average_ai_readiness": round(sum(scores) / len(scores), 1) if scores else 0,
        "stale_documents": sum(1 for document in documents if (days_since(document.updated_at) or 0) > 90),
    }


def health_score(progress: dict, bottlenecks: list[str], documents: list[Document]) -> int:
    score = 100
    score -= min(30, progress["overdue"] * 5)
    score -= 10 * len(bottlenecks)
    if not documents:
        score -= 15
    if progress["total_tasks"] and progress["completion_rate"] < 25:
        score -= 10
    return max(0, min(100, score))


async def handle_get_project_insights(args: ProjectInsightsQuery, client: RemoteDataClient) -> dict:
    """Progress, bottleneck, team and documentation insights for one project."""
    project_id = str(args.project_id)
    project = await client.get_project(project_id)
    tasks = await client.list_tasks({"project_id": project_id}, limit=MAX_PAGE)
    documents = await client.list_documents({"project_id": project_id}, limit=MAX_PAGE)

    progress = progress_insight(tasks)
    bottlenecks = bottleneck_insight(tasks)
    available = {
        "progress": lambda: progress,
        "bottlenecks": lambda: bottlenecks,
        "team_performance": lambda: team_insight(tasks),
        "documentation_health": lambda: documentation_insight(documents),
        "ai_readiness": lambda: ai_readiness(documents),
    }
    insights = {insight_type: available[insight_type]() for insight_type in args.insight_types}

    result: dict[str, Any] = {
        "project": project,
        "insights": insights,
        "overall_health_score": health_score(progress, bottlenecks, documents),
    }
    if args.include_recommendations:
        recommendations = list(bottlenecks)
        recommendations.extend(workspace_recommendations([project], tasks, documents))
        if not documents:
            recommendations.append("Create project documentation to capture goals and requirements")
        result["recommendations"] = list(dict.fromkeys(recommendations))
    return result


async def _load_source(client: RemoteDataClient, entity_type: str, entity_id: str):
    if entity_type == "project":
        project = await client.get_project(entity_id)
        return project, project.name, project.description or "", project.id
    if entity_type == "task":
        task = await client.get_task(entity_id)
        return task, task.title, task.description or "", task.project_id
    document = await client.get_document(entity_id)
    return document, document.title, document.content or "", document.project_id


def _ref(kind: str, entity: Any, score: Optional[int] = None) -> dict:
    label = getattr(entity, "name", None) or getattr(entity, "title", "")
    ref = {"type": kind, "id": entity.id, "title": label}
    if score is not None:
        ref["relevance_score"] = score
    return ref


async def handle_find_related_content(args: RelatedContentQuery, client: RemoteDataClient) -> dict:
    """Find content linked to, similar to, or referencing an entity."""
    entity_id = str(args.entity_id)
    source, label, text, project_id = await _load_source(client, args.entity_type, entity_id)
    limit = args.max_results
    related: dict[str, list[dict]] = {}

    if "linked" in args.relation_types and project_id:
        linked = []
        if args.entity_type != "project":
            linked.append(_ref("project", await client.get_project(project_id)))
        if args.entity_type != "task":
            linked.extend(_ref("task", task) for task in await client.list_tasks({"project_id": project_id}, limit=limit))
        if args.entity_type != "document":
            linked.extend(
                _ref("document", doc) for doc in await client.list_documents({"project_id": project_id}, limit=limit)
            )
        related["linked"] = [ref for ref in linked if ref["id"] != entity_id][:limit]

    if "similar" in args.relation_types:
        keywords = extract_keywords(label)[:3]
        similar = []
        if keywords:
            search = {"search": " ".join(keywords)}
            if args.entity_type == "project":
                candidates = await client.list_projects(search, limit=limit)
            elif args.entity_type == "task":
                candidates = await client.list_tasks(search, limit=limit)
            else:
                candidates = await client.list_documents(search, limit=limit)
            for candidate in candidates:
                if candidate.id == entity_id:
                    continue
                other = getattr(candidate, "name", None) or getattr(candidate, "title", "")
                similar.append(_ref(args.entity_type, candidate, relevance_score(other, " ".join(keywords), other)))
            similar.sort(key=lambda ref: ref["relevance_score"], reverse=True)
        related["similar"] = similar[:limit]

    if "referenced" in args.relation_types and project_id:
        documents = await client.list_documents({"project_id": project_id}, limit=MAX_PAGE)
        if args.entity_type == "document":
            targets = {link["text"].lower() for link in markdown_utils.extract_links(text)["internal_links"]}
            referenced = [doc for doc in documents if doc.title.lower() in targets and doc.id != entity_id]
        else:
            referenced = [doc for doc in documents if label and label.lower() in (doc.content or "").lower()]
        related["referenced"] = [_ref("document", doc) for doc in referenced][:limit]

    total = sum(len(items) for items in related.values())
    return {
        "source": _ref(args.entity_type, source),
        "related_content": related,
        "total_related": total,
        "relation_types": list(args.relation_types),
    }
