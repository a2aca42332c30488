"""Project analytics tool handler."""
import logging
from datetime import datetime, timedelta
from typing import Any

from ..api_client import RemoteDataClient
from ..models import Project, Task, TaskStatus, as_utc, utc_now
from ..schemas import ProjectAnalyticsQuery

logger = logging.getLogger("helios-mcp.handlers.analytics")

MAX_PAGE = 100
HOURS_PER_TASK = 8

PERIOD_DAYS = {"week": 7, "month": 30, "quarter": 90, "year": 365}


def period_start(time_range: str, now: datetime) -> datetime:
    return now - timedelta(days=PERIOD_DAYS[time_range])


def completion_rate(projects: list[Project], tasks_by_project: dict[str, list[Task]]) -> dict:
    breakdown = []
    for project in projects:
        tasks = tasks_by_project[project.id]
        completed = sum(1 for task in tasks if task.status == TaskStatus.DONE.value)
        breakdown.append({
            "project_id": project.id,
            "project_name": project.name,
            "total_tasks": len(tasks),
            "completed_tasks": completed,
            "completion_rate": completed / len(tasks) * 100 if tasks else 0,
        })
    overall = sum(entry["completion_rate"] for entry in breakdown) / len(breakdown) if breakdown else 0
    return {"overall_completion_rate": round(overall, 1), "project_breakdown": breakdown}


def velocity(tasks: list[Task], time_range: str, now: datetime) -> dict:
    """Tasks completed in the current period, compared to the period before."""
    start = period_start(time_range, now)
    previous_start = start - timedelta(days=PERIOD_DAYS[time_range])
    current = previous = 0
    for task in tasks:
        if task.status != TaskStatus.DONE.value or task.updated_at is None:
            continue
        updated = as_utc(task.updated_at)
        if updated >= start:
            current += 1
        elif updated >= previous_start:
            previous += 1

    if current > previous:
        trend = "increasing"
    elif current < previous:
        trend = "decreasing"
    else:
        trend = "stable"
    return {
        "tasks_per_period": current,
        "previous_period": previous,
        "estimated_hours_per_period": current * HOURS_PER_TASK,
        "velocity_trend": trend,
        "period": time_range,
    }


def team_performance(tasks: list[Task], now: datetime) -> dict:
    stats: dict[str, dict[str, int]] = {}
    for task in tasks:
        if not task.assignee_id:
            continue
        member = stats.setdefault(task.assignee_id, {"assigned": 0, "completed": 0, "overdue": 0})
        member["assigned"] += 1
        if task.status == TaskStatus.DONE.value:
            member["completed"] += 1
        if task.is_overdue(now):
            member["overdue"] += 1

    individual = [
        {
            "user_id": user_id,
            "completion_rate": member["completed"] / member["assigned"] * 100,
            "overdue_rate": member["overdue"] / member["assigned"] * 100,
            "total_tasks": member["assigned"],
        }
        for user_id, member in stats.items()
    ]
    average = sum(entry["completion_rate"] for entry in individual) / len(individual) if individual else 0
    return {
        "team_size": len(individual),
        "average_completion_rate": round(average, 1),
        "individual_performance": individual,
        "top_performers": sorted(individual, key=lambda entry: entry["completion_rate"], reverse=True)[:3],
    }


def predictions(metrics: dict) -> dict:
    forecast: dict[str, Any] = {}
    if "completion_rate" in metrics:
        forecast["completion_forecast"] = {
            "next_period": min(100, round(metrics["completion_rate"]["overall_completion_rate"] * 1.05)),
            "confidence": 75,
        }
    if "velocity" in metrics:
        current = metrics["velocity"]["tasks_per_period"]
        previous = metrics["velocity"]["previous_period"]
        forecast["velocity_forecast"] = {
            "next_period": max(0, current + (current - previous) // 2),
            "confidence": 80 if previous else 50,
        }
    return forecast


def analytics_insights(metrics: dict, project_count: int) -> list[str]:
    insights = []
    if metrics.get("completion_rate", {}).get("overall_completion_rate", 0) > 80:
        insights.append("Excellent task completion rate indicates strong project execution")
    team = metrics.get("team_performance")
    if team and team["team_size"] and team["average_completion_rate"] < 60:
        insights.append("Team performance below optimal - consider workload redistribution")
    if "velocity" in metrics and project_count > 10 and metrics["velocity"]["tasks_per_period"] < 20:
        insights.append("Low velocity relative to project count - may need process optimization")
    return insights


def analytics_recommendations(metrics: dict) -> list[str]:
    recommendations = []
    if "completion_rate" in metrics and metrics["completion_rate"]["overall_completion_rate"] < 70:
        recommendations.append("Focus on breaking down large tasks and improving estimation accuracy")
    if "team_performance" in metrics and metrics["team_performance"]["team_size"] < 3:
        recommendations.append("Consider expanding team capacity for better project coverage")
    if metrics.get("velocity", {}).get("velocity_trend") == "decreasing":
        recommendations.append("Velocity is dropping - review blockers with the team")
    return recommendations


async def handle_get_project_analytics(args: ProjectAnalyticsQuery, client: RemoteDataClient) -> dict:
    """Completion, velocity and team metrics across one or more projects."""
    if args.project_ids:
        projects = [await client.get_project(str(project_id)) for project_id in args.project_ids]
    else:
        projects = await client.list_projects(limit=MAX_PAGE)

    tasks_by_project = {
        project.id: await client.list_tasks({"project_id": project.id}, limit=MAX_PAGE) for project in projects
    }
    all_tasks = [task for tasks in tasks_by_project.values() for task in tasks]
    now = utc_now()

    metrics: dict[str, Any] = {}
    for metric in args.metrics:
        if metric == "completion_rate":
            metrics[metric] = completion_rate(projects, tasks_by_project)
        elif metric == "velocity":
            metrics[metric] = velocity(all_tasks, args.time_range, now)
        elif metric == "team_performance":
            metrics[metric] = team_performance(all_tasks, now)

    analytics: dict[str, Any] = {
        "time_range": args.time_range,
        "projects_analyzed": len(projects),
        "generated_at": now,
        "metrics": metrics,
    }
    if args.include_predictions:
        analytics["predictions"] = predictions(metrics)
    analytics["insights"] = analytics_insights(metrics, len(projects))
    analytics["recommendations"] = analytics_recommendations(metrics)

    logger.info(f"Computed analytics for {len(projects)} projects over {args.time_range}")
    return analytics
