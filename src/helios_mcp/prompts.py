"""Prompt templates for common Helios-9 workflows.

Prompts only render text. Any data they show is fetched through
``ToolRegistry.execute`` so it is validated, authenticated and scoped the same
way as a tool call.
"""
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Literal, Optional
from uuid import UUID

from mcp.types import GetPromptResult, Prompt, PromptArgument, PromptMessage, TextContent
from pydantic import Field

from .errors import NotFoundError
from .models import utc_now
from .registry import ToolRegistry
from .schemas import ToolArguments
from .validation import validate_arguments

logger = logging.getLogger("helios-mcp.prompts")


# Prompt Argument Schemas

class ProjectKickoffArgs(ToolArguments):
    description: str = Field(..., min_length=1, description="Natural language description of the project")
    team_size: int = Field(3, gt=0, description="Number of team members")
    duration: str = Field("2-3 months", description="Expected project duration")


class DailyStandupArgs(ToolArguments):
    project_id: UUID = Field(..., description="Project ID to generate standup for")
    date: Optional[str] = Field(None, description="Date for the standup (ISO format)")


class DocumentReviewArgs(ToolArguments):
    document_id: UUID = Field(..., description="Document ID to review")
    review_type: Literal["technical", "editorial", "comprehensive"] = Field(
        "comprehensive", description="Type of review: technical, editorial, or comprehensive"
    )


class SprintPlanningArgs(ToolArguments):
    project_id: UUID = Field(..., description="Project ID to plan the sprint for")
    sprint_duration: int = Field(14, gt=0, description="Sprint length in days")
    team_capacity: float = Field(100, gt=0, description="Team capacity as a percentage")


class ProjectHealthCheckArgs(ToolArguments):
    project_id: UUID = Field(..., description="Project ID to analyze")
    analysis_depth: Literal["quick", "standard", "comprehensive"] = Field(
        "standard", description="Depth of analysis: quick, standard, or comprehensive"
    )


class TaskBreakdownArgs(ToolArguments):
    feature_description: str = Field(..., min_length=1, description="Description of the feature to implement")
    acceptance_criteria: Optional[str] = Field(None, description="Specific acceptance criteria for the feature")


# Renderers

def _bullets(lines: list[str], empty: str) -> str:
    return "\n".join(f"- {line}" for line in lines) if lines else f"- {empty}"


async def render_project_kickoff(args: ProjectKickoffArgs, registry: ToolRegistry) -> str:
    return f"""# Project Kickoff Planning

Based on this project description: "{args.description}"

Please help me create a project plan including:

## 1. Project Structure
- Break down the project into logical phases and milestones
- Identify key deliverables and dependencies
- Suggest a timeline that fits a duration of {args.duration}

## 2. Team Organization
- Define roles and responsibilities for {args.team_size} team members
- Suggest task assignments and collaboration patterns

## 3. Documentation Strategy
- Recommend essential documents to create (README, specs, etc.)
- Plan knowledge sharing and onboarding materials

## 4. Initial Tasks
- Create a prioritized backlog of initial tasks
- Define acceptance criteria and definition of done

Please provide specific, actionable recommendations that I can implement immediately."""


async def render_daily_standup(args: DailyStandupArgs, registry: ToolRegistry) -> str:
    context = await registry.execute("get_project_context", {"project_id": str(args.project_id)})
    project = context.get("project") or {}
    stats = context.get("statistics") or {}
    task_status = stats.get("task_status") or {}
    day = args.date or utc_now().date().isoformat()

    tasks = [f"{task.get('title')} ({task.get('status')})" for task in context.get("recent_tasks") or []]
    documents = [f"{doc.get('title')} ({doc.get('document_type')})" for doc in context.get("recent_documents") or []]

    return f"""# Daily Standup Report - {day}

## Project: {project.get('name', 'Unknown')}

### Recent Activity Summary
{_bullets(tasks, "No recent task activity")}

### Current Status
- **Total Tasks**: {stats.get('total_tasks', 0)}
- **In Progress**: {task_status.get('in_progress', 0)}
- **Completed**: {task_status.get('done', 0)}

### Documentation Updates
{_bullets(documents, "No recent document updates")}

Based on this activity, please help generate:

1. **What was completed yesterday?**
2. **What's planned for today?**
3. **Are there any blockers or impediments?**
4. **What support or resources are needed?**

Please format the response as a structured standup report that can be shared with the team."""


async def render_document_review(args: DocumentReviewArgs, registry: ToolRegistry) -> str:
    context = await registry.execute("get_document_context", {"document_id": str(args.document_id)})
    document = context["document"]
    analysis = context["content_analysis"]
    recommendations = _bullets(context["recommendations"], "None")

    return f"""# Document Review Request

## Document Information
- **Title**: {document.title}
- **Type**: {document.document_type}
- **Length**: {analysis['word_count']} words
- **AI Readiness**: {analysis['ai_readiness_score']}%

## Automated Findings
{recommendations}

## Review Type: {args.review_type}

Please provide a {args.review_type} review of this document focusing on:

### Content Quality
- Clarity and coherence of information
- Completeness and accuracy
- Structure and organization

### Technical Aspects
- Formatting and markdown usage
- Code examples and technical accuracy
- Links, references and frontmatter

### Action Items
- Prioritized list of improvements
- Estimated effort for each change

Please provide detailed feedback with specific examples and actionable recommendations."""


async def render_sprint_planning(args: SprintPlanningArgs, registry: ToolRegistry) -> str:
    context = await registry.execute("get_project_context", {"project_id": str(args.project_id)})
    project = context.get("project") or {}
    task_status = (context.get("statistics") or {}).get("task_status") or {}

    return f"""# Sprint Planning Session

## Project: {project.get('name', 'Unknown')}
**Sprint Duration**: {args.sprint_duration} days
**Team Capacity**: {args.team_capacity:g}%

## Current State
- **Todo Tasks**: {task_status.get('todo', 0)}
- **In Progress**: {task_status.get('in_progress', 0)}

## Planning Requirements

### 1. Sprint Goal
Define the primary sprint objective, key deliverables and success metrics.

### 2. Task Selection
Recommend tasks for this sprint considering dependencies, team capacity
({args.team_capacity:g}%) and initiative priorities.

### 3. Task Assignment Strategy
Suggest a balanced distribution of work by team member expertise.

### 4. Risk Identification
Identify technical blockers, external dependencies and timeline pressures.

Please provide a structured sprint plan that maximizes value delivery while maintaining a sustainable pace."""


async def render_project_health_check(args: ProjectHealthCheckArgs, registry: ToolRegistry) -> str:
    result = await registry.execute(
        "get_project_insights",
        {
            "project_id": str(args.project_id),
            "insight_types": ["progress", "bottlenecks", "documentation_health"],
            "include_recommendations": True,
        },
    )
    project = result["project"]
    progress = result["insights"]["progress"]
    documentation = result["insights"]["documentation_health"]

    return f"""# Project Health Analysis: {project.name}

## Analysis Depth: {args.analysis_depth}

## Current Metrics
- **Health Score**: {result['overall_health_score']}/100
- **Overall Progress**: {progress['completion_rate']}% tasks completed
- **Task Distribution**: {progress['todo']} todo, {progress['in_progress']} in progress, {progress['completed']} done
- **Overdue Tasks**: {progress['overdue']}
- **Documentation**: {documentation['total_documents']} documents

## Detected Bottlenecks
{_bullets(result['insights']['bottlenecks'], "None detected")}

## Analysis Requirements

### 1. Health Assessment
Evaluate schedule, scope, team, quality and documentation health.

### 2. Risk Analysis
Categorize risks as critical, high, medium or low.

### 3. Actionable Recommendations
Start from these automated suggestions and refine them:
{_bullets(result.get('recommendations') or [], "None")}

Please provide insights that are specific, actionable, and tied to measurable outcomes."""


async def render_task_breakdown(args: TaskBreakdownArgs, registry: ToolRegistry) -> str:
    criteria = f"## Acceptance Criteria\n{args.acceptance_criteria}\n\n" if args.acceptance_criteria else ""
    return f"""# Feature Task Breakdown

## Feature Description
{args.feature_description}

{criteria}Please break down this feature into specific, actionable tasks covering:

1. Analysis and design
2. Implementation
3. Testing
4. Documentation
5. Deployment

For each task, provide a clear title, a description with steps, estimated effort (hours),
dependencies on other tasks and a priority (high/medium/low).

Ensure tasks are sized appropriately (4-16 hours each) and have clear completion criteria."""


@dataclass(frozen=True)
class PromptSpec:
    name: str
    description: str
    arguments_model: type[ToolArguments]
    render: Callable[[ToolArguments, ToolRegistry], Awaitable[str]]

    def to_prompt(self) -> Prompt:
        arguments = [
            PromptArgument(name=name, description=field.description, required=field.is_required())
            for name, field in self.arguments_model.model_fields.items()
        ]
        return Prompt(name=self.name, description=self.description, arguments=arguments)


PROMPTS = [
    PromptSpec("project_kickoff", "Generate project structure from natural language description",
               ProjectKickoffArgs, render_project_kickoff),
    PromptSpec("daily_standup", "Generate standup report from project activity",
               DailyStandupArgs, render_daily_standup),
    PromptSpec("document_review", "Generate document review with suggestions",
               DocumentReviewArgs, render_document_review),
    PromptSpec("sprint_planning", "Plan the next sprint from the project's current state",
               SprintPlanningArgs, render_sprint_planning),
    PromptSpec("project_health_check", "Project health analysis with actionable recommendations",
               ProjectHealthCheckArgs, render_project_health_check),
    PromptSpec("task_breakdown", "Break down a feature or requirement into specific, actionable tasks",
               TaskBreakdownArgs, render_task_breakdown),
]


class PromptCatalog:
    """Lists and renders prompts."""

    def __init__(self, registry: ToolRegistry, prompts: Optional[list[PromptSpec]] = None):
        self.registry = registry
        self._prompts = {spec.name: spec for spec in (prompts if prompts is not None else PROMPTS)}

    def list_prompts(self) -> list[Prompt]:
        return [spec.to_prompt() for spec in self._prompts.values()]

    async def get_prompt(self, name: str, arguments: Optional[dict] = None) -> GetPromptResult:
        """Render a prompt.

        Raises:
            NotFoundError: No prompt with that name
            ValidationError: Invalid prompt arguments
        """
        spec = self._prompts.get(name)
        if spec is None:
            raise NotFoundError("Prompt", name)

        args = validate_arguments(spec.arguments_model, arguments)
        logger.info(f"Rendering prompt {name}")
        text = await spec.render(args, self.registry)
        return GetPromptResult(
            description=f"Generated {name} prompt",
            messages=[PromptMessage(role="user", content=TextContent(type="text", text=text))],
        )
