"""MCP tool definitions for Helios-9.

This module is the definitive list of tools the gateway exposes. Input
schemas are generated from the argument models, so the schema an agent sees
and the validation applied to its arguments cannot drift apart.
"""
from mcp.types import Tool

from . import schemas
from .api_client import RemoteDataClient
from .auth import AuthGate
from .handlers import analytics, context, conversations, debug, documents, initiatives, projects, search, tasks
from .registry import ToolDescriptor, ToolRegistry


def get_tool_descriptors() -> list[ToolDescriptor]:
    """Get the list of all tools, in catalogue order."""
    return [
        # ============================================================================
        # Project Tools
        # ============================================================================
        ToolDescriptor(
            name="list_projects",
            description="List projects you can access, most recently updated first. "
                        "Filter by status or a search string. "
                        "Common pattern: list_projects() → pick one → get_project_context(project_id=...).",
            arguments_model=schemas.ProjectListQuery,
            handler=projects.handle_list_projects,
        ),
        ToolDescriptor(
            name="get_project",
            description="Get a single project by ID. Errors: NotFound if the project does not exist.",
            arguments_model=schemas.ProjectRef,
            handler=projects.handle_get_project,
        ),
        ToolDescriptor(
            name="create_project",
            description="Create a new project. Status defaults to 'active'.",
            arguments_model=schemas.ProjectCreate,
            handler=projects.handle_create_project,
        ),
        ToolDescriptor(
            name="update_project",
            description="Update a project's name, description or status. Only supplied fields change.",
            arguments_model=schemas.ProjectUpdate,
            handler=projects.handle_update_project,
        ),
        ToolDescriptor(
            name="get_project_context",
            description="Get a project with its tasks, documents and statistics, plus an AI-oriented summary "
                        "(activity level, documentation maturity, recommendations).",
            arguments_model=schemas.ProjectRef,
            handler=projects.handle_get_project_context,
        ),
        ToolDescriptor(
            name="archive_project",
            description="Archive a project (archive=true) or restore it (archive=false). "
                        "Archiving marks every task in the project as done.",
            arguments_model=schemas.ProjectArchive,
            handler=projects.handle_archive_project,
        ),
        ToolDescriptor(
            name="duplicate_project",
            description="Copy a project under a new name, optionally with its tasks and documents. "
                        "Copied tasks restart as 'todo'; due dates are cleared when reset_dates=true.",
            arguments_model=schemas.ProjectDuplicate,
            handler=projects.handle_duplicate_project,
        ),
        ToolDescriptor(
            name="get_project_timeline",
            description="Chronological events for a project (creation, task activity, due dates, documents) "
                        "with derived milestones.",
            arguments_model=schemas.ProjectTimelineQuery,
            handler=projects.handle_get_project_timeline,
        ),
        ToolDescriptor(
            name="bulk_update_projects",
            description="Apply the same status change to several projects. "
                        "Each project is reported separately; one failure does not stop the rest.",
            arguments_model=schemas.ProjectBulkUpdate,
            handler=projects.handle_bulk_update_projects,
        ),
        # ============================================================================
        # Task Tools
        # ============================================================================
        ToolDescriptor(
            name="list_tasks",
            description="List tasks, optionally filtered by project, initiative, status, assignee or search string.",
            arguments_model=schemas.TaskListQuery,
            handler=tasks.handle_list_tasks,
        ),
        ToolDescriptor(
            name="get_task",
            description="Get a single task by ID.",
            arguments_model=schemas.TaskRef,
            handler=tasks.handle_get_task,
        ),
        ToolDescriptor(
            name="create_task",
            description="Create a task in a project. New tasks always start with status 'todo'.",
            arguments_model=schemas.TaskCreate,
            handler=tasks.handle_create_task,
        ),
        ToolDescriptor(
            name="update_task",
            description="Update a task's fields, including status (todo, in_progress, done).",
            arguments_model=schemas.TaskUpdate,
            handler=tasks.handle_update_task,
        ),
        ToolDescriptor(
            name="get_task_context",
            description="Get a task with its project, related documents, a completion and effort analysis, "
                        "and suggestions.",
            arguments_model=schemas.TaskRef,
            handler=tasks.handle_get_task_context,
        ),
        ToolDescriptor(
            name="bulk_update_tasks",
            description="Apply the same change (status, priority, assignee, due date) to several tasks. "
                        "Each task is reported separately.",
            arguments_model=schemas.TaskBulkUpdate,
            handler=tasks.handle_bulk_update_tasks,
        ),
        # ============================================================================
        # Document Tools
        # ============================================================================
        ToolDescriptor(
            name="list_documents",
            description="List markdown documents, optionally filtered by project, type or search string.",
            arguments_model=schemas.DocumentListQuery,
            handler=documents.handle_list_documents,
        ),
        ToolDescriptor(
            name="get_document",
            description="Get a document with its full markdown content.",
            arguments_model=schemas.DocumentRef,
            handler=documents.handle_get_document,
        ),
        ToolDescriptor(
            name="create_document",
            description="Create a markdown document in a project. "
                        "YAML frontmatter at the top of the content is preserved.",
            arguments_model=schemas.DocumentCreate,
            handler=documents.handle_create_document,
        ),
        ToolDescriptor(
            name="update_document",
            description="Update a document's title, content or type.",
            arguments_model=schemas.DocumentUpdate,
            handler=documents.handle_update_document,
        ),
        ToolDescriptor(
            name="search_documents",
            description="Search documents and rank them by title match, content matches and freshness.",
            arguments_model=schemas.DocumentSearch,
            handler=documents.handle_search_documents,
        ),
        ToolDescriptor(
            name="get_document_context",
            description="Get a document with content and link analysis, related documents and "
                        "recommendations for improving it.",
            arguments_model=schemas.DocumentRef,
            handler=documents.handle_get_document_context,
        ),
        ToolDescriptor(
            name="analyze_document_content",
            description="Analyse a document's structure: word count, headings, code blocks, links, "
                        "frontmatter, reading time, complexity and AI-readiness score.",
            arguments_model=schemas.DocumentRef,
            handler=documents.handle_analyze_document_content,
        ),
        # ============================================================================
        # Initiative and Milestone Tools
        # ============================================================================
        ToolDescriptor(
            name="list_initiatives",
            description="List initiatives, optionally filtered by project, status, priority or search string.",
            arguments_model=schemas.InitiativeListQuery,
            handler=initiatives.handle_list_initiatives,
        ),
        ToolDescriptor(
            name="get_initiative",
            description="Get an initiative with its tasks across all linked projects, milestones, "
                        "statistics and completion percentage.",
            arguments_model=schemas.InitiativeRef,
            handler=initiatives.handle_get_initiative,
        ),
        ToolDescriptor(
            name="create_initiative",
            description="Create an initiative spanning one or more projects.",
            arguments_model=schemas.InitiativeCreate,
            handler=initiatives.handle_create_initiative,
        ),
        ToolDescriptor(
            name="update_initiative",
            description="Update an initiative's fields.",
            arguments_model=schemas.InitiativeUpdate,
            handler=initiatives.handle_update_initiative,
        ),
        ToolDescriptor(
            name="get_initiative_context",
            description="Get the backend's aggregated context for an initiative.",
            arguments_model=schemas.InitiativeRef,
            handler=initiatives.handle_get_initiative_context,
        ),
        ToolDescriptor(
            name="get_initiative_insights",
            description="Get the backend's insights for an initiative.",
            arguments_model=schemas.InitiativeRef,
            handler=initiatives.handle_get_initiative_insights,
        ),
        ToolDescriptor(
            name="search_workspace",
            description="Search across the whole workspace using the backend's search endpoint.",
            arguments_model=schemas.WorkspaceSearch,
            handler=initiatives.handle_search_workspace,
        ),
        ToolDescriptor(
            name="get_enhanced_project_context",
            description="Get a project's context including its initiatives.",
            arguments_model=schemas.ProjectRef,
            handler=initiatives.handle_get_enhanced_project_context,
        ),
        ToolDescriptor(
            name="get_workspace_context",
            description="Get a summary of the whole workspace.",
            arguments_model=schemas.NoArguments,
            handler=initiatives.handle_get_workspace_context,
        ),
        ToolDescriptor(
            name="list_milestones",
            description="List an initiative's milestones in order.",
            arguments_model=schemas.InitiativeRef,
            handler=initiatives.handle_list_milestones,
        ),
        ToolDescriptor(
            name="create_milestone",
            description="Create a milestone for an initiative.",
            arguments_model=schemas.MilestoneCreate,
            handler=initiatives.handle_create_milestone,
        ),
        ToolDescriptor(
            name="update_milestone",
            description="Update a milestone's fields.",
            arguments_model=schemas.MilestoneUpdate,
            handler=initiatives.handle_update_milestone,
        ),
        # ============================================================================
        # AI Conversation Tools
        # ============================================================================
        ToolDescriptor(
            name="save_conversation",
            description="Save an AI conversation to a project. A title is generated when none is given; "
                        "the analysis and extracted action items are stored with it.",
            arguments_model=schemas.ConversationSave,
            handler=conversations.handle_save_conversation,
        ),
        ToolDescriptor(
            name="get_conversations",
            description="List a project's saved AI conversations with aggregate analytics.",
            arguments_model=schemas.ConversationListQuery,
            handler=conversations.handle_get_conversations,
        ),
        ToolDescriptor(
            name="analyze_conversation",
            description="Analyse a conversation's flow, topics, action items, decisions and open questions.",
            arguments_model=schemas.ConversationRef,
            handler=conversations.handle_analyze_conversation,
        ),
        ToolDescriptor(
            name="extract_action_items",
            description="Extract action items from a conversation, optionally creating a task for each one.",
            arguments_model=schemas.ActionItemExtraction,
            handler=conversations.handle_extract_action_items,
        ),
        ToolDescriptor(
            name="generate_conversation_summary",
            description="Summarise a conversation (brief, detailed, action_items or decisions).",
            arguments_model=schemas.ConversationSummaryQuery,
            handler=conversations.handle_generate_conversation_summary,
        ),
        # ============================================================================
        # Context Aggregation Tools
        # ============================================================================
        ToolDescriptor(
            name="get_smart_context",
            description="Interpret a natural-language request and gather the matching projects, tasks, "
                        "documents and conversations.",
            arguments_model=schemas.SmartContextQuery,
            handler=context.handle_get_smart_context,
        ),
        ToolDescriptor(
            name="get_workspace_overview",
            description="Overview of the workspace: totals, project health, productivity, collaboration "
                        "and AI readiness, with recommendations.",
            arguments_model=schemas.WorkspaceOverviewQuery,
            handler=context.handle_get_workspace_overview,
        ),
        ToolDescriptor(
            name="get_project_insights",
            description="Progress, bottleneck, team and documentation insights for a project, "
                        "with an overall health score.",
            arguments_model=schemas.ProjectInsightsQuery,
            handler=context.handle_get_project_insights,
        ),
        ToolDescriptor(
            name="find_related_content",
            description="Find content linked to, similar to, or referencing a project, task or document.",
            arguments_model=schemas.RelatedContentQuery,
            handler=context.handle_find_related_content,
        ),
        # ============================================================================
        # Search Tools
        # ============================================================================
        ToolDescriptor(
            name="universal_search",
            description="Keyword search across projects, tasks and documents with relevance scores and snippets.",
            arguments_model=schemas.UniversalSearchQuery,
            handler=search.handle_universal_search,
        ),
        ToolDescriptor(
            name="semantic_search",
            description="Keyword search widened with terms typical of a context type. "
                        "Results below the similarity threshold are dropped.",
            arguments_model=schemas.SemanticSearchQuery,
            handler=search.handle_semantic_search,
        ),
        # ============================================================================
        # Analytics Tools
        # ============================================================================
        ToolDescriptor(
            name="get_project_analytics",
            description="Completion rate, velocity and team performance across projects, "
                        "with optional forecasts.",
            arguments_model=schemas.ProjectAnalyticsQuery,
            handler=analytics.handle_get_project_analytics,
        ),
        # ============================================================================
        # Debug Tools
        # ============================================================================
        ToolDescriptor(
            name="debug_environment",
            description="Show the server's configuration (API key masked) and test the Helios-9 API connection.",
            arguments_model=schemas.NoArguments,
            handler=debug.handle_debug_environment,
        ),
    ]


def build_registry(client: RemoteDataClient, gate: AuthGate) -> ToolRegistry:
    """Register every tool and freeze the registry."""
    registry = ToolRegistry(client, gate)
    for descriptor in get_tool_descriptors():
        registry.register(descriptor)
    registry.freeze()
    return registry


def get_tools(registry: ToolRegistry) -> list[Tool]:
    """MCP ``Tool`` definitions for every registered tool."""
    return [
        Tool(name=descriptor.name, description=descriptor.description, inputSchema=descriptor.input_schema)
        for descriptor in registry.list()
    ]
