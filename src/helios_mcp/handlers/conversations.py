"""AI conversation tool handlers.

Conversations are stored by the backend as plain message lists. Everything
else here (titles, action items, decisions, summaries) is derived with
keyword rules over the message text.
"""
import logging
import math
import re
from collections import Counter
from datetime import datetime
from typing import Any, Iterable, Optional

from ..api_client import RemoteDataClient
from ..errors import ValidationError
from ..models import Conversation, ConversationMessage, TaskPriority, TaskStatus, utc_now
from ..schemas import (
    ActionItemExtraction,
    ConversationListQuery,
    ConversationRef,
    ConversationSave,
    ConversationSummaryQuery,
)
from ..text_analysis import top_terms
from .projects import ITEM_ERRORS

logger = logging.getLogger("helios-mcp.handlers.conversations")

TYPE_LABELS = {
    "task_discussion": "Task Discussion",
    "document_review": "Document Review",
    "project_planning": "Project Planning",
    "troubleshooting": "Troubleshooting",
    "general": "General Discussion",
}

ACTION_PATTERNS = [
    re.compile(r"(?:need to|should|must|will|todo|action item):?\s*(.+)", re.IGNORECASE),
    re.compile(r"(?:let's|we'll|i'll|you'll)\s+(.+)", re.IGNORECASE),
    re.compile(r"(?:next step|follow up|follow-up):?\s*(.+)", re.IGNORECASE),
]
DECISION_PATTERNS = [
    re.compile(r"(?:decided|decision|concluded|agreed|determined):?\s*(.+)", re.IGNORECASE),
    re.compile(r"(?:we will|we'll|going to)\s+(.+)", re.IGNORECASE),
]
GAP_PATTERNS = [
    re.compile(r"(?:don't know|not sure|unclear|confused|need help):?\s*(.+)", re.IGNORECASE),
    re.compile(r"(?:how to|what is|what are|where is|when is|why is)\s+(.+)", re.IGNORECASE),
]

URGENT_WORDS = ("urgent", "asap", "immediately", "critical", "emergency")
HIGH_WORDS = ("important", "priority", "must", "required", "essential")


def generate_title(messages: list[ConversationMessage], conversation_type: Optional[str], now: datetime) -> str:
    date = now.strftime("%Y-%m-%d")
    if conversation_type:
        return f"{TYPE_LABELS.get(conversation_type, 'Discussion')} - {date}"

    first_user = next((m for m in messages if m.role == "user"), None)
    if first_user:
        first_line = first_user.content.split("\n", 1)[0]
        if 10 < len(first_line) < 100:
            return first_line[:47] + "..." if len(first_line) > 50 else first_line
    return f"AI Conversation - {date}"


def analyze_messages(messages: list[ConversationMessage]) -> dict:
    total = len(messages)
    user = sum(1 for m in messages if m.role == "user")
    assistant = sum(1 for m in messages if m.role == "assistant")
    words = sum(len(m.content.split()) for m in messages)
    return {
        "message_count": total,
        "user_messages": user,
        "assistant_messages": assistant,
        "total_words": words,
        "avg_words_per_message": round(words / total) if total else 0,
        "questions_asked": sum(1 for m in messages if "?" in m.content),
        "code_examples": sum(1 for m in messages if "```" in m.content),
        "external_links": sum(1 for m in messages if re.search(r"https?://", m.content)),
        "conversation_balance": user / (assistant or 1),
    }


def determine_priority(text: str) -> str:
    lowered = text.lower()
    if any(word in lowered for word in URGENT_WORDS):
        return "urgent"
    if any(word in lowered for word in HIGH_WORDS):
        return "high"
    if "should" in lowered or "need" in lowered:
        return "medium"
    return "low"


def action_confidence(text: str, message: str) -> int:
    confidence = 50
    if "will" in text or "must" in text:
        confidence += 20
    if "should" in text or "need to" in text:
        confidence += 15
    if "action" in message or "todo" in message:
        confidence += 10
    if len(text) > 50:
        confidence += 10
    if "maybe" in text or "might" in text:
        confidence -= 15
    if "probably" in text or "perhaps" in text:
        confidence -= 10
    return max(0, min(100, confidence))


def _matches(messages: Iterable[ConversationMessage], patterns: list[re.Pattern], min_length: int,
             max_length: Optional[int] = None) -> Iterable[tuple[int, ConversationMessage, str]]:
    for index, message in enumerate(messages):
        for pattern in patterns:
            for match in pattern.finditer(message.content):
                text = match.group(1).strip()
                if len(text) > min_length and (max_length is None or len(text) < max_length):
                    yield index, message, text


def extract_action_items(messages: list[ConversationMessage], context: Optional[dict] = None) -> list[dict]:
    items: dict[str, dict] = {}
    for index, message, text in _matches(messages, ACTION_PATTERNS, 10, 200):
        if text in items:
            continue
        items[text] = {
            "title": text,
            "description": f'From conversation: "{message.content[:100]}..."',
            "source_message_index": index,
            "source_role": message.role,
            "priority": determine_priority(text),
            "confidence": action_confidence(text, message.content),
            "context": context or {},
        }
    return list(items.values())


def extract_decisions(messages: list[ConversationMessage]) -> list[str]:
    return list(dict.fromkeys(text for _, _, text in _matches(messages, DECISION_PATTERNS, 10)))


def extract_questions(messages: list[ConversationMessage]) -> list[str]:
    questions = []
    for message in messages:
        if "?" in message.content:
            question = message.content.split("?", 1)[0] + "?"
            if 10 < len(question) < 200:
                questions.append(question)
    return questions


def knowledge_gaps(messages: list[ConversationMessage]) -> list[str]:
    return list(dict.fromkeys(text for _, _, text in _matches(messages, GAP_PATTERNS, 5)))


def conversation_flow(messages: list[ConversationMessage]) -> dict:
    turns = sum(1 for prev, cur in zip(messages, messages[1:]) if prev.role != cur.role)
    return {
        "turn_taking": turns,
        "longest_response": max((len(m.content) for m in messages), default=0),
    }


def ai_performance(messages: list[ConversationMessage]) -> dict:
    replies = [m for m in messages if m.role == "assistant"]
    return {
        "response_count": len(replies),
        "avg_response_length": sum(len(m.content) for m in replies) / (len(replies) or 1),
        "helpful_responses": sum(
            1 for m in replies if "```" in m.content or "example" in m.content or len(m.content) > 100
        ),
    }


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def duration_minutes(messages: list[ConversationMessage]) -> int:
    if len(messages) < 2:
        return 0
    first = _parse_timestamp(messages[0].timestamp)
    last = _parse_timestamp(messages[-1].timestamp)
    if first is None or last is None or (first.tzinfo is None) != (last.tzinfo is None):
        return 0
    return round((last - first).total_seconds() / 60)


def estimate_tokens(messages: list[ConversationMessage]) -> int:
    # ~4 characters per token
    return math.ceil(sum(len(m.content) for m in messages) / 4)


def follow_up_suggestions(context: Optional[dict]) -> list[str]:
    suggestions = [
        "Review and prioritize the action items identified",
        "Schedule follow-up meeting to track progress",
        "Create documentation based on decisions made",
        "Share summary with relevant team members",
    ]
    if context and context.get("task_id"):
        suggestions.append("Update the related task with conversation insights")
    if context and context.get("document_id"):
        suggestions.append("Update the related document with new information")
    return suggestions


def _conversation_context(conversation: Conversation) -> dict:
    return (conversation.metadata or {}).get("context") or {}


async def handle_save_conversation(args: ConversationSave, client: RemoteDataClient) -> dict:
    """Store a conversation with derived title, analysis and action items."""
    now = utc_now()
    messages = []
    for message in args.messages:
        payload = message.to_payload()
        payload.setdefault("timestamp", now.isoformat())
        messages.append(ConversationMessage.model_validate(payload))

    context = args.context.to_payload() if args.context else {}
    title = args.title or generate_title(messages, context.get("conversation_type"), now)
    analysis = analyze_messages(messages)
    action_items = extract_action_items(messages, context)

    conversation = await client.create_conversation({
        "project_id": str(args.project_id),
        "title": title,
        "messages": [m.model_dump(mode="json", exclude_none=True) for m in messages],
        "metadata": {
            **(args.metadata or {}),
            "context": context,
            "analysis": analysis,
            "action_items": action_items,
            "token_count": estimate_tokens(messages),
        },
    })
    logger.info(f"Saved conversation {conversation.id} ({len(messages)} messages)")
    return {
        "conversation": conversation,
        "analysis": analysis,
        "action_items": action_items,
        "message": f'Conversation "{title}" saved with {len(messages)} messages',
    }


async def handle_get_conversations(args: ConversationListQuery, client: RemoteDataClient) -> dict:
    filters = args.to_payload(exclude={"limit", "include_messages"})
    conversations = await client.list_conversations(filters, limit=args.limit)

    items = []
    type_counts: Counter = Counter()
    for conversation in conversations:
        entry: dict[str, Any] = conversation.model_dump(mode="json")
        entry["message_count"] = len(conversation.messages)
        if not args.include_messages:
            entry.pop("messages", None)
        items.append(entry)
        type_counts[_conversation_context(conversation).get("conversation_type", "general")] += 1

    total_messages = sum(len(c.messages) for c in conversations)
    return {
        "conversations": items,
        "analytics": {
            "total_conversations": len(conversations),
            "total_messages": total_messages,
            "average_messages": round(total_messages / len(conversations), 1) if conversations else 0,
            "conversation_types": dict(type_counts),
        },
        "filters_applied": filters,
    }


def build_analysis(conversation: Conversation) -> dict:
    messages = conversation.messages
    context = _conversation_context(conversation)
    analysis = {
        "conversation_id": conversation.id,
        "title": conversation.title,
        "flow_analysis": conversation_flow(messages),
        "content_analysis": analyze_messages(messages),
        "ai_performance": ai_performance(messages),
        "topics": top_terms(m.content for m in messages),
        "action_items": extract_action_items(messages, context),
        "decisions_made": extract_decisions(messages),
        "questions_raised": extract_questions(messages),
        "knowledge_gaps": knowledge_gaps(messages),
        "follow_up_suggestions": follow_up_suggestions(context),
        "duration_minutes": duration_minutes(messages),
        "participants": sorted({m.role for m in messages}),
    }

    recommendations = []
    if analysis["action_items"]:
        recommendations.append("Convert action items into trackable tasks")
    if analysis["knowledge_gaps"]:
        recommendations.append("Address identified knowledge gaps through documentation")
    if len(analysis["questions_raised"]) > len(analysis["action_items"]):
        recommendations.append("Many questions were raised - consider scheduling follow-up session")
    analysis["recommendations"] = recommendations
    return analysis


async def handle_analyze_conversation(args: ConversationRef, client: RemoteDataClient) -> dict:
    conversation = await client.get_conversation(str(args.conversation_id))
    return build_analysis(conversation)


def _task_priority(action_priority: str) -> str:
    if action_priority == "urgent":
        return TaskPriority.HIGH.value
    return action_priority


async def handle_extract_action_items(args: ActionItemExtraction, client: RemoteDataClient) -> dict:
    """Extract action items, optionally creating one task per item."""
    conversation = await client.get_conversation(str(args.conversation_id))
    items = extract_action_items(conversation.messages, _conversation_context(conversation))

    created, failures = [], []
    if args.auto_create_tasks and items:
        if not conversation.project_id:
            raise ValidationError(
                "Conversation is not linked to a project, tasks cannot be created",
                violations=["conversation.project_id: missing"],
            )
        for item in items:
            try:
                task = await client.create_task({
                    "project_id": conversation.project_id,
                    "title": item["title"][:500],
                    "description": item["description"],
                    "priority": _task_priority(item["priority"]),
                    "status": TaskStatus.TODO.value,
                })
            except ITEM_ERRORS as e:
                failures.append({"title": item["title"], "error": f"{e.kind}: {e.message}"})
            else:
                created.append(task)

    logger.info(f"Extracted {len(items)} action items from conversation {conversation.id}")
    return {
        "conversation_id": conversation.id,
        "action_items": items,
        "tasks_created": created,
        "task_failures": failures,
        "summary": {
            "total_action_items": len(items),
            "tasks_created": len(created),
            "high_priority_items": sum(1 for item in items if item["priority"] in ("urgent", "high")),
        },
    }


def _numbered(lines: list[str]) -> str:
    return "\n".join(f"{index}. {line}" for index, line in enumerate(lines, start=1))


def summarize(conversation: Conversation, summary_type: str) -> str:
    messages = conversation.messages
    if summary_type == "detailed":
        analysis = analyze_messages(messages)
        context = _conversation_context(conversation)
        return "\n".join([
            "**Conversation Summary**",
            "",
            f"- **Message Count**: {analysis['message_count']} "
            f"({analysis['user_messages']} user, {analysis['assistant_messages']} AI)",
            f"- **Total Words**: {analysis['total_words']}",
            f"- **Questions Asked**: {analysis['questions_asked']}",
            f"- **Code Examples**: {analysis['code_examples']}",
            "",
            "**Key Outcomes**:",
            f"- {len(extract_action_items(messages))} action items identified",
            f"- {len(extract_decisions(messages))} decisions made",
            f"- {analysis['external_links']} external resources referenced",
            "",
            f"**Context**: {context.get('conversation_type', 'general')} discussion related to project activities.",
        ])
    if summary_type == "action_items":
        items = extract_action_items(messages)
        if not items:
            return "No specific action items were identified in this conversation."
        lines = [f"{item['title']} ({item['priority']} priority)" for item in items]
        return f"**Action Items Identified ({len(items)})**:\n\n" + _numbered(lines)
    if summary_type == "decisions":
        decisions = extract_decisions(messages)
        if not decisions:
            return "No explicit decisions were documented in this conversation."
        return f"**Decisions Made ({len(decisions)})**:\n\n" + _numbered(decisions)

    first_user = next((m for m in messages if m.role == "user"), None)
    opening = first_user.content[:100] if first_user else ""
    return (
        f'Conversation started with: "{opening}..." and concluded with AI providing guidance and next steps. '
        f"{len(messages)} messages exchanged."
    )


async def handle_generate_conversation_summary(args: ConversationSummaryQuery, client: RemoteDataClient) -> dict:
    conversation = await client.get_conversation(str(args.conversation_id))
    summary = summarize(conversation, args.summary_type)
    return {
        "conversation_id": conversation.id,
        "summary_type": args.summary_type,
        "summary": summary,
        "word_count": len(summary.split()),
        "reading_time": math.ceil(len(summary.split()) / 200),
    }
