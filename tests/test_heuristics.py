"""Tests for the keyword heuristics behind context, search and analytics tools."""
from datetime import datetime, timedelta, timezone

import pytest

from helios_mcp import markdown_utils, text_analysis
from helios_mcp.handlers import analytics, context, conversations
from helios_mcp.handlers.debug import mask_key
from helios_mcp.markdown_utils import MarkdownParseError
from helios_mcp.models import ConversationMessage, Task

NOW = datetime(2026, 6, 15, 12, 0, tzinfo=timezone.utc)


def message(role, content, timestamp=None):
    return ConversationMessage(role=role, content=content, timestamp=timestamp)


class TestFrontmatter:
    """Test YAML frontmatter parsing."""

    def test_parse_frontmatter(self):
        content = "---\ntitle: Plan\ntags: [a, b]\n---\n# Body\n"
        assert markdown_utils.parse_frontmatter(content) == {"title": "Plan", "tags": ["a", "b"]}

    def test_no_frontmatter(self):
        assert markdown_utils.parse_frontmatter("# Just a heading") == {}
        assert markdown_utils.split_frontmatter("plain") == (None, "plain")

    def test_invalid_yaml(self):
        with pytest.raises(MarkdownParseError):
            markdown_utils.parse_frontmatter("---\ntitle: [unclosed\n---\nbody")

    def test_frontmatter_must_be_mapping(self):
        with pytest.raises(MarkdownParseError):
            markdown_utils.parse_frontmatter("---\n- one\n- two\n---\nbody")

    def test_invalid_frontmatter_reported_in_analysis(self):
        """Test that analysis flags broken frontmatter instead of failing."""
        analysis = markdown_utils.analyze_content("---\n- one\n---\n# Title\n", "other")
        assert analysis["has_frontmatter"] is True
        assert analysis["frontmatter_valid"] is False
        recommendations = markdown_utils.document_recommendations(analysis, in_project=False)
        assert "Fix the YAML frontmatter, it could not be parsed" in recommendations


class TestContentAnalysis:
    """Test markdown statistics."""

    def test_structure_counts(self):
        body = "# One\n## Two\n\n```py\nx = 1\n```\n\nSee [docs](https://example.com) and [[Roadmap]].\n"
        analysis = markdown_utils.analyze_content(body, "technical")
        assert analysis["heading_count"] == 2
        assert analysis["code_block_count"] == 1
        assert analysis["link_count"] == 1
        assert analysis["internal_link_count"] == 1
        assert analysis["has_frontmatter"] is False

    def test_ai_readiness_score(self):
        assert markdown_utils.ai_readiness_score("# Title\n", has_frontmatter=False) == 20
        assert markdown_utils.ai_readiness_score("# Title\n", has_frontmatter=True) == 50

    def test_complexity(self):
        assert markdown_utils.content_complexity("short", "other") == "low"
        long_body = "\n".join(f"# Heading {i}\n" + "word " * 100 for i in range(12))
        assert markdown_utils.content_complexity(long_body, "design") == "high"

    def test_extract_links(self):
        links = markdown_utils.extract_links("[a](https://x.io) [b](#setup) [[Wiki Page]]")
        assert links["external_links"] == [{"text": "a", "url": "https://x.io", "type": "external"}]
        assert links["anchor_links"][0]["anchor"] == "setup"
        assert links["internal_links"][0]["text"] == "Wiki Page"
        assert links["total_links"] == 3


class TestQueryAnalysis:
    """Test query keyword and intent extraction."""

    def test_extract_keywords(self):
        assert text_analysis.extract_keywords("How to fix the login bug") == ["how", "fix", "login", "bug"]

    @pytest.mark.parametrize("query,intent", [
        ("I'm stuck on deployment", "troubleshooting"),
        ("show my open tasks", "task_management"),
        ("where is the readme", "documentation"),
        ("give me a project overview", "project_overview"),
        ("anything about billing", "general_search"),
    ])
    def test_detect_intent(self, query, intent):
        assert text_analysis.detect_intent(query) == intent

    @pytest.mark.parametrize("query,urgency", [
        ("fix this now", "high"),
        ("critical outage", "high"),
        ("important docs", "medium"),
        ("I know the answer", "low"),
    ])
    def test_detect_urgency(self, query, urgency):
        assert text_analysis.detect_urgency(query) == urgency

    def test_extract_entities(self):
        entities = text_analysis.extract_entities('find "Payment Service" in the API')
        assert entities[0] == "Payment Service"
        assert "API" in entities

    def test_analyze_query_search_terms(self):
        analysis = text_analysis.analyze_query("Review Billing tasks")
        assert analysis["keywords"] == ["review", "billing", "tasks"]
        assert analysis["search_terms"] == ["review", "billing", "tasks", "Review", "Billing"]
        assert analysis["intent"] == "task_management"


class TestRelevance:
    """Test relevance scoring and snippets."""

    def test_exact_title_match_caps_at_100(self):
        assert text_analysis.relevance_score("Auth design", "auth", title="Auth design") == 100

    def test_partial_term_match(self):
        assert text_analysis.relevance_score("token refresh flow", "auth token", title="Flows") == 20

    def test_no_match(self):
        assert text_analysis.relevance_score("nothing here", "auth") == 0
        assert text_analysis.relevance_score("anything", "   ") == 0

    def test_relevance_band(self):
        assert text_analysis.relevance_band(80) == "high"
        assert text_analysis.relevance_band(40) == "medium"
        assert text_analysis.relevance_band(39.9) == "low"

    def test_snippet_short_text(self):
        assert text_analysis.snippet("short text", "auth") == "short text"

    def test_snippet_window(self):
        words = [f"w{i}" for i in range(40)] + ["auth"]
        excerpt = text_analysis.snippet(" ".join(words), "auth", window=5)
        assert excerpt.split() == ["w36", "w37", "w38", "w39", "auth"]

    def test_expand_query(self):
        assert text_analysis.expand_query("auth", "code_related") == "auth function class method implementation"
        assert text_analysis.expand_query("auth", "general") == "auth"

    def test_top_terms(self):
        assert text_analysis.top_terms(["Deploy the deploy pipeline", "pipeline deploy"]) == ["deploy", "pipeline"]


class TestConversationHeuristics:
    """Test title, priority and action item rules."""

    def test_title_from_type(self):
        assert conversations.generate_title([], "document_review", NOW) == "Document Review - 2026-06-15"

    def test_title_from_first_user_line(self):
        long_line = "Please help me restructure the onboarding documentation set"
        title = conversations.generate_title([message("user", long_line + "\nmore")], None, NOW)
        assert title == long_line[:47] + "..."

    def test_fallback_title(self):
        assert conversations.generate_title([message("user", "hi")], None, NOW) == "AI Conversation - 2026-06-15"

    @pytest.mark.parametrize("text,priority", [
        ("fix the outage asap", "urgent"),
        ("this is important", "high"),
        ("we need a plan", "medium"),
        ("tidy the wiki", "low"),
    ])
    def test_determine_priority(self, text, priority):
        assert conversations.determine_priority(text) == priority

    def test_action_confidence_bounds(self):
        assert conversations.action_confidence("we will ship it", "action: we will ship it") == 80
        assert conversations.action_confidence("maybe probably later", "") == 25

    def test_action_items_deduplicated(self):
        messages = [
            message("user", "We need to update the release notes"),
            message("assistant", "Agreed, we need to update the release notes"),
        ]
        items = conversations.extract_action_items(messages)
        assert [item["title"] for item in items] == ["update the release notes"]
        assert items[0]["source_message_index"] == 0

    def test_duration_and_tokens(self):
        messages = [
            message("user", "a" * 10, "2026-06-15T10:00:00Z"),
            message("assistant", "b" * 7, "2026-06-15T10:30:00Z"),
        ]
        assert conversations.duration_minutes(messages) == 30
        assert conversations.estimate_tokens(messages) == 5

    def test_duration_without_timestamps(self):
        assert conversations.duration_minutes([message("user", "x"), message("assistant", "y")]) == 0


class TestVelocity:
    """Test completed-task velocity across periods."""

    def task(self, days_ago, status="done"):
        return Task(id=f"t{days_ago}", status=status, updated_at=NOW - timedelta(days=days_ago))

    def test_stable(self):
        result = analytics.velocity([self.task(1), self.task(10)], "week", NOW)
        assert result["tasks_per_period"] == 1
        assert result["previous_period"] == 1
        assert result["velocity_trend"] == "stable"

    def test_increasing(self):
        result = analytics.velocity([self.task(1), self.task(2), self.task(10)], "week", NOW)
        assert result["velocity_trend"] == "increasing"
        assert result["estimated_hours_per_period"] == 16

    def test_ignores_open_and_old_tasks(self):
        result = analytics.velocity([self.task(1, status="todo"), self.task(40)], "week", NOW)
        assert result["tasks_per_period"] == 0
        assert result["previous_period"] == 0

    def test_predictions(self):
        metrics = {
            "completion_rate": {"overall_completion_rate": 98},
            "velocity": {"tasks_per_period": 10, "previous_period": 4},
        }
        forecast = analytics.predictions(metrics)
        assert forecast["completion_forecast"]["next_period"] == 100
        assert forecast["velocity_forecast"] == {"next_period": 13, "confidence": 80}


class TestHealthScore:
    """Test the project health score."""

    def test_healthy_project(self):
        progress = {"overdue": 0, "total_tasks": 4, "completion_rate": 50.0}
        assert context.health_score(progress, [], documents=["doc"]) == 100

    def test_penalties(self):
        progress = {"overdue": 10, "total_tasks": 10, "completion_rate": 0}
        assert context.health_score(progress, ["a", "b"], documents=[]) == 25

    def test_clamped_at_zero(self):
        progress = {"overdue": 10, "total_tasks": 10, "completion_rate": 0}
        assert context.health_score(progress, ["x"] * 10, documents=[]) == 0


class TestMaskKey:
    def test_mask_key(self):
        assert mask_key("hel9_abcdefgh") == "hel9_abc..."
        assert mask_key(None) == "NOT SET"
        assert mask_key("") == "NOT SET"
