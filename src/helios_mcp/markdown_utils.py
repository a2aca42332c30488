"""Utilities for analysing markdown documents."""
import math
import re
from typing import Any, Dict, Optional, Tuple

import yaml


FRONTMATTER_PATTERN = re.compile(r"^---\s*\n(.*?)\n---\s*\n?(.*)$", re.DOTALL)
HEADING_PATTERN = re.compile(r"^#+\s+.+$", re.MULTILINE)
CODE_BLOCK_PATTERN = re.compile(r"```.*?```", re.DOTALL)
MARKDOWN_LINK_PATTERN = re.compile(r"\[([^\]]+)\]\(([^)]+)\)")
EXTERNAL_LINK_PATTERN = re.compile(r"\[([^\]]+)\]\((https?://[^)]+)\)")
ANCHOR_LINK_PATTERN = re.compile(r"\[([^\]]+)\]\(#([^)]+)\)")
WIKI_LINK_PATTERN = re.compile(r"\[\[([^\]]+)\]\]")

WORDS_PER_MINUTE = 200


class MarkdownParseError(Exception):
    """Raised when markdown frontmatter cannot be parsed."""
    pass


def split_frontmatter(content: str) -> Tuple[Optional[str], str]:
    """Split raw frontmatter text from the markdown body.

    Returns:
        (frontmatter_text, body); frontmatter_text is None when absent
    """
    match = FRONTMATTER_PATTERN.match(content or "")
    if not match:
        return None, content or ""
    return match.group(1), match.group(2)


def parse_frontmatter(content: str) -> Dict[str, Any]:
    """Parse YAML frontmatter into a dict (empty when there is none).

    Raises:
        MarkdownParseError: If the frontmatter is not a valid YAML mapping
    """
    raw, _ = split_frontmatter(content)
    if raw is None:
        return {}
    try:
        frontmatter = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise MarkdownParseError(f"Invalid YAML frontmatter: {e}") from e
    if frontmatter is None:
        return {}
    if not isinstance(frontmatter, dict):
        raise MarkdownParseError("Frontmatter must be a YAML dictionary")
    return frontmatter


def content_complexity(body: str, document_type: str) -> str:
    score = 0
    if len(body) > 5000:
        score += 2
    elif len(body) > 2000:
        score += 1

    headings = len(HEADING_PATTERN.findall(body))
    if headings > 10:
        score += 2
    elif headings > 5:
        score += 1

    code_blocks = len(CODE_BLOCK_PATTERN.findall(body))
    if code_blocks > 5:
        score += 2
    elif code_blocks > 2:
        score += 1

    if document_type in ("technical", "design"):
        score += 1

    if score >= 4:
        return "high"
    if score >= 2:
        return "medium"
    return "low"


def ai_readiness_score(content: str, has_frontmatter: bool) -> int:
    """Score 0-100 for how well structured a document is for AI consumption."""
    score = 0
    if has_frontmatter:
        score += 30
    if HEADING_PATTERN.search(content):
        score += 20
    words = len(content.split())
    if 100 < words < 5000:
        score += 20
    if "```" in content:
        score += 15
    if MARKDOWN_LINK_PATTERN.search(content):
        score += 15
    return min(100, score)


def analyze_content(content: str, document_type: str) -> Dict[str, Any]:
    """Structural statistics for a markdown document."""
    content = content or ""
    raw_frontmatter, body = split_frontmatter(content)
    has_frontmatter = raw_frontmatter is not None

    frontmatter_valid = True
    frontmatter_keys: list[str] = []
    if has_frontmatter:
        try:
            frontmatter_keys = sorted(parse_frontmatter(content))
        except MarkdownParseError:
            frontmatter_valid = False

    words = body.split()
    return {
        "word_count": len(words),
        "line_count": len(body.split("\n")),
        "character_count": len(body),
        "heading_count": len(HEADING_PATTERN.findall(body)),
        "code_block_count": len(CODE_BLOCK_PATTERN.findall(body)),
        "link_count": len(MARKDOWN_LINK_PATTERN.findall(body)),
        "internal_link_count": len(WIKI_LINK_PATTERN.findall(body)),
        "has_frontmatter": has_frontmatter,
        "frontmatter_valid": frontmatter_valid,
        "frontmatter_keys": frontmatter_keys,
        "estimated_read_time": math.ceil(len(words) / WORDS_PER_MINUTE),
        "content_complexity": content_complexity(body, document_type),
        "ai_readiness_score": ai_readiness_score(content, has_frontmatter),
    }


def extract_links(content: str) -> Dict[str, Any]:
    content = content or ""
    external = [{"text": text, "url": url, "type": "external"} for text, url in EXTERNAL_LINK_PATTERN.findall(content)]
    internal = [{"text": text, "type": "internal"} for text in WIKI_LINK_PATTERN.findall(content)]
    anchors = [{"text": text, "anchor": anchor, "type": "anchor"} for text, anchor in ANCHOR_LINK_PATTERN.findall(content)]
    return {
        "external_links": external,
        "internal_links": internal,
        "anchor_links": anchors,
        "total_links": len(external) + len(internal) + len(anchors),
    }


def document_recommendations(analysis: Dict[str, Any], in_project: bool) -> list[str]:
    recommendations = []
    if not analysis["has_frontmatter"]:
        recommendations.append("Add YAML frontmatter with metadata to improve AI integration")
    elif not analysis["frontmatter_valid"]:
        recommendations.append("Fix the YAML frontmatter, it could not be parsed")
    if analysis["word_count"] < 100:
        recommendations.append("Document seems too brief - consider adding more detailed content")
    if analysis["heading_count"] == 0:
        recommendations.append("Add headings to improve document structure and readability")
    if analysis["internal_link_count"] == 0 and in_project:
        recommendations.append("Consider adding links to related project documents")
    if analysis["ai_readiness_score"] < 60:
        recommendations.append("Improve AI readiness by adding structured metadata and clear sections")
    return recommendations
