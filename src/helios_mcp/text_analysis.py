"""Keyword heuristics for queries and free text.

These are deliberately simple word-matching rules. There is no model behind
them: scores are only meant to order a handful of results sensibly.
"""
import re
from collections import Counter
from typing import Any, Iterable, Optional

QUERY_STOP_WORDS = frozenset(
    ["the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with", "by"]
)

TEXT_STOP_WORDS = QUERY_STOP_WORDS | frozenset([
    "is", "are", "was", "were", "be", "been", "have", "has", "had", "do", "does", "did", "will",
    "would", "could", "should", "may", "might", "can", "this", "that", "these", "those", "i",
    "you", "he", "she", "it", "we", "they", "what", "when", "where", "which", "there", "their",
    "about", "from", "into", "just", "also", "then", "than", "them", "your", "some",
])

INTENT_RULES = [
    ("troubleshooting", ("block", "stuck", "issue")),
    ("task_management", ("task", "todo", "work")),
    ("documentation", ("document", "doc", "readme")),
    ("project_overview", ("project", "overview")),
    ("collaboration", ("team", "collaboration")),
]

URGENT_WORDS = ("urgent", "asap", "emergency", "critical", "immediately")
ELEVATED_WORDS = ("important", "priority", "soon", "quick", "fast")

SEMANTIC_EXPANSIONS = {
    "technical_documentation": ["docs", "api", "specification", "guide"],
    "meeting_notes": ["discussion", "decision", "action item", "agenda"],
    "code_related": ["function", "class", "method", "implementation"],
    "project_context": ["milestone", "deliverable", "requirement", "scope"],
}

_ALPHA = re.compile(r"^[a-zA-Z]+$")
_QUOTED = re.compile(r'"([^"]+)"')
_TECH_TERM = re.compile(r"\b[A-Z][a-zA-Z]+\b|\b[a-zA-Z]+[-_][a-zA-Z]+\b")


def extract_keywords(query: str) -> list[str]:
    return [
        word
        for word in query.lower().split()
        if len(word) > 2 and word not in QUERY_STOP_WORDS and _ALPHA.match(word)
    ]


def detect_intent(query: str) -> str:
    lowered = query.lower()
    for intent, words in INTENT_RULES:
        if any(word in lowered for word in words):
            return intent
    return "general_search"


def extract_entities(query: str) -> list[str]:
    entities = _QUOTED.findall(query)
    entities.extend(_TECH_TERM.findall(query))
    return list(dict.fromkeys(entities))


def detect_urgency(query: str) -> str:
    lowered = query.lower()
    words = set(re.findall(r"[a-z]+", lowered))
    if any(word in lowered for word in URGENT_WORDS) or "now" in words:
        return "high"
    if any(word in lowered for word in ELEVATED_WORDS):
        return "medium"
    return "low"


def analyze_query(query: str) -> dict[str, Any]:
    keywords = extract_keywords(query)
    entities = extract_entities(query)
    return {
        "original_query": query,
        "keywords": keywords,
        "intent": detect_intent(query),
        "entities": entities,
        "urgency": detect_urgency(query),
        "search_terms": list(dict.fromkeys(keywords + entities)),
    }


def relevance_score(text: str, query: str, title: Optional[str] = None) -> int:
    """0-100: exact phrase +100, each matching term +20, title match +50."""
    text_lower = (text or "").lower()
    query_lower = query.lower().strip()
    if not query_lower:
        return 0

    score = 0
    if query_lower in text_lower:
        score += 100
    for term in query_lower.split():
        if term in text_lower:
            score += 20
    heading = title if title is not None else text_lower.split("\n", 1)[0][:100]
    if query_lower in (heading or "").lower():
        score += 50
    return min(100, score)


def snippet(text: str, query: str, window: int = 20) -> str:
    """Best ``window``-word excerpt of ``text`` around the query terms."""
    text = text or ""
    words = text.split()
    terms = query.lower().split()
    best, best_hits = "", 0
    for start in range(max(0, len(words) - window + 1)):
        candidate = " ".join(words[start:start + window])
        lowered = candidate.lower()
        hits = sum(1 for term in terms if term in lowered)
        if hits > best_hits:
            best, best_hits = candidate, hits
    if best:
        return best
    return text[:150] + ("..." if len(text) > 150 else "")


def relevance_band(score: float) -> str:
    if score >= 80:
        return "high"
    if score >= 40:
        return "medium"
    return "low"


def expand_query(query: str, context_type: str) -> str:
    expansions = SEMANTIC_EXPANSIONS.get(context_type, [])
    return " ".join([query, *expansions]).strip()


def top_terms(texts: Iterable[str], count: int = 10) -> list[str]:
    """Most frequent non-stop words (longer than three letters)."""
    counter: Counter = Counter()
    for text in texts:
        for word in (text or "").lower().split():
            if len(word) > 3 and word not in TEXT_STOP_WORDS and _ALPHA.match(word):
                counter[word] += 1
    return [word for word, _ in counter.most_common(count)]
