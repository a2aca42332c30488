"""Keyword search across projects, tasks and documents."""
import logging
from collections import Counter
from typing import Any

from ..api_client import RemoteDataClient
from ..schemas import SemanticSearchQuery, UniversalSearchQuery
from ..text_analysis import expand_query, relevance_band, relevance_score, snippet

logger = logging.getLogger("helios-mcp.handlers.search")

SEARCH_POOL = 100


def _hit(kind: str, entity: Any, title: str, body: str, query: str, include_snippets: bool) -> dict:
    hit = {
        "type": kind,
        "id": entity.id,
        "title": title,
        "relevance_score": relevance_score(f"{title}\n{body}", query, title),
        "updated_at": entity.updated_at,
    }
    if include_snippets:
        hit["snippet"] = snippet(body or title, query)
    return hit


async def _gather(client: RemoteDataClient, search_types: list[str], filters: dict, query: str,
                  include_snippets: bool) -> dict[str, list[dict]]:
    found: dict[str, list[dict]] = {}
    if "projects" in search_types:
        project_filters = {key: value for key, value in filters.items() if key != "project_id"}
        found["projects"] = [
            _hit("project", project, project.name, project.description or "", query, include_snippets)
            for project in await client.list_projects(project_filters, limit=SEARCH_POOL)
        ]
    if "tasks" in search_types:
        found["tasks"] = [
            _hit("task", task, task.title, task.description or "", query, include_snippets)
            for task in await client.list_tasks(filters, limit=SEARCH_POOL)
        ]
    if "documents" in search_types:
        found["documents"] = [
            _hit("document", document, document.title, document.content or "", query, include_snippets)
            for document in await client.list_documents(filters, limit=SEARCH_POOL)
        ]
    return found


async def handle_universal_search(args: UniversalSearchQuery, client: RemoteDataClient) -> dict:
    """Search every requested entity type and merge the hits by relevance."""
    filters: dict[str, Any] = {"search": args.query}
    if args.filters:
        filters.update(args.filters.to_payload())

    found = await _gather(client, args.search_types, filters, args.query, args.include_snippets)
    combined = sorted(
        (hit for hits in found.values() for hit in hits),
        key=lambda hit: hit["relevance_score"],
        reverse=True,
    )[:args.limit]

    counts = {kind: len(hits) for kind, hits in found.items()}
    best_match_type = combined[0]["type"] if combined else None
    analytics = {
        "results_by_type": counts,
        "relevance_distribution": dict(Counter(relevance_band(hit["relevance_score"]) for hit in combined)),
        "best_match_type": best_match_type,
        "average_relevance": (
            round(sum(hit["relevance_score"] for hit in combined) / len(combined), 1) if combined else 0
        ),
    }
    logger.info(f"Universal search for '{args.query}' returned {len(combined)} results")
    return {
        "query": args.query,
        "results": combined,
        "total_results": len(combined),
        "search_analytics": analytics,
    }


def _explain(hit: dict, expanded: str, original: str) -> str:
    if original.lower() in hit["title"].lower():
        return f"Title contains '{original}'"
    matched = [term for term in expanded.lower().split() if term in (hit.get("snippet") or "").lower()]
    if matched:
        return "Matched related terms: " + ", ".join(dict.fromkeys(matched))
    return f"{relevance_band(hit['relevance_score']).capitalize()} keyword overlap with the expanded query"


async def handle_semantic_search(args: SemanticSearchQuery, client: RemoteDataClient) -> dict:
    """Expanded keyword search over documents and tasks.

    The query is widened with terms typical of ``context_type``; hits whose
    relevance (as a 0-1 fraction) falls below ``similarity_threshold`` are
    dropped.
    """
    expanded = expand_query(args.query, args.context_type)
    found = await _gather(client, ["tasks", "documents"], {"search": args.query}, expanded, True)

    results = []
    for hit in (hit for hits in found.values() for hit in hits):
        hit["similarity"] = hit["relevance_score"] / 100
        if hit["similarity"] < args.similarity_threshold:
            continue
        if args.include_explanations:
            hit["explanation"] = _explain(hit, expanded, args.query)
        results.append(hit)

    results.sort(key=lambda hit: hit["similarity"], reverse=True)
    results = results[:args.max_results]
    return {
        "query": args.query,
        "expanded_query": expanded,
        "context_type": args.context_type,
        "similarity_threshold": args.similarity_threshold,
        "results": results,
        "total_results": len(results),
    }
