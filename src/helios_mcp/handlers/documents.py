"""Document tool handlers."""
import logging

from .. import markdown_utils
from ..api_client import RemoteDataClient
from ..models import Document, days_since
from ..schemas import DocumentCreate, DocumentListQuery, DocumentRef, DocumentSearch, DocumentUpdate

logger = logging.getLogger("helios-mcp.handlers.documents")

SEARCH_POOL = 100


async def handle_list_documents(args: DocumentListQuery, client: RemoteDataClient) -> dict:
    filters = args.to_payload(exclude={"limit"})
    documents = await client.list_documents(filters, limit=args.limit)
    logger.info(f"Successfully listed {len(documents)} documents")
    return {"documents": documents, "total": len(documents), "filters_applied": filters}


async def handle_get_document(args: DocumentRef, client: RemoteDataClient) -> dict:
    document = await client.get_document(str(args.document_id))
    logger.info(f"Successfully retrieved document {document.id}: {document.title}")
    return {"document": document}


async def handle_create_document(args: DocumentCreate, client: RemoteDataClient) -> dict:
    document = await client.create_document(args.to_payload())
    logger.info(f"Successfully created document: {document.title} (ID: {document.id})")
    return {"document": document, "message": f'Document "{document.title}" created successfully'}


async def handle_update_document(args: DocumentUpdate, client: RemoteDataClient) -> dict:
    document_id = str(args.document_id)
    document = await client.update_document(document_id, args.to_payload(exclude={"document_id"}))
    logger.info(f"Successfully updated document {document_id}: {document.title}")
    return {"document": document, "message": f'Document "{document.title}" updated successfully'}


def rank_documents(documents: list[Document], query: str, include_content: bool) -> list[dict]:
    """Score documents by title match, content matches and freshness.

    Title contains query: +50, title starts with it: +25 more.
    Each content occurrence: +5, capped at 30.
    Updated within a week: +10, within a month: +5.
    """
    query_lower = query.lower()
    ranked = []
    for document in documents:
        title = document.title.lower()
        score = 0
        if query_lower in title:
            score += 50
            if title.startswith(query_lower):
                score += 25

        matches = (document.content or "").lower().count(query_lower)
        score += min(30, matches * 5)

        age = days_since(document.updated_at)
        if age is not None:
            if age < 7:
                score += 10
            elif age < 30:
                score += 5

        entry = document.model_dump(mode="json")
        if not include_content:
            entry.pop("content", None)
        entry.update(search_score=score, query_matches=matches)
        ranked.append(entry)

    ranked.sort(key=lambda entry: entry["search_score"], reverse=True)
    return ranked


async def handle_search_documents(args: DocumentSearch, client: RemoteDataClient) -> dict:
    filters = {"search": args.query}
    if args.project_id:
        filters["project_id"] = str(args.project_id)
    documents = await client.list_documents(filters, limit=SEARCH_POOL)

    if args.document_types:
        wanted = {doc_type.value for doc_type in args.document_types}
        documents = [document for document in documents if document.document_type in wanted]

    ranked = rank_documents(documents, args.query, args.include_content)[:args.limit]
    logger.info(f"Document search for '{args.query}' returned {len(ranked)} results")
    return {
        "documents": ranked,
        "total_found": len(ranked),
        "query": args.query,
        "search_metadata": {
            "ranking_factors": ["title_match", "content_relevance", "document_freshness"],
            "document_types": [doc_type.value for doc_type in args.document_types or []],
        },
    }


def _summary(document: Document) -> dict:
    return {
        "id": document.id,
        "title": document.title,
        "document_type": document.document_type,
        "updated_at": document.updated_at,
    }


async def _related_documents(client: RemoteDataClient, document: Document, limit: int = 3) -> list[dict]:
    if not document.project_id:
        return []
    siblings = await client.list_documents({"project_id": document.project_id}, limit=limit + 2)
    return [_summary(sibling) for sibling in siblings if sibling.id != document.id][:limit]


def analyze_document(document: Document) -> dict:
    return {
        "content_analysis": markdown_utils.analyze_content(document.content or "", document.document_type),
        "link_analysis": markdown_utils.extract_links(document.content or ""),
    }


async def handle_get_document_context(args: DocumentRef, client: RemoteDataClient) -> dict:
    """Document with structural analysis, related documents and recommendations."""
    document = await client.get_document(str(args.document_id))
    analysis = analyze_document(document)
    related = await _related_documents(client, document)
    return {
        "document": document,
        **analysis,
        "related_documents": related,
        "recommendations": markdown_utils.document_recommendations(
            analysis["content_analysis"], in_project=bool(document.project_id)
        ),
    }


async def handle_analyze_document_content(args: DocumentRef, client: RemoteDataClient) -> dict:
    document = await client.get_document(str(args.document_id))
    return {"document_id": document.id, "title": document.title, **analyze_document(document)}


def document_markdown(document: Document) -> str:
    """Markdown rendering of a document for resource reads."""
    lines = [f"# {document.title}", "", f"**Type**: {document.document_type}"]
    if document.updated_at:
        lines.append(f"**Updated**: {document.updated_at.isoformat()}")
    lines.extend(["", document.content or ""])
    return "\n".join(lines)
