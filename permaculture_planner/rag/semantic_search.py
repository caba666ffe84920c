"""
Semantic search over embedded knowledge chunks.
"""
from typing import Any, Dict, List

import numpy as np

from permaculture_planner.logging_config import get_logger
from permaculture_planner.rag import embeddings
from permaculture_planner.services.db_operations import fetch_all, fetch_value

logger = get_logger(__name__)

DEFAULT_TOP_K = 5
DEFAULT_MIN_SIMILARITY = 0.5
NO_RESULTS_MESSAGE = "No relevant information found in the knowledge base."


def rank_chunks(
    query_vector: List[float],
    rows: List[Dict[str, Any]],
    top_k: int = DEFAULT_TOP_K,
    min_similarity: float = DEFAULT_MIN_SIMILARITY,
) -> List[Dict[str, Any]]:
    """Score rows (with an ``embedding`` blob) against the query and keep the best matches."""
    query = np.asarray(query_vector, dtype=np.float32)
    results = []
    for row in rows:
        vector = embeddings.blob_to_vector(row["embedding"])
        if vector.shape != query.shape:
            logger.warning("Skipping chunk %s with incompatible embedding", row["id"])
            continue
        similarity = embeddings.cosine_similarity(query, vector)
        if similarity >= min_similarity:
            results.append({
                "chunk_id": row["id"],
                "content": row["content"],
                "page_number": row["page_number"],
                "chunk_index": row["chunk_index"],
                "source_id": row["source_id"],
                "source_filename": row["filename"],
                "source_title": row["title"],
                "similarity": similarity,
            })
    results.sort(key=lambda r: r["similarity"], reverse=True)
    return results[:top_k]


async def semantic_search(
    query: str,
    top_k: int = DEFAULT_TOP_K,
    min_similarity: float = DEFAULT_MIN_SIMILARITY,
) -> List[Dict[str, Any]]:
    rows = await fetch_all("""
        SELECT kc.id, kc.content, kc.page_number, kc.chunk_index, kc.embedding,
               ks.id AS source_id, ks.filename, ks.title
        FROM knowledge_chunks kc
        JOIN knowledge_sources ks ON ks.id = kc.source_id
        WHERE kc.embedding IS NOT NULL
    """)
    if not rows:
        logger.info("No embedded chunks found in database")
        return []

    query_vector = await embeddings.embed_query(query)
    results = rank_chunks(query_vector, rows, top_k, min_similarity)
    logger.info("Knowledge search for %r matched %d of %d chunks", query[:60], len(results), len(rows))
    return results


def format_results_for_ai(results: List[Dict[str, Any]]) -> str:
    if not results:
        return NO_RESULTS_MESSAGE

    blocks = []
    for i, result in enumerate(results, start=1):
        page_info = f" - Page {result['page_number']}" if result.get("page_number") else ""
        relevance = f"{result['similarity'] * 100:.0f}% relevant"
        blocks.append(f"[Source {i}: \"{result['source_title']}\"{page_info} ({relevance})]\n{result['content']}")

    context = "\n\n---\n\n".join(blocks)
    return (
        "Here is relevant information from the permaculture knowledge base:\n\n"
        f"{context}\n\n"
        "IMPORTANT: When citing these sources in your response, be SPECIFIC:\n"
        '- Use the format: "According to [Source Title] (Page X)..."\n'
        "- Include the book title and page number in your citations, not just \"Source 1\""
    )


async def search_and_format(query: str, top_k: int = DEFAULT_TOP_K) -> str:
    return format_results_for_ai(await semantic_search(query, top_k))


async def get_knowledge_stats() -> Dict[str, int]:
    return {
        "total_chunks": await fetch_value("SELECT COUNT(*) FROM knowledge_chunks", default=0),
        "embedded_chunks": await fetch_value(
            "SELECT COUNT(*) FROM knowledge_chunks WHERE embedding IS NOT NULL", default=0
        ),
        "source_count": await fetch_value(
            "SELECT COUNT(*) FROM knowledge_sources WHERE status = 'completed'", default=0
        ),
    }
