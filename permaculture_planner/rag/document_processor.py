"""
Document processing for the knowledge base.

PDF pages are extracted with pdfplumber, chunked and saved page by page so an
interrupted run resumes where it stopped. The processing queue drives this for
every source the auto scanner found.
"""
import asyncio
import hashlib
from typing import Any, Callable, Dict, List, Optional

import pdfplumber

from permaculture_planner.logging_config import get_logger
from permaculture_planner.rag.chunking import chunk_text
from permaculture_planner.services.db_operations import (
    execute,
    execute_sql_query,
    fetch_all,
    fetch_one,
    fetch_value,
    new_id,
    now_ts,
    transaction,
)

logger = get_logger(__name__)

STALE_PROCESSING_SECONDS = 300

PageExtractor = Callable[[str], List[str]]


def extract_pdf_pages(file_path: str) -> List[str]:
    """Text of every page, in order. Pages without a text layer come back empty."""
    with pdfplumber.open(file_path) as pdf:
        return [page.extract_text() or "" for page in pdf.pages]


def chunk_hash(content: str) -> str:
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


async def get_processed_pages(source_id: str) -> set:
    rows = await fetch_all(
        "SELECT DISTINCT page_number FROM knowledge_chunks WHERE source_id = :source_id",
        {"source_id": source_id},
    )
    return {row["page_number"] for row in rows}


async def save_page_chunks(source_id: str, page_number: int, page_text: str, starting_index: int) -> int:
    """Chunk one page and insert it in a single transaction. Returns the next chunk index."""
    chunks = chunk_text(page_text)
    if not chunks:
        return starting_index

    ts = now_ts()
    async with transaction() as conn:
        for offset, chunk in enumerate(chunks):
            await execute_sql_query(conn, """
                INSERT INTO knowledge_chunks (
                    id, source_id, page_number, chunk_index, content, chunk_hash,
                    start_char, end_char, word_count, created_at
                ) VALUES (
                    :id, :source_id, :page_number, :chunk_index, :content, :chunk_hash,
                    :start_char, :end_char, :word_count, :ts
                )
            """, {
                "id": new_id(),
                "source_id": source_id,
                "page_number": page_number,
                "chunk_index": starting_index + offset,
                "content": chunk["content"],
                "chunk_hash": chunk_hash(chunk["content"]),
                "start_char": chunk["start_char"],
                "end_char": chunk["end_char"],
                "word_count": chunk["word_count"],
                "ts": ts,
            })
    return starting_index + len(chunks)


async def process_document(
    source_id: str,
    file_path: str,
    extract_pages: PageExtractor = extract_pdf_pages,
) -> Dict[str, Any]:
    """
    Extract, chunk and store a document, skipping pages that already have chunks.

    The source ends up 'completed' when every page is accounted for, 'pending'
    when some pages still need work and 'failed' when extraction raised.

    Returns:
        Dict with total_pages, new_pages, skipped_pages, empty_pages,
        total_chunks and status
    """
    await execute(
        "UPDATE knowledge_sources SET status = 'processing', updated_at = :ts WHERE id = :id",
        {"id": source_id, "ts": now_ts()},
    )
    try:
        pages = await asyncio.to_thread(extract_pages, file_path)
        processed_pages = await get_processed_pages(source_id)
        next_index = await fetch_value(
            "SELECT COALESCE(MAX(chunk_index) + 1, 0) FROM knowledge_chunks WHERE source_id = :id",
            {"id": source_id},
            default=0,
        )

        new_pages = skipped_pages = empty_pages = 0
        for page_number, page_text in enumerate(pages, start=1):
            if page_number in processed_pages:
                skipped_pages += 1
                continue
            if not page_text.strip():
                # No text layer; counted as done so the source can complete
                empty_pages += 1
                continue
            next_index = await save_page_chunks(source_id, page_number, page_text, next_index)
            new_pages += 1

        total_pages = len(pages)
        status = "completed" if new_pages + skipped_pages + empty_pages >= total_pages else "pending"
        await execute("""
            UPDATE knowledge_sources
            SET status = :status, num_pages = :num_pages, error_message = NULL,
                processed_at = :ts, updated_at = :ts
            WHERE id = :id
        """, {"id": source_id, "status": status, "num_pages": total_pages, "ts": now_ts()})

        total_chunks = await fetch_value(
            "SELECT COUNT(*) FROM knowledge_chunks WHERE source_id = :id", {"id": source_id}, default=0
        )
        logger.info(
            "Processed %s: %d new pages, %d skipped, %d empty, %d chunks total",
            file_path, new_pages, skipped_pages, empty_pages, total_chunks,
        )
        return {
            "total_pages": total_pages,
            "new_pages": new_pages,
            "skipped_pages": skipped_pages,
            "empty_pages": empty_pages,
            "total_chunks": total_chunks,
            "status": status,
        }
    except Exception as e:
        logger.error("Failed to process %s: %s", file_path, e)
        await execute(
            "UPDATE knowledge_sources SET status = 'failed', error_message = :error, updated_at = :ts WHERE id = :id",
            {"id": source_id, "error": str(e)[:1000], "ts": now_ts()},
        )
        raise


async def enqueue_source(source_id: str, priority: int = 50) -> Optional[str]:
    """Queue a source unless it already has an open queue entry."""
    existing = await fetch_one("""
        SELECT id FROM knowledge_processing_queue
        WHERE source_id = :source_id AND status IN ('queued', 'processing')
    """, {"source_id": source_id})
    if existing:
        await execute(
            "UPDATE knowledge_processing_queue SET status = 'queued', priority = :priority WHERE id = :id",
            {"id": existing["id"], "priority": priority},
        )
        return existing["id"]

    queue_id = new_id()
    await execute("""
        INSERT INTO knowledge_processing_queue (id, source_id, status, priority, queued_at)
        VALUES (:id, :source_id, 'queued', :priority, :ts)
    """, {"id": queue_id, "source_id": source_id, "priority": priority, "ts": now_ts()})
    return queue_id


async def process_queue(limit: int = 10, extract_pages: PageExtractor = extract_pdf_pages) -> Dict[str, int]:
    """
    Work through queued documents, highest priority first.

    Picks up queued items, items stuck in 'processing' for more than five
    minutes and partially processed items whose source is still 'pending'.
    """
    counts = {"processed": 0, "partial": 0, "failed": 0}
    now = now_ts()
    rows = await fetch_all("""
        SELECT q.id AS queue_id, q.status AS queue_status, s.id AS source_id,
               s.status AS source_status, s.file_path
        FROM knowledge_processing_queue q
        JOIN knowledge_sources s ON s.id = q.source_id
        WHERE q.status = 'queued'
           OR (q.status = 'processing' AND :now - COALESCE(q.started_at, 0) > :stale)
           OR (q.status = 'processing' AND s.status = 'pending')
        ORDER BY q.priority DESC, q.queued_at ASC
        LIMIT :limit
    """, {"now": now, "stale": STALE_PROCESSING_SECONDS, "limit": limit})

    for row in rows:
        queue_id = row["queue_id"]
        await execute("""
            UPDATE knowledge_processing_queue
            SET status = 'processing', started_at = :ts, attempts = attempts + 1
            WHERE id = :id
        """, {"id": queue_id, "ts": now_ts()})

        try:
            result = await process_document(row["source_id"], row["file_path"], extract_pages)
        except Exception as e:
            has_chunks = await fetch_value(
                "SELECT COUNT(*) FROM knowledge_chunks WHERE source_id = :id", {"id": row["source_id"]}, default=0
            )
            # Documents with saved chunks stay resumable
            status = "processing" if has_chunks else "failed"
            await execute(
                "UPDATE knowledge_processing_queue SET status = :status, error_message = :error WHERE id = :id",
                {"id": queue_id, "status": status, "error": str(e)[:1000]},
            )
            counts["failed"] += 1
            continue

        if result["status"] == "completed":
            await execute(
                "UPDATE knowledge_processing_queue SET status = 'completed', completed_at = :ts WHERE id = :id",
                {"id": queue_id, "ts": now_ts()},
            )
            counts["processed"] += 1
        else:
            counts["partial"] += 1

    logger.info("Knowledge queue run: %s", counts)
    return counts
