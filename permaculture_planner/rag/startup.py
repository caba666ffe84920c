"""
Knowledge base startup hook.

Scans the knowledge folder when running in production or when RAG_AUTO_SCAN
is set, and optionally works through the processing queue in the background.
"""
import asyncio
from typing import Any, Dict, Optional

from permaculture_planner.config import Config
from permaculture_planner.logging_config import get_logger
from permaculture_planner.rag.auto_scanner import scan_knowledge_folder
from permaculture_planner.rag.document_processor import process_queue
from permaculture_planner.rag.embeddings import process_unembedded_chunks

logger = get_logger(__name__)

_background_task: Optional[asyncio.Task] = None


def should_auto_scan() -> bool:
    return Config.is_production() or Config.RAG_AUTO_SCAN


async def process_pending_knowledge(max_batches: int = 50) -> Dict[str, int]:
    """Drain the processing queue, then embed chunks until none are left."""
    totals = {"processed": 0, "partial": 0, "failed": 0, "embedded": 0}
    for _ in range(max_batches):
        counts = await process_queue()
        for key, value in counts.items():
            totals[key] += value
        if not any(counts.values()):
            break

    if Config.OPENAI_API_KEY:
        for _ in range(max_batches):
            embedded = await process_unembedded_chunks()
            totals["embedded"] += embedded
            if not embedded:
                break
    else:
        logger.warning("Skipping embeddings: OPENAI_API_KEY is not set")

    logger.info("Background knowledge processing finished: %s", totals)
    return totals


async def _run_background_processing() -> None:
    try:
        await process_pending_knowledge()
    except Exception as e:
        logger.error("Background knowledge processing failed: %s", e)


async def initialize_rag() -> Optional[Dict[str, Any]]:
    """
    Run the startup scan if enabled.

    Returns:
        The scan summary, or None when auto-scan is disabled
    """
    global _background_task

    if not should_auto_scan():
        logger.info("RAG auto-scan disabled (set RAG_AUTO_SCAN=true to enable)")
        return None

    try:
        summary = await scan_knowledge_folder()
    except Exception as e:
        logger.error("Knowledge folder scan failed: %s", e)
        return None

    if Config.RAG_AUTO_PROCESS:
        _background_task = asyncio.create_task(_run_background_processing())
    return summary


async def shutdown_rag() -> None:
    global _background_task
    if _background_task is not None and not _background_task.done():
        _background_task.cancel()
        try:
            await _background_task
        except asyncio.CancelledError:
            pass
    _background_task = None
