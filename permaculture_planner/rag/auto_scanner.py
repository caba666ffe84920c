"""
Knowledge folder scanner.

Finds PDFs in the knowledge folder, registers new or changed files as
knowledge sources and queues them for processing. An optional
``<name>.meta.json`` next to a PDF supplies title, author, year, isbn,
topics and priority (high, normal or low).
"""
import hashlib
import json
import os
import re
from typing import Any, Dict, Optional

from permaculture_planner.config import Config
from permaculture_planner.logging_config import get_logger
from permaculture_planner.rag.document_processor import enqueue_source
from permaculture_planner.services.db_operations import (
    encode_json,
    execute,
    fetch_one,
    new_id,
    now_ts,
)

logger = get_logger(__name__)

SUPPORTED_EXTENSIONS = (".pdf",)
PRIORITY_VALUES = {"high": 80, "normal": 50, "low": 30}


def file_sha256(file_path: str) -> str:
    digest = hashlib.sha256()
    with open(file_path, "rb") as f:
        for block in iter(lambda: f.read(65536), b""):
            digest.update(block)
    return digest.hexdigest()


def title_from_filename(filename: str) -> str:
    """'gaias-garden_2nd-edition.pdf' -> 'Gaias Garden 2nd Edition'"""
    stem = os.path.splitext(filename)[0]
    spaced = re.sub(r"[-_]+", " ", stem).strip()
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), spaced)


def load_metadata(file_path: str) -> Dict[str, Any]:
    meta_path = os.path.splitext(file_path)[0] + ".meta.json"
    metadata: Dict[str, Any] = {}
    if os.path.exists(meta_path):
        try:
            with open(meta_path, "r", encoding="utf-8") as f:
                metadata = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Failed to parse metadata file %s: %s", meta_path, e)
    if not metadata.get("title"):
        metadata["title"] = title_from_filename(os.path.basename(file_path))
    return metadata


def priority_value(priority: Optional[str]) -> int:
    return PRIORITY_VALUES.get((priority or "normal").lower(), PRIORITY_VALUES["normal"])


async def _register(filename: str, file_path: str, file_hash: str, metadata: Dict[str, Any]) -> str:
    """Insert or refresh the knowledge_sources row for a file and return its id."""
    ts = now_ts()
    await execute("""
        INSERT INTO knowledge_sources (
            id, filename, title, author, publication_year, isbn, topics,
            file_path, file_hash, status, created_at, updated_at
        ) VALUES (
            :id, :filename, :title, :author, :year, :isbn, :topics,
            :file_path, :file_hash, 'pending', :ts, :ts
        )
        ON CONFLICT (filename) DO UPDATE SET
            title = excluded.title,
            author = excluded.author,
            publication_year = excluded.publication_year,
            isbn = excluded.isbn,
            topics = excluded.topics,
            file_path = excluded.file_path,
            file_hash = excluded.file_hash,
            status = 'pending',
            error_message = NULL,
            updated_at = excluded.updated_at
    """, {
        "id": new_id(),
        "filename": filename,
        "title": metadata["title"],
        "author": metadata.get("author"),
        "year": metadata.get("year"),
        "isbn": metadata.get("isbn"),
        "topics": encode_json(metadata.get("topics")),
        "file_path": file_path,
        "file_hash": file_hash,
        "ts": ts,
    })
    row = await fetch_one("SELECT id FROM knowledge_sources WHERE filename = :filename", {"filename": filename})
    return row["id"]


async def scan_knowledge_folder(folder: Optional[str] = None) -> Dict[str, Any]:
    """
    Scan the knowledge folder and queue anything that needs processing.

    Returns:
        Dict with lists of filenames under new, updated, retried and
        unchanged, plus an errors list of {filename, error}
    """
    folder = folder or Config.KNOWLEDGE_FOLDER
    summary: Dict[str, Any] = {"new": [], "updated": [], "retried": [], "unchanged": [], "errors": []}

    if not os.path.isdir(folder):
        logger.info("Knowledge folder %s does not exist, nothing to scan", folder)
        return summary

    for filename in sorted(os.listdir(folder)):
        file_path = os.path.join(folder, filename)
        if not filename.lower().endswith(SUPPORTED_EXTENSIONS) or not os.path.isfile(file_path):
            continue

        try:
            file_hash = file_sha256(file_path)
            existing = await fetch_one(
                "SELECT id, file_hash, status FROM knowledge_sources WHERE filename = :filename",
                {"filename": filename},
            )
            if existing is None:
                kind = "new"
            elif existing["file_hash"] != file_hash:
                kind = "updated"
            elif existing["status"] == "failed":
                kind = "retried"
            else:
                summary["unchanged"].append(filename)
                continue

            metadata = load_metadata(file_path)
            source_id = await _register(filename, file_path, file_hash, metadata)
            if kind == "updated":
                await execute("DELETE FROM knowledge_chunks WHERE source_id = :id", {"id": source_id})
            await enqueue_source(source_id, priority_value(metadata.get("priority")))
            summary[kind].append(filename)
        except Exception as e:
            logger.error("Failed to scan %s: %s", filename, e)
            summary["errors"].append({"filename": filename, "error": str(e)})

    logger.info(
        "Knowledge scan: %d new, %d updated, %d retried, %d unchanged, %d errors",
        len(summary["new"]), len(summary["updated"]), len(summary["retried"]),
        len(summary["unchanged"]), len(summary["errors"]),
    )
    return summary
