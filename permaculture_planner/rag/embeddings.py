"""
Embedding generation and storage for knowledge chunks.

Vectors are stored as little-endian float32 BLOBs.
"""
import math
from typing import List, Optional, Sequence

import numpy as np
from openai import AsyncOpenAI

from permaculture_planner.config import Config
from permaculture_planner.logging_config import get_logger
from permaculture_planner.services.db_operations import execute_sql_query, fetch_all, transaction

logger = get_logger(__name__)


def vector_to_blob(vector: Sequence[float]) -> bytes:
    return np.asarray(vector, dtype="<f4").tobytes()


def blob_to_vector(blob: bytes) -> np.ndarray:
    return np.frombuffer(blob, dtype="<f4")


def estimate_token_count(text: str) -> int:
    return math.ceil(len(text) / 4)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two vectors; 0.0 when either is all zeros."""
    va = np.asarray(a, dtype=np.float32)
    vb = np.asarray(b, dtype=np.float32)
    if va.shape != vb.shape:
        raise ValueError(f"Embedding dimensions differ: {va.shape} vs {vb.shape}")
    norm = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if norm == 0:
        return 0.0
    return float(np.dot(va, vb) / norm)


async def embed_texts(texts: List[str], model: Optional[str] = None) -> List[List[float]]:
    """Embed a batch of texts with the configured OpenAI embedding model."""
    if not Config.OPENAI_API_KEY:
        raise RuntimeError("OPENAI_API_KEY is not set; cannot generate embeddings")
    client = AsyncOpenAI(api_key=Config.OPENAI_API_KEY)
    response = await client.embeddings.create(model=model or Config.EMBEDDING_MODEL, input=texts)
    return [item.embedding for item in sorted(response.data, key=lambda d: d.index)]


async def embed_query(query: str) -> List[float]:
    return (await embed_texts([query]))[0]


async def process_unembedded_chunks(limit: int = Config.EMBEDDING_BATCH_SIZE) -> int:
    """Embed up to ``limit`` chunks that have no vector yet. Returns how many were stored."""
    rows = await fetch_all(
        "SELECT id, content FROM knowledge_chunks WHERE embedding IS NULL ORDER BY created_at, chunk_index LIMIT :limit",
        {"limit": limit},
    )
    if not rows:
        return 0

    vectors = await embed_texts([row["content"] for row in rows])
    async with transaction() as conn:
        for row, vector in zip(rows, vectors):
            await execute_sql_query(conn, """
                UPDATE knowledge_chunks
                SET embedding = :embedding, embedding_model = :model, token_count = :token_count
                WHERE id = :id
            """, {
                "id": row["id"],
                "embedding": vector_to_blob(vector),
                "model": Config.EMBEDDING_MODEL,
                "token_count": estimate_token_count(row["content"]),
            })
    logger.info("Embedded %d knowledge chunks", len(rows))
    return len(rows)
