"""
Text chunking for the knowledge base.

Text is whitespace-normalized and cut into overlapping windows that prefer to
end on a sentence boundary, then on a word boundary.
"""
import re
from typing import Any, Dict, List

from permaculture_planner.config import Config

SENTENCE_ENDINGS = (". ", "! ", "? ", ".\n", "!\n", "?\n")

_WHITESPACE = re.compile(r"\s+")


def find_last_sentence_end(text: str, start: int, max_pos: int) -> int:
    """Index just past the last sentence ending in ``text[start:max_pos]``, or -1."""
    window = text[start:max_pos]
    last_end = -1
    for ending in SENTENCE_ENDINGS:
        pos = window.rfind(ending)
        if pos > last_end:
            last_end = pos + len(ending)
    return start + last_end if last_end > 0 else -1


def chunk_text(
    text: str,
    chunk_size: int = Config.CHUNK_SIZE,
    overlap: int = Config.CHUNK_OVERLAP,
    min_chunk_size: int = Config.MIN_CHUNK_SIZE,
) -> List[Dict[str, Any]]:
    """
    Split text into overlapping chunks.

    Returns:
        List of dicts with ``content``, ``chunk_index``, ``start_char``,
        ``end_char`` and ``word_count``; offsets refer to the normalized text
    """
    normalized = _WHITESPACE.sub(" ", text).strip()
    chunks: List[Dict[str, Any]] = []
    if not normalized:
        return chunks

    length = len(normalized)
    start = 0
    while start < length:
        end = min(start + chunk_size, length)

        if end < length:
            sentence_end = find_last_sentence_end(normalized, start, end)
            if sentence_end > start + min_chunk_size:
                end = sentence_end
            else:
                word_end = normalized.rfind(" ", 0, end)
                if word_end > start + min_chunk_size:
                    end = word_end

        content = normalized[start:end].strip()
        if len(content) >= min_chunk_size or end >= length:
            chunks.append({
                "content": content,
                "chunk_index": len(chunks),
                "start_char": start,
                "end_char": end,
                "word_count": len(content.split()),
            })

        if end >= length:
            break

        next_start = end - overlap
        if chunks and next_start <= chunks[-1]["start_char"]:
            next_start = end
        start = next_start

    return chunks
