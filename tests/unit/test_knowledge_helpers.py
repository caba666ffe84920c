"""
Unit tests for knowledge base text handling and ranking.
"""
import numpy as np
import pytest

from permaculture_planner.rag.auto_scanner import priority_value, title_from_filename
from permaculture_planner.rag.chunking import chunk_text, find_last_sentence_end
from permaculture_planner.rag.document_processor import chunk_hash
from permaculture_planner.rag.embeddings import (
    blob_to_vector,
    cosine_similarity,
    estimate_token_count,
    vector_to_blob,
)
from permaculture_planner.rag.semantic_search import NO_RESULTS_MESSAGE, format_results_for_ai, rank_chunks

SENTENCE = "Swales slow water and let it soak into the soil. "


def test_chunk_text_empty_and_short():
    assert chunk_text("   \n ") == []

    chunks = chunk_text("Mulch   everything.\n\nThen mulch again.", chunk_size=100, overlap=20, min_chunk_size=30)
    assert len(chunks) == 1
    assert chunks[0]["content"] == "Mulch everything. Then mulch again."
    assert chunks[0]["word_count"] == 5


def test_chunk_text_overlapping_windows_end_on_sentences():
    text = SENTENCE * 12
    chunks = chunk_text(text, chunk_size=120, overlap=20, min_chunk_size=30)

    assert len(chunks) > 1
    assert [c["chunk_index"] for c in chunks] == list(range(len(chunks)))
    for chunk in chunks:
        assert len(chunk["content"]) <= 120
    for chunk in chunks[:-1]:
        assert chunk["content"].endswith(".")
    for previous, current in zip(chunks, chunks[1:]):
        assert current["start_char"] < previous["end_char"]
    assert chunks[-1]["end_char"] == len(text.strip())


def test_find_last_sentence_end():
    text = "One. Two! Three"
    assert find_last_sentence_end(text, 0, len(text)) == len("One. Two! ")
    assert find_last_sentence_end("no endings here", 0, 15) == -1


def test_embedding_blobs_and_similarity():
    vector = [0.5, -1.0, 2.0]
    restored = blob_to_vector(vector_to_blob(vector))
    assert restored.dtype == np.float32
    assert restored.tolist() == vector

    assert cosine_similarity([1, 0], [1, 0]) == pytest.approx(1.0)
    assert cosine_similarity([1, 0], [0, 1]) == pytest.approx(0.0)
    assert cosine_similarity([0, 0], [1, 0]) == 0.0
    assert estimate_token_count("a" * 10) == 3


def chunk_row(chunk_id, vector, page=1):
    return {
        "id": chunk_id,
        "content": f"content {chunk_id}",
        "page_number": page,
        "chunk_index": 0,
        "source_id": "src",
        "filename": "gaias-garden.pdf",
        "title": "Gaias Garden",
        "embedding": vector_to_blob(vector),
    }


def test_rank_chunks_filters_sorts_and_limits():
    rows = [
        chunk_row("close", [1.0, 0.1]),
        chunk_row("exact", [1.0, 0.0]),
        chunk_row("orthogonal", [0.0, 1.0]),
        chunk_row("wrong-shape", [1.0, 0.0, 0.0]),
    ]
    results = rank_chunks([1.0, 0.0], rows, top_k=5, min_similarity=0.5)
    assert [r["chunk_id"] for r in results] == ["exact", "close"]
    assert results[0]["source_title"] == "Gaias Garden"
    assert results[0]["source_filename"] == "gaias-garden.pdf"

    assert len(rank_chunks([1.0, 0.0], rows, top_k=1, min_similarity=0.5)) == 1


def test_format_results_for_ai():
    assert format_results_for_ai([]) == NO_RESULTS_MESSAGE

    text = format_results_for_ai([{
        "source_title": "Gaias Garden",
        "page_number": 42,
        "similarity": 0.876,
        "content": "Guilds are plant communities.",
    }])
    assert '[Source 1: "Gaias Garden" - Page 42 (88% relevant)]' in text
    assert "Guilds are plant communities." in text


def test_file_helpers():
    assert title_from_filename("gaias-garden_2nd-edition.pdf") == "Gaias Garden 2nd Edition"
    assert priority_value("HIGH") == 80
    assert priority_value(None) == 50
    assert priority_value("urgent") == 50
    assert chunk_hash("abc") == chunk_hash("abc")
    assert chunk_hash("abc") != chunk_hash("abd")
