"""Unit tests for paragraph-aware text chunking."""

import math
import pytest

from replydash.ingestion.cleaner import clean_text
from replydash.rag.chunker import (
    CHARS_PER_TOKEN,
    TextChunker,
    chunk_text,
    estimate_token_count,
)
from replydash.rag.config import RAGConfig


def make_paragraphs(count: int, words: int = 50) -> str:
    return "\n\n".join(
        " ".join(f"para{i}word{j}" for j in range(words)) for i in range(count)
    )


class TestEstimateTokenCount:
    """Tests for the 4-characters-per-token estimate."""

    def test_rounds_up(self):
        assert estimate_token_count("abcde") == 2

    def test_exact_multiple(self):
        assert estimate_token_count("a" * 40) == 10

    def test_empty(self):
        assert estimate_token_count("") == 0


class TestChunkText:
    """Tests for chunk_text."""

    def test_three_short_paragraphs_make_one_chunk(self):
        """A document far below the target size stays in one chunk."""
        cleaned = clean_text("Para one.\n\nPara two.\n\nPara three.")

        chunks = chunk_text(cleaned, chunk_size=500, overlap=100)

        assert len(chunks) == 1
        assert chunks[0].content == cleaned
        assert chunks[0].chunk_index == 0
        assert chunks[0].token_count == math.ceil(len(cleaned) / 4)

    def test_short_text_without_breaks(self):
        text = "word " * 50
        chunks = chunk_text(text.strip(), chunk_size=500)

        assert len(chunks) == 1
        assert chunks[0].chunk_index == 0

    def test_indices_are_contiguous(self):
        text = make_paragraphs(12)

        chunks = chunk_text(text, chunk_size=100, overlap=20)

        assert len(chunks) > 1
        assert [chunk.chunk_index for chunk in chunks] == list(range(len(chunks)))

    def test_overlap_keeps_total_length(self):
        """Reconstructed length is at least the cleaned length."""
        text = make_paragraphs(12)

        chunks = chunk_text(text, chunk_size=100, overlap=20)

        assert sum(len(chunk.content) for chunk in chunks) >= len(text)

    def test_next_chunk_starts_with_overlap(self):
        text = make_paragraphs(6)
        overlap = 10

        chunks = chunk_text(text, chunk_size=100, overlap=overlap)

        tail = chunks[0].content[-overlap * CHARS_PER_TOKEN:].strip()
        assert chunks[1].content.startswith(tail)

    def test_paragraphs_never_split(self):
        paragraphs = make_paragraphs(8).split("\n\n")

        chunks = chunk_text("\n\n".join(paragraphs), chunk_size=100, overlap=0)

        for paragraph in paragraphs:
            assert any(paragraph in chunk.content for chunk in chunks)

    def test_oversized_paragraph_kept_whole(self):
        paragraph = "x" * 5000

        chunks = chunk_text(f"short intro\n\n{paragraph}", chunk_size=100, overlap=0)

        assert chunks[-1].content == paragraph

    def test_chunk_size_respected_when_paragraphs_fit(self):
        chunks = chunk_text(make_paragraphs(20, words=10), chunk_size=100, overlap=0)

        for chunk in chunks:
            assert len(chunk.content) <= 100 * CHARS_PER_TOKEN

    def test_token_count_from_own_content(self):
        chunks = chunk_text(make_paragraphs(10), chunk_size=100, overlap=20)

        for chunk in chunks:
            assert chunk.token_count == estimate_token_count(chunk.content)

    def test_empty_text(self):
        assert chunk_text("") == []
        assert chunk_text("\n\n\n\n") == []


class TestTextChunker:
    """Tests for TextChunker configuration."""

    def test_uses_config_sizes(self):
        config = RAGConfig(chunk_size=50, chunk_overlap=0)
        chunker = TextChunker(config)

        chunks = chunker.chunk_text(make_paragraphs(10, words=10))

        assert len(chunks) > 1

    def test_custom_token_estimator(self):
        chunker = TextChunker(token_estimator=lambda text: len(text.split()))

        chunks = chunker.chunk_text("one two three")

        assert chunks[0].token_count == 3

    @pytest.mark.parametrize("overlap", [0, 10, 50])
    def test_deterministic(self, overlap):
        text = make_paragraphs(15)
        chunker = TextChunker()

        first = chunker.chunk_text(text, chunk_size=120, overlap=overlap)
        second = chunker.chunk_text(text, chunk_size=120, overlap=overlap)

        assert first == second
