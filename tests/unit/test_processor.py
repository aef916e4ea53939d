"""Unit tests for document processing (extract, clean, chunk)."""

import math
import pytest
from unittest.mock import MagicMock

from replydash.ingestion import DocumentProcessor, ExtractionError
from replydash.rag.config import RAGConfig


class TestDocumentProcessor:
    """Tests for DocumentProcessor."""

    def test_short_text_document(self):
        processor = DocumentProcessor()

        processed = processor.process_document(
            b"Para one.\n\nPara two.\n\nPara three.", "txt"
        )

        assert processed.text == "Para one.\n\nPara two.\n\nPara three."
        assert len(processed.chunks) == 1
        assert processed.chunks[0].content == processed.text
        assert processed.chunks[0].token_count == math.ceil(len(processed.text) / 4)
        assert processed.total_tokens == processed.chunks[0].token_count

    def test_text_is_cleaned_before_chunking(self):
        processor = DocumentProcessor()

        processed = processor.process_document(b"  Hello\x00   world \r\n\r\n\r\nBye ", "md")

        assert processed.text == "Hello world\n\nBye"

    def test_empty_document_rejected(self):
        processor = DocumentProcessor()

        with pytest.raises(ExtractionError, match="too short or empty"):
            processor.process_document(b" \n\n\t ", "txt")

    def test_minimum_length_configurable(self):
        processor = DocumentProcessor(RAGConfig(min_document_chars=50))

        with pytest.raises(ExtractionError, match="Document too short"):
            processor.process_document(b"Only a few words.", "txt")

    def test_total_tokens_sums_chunks(self):
        paragraphs = "\n\n".join("sentence " * 60 for _ in range(10))
        processor = DocumentProcessor(RAGConfig(chunk_size=100, chunk_overlap=20))

        processed = processor.process_document(paragraphs.encode(), "txt")

        assert len(processed.chunks) > 1
        assert processed.total_tokens == sum(c.token_count for c in processed.chunks)

    def test_process_url_uses_extractor(self):
        extractor = MagicMock()
        extractor.extract_text_from_url.return_value = "Fetched page text.\n\n\n\nMore."
        processor = DocumentProcessor(extractor=extractor)

        processed = processor.process_url("https://acme.example/about")

        extractor.extract_text_from_url.assert_called_once_with("https://acme.example/about")
        assert processed.text == "Fetched page text.\n\nMore."

    def test_extraction_error_propagates(self):
        extractor = MagicMock()
        extractor.extract_text.side_effect = ExtractionError("Unsupported file type: exe")
        processor = DocumentProcessor(extractor=extractor)

        with pytest.raises(ExtractionError, match="Unsupported"):
            processor.process_document(b"MZ", "exe")
