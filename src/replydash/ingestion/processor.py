"""Document processing: extract, clean and chunk a source."""

import logging
from dataclasses import dataclass
from typing import List, Optional

from ..rag.chunker import TextChunk, TextChunker
from ..rag.config import RAGConfig
from .cleaner import clean_text
from .extractor import ExtractionError, TextExtractor

logger = logging.getLogger(__name__)


@dataclass
class ProcessedDocument:
    """Cleaned text of a source and its chunks."""
    text: str
    chunks: List[TextChunk]

    @property
    def total_tokens(self) -> int:
        """Sum of per-chunk token estimates (overlap is counted in every chunk)."""
        return sum(chunk.token_count for chunk in self.chunks)


class DocumentProcessor:
    """Turns raw files and URLs into chunked text."""

    def __init__(
        self,
        config: Optional[RAGConfig] = None,
        extractor: Optional[TextExtractor] = None,
        chunker: Optional[TextChunker] = None
    ):
        self.config = config or RAGConfig()
        self.extractor = extractor or TextExtractor(self.config)
        self.chunker = chunker or TextChunker(self.config)

    def process_document(self, data: bytes, file_type: str) -> ProcessedDocument:
        """
        Process an uploaded file.

        Args:
            data: File content
            file_type: Declared type (pdf, docx, txt, md)

        Returns:
            ProcessedDocument

        Raises:
            ExtractionError: If extraction fails or no text remains
        """
        logger.info(f"Extracting text from {file_type}...")
        raw_text = self.extractor.extract_text(data, file_type)
        return self._process(raw_text, "Document")

    def process_url(self, url: str) -> ProcessedDocument:
        """
        Process a web page.

        Raises:
            ExtractionError: If the page cannot be fetched or is too short
        """
        logger.info(f"Extracting text from URL: {url}...")
        raw_text = self.extractor.extract_text_from_url(url)
        return self._process(raw_text, "URL content")

    def _process(self, raw_text: str, label: str) -> ProcessedDocument:
        cleaned = clean_text(raw_text)

        if len(cleaned) < max(self.config.min_document_chars, 1):
            raise ExtractionError(f"{label} too short or empty after cleaning")

        chunks = self.chunker.chunk_text(cleaned)
        processed = ProcessedDocument(text=cleaned, chunks=chunks)

        logger.info(
            f"Processed {label.lower()}: {len(cleaned):,} chars, "
            f"{len(chunks)} chunks, {processed.total_tokens} tokens"
        )
        return processed
