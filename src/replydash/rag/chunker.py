"""
Text Chunking for RAG

Splits cleaned document text into overlapping, token-bounded chunks that
can be embedded and retrieved independently.

Strategy:
- Split on paragraph boundaries (blank lines)
- Accumulate paragraphs until the next one would overflow the target size
- Carry the trailing overlap characters of each emitted chunk into the next
- Never split a paragraph, even one longer than the target size

Token counts are estimated at 4 characters per token. The estimate is used
both for sizing decisions and for the reported ``token_count`` of every
chunk; it is not a tokenizer-accurate count.
"""

import math
import re
from typing import Callable, List, Optional
from dataclasses import dataclass

from .config import RAGConfig

CHARS_PER_TOKEN = 4

_PARAGRAPH_BREAK = re.compile(r"\n\n+")


def estimate_token_count(text: str) -> int:
    """Estimate tokens in text (1 token ~ 4 characters)."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


@dataclass
class TextChunk:
    """A chunk of document text."""
    content: str
    token_count: int
    chunk_index: int


class TextChunker:
    """Splits text into overlapping paragraph-aware chunks."""

    def __init__(
        self,
        config: Optional[RAGConfig] = None,
        token_estimator: Callable[[str], int] = estimate_token_count
    ):
        """
        Initialize chunker.

        Args:
            config: RAG configuration (defaults to built-in sizes)
            token_estimator: Function reporting the token count of a chunk
        """
        config = config or RAGConfig()
        self.chunk_size = config.chunk_size
        self.chunk_overlap = config.chunk_overlap
        self.token_estimator = token_estimator

    def chunk_text(
        self,
        text: str,
        chunk_size: Optional[int] = None,
        overlap: Optional[int] = None
    ) -> List[TextChunk]:
        """
        Split text into chunks with overlap.

        Args:
            text: Cleaned text to chunk
            chunk_size: Target chunk size in tokens
            overlap: Overlap between consecutive chunks in tokens

        Returns:
            Ordered list of TextChunk objects indexed from 0
        """
        chunk_size = self.chunk_size if chunk_size is None else chunk_size
        overlap = self.chunk_overlap if overlap is None else overlap

        chunk_chars = chunk_size * CHARS_PER_TOKEN
        overlap_chars = overlap * CHARS_PER_TOKEN

        contents: List[str] = []
        buffer = ""

        for para in self._split_paragraphs(text):
            # If adding this paragraph would exceed chunk size
            if buffer and len(buffer) + len(para) > chunk_chars:
                contents.append(buffer.strip())
                # Start new chunk with the tail of the one just emitted
                overlap_text = buffer[-overlap_chars:] if overlap_chars > 0 else ""
                buffer = f"{overlap_text} {para}" if overlap_text else para
            elif buffer:
                buffer += "\n\n" + para
            else:
                buffer = para

        if buffer.strip():
            contents.append(buffer.strip())

        # Text with no paragraph content still yields one chunk
        if not contents and text.strip():
            contents.append(text.strip())

        return [
            TextChunk(
                content=content,
                token_count=self.token_estimator(content),
                chunk_index=i
            )
            for i, content in enumerate(contents)
        ]

    def _split_paragraphs(self, text: str) -> List[str]:
        """Split text on blank-line boundaries, dropping empty paragraphs."""
        return [p for p in _PARAGRAPH_BREAK.split(text) if p.strip()]


def chunk_text(
    text: str,
    chunk_size: int = 500,
    overlap: int = 100
) -> List[TextChunk]:
    """
    Chunk text with the default estimator.

    Args:
        text: Cleaned text to chunk
        chunk_size: Target chunk size in tokens
        overlap: Overlap between chunks in tokens

    Returns:
        List of TextChunk objects
    """
    return TextChunker().chunk_text(text, chunk_size=chunk_size, overlap=overlap)
