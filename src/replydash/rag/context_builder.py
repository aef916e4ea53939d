"""
RAG Context Builder

Composes retrieval and company voice settings into the context bundle
consumed by reply prompt assembly.

Steps for one request (sequential):
1. Embed the query text
2. Retrieve the company's most similar chunks
3. Fetch the company's voice settings
4. Format both into prompt-ready text blocks

Any failure yields an empty context instead of an exception: reply
generation must keep working without grounding.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import logging

from ..models import VoiceSettings
from .config import RAGConfig
from .embedding_service import EmbeddingService
from .vector_store import BaseVectorStore

logger = logging.getLogger(__name__)


@dataclass
class RAGContext:
    """Retrieved knowledge and voice guidance for one query."""
    chunks: List[Dict[str, Any]] = field(default_factory=list)
    formatted_chunks: str = ""
    voice_settings: Optional[VoiceSettings] = None
    formatted_voice: str = ""
    has_context: bool = False

    @classmethod
    def empty(cls) -> "RAGContext":
        return cls()

    def as_prompt_section(self) -> str:
        """
        Render the block appended to a system prompt.

        Returns:
            Markdown section, or an empty string when there is no context
        """
        if not self.has_context:
            return ""

        parts = []
        if self.formatted_voice:
            parts.append(f"### Company Voice & Brand Guidelines:\n{self.formatted_voice}")
        if self.formatted_chunks:
            parts.append(
                "### Relevant Company Knowledge:\n"
                "Use the following information from the company's knowledge base to "
                "inform your reply. Only reference this if relevant to the post.\n\n"
                f"{self.formatted_chunks}"
            )
        return "\n\n".join(parts)


def format_chunks_for_context(chunks: List[Dict[str, Any]]) -> str:
    """
    Format retrieved chunks for LLM context.

    Args:
        chunks: Chunks from retrieve_relevant_chunks

    Returns:
        Numbered source blocks separated by blank lines
    """
    if not chunks:
        return ""

    blocks = []
    for i, chunk in enumerate(chunks, 1):
        filename = chunk.get("filename") or (chunk.get("metadata") or {}).get("filename") or "Unknown"
        blocks.append(f"[Source {i}: {filename}]\n{chunk['content']}\n---")
    return "\n\n".join(blocks)


def format_voice_settings_for_prompt(voice_settings: Optional[VoiceSettings]) -> str:
    """Format company voice settings for an LLM prompt."""
    if voice_settings is None:
        return ""

    parts = []
    if voice_settings.voice_guidelines:
        parts.append(f"Voice Guidelines: {voice_settings.voice_guidelines}")
    if voice_settings.brand_tone:
        parts.append(f"Brand Tone: {voice_settings.brand_tone}")
    if voice_settings.positioning:
        parts.append(f"Positioning: {voice_settings.positioning}")
    return "\n\n".join(parts)


class RAGContextBuilder:
    """Builds grounding context for reply generation."""

    def __init__(
        self,
        embedding_service: EmbeddingService,
        vector_store: BaseVectorStore,
        document_service,
        config: Optional[RAGConfig] = None
    ):
        """
        Initialize context builder.

        Args:
            embedding_service: Embeds query text
            vector_store: Similarity search over company chunks
            document_service: Source of company voice settings
            config: RAG configuration (retrieval defaults)
        """
        self.config = config or RAGConfig()
        self.embedding_service = embedding_service
        self.vector_store = vector_store
        self.document_service = document_service

    def build_context(
        self,
        company_id: str,
        query_text: str,
        max_chunks: Optional[int] = None,
        similarity_threshold: Optional[float] = None
    ) -> RAGContext:
        """
        Build RAG context for a query.

        Args:
            company_id: Company UUID
            query_text: Post text the reply is generated for
            max_chunks: Maximum chunks to retrieve
            similarity_threshold: Minimum similarity score

        Returns:
            RAGContext; empty when any step fails
        """
        if max_chunks is None:
            max_chunks = self.config.top_k
        if similarity_threshold is None:
            similarity_threshold = self.config.score_threshold

        try:
            query_embedding = self.embedding_service.get_query_embedding(query_text)

            chunks = self.vector_store.retrieve_relevant_chunks(
                company_id,
                query_embedding,
                limit=max_chunks,
                similarity_threshold=similarity_threshold
            )

            voice_settings = self.document_service.get_voice_settings(company_id)

            return RAGContext(
                chunks=chunks,
                formatted_chunks=format_chunks_for_context(chunks),
                voice_settings=voice_settings,
                formatted_voice=format_voice_settings_for_prompt(voice_settings),
                has_context=bool(chunks) or voice_settings is not None,
            )

        except Exception as e:
            logger.error(f"Error building RAG context for company {company_id}: {e}", exc_info=True)
            return RAGContext.empty()


class DisabledContextBuilder:
    """Context builder used when RAG is not configured."""

    def build_context(
        self,
        company_id: str,
        query_text: str,
        max_chunks: Optional[int] = None,
        similarity_threshold: Optional[float] = None
    ) -> RAGContext:
        logger.debug(f"RAG disabled, no context for company {company_id}")
        return RAGContext.empty()
