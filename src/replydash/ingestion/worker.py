"""
Ingestion Worker

Runs document ingestion jobs outside the request that created them.

A job walks one document through extract -> clean -> chunk -> embed ->
store and records the outcome on the document row:

    processing --all steps succeed--> completed (chunk and token counts)
    processing --any step fails-----> failed (error message)

Jobs run on a bounded thread pool; different documents share nothing but
the stores. A started job is never cancelled.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional, Union

from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..models import FileType
from ..rag.chunker import estimate_token_count
from ..rag.config import RAGConfig
from ..rag.embedding_service import EmbeddingError, EmbeddingService
from ..rag.vector_store import BaseVectorStore
from .processor import DocumentProcessor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IngestionJob:
    """One document awaiting ingestion."""
    document_id: str
    company_id: str
    file_type: FileType
    filename: str
    data: Optional[bytes] = None
    url: Optional[str] = None

    @classmethod
    def for_upload(
        cls,
        document_id: str,
        company_id: str,
        filename: str,
        file_type: FileType,
        data: bytes
    ) -> "IngestionJob":
        return cls(document_id, company_id, FileType(file_type), filename, data=data)

    @classmethod
    def for_url(cls, document_id: str, company_id: str, url: str) -> "IngestionJob":
        return cls(document_id, company_id, FileType.URL, url, url=url)


@dataclass(frozen=True)
class Completed:
    """Ingestion succeeded."""
    document_id: str
    chunks: int
    tokens: int


@dataclass(frozen=True)
class Failed:
    """Ingestion failed; the document carries the reason."""
    document_id: str
    reason: str


IngestionResult = Union[Completed, Failed]


class IngestionWorker:
    """Executes ingestion jobs and records document status."""

    def __init__(
        self,
        processor: DocumentProcessor,
        embedding_service: EmbeddingService,
        vector_store: BaseVectorStore,
        document_service,
        config: Optional[RAGConfig] = None
    ):
        """
        Initialize worker.

        Args:
            processor: Extracts, cleans and chunks sources
            embedding_service: Embeds chunk text
            vector_store: Stores chunks and embeddings
            document_service: Records document status transitions
            config: RAG configuration
        """
        self.config = config or RAGConfig()
        self.processor = processor
        self.embedding_service = embedding_service
        self.vector_store = vector_store
        self.document_service = document_service
        self._executor: Optional[ThreadPoolExecutor] = None

    def submit(self, job: IngestionJob) -> "Future[IngestionResult]":
        """
        Queue a job for background execution.

        At most ``max_concurrent_ingestions`` jobs run at once; the rest
        wait in the pool's queue.
        """
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.config.max_concurrent_ingestions,
                thread_name_prefix="ingestion"
            )
        logger.info(f"Queued ingestion for document {job.document_id}")
        return self._executor.submit(self.run, job)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting jobs; optionally wait for running ones."""
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
            self._executor = None

    def run(self, job: IngestionJob) -> IngestionResult:
        """
        Ingest one document and record its final status.

        Returns:
            Completed or Failed; never raises
        """
        logger.info(f"Processing document {job.document_id}...")
        try:
            if job.file_type == FileType.URL:
                processed = self.processor.process_url(job.url)
            else:
                processed = self.processor.process_document(job.data, job.file_type.value)

            logger.info(f"Generating embeddings for {len(processed.chunks)} chunks...")
            embeddings = self._embed([chunk.content for chunk in processed.chunks])

            chunk_metadata = {"filename": job.filename, "file_type": job.file_type.value}
            if job.url:
                chunk_metadata["source_url"] = job.url

            stored = self.vector_store.store_chunks(
                job.company_id,
                job.document_id,
                processed.chunks,
                embeddings,
                chunk_metadata
            )

            marked = self.document_service.mark_completed(
                job.document_id,
                total_chunks=stored,
                total_tokens=processed.total_tokens,
                metadata={
                    "characters": len(processed.text),
                    "unique_tokens": estimate_token_count(processed.text),
                }
            )
            if not marked:
                # Row deleted or finished elsewhere while this job ran
                self.vector_store.delete_document_chunks(job.document_id)
                logger.warning(f"Discarded chunks for document {job.document_id}: no longer processing")
                return Failed(job.document_id, "Document no longer processing")

            logger.info(f"Document {job.document_id} processed successfully")
            return Completed(job.document_id, stored, processed.total_tokens)

        except Exception as e:
            logger.error(f"Error processing document {job.document_id}: {e}", exc_info=True)
            self._record_failure(job.document_id, str(e))
            return Failed(job.document_id, str(e))

    def _embed(self, texts: List[str]) -> List[List[float]]:
        attempts = max(self.config.embedding_max_attempts, 1)
        if attempts == 1:
            return self.embedding_service.embed_batch(texts)

        retrying = Retrying(
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            retry=retry_if_exception_type(EmbeddingError),
            reraise=True
        )
        return retrying(self.embedding_service.embed_batch, texts)

    def _record_failure(self, document_id: str, reason: str) -> None:
        try:
            self.document_service.mark_failed(document_id, reason)
        except Exception as e:
            # Status stays processing; nothing else can record it
            logger.error(f"Could not mark document {document_id} as failed: {e}", exc_info=True)
