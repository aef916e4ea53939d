"""Document ingestion: extraction, cleaning, processing and background jobs."""

from .cleaner import clean_text
from .extractor import ExtractionError, TextExtractor
from .processor import DocumentProcessor, ProcessedDocument
from .worker import Completed, Failed, IngestionJob, IngestionResult, IngestionWorker

__all__ = [
    "clean_text",
    "ExtractionError",
    "TextExtractor",
    "DocumentProcessor",
    "ProcessedDocument",
    "Completed",
    "Failed",
    "IngestionJob",
    "IngestionResult",
    "IngestionWorker",
]
