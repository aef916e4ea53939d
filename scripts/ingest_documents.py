"""
Ingest Documents into a Company Knowledge Base

Runs files and web pages through the same pipeline the API uses
(extract -> clean -> chunk -> embed -> store), one document at a time,
and records each document's final status.

Usage:
    # Ingest local files
    python scripts/ingest_documents.py --company-id <uuid> docs/handbook.pdf docs/faq.md

    # Ingest web pages
    python scripts/ingest_documents.py --company-id <uuid> --url https://example.com/about

    # Preview chunking without embedding or storing anything
    python scripts/ingest_documents.py --company-id <uuid> docs/faq.md --dry-run
"""

import sys
import argparse
import logging
from pathlib import Path
from typing import List

# Add src to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))

from dotenv import load_dotenv
from tqdm import tqdm

from replydash.api.dependencies import build_rag_services
from replydash.ingestion import Completed, DocumentProcessor, IngestionJob
from replydash.models import FileType
from replydash.rag.config import get_rag_config
from replydash.rag.vector_store import validate_company_id

# Load environment variables
load_dotenv()

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def file_type_for(path: Path) -> FileType:
    """Map a file extension to an upload type."""
    extension = path.suffix.lstrip(".").lower()
    if extension not in [t.value for t in FileType.upload_types()]:
        raise ValueError(f"Unsupported file type: {path.name}")
    return FileType(extension)


def preview(paths: List[Path], urls: List[str]) -> None:
    """Print chunk counts without touching the embedding provider or store."""
    processor = DocumentProcessor(get_rag_config())

    for path in paths:
        processed = processor.process_document(path.read_bytes(), file_type_for(path).value)
        print(f"{path.name}: {len(processed.chunks)} chunks, {processed.total_tokens} tokens")

    for url in urls:
        processed = processor.process_url(url)
        print(f"{url}: {len(processed.chunks)} chunks, {processed.total_tokens} tokens")


def ingest(company_id: str, paths: List[Path], urls: List[str]) -> int:
    """
    Ingest sources sequentially.

    Returns:
        Number of sources that failed
    """
    services = build_rag_services()
    document_service = services.document_service

    jobs = []
    for path in paths:
        file_type = file_type_for(path)
        data = path.read_bytes()
        document = document_service.create_document(
            company_id, path.name, file_type, file_size=len(data)
        )
        jobs.append(IngestionJob.for_upload(document.id, company_id, path.name, file_type, data))

    for url in urls:
        document = document_service.create_document(
            company_id, url, FileType.URL, source_url=url
        )
        jobs.append(IngestionJob.for_url(document.id, company_id, url))

    failures = 0
    total_chunks = 0
    for job in tqdm(jobs, desc="Ingesting", unit="doc"):
        result = services.worker.run(job)
        if isinstance(result, Completed):
            total_chunks += result.chunks
        else:
            failures += 1
            logger.error(f"❌ {job.filename}: {result.reason}")

    logger.info("=" * 60)
    logger.info(f"Documents: {len(jobs)} ({failures} failed)")
    logger.info(f"Chunks stored: {total_chunks}")
    logger.info("=" * 60)
    return failures


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Ingest files and web pages into a company knowledge base"
    )
    parser.add_argument(
        "paths",
        nargs="*",
        type=Path,
        help="PDF, DOCX, TXT or Markdown files"
    )
    parser.add_argument(
        "--company-id",
        required=True,
        help="Company UUID that owns the documents"
    )
    parser.add_argument(
        "--url",
        action="append",
        default=[],
        help="Web page to ingest (repeatable)"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Extract and chunk only; do not embed or store"
    )

    args = parser.parse_args()

    if not args.paths and not args.url:
        parser.error("Provide at least one file or --url")

    try:
        validate_company_id(args.company_id)
        missing = [str(p) for p in args.paths if not p.exists()]
        if missing:
            raise ValueError(f"File not found: {', '.join(missing)}")

        if args.dry_run:
            preview(args.paths, args.url)
            sys.exit(0)

        failures = ingest(args.company_id, args.paths, args.url)
        sys.exit(1 if failures else 0)

    except KeyboardInterrupt:
        logger.info("\nIngestion interrupted by user")
        sys.exit(1)
    except ValueError as e:
        logger.error(f"❌ {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
