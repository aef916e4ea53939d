"""
Knowledge Base Router

Company knowledge endpoints: document uploads, document management,
voice settings and RAG context.

Uploads answer 202 as soon as the document row exists; extraction,
embedding and storage run on the ingestion worker. Clients poll the
document (or the company status) to see the outcome.
"""

from typing import Optional
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
import logging

from ..dependencies import RAGServices, get_context_builder, require_rag_services
from ..middleware.auth import get_current_user
from ..schemas import (
    CompanyStatusResponse,
    ContextRequest,
    ContextResponse,
    DeleteResponse,
    DocumentListResponse,
    DocumentResponse,
    EnsureCompanyRequest,
    EnsureCompanyResponse,
    RetrievedChunk,
    UploadResponse,
    UrlUploadRequest,
    VoiceSettingsResponse,
    VoiceSettingsUpdate,
)
from ...ingestion import IngestionJob
from ...models import FileType
from ...rag.vector_store import validate_company_id

logger = logging.getLogger(__name__)

router = APIRouter()


def _upload_file_type(filename: str) -> FileType:
    extension = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    allowed = FileType.upload_types()
    if extension not in [file_type.value for file_type in allowed]:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=(
                "Invalid file type. Allowed: "
                + ", ".join(file_type.value.upper() for file_type in allowed)
            )
        )
    return FileType(extension)


@router.post("/company/ensure", response_model=EnsureCompanyResponse)
def ensure_company(
    request: Optional[EnsureCompanyRequest] = None,
    user_id: str = Depends(get_current_user),
    services: RAGServices = Depends(require_rag_services)
):
    """Get the caller's company, creating it on first use."""
    name = request.name if request else None
    company_id, existed = services.document_service.ensure_company(user_id, name)
    return EnsureCompanyResponse(company_id=company_id, existed=existed)


@router.post(
    "/company/{company_id}/upload",
    response_model=UploadResponse,
    status_code=status.HTTP_202_ACCEPTED
)
async def upload_document(
    company_id: str,
    file: UploadFile = File(...),
    user_id: str = Depends(get_current_user),
    services: RAGServices = Depends(require_rag_services)
):
    """
    Upload a PDF, DOCX, TXT or Markdown file to the knowledge base.

    The file is processed in the background; the returned document starts
    in `processing` state.
    """
    validate_company_id(company_id)
    filename = file.filename or ""
    file_type = _upload_file_type(filename)

    data = await file.read()
    max_bytes = services.config.max_upload_bytes
    if len(data) > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File too large. Maximum size is {max_bytes // (1024 * 1024)}MB"
        )

    logger.info(f"Upload from user {user_id}: {filename} ({len(data)} bytes)")
    document = services.document_service.create_document(
        company_id, filename, file_type, file_size=len(data)
    )
    services.worker.submit(
        IngestionJob.for_upload(document.id, company_id, filename, file_type, data)
    )

    return UploadResponse(
        document_id=document.id,
        message="Document uploaded successfully. Processing in background."
    )


@router.post(
    "/company/{company_id}/upload-url",
    response_model=UploadResponse,
    status_code=status.HTTP_202_ACCEPTED
)
def upload_url(
    company_id: str,
    request: UrlUploadRequest,
    user_id: str = Depends(get_current_user),
    services: RAGServices = Depends(require_rag_services)
):
    """Add a web page to the knowledge base; fetched in the background."""
    validate_company_id(company_id)
    url = str(request.url)

    logger.info(f"URL upload from user {user_id}: {url}")
    document = services.document_service.create_document(
        company_id, url, FileType.URL, source_url=url
    )
    services.worker.submit(IngestionJob.for_url(document.id, company_id, url))

    return UploadResponse(
        document_id=document.id,
        message="URL added successfully. Processing in background."
    )


@router.get("/company/{company_id}/status", response_model=CompanyStatusResponse)
def get_company_status(
    company_id: str,
    user_id: str = Depends(get_current_user),
    services: RAGServices = Depends(require_rag_services)
):
    """Knowledge base statistics and voice settings for a company."""
    stats = services.vector_store.get_company_stats(company_id)
    voice_settings = services.document_service.get_voice_settings(company_id)
    return CompanyStatusResponse(**stats.model_dump(), voice_settings=voice_settings)


@router.get("/company/{company_id}/documents", response_model=DocumentListResponse)
def list_documents(
    company_id: str,
    user_id: str = Depends(get_current_user),
    services: RAGServices = Depends(require_rag_services)
):
    """List a company's documents, newest first."""
    documents = services.document_service.list_documents(company_id)
    return DocumentListResponse(documents=documents)


@router.get("/company/{company_id}/documents/{document_id}", response_model=DocumentResponse)
def get_document(
    company_id: str,
    document_id: str,
    user_id: str = Depends(get_current_user),
    services: RAGServices = Depends(require_rag_services)
):
    """Get one document, including its processing status."""
    document = services.document_service.get_document(company_id, document_id)
    if document is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Document {document_id} not found"
        )
    return DocumentResponse(document=document)


@router.delete("/company/{company_id}/documents/{document_id}", response_model=DeleteResponse)
def delete_document(
    company_id: str,
    document_id: str,
    user_id: str = Depends(get_current_user),
    services: RAGServices = Depends(require_rag_services)
):
    """Delete a document together with its chunks."""
    deleted = services.document_service.delete_document(company_id, document_id)
    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Document {document_id} not found"
        )
    logger.info(f"User {user_id} deleted document {document_id}")
    return DeleteResponse(success=True, message="Document deleted successfully")


@router.get("/company/{company_id}/settings", response_model=VoiceSettingsResponse)
def get_voice_settings(
    company_id: str,
    user_id: str = Depends(get_current_user),
    services: RAGServices = Depends(require_rag_services)
):
    """Current voice settings (null when never set)."""
    validate_company_id(company_id)
    return VoiceSettingsResponse(
        voice_settings=services.document_service.get_voice_settings(company_id)
    )


@router.put("/company/{company_id}/settings", response_model=VoiceSettingsResponse)
def update_voice_settings(
    company_id: str,
    request: VoiceSettingsUpdate,
    user_id: str = Depends(get_current_user),
    services: RAGServices = Depends(require_rag_services)
):
    """Create or replace a company's voice settings."""
    settings = services.document_service.upsert_voice_settings(
        company_id, request.model_dump()
    )
    return VoiceSettingsResponse(voice_settings=settings)


@router.post("/company/{company_id}/context", response_model=ContextResponse)
def build_context(
    company_id: str,
    request: ContextRequest,
    user_id: str = Depends(get_current_user),
    context_builder=Depends(get_context_builder)
):
    """
    Retrieve grounding context for a reply.

    Never fails because of retrieval problems: when the knowledge base is
    unavailable the response carries an empty context.
    """
    context = context_builder.build_context(
        company_id,
        request.query_text,
        max_chunks=request.max_chunks,
        similarity_threshold=request.similarity_threshold
    )
    logger.info(f"Context for company {company_id}: {len(context.chunks)} chunks")

    return ContextResponse(
        chunks=[
            RetrievedChunk(
                content=chunk.get("content", ""),
                similarity=chunk.get("similarity"),
                document_id=chunk.get("document_id"),
                chunk_index=chunk.get("chunk_index"),
                filename=chunk.get("filename") or (chunk.get("metadata") or {}).get("filename"),
            )
            for chunk in context.chunks
        ],
        formatted_chunks=context.formatted_chunks,
        voice_settings=context.voice_settings,
        formatted_voice=context.formatted_voice,
        has_context=context.has_context,
        prompt_section=context.as_prompt_section(),
    )
