"""
API Request/Response Models (Pydantic Schemas)

Defines data validation and serialization for FastAPI endpoints.
"""

from typing import List, Dict, Any, Optional
from pydantic import BaseModel, Field, HttpUrl
from datetime import datetime, timezone

from ..models import CompanyStats, DocumentRecord, DocumentStatus, VoiceSettings


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Health Check
class HealthResponse(BaseModel):
    """Health check response"""

    status: str = Field(..., description="Service status", examples=["healthy"])
    supabase: str = Field(..., description="Supabase configuration status", examples=["configured"])
    rag: str = Field(..., description="Knowledge base availability", examples=["enabled"])
    version: str = Field(..., description="API version", examples=["2.0.0"])
    timestamp: datetime = Field(default_factory=_utcnow, description="Current server time")


# Error Response
class ErrorResponse(BaseModel):
    """Standard error response"""

    detail: str = Field(..., description="Error message")
    error_code: Optional[str] = Field(None, description="Error code for client handling")
    timestamp: datetime = Field(default_factory=_utcnow)


# Companies
class EnsureCompanyRequest(BaseModel):
    """Request to get or create the caller's company"""

    name: Optional[str] = Field(None, max_length=200, description="Company name used on creation")


class EnsureCompanyResponse(BaseModel):
    """Company owned by the caller"""

    company_id: str
    existed: bool = Field(..., description="False when the company was just created")


class CompanyStatusResponse(CompanyStats):
    """Knowledge base statistics with current voice settings"""

    voice_settings: Optional[VoiceSettings] = None


# Documents
class UrlUploadRequest(BaseModel):
    """Request to add a web page to the knowledge base"""

    url: HttpUrl = Field(..., description="Page to fetch", examples=["https://example.com/about"])


class UploadResponse(BaseModel):
    """Accepted ingestion request"""

    document_id: str
    status: DocumentStatus = DocumentStatus.PROCESSING
    message: str


class DocumentResponse(BaseModel):
    """Single document"""

    document: DocumentRecord


class DocumentListResponse(BaseModel):
    """Documents of a company, newest first"""

    documents: List[DocumentRecord]


class DeleteResponse(BaseModel):
    """Deletion acknowledgement"""

    success: bool
    message: str


# Voice Settings
class VoiceSettingsUpdate(BaseModel):
    """Voice settings to store for a company"""

    voice_guidelines: Optional[str] = Field(None, description="How replies should sound")
    brand_tone: Optional[str] = Field(None, description="Brand tone keywords")
    positioning: Optional[str] = Field(None, description="Market positioning statement")
    metadata: Dict[str, Any] = Field(default_factory=dict)


class VoiceSettingsResponse(BaseModel):
    """Current voice settings (null when never set)"""

    voice_settings: Optional[VoiceSettings] = None


# RAG Context
class ContextRequest(BaseModel):
    """Request for grounding context"""

    query_text: str = Field(
        ...,
        min_length=1,
        max_length=10000,
        description="Post text a reply will be generated for"
    )
    max_chunks: int = Field(default=10, ge=1, le=50, description="Maximum chunks to retrieve")
    similarity_threshold: float = Field(default=0.7, ge=0.0, le=1.0, description="Minimum similarity")


class RetrievedChunk(BaseModel):
    """Chunk returned by similarity search"""

    content: str
    similarity: Optional[float] = None
    document_id: Optional[str] = None
    chunk_index: Optional[int] = None
    filename: Optional[str] = None


class ContextResponse(BaseModel):
    """Grounding context for reply generation"""

    chunks: List[RetrievedChunk]
    formatted_chunks: str
    voice_settings: Optional[VoiceSettings] = None
    formatted_voice: str
    has_context: bool
    prompt_section: str = Field(..., description="Block appended to the reply system prompt")
