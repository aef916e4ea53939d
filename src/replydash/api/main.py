"""
FastAPI Application - ReplyDash Knowledge API

Main entry point for the REST API.
"""

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from contextlib import asynccontextmanager
import os
import time
import logging
from typing import AsyncGenerator

from .. import __version__
from .dependencies import get_rag_services, shutdown_rag_services
from .schemas import ErrorResponse, HealthResponse
from ..rag.config import get_rag_config

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

VERSION = __version__


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan events.

    Runs on startup and shutdown.
    """
    # Startup
    logger.info("=" * 60)
    logger.info(f"ReplyDash Knowledge API v{VERSION}")
    logger.info("=" * 60)

    config = get_rag_config()
    logger.info(f"Vector backend: {config.vector_backend}")
    logger.info(f"Embedding model: {config.embedding_model} ({config.embedding_dimension} dims)")

    if get_rag_services() is not None:
        logger.info("✅ RAG features enabled")
    else:
        logger.warning("⚠️  RAG features disabled")

    logger.info(f"🚀 API started on port {os.getenv('PORT', '8000')}")
    logger.info("=" * 60)

    yield

    # Shutdown
    logger.info("Shutting down API, waiting for ingestion jobs...")
    shutdown_rag_services()


# Create FastAPI app
app = FastAPI(
    title="ReplyDash Knowledge API",
    description="""
    Company knowledge base for grounded social reply generation.

    ## Features
    - Upload PDF, DOCX, TXT and Markdown documents, or add web pages
    - Background extraction, chunking and embedding
    - Per-company voice and brand guidelines
    - Similarity search context for reply prompts
    """,
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify allowed origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all HTTP requests"""
    start_time = time.time()

    logger.info(f"→ {request.method} {request.url.path}")

    response = await call_next(request)

    duration = (time.time() - start_time) * 1000
    logger.info(f"← {response.status_code} ({duration:.0f}ms)")

    return response


# Exception handlers
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors"""
    errors = exc.errors()
    logger.warning(f"Validation error: {errors}")

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ErrorResponse(
            detail=f"Validation error: {errors[0]['msg']}",
            error_code="VALIDATION_ERROR"
        ).model_dump(mode='json')
    )


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    """Handle ValueError exceptions"""
    logger.error(f"ValueError: {exc}")

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ErrorResponse(
            detail=str(exc),
            error_code="VALUE_ERROR"
        ).model_dump(mode='json')
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle all other exceptions"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            detail="Internal server error. Please try again later.",
            error_code="INTERNAL_ERROR"
        ).model_dump(mode='json')
    )


@app.get("/", tags=["Root"])
async def root():
    """API info"""
    return {
        "name": "ReplyDash Knowledge API",
        "version": VERSION,
        "docs": "/docs",
        "health": "/health",
    }


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Always healthy while the process runs; reports whether the knowledge
    base is usable.
    """
    config = get_rag_config()
    return HealthResponse(
        status="healthy",
        supabase="configured" if config.supabase_configured else "not_configured",
        rag="enabled" if get_rag_services() is not None else "disabled",
        version=VERSION
    )


# Import routers
from .routers import knowledge

app.include_router(knowledge.router, prefix="/api/v1", tags=["Knowledge"])


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", "8000"))
    uvicorn.run(
        "replydash.api.main:app",
        host="0.0.0.0",
        port=port,
        reload=True,
        log_level="info"
    )
