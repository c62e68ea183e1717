"""
TFE API Service - FastAPI backend for FAQ generation from resolved tickets
"""

from typing import List, Optional

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from services.faq_engine.engine import FAQGenerationEngine
from services.faq_engine.errors import (
    FAQEngineError,
    NotFoundError,
    RunTimeoutError,
    ValidationError,
)
from shared.schemas.faq import (
    FAQCandidate,
    FAQEntry,
    GenerationOptions,
    MaterializeResult,
    PreviewResult,
)

logger = structlog.get_logger()

app = FastAPI(
    title="TFE API",
    description="Ticket FAQ Engine - cluster resolved tickets into FAQ drafts",
    version="0.1.0",
)

# CORS for admin UI access
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Engine (lazy init)
_engine: Optional[FAQGenerationEngine] = None


def get_engine() -> FAQGenerationEngine:
    """Get the FAQ generation engine."""
    global _engine
    if _engine is None:
        from services.faq_engine.factory import build_engine
        _engine = build_engine()
    return _engine


# ============================================================
# Request models
# ============================================================

class GenerateRequest(GenerationOptions):
    """Clustering options plus run controls"""
    seed: Optional[int] = None
    timeout_seconds: Optional[float] = Field(default=None, gt=0)


class CreateFromClusterRequest(GenerateRequest):
    cluster_id: str = Field(..., min_length=1)
    is_published: bool = False
    category: Optional[str] = Field(default=None, max_length=100)
    tags: Optional[List[str]] = None


class BulkCreateRequest(GenerateRequest):
    cluster_ids: Optional[List[str]] = None
    is_published: bool = False
    auto_publish_threshold: Optional[float] = Field(default=None, ge=0.0, le=1.0)


def _options(request: GenerateRequest) -> GenerationOptions:
    return GenerationOptions(
        min_cluster_size=request.min_cluster_size,
        max_clusters=request.max_clusters,
        similarity_threshold=request.similarity_threshold,
        date_range=request.date_range,
        categories=request.categories,
    )


def _http_error(error: FAQEngineError) -> HTTPException:
    if isinstance(error, ValidationError):
        return HTTPException(status_code=400, detail={"message": error.message, **error.details})
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=404, detail=error.message)
    if isinstance(error, RunTimeoutError):
        return HTTPException(status_code=504, detail=error.message)
    return HTTPException(status_code=500, detail=error.message)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed options are a client error (400), same as engine-side validation"""
    errors = [
        f"{'.'.join(str(p) for p in e.get('loc', ()))}: {e.get('msg')}" for e in exc.errors()
    ]
    logger.warning("Rejected request", path=request.url.path, errors=errors)
    return JSONResponse(
        status_code=400,
        content={"detail": {"message": "Invalid generation options", "errors": errors}},
    )


# ============================================================
# Endpoints
# ============================================================

class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    service: str = "tfe-api"
    db_connected: bool


@app.get("/health", response_model=HealthResponse)
def health():
    """Check health of the API and its ticket store."""
    db_ok = get_engine().check_health()
    return HealthResponse(status="healthy" if db_ok else "degraded", db_connected=db_ok)


@app.post("/api/apps/{app_id}/faqs/generate/preview", response_model=PreviewResult)
def preview_generation(app_id: str, request: GenerateRequest):
    """Cluster resolved tickets and return FAQ candidates with statistics."""
    try:
        return get_engine().preview(
            app_id, _options(request), timeout=request.timeout_seconds, seed=request.seed
        )
    except FAQEngineError as e:
        raise _http_error(e)


@app.post("/api/apps/{app_id}/faqs/generate", response_model=List[FAQCandidate])
def generate_candidates(app_id: str, request: GenerateRequest):
    """Cluster resolved tickets and return the FAQ candidates only."""
    try:
        return get_engine().generate(
            app_id, _options(request), timeout=request.timeout_seconds, seed=request.seed
        )
    except FAQEngineError as e:
        raise _http_error(e)


@app.post("/api/apps/{app_id}/faqs/generate/from-cluster", response_model=FAQEntry, status_code=201)
def create_from_cluster(app_id: str, request: CreateFromClusterRequest):
    """Create one FAQ entry from a generated cluster."""
    logger.info("Create FAQ from cluster request", app_id=app_id, cluster_id=request.cluster_id)
    try:
        return get_engine().create_from_cluster(
            app_id,
            _options(request),
            request.cluster_id,
            is_published=request.is_published,
            category=request.category,
            tags=request.tags,
            timeout=request.timeout_seconds,
            seed=request.seed,
        )
    except FAQEngineError as e:
        raise _http_error(e)


@app.post("/api/apps/{app_id}/faqs/generate/bulk-create", response_model=MaterializeResult, status_code=201)
def bulk_create(app_id: str, request: BulkCreateRequest):
    """Create FAQ entries from several generated clusters (best effort)."""
    logger.info("Bulk create FAQ request", app_id=app_id,
                clusters=len(request.cluster_ids) if request.cluster_ids is not None else "all")
    try:
        return get_engine().materialize(
            app_id,
            _options(request),
            cluster_ids=request.cluster_ids,
            is_published=request.is_published,
            auto_publish_threshold=request.auto_publish_threshold,
            timeout=request.timeout_seconds,
            seed=request.seed,
        )
    except FAQEngineError as e:
        raise _http_error(e)
