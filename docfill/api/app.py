"""FastAPI application for the document extraction service.

Provides REST endpoints for processing uploads, matching extracted
data onto templates, reading document status, and health checks.
"""

import time
import uuid
from pathlib import Path
from typing import Annotated

from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from docfill.extraction.field_matcher import (
    FieldMatcher,
    Template,
    load_templates,
    missing_required,
)
from docfill.extraction.models import Document, field_map
from docfill.extraction.orchestrator import ExtractionOrchestrator
from docfill.lifecycle.tracker import InMemoryLifecycleTracker
from docfill.utils.config import AppConfig, load_config
from docfill.utils.logger import get_logger

from .schemas import (
    DocumentStatusResponse,
    HealthResponse,
    MatchRequest,
    MatchResponse,
    ProcessingResponse,
    TemplateFieldInfo,
    TemplateInfo,
    TemplatesResponse,
)

logger = get_logger(__name__)

VERSION = "1.0.0"

app = FastAPI(
    title="Document Form Filling API",
    description="Extract structured data from documents and fill form templates",
    version=VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_tracker = InMemoryLifecycleTracker()
_matcher = FieldMatcher()


def _get_components() -> tuple[AppConfig, ExtractionOrchestrator, dict[str, Template]]:
    """Initialize and return shared processing components.

    Returns:
        Tuple of (config, orchestrator, templates by name).
    """
    config = load_config()
    orchestrator = ExtractionOrchestrator(config.pipeline, tracker=_tracker)
    templates = load_templates(Path(config.templates_path))
    return config, orchestrator, templates


_ALLOWED_CONTENT_TYPES = {
    "image/png",
    "image/jpeg",
    "image/tiff",
    "image/gif",
    "image/webp",
    "application/pdf",
    "application/octet-stream",
}


def _template_or_404(templates: dict[str, Template], name: str) -> Template:
    template = templates.get(name)
    if template is None:
        raise HTTPException(status_code=404, detail=f"Unknown template: {name}")
    return template


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Return system health status."""
    config = load_config()
    return HealthResponse(
        status="healthy",
        version=VERSION,
        providers_enabled=[p.id for p in config.enabled_providers()],
    )


@app.post("/process", response_model=ProcessingResponse)
async def process_document(
    file: Annotated[UploadFile | None, File()] = None,
    text: Annotated[str | None, Form()] = None,
    template: Annotated[str | None, Form()] = None,
) -> ProcessingResponse | JSONResponse:
    """Extract structured fields from an uploaded document or text.

    Args:
        file: Uploaded image or PDF.
        text: Plain text to extract from, alone or alongside a file.
        template: Name of a template to fill with the extracted data.

    Returns:
        Merged extraction result, plus matched template fields when a
        template was requested. Failed extractions return HTTP 422.
    """
    start_time = time.time()

    if file is None and not text:
        raise HTTPException(status_code=400, detail="A file or text is required")
    if file is not None and file.content_type and (
        file.content_type not in _ALLOWED_CONTENT_TYPES
    ):
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type: {file.content_type}",
        )

    config, orchestrator, templates = _get_components()
    target = _template_or_404(templates, template) if template else None

    document = Document(
        document_id=str(uuid.uuid4()),
        content=await file.read() if file is not None else None,
        text=text,
        filename=(file.filename if file is not None else None) or "document",
        content_type=file.content_type if file is not None else None,
    )
    _tracker.register(document.document_id)

    try:
        result = await orchestrator.process(document, config.enabled_providers())
    except Exception as exc:
        logger.error("Processing failed: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    response = ProcessingResponse(
        success=result.success,
        document_id=document.document_id,
        data=result.values(),
        confidence=result.confidence,
        provider=result.provider_label,
        error=result.error,
        processing_time_ms=(time.time() - start_time) * 1000,
    )

    if not result.success:
        return JSONResponse(status_code=422, content=response.model_dump())

    if target is not None:
        matched = _matcher.match(target.fields, result.data)
        response.template = target.name
        response.matched_fields = matched
        response.missing_required = missing_required(target.fields, matched)

    return response


@app.post("/match", response_model=MatchResponse)
async def match_template(request: MatchRequest) -> MatchResponse:
    """Fill a template from an already extracted key/value set."""
    _, _, templates = _get_components()
    template = _template_or_404(templates, request.template)
    matched = _matcher.match(template.fields, field_map(request.data))
    return MatchResponse(
        template=template.name,
        matched_fields=matched,
        missing_required=missing_required(template.fields, matched),
    )


@app.get("/documents/{document_id}", response_model=DocumentStatusResponse)
async def get_document_status(document_id: str) -> DocumentStatusResponse:
    """Return the lifecycle record of a processed document."""
    record = _tracker.get(document_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Unknown document: {document_id}")
    return DocumentStatusResponse(
        document_id=record.document_id,
        status=record.status,
        data=record.data,
        confidence=record.confidence,
        provider=record.provider_label,
        error=record.error,
        history=[str(s) for s in record.history],
    )


@app.get("/templates", response_model=TemplatesResponse)
async def list_templates() -> TemplatesResponse:
    """List the configured form templates."""
    _, _, templates = _get_components()
    return TemplatesResponse(
        templates=[
            TemplateInfo(
                name=t.name,
                description=t.description,
                fields=[
                    TemplateFieldInfo(
                        name=f.name,
                        label=f.label,
                        type=f.type,
                        required=f.required,
                        options=list(f.options) if f.options else None,
                    )
                    for f in t.fields
                ],
            )
            for t in templates.values()
        ]
    )
