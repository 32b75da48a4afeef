"""Pydantic request/response schemas for the FastAPI endpoints."""

from pydantic import BaseModel, Field

FieldValue = str | int | float | bool


class ProcessingResponse(BaseModel):
    """Response schema for a document processing request."""

    success: bool
    document_id: str
    data: dict[str, FieldValue]
    confidence: float
    provider: str
    error: str | None = None
    template: str | None = None
    matched_fields: dict[str, FieldValue] | None = None
    missing_required: list[str] = Field(default_factory=list)
    processing_time_ms: float


class MatchRequest(BaseModel):
    """Request schema for matching extracted data onto a template."""

    template: str
    data: dict[str, FieldValue]


class MatchResponse(BaseModel):
    """Response schema for a template match."""

    template: str
    matched_fields: dict[str, FieldValue]
    missing_required: list[str]


class TemplateFieldInfo(BaseModel):
    """Description of one template field."""

    name: str
    label: str
    type: str
    required: bool
    options: list[str] | None = None


class TemplateInfo(BaseModel):
    """Information about a form template."""

    name: str
    description: str
    fields: list[TemplateFieldInfo]


class TemplatesResponse(BaseModel):
    """Response schema listing available form templates."""

    templates: list[TemplateInfo]


class DocumentStatusResponse(BaseModel):
    """Response schema for a document's lifecycle record."""

    document_id: str
    status: str
    data: dict[str, FieldValue]
    confidence: float | None = None
    provider: str | None = None
    error: str | None = None
    history: list[str]


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str
    providers_enabled: list[str]
