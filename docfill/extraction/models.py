"""Data types shared by the extraction pipeline."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

FieldValue = str | int | float | bool


@dataclass(frozen=True)
class ExtractedField:
    """A single named value extracted from a document."""

    key: str
    value: FieldValue


FieldMap = dict[str, ExtractedField]


def field_map(values: Mapping[str, FieldValue]) -> FieldMap:
    """Build a field mapping from plain key/value pairs, preserving order."""
    return {key: ExtractedField(key=key, value=value) for key, value in values.items()}


def field_values(fields: Mapping[str, ExtractedField]) -> dict[str, FieldValue]:
    """Flatten a field mapping back to plain key/value pairs."""
    return {key: f.value for key, f in fields.items()}


@dataclass(frozen=True)
class PartialResult:
    """Output of one provider adapter invocation.

    A failed result carries no fields and an error message. ``raw_text``
    holds recognized text for providers that produce it, so later steps
    in the same run can reuse it.
    """

    provider_label: str
    fields: Mapping[str, ExtractedField] = field(default_factory=dict)
    confidence: float = 0.0
    succeeded: bool = False
    error: str | None = None
    raw_text: str | None = None

    def __post_init__(self) -> None:
        fields = dict(self.fields) if self.succeeded else {}
        object.__setattr__(self, "fields", MappingProxyType(fields))

    @classmethod
    def failure(cls, provider_label: str, error: str) -> "PartialResult":
        return cls(provider_label=provider_label, succeeded=False, error=error)


@dataclass
class ProcessingResult:
    """Single merged outcome of a document processing run."""

    success: bool
    data: FieldMap = field(default_factory=dict)
    confidence: float = 0.0
    provider_label: str = ""
    error: str | None = None

    def values(self) -> dict[str, FieldValue]:
        return field_values(self.data)


@dataclass
class Document:
    """An uploaded document: binary content, text, or both.

    Args:
        document_id: Identifier used when reporting lifecycle changes.
        content: Raw file bytes (image or PDF), if any.
        text: Plain text supplied directly by the caller, if any.
        filename: Display name for logging.
        content_type: MIME type reported by the uploader.
    """

    document_id: str
    content: bytes | None = None
    text: str | None = None
    filename: str = "document"
    content_type: str | None = None

    @property
    def is_pdf(self) -> bool:
        if self.content_type == "application/pdf":
            return True
        return bool(self.content) and self.content[:4] == b"%PDF"
