"""Document lifecycle reporting.

The orchestrator reports each run's state changes through the
:class:`LifecycleTracker` protocol. Persistent storage lives outside
this package; :class:`InMemoryLifecycleTracker` backs the API and tests.
"""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Protocol

from docfill.extraction.models import FieldMap, field_values
from docfill.utils.logger import get_logger

logger = get_logger(__name__)


class DocumentStatus(StrEnum):
    """Processing states of an uploaded document."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class LifecycleTracker(Protocol):
    """Receiver of document state transitions."""

    def report_status(
        self,
        document_id: str,
        status: DocumentStatus,
        data: FieldMap | None = None,
        confidence: float | None = None,
        provider_label: str | None = None,
        error: str | None = None,
    ) -> None: ...


@dataclass
class DocumentRecord:
    """Last known state of one document."""

    document_id: str
    status: DocumentStatus = DocumentStatus.PENDING
    data: dict[str, str | int | float | bool] = field(default_factory=dict)
    confidence: float | None = None
    provider_label: str | None = None
    error: str | None = None
    history: list[DocumentStatus] = field(default_factory=list)


class InMemoryLifecycleTracker:
    """Keeps document records in a dictionary for the life of the process."""

    def __init__(self) -> None:
        self._records: dict[str, DocumentRecord] = {}

    def register(self, document_id: str) -> DocumentRecord:
        """Create a pending record for a newly uploaded document."""
        record = DocumentRecord(document_id=document_id)
        record.history.append(DocumentStatus.PENDING)
        self._records[document_id] = record
        return record

    def report_status(
        self,
        document_id: str,
        status: DocumentStatus,
        data: FieldMap | None = None,
        confidence: float | None = None,
        provider_label: str | None = None,
        error: str | None = None,
    ) -> None:
        record = self._records.get(document_id) or DocumentRecord(document_id)
        record.status = status
        record.history.append(status)
        if data is not None:
            record.data = field_values(data)
        if confidence is not None:
            record.confidence = confidence
        if provider_label is not None:
            record.provider_label = provider_label
        if error is not None:
            record.error = error
        self._records[document_id] = record
        logger.debug("Document %s is now %s", document_id, status)

    def get(self, document_id: str) -> DocumentRecord | None:
        return self._records.get(document_id)
