"""Extraction orchestrator combining provider outputs into one result.

Invokes the enabled providers concurrently, each under its own
timeout, merges their field sets with a fixed precedence and falls
back to pattern extraction when no provider yields data.
"""

import asyncio
from collections.abc import Mapping, Sequence

from docfill.lifecycle.tracker import DocumentStatus, LifecycleTracker
from docfill.providers import ProviderAdapter, build_adapters
from docfill.utils.config import PipelineConfig, ProviderConfig, ProviderKind
from docfill.utils.logger import get_logger

from .errors import (
    CancellationError,
    ConfigurationError,
    NoDataExtractedError,
    PipelineError,
)
from .models import Document, FieldMap, PartialResult, ProcessingResult
from .pattern_extractor import PatternExtractor

logger = get_logger(__name__)

# Later kinds overwrite same-key fields from earlier ones.
MERGE_ORDER: tuple[ProviderKind, ...] = (
    ProviderKind.VISION_OCR,
    ProviderKind.LANGUAGE_MODEL,
)

FALLBACK_LABEL = "pattern-fallback"
LABEL_SEPARATOR = " + "


def select_active_configs(
    configs: Sequence[ProviderConfig],
) -> dict[ProviderKind, ProviderConfig]:
    """Pick the first enabled config with a credential for each kind.

    Args:
        configs: Provider configurations in priority order.

    Returns:
        Mapping of provider kind to the config used for this run.
    """
    active: dict[ProviderKind, ProviderConfig] = {}
    for config in configs:
        if config.enabled and config.has_credential and config.kind not in active:
            active[config.kind] = config
    return active


def merge_partials(partials: Sequence[PartialResult]) -> ProcessingResult:
    """Merge provider results given in precedence order.

    Fields from later results overwrite same-key fields from earlier
    ones. Only succeeded results with at least one field contribute
    to the confidence and the provider label.

    Args:
        partials: Results ordered from lowest to highest precedence.

    Returns:
        Merged result; ``success`` is ``False`` when no field was merged.
    """
    data: FieldMap = {}
    confidence = 0.0
    labels: list[str] = []

    for partial in partials:
        if not partial.succeeded or not partial.fields:
            continue
        data.update(partial.fields)
        confidence = max(confidence, partial.confidence)
        labels.append(partial.provider_label)

    return ProcessingResult(
        success=bool(data),
        data=data,
        confidence=confidence if data else 0.0,
        provider_label=LABEL_SEPARATOR.join(labels),
    )


class ExtractionOrchestrator:
    """Runs one document through the configured providers.

    Args:
        config: Pipeline timeouts and fallback settings.
        adapters: Adapter per provider kind. Defaults to the built-in
            Vision and OpenAI adapters.
        tracker: Receiver of lifecycle transitions, if any.
        extractor: Pattern extractor used for the last-resort fallback.
    """

    def __init__(
        self,
        config: PipelineConfig | None = None,
        adapters: Mapping[ProviderKind, ProviderAdapter] | None = None,
        tracker: LifecycleTracker | None = None,
        extractor: PatternExtractor | None = None,
    ) -> None:
        self.config = config or PipelineConfig()
        self.extractor = extractor or PatternExtractor()
        self.adapters = dict(adapters or build_adapters(extractor=self.extractor))
        self.tracker = tracker

    async def process(
        self, document: Document, enabled_configs: Sequence[ProviderConfig]
    ) -> ProcessingResult:
        """Extract a merged field set from a document.

        Args:
            document: The uploaded document.
            enabled_configs: Provider configurations to consult. A
                snapshot is taken before any provider is called.

        Returns:
            The merged processing result. Configuration problems and
            empty extractions are reported as a failed result.

        Raises:
            CancellationError: If the caller cancels the run. No terminal
                state is reported in that case.
        """
        active = select_active_configs(list(enabled_configs))
        self._report(document.document_id, DocumentStatus.PROCESSING)
        logger.info(
            "Processing document %s with %d provider(s)",
            document.document_id,
            len(active),
        )

        try:
            result = await self._run(document, active)
        except PipelineError as exc:
            logger.warning("Processing of %s failed: %s", document.document_id, exc)
            result = ProcessingResult(success=False, error=str(exc))

        if result.success:
            logger.info(
                "Document %s: %d fields from %s (confidence %.2f)",
                document.document_id,
                len(result.data),
                result.provider_label,
                result.confidence,
            )
            self._report(
                document.document_id,
                DocumentStatus.COMPLETED,
                data=result.data,
                confidence=result.confidence,
                provider_label=result.provider_label,
            )
        else:
            self._report(document.document_id, DocumentStatus.FAILED, error=result.error)
        return result

    async def _run(
        self, document: Document, active: dict[ProviderKind, ProviderConfig]
    ) -> ProcessingResult:
        if not active:
            raise ConfigurationError()

        partials = await self._invoke_all(document, active)
        result = merge_partials(partials)
        if result.success:
            return result

        text = self._fallback_text(document, partials)
        fields = self.extractor.extract(text) if text else {}
        if not fields:
            raise NoDataExtractedError()

        logger.info("No provider returned data, using pattern extraction")
        return ProcessingResult(
            success=True,
            data=fields,
            confidence=self.config.fallback_confidence,
            provider_label=FALLBACK_LABEL,
        )

    async def _invoke_all(
        self, document: Document, active: dict[ProviderKind, ProviderConfig]
    ) -> list[PartialResult]:
        """Run every active adapter concurrently and collect results in merge order."""
        timeout = self.config.provider_timeout_s
        tasks: dict[ProviderKind, asyncio.Task[PartialResult]] = {}

        for kind in MERGE_ORDER:
            config = active.get(kind)
            if config is None:
                continue
            adapter = self.adapters[kind]
            if kind is ProviderKind.LANGUAGE_MODEL:
                coro = self._invoke_language_model(
                    adapter, config, document, tasks.get(ProviderKind.VISION_OCR)
                )
            else:
                coro = adapter.invoke(document, config, timeout)
            tasks[kind] = asyncio.create_task(
                coro, name=f"{config.id}:{document.document_id}"
            )

        try:
            return list(await asyncio.gather(*tasks.values()))
        except asyncio.CancelledError as exc:
            for task in tasks.values():
                task.cancel()
            await asyncio.gather(*tasks.values(), return_exceptions=True)
            logger.warning("Processing of %s was cancelled", document.document_id)
            raise CancellationError(
                f"Processing of document {document.document_id} was cancelled"
            ) from exc

    async def _invoke_language_model(
        self,
        adapter: ProviderAdapter,
        config: ProviderConfig,
        document: Document,
        vision_task: asyncio.Task[PartialResult] | None,
    ) -> PartialResult:
        """Call the language model on the document text.

        Without text of its own, the document is described by the vision
        result of the same run, so this waits for that task first. The
        timeout applies to the language model call alone.
        """
        text = document.text
        if not (text and text.strip()) and vision_task is not None:
            vision = await vision_task
            text = vision.raw_text or " ".join(
                str(f.value) for f in vision.fields.values()
            )
        return await adapter.invoke(text or "", config, self.config.provider_timeout_s)

    @staticmethod
    def _fallback_text(document: Document, partials: Sequence[PartialResult]) -> str:
        if document.text and document.text.strip():
            return document.text
        for partial in partials:
            if partial.raw_text:
                return partial.raw_text
        return ""

    def _report(self, document_id: str, status: DocumentStatus, **details) -> None:
        if self.tracker is not None:
            self.tracker.report_status(document_id, status, **details)
