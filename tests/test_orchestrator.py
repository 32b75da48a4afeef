"""Tests for the extraction orchestrator and result merging."""

import asyncio
import json

import httpx
import pytest
from fakes import OPENAI_HOST, VISION_HOST, FakeProviders, chat_body, vision_body

from docfill.extraction.errors import CancellationError
from docfill.extraction.models import (
    Document,
    PartialResult,
    ProcessingResult,
    field_map,
)
from docfill.extraction.orchestrator import (
    FALLBACK_LABEL,
    ExtractionOrchestrator,
    merge_partials,
    select_active_configs,
)
from docfill.lifecycle.tracker import DocumentStatus, InMemoryLifecycleTracker
from docfill.providers import build_adapters
from docfill.utils.config import PipelineConfig, ProviderConfig

RESUME_TEXT = "Ana Souza\nana@example.com\nCPF 123.456.789-00"


def _run(
    fake: FakeProviders,
    document: Document,
    configs: list[ProviderConfig],
    tracker: InMemoryLifecycleTracker | None = None,
    **pipeline,
) -> ProcessingResult:
    async def run() -> ProcessingResult:
        async with fake.client() as client:
            orchestrator = ExtractionOrchestrator(
                PipelineConfig(**pipeline),
                adapters=build_adapters(client=client),
                tracker=tracker,
            )
            return await orchestrator.process(document, configs)

    return asyncio.run(run())


def _image_doc(text: str | None = None) -> Document:
    return Document(
        document_id="doc-1", content=b"\x89PNG", content_type="image/png", text=text
    )


def _text_doc(text: str = RESUME_TEXT) -> Document:
    return Document(document_id="doc-1", text=text)


class TestSelectActiveConfigs:
    """Tests for per-kind provider selection."""

    def test_first_enabled_with_credential_wins(self) -> None:
        configs = [
            ProviderConfig(id="off", kind="language-model", enabled=False, credential="k"),
            ProviderConfig(id="nokey", kind="language-model"),
            ProviderConfig(id="first", kind="language-model", credential="k"),
            ProviderConfig(id="second", kind="language-model", credential="k"),
        ]
        active = select_active_configs(configs)
        assert [c.id for c in active.values()] == ["first"]

    def test_empty(self) -> None:
        assert select_active_configs([]) == {}


class TestMergePartials:
    """Tests for merging provider results."""

    def test_empty_set_is_not_success(self) -> None:
        result = merge_partials([])
        assert result.success is False
        assert result.data == {}
        assert result.confidence == 0.0

    def test_later_result_overwrites_same_key(self) -> None:
        vision = PartialResult(
            "Google Vision",
            field_map({"email": "ocr@x.com", "cpf": "1"}),
            0.85,
            succeeded=True,
        )
        llm = PartialResult("OpenAI", field_map({"email": "llm@x.com"}), 0.9, True)
        result = merge_partials([vision, llm])
        assert result.values() == {"email": "llm@x.com", "cpf": "1"}
        assert result.confidence == 0.9
        assert result.provider_label == "Google Vision + OpenAI"

    def test_confidence_is_maximum_not_average(self) -> None:
        low = PartialResult("A", field_map({"a": "1"}), 0.2, True)
        high = PartialResult("B", field_map({"b": "2"}), 0.8, True)
        assert merge_partials([high, low]).confidence == 0.8

    def test_failed_results_contribute_nothing(self) -> None:
        failed = PartialResult("A", field_map({"a": "1"}), 0.99, succeeded=False)
        ok = PartialResult("B", field_map({"b": "2"}), 0.5, True)
        result = merge_partials([failed, ok])
        assert result.values() == {"b": "2"}
        assert result.confidence == 0.5
        assert result.provider_label == "B"

    def test_empty_success_does_not_count(self) -> None:
        empty = PartialResult("A", {}, 0.9, True)
        result = merge_partials([empty])
        assert result.success is False
        assert result.provider_label == ""


class TestExtractionOrchestrator:
    """Tests for ExtractionOrchestrator.process."""

    def test_no_provider_configured(self) -> None:
        fake = FakeProviders()
        tracker = InMemoryLifecycleTracker()
        result = _run(fake, _text_doc(), [], tracker)

        assert result.success is False
        assert result.error == "No AI provider configured"
        assert fake.requests == []
        assert tracker.get("doc-1").status == DocumentStatus.FAILED

    def test_disabled_providers_count_as_none(self) -> None:
        fake = FakeProviders()
        configs = [
            ProviderConfig(id="openai", kind="language-model", enabled=False,
                           credential="k"),
            ProviderConfig(id="google-vision", kind="vision-ocr"),
        ]
        result = _run(fake, _text_doc(), configs)
        assert result.error == "No AI provider configured"
        assert fake.requests == []

    def test_only_language_model_succeeds(self, llm_config: ProviderConfig) -> None:
        fake = FakeProviders(chat=chat_body(json.dumps({"fullName": "Ana Souza"})))
        result = _run(fake, _text_doc(), [llm_config])

        assert result.success is True
        assert result.confidence == 0.90
        assert result.provider_label == "OpenAI"
        assert result.values() == {"fullName": "Ana Souza"}

    def test_only_vision_succeeds(self, vision_config: ProviderConfig) -> None:
        fake = FakeProviders(vision=vision_body(RESUME_TEXT))
        result = _run(fake, _image_doc(), [vision_config])

        assert result.success is True
        assert result.confidence == 0.85
        assert result.provider_label == "Google Vision"
        assert result.values()["email"] == "ana@example.com"

    def test_language_model_wins_on_conflict(
        self, vision_config: ProviderConfig, llm_config: ProviderConfig
    ) -> None:
        fake = FakeProviders(
            vision=vision_body(RESUME_TEXT),
            chat=chat_body(json.dumps({"email": "llm@example.com", "skills": "SQL"})),
        )
        result = _run(fake, _image_doc(), [llm_config, vision_config])

        assert result.values()["email"] == "llm@example.com"
        assert result.values()["cpf"] == "123.456.789-00"
        assert result.values()["skills"] == "SQL"
        assert result.confidence == 0.90
        assert result.provider_label == "Google Vision + OpenAI"

    def test_language_model_reads_vision_text(
        self, vision_config: ProviderConfig, llm_config: ProviderConfig
    ) -> None:
        fake = FakeProviders(vision=vision_body(RESUME_TEXT), chat=chat_body("{}"))
        _run(fake, _image_doc(), [vision_config, llm_config])

        (request,) = fake.requests_to(OPENAI_HOST)
        messages = json.loads(request.content)["messages"]
        assert messages[1]["content"] == RESUME_TEXT

    def test_language_model_prefers_document_text(
        self, vision_config: ProviderConfig, llm_config: ProviderConfig
    ) -> None:
        fake = FakeProviders(vision=vision_body("scanned"), chat=chat_body("{}"))
        _run(fake, _image_doc(text="typed text"), [vision_config, llm_config])

        (request,) = fake.requests_to(OPENAI_HOST)
        assert json.loads(request.content)["messages"][1]["content"] == "typed text"

    def test_language_model_skipped_without_any_text(
        self, vision_config: ProviderConfig, llm_config: ProviderConfig
    ) -> None:
        fake = FakeProviders(vision=httpx.Response(500), chat=chat_body("{}"))
        result = _run(fake, _image_doc(), [vision_config, llm_config])

        assert fake.requests_to(OPENAI_HOST) == []
        assert result.success is False

    def test_pattern_fallback_when_all_providers_fail(
        self, vision_config: ProviderConfig, llm_config: ProviderConfig
    ) -> None:
        fake = FakeProviders(vision=httpx.Response(503), chat=httpx.Response(429))
        result = _run(fake, _image_doc(text=RESUME_TEXT), [vision_config, llm_config])

        assert result.success is True
        assert result.confidence == 0.5
        assert result.provider_label == FALLBACK_LABEL
        assert result.values()["email"] == "ana@example.com"

    def test_fallback_confidence_configurable(self, llm_config: ProviderConfig) -> None:
        fake = FakeProviders(chat=httpx.Response(500))
        result = _run(fake, _text_doc(), [llm_config], fallback_confidence=0.3)
        assert result.confidence == 0.3

    def test_vision_fields_survive_language_model_failure(
        self, vision_config: ProviderConfig, llm_config: ProviderConfig
    ) -> None:
        fake = FakeProviders(vision=vision_body("x@y.com"), chat=httpx.Response(500))
        result = _run(fake, _image_doc(), [vision_config, llm_config])
        assert result.success is True
        assert result.provider_label == "Google Vision"
        assert result.confidence == 0.85

    def test_nothing_extracted(self, llm_config: ProviderConfig) -> None:
        fake = FakeProviders(chat=httpx.Response(500))
        tracker = InMemoryLifecycleTracker()
        result = _run(fake, _text_doc("ok"), [llm_config], tracker)

        assert result.success is False
        assert result.error == "No data was extracted from the document"
        record = tracker.get("doc-1")
        assert record.status == DocumentStatus.FAILED
        assert record.error == result.error

    def test_slow_provider_does_not_block_others(
        self, vision_config: ProviderConfig, llm_config: ProviderConfig
    ) -> None:
        fake = FakeProviders(
            vision=vision_body(RESUME_TEXT),
            chat=chat_body(json.dumps({"fullName": "Ana Souza"})),
            delays={VISION_HOST: 2.0},
        )
        result = _run(
            fake,
            _image_doc(text=RESUME_TEXT),
            [vision_config, llm_config],
            provider_timeout_s=0.2,
        )
        assert result.success is True
        assert result.provider_label == "OpenAI"
        assert result.confidence == 0.90

    def test_completed_run_reported(self, llm_config: ProviderConfig) -> None:
        fake = FakeProviders(chat=chat_body(json.dumps({"email": "a@b.com"})))
        tracker = InMemoryLifecycleTracker()
        tracker.register("doc-1")
        _run(fake, _text_doc(), [llm_config], tracker)

        record = tracker.get("doc-1")
        assert record.history == [
            DocumentStatus.PENDING,
            DocumentStatus.PROCESSING,
            DocumentStatus.COMPLETED,
        ]
        assert record.data == {"email": "a@b.com"}
        assert record.confidence == 0.90
        assert record.provider_label == "OpenAI"

    def test_cancellation_leaves_run_processing(self, llm_config: ProviderConfig) -> None:
        fake = FakeProviders(chat=chat_body("{}"), delays={OPENAI_HOST: 5.0})
        tracker = InMemoryLifecycleTracker()

        async def run() -> None:
            async with fake.client() as client:
                orchestrator = ExtractionOrchestrator(
                    adapters=build_adapters(client=client), tracker=tracker
                )
                document = _text_doc()

                async def process() -> None:
                    with pytest.raises(CancellationError) as exc_info:
                        await orchestrator.process(document, [llm_config])
                    raised.append(exc_info.value)
                    raise exc_info.value

                task = asyncio.create_task(process())
                await asyncio.sleep(0.1)
                task.cancel()
                with pytest.raises(asyncio.CancelledError):
                    await task

        raised: list[CancellationError] = []
        asyncio.run(run())
        assert len(raised) == 1
        assert str(raised[0]) == "Processing of document doc-1 was cancelled"
        record = tracker.get("doc-1")
        assert record.status == DocumentStatus.PROCESSING
        assert record.history == [DocumentStatus.PROCESSING]

    def test_cancellation_error_is_cancelled_error(self) -> None:
        assert issubclass(CancellationError, asyncio.CancelledError)
