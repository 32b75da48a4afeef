"""Error kinds raised inside the extraction pipeline."""

import asyncio


class PipelineError(Exception):
    """Base class for pipeline errors that end up as a run's message."""


class ConfigurationError(PipelineError):
    """No provider is enabled with a usable credential."""

    def __init__(self, message: str = "No AI provider configured") -> None:
        super().__init__(message)


class ProviderError(PipelineError):
    """A single provider call failed; recoverable at the orchestrator level."""

    def __init__(self, provider_label: str, message: str) -> None:
        super().__init__(f"{provider_label}: {message}")
        self.provider_label = provider_label
        self.reason = message


class NoDataExtractedError(PipelineError):
    """Neither the providers nor the pattern fallback produced any field."""

    def __init__(self, message: str = "No data was extracted from the document") -> None:
        super().__init__(message)


class CancellationError(asyncio.CancelledError):
    """The caller cancelled a run while provider calls were in flight."""
