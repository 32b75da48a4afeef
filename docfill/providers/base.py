"""Common request handling for remote AI provider adapters.

Every adapter returns a :class:`PartialResult`. Transport errors,
non-2xx statuses, malformed bodies and timeouts all become a failed
result at this boundary instead of propagating to the orchestrator.
"""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import httpx

from docfill.extraction.errors import ProviderError
from docfill.extraction.models import PartialResult
from docfill.extraction.pattern_extractor import PatternExtractor
from docfill.utils.config import ProviderConfig, ProviderKind
from docfill.utils.logger import get_logger, redact

logger = get_logger(__name__)


class ProviderAdapter(ABC):
    """Base class for one kind of remote extraction provider.

    Subclasses declare ``kind``, a human-readable ``label`` and the
    fixed ``confidence`` reported on success, and implement
    :meth:`_invoke` and :meth:`_check`.

    Args:
        client: Shared HTTP client. If ``None``, a client is opened and
            closed around each call.
        extractor: Pattern extractor used to normalize free text.
        base_url: Override for the provider's API root.
    """

    kind: ProviderKind
    label: str
    confidence: float
    default_base_url: str

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        extractor: PatternExtractor | None = None,
        base_url: str | None = None,
    ) -> None:
        self._client = client
        self.extractor = extractor or PatternExtractor()
        self.base_url = (base_url or self.default_base_url).rstrip("/")

    async def invoke(
        self, payload: Any, config: ProviderConfig, timeout: float
    ) -> PartialResult:
        """Call the provider and normalize its answer.

        Args:
            payload: Provider-specific input (document or text).
            config: Provider credentials and options.
            timeout: Seconds this call may take in total.

        Returns:
            A succeeded result with this adapter's confidence, or a
            failed result carrying the error message.
        """
        try:
            result = await asyncio.wait_for(self._invoke(payload, config), timeout)
        except TimeoutError:
            return self._failed(f"timed out after {timeout:g}s")
        except ProviderError as exc:
            return self._failed(exc.reason)
        except httpx.HTTPError as exc:
            return self._failed(f"request failed: {str(exc) or type(exc).__name__}")
        except Exception as exc:
            logger.exception("Unexpected error from %s", self.label)
            return self._failed(str(exc) or type(exc).__name__)

        logger.info("%s extracted %d fields", self.label, len(result.fields))
        return result

    async def check_connection(self, config: ProviderConfig, timeout: float = 10.0) -> bool:
        """Report whether the provider accepts the configured credential."""
        try:
            return await asyncio.wait_for(self._check(config), timeout)
        except (TimeoutError, httpx.HTTPError) as exc:
            logger.warning("%s connection check failed: %s", self.label, redact(str(exc)))
            return False

    @abstractmethod
    async def _invoke(self, payload: Any, config: ProviderConfig) -> PartialResult: ...

    @abstractmethod
    async def _check(self, config: ProviderConfig) -> bool: ...

    def _succeeded(self, fields: dict, raw_text: str | None = None) -> PartialResult:
        return PartialResult(
            provider_label=self.label,
            fields=fields,
            confidence=self.confidence,
            succeeded=True,
            raw_text=raw_text,
        )

    def _failed(self, message: str) -> PartialResult:
        message = redact(message)
        logger.warning("%s failed: %s", self.label, message)
        return PartialResult.failure(self.label, message)

    @asynccontextmanager
    async def _http(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        # Calls are bounded by wait_for in invoke, not by httpx defaults.
        async with httpx.AsyncClient(timeout=None) as client:
            yield client

    async def _post_json(
        self,
        url: str,
        body: dict[str, Any],
        headers: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """POST a JSON body and return the decoded JSON response.

        Raises:
            ProviderError: On a non-2xx status or a non-JSON body.
        """
        async with self._http() as client:
            response = await client.post(url, json=body, headers=headers, params=params)
        return self._decode(response)

    def _decode(self, response: httpx.Response) -> dict[str, Any]:
        if not response.is_success:
            raise ProviderError(
                self.label,
                f"HTTP {response.status_code} {response.reason_phrase}".strip(),
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderError(self.label, "response body is not valid JSON") from exc
        if not isinstance(data, dict):
            raise ProviderError(self.label, "response body is not a JSON object")
        return data
