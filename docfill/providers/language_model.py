"""OpenAI chat-completions adapter for structured field extraction.

Asks the model for a flat JSON object of named fields. Answers that
are not valid JSON are treated as free text and run through the
pattern extractor instead.
"""

import json
import re
from typing import Any

from docfill.extraction.errors import ProviderError
from docfill.extraction.models import ExtractedField, FieldMap, PartialResult
from docfill.utils.config import ProviderConfig, ProviderKind
from docfill.utils.logger import get_logger

from .base import ProviderAdapter

logger = get_logger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"
TEMPERATURE = 0.1

SYSTEM_PROMPT = (
    "You are an expert at extracting data from HR documents. "
    "Extract structured information from the text provided and return ONLY a "
    "valid JSON object. Focus on data such as: full name (fullName), email, "
    "phone, CPF (cpf), address, position, experience, salary, education, "
    "skills. Return only the JSON, without explanations."
)

_CODE_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


class LanguageModelAdapter(ProviderAdapter):
    """Structured extraction through an OpenAI-compatible chat endpoint."""

    kind = ProviderKind.LANGUAGE_MODEL
    label = "OpenAI"
    confidence = 0.90
    default_base_url = "https://api.openai.com/v1"

    async def _invoke(self, payload: str, config: ProviderConfig) -> PartialResult:
        if not payload or not payload.strip():
            raise ProviderError(self.label, "no text available to analyze")

        body = {
            "model": config.model_hint or DEFAULT_MODEL,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": payload},
            ],
            "temperature": TEMPERATURE,
        }
        data = await self._post_json(
            f"{self.base_url}/chat/completions", body, headers=self._headers(config)
        )

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ProviderError(self.label, "unexpected response shape") from exc
        if not content:
            raise ProviderError(self.label, "empty response content")

        return self._succeeded(self.parse_content(content))

    async def _check(self, config: ProviderConfig) -> bool:
        async with self._http() as client:
            response = await client.get(
                f"{self.base_url}/models", headers=self._headers(config)
            )
        return response.is_success

    def parse_content(self, content: str) -> FieldMap:
        """Turn the model's message content into a field mapping.

        Args:
            content: Message text returned by the model.

        Returns:
            Flattened fields from the JSON object, or pattern-extracted
            fields when the content is not a JSON object.
        """
        text = content.strip()
        fenced = _CODE_FENCE.match(text)
        if fenced:
            text = fenced.group(1)

        try:
            parsed = json.loads(text)
        except ValueError:
            parsed = None

        if not isinstance(parsed, dict):
            logger.info(
                "%s answer is not a JSON object, using pattern extraction", self.label
            )
            return self.extractor.extract(content)

        fields: FieldMap = {}
        for key, value in parsed.items():
            flat = _flatten(value)
            if flat is not None:
                fields[str(key)] = ExtractedField(key=str(key), value=flat)
        return fields

    @staticmethod
    def _headers(config: ProviderConfig) -> dict[str, str]:
        return {"Authorization": f"Bearer {config.credential.get_secret_value()}"}


def _flatten(value: Any) -> str | int | float | bool | None:
    """Reduce a JSON value to a scalar field value.

    ``null`` is dropped, lists of scalars are joined with commas and
    anything nested is kept as compact JSON.
    """
    if value is None:
        return None
    if isinstance(value, str | int | float | bool):
        return value
    if isinstance(value, list) and all(
        isinstance(item, str | int | float | bool) for item in value
    ):
        return ", ".join(str(item) for item in value)
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
