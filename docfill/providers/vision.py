"""Google Vision document text detection adapter.

Sends each image (or rendered PDF page) as one annotate request and
funnels the recognized text through the pattern extractor, since
the provider has no notion of named fields.
"""

import asyncio
import base64

from docfill.extraction.errors import ProviderError
from docfill.extraction.models import Document, PartialResult
from docfill.ocr.pdf_handler import PDFHandler
from docfill.utils.config import ProviderConfig, ProviderKind
from docfill.utils.logger import get_logger

from .base import ProviderAdapter

logger = get_logger(__name__)

_FEATURE = {"type": "DOCUMENT_TEXT_DETECTION", "maxResults": 1}


class VisionOCRAdapter(ProviderAdapter):
    """Full-document OCR through the Vision ``images:annotate`` endpoint."""

    kind = ProviderKind.VISION_OCR
    label = "Google Vision"
    confidence = 0.85
    default_base_url = "https://vision.googleapis.com/v1"

    def __init__(self, *args, pdf_handler: PDFHandler | None = None, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.pdf_handler = pdf_handler or PDFHandler()

    async def _invoke(self, payload: Document, config: ProviderConfig) -> PartialResult:
        if not payload.content:
            raise ProviderError(self.label, "document has no image content")

        images = await self._images(payload)
        body = {
            "requests": [
                {
                    "image": {"content": base64.b64encode(image).decode("ascii")},
                    "features": [_FEATURE],
                }
                for image in images
            ]
        }
        data = await self._post_json(
            f"{self.base_url}/images:annotate",
            body,
            params={"key": config.credential.get_secret_value()},
        )

        text = self._full_text(data)
        logger.debug("Vision returned %d characters for %s", len(text), payload.filename)
        return self._succeeded(self.extractor.extract(text), raw_text=text)

    async def _check(self, config: ProviderConfig) -> bool:
        # An empty image is rejected with 400; only auth failures mean a bad key.
        body = {
            "requests": [
                {
                    "image": {"content": ""},
                    "features": [{"type": "TEXT_DETECTION", "maxResults": 1}],
                }
            ]
        }
        async with self._http() as client:
            response = await client.post(
                f"{self.base_url}/images:annotate",
                json=body,
                params={"key": config.credential.get_secret_value()},
            )
        return response.status_code not in (401, 403)

    async def _images(self, document: Document) -> list[bytes]:
        if not document.is_pdf:
            return [document.content]
        try:
            pages = await asyncio.to_thread(
                self.pdf_handler.pdf_to_png_pages, document.content
            )
        except RuntimeError as exc:
            raise ProviderError(self.label, str(exc)) from exc
        if not pages:
            raise ProviderError(self.label, "PDF has no pages")
        return pages

    def _full_text(self, data: dict) -> str:
        """Join page texts from an annotate response.

        Raises:
            ProviderError: If no page carries any text.
        """
        texts: list[str] = []
        errors: list[str] = []
        for response in data.get("responses") or []:
            if response.get("error"):
                errors.append(response["error"].get("message", "unknown error"))
            text = (response.get("fullTextAnnotation") or {}).get("text")
            if text:
                texts.append(text)

        if not texts:
            reason = errors[0] if errors else "No text found in document"
            raise ProviderError(self.label, reason)
        return "\n\n".join(texts)
