"""PDF to image conversion for the vision OCR provider.

Vision annotate requests take one image per request, so PDF uploads
are rendered page by page and re-encoded as PNG before sending.
"""

import io
from collections.abc import Iterator

from pdf2image import convert_from_bytes
from PIL import Image

from docfill.utils.logger import get_logger

logger = get_logger(__name__)


class PDFHandler:
    """Renders PDF documents to PNG page images.

    Args:
        dpi: Resolution for PDF rendering. Higher values produce
            better OCR results but larger request bodies.
        max_pages: Upper bound on rendered pages per document.
    """

    def __init__(self, dpi: int = 200, max_pages: int = 10) -> None:
        self.dpi = dpi
        self.max_pages = max_pages

    def pdf_to_png_pages(self, pdf_bytes: bytes) -> list[bytes]:
        """Convert raw PDF bytes to a list of PNG-encoded pages.

        Args:
            pdf_bytes: Raw PDF file content.

        Returns:
            PNG bytes for each rendered page, in page order.

        Raises:
            RuntimeError: If PDF conversion fails.
        """
        try:
            pil_images = convert_from_bytes(
                pdf_bytes, dpi=self.dpi, last_page=self.max_pages
            )
        except Exception as exc:
            raise RuntimeError(f"PDF conversion failed: {exc}") from exc

        pages = list(self._encode(pil_images))
        logger.info("Converted PDF to %d images at %d DPI", len(pages), self.dpi)
        return pages

    @staticmethod
    def _encode(images: list[Image.Image]) -> Iterator[bytes]:
        for image in images:
            buf = io.BytesIO()
            image.save(buf, format="PNG")
            yield buf.getvalue()
