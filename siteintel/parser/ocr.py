"""OCR collaborator: recognises text in page screenshots.

The pipeline depends on the :class:`OcrClient` protocol only.  OCR output is
an optional signal source; a failing client never fails a crawl.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Protocol

import httpx

from siteintel.config import settings
from siteintel.crawler.models import PageSnapshot
from siteintel.errors import CollaboratorError

logger = logging.getLogger(__name__)

MIN_CONFIDENCE = 0.5


@dataclass
class TextBlock:
    text: str
    confidence: float = 1.0
    type: str = "paragraph"


class OcrClient(Protocol):
    def extract_blocks(self, image_bytes: bytes, page_url: str) -> list[TextBlock]:
        ...


class HttpOcrClient:
    """Posts a screenshot to an OCR service and reads ``{"textBlocks": [...]}``."""

    def __init__(self, base_url: str | None = None, timeout: float | None = None) -> None:
        self.base_url = base_url or settings.ocr_service_url
        self.timeout = timeout or settings.request_timeout
        if not self.base_url:
            raise CollaboratorError("OCR_SERVICE_URL is not configured")

    def extract_blocks(self, image_bytes: bytes, page_url: str) -> list[TextBlock]:
        try:
            response = httpx.post(
                self.base_url,
                files={"image": ("screenshot.png", image_bytes, "image/png")},
                data={"pageUrl": page_url},
                timeout=self.timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise CollaboratorError(f"OCR request for {page_url} failed: {exc}") from exc

        return [
            TextBlock(
                text=str(block.get("text", "")),
                confidence=float(block.get("confidence", 0.0)),
                type=str(block.get("type", "paragraph")),
            )
            for block in payload.get("textBlocks", [])
            if isinstance(block, dict)
        ]


def ocr_pages(client: OcrClient, pages: Iterable[PageSnapshot]) -> list[TextBlock]:
    """Run *client* over every page that carries a screenshot.

    Blocks below :data:`MIN_CONFIDENCE` or without text are dropped.

    Raises:
        CollaboratorError: If the client fails on any page.
    """
    blocks: list[TextBlock] = []
    for page in pages:
        if not page.screenshot:
            continue
        try:
            found = client.extract_blocks(page.screenshot, page.url)
        except CollaboratorError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise CollaboratorError(f"OCR failed on {page.url}: {exc}") from exc
        kept = [b for b in found if b.text.strip() and b.confidence >= MIN_CONFIDENCE]
        logger.info("[PARSE] OCR %s: %d block(s)", page.url, len(kept))
        blocks.extend(kept)
    return blocks


def blocks_to_text(blocks: Iterable[TextBlock]) -> str:
    return " ".join(block.text.strip() for block in blocks if block.text.strip())
