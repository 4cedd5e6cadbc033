"""
Download PDFs from storage and extract their text
"""
import io
import logging
import re
from typing import Optional

import httpx
from pypdf import PdfReader
from pypdf.errors import PdfReadError as PypdfReadError
from starlette.concurrency import run_in_threadpool

from app.core.config import settings

logger = logging.getLogger(__name__)

MAX_PDF_BYTES = 10 * 1024 * 1024


class PDFReadError(Exception):
    """PDF could not be downloaded or parsed"""


class PDFReader:
    """Fetch a stored PDF and turn it into prompt-ready text"""

    def __init__(self, timeout: Optional[float] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.http_client = httpx.AsyncClient(
            timeout=timeout or settings.PDF_DOWNLOAD_TIMEOUT_SECONDS,
            transport=transport,
            follow_redirects=True
        )

    async def close(self):
        await self.http_client.aclose()

    async def download_pdf(self, url: str) -> bytes:
        try:
            response = await self.http_client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise PDFReadError(f"Failed to download PDF: {e}") from e

        content = response.content
        if len(content) > MAX_PDF_BYTES:
            raise PDFReadError("Failed to download PDF: PDF file size exceeds 10MB limit")
        if not content:
            raise PDFReadError("Failed to download PDF: PDF file is empty")
        return content

    @staticmethod
    def _extract(content: bytes) -> str:
        try:
            reader = PdfReader(io.BytesIO(content))
            pages = [page.extract_text() or "" for page in reader.pages]
        except (PypdfReadError, ValueError) as e:
            raise PDFReadError(f"Failed to parse PDF: {e}") from e
        return "\n".join(pages)

    async def extract_text(self, content: bytes) -> str:
        """Plain text with whitespace collapsed"""
        text = await run_in_threadpool(self._extract, content)
        cleaned = clean_text(text)
        if not cleaned:
            logger.warning("PDF contains no extractable text")
        return cleaned

    async def read_url(self, url: str) -> str:
        return await self.extract_text(await self.download_pdf(url))


def clean_text(text: str) -> str:
    return re.sub(r"\s+", " ", text or "").strip()


def text_summary(text: str) -> dict:
    """Text plus word and sentence-line counts for the read-pdf endpoint"""
    lines = [line for line in text.split(". ") if line.strip()]
    return {
        "text": text,
        "word_count": len(text.split()) if text else 0,
        "line_count": len(lines),
    }


pdf_reader = PDFReader()
