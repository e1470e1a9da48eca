"""
File Transforms
Content transforms applied before a file version is stored
"""

import asyncio
import io
from typing import Protocol

from pypdf import PdfReader, PdfWriter
from pypdf.errors import PdfReadError
from reportlab.lib.colors import Color
from reportlab.pdfgen import canvas

from sharegate.core.exceptions import ValidationException
from sharegate.core.logging import get_logger

logger = get_logger(__name__)


class FileTransform(Protocol):
    """Rewrites file bytes, e.g. to stamp a watermark"""

    async def apply(self, data: bytes, mime_type: str, label: str) -> bytes:
        ...


class PdfWatermarkTransform:
    """Stamp a diagonal text label on every page of a PDF"""

    def __init__(self, font_size: int = 36, opacity: float = 0.18):
        self.font_size = font_size
        self.opacity = opacity

    def _overlay(self, width: float, height: float, label: str) -> bytes:
        buffer = io.BytesIO()
        c = canvas.Canvas(buffer, pagesize=(width, height))
        c.setFillColor(Color(0.8, 0.1, 0.1, alpha=self.opacity))
        c.setFont("Helvetica-Bold", self.font_size)
        c.translate(width / 2, height / 2)
        c.rotate(35)
        c.drawCentredString(0, 0, label)
        c.save()
        return buffer.getvalue()

    def _stamp(self, data: bytes, label: str) -> bytes:
        try:
            reader = PdfReader(io.BytesIO(data))
            writer = PdfWriter()
            for page in reader.pages:
                width = float(page.mediabox.width)
                height = float(page.mediabox.height)
                stamp = PdfReader(io.BytesIO(self._overlay(width, height, label))).pages[0]
                page.merge_page(stamp)
                writer.add_page(page)
        except PdfReadError as e:
            raise ValidationException(message="File is not a readable PDF", details={"error": str(e)})

        out = io.BytesIO()
        writer.write(out)
        return out.getvalue()

    async def apply(self, data: bytes, mime_type: str, label: str) -> bytes:
        if mime_type != "application/pdf":
            raise ValidationException(
                message="Only PDF files can be watermarked",
                details={"mime_type": mime_type},
            )
        stamped = await asyncio.to_thread(self._stamp, data, label)
        logger.debug(f"Watermarked PDF ({len(data)} -> {len(stamped)} bytes)")
        return stamped
