"""Fixed-layout PDF rendering for ad-hoc document export.

Pages are US Letter with 1in margins. The renderer keeps a top-down cursor (``y``
is the baseline offset from the top edge of the page) and starts a new page
whenever the next line would cross the bottom margin. Text is wrapped against the
measured width of the active font, so wrapping matches what reportlab draws.
"""

from __future__ import annotations

import io
import logging

from reportlab.lib.pagesizes import letter
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from grantmaster.export.models import ExportContent, ExportRenderError

logger = logging.getLogger("grantmaster.export")

MARGIN = 72.0
TITLE_FONT = ("Helvetica-Bold", 18.0)
TITLE_LINE_HEIGHT = 22.0
META_FONT = ("Helvetica-Oblique", 10.0)
META_LINE_HEIGHT = 14.0
HEADING_FONT = ("Helvetica-Bold", 14.0)
HEADING_ADVANCE = 20.0
BODY_FONT = ("Helvetica", 11.0)
BODY_LINE_HEIGHT = 14.0
SECTION_GAP = 15.0
# A heading block needs room for itself plus a few body lines before the bottom margin.
HEADING_KEEP_WITH_NEXT = 50.0


def wrap_text(text: str, *, font_name: str, font_size: float, max_width: float) -> list[str]:
    """Split ``text`` into lines no wider than ``max_width`` points.

    Explicit newlines are kept as line breaks; a blank source line yields an empty
    output line. Words wider than the line are broken by character.
    """
    lines: list[str] = []
    for source_line in text.splitlines() or [""]:
        words = source_line.split()
        if not words:
            lines.append("")
            continue
        current = ""
        for word in words:
            candidate = f"{current} {word}" if current else word
            if stringWidth(candidate, font_name, font_size) <= max_width:
                current = candidate
                continue
            if current:
                lines.append(current)
                current = ""
            while stringWidth(word, font_name, font_size) > max_width:
                cut = _fitting_prefix_length(word, font_name=font_name, font_size=font_size, max_width=max_width)
                lines.append(word[:cut])
                word = word[cut:]
            current = word
        if current:
            lines.append(current)
    return lines


def _fitting_prefix_length(word: str, *, font_name: str, font_size: float, max_width: float) -> int:
    length = 1
    while length < len(word) and stringWidth(word[: length + 1], font_name, font_size) <= max_width:
        length += 1
    return length


class PdfPageWriter:
    def __init__(self, pdf: canvas.Canvas, *, page_width: float, page_height: float, margin: float) -> None:
        self._pdf = pdf
        self.page_width = page_width
        self.page_height = page_height
        self.margin = margin
        self.y = margin
        self.page_count = 1

    @property
    def max_width(self) -> float:
        return self.page_width - self.margin * 2

    @property
    def bottom(self) -> float:
        return self.page_height - self.margin

    @property
    def printable_height(self) -> float:
        return self.bottom - self.margin

    def new_page(self) -> None:
        self._pdf.showPage()
        self.page_count += 1
        self.y = self.margin

    def ensure_room(self, reserve: float = 0.0) -> None:
        if self.y > self.bottom - reserve:
            self.new_page()

    def draw_left(self, text: str, font: tuple[str, float]) -> None:
        self._pdf.setFont(*font)
        self._pdf.drawString(self.margin, self.page_height - self.y, text)

    def draw_centered(self, text: str, font: tuple[str, float]) -> None:
        self._pdf.setFont(*font)
        self._pdf.drawCentredString(self.page_width / 2, self.page_height - self.y, text)


def render_pdf(content: ExportContent) -> bytes:
    buffer = io.BytesIO()
    page_width, page_height = letter
    try:
        pdf = canvas.Canvas(buffer, pagesize=letter)
        pdf.setTitle(content.title)
        if content.metadata and content.metadata.author:
            pdf.setAuthor(content.metadata.author)
        writer = PdfPageWriter(pdf, page_width=page_width, page_height=page_height, margin=MARGIN)

        title_lines = wrap_text(
            content.title,
            font_name=TITLE_FONT[0],
            font_size=TITLE_FONT[1],
            max_width=writer.max_width,
        )
        for line in title_lines:
            writer.ensure_room()
            writer.draw_centered(line, TITLE_FONT)
            writer.y += TITLE_LINE_HEIGHT
        writer.y += 20

        metadata = content.metadata
        if metadata is not None:
            for label, value in (("Author", metadata.author), ("Date", metadata.date), ("Type", metadata.type)):
                if value:
                    writer.ensure_room()
                    writer.draw_centered(f"{label}: {value}", META_FONT)
                    writer.y += META_LINE_HEIGHT
            writer.y += 20

        for section in content.sections:
            heading_lines = wrap_text(
                section.heading,
                font_name=HEADING_FONT[0],
                font_size=HEADING_FONT[1],
                max_width=writer.max_width,
            )
            heading_height = len(heading_lines) * HEADING_ADVANCE
            writer.ensure_room(min(heading_height + HEADING_KEEP_WITH_NEXT, writer.printable_height))
            for line in heading_lines:
                writer.ensure_room()
                writer.draw_left(line, HEADING_FONT)
                writer.y += HEADING_ADVANCE

            body_lines = wrap_text(
                section.content,
                font_name=BODY_FONT[0],
                font_size=BODY_FONT[1],
                max_width=writer.max_width,
            )
            for line in body_lines:
                writer.ensure_room()
                if line:
                    writer.draw_left(line, BODY_FONT)
                writer.y += BODY_LINE_HEIGHT
            writer.y += SECTION_GAP

        pdf.save()
    except Exception as exc:
        raise ExportRenderError(f"PDF rendering failed: {exc}") from exc

    logger.info(
        "pdf_rendered",
        extra={
            "event": "pdf_rendered",
            "page_count": writer.page_count,
            "section_count": len(content.sections),
        },
    )
    return buffer.getvalue()
