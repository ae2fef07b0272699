from __future__ import annotations

import io
import logging

from docx import Document
from docx.enum.section import WD_ORIENT
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Inches, Pt

from grantmaster.export.models import ExportContent, ExportRenderError

logger = logging.getLogger("grantmaster.export")

DOCX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


def split_paragraphs(text: str) -> list[str]:
    return [block.strip() for block in text.split("\n\n") if block.strip()]


def _set_page_layout(document: Document) -> None:
    for section in document.sections:
        section.orientation = WD_ORIENT.PORTRAIT
        section.page_width = Inches(8.5)
        section.page_height = Inches(11)
        section.top_margin = Inches(1)
        section.bottom_margin = Inches(1)
        section.left_margin = Inches(1)
        section.right_margin = Inches(1)


def render_docx(content: ExportContent) -> bytes:
    try:
        document = Document()
        _set_page_layout(document)
        if content.metadata and content.metadata.author:
            document.core_properties.author = content.metadata.author
        document.core_properties.title = content.title

        title = document.add_paragraph(style="Title")
        title.alignment = WD_ALIGN_PARAGRAPH.CENTER
        title.paragraph_format.space_after = Pt(20)
        title_run = title.add_run(content.title)
        title_run.bold = True
        title_run.font.size = Pt(16)

        metadata = content.metadata
        if metadata is not None:
            lines = [
                f"{label}: {value}"
                for label, value in (("Author", metadata.author), ("Date", metadata.date), ("Type", metadata.type))
                if value
            ]
            for index, line in enumerate(lines):
                paragraph = document.add_paragraph()
                paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER
                if index == len(lines) - 1:
                    paragraph.paragraph_format.space_after = Pt(20)
                run = paragraph.add_run(line)
                run.italic = True
                run.font.size = Pt(11)

        for section in content.sections:
            heading = document.add_paragraph(style="Heading 1")
            heading.paragraph_format.space_before = Pt(15)
            heading.paragraph_format.space_after = Pt(10)
            heading_run = heading.add_run(section.heading)
            heading_run.bold = True
            heading_run.font.size = Pt(13)

            for block in split_paragraphs(section.content):
                paragraph = document.add_paragraph()
                paragraph.paragraph_format.space_after = Pt(10)
                run = paragraph.add_run(block)
                run.font.size = Pt(12)

        buffer = io.BytesIO()
        document.save(buffer)
    except Exception as exc:
        raise ExportRenderError(f"DOCX rendering failed: {exc}") from exc

    logger.info(
        "docx_rendered",
        extra={"event": "docx_rendered", "section_count": len(content.sections)},
    )
    return buffer.getvalue()
