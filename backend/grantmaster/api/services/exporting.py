from __future__ import annotations

import logging

from grantmaster.config import settings
from grantmaster.export import assemble_grant_document, format_for_export, render_docx, render_html_document, render_pdf
from grantmaster.export.docx_renderer import DOCX_CONTENT_TYPE
from grantmaster.export.models import ExportContent, ExportOptions, GrantPackage
from grantmaster.policy import sanitize_filename_stem, underscore_whitespace

logger = logging.getLogger("grantmaster.api")

EXPORT_FORMATS = ("pdf", "docx", "gdocs")
GRANT_EXPORT_FORMATS = ("pdf", "docx")

_PDF_MESSAGE = "HTML document ready for PDF conversion. Use browser print or a PDF library."
_DOCX_MESSAGE = "Markdown document ready for DOCX conversion."


class UnsupportedExportFormat(ValueError):
    def __init__(self, export_format: str, supported: tuple[str, ...]) -> None:
        super().__init__(f"Invalid format '{export_format}'. Expected one of: {', '.join(supported)}.")
        self.export_format = export_format


def render_export_file(export_format: str, content: ExportContent) -> tuple[bytes, str, str]:
    """Render ``content`` to a downloadable file.

    Returns ``(body, content_type, filename)``. ``gdocs`` renders the DOCX file;
    Google Docs import is left to the client.
    """
    normalized = export_format.strip().lower()
    stem = sanitize_filename_stem(content.title)
    if normalized == "pdf":
        return render_pdf(content), "application/pdf", f"{stem}.pdf"
    if normalized in {"docx", "gdocs"}:
        return render_docx(content), DOCX_CONTENT_TYPE, f"{stem}.docx"
    raise UnsupportedExportFormat(export_format, EXPORT_FORMATS)


def build_grant_export_payload(package: GrantPackage, options: ExportOptions) -> dict[str, object]:
    export_format = options.format
    if export_format not in GRANT_EXPORT_FORMATS:
        raise UnsupportedExportFormat(str(export_format), GRANT_EXPORT_FORMATS)

    assembled = assemble_grant_document(package, options)
    formatted = format_for_export(assembled.markup, export_format)
    stem = underscore_whitespace(package.title)

    if export_format == "pdf":
        content = render_html_document(
            title=package.title,
            body=formatted,
            font_family=options.font_family or settings.export_default_font_family,
            font_size=options.font_size or settings.export_default_font_size,
            include_page_numbers=options.include_page_numbers,
        )
        filename = f"{stem}.html"
        message = _PDF_MESSAGE
    else:
        content = formatted
        filename = f"{stem}.md"
        message = _DOCX_MESSAGE

    logger.info(
        "grant_package_assembled",
        extra={
            "event": "grant_package_assembled",
            "format": export_format,
            "section_count": len(assembled.sections),
            "total_word_count": assembled.total_word_count,
            "estimated_pages": assembled.estimated_pages,
            "limit_warning_count": len(assembled.limit_report.warnings),
        },
    )
    return {
        "success": True,
        "format": export_format,
        "content": content,
        "filename": filename,
        "stats": {
            "totalWordCount": assembled.total_word_count,
            "estimatedPages": assembled.estimated_pages,
            "sectionCount": len(assembled.sections),
        },
        "validation": {
            "valid": assembled.limit_report.valid,
            "warnings": list(assembled.limit_report.warnings),
        },
        "message": message,
    }
