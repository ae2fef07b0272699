from grantmaster.export.assembler import PAGE_BREAK_MARKER, assemble_grant_document, check_section_limits
from grantmaster.export.docx_renderer import render_docx
from grantmaster.export.formatters import format_for_export, render_html_document
from grantmaster.export.models import ExportRenderError
from grantmaster.export.pdf_renderer import render_pdf

__all__ = [
    "PAGE_BREAK_MARKER",
    "ExportRenderError",
    "assemble_grant_document",
    "check_section_limits",
    "format_for_export",
    "render_docx",
    "render_html_document",
    "render_pdf",
]
