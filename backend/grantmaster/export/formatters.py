from __future__ import annotations

import html
import re

from grantmaster.export.assembler import PAGE_BREAK_MARKER
from grantmaster.export.models import ExportFormat

PAGE_BREAK_HTML = '<div class="page-break" style="page-break-after: always;"></div>'
MARKDOWN_PAGE_BREAK = "\n---\n"
PAGE_NUMBER_RULE = " @bottom-center { content: counter(page); }"

_BOLD_PATTERN = re.compile(r"\*\*(.+?)\*\*")
_ITALIC_PATTERN = re.compile(r"\*(.+?)\*")
_HEADING_PATTERN = re.compile(r"^(#{1,2})\s+(.*)$")

_HTML_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
  <meta charset="UTF-8">
  <title>{title}</title>
  <style>
    body {{
      font-family: {font_family};
      font-size: {font_size}pt;
      line-height: 1.5;
      max-width: 8.5in;
      margin: 1in auto;
      padding: 0 0.5in;
    }}
    h1 {{ font-size: 14pt; margin-top: 24pt; margin-bottom: 12pt; }}
    h2 {{ font-size: 12pt; margin-top: 18pt; margin-bottom: 9pt; }}
    p {{ margin-bottom: 12pt; text-align: justify; }}
    .page-break {{ page-break-after: always; }}
    @page {{ size: letter; margin: 1in;{page_number_rule} }}
    @media print {{
      body {{ margin: 0; padding: 0; }}
    }}
  </style>
</head>
<body>
{body}
</body>
</html>
"""


def render_inline(text: str) -> str:
    escaped = html.escape(text, quote=False)
    escaped = _BOLD_PATTERN.sub(r"<strong>\1</strong>", escaped)
    return _ITALIC_PATTERN.sub(r"<em>\1</em>", escaped)


def markup_to_html(markup: str) -> str:
    blocks: list[str] = []
    paragraph: list[str] = []

    def flush() -> None:
        if paragraph:
            blocks.append("<p>" + "<br>\n".join(render_inline(line) for line in paragraph) + "</p>")
            paragraph.clear()

    for raw_line in markup.splitlines():
        line = raw_line.rstrip()
        stripped = line.strip()
        if not stripped:
            flush()
            continue
        if stripped == PAGE_BREAK_MARKER:
            flush()
            blocks.append(PAGE_BREAK_HTML)
            continue
        if stripped == "---":
            flush()
            blocks.append("<hr>")
            continue
        heading = _HEADING_PATTERN.match(stripped)
        if heading:
            flush()
            level = len(heading.group(1))
            blocks.append(f"<h{level}>{render_inline(heading.group(2))}</h{level}>")
            continue
        paragraph.append(line)
    flush()
    return "\n".join(blocks)


def markup_to_markdown(markup: str) -> str:
    return markup.replace(PAGE_BREAK_MARKER, MARKDOWN_PAGE_BREAK)


def format_for_export(markup: str, export_format: ExportFormat) -> str:
    if export_format == "pdf":
        return markup_to_html(markup)
    if export_format == "docx":
        return markup_to_markdown(markup)
    raise ValueError(f"Unsupported export format '{export_format}'.")


def render_html_document(
    *,
    title: str,
    body: str,
    font_family: str,
    font_size: int,
    include_page_numbers: bool = False,
) -> str:
    return _HTML_TEMPLATE.format(
        title=html.escape(title),
        font_family=font_family,
        font_size=font_size,
        page_number_rule=PAGE_NUMBER_RULE if include_page_numbers else "",
        body=body,
    )
