from __future__ import annotations

import io

from docx import Document
from fastapi.testclient import TestClient
from pypdf import PdfReader
import pytest

from grantmaster.api.services import exporting
from grantmaster.export import ExportRenderError

DOCX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


def _export_body(export_format: str, title: str = "Rapid Sepsis Dx: Phase I") -> dict:
    return {
        "format": export_format,
        "content": {
            "title": title,
            "sections": [
                {"heading": "Specific Aims", "content": "Aim 1 validates the assay."},
                {"heading": "Research Strategy", "content": "Significance. Innovation. Approach."},
            ],
            "metadata": {"author": "Dr. Ada Moreno", "date": "2026-03-07", "type": "R43"},
        },
    }


def _grant_body(export_format: str, **options: object) -> dict:
    return {
        "grantPackage": {
            "title": "Rapid Sepsis Diagnostics",
            "principalInvestigator": "Dr. Ada Moreno",
            "institution": "Northfield Biotech",
            "fundingAgency": "NIH NIGMS",
            "sections": [
                {"id": "research_strategy", "title": "Research Strategy", "content": "Approach <b>details</b>."},
                {"id": "specific_aims", "title": "Specific Aims", "content": "x" * 3001},
            ],
        },
        "options": {
            "format": export_format,
            "includeTableOfContents": True,
            "includePageNumbers": False,
            "includeCoverPage": False,
            **options,
        },
    }


def test_export_pdf_returns_attachment_bytes(client: TestClient) -> None:
    response = client.post("/api/export", json=_export_body("pdf"))
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.headers["content-disposition"] == 'attachment; filename="Rapid_Sepsis_Dx__Phase_I.pdf"'
    reader = PdfReader(io.BytesIO(response.content))
    assert "Specific Aims" in reader.pages[0].extract_text()


def test_export_docx_returns_word_document(client: TestClient) -> None:
    response = client.post("/api/export", json=_export_body("docx"))
    assert response.status_code == 200
    assert response.headers["content-type"] == DOCX_CONTENT_TYPE
    assert response.headers["content-disposition"].endswith('.docx"')
    assert "x-google-docs-hint" not in response.headers
    document = Document(io.BytesIO(response.content))
    assert document.paragraphs[0].text == "Rapid Sepsis Dx: Phase I"


def test_export_gdocs_renders_docx_with_hint_header(client: TestClient) -> None:
    response = client.post("/api/export", json=_export_body("gdocs"))
    assert response.status_code == 200
    assert response.headers["content-type"] == DOCX_CONTENT_TYPE
    assert response.headers["x-google-docs-hint"] == "true"


def test_export_filename_is_sanitized_and_truncated(client: TestClient) -> None:
    response = client.post("/api/export", json=_export_body("pdf", title="A" * 40 + " / " + "B" * 40))
    expected_stem = ("A" * 40 + "___" + "B" * 40)[:50]
    assert response.headers["content-disposition"] == f'attachment; filename="{expected_stem}.pdf"'


def test_export_unknown_format_is_client_error_without_bytes(client: TestClient) -> None:
    response = client.post("/api/export", json=_export_body("xyz"))
    assert response.status_code == 400
    assert response.headers["content-type"].startswith("application/json")
    assert "Invalid format 'xyz'" in response.json()["detail"]


def test_export_rejects_malformed_content(client: TestClient) -> None:
    response = client.post("/api/export", json={"format": "pdf", "content": {"sections": []}})
    assert response.status_code == 422


def test_export_render_failure_returns_500(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    def failing_render(content):
        raise ExportRenderError("PDF rendering failed: boom")

    monkeypatch.setattr(exporting, "render_pdf", failing_render)
    response = client.post("/api/export", json=_export_body("pdf"))
    assert response.status_code == 500
    assert response.json() == {"detail": "Export failed"}


def test_export_grant_pdf_returns_html_document(client: TestClient) -> None:
    response = client.post("/api/export-grant", json=_grant_body("pdf", fontFamily="Times New Roman", fontSize=12))
    assert response.status_code == 200
    body = response.json()

    assert body["success"] is True
    assert body["format"] == "pdf"
    assert body["filename"] == "Rapid_Sepsis_Diagnostics.html"
    assert body["message"].startswith("HTML document ready for PDF conversion")
    assert body["stats"] == {"totalWordCount": 3, "estimatedPages": 3, "sectionCount": 2}
    assert body["validation"] == {
        "valid": False,
        "warnings": ["Specific Aims exceeds the 1 page limit (estimated 2 pages)"],
    }

    html_document = body["content"]
    assert "font-family: Times New Roman;" in html_document
    assert "font-size: 12pt;" in html_document
    assert "&lt;b&gt;details&lt;/b&gt;" in html_document
    # Missing orders fall back to the NIH sequence: Specific Aims before Research Strategy.
    assert html_document.index("<h1>Specific Aims</h1>") < html_document.index("<h1>Research Strategy</h1>")
    assert '<div class="page-break"' in html_document
    assert "counter(page)" not in html_document

    numbered = client.post("/api/export-grant", json=_grant_body("pdf", includePageNumbers=True)).json()
    assert "@bottom-center { content: counter(page); }" in numbered["content"]


def test_export_grant_docx_returns_markdown(client: TestClient) -> None:
    response = client.post("/api/export-grant", json=_grant_body("docx", includeCoverPage=True))
    assert response.status_code == 200
    body = response.json()
    assert body["format"] == "docx"
    assert body["filename"] == "Rapid_Sepsis_Diagnostics.md"
    assert body["message"] == "Markdown document ready for DOCX conversion."
    assert body["content"].startswith("# Rapid Sepsis Diagnostics\n")
    assert "**Institution:** Northfield Biotech" in body["content"]
    assert "\\newpage" not in body["content"]
    assert "1. Specific Aims\n2. Research Strategy" in body["content"]


def test_export_grant_rejects_unknown_format_and_unsafe_font(client: TestClient) -> None:
    response = client.post("/api/export-grant", json=_grant_body("gdocs"))
    assert response.status_code == 400

    response = client.post("/api/export-grant", json=_grant_body("pdf", fontFamily="Arial; } body { color: red"))
    assert response.status_code == 422
