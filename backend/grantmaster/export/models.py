from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

ExportFormat = Literal["pdf", "docx"]


@dataclass
class GrantSection:
    id: str
    title: str
    content: str
    order: int
    word_count: int | None = None


@dataclass
class GrantPackage:
    title: str
    sections: list[GrantSection]
    application_id: str = ""
    principal_investigator: str = ""
    institution: str = ""
    funding_agency: str = ""
    created_at: str = ""
    updated_at: str = ""


@dataclass(frozen=True)
class ExportOptions:
    format: ExportFormat = "pdf"
    include_table_of_contents: bool = False
    include_page_numbers: bool = False
    include_cover_page: bool = False
    font_family: str | None = None
    font_size: int | None = None


@dataclass(frozen=True)
class SectionLimitReport:
    valid: bool
    warnings: list[str]


@dataclass(frozen=True)
class AssembledDocument:
    markup: str
    sections: list[GrantSection]
    total_word_count: int
    estimated_pages: int
    limit_report: SectionLimitReport


@dataclass(frozen=True)
class ExportSection:
    heading: str
    content: str


@dataclass(frozen=True)
class ExportMetadata:
    author: str | None = None
    date: str | None = None
    type: str | None = None


@dataclass(frozen=True)
class ExportContent:
    title: str
    sections: list[ExportSection] = field(default_factory=list)
    metadata: ExportMetadata | None = None


class ExportRenderError(RuntimeError):
    """Raised when a document renderer fails; no partial output is returned."""
