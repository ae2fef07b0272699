from __future__ import annotations

from dataclasses import replace
from datetime import date
import logging

from grantmaster.export.models import (
    AssembledDocument,
    ExportOptions,
    GrantPackage,
    GrantSection,
    SectionLimitReport,
)
from grantmaster.policy import estimate_page_count, word_count

logger = logging.getLogger("grantmaster.export")

PAGE_BREAK_MARKER = "\\newpage"

# Limits reviewers enforce regardless of mechanism, keyed by section id.
KNOWN_SECTION_PAGE_LIMITS: dict[str, int] = {
    "specific_aims": 1,
    "research_strategy": 12,
    "biosketch": 5,
}

NIH_SECTION_ORDER: tuple[tuple[str, str, int], ...] = (
    ("cover", "Cover Page", 1),
    ("abstract", "Project Summary/Abstract", 2),
    ("narrative", "Project Narrative", 3),
    ("specific_aims", "Specific Aims", 4),
    ("research_strategy", "Research Strategy", 5),
    ("significance", "Significance", 6),
    ("innovation", "Innovation", 7),
    ("approach", "Approach", 8),
    ("timeline", "Timeline", 9),
    ("budget", "Budget & Justification", 10),
    ("biosketch", "Biographical Sketch", 11),
    ("facilities", "Facilities & Resources", 12),
    ("equipment", "Equipment", 13),
    ("human_subjects", "Protection of Human Subjects", 14),
    ("vertebrate_animals", "Vertebrate Animals", 15),
    ("bibliography", "Bibliography & References", 16),
    ("letters", "Letters of Support", 17),
    ("appendix", "Appendix", 18),
)

_NIH_ORDER_BY_ID = {section_id: order for section_id, _, order in NIH_SECTION_ORDER}


def default_section_order(section_id: str) -> int | None:
    return _NIH_ORDER_BY_ID.get(section_id)


def order_sections(sections: list[GrantSection]) -> list[GrantSection]:
    # sorted() is stable, so equal orders keep their input sequence.
    return sorted(sections, key=lambda section: section.order)


def with_word_counts(sections: list[GrantSection]) -> list[GrantSection]:
    return [replace(section, word_count=word_count(section.content)) for section in sections]


def render_cover_page(package: GrantPackage, *, today: date) -> str:
    lines = [
        f"# {package.title}",
        "",
        f"**Principal Investigator:** {package.principal_investigator}",
        "",
        f"**Institution:** {package.institution}",
        "",
        f"**Funding Agency:** {package.funding_agency}",
        "",
        f"**Date:** {today.month}/{today.day}/{today.year}",
        "",
        "---",
    ]
    return "\n".join(lines) + "\n"


def render_table_of_contents(sections: list[GrantSection]) -> str:
    lines = ["# Table of Contents", ""]
    lines.extend(f"{index}. {section.title}" for index, section in enumerate(sections, start=1))
    return "\n".join(lines) + "\n"


def check_section_limits(sections: list[GrantSection]) -> SectionLimitReport:
    warnings: list[str] = []
    for section in sections:
        limit = KNOWN_SECTION_PAGE_LIMITS.get(section.id)
        if limit is None:
            continue
        estimated_pages = estimate_page_count(section.content)
        if estimated_pages > limit:
            warnings.append(
                f"{section.title} exceeds the {limit} page limit (estimated {estimated_pages} pages)"
            )
    return SectionLimitReport(valid=not warnings, warnings=warnings)


def assemble_grant_document(
    package: GrantPackage,
    options: ExportOptions,
    *,
    today: date | None = None,
) -> AssembledDocument:
    sections = with_word_counts(order_sections(package.sections))
    blocks: list[str] = []

    if options.include_cover_page:
        blocks.append(render_cover_page(package, today=today or date.today()))
    if options.include_table_of_contents:
        blocks.append(render_table_of_contents(sections))
    for section in sections:
        blocks.append(f"# {section.title}\n\n{section.content}\n")

    markup = "".join(f"{block}\n{PAGE_BREAK_MARKER}\n\n" for block in blocks)
    limit_report = check_section_limits(sections)
    total_words = sum(section.word_count or 0 for section in sections)
    estimated_pages = sum(estimate_page_count(section.content) for section in sections)

    if limit_report.warnings:
        logger.info(
            "section_limit_warnings",
            extra={
                "event": "section_limit_warnings",
                "warning_count": len(limit_report.warnings),
                "section_count": len(sections),
            },
        )
    return AssembledDocument(
        markup=markup,
        sections=sections,
        total_word_count=total_words,
        estimated_pages=estimated_pages,
        limit_report=limit_report,
    )
