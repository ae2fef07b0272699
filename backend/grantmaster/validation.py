from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
import logging
from typing import Iterable, Literal, Protocol, Sequence

from grantmaster.domain import Attachment, Section
from grantmaster.mechanisms import get_mechanism
from grantmaster.policy import estimate_page_count, is_blank, missing_headings

logger = logging.getLogger("grantmaster.validation")

IssueKind = Literal["error", "warning"]


@dataclass(frozen=True)
class ValidationIssue:
    kind: IssueKind
    message: str
    section: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {"type": self.kind, "section": self.section, "message": self.message}


class SectionLike(Protocol):
    title: str
    content: str
    page_limit: int
    required_headings: list[str]


class AttachmentLike(Protocol):
    name: str
    status: str


def validate_section(section: SectionLike) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    content = section.content or ""

    page_count = estimate_page_count(content)
    if page_count > section.page_limit:
        issues.append(
            ValidationIssue(
                kind="error",
                section=section.title,
                message=f"Page limit exceeded: {page_count}/{section.page_limit} pages",
            )
        )

    if is_blank(content):
        issues.append(ValidationIssue(kind="warning", section=section.title, message="Section is empty"))
        return issues

    for heading in missing_headings(content, section.required_headings or []):
        issues.append(
            ValidationIssue(
                kind="error",
                section=section.title,
                message=f"Missing required heading: {heading}",
            )
        )
    return issues


def validate_application(
    mechanism: str,
    sections: Iterable[SectionLike],
    attachments: Iterable[AttachmentLike],
) -> list[ValidationIssue]:
    mechanism_config = get_mechanism(mechanism)
    if mechanism_config is None:
        return [ValidationIssue(kind="error", message="Invalid mechanism selected")]

    issues: list[ValidationIssue] = []
    for section in sections:
        issues.extend(validate_section(section))

    attachments_by_name: dict[str, list[AttachmentLike]] = {}
    for attachment in attachments:
        attachments_by_name.setdefault(attachment.name, []).append(attachment)

    for required in mechanism_config.required_attachments:
        candidates = attachments_by_name.get(required.name, [])
        if not any(candidate.status == "uploaded" for candidate in candidates):
            issues.append(
                ValidationIssue(kind="error", message=f"Required attachment missing: {required.name}")
            )
    return issues


def can_export(issues: Iterable[ValidationIssue]) -> bool:
    return not any(issue.kind == "error" for issue in issues)


def split_issues(issues: Sequence[ValidationIssue]) -> tuple[list[str], list[str]]:
    errors = [issue.message for issue in issues if issue.kind == "error"]
    warnings = [issue.message for issue in issues if issue.kind == "warning"]
    return errors, warnings


def apply_section_content(section: Section, content: str) -> tuple[Section, list[ValidationIssue]]:
    """Recompute the derived fields of ``section`` for new ``content``.

    Returns the updated copy and the findings behind its ``is_valid`` flag; the
    caller decides whether to persist it.
    """
    page_count = estimate_page_count(content)
    headings_present = not missing_headings(content, section.required_headings)
    updated = replace(
        section,
        content=content,
        page_count=page_count,
        is_valid=page_count <= section.page_limit and headings_present,
        is_complete=not is_blank(content),
        updated_at=datetime.now(timezone.utc).isoformat(),
    )
    issues = validate_section(updated)
    logger.debug(
        "section_content_evaluated",
        extra={
            "event": "section_content_evaluated",
            "section_id": section.id,
            "page_count": page_count,
            "page_limit": section.page_limit,
            "is_valid": updated.is_valid,
        },
    )
    return updated, issues


def build_readiness_summary(
    sections: Sequence[Section],
    attachments: Sequence[Attachment],
    issues: Sequence[ValidationIssue],
) -> dict[str, object]:
    sections_complete = sum(1 for section in sections if section.is_complete)
    sections_valid = sum(1 for section in sections if section.is_valid)
    required = [attachment for attachment in attachments if attachment.required]
    required_uploaded = sum(1 for attachment in required if attachment.status == "uploaded")

    total_items = len(sections) + len(required)
    done_items = sections_complete + required_uploaded
    progress = round(done_items / total_items * 100) if total_items else 0
    errors, warnings = split_issues(issues)
    return {
        "sectionsTotal": len(sections),
        "sectionsComplete": sections_complete,
        "sectionsValid": sections_valid,
        "requiredAttachmentsTotal": len(required),
        "requiredAttachmentsUploaded": required_uploaded,
        "overallProgress": progress,
        "errorCount": len(errors),
        "warningCount": len(warnings),
        "canExport": can_export(issues),
    }
