from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from grantmaster.api.contracts import AttachmentUpdateRequest, SectionUpdateRequest
from grantmaster.api.services.runtime import (
    AdvisorGetter,
    RepositoryGetter,
    require_attachment,
    require_section,
)
from grantmaster.auth import require_user_id
from grantmaster.db import GrantRepository
from grantmaster.domain import ATTACHMENT_STATUSES
from grantmaster.llm import LLMAdvisorError, OpenAIAdvisor
from grantmaster.observability import describe_error
from grantmaster.policy import is_blank
from grantmaster.validation import apply_section_content

logger = logging.getLogger("grantmaster.api")


def build_sections_router(*, get_repository: RepositoryGetter, get_advisor: AdvisorGetter) -> APIRouter:
    router = APIRouter()

    @router.put("/sections/{section_id}")
    def update_section(
        section_id: int,
        payload: SectionUpdateRequest,
        repository: GrantRepository = Depends(get_repository),
        user_id: str = Depends(require_user_id),
    ) -> dict[str, object]:
        section = require_section(repository, section_id, user_id)
        updated, issues = apply_section_content(section, payload.content)
        saved = repository.save_section(updated)
        logger.info(
            "section_saved",
            extra={
                "event": "section_saved",
                "section_id": saved.id,
                "application_id": saved.application_id,
                "page_count": saved.page_count,
                "is_valid": saved.is_valid,
                "issue_count": len(issues),
            },
        )
        return {
            "section": saved.to_dict(),
            "issues": [issue.to_dict() for issue in issues],
        }

    @router.get("/sections/{section_id}/versions")
    def list_section_versions(
        section_id: int,
        repository: GrantRepository = Depends(get_repository),
        user_id: str = Depends(require_user_id),
    ) -> dict[str, object]:
        section = require_section(repository, section_id, user_id)
        versions = repository.list_section_versions(section.id)
        return {"sectionId": section.id, "versions": [version.to_dict() for version in versions]}

    @router.post("/sections/{section_id}/versions/{version_id}/restore")
    def restore_section_version(
        section_id: int,
        version_id: int,
        repository: GrantRepository = Depends(get_repository),
        user_id: str = Depends(require_user_id),
    ) -> dict[str, object]:
        section = require_section(repository, section_id, user_id)
        version = repository.get_section_version(version_id)
        if version is None or version.section_id != section.id:
            raise HTTPException(status_code=404, detail="Version not found")
        updated, issues = apply_section_content(section, version.content)
        saved = repository.save_section(updated, note=f"Restored from version {version.id}")
        logger.info(
            "section_version_restored",
            extra={
                "event": "section_version_restored",
                "section_id": saved.id,
                "version_id": version.id,
                "is_valid": saved.is_valid,
            },
        )
        return {
            "section": saved.to_dict(),
            "issues": [issue.to_dict() for issue in issues],
            "restoredFrom": version.id,
        }

    @router.post("/sections/{section_id}/score")
    def score_section(
        section_id: int,
        repository: GrantRepository = Depends(get_repository),
        advisor: OpenAIAdvisor = Depends(get_advisor),
        user_id: str = Depends(require_user_id),
    ) -> dict[str, object]:
        section = require_section(repository, section_id, user_id)
        if is_blank(section.content):
            raise HTTPException(status_code=400, detail="Section has no content to score")
        try:
            score = advisor.score_section(section_type=section.type, title=section.title, content=section.content)
        except LLMAdvisorError as exc:
            logger.warning(
                "section_score_failed",
                extra={"event": "section_score_failed", "section_id": section.id, "error": describe_error(exc)},
            )
            raise HTTPException(status_code=502, detail="Section scoring is unavailable") from exc
        return {"sectionId": section.id, **score.to_dict()}

    @router.put("/attachments/{attachment_id}")
    def update_attachment(
        attachment_id: int,
        payload: AttachmentUpdateRequest,
        repository: GrantRepository = Depends(get_repository),
        user_id: str = Depends(require_user_id),
    ) -> dict[str, object]:
        attachment = require_attachment(repository, attachment_id, user_id)
        status = (payload.status or "uploaded").strip().lower()
        if status not in ATTACHMENT_STATUSES:
            raise HTTPException(
                status_code=400,
                detail=f"Invalid attachment status. Expected one of: {', '.join(ATTACHMENT_STATUSES)}.",
            )
        file_url = payload.file_url if payload.file_url is not None else attachment.file_url
        updated = repository.update_attachment(attachment.id, status=status, file_url=file_url)
        if updated is None:
            raise HTTPException(status_code=404, detail="Attachment not found")
        logger.info(
            "attachment_updated",
            extra={"event": "attachment_updated", "attachment_id": updated.id, "status": updated.status},
        )
        return updated.to_dict()

    return router
