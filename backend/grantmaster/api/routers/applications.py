from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Response

from grantmaster.api.contracts import ApplicationCreateRequest
from grantmaster.api.services.runtime import RepositoryGetter, require_application
from grantmaster.auth import require_user_id
from grantmaster.db import GrantRepository
from grantmaster.mechanisms import MECHANISMS, get_mechanism
from grantmaster.validation import build_readiness_summary, validate_application

logger = logging.getLogger("grantmaster.api")


def build_applications_router(*, get_repository: RepositoryGetter) -> APIRouter:
    router = APIRouter()

    @router.get("/applications")
    def list_applications(
        repository: GrantRepository = Depends(get_repository),
        user_id: str = Depends(require_user_id),
    ) -> dict[str, object]:
        applications = repository.list_applications(user_id)
        return {"applications": [application.to_dict() for application in applications]}

    @router.post("/applications", status_code=201)
    def create_application(
        payload: ApplicationCreateRequest,
        repository: GrantRepository = Depends(get_repository),
        user_id: str = Depends(require_user_id),
    ) -> dict[str, object]:
        title = payload.title.strip()
        if not title:
            raise HTTPException(status_code=400, detail="Title is required")
        mechanism = get_mechanism(payload.mechanism)
        if mechanism is None:
            raise HTTPException(
                status_code=400,
                detail=f"Invalid mechanism. Expected one of: {', '.join(MECHANISMS)}.",
            )

        application = repository.create_application(user_id=user_id, title=title, mechanism=mechanism)
        logger.info(
            "application_created",
            extra={
                "event": "application_created",
                "application_id": application.id,
                "mechanism": mechanism.id,
                "section_count": len(mechanism.sections),
                "attachment_count": len(mechanism.attachments),
            },
        )
        return {
            **application.to_dict(),
            "sections": [section.to_dict() for section in repository.list_sections(application.id)],
            "attachments": [attachment.to_dict() for attachment in repository.list_attachments(application.id)],
        }

    @router.get("/applications/{application_id}")
    def get_application(
        application_id: int,
        repository: GrantRepository = Depends(get_repository),
        user_id: str = Depends(require_user_id),
    ) -> dict[str, object]:
        application = require_application(repository, application_id, user_id)
        return {
            **application.to_dict(),
            "sections": [section.to_dict() for section in repository.list_sections(application.id)],
            "attachments": [attachment.to_dict() for attachment in repository.list_attachments(application.id)],
            "validationResults": repository.list_validation_results(application.id),
        }

    @router.delete("/applications/{application_id}", status_code=204)
    def delete_application(
        application_id: int,
        repository: GrantRepository = Depends(get_repository),
        user_id: str = Depends(require_user_id),
    ) -> Response:
        if not repository.delete_application(application_id, user_id):
            raise HTTPException(status_code=404, detail="Application not found")
        logger.info(
            "application_deleted",
            extra={"event": "application_deleted", "application_id": application_id},
        )
        return Response(status_code=204)

    @router.get("/applications/{application_id}/readiness")
    def get_readiness(
        application_id: int,
        repository: GrantRepository = Depends(get_repository),
        user_id: str = Depends(require_user_id),
    ) -> dict[str, object]:
        application = require_application(repository, application_id, user_id)
        sections = repository.list_sections(application.id)
        attachments = repository.list_attachments(application.id)
        issues = validate_application(application.mechanism, sections, attachments)
        return {
            "applicationId": application.id,
            **build_readiness_summary(sections, attachments, issues),
        }

    return router
