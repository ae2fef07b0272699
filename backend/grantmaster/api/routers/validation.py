from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from grantmaster.api.contracts import ValidateRequest
from grantmaster.api.services.runtime import RepositoryGetter, require_application
from grantmaster.auth import require_user_id
from grantmaster.db import GrantRepository
from grantmaster.validation import can_export, split_issues, validate_application

logger = logging.getLogger("grantmaster.api")


def build_validation_router(*, get_repository: RepositoryGetter) -> APIRouter:
    router = APIRouter()

    @router.post("/validate")
    def validate_endpoint(
        payload: ValidateRequest,
        repository: GrantRepository = Depends(get_repository),
        user_id: str = Depends(require_user_id),
    ) -> dict[str, object]:
        application = require_application(repository, payload.application_id, user_id)
        issues = validate_application(
            application.mechanism,
            repository.list_sections(application.id),
            repository.list_attachments(application.id),
        )
        errors, warnings = split_issues(issues)
        exportable = can_export(issues)
        repository.record_validation_result(
            application.id,
            errors=errors,
            warnings=warnings,
            is_valid=exportable,
        )
        logger.info(
            "application_validated",
            extra={
                "event": "application_validated",
                "application_id": application.id,
                "mechanism": application.mechanism,
                "error_count": len(errors),
                "warning_count": len(warnings),
            },
        )
        return {
            "isValid": exportable,
            "errors": errors,
            "warnings": warnings,
            "canExport": exportable,
        }

    return router
