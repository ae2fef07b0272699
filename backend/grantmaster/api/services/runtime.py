from __future__ import annotations

import logging
from typing import Callable

from fastapi import HTTPException, Request

from grantmaster.db import GrantRepository
from grantmaster.domain import Application, Attachment, Section
from grantmaster.llm import OpenAIAdvisor

logger = logging.getLogger("grantmaster.api")

RepositoryGetter = Callable[[Request], GrantRepository]
AdvisorGetter = Callable[[Request], OpenAIAdvisor]


def get_repository(request: Request) -> GrantRepository:
    repository = getattr(request.app.state, "repository", None)
    if repository is None:
        raise RuntimeError("Grant repository is not initialized; the application lifespan has not run.")
    return repository


def get_advisor(request: Request) -> OpenAIAdvisor:
    advisor = getattr(request.app.state, "advisor", None)
    if advisor is None:
        raise RuntimeError("LLM advisor is not initialized; the application lifespan has not run.")
    return advisor


def require_application(repository: GrantRepository, application_id: int, user_id: str) -> Application:
    application = repository.get_application(application_id, user_id=user_id)
    if application is None:
        raise HTTPException(status_code=404, detail="Application not found")
    return application


def require_section(repository: GrantRepository, section_id: int, user_id: str) -> Section:
    section = repository.get_section(section_id)
    if section is None or repository.get_application(section.application_id, user_id=user_id) is None:
        raise HTTPException(status_code=404, detail="Section not found")
    return section


def require_attachment(repository: GrantRepository, attachment_id: int, user_id: str) -> Attachment:
    attachment = repository.get_attachment(attachment_id)
    if attachment is None or repository.get_application(attachment.application_id, user_id=user_id) is None:
        raise HTTPException(status_code=404, detail="Attachment not found")
    return attachment
