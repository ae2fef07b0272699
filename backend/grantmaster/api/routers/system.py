from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from grantmaster.api.services.runtime import RepositoryGetter
from grantmaster.config import settings
from grantmaster.db import GrantRepository, StorageError


def build_system_router(*, get_repository: RepositoryGetter) -> APIRouter:
    router = APIRouter()

    @router.get("/")
    def root() -> dict[str, str]:
        return {"service": "grantmaster-backend", "status": "running"}

    @router.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok", "environment": settings.app_env}

    @router.get("/ready", response_model=None)
    def ready(repository: GrantRepository = Depends(get_repository)) -> JSONResponse:
        payload: dict[str, object] = {
            "status": "ready",
            "environment": settings.app_env,
            "checks": {},
        }
        try:
            repository.ping()
            payload["checks"]["db"] = {"ok": True, "backend": "sqlite"}
        except StorageError as exc:
            payload["status"] = "not_ready"
            payload["checks"]["db"] = {"ok": False, "backend": "sqlite", "error": str(exc)}
            return JSONResponse(status_code=503, content=payload)
        return JSONResponse(status_code=200, content=payload)

    return router
