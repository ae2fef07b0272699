from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Response

from grantmaster.api.contracts import ExportRequest, GrantExportRequest
from grantmaster.api.services.exporting import (
    UnsupportedExportFormat,
    build_grant_export_payload,
    render_export_file,
)
from grantmaster.export import ExportRenderError
from grantmaster.observability import describe_error

logger = logging.getLogger("grantmaster.api")


router = APIRouter()


@router.post("/export", response_model=None)
def export_document(payload: ExportRequest) -> Response:
    content = payload.content.to_export_content()
    try:
        body, content_type, filename = render_export_file(payload.format, content)
    except UnsupportedExportFormat as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except ExportRenderError as exc:
        logger.exception(
            "export_failed",
            extra={"event": "export_failed", "format": payload.format, "error": describe_error(exc)},
        )
        raise HTTPException(status_code=500, detail="Export failed") from exc

    headers = {"Content-Disposition": f'attachment; filename="{filename}"'}
    if payload.format.strip().lower() == "gdocs":
        headers["X-Google-Docs-Hint"] = "true"
    logger.info(
        "export_completed",
        extra={
            "event": "export_completed",
            "format": payload.format,
            "section_count": len(content.sections),
            "bytes": len(body),
        },
    )
    return Response(content=body, media_type=content_type, headers=headers)


@router.post("/export-grant")
def export_grant(payload: GrantExportRequest) -> dict[str, object]:
    package = payload.grant_package.to_grant_package()
    options = payload.options.to_export_options()
    try:
        return build_grant_export_payload(package, options)
    except UnsupportedExportFormat as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
