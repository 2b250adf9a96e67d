"""FastAPI application exposing the Status Matrix REST API."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, FastAPI, File, Form, Header, HTTPException, Query, Response, UploadFile, status

from .client import AUTH, VALIDATION, StatusApiClient, StatusApiError
from .config import Settings, load_settings
from .filters import ExportFilters
from .importer import WorkbookError
from .models import Session
from .service import StalePreviewError, StatusMatrixService

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def to_http_error(exc: StatusApiError) -> HTTPException:
    if exc.kind == AUTH:
        code = exc.status_code or status.HTTP_401_UNAUTHORIZED
    elif exc.kind == VALIDATION:
        code = status.HTTP_400_BAD_REQUEST
    else:
        # network and generic backend failures
        code = status.HTTP_502_BAD_GATEWAY
    return HTTPException(status_code=code, detail=exc.user_message)


def create_app(
    settings: Optional[Settings] = None,
    client: Optional[StatusApiClient] = None,
) -> FastAPI:
    settings = settings or load_settings()
    client = client or StatusApiClient(settings.api_url, timeout=settings.request_timeout)
    service = StatusMatrixService(settings, client)

    async def verify_api_key(x_api_key: Optional[str] = Header(None, alias="X-API-Key")) -> None:
        if settings.api_key and x_api_key != settings.api_key:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid api key")

    def session_dependency(authorization: Optional[str] = Header(None)) -> Session:
        if authorization and authorization.lower().startswith("bearer "):
            return Session(token=authorization[7:].strip())
        if settings.api_token:
            return Session(token=settings.api_token)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="No authentication token found")

    def filters_dependency(
        team: Optional[str] = None,
        user: Optional[str] = None,
        start_date: Optional[str] = Query(None, alias="startDate"),
        end_date: Optional[str] = Query(None, alias="endDate"),
        month: Optional[str] = None,
    ) -> ExportFilters:
        return ExportFilters(team=team, user=user, start_date=start_date, end_date=end_date, month=month)

    app = FastAPI(title="Status Matrix API", version="1.0.0")

    @app.on_event("shutdown")
    async def shutdown_event() -> None:  # pragma: no cover - io bound
        await client.close()

    def get_service() -> StatusMatrixService:
        return service

    @app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/import/preview", dependencies=[Depends(verify_api_key)])
    async def preview_import(
        file: UploadFile = File(...),
        svc: StatusMatrixService = Depends(get_service),
    ) -> dict[str, object]:
        content = await file.read()
        try:
            entries = svc.group_workbook(content)
        except WorkbookError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return {"count": len(entries), "entries": [entry.to_payload() for entry in entries]}

    @app.post("/api/import/upload", dependencies=[Depends(verify_api_key)])
    async def upload_import(
        file: UploadFile = File(...),
        mode: str = Form("file"),
        session: Session = Depends(session_dependency),
        svc: StatusMatrixService = Depends(get_service),
    ) -> dict[str, object]:
        content = await file.read()
        try:
            if mode == "file":
                result = await svc.upload_workbook(session, file.filename or "status.xlsx", content)
                return {
                    "success": result.success,
                    "message": result.message,
                    "insertedCount": result.inserted_count,
                    "modifiedCount": result.modified_count,
                }
            if mode != "json":
                raise HTTPException(status_code=400, detail="mode must be one of: file, json")
            outcome = await svc.import_workbook(session, content)
        except WorkbookError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except StatusApiError as exc:
            raise to_http_error(exc) from exc
        upload = outcome.upload
        return {
            "success": bool(upload and upload.success),
            "message": outcome.message,
            "count": len(outcome.entries),
            "insertedCount": upload.inserted_count if upload else 0,
            "modifiedCount": upload.modified_count if upload else 0,
        }

    @app.get("/api/preview", dependencies=[Depends(verify_api_key)])
    async def get_preview(
        page: int = Query(1, ge=1),
        view: Optional[str] = None,
        filters: ExportFilters = Depends(filters_dependency),
        session: Session = Depends(session_dependency),
        svc: StatusMatrixService = Depends(get_service),
    ) -> dict[str, object]:
        try:
            preview = await svc.load_preview(session, filters, page, view=view)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except StalePreviewError as exc:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
        except StatusApiError as exc:
            raise to_http_error(exc) from exc
        return preview.to_dict()

    @app.get("/api/export", dependencies=[Depends(verify_api_key)])
    async def export_report(
        filters: ExportFilters = Depends(filters_dependency),
        session: Session = Depends(session_dependency),
        svc: StatusMatrixService = Depends(get_service),
    ) -> Response:
        today = datetime.now(timezone.utc).date()
        try:
            filename, content = await svc.export_report(session, filters, today)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except StatusApiError as exc:
            if exc.status_code == 403:
                raise HTTPException(
                    status_code=403, detail="You do not have permission to export this report"
                ) from exc
            raise to_http_error(exc) from exc
        return Response(
            content=content,
            media_type=XLSX_MEDIA_TYPE,
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    return app


app = create_app()


__all__ = ["app", "create_app"]
