"""FastAPI JSON API for the Mail Attachment Organizer.

Objective:
    Expose the search / organize / analyze workflows implemented in
    :mod:`src.attachment_organizer.orchestrator` over HTTP. This module keeps
    business logic inside the orchestrator and only handles request parsing,
    command dispatch and response rendering.

High-level call tree:
    - :func:`create_app`:
        - defines routes:
            - ``GET /health`` -> :func:`health`
            - ``POST /api/search`` -> :func:`search_api`
            - ``POST /api/organize`` -> :func:`organize_api`
            - ``POST /api/analyze`` -> :func:`analyze_api`
            - ``POST /api/drive/move-folder`` -> :func:`move_folder_api`
            - ``GET /api/drive/folders`` -> :func:`folders_api`
            - ``GET /api/attachments/{message_id}/{attachment_id}`` -> :func:`attachment_api`
        - registers exception handlers mapping package errors to status codes
    - :func:`get_orchestrator`:
        - returns a new
          :class:`src.attachment_organizer.orchestrator.AttachmentOrchestrator`
          carrying the request's bearer token.

Data flow:
    - HTTP request -> command -> :meth:`CommandBus.dispatch` -> JSON.

Operational notes:
    - The Google access token is read from the ``Authorization: Bearer``
      header of every request; the server never stores it.
    - For tests, :func:`get_orchestrator` is overridden via
      ``app.dependency_overrides``.
    - Local run: ``python -m uvicorn src.attachment_organizer.webapp:app``.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from .auth import BearerTokenAuth
from .commands import (
    AnalyzeFolderCommand,
    CommandBus,
    DownloadAttachmentCommand,
    MoveFolderCommand,
    OrganizeCommand,
    SearchCommand,
    build_command_bus,
)
from .config import get_settings
from .errors import AnalysisError, ConfigurationError, CriterionValidationError, FetchError
from .models import EmailDetail, OrganizeMode
from .orchestrator import AttachmentOrchestrator


class OrganizeRequest(BaseModel):
    """Body of ``POST /api/organize``."""

    destination_name: str = Field(min_length=1)
    mode: OrganizeMode = OrganizeMode.FLAT
    emails: list[EmailDetail] = Field(default_factory=list)
    criterion: Optional[str] = None


def get_orchestrator(
    authorization: Optional[str] = Header(default=None),
) -> AttachmentOrchestrator:
    """Create an orchestrator for the caller's bearer token.

    Args:
        authorization: ``Authorization`` request header.

    Returns:
        AttachmentOrchestrator: A new orchestrator instance.

    Raises:
        HTTPException: 401 when no bearer token was sent.
    """
    settings = get_settings()
    auth = BearerTokenAuth.from_authorization_header(settings, authorization)
    if not auth.settings.has_credential:
        raise HTTPException(status_code=401, detail="Missing bearer token")
    return AttachmentOrchestrator(settings=auth.settings, auth=auth)


def get_command_bus(
    orchestrator: AttachmentOrchestrator = Depends(get_orchestrator),
) -> CommandBus:
    return build_command_bus(orchestrator)


def _error(status_code: int, error: str, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse({"error": error, "message": message, **extra}, status_code=status_code)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Error mapping:
        - :class:`CriterionValidationError` -> 400
        - missing bearer token -> 401
        - :class:`AnalysisError` -> 422
        - :class:`FetchError` -> 502
        - :class:`ConfigurationError` -> 503

    Returns:
        FastAPI: FastAPI app.
    """

    app = FastAPI(title="Mail Attachment Organizer")

    @app.exception_handler(CriterionValidationError)
    def invalid_criterion(request: Request, exc: CriterionValidationError) -> JSONResponse:
        return _error(400, "invalid_criterion", exc.USER_MESSAGE)

    @app.exception_handler(FetchError)
    def fetch_failed(request: Request, exc: FetchError) -> JSONResponse:
        return _error(502, "upstream_error", str(exc), upstream_status=exc.status_code)

    @app.exception_handler(ConfigurationError)
    def not_configured(request: Request, exc: ConfigurationError) -> JSONResponse:
        return _error(503, "configuration_error", str(exc))

    @app.exception_handler(AnalysisError)
    def analysis_failed(request: Request, exc: AnalysisError) -> JSONResponse:
        return _error(422, "analysis_error", str(exc))

    @app.get("/health")
    def health() -> dict[str, str]:
        """Health check endpoint.

        This is intentionally simple and should not perform external calls.
        """
        return {"status": "ok"}

    @app.post("/api/search")
    def search_api(
        command: SearchCommand, bus: CommandBus = Depends(get_command_bus)
    ) -> dict[str, Any]:
        """Search for emails with attachments.

        Expected request body:
            ``{"criterion": "gruhas.com"}``
        """
        outcome = bus.dispatch(command)
        return {
            "status": outcome.status,
            "criterion": outcome.criterion.model_dump(mode="json"),
            "predicate": outcome.predicate,
            "emails": [e.model_dump(mode="json") for e in outcome.emails],
            "failures": [f.model_dump() for f in outcome.failures],
            "summary": {
                "emails": len(outcome.emails),
                "attachments": outcome.attachment_count,
                "failed": len(outcome.failures),
            },
        }

    @app.post("/api/organize")
    def organize_api(
        payload: OrganizeRequest, bus: CommandBus = Depends(get_command_bus)
    ) -> dict[str, Any]:
        """Copy attachments into a new Drive folder.

        Expected request body:
            ``{"destination_name": "Gruhas MIS", "mode": "dated",
            "criterion": "gruhas.com"}`` or with ``emails`` from a previous
            search.

        Progress is not streamed; the response carries the final state only.
        """
        try:
            command = OrganizeCommand(**payload.model_dump())
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e)) from e

        result = bus.dispatch(command)
        return {
            "success": result.success,
            "root_folder": result.root_folder.model_dump(),
            "mode": result.mode.value,
            "progress": {
                "processed": result.progress.processed,
                "total": result.progress.total,
                "percent": result.progress.percent,
            },
            "uploaded": [f.model_dump() for f in result.uploaded],
            "failures": [f.model_dump() for f in result.failures],
            "folders_created": result.folders_created,
        }

    @app.post("/api/analyze")
    def analyze_api(
        command: AnalyzeFolderCommand, bus: CommandBus = Depends(get_command_bus)
    ) -> dict[str, str]:
        """Answer a question about the spreadsheets in a Drive folder."""
        return {"analysis": bus.dispatch(command)}

    @app.post("/api/drive/move-folder")
    def move_folder_api(
        command: MoveFolderCommand, bus: CommandBus = Depends(get_command_bus)
    ) -> dict[str, bool]:
        bus.dispatch(command)
        return {"success": True}

    @app.get("/api/drive/folders")
    def folders_api(
        name: Optional[str] = None,
        orchestrator: AttachmentOrchestrator = Depends(get_orchestrator),
    ) -> dict[str, Any]:
        """List Drive folders, optionally filtered by exact name."""
        folders = orchestrator.list_folders(name=name)
        return {"folders": [f.model_dump() for f in folders]}

    @app.get("/api/attachments/{message_id}/{attachment_id}")
    def attachment_api(
        message_id: str,
        attachment_id: str,
        filename: Optional[str] = None,
        bus: CommandBus = Depends(get_command_bus),
    ) -> Response:
        """Download one attachment's decoded content."""
        content = bus.dispatch(
            DownloadAttachmentCommand(message_id=message_id, attachment_id=attachment_id)
        )
        headers = {}
        if filename:
            headers["Content-Disposition"] = f'attachment; filename="{filename}"'
        return Response(content=content, media_type="application/octet-stream", headers=headers)

    return app


app = create_app()
