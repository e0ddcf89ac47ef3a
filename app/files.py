"""
Files routers: list, upload, download, delete, open-in-editor.

Delegates business logic to services.drive_service. The same endpoints are
mounted twice: under /files for browser sessions (Bearer session token) and
under /api/files for programmatic access (X-API-Key). Open-in-editor is only
offered to browser sessions.
"""
from typing import Callable

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from auth import get_api_key_user, get_current_user
from config import OAuthSettings, get_oauth_settings
from database import get_db
from schemas import UploadFileBody, UserContext
from services.audit import AuditLogger, RequestInfo
from services.drive_requests import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from services import drive_service


def get_audit_logger(request: Request) -> AuditLogger:
    """FastAPI dependency: audit logger stamped with the client's address and agent."""
    return AuditLogger(
        RequestInfo(
            ip_address=request.client.host if request.client else None,
            user_agent=request.headers.get("User-Agent"),
        )
    )


def _build_router(prefix: str, current_user: Callable, *, with_open: bool) -> APIRouter:
    router = APIRouter(prefix=prefix)

    @router.get("")
    def list_files(
        folderId: str | None = None,
        pageToken: str | None = None,
        pageSize: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
        query: str | None = None,
        user: UserContext = Depends(current_user),
        db: Session = Depends(get_db),
        settings: OAuthSettings = Depends(get_oauth_settings),
        audit: AuditLogger = Depends(get_audit_logger),
    ):
        """
        One page of the caller's non-trashed files, newest first. Optional
        folder and name filters; pass nextPageToken back as pageToken.
        """
        return drive_service.list_files(
            db,
            user,
            settings,
            audit,
            folder_id=folderId,
            query=query,
            page_size=pageSize,
            page_token=pageToken,
        )

    @router.post("")
    def upload_file(
        body: UploadFileBody,
        user: UserContext = Depends(current_user),
        db: Session = Depends(get_db),
        settings: OAuthSettings = Depends(get_oauth_settings),
        audit: AuditLogger = Depends(get_audit_logger),
    ):
        """Upload base64 content as a new Drive file, optionally into parentId."""
        return drive_service.upload_file(
            db,
            user,
            settings,
            audit,
            name=body.name,
            mime_type=body.mimeType,
            content=body.content,
            parent_id=body.parentId,
        )

    @router.get("/{file_id}/content")
    def download_file(
        file_id: str,
        user: UserContext = Depends(current_user),
        db: Session = Depends(get_db),
        settings: OAuthSettings = Depends(get_oauth_settings),
        audit: AuditLogger = Depends(get_audit_logger),
    ):
        """File content as base64; Workspace documents are exported to Office/PNG/JSON."""
        return drive_service.download_file(db, user, settings, audit, file_id)

    @router.delete("/{file_id}")
    def delete_file(
        file_id: str,
        user: UserContext = Depends(current_user),
        db: Session = Depends(get_db),
        settings: OAuthSettings = Depends(get_oauth_settings),
        audit: AuditLogger = Depends(get_audit_logger),
    ):
        """Move a file the caller owns to trash."""
        return drive_service.delete_file(db, user, settings, audit, file_id)

    if with_open:

        @router.get("/{file_id}/workspace-urls")
        def open_workspace_doc(
            file_id: str,
            user: UserContext = Depends(current_user),
            db: Session = Depends(get_db),
            settings: OAuthSettings = Depends(get_oauth_settings),
            audit: AuditLogger = Depends(get_audit_logger),
        ):
            """Editor and viewer URLs for a Google Docs/Sheets/Slides/... document."""
            return drive_service.open_workspace_doc(db, user, settings, audit, file_id)

    return router


router = _build_router("/files", get_current_user, with_open=True)
api_router = _build_router("/api/files", get_api_key_user, with_open=False)
