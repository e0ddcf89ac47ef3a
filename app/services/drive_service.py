"""
Drive service: list, upload, download, delete and open-in-editor operations.

Business logic separated from the HTTP layer. Every operation gets a valid
access token from token_service first (refreshing if needed), calls the Drive
API with timeouts, maps the provider resource into our file shape, and records
an audit entry. Provider failures become errors.DriveApiError and friends.
"""
import base64
import binascii
import logging
from typing import Any
from urllib.parse import quote

import requests
from pydantic import ValidationError
from sqlalchemy.orm import Session

from config import DRIVE_API_URL, DRIVE_DOWNLOAD_TIMEOUT, DRIVE_UPLOAD_URL, GOOGLE_REQUEST_TIMEOUT, OAuthSettings
from errors import (
    DriveApiError,
    FileNotFound,
    InvalidRequest,
    NotWorkspaceDocument,
    PermissionDenied,
    UploadFailed,
)
from schemas import DriveFileList, DriveFileResource, UserContext
from services.audit import AuditLogger
from services.drive_requests import (
    DEFAULT_PAGE_SIZE,
    FILE_FIELDS,
    build_list_params,
    build_multipart_body,
    export_target,
    exported_name,
    workspace_urls,
)
from services.token_service import get_valid_access_token

logger = logging.getLogger(__name__)

# Fields passed through only when Drive included them
_OPTIONAL_FIELDS = ("parents", "trashed", "kind")


def _drive_call(
    method: str,
    url: str,
    access_token: str,
    **kwargs: Any,
) -> requests.Response:
    """Call Drive API with bearer auth and timeout. Status is checked by the caller."""
    headers = {"Authorization": f"Bearer {access_token}"}
    if "headers" in kwargs:
        headers.update(kwargs.pop("headers"))
    kwargs.setdefault("timeout", GOOGLE_REQUEST_TIMEOUT)
    return requests.request(method, url, headers=headers, **kwargs)


def _file_url(file_id: str, suffix: str = "") -> str:
    return f"{DRIVE_API_URL}/files/{quote(file_id, safe='')}{suffix}"


def _parse_file(resp: requests.Response) -> DriveFileResource:
    try:
        return DriveFileResource.model_validate(resp.json())
    except (ValueError, ValidationError) as e:
        raise DriveApiError("Unexpected file resource from Google Drive", resp.status_code) from e


def to_drive_file(resource: DriveFileResource) -> dict:
    """
    Project a Drive file resource into the shape returned to clients.
    size and links are null when absent; parents/trashed/kind are omitted.
    """
    file = {
        "id": resource.id,
        "name": resource.name,
        "mimeType": resource.mimeType,
        "size": resource.size or None,
        "createdTime": resource.createdTime,
        "modifiedTime": resource.modifiedTime,
        "webViewLink": resource.webViewLink or None,
        "webContentLink": resource.webContentLink or None,
    }
    for field in _OPTIONAL_FIELDS:
        if field in resource.model_fields_set:
            file[field] = getattr(resource, field)
    return file


def _get_metadata(
    access_token: str,
    file_id: str,
    fields: str,
    *,
    forbidden_is_denial: bool = False,
) -> DriveFileResource:
    """GET file metadata; 404 -> FileNotFound, 403 -> PermissionDenied if asked."""
    resp = _drive_call(
        "GET",
        _file_url(file_id),
        access_token,
        params={"fields": fields},
    )
    if resp.status_code == 404:
        raise FileNotFound(f"File {file_id} not found")
    if resp.status_code == 403 and forbidden_is_denial:
        raise PermissionDenied(f"Access denied to file {file_id}")
    if not resp.ok:
        logger.warning("Drive metadata request failed for %s: %s", file_id, resp.status_code)
        raise DriveApiError(f"Failed to get file metadata: {resp.status_code}", resp.status_code)
    return _parse_file(resp)


def list_files(
    db: Session,
    user: UserContext,
    settings: OAuthSettings,
    audit: AuditLogger,
    *,
    folder_id: str | None = None,
    query: str | None = None,
    page_size: int = DEFAULT_PAGE_SIZE,
    page_token: str | None = None,
) -> dict:
    """One page of non-trashed files, newest first. Returns {files, nextPageToken?}."""
    try:
        params = build_list_params(folder_id, query, page_size, page_token)
    except ValueError as e:
        raise InvalidRequest(str(e)) from e
    access_token = get_valid_access_token(db, user.userId, settings)

    resp = _drive_call("GET", f"{DRIVE_API_URL}/files", access_token, params=params)
    if not resp.ok:
        logger.warning("Drive list failed: %s %s", resp.status_code, resp.text)
        raise DriveApiError(f"Google Drive API request failed: {resp.status_code}", resp.status_code)
    try:
        page = DriveFileList.model_validate(resp.json())
    except (ValueError, ValidationError) as e:
        raise DriveApiError("Unexpected file list from Google Drive", resp.status_code) from e

    audit.record(
        db,
        user.userId,
        "list",
        metadata={"folderId": folder_id, "query": query, "pageSize": page_size},
    )

    result = {"files": [to_drive_file(f) for f in page.files]}
    if page.nextPageToken:
        result["nextPageToken"] = page.nextPageToken
    return result


def upload_file(
    db: Session,
    user: UserContext,
    settings: OAuthSettings,
    audit: AuditLogger,
    *,
    name: str,
    mime_type: str,
    content: str,
    parent_id: str | None = None,
) -> dict:
    """Multipart upload of base64 `content`. Returns {file}."""
    try:
        raw = base64.b64decode("".join(content.split()), validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidRequest("content must be base64 encoded") from e

    access_token = get_valid_access_token(db, user.userId, settings)
    content_type, body = build_multipart_body(name, mime_type, raw, parent_id)

    resp = _drive_call(
        "POST",
        DRIVE_UPLOAD_URL,
        access_token,
        params={"uploadType": "multipart", "fields": FILE_FIELDS},
        headers={"Content-Type": content_type},
        data=body,
        timeout=DRIVE_DOWNLOAD_TIMEOUT,
    )
    if not resp.ok:
        logger.error("Google Drive upload failed: %s %s", resp.status_code, resp.text)
        raise UploadFailed(
            f"Upload failed: {resp.status_code} {resp.reason}",
            provider_status=resp.status_code,
            body=resp.text,
        )

    file = to_drive_file(_parse_file(resp))
    audit.record(
        db,
        user.userId,
        "upload",
        file_id=file["id"],
        file_name=file["name"],
        metadata={"mimeType": file["mimeType"], "size": file["size"], "parentId": parent_id},
    )
    return {"file": file}


def download_file(
    db: Session,
    user: UserContext,
    settings: OAuthSettings,
    audit: AuditLogger,
    file_id: str,
) -> dict:
    """
    Download a file as base64. Workspace documents are exported (docx, xlsx,
    pptx, png, json) and the returned name/mimeType describe the export.
    """
    access_token = get_valid_access_token(db, user.userId, settings)
    meta = _get_metadata(access_token, file_id, "id,name,mimeType,size,webContentLink")

    target = export_target(meta.mimeType)
    if target:
        mime_type, extension = target
        name = exported_name(meta.name, extension)
        url = _file_url(file_id, "/export")
        params = {"mimeType": mime_type}
    else:
        mime_type, name = meta.mimeType, meta.name
        url = _file_url(file_id)
        params = {"alt": "media"}

    resp = _drive_call("GET", url, access_token, params=params, timeout=DRIVE_DOWNLOAD_TIMEOUT)
    if not resp.ok:
        logger.warning("Drive content request failed for %s: %s", file_id, resp.status_code)
        raise DriveApiError(f"Failed to download file content: {resp.status_code}", resp.status_code)
    data = resp.content

    audit.record(
        db,
        user.userId,
        "download",
        file_id=file_id,
        file_name=name,
        metadata={"mimeType": mime_type, "size": len(data), "originalMimeType": meta.mimeType},
    )
    return {
        "content": base64.b64encode(data).decode("ascii"),
        "mimeType": mime_type,
        "name": name,
    }


def delete_file(
    db: Session,
    user: UserContext,
    settings: OAuthSettings,
    audit: AuditLogger,
    file_id: str,
) -> dict:
    """
    Move a file the caller owns to trash. Already-trashed files return
    success=False without a delete call. Failures are audited, then raised.
    """
    try:
        access_token = get_valid_access_token(db, user.userId, settings)
        meta = _get_metadata(access_token, file_id, "id,name,parents,trashed,owners")

        owners = meta.owners or []
        if not any(o.emailAddress == user.email for o in owners):
            raise PermissionDenied("You do not have permission to delete this file")

        if meta.trashed:
            return {"success": False, "message": "File is already in trash"}

        resp = _drive_call("DELETE", _file_url(file_id), access_token)
        if not resp.ok:
            logger.warning("Drive delete failed for %s: %s", file_id, resp.status_code)
            raise DriveApiError("Failed to delete file from Google Drive", resp.status_code)
    except Exception as e:
        audit.record(
            db,
            user.userId,
            "delete",
            file_id=file_id,
            metadata={"error": str(e), "operation": "delete_failed"},
        )
        raise

    audit.record(
        db,
        user.userId,
        "delete",
        file_id=file_id,
        file_name=meta.name,
        metadata={"parents": meta.parents, "operation": "move_to_trash"},
    )
    return {"success": True, "message": f'File "{meta.name}" deleted successfully'}


def open_workspace_doc(
    db: Session,
    user: UserContext,
    settings: OAuthSettings,
    audit: AuditLogger,
    file_id: str,
) -> dict:
    """Editor and viewer URLs for a Workspace document. Returns {editUrl, viewUrl}."""
    access_token = get_valid_access_token(db, user.userId, settings)
    meta = _get_metadata(access_token, file_id, "id,name,mimeType", forbidden_is_denial=True)

    urls = workspace_urls(file_id, meta.mimeType)
    if urls is None:
        raise NotWorkspaceDocument(
            f"File is not a Google Workspace document. MIME type: {meta.mimeType}"
        )
    workspace_type, edit_url, view_url = urls

    audit.record(
        db,
        user.userId,
        "open",
        file_id=file_id,
        file_name=meta.name,
        metadata={
            "mimeType": meta.mimeType,
            "workspaceType": workspace_type,
            "editUrl": edit_url,
            "viewUrl": view_url,
        },
    )
    return {"editUrl": edit_url, "viewUrl": view_url}
