"""
Drive request builders: query strings, export/open tables, multipart bodies.

Pure functions, no I/O. drive_service composes these with HTTP calls.
"""
import base64
import json

# Fields requested for every file resource we hand back to clients
FILE_FIELDS = (
    "id,name,mimeType,size,createdTime,modifiedTime,"
    "webViewLink,webContentLink,parents,trashed,kind"
)
LIST_FIELDS = f"nextPageToken,files({FILE_FIELDS})"

DEFAULT_PAGE_SIZE = 100
MAX_PAGE_SIZE = 1000

# Workspace type -> (export MIME type, file extension) used by download
WORKSPACE_EXPORTS = {
    "application/vnd.google-apps.document": (
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        ".docx",
    ),
    "application/vnd.google-apps.spreadsheet": (
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        ".xlsx",
    ),
    "application/vnd.google-apps.presentation": (
        "application/vnd.openxmlformats-officedocument.presentationml.presentation",
        ".pptx",
    ),
    "application/vnd.google-apps.drawing": ("image/png", ".png"),
    "application/vnd.google-apps.script": ("application/vnd.google-apps.script+json", ".json"),
}

# Workspace type -> docs.google.com path segment used by open
WORKSPACE_EDITORS = {
    "application/vnd.google-apps.document": "document",
    "application/vnd.google-apps.spreadsheet": "spreadsheets",
    "application/vnd.google-apps.presentation": "presentation",
    "application/vnd.google-apps.form": "forms",
    "application/vnd.google-apps.drawing": "drawings",
    "application/vnd.google-apps.site": "sites",
    "application/vnd.google-apps.jam": "jamboard",
}

MULTIPART_BOUNDARY = "-------314159265358979323846"


def escape_query_value(value: str) -> str:
    """Escape a value for use inside single quotes in a Drive `q` expression."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


def build_list_query(folder_id: str | None = None, query: str | None = None) -> str:
    """
    AND together, in order: parent filter, name filter, `trashed = false`.

    >>> build_list_query("F", "Q")
    "'F' in parents and name contains 'Q' and trashed = false"
    """
    parts = []
    if folder_id:
        parts.append(f"'{escape_query_value(folder_id)}' in parents")
    if query:
        parts.append(f"name contains '{escape_query_value(query)}'")
    parts.append("trashed = false")
    return " and ".join(parts)


def build_list_params(
    folder_id: str | None = None,
    query: str | None = None,
    page_size: int = DEFAULT_PAGE_SIZE,
    page_token: str | None = None,
) -> dict:
    """Query parameters for GET /drive/v3/files."""
    if not 1 <= page_size <= MAX_PAGE_SIZE:
        raise ValueError(f"page_size must be between 1 and {MAX_PAGE_SIZE}")
    params = {
        "q": build_list_query(folder_id, query),
        "pageSize": str(page_size),
        "fields": LIST_FIELDS,
        "orderBy": "modifiedTime desc",
    }
    if page_token:
        params["pageToken"] = page_token
    return params


def export_target(mime_type: str) -> tuple[str, str] | None:
    """(export MIME type, extension) for Workspace types, else None for direct download."""
    return WORKSPACE_EXPORTS.get(mime_type)


def exported_name(name: str, extension: str) -> str:
    return name if name.endswith(extension) else name + extension


def workspace_urls(file_id: str, mime_type: str) -> tuple[str, str, str] | None:
    """(workspace segment, edit URL, view URL), or None if not a Workspace document."""
    segment = WORKSPACE_EDITORS.get(mime_type)
    if segment is None:
        return None
    base = f"https://docs.google.com/{segment}/d/{file_id}"
    return segment, f"{base}/edit", f"{base}/view"


def build_multipart_body(
    name: str,
    mime_type: str,
    content: bytes,
    parent_id: str | None = None,
    boundary: str = MULTIPART_BOUNDARY,
) -> tuple[str, bytes]:
    """
    Build a multipart/related upload body: JSON metadata part, then the file
    content as a base64 block. Returns (Content-Type header, body).
    """
    metadata = {"name": name, "mimeType": mime_type}
    if parent_id:
        metadata["parents"] = [parent_id]

    delimiter = f"\r\n--{boundary}\r\n"
    close_delimiter = f"\r\n--{boundary}--"

    body = (
        delimiter
        + "Content-Type: application/json; charset=UTF-8\r\n\r\n"
        + json.dumps(metadata)
        + delimiter
        + f"Content-Type: {mime_type}\r\n"
        + "Content-Transfer-Encoding: base64\r\n\r\n"
        + base64.b64encode(content).decode("ascii")
        + close_delimiter
    )
    content_type = f'multipart/related; boundary="{boundary}"'
    return content_type, body.encode("utf-8")
