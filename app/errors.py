"""
Error kinds raised by services. Each carries the HTTP status main.py maps it to.
"""


class DriveGatewayError(Exception):
    """Base class for operational errors surfaced to the caller."""

    status_code = 500

    def __init__(self, msg: str):
        self.msg = msg
        super().__init__(msg)


class NotFound(DriveGatewayError):
    """User (or other row) does not exist."""
    status_code = 404


class FileNotFound(NotFound):
    """Drive reported 404 for the requested file."""


class TokenRefreshFailed(DriveGatewayError):
    """Google rejected the refresh token, or none is stored."""
    status_code = 401

    def __init__(self, msg: str, provider_status: int | None = None):
        self.provider_status = provider_status
        super().__init__(msg)


class DriveApiError(DriveGatewayError):
    """Non-success response from the Drive API."""
    status_code = 502

    def __init__(self, msg: str, provider_status: int | None = None):
        self.provider_status = provider_status
        super().__init__(msg)


class UploadFailed(DriveApiError):
    """Drive rejected a multipart upload; body kept for diagnostics."""

    def __init__(self, msg: str, provider_status: int | None = None, body: str = ""):
        self.body = body
        super().__init__(msg, provider_status)


class PermissionDenied(DriveGatewayError):
    status_code = 403


class NotWorkspaceDocument(DriveGatewayError):
    status_code = 400


class ConfigurationMissing(DriveGatewayError):
    status_code = 500


class InvalidRequest(DriveGatewayError):
    status_code = 400
