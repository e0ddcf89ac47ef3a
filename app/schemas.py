"""
Pydantic models shared by routers and services.

Provider contracts (Google token endpoint, userinfo, Drive file resources) are
parsed at the boundary so services never index into raw JSON. Unknown provider
fields are ignored.
"""
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


# --- Google provider responses ---


class _ProviderModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class TokenResponse(_ProviderModel):
    """POST https://oauth2.googleapis.com/token (either grant type)."""
    access_token: str
    expires_in: int = 3600
    refresh_token: str | None = None
    token_type: str | None = None


class GoogleUserInfo(_ProviderModel):
    """OpenID Connect userinfo; sub is the stable Google id."""
    sub: str
    email: str
    name: str | None = None


class DriveOwner(_ProviderModel):
    emailAddress: str | None = None
    displayName: str | None = None


class DriveFileResource(_ProviderModel):
    """Drive v3 file resource. Only id is guaranteed; the rest depends on `fields`."""
    id: str
    name: str = ""
    mimeType: str = ""
    size: str | None = None
    createdTime: datetime | None = None
    modifiedTime: datetime | None = None
    webViewLink: str | None = None
    webContentLink: str | None = None
    parents: list[str] | None = None
    trashed: bool | None = None
    kind: str | None = None
    owners: list[DriveOwner] | None = None


class DriveFileList(_ProviderModel):
    files: list[DriveFileResource] = Field(default_factory=list)
    nextPageToken: str | None = None


# --- Request bodies ---


class AuthCallbackBody(BaseModel):
    code: str = Field(..., min_length=1)
    state: str | None = None


class CreateApiKeyBody(BaseModel):
    keyName: str = Field(..., min_length=1, max_length=255)


class UploadFileBody(BaseModel):
    """Upload request; content is the file's bytes, base64 encoded."""
    name: str = Field(..., min_length=1)
    mimeType: str = Field(..., min_length=1)
    parentId: str | None = None
    content: str


# --- Authenticated caller ---


class UserContext(BaseModel):
    """Who is calling; produced by session or API key validation."""
    userId: int
    googleId: str
    email: str
