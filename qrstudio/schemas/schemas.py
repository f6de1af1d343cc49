"""Pydantic schemas for API request/response serialization."""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any, Literal, Union
from datetime import datetime


# ---- Auth ----
class LoginRequest(BaseModel):
    email: str = Field(..., min_length=4)
    password: str = Field(..., min_length=4)

class TokenResponse(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    user: Optional[Dict[str, Any]] = None

class RefreshRequest(BaseModel):
    refresh_token: str

class RegisterRequest(BaseModel):
    email: str = Field(..., min_length=4)
    password: str = Field(..., min_length=6)
    name: str = Field(..., min_length=1)

class ProfileUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    avatar_url: Optional[str] = None

class PasswordChangeRequest(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=6)


# ---- User ----
class UserOut(BaseModel):
    id: int
    name: str
    email: str
    role: str
    plan: str
    avatar_url: Optional[str] = None
    is_active: bool = True
    qr_count: int = 0
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class UserListResponse(BaseModel):
    users: List[UserOut]
    total: int
    page: int
    limit: int

class RoleUpdateRequest(BaseModel):
    role: str

class StatusUpdateRequest(BaseModel):
    is_active: bool

class BulkUserUpdateRequest(BaseModel):
    user_ids: List[int] = Field(..., min_length=1)
    updates: Dict[str, Any]

class UserStatsOut(BaseModel):
    total: int
    active: int
    inactive: int
    by_role: Dict[str, int]
    by_plan: Dict[str, int]
    recent_signups: int


# ---- Activity ----
class ActivityLogOut(BaseModel):
    id: int
    user_id: Optional[int] = None
    action: str
    details: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ActivityLogListResponse(BaseModel):
    logs: List[ActivityLogOut]
    total: int
    page: int
    page_size: int


# ---- Roles ----
class RoleOut(BaseModel):
    key: str
    name: str
    level: int
    permissions: List[str]
    description: str

class PermissionOut(BaseModel):
    key: str
    name: str
    description: str

class PermissionCategoryOut(BaseModel):
    category: str
    permissions: List[PermissionOut]


# ---- QR content shapes ----
class WifiContent(BaseModel):
    ssid: str = Field(..., min_length=1)
    password: str = ""
    security: Literal["WPA", "WEP", "nopass"] = "WPA"
    hidden: bool = False

class VCardContent(BaseModel):
    name: str = Field(..., min_length=1)
    organization: str = ""
    title: str = ""
    phone: str = ""
    email: str = ""
    website: str = ""


# ---- QR codes ----
QRTypeName = Literal["url", "text", "email", "phone", "sms", "wifi", "vcard"]

class QRCodeCreate(BaseModel):
    name: str = Field(..., min_length=1)
    type: QRTypeName = "url"
    content: Union[str, Dict[str, Any]]
    is_dynamic: bool = True
    is_active: bool = True
    password: Optional[str] = None
    expires_at: Optional[datetime] = None
    scan_limit: Optional[int] = None
    design: Optional[Dict[str, Any]] = None

class QRCodeUpdate(BaseModel):
    name: Optional[str] = None
    content: Optional[Union[str, Dict[str, Any]]] = None
    is_active: Optional[bool] = None
    password: Optional[str] = None
    expires_at: Optional[datetime] = None
    scan_limit: Optional[int] = None
    design: Optional[Dict[str, Any]] = None

class QRCodeOut(BaseModel):
    id: int
    owner_id: int
    name: str
    type: str
    content: Union[str, Dict[str, Any]]
    is_dynamic: bool
    is_active: bool
    has_password: bool = False
    expires_at: Optional[datetime] = None
    scan_limit: Optional[int] = None
    design: Optional[Dict[str, Any]] = None
    scans: int = 0
    unique_scans: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class QRPayloadOut(BaseModel):
    id: int
    type: str
    payload: str


# ---- Bulk import ----
class BulkPreviewColumn(BaseModel):
    name: str
    mapped_to: Optional[str] = None

class BulkPreviewResponse(BaseModel):
    filename: str
    row_count: int
    columns: List[BulkPreviewColumn]
    rows: List[Dict[str, Any]]

class BulkRowOutcomeOut(BaseModel):
    row: int
    status: Literal["created", "skipped", "failed"]
    reason: Optional[str] = None
    qr_id: Optional[int] = None

class BulkImportReportOut(BaseModel):
    created_count: int
    skipped_count: int
    failed_count: int
    samples: List[QRCodeOut]
    remaining: int
    outcomes: List[BulkRowOutcomeOut]


# ---- Settings ----
class SettingsUpdateRequest(BaseModel):
    values: Dict[str, str]

class FeatureToggleRequest(BaseModel):
    enabled: bool


# ---- Generic ----
class MessageResponse(BaseModel):
    message: str
    detail: Optional[Any] = None
