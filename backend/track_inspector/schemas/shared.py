"""Shared Pydantic schemas - the wire contract for the web console and mobile app.

Field names are snake_case in Python and camelCase on the wire; entity ids
serialize as ``_id`` because that is what existing clients read.
"""

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field, model_validator
from pydantic.alias_generators import to_camel
from typing import Optional, List
from datetime import datetime
from uuid import UUID

from track_inspector.core.enums import ReportStatus, RiskLevel, UserRole


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _id_field():
    return Field(validation_alias=AliasChoices("_id", "id"), serialization_alias="_id")


# ═══════════════════════════════════════════════════════════════
# REQUEST / RESPONSE SCHEMAS
# ═══════════════════════════════════════════════════════════════

class MessageResponse(BaseModel):
    message: str


# ─── User ──────────────────────────────────────────────────────
class UserCreate(CamelModel):
    name: str = Field(min_length=1)
    email: EmailStr
    role: UserRole
    password: str = Field(min_length=1)
    department: Optional[str] = None
    expertise: List[str] = Field(default_factory=list)
    phone_number: Optional[str] = None
    avatar: Optional[str] = None
    is_active: bool = True
    last_active: Optional[datetime] = None


class UserUpdate(CamelModel):
    """General profile update. There is no password field: passwords cannot change here."""
    name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[EmailStr] = None
    role: Optional[UserRole] = None
    department: Optional[str] = None
    expertise: Optional[List[str]] = None
    phone_number: Optional[str] = None
    avatar: Optional[str] = None
    is_active: Optional[bool] = None
    last_active: Optional[datetime] = None

    @model_validator(mode="after")
    def _reject_null_required(self):
        for name in ("name", "email", "role", "is_active"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{to_camel(name)} cannot be null")
        return self


class UserStatusUpdate(CamelModel):
    is_active: bool


class UserResponse(CamelModel):
    id: UUID = _id_field()
    name: str
    email: str
    role: UserRole
    department: Optional[str] = None
    expertise: List[str] = Field(default_factory=list)
    phone_number: Optional[str] = None
    avatar: Optional[str] = None
    is_active: bool
    last_active: Optional[datetime] = None
    created_at: datetime


# ─── Report ────────────────────────────────────────────────────
class CommentCreate(CamelModel):
    text: Optional[str] = None
    author: Optional[str] = None
    timestamp: Optional[datetime] = None


class CommentResponse(CamelModel):
    text: Optional[str] = None
    author: Optional[str] = None
    timestamp: datetime


class ReportCreate(CamelModel):
    defect_type: str = Field(min_length=1)
    location: str = Field(min_length=1)
    risk_level: RiskLevel
    report_date: Optional[datetime] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    status: ReportStatus = ReportStatus.PENDING
    assigned_to: Optional[str] = None
    reported_by: Optional[str] = None
    due_date: Optional[datetime] = None
    comments: List[CommentCreate] = Field(default_factory=list)


class ReportUpdate(CamelModel):
    """Partial update: only fields present in the payload are written."""
    defect_type: Optional[str] = Field(default=None, min_length=1)
    location: Optional[str] = Field(default=None, min_length=1)
    risk_level: Optional[RiskLevel] = None
    report_date: Optional[datetime] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    status: Optional[ReportStatus] = None
    assigned_to: Optional[str] = None
    reported_by: Optional[str] = None
    due_date: Optional[datetime] = None

    @model_validator(mode="after")
    def _reject_null_required(self):
        for name in ("defect_type", "location", "risk_level", "report_date", "status"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{to_camel(name)} cannot be null")
        return self


class ReportStatusUpdate(CamelModel):
    status: ReportStatus


class ReportResponse(CamelModel):
    id: UUID = _id_field()
    defect_type: str
    location: str
    report_date: datetime
    risk_level: RiskLevel
    description: Optional[str] = None
    image_url: Optional[str] = None
    status: ReportStatus
    assigned_to: Optional[str] = None
    reported_by: Optional[str] = None
    due_date: Optional[datetime] = None
    comments: List[CommentResponse] = Field(default_factory=list)


class DashboardStats(CamelModel):
    """Console dashboard counters: everything not Resolved counts as pending."""
    pending: int
    resolved: int
    high_risk: int


class StatusBreakdown(BaseModel):
    """Pie chart counters keyed exactly as the console expects."""
    pending: int
    resolved: int
    inprogress: int


# ─── Media ─────────────────────────────────────────────────────
class Base64UploadRequest(BaseModel):
    image: Optional[str] = None


class UploadResponse(CamelModel):
    image_url: str
