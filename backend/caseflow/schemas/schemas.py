"""
Pydantic schemas for API request/response models.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class PaginatedResponse(BaseModel):
    total: int
    page: int
    size: int
    pages: int


# ── Auth ──

class LoginRequest(BaseModel):
    email: str
    password: str


class UserSchema(BaseModel):
    model_config = {"from_attributes": True}

    id: str
    email: str
    first_name: str
    last_name: str
    role: str
    is_active: bool = True


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserSchema


class ProfileResponse(UserSchema):
    permissions: list[str] = []


# ── Cases ──

class CaseSummary(BaseModel):
    model_config = {"from_attributes": True}

    id: str
    title: str
    visa_type: str
    status: str
    priority: str
    applicant_id: str
    agent_id: str | None = None
    updated_at: datetime | None = None


class CaseListResponse(PaginatedResponse):
    items: list[CaseSummary]


class CaseDetail(CaseSummary):
    description: str | None = None
    notes: str | None = None
    submission_date: datetime | None = None
    decision_date: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime | None = None


class CaseCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    visa_type: str
    description: str | None = None
    priority: str = "medium"
    applicant_id: str | None = None  # admins may open a case on an applicant's behalf


class CaseStatusUpdate(BaseModel):
    status: str
    notes: str | None = None


class CaseAssign(BaseModel):
    agent_id: str | None = None


class CasePriorityUpdate(BaseModel):
    priority: str


# ── Documents ──

class DocumentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    document_type: str = Field(..., min_length=1, max_length=30)


class DocumentSchema(BaseModel):
    model_config = {"from_attributes": True}

    id: str
    case_id: str
    uploaded_by: str
    name: str
    document_type: str
    status: str
    created_at: datetime | None = None


# ── Access control ──

class AccessCheckRequest(BaseModel):
    resource_type: str
    resource_id: str
    action: str
    user_id: str | None = None  # defaults to the caller; admins may check for others


class AccessDecisionSchema(BaseModel):
    allowed: bool
    reason: str | None = None


class PermissionGroupCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    permissions: list[str]
    description: str | None = None


class PermissionGroupSchema(BaseModel):
    model_config = {"from_attributes": True}

    id: str
    name: str
    description: str | None = None
    permissions: list[str] = []


class PermissionGrant(BaseModel):
    user_id: str


# ── Audit ──

class AuditEntry(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    event_id: str
    actor_id: str
    entity_type: str
    entity_id: str
    action: str
    description: str
    details: dict = {}
    previous_hash: str | None = None
    current_hash: str
    created_at: datetime | None = None


class AuditListResponse(PaginatedResponse):
    items: list[AuditEntry]


class CaseHistoryResponse(BaseModel):
    case_id: str
    history: list[AuditEntry]


class IntegrityCheckResponse(BaseModel):
    valid: bool
    entries_checked: int
    first_invalid: str | None = None
    reason: str | None = None


# ── Notifications ──

class NotificationSchema(BaseModel):
    model_config = {"from_attributes": True}

    id: str
    kind: str
    title: str
    message: str
    data: dict = {}
    is_read: bool = False
    created_at: datetime | None = None
