from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

ApprovalStatusValue = Literal["pending", "in_progress", "approved", "rejected"]


class ApprovalTemplateCreate(BaseModel):
    organization_id: uuid.UUID
    name: str = Field(..., min_length=1, max_length=255)
    created_by: uuid.UUID
    description: str | None = Field(None, max_length=4000)
    is_default: bool = False


class ApprovalTemplateRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    organization_id: str
    name: str
    description: str | None
    is_default: bool
    created_by: str | None
    created_at: datetime


class ApprovalTemplateList(BaseModel):
    success: bool = True
    templates: list[ApprovalTemplateRead]


class ApprovalTemplateResponse(BaseModel):
    success: bool = True
    message: str
    template: ApprovalTemplateRead


class ApprovalStepCreate(BaseModel):
    step_no: int = Field(..., ge=1)
    created_by: uuid.UUID
    role_id: uuid.UUID | None = None
    profile_id: uuid.UUID | None = None
    condition_json: dict[str, Any] | None = None
    escalate_to: uuid.UUID | None = None
    sla_hours: int | None = Field(None, ge=0)


class ApprovalStepRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    template_id: str
    step_no: int
    role_id: str | None
    profile_id: str | None
    condition_json: dict[str, Any] | None
    escalate_to: str | None
    sla_hours: int | None


class ApprovalStepList(BaseModel):
    success: bool = True
    steps: list[ApprovalStepRead]


class ApprovalStepResponse(BaseModel):
    success: bool = True
    message: str
    step: ApprovalStepRead


class ApprovalStartRequest(BaseModel):
    entity_type: str = Field(..., min_length=1, max_length=64)
    entity_id: uuid.UUID
    template_id: uuid.UUID
    created_by: uuid.UUID


class AuctionApprovalRequest(BaseModel):
    auction_id: uuid.UUID
    created_by: uuid.UUID


class ApprovalComment(BaseModel):
    actor_profile_id: str
    action: str
    comment: str | None = None
    step_no: int
    timestamp: str


class ApprovalRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    entity_type: str
    entity_id: str
    template_id: str
    current_step_no: int
    status: ApprovalStatusValue
    created_by: str | None
    created_at: datetime
    acted_at: datetime | None
    comments: list[ApprovalComment] = []


class ApprovalStartResponse(BaseModel):
    success: bool = True
    message: str
    approval: ApprovalRead
    next_approver: str | None


class AuctionApprovalResponse(BaseModel):
    success: bool = True
    message: str
    approval: ApprovalRead
    template: ApprovalTemplateRead
    steps: list[ApprovalStepRead]


class ApprovalAdvanceRequest(BaseModel):
    actor_profile_id: uuid.UUID
    action: str = Field(..., min_length=1)
    comment: str | None = Field(None, max_length=4000)


class ApprovalAdvanceResponse(BaseModel):
    success: bool = True
    message: str
    next_step_no: int
    status: ApprovalStatusValue


class NamedRef(BaseModel):
    id: str
    name: str


class CurrentApprover(BaseModel):
    role: NamedRef | None = None
    profile: NamedRef | None = None


class AuditEntryRead(BaseModel):
    id: str
    action: str
    payload: dict[str, Any] | None
    created_at: datetime
    actor: str


class ApprovalDetail(ApprovalRead):
    template: dict[str, Any] | None = None
    started_by: NamedRef | None = None
    current_approver: CurrentApprover
    started_at: datetime
    steps: list[ApprovalStepRead]
    audits: list[AuditEntryRead]


class ApprovalDetailResponse(BaseModel):
    success: bool = True
    approval: ApprovalDetail


class TimelineItem(BaseModel):
    type: Literal["comment", "audit"]
    action: str
    actor: str
    step_no: int | None = None
    timestamp: str
    details: Any


class ApprovalHistoryResponse(BaseModel):
    success: bool = True
    approval_id: str
    entity_type: str
    entity_id: str
    status: ApprovalStatusValue
    current_step_no: int
    steps: list[ApprovalStepRead]
    timeline: list[TimelineItem]
