import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from procurement.api.deps import RequestContext, get_db, get_request_context
from procurement.schemas.approvals import (
    ApprovalAdvanceRequest,
    ApprovalAdvanceResponse,
    ApprovalDetailResponse,
    ApprovalHistoryResponse,
    ApprovalStartRequest,
    ApprovalStartResponse,
    ApprovalStepCreate,
    ApprovalStepList,
    ApprovalStepResponse,
    ApprovalTemplateCreate,
    ApprovalTemplateList,
    ApprovalTemplateResponse,
    AuctionApprovalRequest,
    AuctionApprovalResponse,
)
from procurement.services import approvals as approval_service

router = APIRouter(prefix="/approvals", tags=["approvals"])


@router.get("", response_model=ApprovalTemplateList)
def list_templates(
    organization_id: uuid.UUID = Query(...),
    is_default: Optional[bool] = Query(None),
    db: Session = Depends(get_db),
):
    templates = approval_service.list_templates(
        db, organization_id=str(organization_id), is_default=is_default
    )
    return {"success": True, "templates": templates}


@router.post("", response_model=ApprovalTemplateResponse, status_code=status.HTTP_201_CREATED)
def create_template(
    payload: ApprovalTemplateCreate,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
):
    template = approval_service.create_template(db, payload, ctx)
    return {"success": True, "message": "Approval template created", "template": template}


@router.get("/templates/{template_id}/steps", response_model=ApprovalStepList)
def list_steps(template_id: uuid.UUID, db: Session = Depends(get_db)):
    return {"success": True, "steps": approval_service.list_steps(db, str(template_id))}


@router.post(
    "/templates/{template_id}/steps",
    response_model=ApprovalStepResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_step(
    template_id: uuid.UUID,
    payload: ApprovalStepCreate,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
):
    step = approval_service.add_step(db, str(template_id), payload, ctx)
    return {"success": True, "message": f"Step {step.step_no} added successfully", "step": step}


@router.post(
    "/templates/{template_id}/auction",
    response_model=AuctionApprovalResponse,
    status_code=status.HTTP_201_CREATED,
)
def start_auction_approval(
    template_id: uuid.UUID,
    payload: AuctionApprovalRequest,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
):
    approval, template, steps = approval_service.start_auction_approval(
        db,
        template_id=str(template_id),
        auction_id=str(payload.auction_id),
        created_by=str(payload.created_by),
        ctx=ctx,
    )
    return {
        "success": True,
        "message": f"Approval process for auction started using template '{template.name}'",
        "approval": approval,
        "template": template,
        "steps": steps,
    }


@router.post("/start", response_model=ApprovalStartResponse, status_code=status.HTTP_201_CREATED)
def start_approval(
    payload: ApprovalStartRequest,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
):
    approval, template, next_approver = approval_service.start_approval(
        db,
        entity_type=payload.entity_type.strip(),
        entity_id=str(payload.entity_id),
        template_id=str(payload.template_id),
        created_by=str(payload.created_by),
        ctx=ctx,
    )
    return {
        "success": True,
        "message": f"Approval process started using template '{template.name}'",
        "approval": approval,
        "next_approver": next_approver,
    }


@router.post("/{approval_id}/advance", response_model=ApprovalAdvanceResponse)
def advance_approval(
    approval_id: uuid.UUID,
    payload: ApprovalAdvanceRequest,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
):
    transition = approval_service.advance_approval(db, str(approval_id), payload, ctx)
    return {
        "success": True,
        "message": transition.message,
        "next_step_no": transition.next_step_no,
        "status": transition.new_status,
    }


@router.get("/{approval_id}", response_model=ApprovalDetailResponse)
def get_approval(approval_id: uuid.UUID, db: Session = Depends(get_db)):
    return {"success": True, "approval": approval_service.approval_detail(db, str(approval_id))}


@router.get("/{approval_id}/history", response_model=ApprovalHistoryResponse)
def get_approval_history(approval_id: uuid.UUID, db: Session = Depends(get_db)):
    return approval_service.approval_history(db, str(approval_id))
