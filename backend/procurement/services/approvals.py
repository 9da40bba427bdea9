from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from procurement import models
from procurement.core.clock import as_utc, isoformat, utc_now
from procurement.models.domain import ApprovalStatus
from procurement.schemas.approvals import (
    ApprovalAdvanceRequest,
    ApprovalStepCreate,
    ApprovalTemplateCreate,
)
from procurement.services import approval_workflow as wf
from procurement.services.audit import RequestContext, audit_event, list_audit_events
from procurement.services.directory import (
    SYSTEM_ACTOR,
    UNKNOWN_ACTOR,
    get_profile_or_404,
    get_role_or_404,
    profile_names,
    profile_ref,
    role_ref,
)
from procurement.services.transitions import atomic_advance_approval

logger = logging.getLogger("procurement.approvals")

MSG_DUPLICATE_APPROVAL = "An approval workflow already exists for this entity"
MSG_DUPLICATE_TEMPLATE = "An approval template with this name already exists"
MSG_NO_FIRST_STEP = "Approval template does not have a first step defined"


# -----------------------------
# Templates and steps
# -----------------------------


def get_template_or_404(db: Session, template_id: str) -> models.ApprovalTemplate:
    template = db.get(models.ApprovalTemplate, str(template_id))
    if template is None:
        raise HTTPException(status_code=404, detail="Approval template not found")
    return template


def list_templates(
    db: Session, *, organization_id: str, is_default: bool | None = None
) -> list[models.ApprovalTemplate]:
    q = db.query(models.ApprovalTemplate).filter(
        models.ApprovalTemplate.organization_id == str(organization_id)
    )
    if is_default is not None:
        q = q.filter(models.ApprovalTemplate.is_default.is_(is_default))
    return q.order_by(models.ApprovalTemplate.created_at.desc()).all()


def _template_name_taken(db: Session, organization_id: str, name: str) -> bool:
    return (
        db.query(models.ApprovalTemplate.id)
        .filter(models.ApprovalTemplate.organization_id == organization_id)
        .filter(models.ApprovalTemplate.name == name)
        .first()
        is not None
    )


def create_template(
    db: Session, payload: ApprovalTemplateCreate, ctx: RequestContext
) -> models.ApprovalTemplate:
    organization_id = str(payload.organization_id)
    name = payload.name.strip()
    created_by = get_profile_or_404(db, str(payload.created_by)).id

    if _template_name_taken(db, organization_id, name):
        raise HTTPException(status_code=409, detail=MSG_DUPLICATE_TEMPLATE)

    template = models.ApprovalTemplate(
        organization_id=organization_id,
        name=name,
        description=payload.description,
        is_default=payload.is_default,
        created_by=created_by,
    )
    db.add(template)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        # Only a concurrent insert of the same name is a conflict.
        if _template_name_taken(db, organization_id, name):
            raise HTTPException(status_code=409, detail=MSG_DUPLICATE_TEMPLATE) from None
        raise
    db.refresh(template)

    audit_event(
        db,
        resource_type="approval_template",
        resource_id=template.id,
        action="created",
        actor_profile_id=created_by,
        payload={
            "organization_id": organization_id,
            "name": name,
            "description": payload.description,
            "is_default": payload.is_default,
        },
        **ctx.audit_kwargs(),
    )
    logger.info(
        "approval_template.created",
        extra={"template_id": template.id, "organization_id": organization_id},
    )
    return template


def list_steps(db: Session, template_id: str) -> list[models.ApprovalStep]:
    get_template_or_404(db, template_id)
    return (
        db.query(models.ApprovalStep)
        .filter(models.ApprovalStep.template_id == str(template_id))
        .order_by(models.ApprovalStep.step_no.asc())
        .all()
    )


def _step_no_taken(db: Session, template_id: str, step_no: int) -> bool:
    return (
        db.query(models.ApprovalStep.id)
        .filter(models.ApprovalStep.template_id == template_id)
        .filter(models.ApprovalStep.step_no == step_no)
        .first()
        is not None
    )


def add_step(
    db: Session, template_id: str, payload: ApprovalStepCreate, ctx: RequestContext
) -> models.ApprovalStep:
    template = get_template_or_404(db, template_id)
    created_by = get_profile_or_404(db, str(payload.created_by)).id
    role_id = get_role_or_404(db, str(payload.role_id)).id if payload.role_id else None
    profile_id = get_profile_or_404(db, str(payload.profile_id)).id if payload.profile_id else None
    duplicate_detail = f"Step number {payload.step_no} already exists for this template"

    if _step_no_taken(db, template.id, payload.step_no):
        raise HTTPException(status_code=409, detail=duplicate_detail)

    step = models.ApprovalStep(
        template_id=template.id,
        step_no=payload.step_no,
        role_id=role_id,
        profile_id=profile_id,
        condition_json=payload.condition_json,
        escalate_to=str(payload.escalate_to) if payload.escalate_to else None,
        sla_hours=payload.sla_hours,
    )
    db.add(step)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        if _step_no_taken(db, template_id, payload.step_no):
            raise HTTPException(status_code=409, detail=duplicate_detail) from None
        raise
    db.refresh(step)

    audit_event(
        db,
        resource_type="approval_step",
        resource_id=step.id,
        action="created",
        actor_profile_id=created_by,
        payload={
            "template_id": step.template_id,
            "step_no": step.step_no,
            "role_id": step.role_id,
            "profile_id": step.profile_id,
            "escalate_to": step.escalate_to,
            "sla_hours": step.sla_hours,
        },
        **ctx.audit_kwargs(),
    )
    return step


def _step_refs(steps: list[models.ApprovalStep]) -> list[wf.StepRef]:
    return [wf.StepRef(step_no=s.step_no, role_id=s.role_id, profile_id=s.profile_id) for s in steps]


# -----------------------------
# Approvals
# -----------------------------


def get_approval_or_404(db: Session, approval_id: str) -> models.Approval:
    approval = db.get(models.Approval, str(approval_id))
    if approval is None:
        raise HTTPException(status_code=404, detail="Approval not found")
    return approval


def _entity_has_approval(db: Session, entity_type: str, entity_id: str) -> bool:
    return (
        db.query(models.Approval.id)
        .filter(models.Approval.entity_type == entity_type)
        .filter(models.Approval.entity_id == entity_id)
        .first()
        is not None
    )


def _create_approval(
    db: Session,
    *,
    entity_type: str,
    entity_id: str,
    template: models.ApprovalTemplate,
    created_by: str,
) -> tuple[models.Approval, list[models.ApprovalStep], wf.StepRef]:
    created_by = get_profile_or_404(db, created_by).id
    if _entity_has_approval(db, entity_type, entity_id):
        raise HTTPException(status_code=409, detail=MSG_DUPLICATE_APPROVAL)

    steps = list_steps(db, template.id)
    first = wf.first_step(_step_refs(steps))
    if first is None:
        raise HTTPException(status_code=400, detail=MSG_NO_FIRST_STEP)

    approval = models.Approval(
        entity_type=entity_type,
        entity_id=entity_id,
        template_id=template.id,
        current_step_no=first.step_no,
        status=ApprovalStatus.pending.value,
        created_by=created_by,
        comments=[],
    )
    db.add(approval)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        # uq_approval_entity: a concurrent start for the same entity won.
        if _entity_has_approval(db, entity_type, entity_id):
            raise HTTPException(status_code=409, detail=MSG_DUPLICATE_APPROVAL) from None
        raise
    db.refresh(approval)
    return approval, steps, first


def start_approval(
    db: Session,
    *,
    entity_type: str,
    entity_id: str,
    template_id: str,
    created_by: str,
    ctx: RequestContext,
) -> tuple[models.Approval, models.ApprovalTemplate, str | None]:
    template = get_template_or_404(db, template_id)
    approval, _steps, first = _create_approval(
        db,
        entity_type=entity_type,
        entity_id=entity_id,
        template=template,
        created_by=created_by,
    )

    audit_event(
        db,
        resource_type="approval",
        resource_id=approval.id,
        action="started",
        actor_profile_id=created_by,
        payload={
            "entity_type": entity_type,
            "entity_id": entity_id,
            "template_id": template.id,
            "current_step_no": approval.current_step_no,
        },
        **ctx.audit_kwargs(),
    )
    logger.info(
        "approval.started",
        extra={
            "approval_id": approval.id,
            "entity_type": entity_type,
            "entity_id": entity_id,
            "template_id": template.id,
        },
    )
    return approval, template, first.approver


def start_auction_approval(
    db: Session,
    *,
    template_id: str,
    auction_id: str,
    created_by: str,
    ctx: RequestContext,
) -> tuple[models.Approval, models.ApprovalTemplate, list[models.ApprovalStep]]:
    template = get_template_or_404(db, template_id)
    if db.get(models.Auction, auction_id) is None:
        raise HTTPException(status_code=404, detail="Auction not found")

    approval, steps, _first = _create_approval(
        db,
        entity_type="auction",
        entity_id=auction_id,
        template=template,
        created_by=created_by,
    )

    audit_event(
        db,
        resource_type="approval",
        resource_id=approval.id,
        action="created",
        actor_profile_id=created_by,
        payload={
            "entity_type": "auction",
            "auction_id": auction_id,
            "template_name": template.name,
            "steps_count": len(steps),
        },
        **ctx.audit_kwargs(),
    )
    logger.info(
        "approval.started",
        extra={"approval_id": approval.id, "entity_type": "auction", "entity_id": auction_id},
    )
    return approval, template, steps


def advance_approval(
    db: Session, approval_id: str, payload: ApprovalAdvanceRequest, ctx: RequestContext
) -> wf.Transition:
    approval = get_approval_or_404(db, approval_id)
    actor = str(payload.actor_profile_id)
    action = payload.action

    steps = (
        db.query(models.ApprovalStep)
        .filter(models.ApprovalStep.template_id == approval.template_id)
        .all()
    )
    try:
        transition = wf.next_transition(
            status=approval.status,
            current_step_no=approval.current_step_no,
            steps=_step_refs(steps),
            action=action,
        )
    except wf.ApprovalTransitionError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None

    now = utc_now()
    comments = list(approval.comments or [])
    comments.append(
        wf.comment_entry(
            actor_profile_id=actor,
            action=action,
            comment=payload.comment,
            step_no=transition.acted_step_no,
            at=now,
        )
    )

    result = atomic_advance_approval(
        db=db,
        approval_id=approval.id,
        expected_status=transition.previous_status,
        expected_step_no=transition.acted_step_no,
        updates={
            "status": transition.new_status,
            "current_step_no": transition.next_step_no,
            "acted_at": now,
            "comments": comments,
        },
    )
    if not result.updated:
        db.rollback()
        raise HTTPException(status_code=409, detail="Approval was modified concurrently")
    db.commit()

    audit_event(
        db,
        resource_type="approval",
        resource_id=approval.id,
        action=action,
        actor_profile_id=actor,
        payload={
            "previous_status": transition.previous_status,
            "new_status": transition.new_status,
            "step_no": transition.acted_step_no,
            "entity_type": approval.entity_type,
            "entity_id": approval.entity_id,
        },
        **ctx.audit_kwargs(),
    )
    logger.info(
        "approval.advanced",
        extra={
            "approval_id": approval.id,
            "action": action,
            "step_no": transition.acted_step_no,
            "new_status": transition.new_status,
            "request_id": ctx.request_id,
        },
    )
    return transition


# -----------------------------
# Reporting
# -----------------------------


def _audit_entries(db: Session, approval_id: str) -> list[dict[str, Any]]:
    events = list_audit_events(db, resource_type="approval", resource_id=approval_id)
    events.reverse()
    names = profile_names(db, (e.actor_profile_id for e in events))
    return [
        {
            "id": e.id,
            "action": e.action,
            "payload": e.payload,
            "created_at": e.created_at,
            "actor": names.get(e.actor_profile_id or "", SYSTEM_ACTOR),
        }
        for e in events
    ]


def approval_detail(db: Session, approval_id: str) -> dict[str, Any]:
    approval = get_approval_or_404(db, approval_id)
    steps = list_steps(db, approval.template_id)
    current = next((s for s in steps if s.step_no == approval.current_step_no), None)
    template = approval.template

    return {
        "id": approval.id,
        "entity_type": approval.entity_type,
        "entity_id": approval.entity_id,
        "template_id": approval.template_id,
        "current_step_no": approval.current_step_no,
        "status": approval.status,
        "created_by": approval.created_by,
        "created_at": approval.created_at,
        "acted_at": approval.acted_at,
        "comments": approval.comments or [],
        "template": (
            {"id": template.id, "name": template.name, "description": template.description}
            if template is not None
            else None
        ),
        "started_by": profile_ref(approval.creator),
        "current_approver": {
            "role": role_ref(current.role) if current is not None else None,
            "profile": profile_ref(current.profile) if current is not None else None,
        },
        "started_at": approval.created_at,
        "steps": steps,
        "audits": _audit_entries(db, approval.id),
    }


def _sort_key(item: dict[str, Any]) -> datetime:
    value = item["_at"]
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return as_utc(value)


def approval_history(db: Session, approval_id: str) -> dict[str, Any]:
    """Comments and audit events of one approval, merged oldest first."""

    approval = get_approval_or_404(db, approval_id)
    comments = list(approval.comments or [])
    names = profile_names(db, (c.get("actor_profile_id") for c in comments))
    started_at = isoformat(approval.created_at)

    timeline: list[dict[str, Any]] = [
        {
            "type": "comment",
            "action": c.get("action") or "",
            "actor": names.get(c.get("actor_profile_id") or "", UNKNOWN_ACTOR),
            "step_no": c.get("step_no"),
            "timestamp": c.get("timestamp") or started_at,
            "details": c.get("comment") or "",
            "_at": c.get("timestamp") or started_at,
        }
        for c in comments
    ]
    for a in _audit_entries(db, approval.id):
        timeline.append(
            {
                "type": "audit",
                "action": a["action"],
                "actor": a["actor"],
                "step_no": None,
                "timestamp": isoformat(a["created_at"]),
                "details": a["payload"] or {},
                "_at": a["created_at"],
            }
        )

    # sorted() is stable: comments precede audits written at the same instant.
    timeline = sorted(timeline, key=_sort_key)
    for item in timeline:
        item.pop("_at")

    return {
        "success": True,
        "approval_id": approval.id,
        "entity_type": approval.entity_type,
        "entity_id": approval.entity_id,
        "status": approval.status,
        "current_step_no": approval.current_step_no,
        "steps": list_steps(db, approval.template_id),
        "timeline": timeline,
    }
