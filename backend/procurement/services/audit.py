import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from procurement import models

logger = logging.getLogger("procurement.audit")


@dataclass(frozen=True)
class RequestContext:
    """Request metadata stamped on audit events."""

    request_id: Optional[str] = None
    ip: Optional[str] = None
    user_agent: Optional[str] = None

    def audit_kwargs(self) -> Dict[str, Any]:
        return {"request_id": self.request_id, "ip": self.ip, "user_agent": self.user_agent}


def audit_event(
    db: Session,
    *,
    resource_type: str,
    resource_id: str,
    action: str,
    actor_profile_id: Optional[str],
    payload: Optional[Dict[str, Any]] = None,
    request_id: str | None = None,
    ip: str | None = None,
    user_agent: str | None = None,
) -> Optional[str]:
    """
    Persist an audit event; a failed write is logged and rolled back.

    Call after the primary mutation has been committed. Returns the created
    audit event id when available.
    """
    event = models.AuditEvent(
        actor_profile_id=actor_profile_id,
        resource_type=resource_type,
        resource_id=str(resource_id),
        action=action,
        payload=payload or {},
        request_id=request_id,
        ip=ip,
        user_agent=(user_agent or "")[:256] or None,
    )
    try:
        db.add(event)
        db.commit()
        return event.id
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(
            "audit_write_failed",
            extra={
                "resource_type": resource_type,
                "resource_id": str(resource_id),
                "action": action,
                "error": str(e),
            },
        )
        return None


def list_audit_events(db: Session, *, resource_type: str, resource_id: str):
    return (
        db.query(models.AuditEvent)
        .filter(models.AuditEvent.resource_type == resource_type)
        .filter(models.AuditEvent.resource_id == str(resource_id))
        .order_by(models.AuditEvent.created_at.desc())
        .all()
    )
