from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from procurement.api.deps import get_db
from procurement.schemas.audit import AuditEventList
from procurement.services.audit import list_audit_events

router = APIRouter(prefix="/audit-log", tags=["audit"])


@router.get("", response_model=AuditEventList)
def get_audit_log(
    resource_type: Optional[str] = Query(None),
    resource_id: Optional[str] = Query(None),
    entity: Optional[str] = Query(None, description="Alias of resource_type."),
    entity_id: Optional[str] = Query(None, description="Alias of resource_id."),
    db: Session = Depends(get_db),
):
    rtype = (resource_type or entity or "").strip()
    rid = (resource_id or entity_id or "").strip()
    if not rtype or not rid:
        raise HTTPException(status_code=400, detail="resource_type and resource_id are required")

    return {"success": True, "events": list_audit_events(db, resource_type=rtype, resource_id=rid)}
