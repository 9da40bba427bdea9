import uuid
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from procurement import models
from procurement.api.deps import RequestContext, get_db, get_request_context
from procurement.schemas.suppliers import SupplierCreate, SupplierRead
from procurement.services.audit import audit_event

router = APIRouter(prefix="/suppliers", tags=["suppliers"])


def _name_taken(db: Session, name: str) -> bool:
    return (
        db.query(models.Supplier.id).filter(models.Supplier.company_name == name).first()
        is not None
    )


@router.get("", response_model=List[SupplierRead])
def list_suppliers(
    q: str | None = Query(None, description="Quick search on company name."),
    limit: int = Query(200, ge=1, le=500),
    db: Session = Depends(get_db),
):
    query = db.query(models.Supplier)
    if q and q.strip():
        query = query.filter(models.Supplier.company_name.ilike(f"%{q.strip()}%"))
    return query.order_by(models.Supplier.company_name.asc()).limit(limit).all()


@router.post("", response_model=SupplierRead, status_code=status.HTTP_201_CREATED)
def create_supplier(
    payload: SupplierCreate,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
):
    name = payload.company_name.strip()
    if _name_taken(db, name):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Supplier already exists")

    sup = models.Supplier(
        company_name=name,
        country=payload.country,
        registration_no=payload.registration_no,
        meta=payload.metadata,
    )
    db.add(sup)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        if _name_taken(db, name):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT, detail="Supplier already exists"
            ) from None
        raise
    db.refresh(sup)

    audit_event(
        db,
        resource_type="supplier",
        resource_id=sup.id,
        action="created",
        actor_profile_id=None,
        payload={"company_name": sup.company_name, "country": sup.country},
        **ctx.audit_kwargs(),
    )
    return sup


@router.get("/{supplier_id}", response_model=SupplierRead)
def get_supplier(supplier_id: uuid.UUID, db: Session = Depends(get_db)):
    sup = db.get(models.Supplier, str(supplier_id))
    if sup is None:
        raise HTTPException(status_code=404, detail="Supplier not found")
    return sup
