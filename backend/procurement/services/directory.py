from __future__ import annotations

from typing import Iterable

from fastapi import HTTPException
from sqlalchemy.orm import Session

from procurement import models

UNKNOWN_ACTOR = "Unknown"
SYSTEM_ACTOR = "System"


def supplier_names(db: Session, supplier_ids: Iterable[str]) -> dict[str, str]:
    ids = {str(s) for s in supplier_ids if s}
    if not ids:
        return {}
    rows = (
        db.query(models.Supplier.id, models.Supplier.company_name)
        .filter(models.Supplier.id.in_(ids))
        .all()
    )
    return {row.id: row.company_name for row in rows if row.company_name}


def profile_names(db: Session, profile_ids: Iterable[str | None]) -> dict[str, str]:
    ids = {str(p) for p in profile_ids if p}
    if not ids:
        return {}
    rows = db.query(models.Profile).filter(models.Profile.id.in_(ids)).all()
    return {p.id: p.display_name for p in rows if p.display_name}


def profile_ref(profile: models.Profile | None) -> dict | None:
    if profile is None:
        return None
    return {"id": profile.id, "name": profile.display_name or UNKNOWN_ACTOR}


def role_ref(role: models.Role | None) -> dict | None:
    if role is None:
        return None
    return {"id": role.id, "name": role.name}


def get_profile_or_404(db: Session, profile_id: str) -> models.Profile:
    profile = db.get(models.Profile, str(profile_id))
    if profile is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    return profile


def get_role_or_404(db: Session, role_id: str) -> models.Role:
    role = db.get(models.Role, str(role_id))
    if role is None:
        raise HTTPException(status_code=404, detail="Role not found")
    return role
