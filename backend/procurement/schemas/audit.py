from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict


class AuditEventRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    actor_profile_id: str | None
    resource_type: str
    resource_id: str
    action: str
    payload: dict[str, Any] | None
    request_id: str | None
    created_at: datetime


class AuditEventList(BaseModel):
    success: bool = True
    events: list[AuditEventRead]
