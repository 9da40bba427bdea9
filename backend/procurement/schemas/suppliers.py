from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class SupplierCreate(BaseModel):
    company_name: str = Field(..., min_length=1, max_length=255)
    country: Optional[str] = Field(None, max_length=64)
    registration_no: Optional[str] = Field(None, max_length=64)
    metadata: Optional[dict[str, Any]] = None


class SupplierRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    company_name: str
    country: Optional[str] = None
    registration_no: Optional[str] = None
    status: str
    metadata: Optional[dict[str, Any]] = Field(None, validation_alias="meta")
    created_at: Optional[datetime] = None
