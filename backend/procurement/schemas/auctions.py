from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from procurement.schemas.bids import LeaderboardEntryRead

AuctionTypeValue = Literal["standard_reverse", "ranked_reverse", "sealed_reverse", "sealed_bid"]
VisibilityModeValue = Literal["open_lowest", "rank_only", "sealed"]
AuctionStatusValue = Literal["draft", "published", "live", "closed", "awarded", "archived"]


class AuctionItemCreate(BaseModel):
    description: str = Field(..., min_length=1, max_length=4000)
    qty: float | None = Field(None, gt=0, allow_inf_nan=False)
    uom: str | None = Field(None, max_length=16)
    rfq_item_id: uuid.UUID | None = None


class AuctionCreate(BaseModel):
    created_by: uuid.UUID
    organization_id: uuid.UUID | None = None
    rfq_id: uuid.UUID | None = None
    auction_type: AuctionTypeValue = "standard_reverse"
    visibility_mode: VisibilityModeValue = "open_lowest"
    currency: str = Field("USD", min_length=3, max_length=8)
    language: str | None = Field(None, max_length=8)
    start_at: datetime | None = None
    end_at: datetime | None = None
    config: dict[str, Any] | None = None
    items: list[AuctionItemCreate] = Field(default_factory=list)

    @model_validator(mode="after")
    def _window_is_ordered(self):
        if self.start_at and self.end_at and self.end_at <= self.start_at:
            raise ValueError("end_at must be after start_at")
        return self


class AuctionItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    description: str | None
    qty: float | None
    uom: str | None
    rfq_item_id: str | None


class AuctionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    rfq_id: str | None
    organization_id: str | None
    auction_type: str
    visibility_mode: str
    status: str
    currency: str
    language: str | None
    start_at: datetime | None
    end_at: datetime | None
    config: dict[str, Any] | None
    created_by: str | None
    created_at: datetime
    items: list[AuctionItemRead] = []


class AuctionPublishRequest(BaseModel):
    action: Literal["publish", "unpublish"]
    performed_by: uuid.UUID


class AuctionStartRequest(BaseModel):
    started_by: uuid.UUID


class AuctionCloseRequest(BaseModel):
    performed_by: uuid.UUID
    reason: str | None = Field(None, max_length=2000)


class AuctionAwardRequest(BaseModel):
    awarded_by: uuid.UUID
    supplier_id: uuid.UUID | None = None
    award_summary: str | None = Field(None, max_length=4000)


class AuctionActionResponse(BaseModel):
    success: bool = True
    message: str
    auction: AuctionRead


class AwardRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    auction_id: str
    rfq_id: str | None
    winning_bid_id: str | None
    supplier_id: str
    awarded_by: str
    awarded_at: datetime
    award_summary: str | None
    total: float | None
    currency: str | None
    status: str


class AwardResponse(BaseModel):
    success: bool = True
    message: str
    award: AwardRead


class AuctionStats(BaseModel):
    total_bids: int
    total_suppliers: int
    lowest_bid: float | None


class AuctionSummaryRead(BaseModel):
    success: bool = True
    auction: AuctionRead
    stats: AuctionStats
    leaderboard: list[LeaderboardEntryRead]
    award: AwardRead | None = None
