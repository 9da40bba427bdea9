from __future__ import annotations

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class BidLineCreate(BaseModel):
    auction_item_id: uuid.UUID | None = None
    amount: float = Field(..., gt=0, allow_inf_nan=False)
    # Accepted for compatibility; bids always carry the auction currency.
    currency: str | None = None


class BidSubmitRequest(BaseModel):
    auction_id: uuid.UUID
    supplier_id: uuid.UUID
    placed_by_profile_id: uuid.UUID
    lines: list[BidLineCreate] = Field(..., min_length=1)


class BidSubmitResponse(BaseModel):
    success: bool = True
    message: str
    bid_ids: list[str]


class LeaderboardEntryRead(BaseModel):
    rank: int
    supplier_id: str
    supplier_name: str
    total: float
    bid_count: int


class BidBoardRead(BaseModel):
    success: bool = True
    auction_type: str
    visibility_mode: str
    totals: list[LeaderboardEntryRead]
    leaderboard: list[LeaderboardEntryRead]
    myTotal: float | None
    myRank: int | None
    myLines: dict[str, float]


class AuctionLeaderboardRead(BaseModel):
    success: bool = True
    scope: Literal["auction"] = "auction"
    auction_id: str
    auction_title: str | None
    total_suppliers: int
    leaderboard: list[LeaderboardEntryRead]


class AuctionBoardBlock(BaseModel):
    auction_id: str
    auction_title: str
    total_suppliers: int
    leaderboard: list[LeaderboardEntryRead]


class SupplierSummaryRead(BaseModel):
    supplier_id: str
    supplier_name: str
    total: float
    bid_count: int
    auction_count: int


class GlobalLeaderboardRead(BaseModel):
    success: bool = True
    scope: Literal["global"] = "global"
    total_suppliers: int
    summary: list[SupplierSummaryRead]
    auctions: list[AuctionBoardBlock]


class ItemPriceRead(BaseModel):
    auction_item_id: str
    item_name: str | None
    qty: float
    unit_price: float
    total: float


class ItemPricesRead(BaseModel):
    success: bool = True
    items: list[ItemPriceRead]


class BidRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    auction_id: str
    auction_item_id: str | None
    supplier_id: str
    placed_by_profile_id: str
    amount: float
    currency: str
    created_at: datetime


class BidListRead(BaseModel):
    success: bool = True
    bids: list[BidRead]
