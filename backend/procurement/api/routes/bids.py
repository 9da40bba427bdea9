import uuid
from typing import Optional, Union

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from procurement.api.deps import RequestContext, get_db, get_request_context
from procurement.schemas.bids import (
    AuctionLeaderboardRead,
    BidBoardRead,
    BidSubmitRequest,
    BidSubmitResponse,
    GlobalLeaderboardRead,
    ItemPricesRead,
)
from procurement.services import bids as bid_service

router = APIRouter(prefix="/bids", tags=["bids"])


@router.get("", response_model=BidBoardRead)
def get_bid_board(
    auction_id: uuid.UUID = Query(...),
    supplier_id: uuid.UUID = Query(...),
    db: Session = Depends(get_db),
):
    return bid_service.bid_board(db, auction_id=str(auction_id), supplier_id=str(supplier_id))


@router.post("", response_model=BidSubmitResponse, status_code=status.HTTP_201_CREATED)
def submit_bids(
    payload: BidSubmitRequest,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
):
    bid_ids = bid_service.submit_bids(db, payload, ctx)
    return {"success": True, "message": "Bids submitted", "bid_ids": bid_ids}


@router.get(
    "/leaderboard",
    response_model=Union[AuctionLeaderboardRead, GlobalLeaderboardRead],
)
def get_leaderboard(
    auction_id: Optional[uuid.UUID] = Query(None),
    db: Session = Depends(get_db),
):
    if auction_id is not None:
        return bid_service.auction_leaderboard(db, str(auction_id))
    return bid_service.global_leaderboard(db)


@router.get("/items", response_model=ItemPricesRead)
def get_item_prices(
    auction_id: uuid.UUID = Query(...),
    supplier_id: uuid.UUID = Query(...),
    db: Session = Depends(get_db),
):
    return bid_service.item_prices(db, auction_id=str(auction_id), supplier_id=str(supplier_id))
