import uuid
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from procurement.api.deps import RequestContext, get_db, get_request_context
from procurement.schemas.auctions import (
    AuctionActionResponse,
    AuctionAwardRequest,
    AuctionCloseRequest,
    AuctionCreate,
    AuctionPublishRequest,
    AuctionRead,
    AuctionStartRequest,
    AuctionStatusValue,
    AuctionSummaryRead,
    AwardResponse,
)
from procurement.schemas.bids import BidListRead
from procurement.services import auctions as auction_service
from procurement.services.bids import get_auction_or_404

router = APIRouter(prefix="/auctions", tags=["auctions"])


@router.get("", response_model=List[AuctionRead])
def list_auctions(
    status_filter: Optional[AuctionStatusValue] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
):
    return auction_service.list_auctions(db, status=status_filter, limit=limit)


@router.post("", response_model=AuctionRead, status_code=status.HTTP_201_CREATED)
def create_auction(
    payload: AuctionCreate,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
):
    return auction_service.create_auction(db, payload, ctx)


@router.get("/{auction_id}", response_model=AuctionRead)
def get_auction(auction_id: uuid.UUID, db: Session = Depends(get_db)):
    return get_auction_or_404(db, str(auction_id))


@router.patch("/{auction_id}/publish", response_model=AuctionActionResponse)
def publish_auction(
    auction_id: uuid.UUID,
    payload: AuctionPublishRequest,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
):
    auction, message = auction_service.set_published(db, str(auction_id), payload, ctx)
    return {"success": True, "message": message, "auction": auction}


@router.post("/{auction_id}/start", response_model=AuctionActionResponse)
def start_auction(
    auction_id: uuid.UUID,
    payload: AuctionStartRequest,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
):
    auction = auction_service.start_auction(db, str(auction_id), str(payload.started_by), ctx)
    return {"success": True, "message": "Auction started successfully", "auction": auction}


@router.patch("/{auction_id}/close", response_model=AuctionActionResponse)
def close_auction(
    auction_id: uuid.UUID,
    payload: AuctionCloseRequest,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
):
    auction = auction_service.close_auction(db, str(auction_id), payload, ctx)
    return {"success": True, "message": "Auction closed successfully.", "auction": auction}


@router.post("/{auction_id}/award", response_model=AwardResponse)
def award_auction(
    auction_id: uuid.UUID,
    payload: AuctionAwardRequest,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
):
    award = auction_service.award_auction(db, str(auction_id), payload, ctx)
    return {"success": True, "message": "Auction awarded successfully", "award": award}


@router.get("/{auction_id}/bids", response_model=BidListRead)
def list_auction_bids(
    auction_id: uuid.UUID,
    supplier_id: Optional[uuid.UUID] = Query(None),
    sort: Literal["asc", "desc"] = Query("asc"),
    db: Session = Depends(get_db),
):
    bids = auction_service.list_bids(
        db,
        str(auction_id),
        supplier_id=str(supplier_id) if supplier_id else None,
        sort=sort,
    )
    return {"success": True, "bids": bids}


@router.get("/{auction_id}/summary", response_model=AuctionSummaryRead)
def get_auction_summary(auction_id: uuid.UUID, db: Session = Depends(get_db)):
    return auction_service.auction_summary(db, str(auction_id))
