from __future__ import annotations

import logging
from typing import Any

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from procurement import models
from procurement.core.clock import as_utc, utc_now
from procurement.models.domain import AuctionStatus, AwardStatus
from procurement.schemas.auctions import (
    AuctionAwardRequest,
    AuctionCloseRequest,
    AuctionCreate,
    AuctionPublishRequest,
)
from procurement.services.audit import RequestContext, audit_event
from procurement.services.bids import auction_leaderboard_entries, get_auction_or_404
from procurement.services.directory import get_profile_or_404
from procurement.services.transitions import atomic_transition_auction_status

logger = logging.getLogger("procurement.auctions")


def _conflict() -> HTTPException:
    return HTTPException(status_code=409, detail="Auction status changed concurrently")


def create_auction(db: Session, payload: AuctionCreate, ctx: RequestContext) -> models.Auction:
    created_by = get_profile_or_404(db, str(payload.created_by)).id
    auction = models.Auction(
        rfq_id=str(payload.rfq_id) if payload.rfq_id else None,
        organization_id=str(payload.organization_id) if payload.organization_id else None,
        auction_type=payload.auction_type,
        visibility_mode=payload.visibility_mode,
        currency=payload.currency.upper(),
        language=payload.language,
        start_at=as_utc(payload.start_at),
        end_at=as_utc(payload.end_at),
        config=payload.config,
        status=AuctionStatus.draft.value,
        created_by=created_by,
    )
    auction.items = [
        models.AuctionItem(
            position=index,
            description=item.description,
            qty=item.qty,
            uom=item.uom,
            rfq_item_id=str(item.rfq_item_id) if item.rfq_item_id else None,
        )
        for index, item in enumerate(payload.items)
    ]
    db.add(auction)
    db.commit()
    db.refresh(auction)

    audit_event(
        db,
        resource_type="auction",
        resource_id=auction.id,
        action="created",
        actor_profile_id=created_by,
        payload={
            "auction_type": auction.auction_type,
            "visibility_mode": auction.visibility_mode,
            "items_count": len(payload.items),
        },
        **ctx.audit_kwargs(),
    )
    logger.info(
        "auction.created",
        extra={"auction_id": auction.id, "auction_type": auction.auction_type},
    )
    return auction


def list_auctions(db: Session, *, status: str | None = None, limit: int = 50):
    q = db.query(models.Auction)
    if status:
        q = q.filter(models.Auction.status == status)
    return q.order_by(models.Auction.created_at.desc()).limit(limit).all()


def _record_transition(
    db: Session,
    auction: models.Auction,
    *,
    action: str,
    actor: str,
    previous_status: str,
    ctx: RequestContext,
    extra: dict[str, Any] | None = None,
) -> models.Auction:
    db.refresh(auction)
    payload = {"previous_status": previous_status, "new_status": auction.status}
    if extra:
        payload.update(extra)
    audit_event(
        db,
        resource_type="auction",
        resource_id=auction.id,
        action=action,
        actor_profile_id=actor,
        payload=payload,
        **ctx.audit_kwargs(),
    )
    logger.info(
        f"auction.{action}",
        extra={"auction_id": auction.id, "previous_status": previous_status},
    )
    return auction


def set_published(
    db: Session, auction_id: str, payload: AuctionPublishRequest, ctx: RequestContext
) -> tuple[models.Auction, str]:
    auction = get_auction_or_404(db, auction_id)
    previous = auction.status

    if payload.action == "publish":
        if previous == AuctionStatus.published.value:
            return auction, "Auction is already published."
        source, target = AuctionStatus.draft, AuctionStatus.published
    else:
        if previous == AuctionStatus.draft.value:
            return auction, "Auction is already in draft."
        source, target = AuctionStatus.published, AuctionStatus.draft

    if previous != source.value:
        raise HTTPException(
            status_code=400,
            detail=f"Auction in '{previous}' state cannot be {payload.action}ed.",
        )

    result = atomic_transition_auction_status(
        db=db, auction_id=auction.id, to_status=target, allowed_from=[source]
    )
    if not result.updated:
        db.rollback()
        raise _conflict()
    db.commit()

    action = "published" if payload.action == "publish" else "unpublished"
    auction = _record_transition(
        db, auction, action=action, actor=str(payload.performed_by), previous_status=previous, ctx=ctx
    )
    return auction, f"Auction {action} successfully."


def start_auction(db: Session, auction_id: str, started_by: str, ctx: RequestContext):
    auction = get_auction_or_404(db, auction_id)
    previous = auction.status
    if previous != AuctionStatus.published.value:
        raise HTTPException(status_code=400, detail="Only published auctions can be started")

    now = utc_now()
    end_at = as_utc(auction.end_at)
    if end_at is None or end_at <= now:
        raise HTTPException(status_code=400, detail="Auction end_at must be in the future")

    result = atomic_transition_auction_status(
        db=db,
        auction_id=auction.id,
        to_status=AuctionStatus.live,
        allowed_from=[AuctionStatus.published],
        updates={"start_at": now},
    )
    if not result.updated:
        db.rollback()
        raise _conflict()
    db.commit()

    return _record_transition(
        db, auction, action="started", actor=started_by, previous_status=previous, ctx=ctx
    )


def close_auction(
    db: Session, auction_id: str, payload: AuctionCloseRequest, ctx: RequestContext
) -> models.Auction:
    auction = get_auction_or_404(db, auction_id)
    previous = auction.status
    closable = (AuctionStatus.live, AuctionStatus.published)
    if previous not in {s.value for s in closable}:
        raise HTTPException(
            status_code=400, detail=f"Auction in '{previous}' state cannot be closed."
        )

    now = utc_now()
    end_at = as_utc(auction.end_at)
    updates = {} if end_at is not None and end_at <= now else {"end_at": now}

    result = atomic_transition_auction_status(
        db=db,
        auction_id=auction.id,
        to_status=AuctionStatus.closed,
        allowed_from=closable,
        updates=updates,
    )
    if not result.updated:
        db.rollback()
        raise _conflict()
    db.commit()

    return _record_transition(
        db,
        auction,
        action="closed",
        actor=str(payload.performed_by),
        previous_status=previous,
        ctx=ctx,
        extra={"reason": payload.reason},
    )


def get_award(db: Session, auction_id: str) -> models.Award | None:
    return db.query(models.Award).filter(models.Award.auction_id == str(auction_id)).first()


def _latest_bid_id(db: Session, auction_id: str, supplier_id: str) -> str | None:
    row = (
        db.query(models.Bid.id)
        .filter(models.Bid.auction_id == auction_id)
        .filter(models.Bid.supplier_id == supplier_id)
        .order_by(models.Bid.created_at.desc())
        .first()
    )
    return row.id if row is not None else None


def award_auction(
    db: Session, auction_id: str, payload: AuctionAwardRequest, ctx: RequestContext
) -> models.Award:
    auction = get_auction_or_404(db, auction_id)
    if auction.status != AuctionStatus.closed.value:
        raise HTTPException(status_code=400, detail="Auction must be closed before awarding")

    entries = auction_leaderboard_entries(db, auction)
    if not entries:
        raise HTTPException(status_code=400, detail="Auction has no bids to award")

    if payload.supplier_id is not None:
        supplier_id = str(payload.supplier_id)
        winner = next((e for e in entries if e.supplier_id == supplier_id), None)
        if winner is None:
            raise HTTPException(status_code=400, detail="Supplier has no bids in this auction")
    else:
        winner = entries[0]

    awarded_by = get_profile_or_404(db, str(payload.awarded_by)).id
    award = models.Award(
        auction_id=auction.id,
        rfq_id=auction.rfq_id,
        winning_bid_id=_latest_bid_id(db, auction.id, winner.supplier_id),
        supplier_id=winner.supplier_id,
        awarded_by=awarded_by,
        awarded_at=utc_now(),
        award_summary=payload.award_summary,
        total=winner.total,
        currency=auction.currency,
        status=AwardStatus.issued.value,
    )
    db.add(award)

    result = atomic_transition_auction_status(
        db=db,
        auction_id=auction.id,
        to_status=AuctionStatus.awarded,
        allowed_from=[AuctionStatus.closed],
    )
    if not result.updated:
        db.rollback()
        raise _conflict()
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        if get_award(db, auction_id) is not None:
            raise _conflict() from None
        raise
    db.refresh(award)

    audit_event(
        db,
        resource_type="auction",
        resource_id=auction.id,
        action="awarded",
        actor_profile_id=awarded_by,
        payload={
            "award_id": award.id,
            "winning_bid_id": award.winning_bid_id,
            "supplier_id": award.supplier_id,
            "rank": winner.rank,
            "total": award.total,
            "currency": award.currency,
        },
        **ctx.audit_kwargs(),
    )
    logger.info(
        "auction.awarded",
        extra={"auction_id": auction.id, "supplier_id": award.supplier_id, "total": award.total},
    )
    return award


def list_bids(
    db: Session, auction_id: str, *, supplier_id: str | None = None, sort: str = "asc"
) -> list[models.Bid]:
    auction = get_auction_or_404(db, auction_id)
    q = db.query(models.Bid).filter(models.Bid.auction_id == auction.id)
    if supplier_id:
        q = q.filter(models.Bid.supplier_id == supplier_id)
    order = models.Bid.created_at.desc() if sort == "desc" else models.Bid.created_at.asc()
    return q.order_by(order).all()


def auction_summary(db: Session, auction_id: str) -> dict[str, Any]:
    auction = get_auction_or_404(db, auction_id)
    bids = list_bids(db, auction.id)
    entries = auction_leaderboard_entries(db, auction)

    return {
        "success": True,
        "auction": auction,
        "stats": {
            "total_bids": len(bids),
            "total_suppliers": len({b.supplier_id for b in bids}),
            "lowest_bid": min((b.amount for b in bids), default=None),
        },
        "leaderboard": [e.to_dict() for e in entries],
        "award": get_award(db, auction.id),
    }
