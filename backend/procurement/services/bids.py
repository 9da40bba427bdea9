from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Iterable

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from procurement import models
from procurement.core.clock import as_utc, utc_now
from procurement.models.domain import SEALED_AUCTION_TYPES, AuctionStatus, VisibilityMode
from procurement.schemas.bids import BidSubmitRequest
from procurement.services import bid_engine
from procurement.services.audit import RequestContext, audit_event
from procurement.services.directory import get_profile_or_404, supplier_names

logger = logging.getLogger("procurement.bids")

BIDDING_STATUSES = frozenset({AuctionStatus.published.value, AuctionStatus.live.value})

MSG_NOT_LIVE = "Auction is not live"
MSG_SEALED_TAKEN = "Sealed bid already submitted"


def _to_events(rows: Iterable[models.Bid]) -> list[bid_engine.BidEvent]:
    return [
        bid_engine.BidEvent(
            supplier_id=b.supplier_id,
            auction_id=b.auction_id,
            auction_item_id=b.auction_item_id,
            amount=float(b.amount),
            created_at=as_utc(b.created_at),
            bid_id=b.id,
        )
        for b in rows
    ]


def _bids_query(db: Session):
    return db.query(models.Bid).order_by(models.Bid.created_at.asc())


def _qty_by_item(db: Session, auction_ids: Iterable[str]) -> dict[str, Any]:
    ids = set(auction_ids)
    if not ids:
        return {}
    rows = (
        db.query(models.AuctionItem.id, models.AuctionItem.qty)
        .filter(models.AuctionItem.auction_id.in_(ids))
        .all()
    )
    return {row.id: row.qty for row in rows}


def get_auction_or_404(db: Session, auction_id: str) -> models.Auction:
    auction = db.get(models.Auction, str(auction_id))
    if auction is None:
        raise HTTPException(status_code=404, detail="Auction not found")
    return auction


def is_bidding_open(auction: models.Auction, now: datetime | None = None) -> bool:
    """Published or live, and now within [start_at, end_at]."""

    if auction.status not in BIDDING_STATUSES:
        return False
    start_at = as_utc(auction.start_at)
    end_at = as_utc(auction.end_at)
    if start_at is None or end_at is None:
        return False
    now = as_utc(now) if now is not None else utc_now()
    return start_at <= now <= end_at


def is_sealed(auction: models.Auction) -> bool:
    return auction.auction_type in SEALED_AUCTION_TYPES


def _has_bid(db: Session, auction_id: str, supplier_id: str) -> bool:
    return (
        db.query(models.Bid.id)
        .filter(models.Bid.auction_id == auction_id)
        .filter(models.Bid.supplier_id == supplier_id)
        .first()
        is not None
    )


def _envelope_taken(db: Session, auction_id: str, supplier_id: str) -> bool:
    return (
        db.query(models.SealedBidEnvelope.id)
        .filter(models.SealedBidEnvelope.auction_id == auction_id)
        .filter(models.SealedBidEnvelope.supplier_id == supplier_id)
        .first()
        is not None
    )


def submit_bids(db: Session, payload: BidSubmitRequest, ctx: RequestContext) -> list[str]:
    auction_id = str(payload.auction_id)
    supplier_id = str(payload.supplier_id)
    placed_by = str(payload.placed_by_profile_id)

    auction = get_auction_or_404(db, auction_id)
    if not is_bidding_open(auction):
        raise HTTPException(status_code=400, detail=MSG_NOT_LIVE)

    item_ids = {item.id for item in auction.items}
    for line in payload.lines:
        if line.auction_item_id is not None and str(line.auction_item_id) not in item_ids:
            raise HTTPException(
                status_code=400,
                detail=f"auction_item_id {line.auction_item_id} does not belong to this auction",
            )

    if db.get(models.Supplier, supplier_id) is None:
        raise HTTPException(status_code=404, detail="Supplier not found")
    get_profile_or_404(db, placed_by)

    sealed = is_sealed(auction)
    if sealed:
        if _has_bid(db, auction_id, supplier_id):
            raise HTTPException(status_code=400, detail=MSG_SEALED_TAKEN)
        # The unique (auction_id, supplier_id) key rejects a concurrent first submission.
        db.add(
            models.SealedBidEnvelope(
                auction_id=auction_id,
                supplier_id=supplier_id,
                placed_by_profile_id=placed_by,
            )
        )

    now = utc_now()
    bids = [
        models.Bid(
            auction_id=auction_id,
            auction_item_id=(str(line.auction_item_id) if line.auction_item_id else None),
            supplier_id=supplier_id,
            placed_by_profile_id=placed_by,
            amount=float(line.amount),
            currency=auction.currency,
            created_at=now,
        )
        for line in payload.lines
    ]
    db.add_all(bids)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        if sealed and _envelope_taken(db, auction_id, supplier_id):
            raise HTTPException(status_code=400, detail=MSG_SEALED_TAKEN) from None
        raise

    bid_ids = [b.id for b in bids]
    _record_history(db, bids, actor_profile_id=placed_by)

    audit_event(
        db,
        resource_type="auction",
        resource_id=auction_id,
        action="bids_submitted",
        actor_profile_id=placed_by,
        payload={
            "supplier_id": supplier_id,
            "bid_ids": bid_ids,
            "line_count": len(bid_ids),
            "currency": auction.currency,
        },
        **ctx.audit_kwargs(),
    )

    logger.info(
        "bids.submitted",
        extra={
            "auction_id": auction_id,
            "supplier_id": supplier_id,
            "line_count": len(bid_ids),
            "sealed": sealed,
            "request_id": ctx.request_id,
        },
    )
    return bid_ids


def _record_history(db: Session, bids: list[models.Bid], *, actor_profile_id: str) -> None:
    try:
        db.add_all(
            [
                models.BidHistory(
                    bid_id=b.id,
                    action="placed",
                    actor_profile_id=actor_profile_id,
                    amount=b.amount,
                    currency=b.currency,
                )
                for b in bids
            ]
        )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("bid_history_write_failed", extra={"error": str(e)})


def _auction_entries(
    db: Session, auction: models.Auction
) -> tuple[list[bid_engine.BidEvent], list[bid_engine.LeaderboardEntry]]:
    events = _to_events(_bids_query(db).filter(models.Bid.auction_id == auction.id).all())
    latest = bid_engine.compute_latest_bids(events)
    totals = bid_engine.supplier_totals(latest, _qty_by_item(db, [auction.id]))
    names = supplier_names(db, {t.supplier_id for t in totals.values()})
    return events, bid_engine.build_leaderboard(totals.values(), names)


def auction_leaderboard_entries(
    db: Session, auction: models.Auction
) -> list[bid_engine.LeaderboardEntry]:
    return _auction_entries(db, auction)[1]


def bid_board(db: Session, *, auction_id: str, supplier_id: str) -> dict[str, Any]:
    """Leaderboard as seen by one supplier, with its own rank and current line prices."""

    auction = get_auction_or_404(db, auction_id)
    events, entries = _auction_entries(db, auction)

    mine = bid_engine.find_entry(entries, supplier_id)
    latest = bid_engine.compute_latest_bids(e for e in events if e.supplier_id == supplier_id)
    lines = bid_engine.my_lines(latest, supplier_id, auction.id)

    if auction.visibility_mode == VisibilityMode.open_lowest.value:
        totals = entries
        leaderboard = entries
    else:
        totals = [mine] if mine is not None else []
        leaderboard = []

    return {
        "success": True,
        "auction_type": auction.auction_type,
        "visibility_mode": auction.visibility_mode,
        "totals": [e.to_dict() for e in totals],
        "leaderboard": [e.to_dict() for e in leaderboard],
        "myTotal": mine.total if mine is not None else None,
        "myRank": mine.rank if mine is not None else None,
        "myLines": lines,
    }


def auction_leaderboard(db: Session, auction_id: str) -> dict[str, Any]:
    auction = db.get(models.Auction, str(auction_id))
    title = bid_engine.auction_title_from_config(auction.config) if auction else None

    entries = auction_leaderboard_entries(db, auction) if auction is not None else []
    return {
        "success": True,
        "scope": "auction",
        "auction_id": str(auction_id),
        "auction_title": title,
        "total_suppliers": len(entries),
        "leaderboard": [e.to_dict() for e in entries],
    }


def global_leaderboard(db: Session) -> dict[str, Any]:
    events = _to_events(_bids_query(db).all())
    if not events:
        return {
            "success": True,
            "scope": "global",
            "total_suppliers": 0,
            "summary": [],
            "auctions": [],
        }

    auction_ids = {e.auction_id for e in events}
    names = supplier_names(db, {e.supplier_id for e in events})
    boards = bid_engine.leaderboards_by_auction(events, _qty_by_item(db, auction_ids), names)
    summary = bid_engine.global_summary(boards, names)

    auctions = (
        db.query(models.Auction)
        .filter(models.Auction.id.in_(auction_ids))
        .order_by(models.Auction.created_at.asc(), models.Auction.id.asc())
        .all()
    )
    blocks = [
        {
            "auction_id": a.id,
            "auction_title": bid_engine.auction_title_from_config(a.config),
            "total_suppliers": len(boards.get(a.id, [])),
            "leaderboard": [e.to_dict() for e in boards.get(a.id, [])],
        }
        for a in auctions
    ]

    return {
        "success": True,
        "scope": "global",
        "total_suppliers": len(summary),
        "summary": [s.to_dict() for s in summary],
        "auctions": blocks,
    }


def item_prices(db: Session, *, auction_id: str, supplier_id: str) -> dict[str, Any]:
    auction = get_auction_or_404(db, auction_id)
    events = _to_events(
        _bids_query(db)
        .filter(models.Bid.auction_id == auction.id)
        .filter(models.Bid.supplier_id == supplier_id)
        .all()
    )
    current = bid_engine.my_lines(bid_engine.compute_latest_bids(events), supplier_id, auction.id)

    items = []
    for item in auction.items:
        unit_price = current.get(item.id)
        if unit_price is None:
            continue
        qty = bid_engine.item_quantity(item.qty)
        items.append(
            {
                "auction_item_id": item.id,
                "item_name": item.description,
                "qty": qty,
                "unit_price": unit_price,
                "total": unit_price * qty,
            }
        )
    return {"success": True, "items": items}
