"""
Pure-Python bid aggregation engine for reverse auctions.

Totals and ranks are derived on every read from the append-only bid rows; nothing
here touches the database. Callers fetch a snapshot of bids and item quantities
and hand it over as plain dataclasses.

Key behaviors
- A supplier's current price for an item is its most recent bid for that item.
  Equal timestamps resolve to the bid seen last in iteration order.
- Line total = current price x item qty; qty falls back to 1 when the item is
  unknown or its qty is missing, zero or not a number.
- Items a supplier never bid on contribute nothing, and a supplier with no bids
  is absent from the totals (never present with 0).
- Lower total ranks better. Equal totals are ordered by the earliest time the
  supplier reached its current prices, then by supplier id.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

UNTITLED_AUCTION = "Untitled auction"
DEFAULT_SUPPLIER_NAME = "Supplier"

# -----------------------------
# Data Models
# -----------------------------


@dataclass(frozen=True)
class BidEvent:
    supplier_id: str
    auction_id: str
    auction_item_id: Optional[str]
    amount: float
    created_at: datetime
    bid_id: Optional[str] = None


@dataclass(frozen=True)
class SupplierTotal:
    supplier_id: str
    auction_id: str
    total: float
    bid_count: int  # number of (item) lines with a current price
    last_bid_at: datetime


@dataclass(frozen=True)
class LeaderboardEntry:
    rank: int
    supplier_id: str
    supplier_name: str
    total: float
    bid_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rank": self.rank,
            "supplier_id": self.supplier_id,
            "supplier_name": self.supplier_name,
            "total": self.total,
            "bid_count": self.bid_count,
        }


@dataclass(frozen=True)
class SupplierSummary:
    supplier_id: str
    supplier_name: str
    total: float
    bid_count: int
    auction_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "supplier_id": self.supplier_id,
            "supplier_name": self.supplier_name,
            "total": self.total,
            "bid_count": self.bid_count,
            "auction_count": self.auction_count,
        }


LatestKey = Tuple[str, str, Optional[str]]  # (supplier_id, auction_id, auction_item_id)

# -----------------------------
# Helpers
# -----------------------------


def item_quantity(qty: Any) -> float:
    try:
        value = float(qty)
    except (TypeError, ValueError):
        return 1.0
    if not math.isfinite(value) or value == 0:
        return 1.0
    return value


def auction_title_from_config(config: Optional[Mapping[str, Any]]) -> str:
    if isinstance(config, Mapping):
        for key in ("title", "name"):
            value = config.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return UNTITLED_AUCTION


def _name_for(supplier_id: str, names: Optional[Mapping[str, str]]) -> str:
    if names:
        name = names.get(supplier_id)
        if name:
            return name
    return DEFAULT_SUPPLIER_NAME


# -----------------------------
# Aggregation
# -----------------------------


def compute_latest_bids(bids: Iterable[BidEvent]) -> Dict[LatestKey, BidEvent]:
    """Keep the most recent bid per (supplier, auction, item)."""

    latest: Dict[LatestKey, BidEvent] = {}
    for bid in bids:
        key = (bid.supplier_id, bid.auction_id, bid.auction_item_id)
        current = latest.get(key)
        if current is None or bid.created_at >= current.created_at:
            latest[key] = bid
    return latest


def supplier_totals(
    latest: Mapping[LatestKey, BidEvent],
    qty_by_item: Mapping[str, Any],
) -> Dict[Tuple[str, str], SupplierTotal]:
    """Sum current line totals per (supplier, auction)."""

    acc: Dict[Tuple[str, str], List[Any]] = {}
    for (supplier_id, auction_id, item_id), bid in latest.items():
        qty = item_quantity(qty_by_item.get(item_id)) if item_id is not None else 1.0
        line_total = bid.amount * qty

        entry = acc.get((supplier_id, auction_id))
        if entry is None:
            acc[(supplier_id, auction_id)] = [line_total, 1, bid.created_at]
        else:
            entry[0] += line_total
            entry[1] += 1
            if bid.created_at > entry[2]:
                entry[2] = bid.created_at

    return {
        key: SupplierTotal(
            supplier_id=key[0],
            auction_id=key[1],
            total=total,
            bid_count=count,
            last_bid_at=last_at,
        )
        for key, (total, count, last_at) in acc.items()
    }


def compute_supplier_total(
    bids: Iterable[BidEvent],
    qty_by_item: Mapping[str, Any],
    supplier_id: str,
    auction_id: str,
) -> Optional[float]:
    """Current total for one supplier in one auction; None when it has no bids."""

    relevant = (b for b in bids if b.supplier_id == supplier_id and b.auction_id == auction_id)
    totals = supplier_totals(compute_latest_bids(relevant), qty_by_item)
    found = totals.get((supplier_id, auction_id))
    return found.total if found is not None else None


def _rank_key(t: SupplierTotal):
    return (t.total, t.last_bid_at, t.supplier_id)


def build_leaderboard(
    totals: Iterable[SupplierTotal],
    supplier_names: Optional[Mapping[str, str]] = None,
) -> List[LeaderboardEntry]:
    ordered = sorted(totals, key=_rank_key)
    return [
        LeaderboardEntry(
            rank=index + 1,
            supplier_id=t.supplier_id,
            supplier_name=_name_for(t.supplier_id, supplier_names),
            total=t.total,
            bid_count=t.bid_count,
        )
        for index, t in enumerate(ordered)
    ]


def leaderboards_by_auction(
    bids: Iterable[BidEvent],
    qty_by_item: Mapping[str, Any],
    supplier_names: Optional[Mapping[str, str]] = None,
) -> Dict[str, List[LeaderboardEntry]]:
    totals = supplier_totals(compute_latest_bids(bids), qty_by_item)

    grouped: Dict[str, List[SupplierTotal]] = {}
    for t in totals.values():
        grouped.setdefault(t.auction_id, []).append(t)

    return {
        auction_id: build_leaderboard(group, supplier_names)
        for auction_id, group in grouped.items()
    }


def global_summary(
    boards: Mapping[str, List[LeaderboardEntry]],
    supplier_names: Optional[Mapping[str, str]] = None,
) -> List[SupplierSummary]:
    """Per-supplier totals summed over every auction the supplier bid in."""

    acc: Dict[str, List[Any]] = {}
    for entries in boards.values():
        for e in entries:
            row = acc.setdefault(e.supplier_id, [0.0, 0, 0])
            row[0] += e.total
            row[1] += e.bid_count
            row[2] += 1

    summary = [
        SupplierSummary(
            supplier_id=supplier_id,
            supplier_name=_name_for(supplier_id, supplier_names),
            total=total,
            bid_count=count,
            auction_count=auctions,
        )
        for supplier_id, (total, count, auctions) in acc.items()
    ]
    summary.sort(key=lambda s: (s.total, s.supplier_id))
    return summary


def my_lines(
    latest: Mapping[LatestKey, BidEvent],
    supplier_id: str,
    auction_id: str,
) -> Dict[str, float]:
    """auction_item_id -> current amount for one supplier (item-level bids only)."""

    return {
        item_id: bid.amount
        for (s_id, a_id, item_id), bid in latest.items()
        if s_id == supplier_id and a_id == auction_id and item_id is not None
    }


def find_entry(
    entries: Iterable[LeaderboardEntry], supplier_id: str
) -> Optional[LeaderboardEntry]:
    return next((e for e in entries if e.supplier_id == supplier_id), None)
