from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from sqlalchemy.orm import Session

from procurement import models
from procurement.models.domain import ApprovalStatus, AuctionStatus


@dataclass(frozen=True)
class TransitionResult:
    updated: bool
    rowcount: int


def atomic_transition_auction_status(
    *,
    db: Session,
    auction_id: str,
    to_status: AuctionStatus,
    allowed_from: Iterable[AuctionStatus],
    updates: dict[str, Any] | None = None,
) -> TransitionResult:
    """Apply an auction status transition with an atomic DB guard.

    A single conditional UPDATE keeps out-of-order transitions from being
    persisted under concurrency:

        UPDATE auctions
        SET status = :to_status, ...
        WHERE id = :auction_id AND status IN (:allowed_from)

    Callers control commit/rollback.
    """

    update_values: dict[str, Any] = {"status": to_status.value}
    if updates:
        update_values.update(updates)

    rowcount = (
        db.query(models.Auction)
        .filter(models.Auction.id == str(auction_id))
        .filter(models.Auction.status.in_({s.value for s in allowed_from}))
        .update(update_values, synchronize_session=False)
    )

    return TransitionResult(updated=rowcount > 0, rowcount=int(rowcount or 0))


def atomic_advance_approval(
    *,
    db: Session,
    approval_id: str,
    expected_status: str,
    expected_step_no: int,
    updates: dict[str, Any],
) -> TransitionResult:
    """Write an approval decision only if nobody decided the same step first.

        UPDATE approvals
        SET ...
        WHERE id = :approval_id AND status = :expected_status
          AND current_step_no = :expected_step_no
    """

    rowcount = (
        db.query(models.Approval)
        .filter(models.Approval.id == str(approval_id))
        .filter(models.Approval.status == expected_status)
        .filter(models.Approval.current_step_no == int(expected_step_no))
        .filter(
            models.Approval.status.notin_(
                {ApprovalStatus.approved.value, ApprovalStatus.rejected.value}
            )
        )
        .update(updates, synchronize_session=False)
    )

    return TransitionResult(updated=rowcount > 0, rowcount=int(rowcount or 0))
