from procurement.models.domain import (
    SEALED_AUCTION_TYPES,
    TERMINAL_APPROVAL_STATUSES,
    Approval,
    ApprovalStatus,
    ApprovalStep,
    ApprovalTemplate,
    Auction,
    AuctionItem,
    AuctionStatus,
    AuctionType,
    AuditEvent,
    Award,
    AwardStatus,
    Bid,
    BidHistory,
    Profile,
    Role,
    SealedBidEnvelope,
    Supplier,
    VisibilityMode,
)

__all__ = [
    "SEALED_AUCTION_TYPES",
    "TERMINAL_APPROVAL_STATUSES",
    "Approval",
    "ApprovalStatus",
    "ApprovalStep",
    "ApprovalTemplate",
    "Auction",
    "AuctionItem",
    "AuctionStatus",
    "AuctionType",
    "AuditEvent",
    "Award",
    "AwardStatus",
    "Bid",
    "BidHistory",
    "Profile",
    "Role",
    "SealedBidEnvelope",
    "Supplier",
    "VisibilityMode",
]
