import uuid
from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from procurement.core.clock import utc_now
from procurement.database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class AuctionType(PyEnum):
    standard_reverse = "standard_reverse"
    ranked_reverse = "ranked_reverse"
    sealed_reverse = "sealed_reverse"
    sealed_bid = "sealed_bid"


SEALED_AUCTION_TYPES = frozenset({AuctionType.sealed_reverse.value, AuctionType.sealed_bid.value})


class AuctionStatus(PyEnum):
    draft = "draft"
    published = "published"
    live = "live"
    closed = "closed"
    awarded = "awarded"
    archived = "archived"


class VisibilityMode(PyEnum):
    open_lowest = "open_lowest"
    rank_only = "rank_only"
    sealed = "sealed"


class ApprovalStatus(PyEnum):
    pending = "pending"
    in_progress = "in_progress"
    approved = "approved"
    rejected = "rejected"


TERMINAL_APPROVAL_STATUSES = frozenset(
    {ApprovalStatus.approved.value, ApprovalStatus.rejected.value}
)


class AwardStatus(PyEnum):
    issued = "issued"
    accepted = "accepted"
    declined = "declined"


class Role(Base):
    __tablename__ = "roles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(String(255))


class Profile(Base):
    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    fname: Mapped[str | None] = mapped_column(String(128))
    lname: Mapped[str | None] = mapped_column(String(128))
    organization_id: Mapped[str | None] = mapped_column(String(36), index=True)
    primary_role_id: Mapped[str | None] = mapped_column(ForeignKey("roles.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    role = relationship("Role", lazy="joined")

    @property
    def display_name(self) -> str:
        return f"{self.fname or ''} {self.lname or ''}".strip()


class Supplier(Base):
    __tablename__ = "suppliers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    company_name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    country: Mapped[str | None] = mapped_column(String(64))
    registration_no: Mapped[str | None] = mapped_column(String(64))
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="active")
    # "metadata" is reserved on declarative classes.
    meta: Mapped[dict | None] = mapped_column("metadata", JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class Auction(Base):
    __tablename__ = "auctions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    rfq_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    organization_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    auction_type: Mapped[str] = mapped_column(
        String(32), nullable=False, default=AuctionType.standard_reverse.value
    )
    start_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    end_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    currency: Mapped[str] = mapped_column(String(8), nullable=False, default="USD")
    language: Mapped[str | None] = mapped_column(String(8))
    visibility_mode: Mapped[str] = mapped_column(
        String(32), nullable=False, default=VisibilityMode.open_lowest.value
    )
    config: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=AuctionStatus.draft.value, index=True
    )
    created_by: Mapped[str | None] = mapped_column(ForeignKey("profiles.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)

    items = relationship(
        "AuctionItem",
        back_populates="auction",
        cascade="all, delete-orphan",
        order_by="AuctionItem.position",
    )


class AuctionItem(Base):
    __tablename__ = "auction_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    auction_id: Mapped[str] = mapped_column(
        ForeignKey("auctions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    description: Mapped[str | None] = mapped_column(Text)
    qty: Mapped[float | None] = mapped_column(Float, nullable=True)
    uom: Mapped[str | None] = mapped_column(String(16))
    rfq_item_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    auction = relationship("Auction", back_populates="items")


class Bid(Base):
    """Append-only bid event. Rows are never updated or deleted."""

    __tablename__ = "bids"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    auction_id: Mapped[str] = mapped_column(ForeignKey("auctions.id"), nullable=False, index=True)
    auction_item_id: Mapped[str | None] = mapped_column(
        ForeignKey("auction_items.id"), nullable=True, index=True
    )
    supplier_id: Mapped[str] = mapped_column(ForeignKey("suppliers.id"), nullable=False, index=True)
    placed_by_profile_id: Mapped[str] = mapped_column(ForeignKey("profiles.id"), nullable=False)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    currency: Mapped[str] = mapped_column(String(8), nullable=False)
    meta: Mapped[dict | None] = mapped_column("metadata", JSON, nullable=True)
    # Set in Python so ordering keeps microsecond precision on every backend.
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, index=True
    )


class BidHistory(Base):
    __tablename__ = "bid_history"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    bid_id: Mapped[str] = mapped_column(ForeignKey("bids.id"), nullable=False, index=True)
    action: Mapped[str] = mapped_column(String(32), nullable=False)
    actor_profile_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    amount: Mapped[float | None] = mapped_column(Float)
    currency: Mapped[str | None] = mapped_column(String(8))
    meta: Mapped[dict | None] = mapped_column("metadata", JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)


class SealedBidEnvelope(Base):
    """One row per supplier per sealed auction; the unique key makes submission one-shot."""

    __tablename__ = "sealed_bid_envelopes"
    __table_args__ = (
        UniqueConstraint("auction_id", "supplier_id", name="uq_sealed_envelope_auction_supplier"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    auction_id: Mapped[str] = mapped_column(ForeignKey("auctions.id"), nullable=False)
    supplier_id: Mapped[str] = mapped_column(ForeignKey("suppliers.id"), nullable=False)
    placed_by_profile_id: Mapped[str] = mapped_column(ForeignKey("profiles.id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)


class Award(Base):
    __tablename__ = "awards"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    auction_id: Mapped[str] = mapped_column(
        ForeignKey("auctions.id"), nullable=False, unique=True, index=True
    )
    rfq_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    winning_bid_id: Mapped[str | None] = mapped_column(ForeignKey("bids.id"), nullable=True)
    supplier_id: Mapped[str] = mapped_column(ForeignKey("suppliers.id"), nullable=False)
    awarded_by: Mapped[str] = mapped_column(ForeignKey("profiles.id"), nullable=False)
    awarded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
    award_summary: Mapped[str | None] = mapped_column(Text)
    total: Mapped[float | None] = mapped_column(Float)
    currency: Mapped[str | None] = mapped_column(String(8))
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=AwardStatus.issued.value)

    supplier = relationship("Supplier", lazy="joined")


class ApprovalTemplate(Base):
    __tablename__ = "approval_templates"
    __table_args__ = (
        UniqueConstraint("organization_id", "name", name="uq_approval_template_org_name"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    organization_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_by: Mapped[str | None] = mapped_column(ForeignKey("profiles.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)

    steps = relationship(
        "ApprovalStep",
        back_populates="template",
        cascade="all, delete-orphan",
        order_by="ApprovalStep.step_no",
    )


class ApprovalStep(Base):
    __tablename__ = "approval_steps"
    __table_args__ = (
        UniqueConstraint("template_id", "step_no", name="uq_approval_step_template_step_no"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    template_id: Mapped[str] = mapped_column(
        ForeignKey("approval_templates.id", ondelete="CASCADE"), nullable=False, index=True
    )
    step_no: Mapped[int] = mapped_column(Integer, nullable=False)
    role_id: Mapped[str | None] = mapped_column(ForeignKey("roles.id"), nullable=True)
    profile_id: Mapped[str | None] = mapped_column(ForeignKey("profiles.id"), nullable=True)
    condition_json: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    escalate_to: Mapped[str | None] = mapped_column(String(36), nullable=True)
    sla_hours: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    template = relationship("ApprovalTemplate", back_populates="steps")
    role = relationship("Role", lazy="joined")
    profile = relationship("Profile", lazy="joined")


class Approval(Base):
    __tablename__ = "approvals"
    __table_args__ = (
        UniqueConstraint("entity_type", "entity_id", name="uq_approval_entity"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    entity_type: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    entity_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    template_id: Mapped[str] = mapped_column(
        ForeignKey("approval_templates.id"), nullable=False, index=True
    )
    # forward-only: pending -> in_progress -> approved | rejected
    current_step_no: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=ApprovalStatus.pending.value, index=True
    )
    created_by: Mapped[str | None] = mapped_column(ForeignKey("profiles.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
    acted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    comments: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    template = relationship("ApprovalTemplate", lazy="joined")
    creator = relationship("Profile", lazy="joined")


class AuditEvent(Base):
    __tablename__ = "audit_events"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    actor_profile_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    resource_type: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    resource_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    action: Mapped[str] = mapped_column(String(64), nullable=False)
    payload: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    # Optional request context.
    request_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    ip: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(256), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, index=True
    )
