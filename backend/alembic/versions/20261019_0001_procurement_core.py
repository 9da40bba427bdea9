"""procurement core tables

Revision ID: 20261019_0001
Revises: None
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_0001_procurement_core"
down_revision = None
branch_labels = None
depends_on = None


def _id() -> sa.Column:
    return sa.Column("id", sa.String(length=36), primary_key=True)


def _created_at(server_default: bool = True) -> sa.Column:
    if server_default:
        return sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now())
    return sa.Column("created_at", sa.DateTime(timezone=True), nullable=False)


def upgrade() -> None:
    op.create_table(
        "roles",
        _id(),
        sa.Column("name", sa.String(length=64), nullable=False, unique=True),
        sa.Column("description", sa.String(length=255)),
    )

    op.create_table(
        "profiles",
        _id(),
        sa.Column("fname", sa.String(length=128)),
        sa.Column("lname", sa.String(length=128)),
        sa.Column("organization_id", sa.String(length=36), index=True),
        sa.Column("primary_role_id", sa.String(length=36), sa.ForeignKey("roles.id")),
        _created_at(),
    )

    op.create_table(
        "suppliers",
        _id(),
        sa.Column("company_name", sa.String(length=255), nullable=False, unique=True),
        sa.Column("country", sa.String(length=64)),
        sa.Column("registration_no", sa.String(length=64)),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="active"),
        sa.Column("metadata", sa.JSON()),
        _created_at(),
    )

    op.create_table(
        "auctions",
        _id(),
        sa.Column("rfq_id", sa.String(length=36), index=True),
        sa.Column("organization_id", sa.String(length=36), index=True),
        sa.Column("auction_type", sa.String(length=32), nullable=False),
        sa.Column("start_at", sa.DateTime(timezone=True)),
        sa.Column("end_at", sa.DateTime(timezone=True)),
        sa.Column("currency", sa.String(length=8), nullable=False),
        sa.Column("language", sa.String(length=8)),
        sa.Column("visibility_mode", sa.String(length=32), nullable=False),
        sa.Column("config", sa.JSON()),
        sa.Column("status", sa.String(length=32), nullable=False, index=True),
        sa.Column("created_by", sa.String(length=36), sa.ForeignKey("profiles.id")),
        _created_at(server_default=False),
    )

    op.create_table(
        "auction_items",
        _id(),
        sa.Column(
            "auction_id",
            sa.String(length=36),
            sa.ForeignKey("auctions.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("description", sa.Text()),
        sa.Column("qty", sa.Float()),
        sa.Column("uom", sa.String(length=16)),
        sa.Column("rfq_item_id", sa.String(length=36)),
        _created_at(),
    )

    op.create_table(
        "bids",
        _id(),
        sa.Column(
            "auction_id", sa.String(length=36), sa.ForeignKey("auctions.id"), nullable=False, index=True
        ),
        sa.Column(
            "auction_item_id", sa.String(length=36), sa.ForeignKey("auction_items.id"), index=True
        ),
        sa.Column(
            "supplier_id", sa.String(length=36), sa.ForeignKey("suppliers.id"), nullable=False, index=True
        ),
        sa.Column(
            "placed_by_profile_id", sa.String(length=36), sa.ForeignKey("profiles.id"), nullable=False
        ),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("currency", sa.String(length=8), nullable=False),
        sa.Column("metadata", sa.JSON()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, index=True),
    )

    op.create_table(
        "bid_history",
        _id(),
        sa.Column("bid_id", sa.String(length=36), sa.ForeignKey("bids.id"), nullable=False, index=True),
        sa.Column("action", sa.String(length=32), nullable=False),
        sa.Column("actor_profile_id", sa.String(length=36)),
        sa.Column("amount", sa.Float()),
        sa.Column("currency", sa.String(length=8)),
        sa.Column("metadata", sa.JSON()),
        _created_at(server_default=False),
    )

    op.create_table(
        "sealed_bid_envelopes",
        _id(),
        sa.Column("auction_id", sa.String(length=36), sa.ForeignKey("auctions.id"), nullable=False),
        sa.Column("supplier_id", sa.String(length=36), sa.ForeignKey("suppliers.id"), nullable=False),
        sa.Column(
            "placed_by_profile_id", sa.String(length=36), sa.ForeignKey("profiles.id"), nullable=False
        ),
        _created_at(server_default=False),
        sa.UniqueConstraint("auction_id", "supplier_id", name="uq_sealed_envelope_auction_supplier"),
    )

    op.create_table(
        "awards",
        _id(),
        sa.Column(
            "auction_id",
            sa.String(length=36),
            sa.ForeignKey("auctions.id"),
            nullable=False,
            unique=True,
            index=True,
        ),
        sa.Column("rfq_id", sa.String(length=36)),
        sa.Column("winning_bid_id", sa.String(length=36), sa.ForeignKey("bids.id")),
        sa.Column("supplier_id", sa.String(length=36), sa.ForeignKey("suppliers.id"), nullable=False),
        sa.Column("awarded_by", sa.String(length=36), sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("awarded_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("award_summary", sa.Text()),
        sa.Column("total", sa.Float()),
        sa.Column("currency", sa.String(length=8)),
        sa.Column("status", sa.String(length=32), nullable=False),
    )

    op.create_table(
        "approval_templates",
        _id(),
        sa.Column("organization_id", sa.String(length=36), nullable=False, index=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_by", sa.String(length=36), sa.ForeignKey("profiles.id")),
        _created_at(server_default=False),
        sa.UniqueConstraint("organization_id", "name", name="uq_approval_template_org_name"),
    )

    op.create_table(
        "approval_steps",
        _id(),
        sa.Column(
            "template_id",
            sa.String(length=36),
            sa.ForeignKey("approval_templates.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("step_no", sa.Integer(), nullable=False),
        sa.Column("role_id", sa.String(length=36), sa.ForeignKey("roles.id")),
        sa.Column("profile_id", sa.String(length=36), sa.ForeignKey("profiles.id")),
        sa.Column("condition_json", sa.JSON()),
        sa.Column("escalate_to", sa.String(length=36)),
        sa.Column("sla_hours", sa.Integer()),
        _created_at(),
        sa.UniqueConstraint("template_id", "step_no", name="uq_approval_step_template_step_no"),
    )

    op.create_table(
        "approvals",
        _id(),
        sa.Column("entity_type", sa.String(length=64), nullable=False, index=True),
        sa.Column("entity_id", sa.String(length=36), nullable=False, index=True),
        sa.Column(
            "template_id",
            sa.String(length=36),
            sa.ForeignKey("approval_templates.id"),
            nullable=False,
            index=True,
        ),
        sa.Column("current_step_no", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="pending", index=True),
        sa.Column("created_by", sa.String(length=36), sa.ForeignKey("profiles.id")),
        _created_at(server_default=False),
        sa.Column("acted_at", sa.DateTime(timezone=True)),
        sa.Column("comments", sa.JSON(), nullable=False),
        sa.UniqueConstraint("entity_type", "entity_id", name="uq_approval_entity"),
    )

    op.create_table(
        "audit_events",
        _id(),
        sa.Column("actor_profile_id", sa.String(length=36), index=True),
        sa.Column("resource_type", sa.String(length=64), nullable=False, index=True),
        sa.Column("resource_id", sa.String(length=36), nullable=False, index=True),
        sa.Column("action", sa.String(length=64), nullable=False),
        sa.Column("payload", sa.JSON()),
        sa.Column("request_id", sa.String(length=64), index=True),
        sa.Column("ip", sa.String(length=64)),
        sa.Column("user_agent", sa.String(length=256)),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, index=True),
    )


def downgrade() -> None:
    for table in (
        "audit_events",
        "approvals",
        "approval_steps",
        "approval_templates",
        "awards",
        "sealed_bid_envelopes",
        "bid_history",
        "bids",
        "auction_items",
        "auctions",
        "suppliers",
        "profiles",
        "roles",
    ):
        op.drop_table(table)
