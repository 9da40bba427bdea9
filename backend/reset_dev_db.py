#!/usr/bin/env python3
"""
Reset development database - creates fresh schema and seeds demo data.
Run from the backend/ directory.
"""
import os
from datetime import timedelta
from pathlib import Path

# Ensure we're in the backend directory
backend_dir = Path(__file__).parent
os.chdir(backend_dir)

# Force load .env before importing procurement modules
from dotenv import load_dotenv

load_dotenv(backend_dir / ".env", override=True)

# Always target the local sqlite dev DB for this script.
os.environ["DATABASE_URL"] = "sqlite:///./dev.db"

from procurement import models  # noqa: E402
from procurement.core.clock import utc_now  # noqa: E402
from procurement.database import Base, SessionLocal, engine  # noqa: E402

ORG_ID = "00000000-0000-4000-8000-000000000001"


def main():
    db_path = backend_dir / "dev.db"

    if db_path.exists():
        print(f"Removing existing database: {db_path}")
        db_path.unlink()

    print("Creating database tables...")
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        buyer_role = models.Role(name="buyer", description="Procurement buyer")
        finance_role = models.Role(name="finance", description="Finance approver")
        db.add_all([buyer_role, finance_role])
        db.flush()

        buyer = models.Profile(
            fname="Bea", lname="Buyer", organization_id=ORG_ID, primary_role_id=buyer_role.id
        )
        controller = models.Profile(
            fname="Carl", lname="Controller", organization_id=ORG_ID, primary_role_id=finance_role.id
        )
        db.add_all([buyer, controller])
        db.flush()

        suppliers = [
            models.Supplier(company_name="Acme Metals", country="US"),
            models.Supplier(company_name="Borealis Supply", country="CA"),
            models.Supplier(company_name="Cobalt Trading", country="DE"),
        ]
        db.add_all(suppliers)

        now = utc_now()
        auction = models.Auction(
            organization_id=ORG_ID,
            auction_type=models.AuctionType.ranked_reverse.value,
            visibility_mode=models.VisibilityMode.open_lowest.value,
            currency="USD",
            status=models.AuctionStatus.live.value,
            start_at=now - timedelta(hours=1),
            end_at=now + timedelta(days=2),
            config={"title": "Aluminium billets Q3"},
            created_by=buyer.id,
            items=[
                models.AuctionItem(position=0, description="Billet 6063 7in", qty=120, uom="t"),
                models.AuctionItem(position=1, description="Billet 6061 9in", qty=40, uom="t"),
            ],
        )
        db.add(auction)

        template = models.ApprovalTemplate(
            organization_id=ORG_ID,
            name="Two-step award sign-off",
            description="Buyer lead then finance",
            is_default=True,
            created_by=buyer.id,
            steps=[
                models.ApprovalStep(step_no=1, profile_id=buyer.id, sla_hours=24),
                models.ApprovalStep(step_no=2, role_id=finance_role.id, sla_hours=48),
            ],
        )
        db.add(template)
        db.commit()

        print("Seeded:")
        print(f"   Profiles: {buyer.id} (buyer), {controller.id} (controller)")
        for s in suppliers:
            print(f"   Supplier: {s.id} {s.company_name}")
        print(f"   Live auction: {auction.id}")
        print(f"   Approval template: {template.id}")
        print(f"\nDevelopment database reset complete: {db_path}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
