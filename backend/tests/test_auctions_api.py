import uuid
from datetime import timedelta

from procurement import models
from procurement.core.clock import utc_now


def _seed_parties(db):
    buyer = models.Profile(fname="Bea", lname="Buyer")
    suppliers = [
        models.Supplier(company_name="Acme Metals"),
        models.Supplier(company_name="Borealis Supply"),
    ]
    db.add_all([buyer, *suppliers])
    db.commit()
    return buyer.id, [s.id for s in suppliers]


def _create_auction(client, buyer_id, **overrides):
    now = utc_now()
    payload = {
        "created_by": buyer_id,
        "auction_type": "ranked_reverse",
        "visibility_mode": "open_lowest",
        "currency": "usd",
        "start_at": (now - timedelta(minutes=5)).isoformat(),
        "end_at": (now + timedelta(hours=2)).isoformat(),
        "config": {"title": "Aluminium billets"},
        "items": [
            {"description": "Billet 6063", "qty": 10, "uom": "t"},
            {"description": "Billet 6061", "qty": 5, "uom": "t"},
        ],
    }
    payload.update(overrides)
    r = client.post("/api/auctions", json=payload)
    assert r.status_code == 201, r.text
    return r.json()


def _publish(client, auction_id, buyer_id, action="publish"):
    return client.patch(
        f"/api/auctions/{auction_id}/publish",
        json={"action": action, "performed_by": buyer_id},
    )


def _bid(client, auction, supplier_id, buyer_id, amounts):
    return client.post(
        "/api/bids",
        json={
            "auction_id": auction["id"],
            "supplier_id": supplier_id,
            "placed_by_profile_id": buyer_id,
            "lines": [
                {"auction_item_id": item["id"], "amount": amount}
                for item, amount in zip(auction["items"], amounts)
            ],
        },
    )


def test_create_auction_starts_in_draft(client, db_session):
    buyer_id, _ = _seed_parties(db_session)

    auction = _create_auction(client, buyer_id)

    assert auction["status"] == "draft"
    assert auction["currency"] == "USD"
    assert [i["description"] for i in auction["items"]] == ["Billet 6063", "Billet 6061"]

    r = client.get(f"/api/auctions/{auction['id']}")
    assert r.status_code == 200, r.text
    assert r.json()["id"] == auction["id"]

    r = client.get("/api/auctions", params={"status": "draft"})
    assert [a["id"] for a in r.json()] == [auction["id"]]


def test_create_auction_rejects_inverted_window(client, db_session):
    buyer_id, _ = _seed_parties(db_session)
    now = utc_now()

    r = client.post(
        "/api/auctions",
        json={
            "created_by": buyer_id,
            "start_at": now.isoformat(),
            "end_at": (now - timedelta(hours=1)).isoformat(),
        },
    )
    assert r.status_code == 400, r.text


def test_unknown_auction_is_404(client):
    r = client.get("/api/auctions/7d0e6f1c-0000-4000-8000-000000000000")
    assert r.status_code == 404, r.text
    assert r.json()["detail"] == "Auction not found"


def test_publish_and_unpublish(client, db_session):
    buyer_id, _ = _seed_parties(db_session)
    auction = _create_auction(client, buyer_id)

    r = _publish(client, auction["id"], buyer_id)
    assert r.status_code == 200, r.text
    assert r.json()["auction"]["status"] == "published"
    assert r.json()["message"] == "Auction published successfully."

    r = _publish(client, auction["id"], buyer_id)
    assert r.status_code == 200, r.text
    assert r.json()["message"] == "Auction is already published."

    r = _publish(client, auction["id"], buyer_id, action="unpublish")
    assert r.json()["auction"]["status"] == "draft"

    r = _publish(client, auction["id"], buyer_id, action="unpublish")
    assert r.json()["message"] == "Auction is already in draft."


def test_start_requires_published(client, db_session):
    buyer_id, _ = _seed_parties(db_session)
    auction = _create_auction(client, buyer_id)

    r = client.post(f"/api/auctions/{auction['id']}/start", json={"started_by": buyer_id})
    assert r.status_code == 400, r.text
    assert r.json()["detail"] == "Only published auctions can be started"

    _publish(client, auction["id"], buyer_id)
    r = client.post(f"/api/auctions/{auction['id']}/start", json={"started_by": buyer_id})
    assert r.status_code == 200, r.text
    assert r.json()["auction"]["status"] == "live"


def test_full_lifecycle_through_award(client, db_session):
    buyer_id, (acme, borealis) = _seed_parties(db_session)
    auction = _create_auction(client, buyer_id)
    _publish(client, auction["id"], buyer_id)
    client.post(f"/api/auctions/{auction['id']}/start", json={"started_by": buyer_id})

    assert _bid(client, auction, acme, buyer_id, [10, 20]).status_code == 201
    assert _bid(client, auction, borealis, buyer_id, [9, 21]).status_code == 201
    assert _bid(client, auction, acme, buyer_id, [8]).status_code == 201

    r = client.post(
        f"/api/auctions/{auction['id']}/award", json={"awarded_by": buyer_id}
    )
    assert r.status_code == 400, r.text
    assert r.json()["detail"] == "Auction must be closed before awarding"

    r = client.patch(
        f"/api/auctions/{auction['id']}/close",
        json={"performed_by": buyer_id, "reason": "window complete"},
    )
    assert r.status_code == 200, r.text
    assert r.json()["auction"]["status"] == "closed"

    r = _bid(client, auction, borealis, buyer_id, [1])
    assert r.status_code == 400, r.text

    r = client.post(f"/api/auctions/{auction['id']}/award", json={"awarded_by": buyer_id})
    assert r.status_code == 200, r.text
    award = r.json()["award"]
    assert award["supplier_id"] == acme
    assert award["total"] == 180
    assert award["currency"] == "USD"
    assert award["status"] == "issued"
    assert award["winning_bid_id"]

    r = client.get(f"/api/auctions/{auction['id']}/summary")
    assert r.status_code == 200, r.text
    summary = r.json()
    assert summary["auction"]["status"] == "awarded"
    assert summary["stats"] == {"total_bids": 5, "total_suppliers": 2, "lowest_bid": 8}
    assert [e["supplier_id"] for e in summary["leaderboard"]] == [acme, borealis]
    assert summary["award"]["id"] == award["id"]

    r = client.get(
        "/api/audit-log",
        params={"resource_type": "auction", "resource_id": auction["id"]},
    )
    actions = [e["action"] for e in r.json()["events"]]
    assert actions[0] == "awarded"
    assert {"created", "published", "started", "closed", "bids_submitted"} <= set(actions)


def test_close_rejects_draft(client, db_session):
    buyer_id, _ = _seed_parties(db_session)
    auction = _create_auction(client, buyer_id)

    r = client.patch(
        f"/api/auctions/{auction['id']}/close", json={"performed_by": buyer_id}
    )
    assert r.status_code == 400, r.text
    assert r.json()["detail"] == "Auction in 'draft' state cannot be closed."


def test_award_named_supplier_without_bids_is_refused(client, db_session):
    buyer_id, (acme, borealis) = _seed_parties(db_session)
    auction = _create_auction(client, buyer_id)
    _publish(client, auction["id"], buyer_id)
    _bid(client, auction, acme, buyer_id, [10, 10])
    client.patch(f"/api/auctions/{auction['id']}/close", json={"performed_by": buyer_id})

    r = client.post(
        f"/api/auctions/{auction['id']}/award",
        json={"awarded_by": buyer_id, "supplier_id": borealis},
    )
    assert r.status_code == 400, r.text
    assert r.json()["detail"] == "Supplier has no bids in this auction"


def test_award_without_bids_is_refused(client, db_session):
    buyer_id, _ = _seed_parties(db_session)
    auction = _create_auction(client, buyer_id)
    _publish(client, auction["id"], buyer_id)
    client.patch(f"/api/auctions/{auction['id']}/close", json={"performed_by": buyer_id})

    r = client.post(f"/api/auctions/{auction['id']}/award", json={"awarded_by": buyer_id})
    assert r.status_code == 400, r.text
    assert r.json()["detail"] == "Auction has no bids to award"


def test_list_bids_sorted_and_filtered(client, db_session):
    buyer_id, (acme, borealis) = _seed_parties(db_session)
    auction = _create_auction(client, buyer_id)
    _publish(client, auction["id"], buyer_id)
    _bid(client, auction, acme, buyer_id, [10])
    _bid(client, auction, borealis, buyer_id, [11])

    r = client.get(f"/api/auctions/{auction['id']}/bids", params={"sort": "desc"})
    assert r.status_code == 200, r.text
    assert [b["amount"] for b in r.json()["bids"]] == [11, 10]

    r = client.get(f"/api/auctions/{auction['id']}/bids", params={"supplier_id": acme})
    assert [b["supplier_id"] for b in r.json()["bids"]] == [acme]


def test_create_auction_with_unknown_creator_is_404(client, db_session):
    _seed_parties(db_session)
    now = utc_now()

    r = client.post(
        "/api/auctions",
        json={
            "created_by": str(uuid.uuid4()),
            "start_at": now.isoformat(),
            "end_at": (now + timedelta(hours=1)).isoformat(),
        },
    )
    assert r.status_code == 404, r.text
    assert r.json()["detail"] == "Profile not found"
    assert db_session.query(models.Auction).count() == 0
