from datetime import datetime, timedelta, timezone

from procurement.services import bid_engine
from procurement.services.bid_engine import BidEvent

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _bid(supplier, item, amount, minutes, auction="a1"):
    return BidEvent(
        supplier_id=supplier,
        auction_id=auction,
        auction_item_id=item,
        amount=amount,
        created_at=T0 + timedelta(minutes=minutes),
    )


def test_latest_bid_is_the_most_recent_per_supplier_and_item():
    bids = [_bid("s1", "A", 9, 2), _bid("s1", "A", 8, 3), _bid("s1", "A", 10, 1)]

    latest = bid_engine.compute_latest_bids(bids)

    assert len(latest) == 1
    assert latest[("s1", "a1", "A")].amount == 8


def test_latest_bid_equal_timestamps_keep_the_last_seen():
    bids = [_bid("s1", "A", 9, 0), _bid("s1", "A", 7, 0)]

    latest = bid_engine.compute_latest_bids(bids)

    assert latest[("s1", "a1", "A")].amount == 7


def test_supplier_total_multiplies_current_prices_by_item_qty():
    bids = [
        _bid("s1", "A", 6, 0),
        _bid("s1", "A", 5, 1),
        _bid("s1", "B", 7, 1),
    ]

    total = bid_engine.compute_supplier_total(bids, {"A": 2, "B": 1}, "s1", "a1")

    assert total == 17


def test_supplier_total_is_none_without_bids():
    assert bid_engine.compute_supplier_total([], {"A": 2}, "s1", "a1") is None


def test_item_quantity_falls_back_to_one():
    assert bid_engine.item_quantity(None) == 1
    assert bid_engine.item_quantity("abc") == 1
    assert bid_engine.item_quantity(0) == 1
    assert bid_engine.item_quantity(float("nan")) == 1
    assert bid_engine.item_quantity("3") == 3


def test_unknown_item_counts_once():
    totals = bid_engine.supplier_totals(
        bid_engine.compute_latest_bids([_bid("s1", "ghost", 4, 0)]), {}
    )

    assert totals[("s1", "a1")].total == 4


def test_leaderboard_orders_ascending_and_ranks_from_one():
    bids = [_bid("S1", None, 100, 0), _bid("S2", None, 50, 0), _bid("S3", None, 75, 0)]
    totals = bid_engine.supplier_totals(bid_engine.compute_latest_bids(bids), {})

    board = bid_engine.build_leaderboard(totals.values(), {"S2": "Beta Ltd"})

    assert [(e.supplier_id, e.rank, e.total) for e in board] == [
        ("S2", 1, 50),
        ("S3", 2, 75),
        ("S1", 3, 100),
    ]
    assert board[0].supplier_name == "Beta Ltd"
    assert board[1].supplier_name == "Supplier"


def test_leaderboard_ties_go_to_the_earliest_bidder():
    bids = [_bid("late", None, 50, 5), _bid("early", None, 50, 1)]
    totals = bid_engine.supplier_totals(bid_engine.compute_latest_bids(bids), {})

    board = bid_engine.build_leaderboard(totals.values())

    assert [e.supplier_id for e in board] == ["early", "late"]


def test_supplier_without_bids_is_absent_from_leaderboard():
    bids = [_bid("s1", "A", 5, 0), _bid("s1", "B", 5, 0)]
    totals = bid_engine.supplier_totals(bid_engine.compute_latest_bids(bids), {"A": 1, "B": 1})

    board = bid_engine.build_leaderboard(totals.values())

    assert [e.supplier_id for e in board] == ["s1"]
    assert board[0].bid_count == 2


def test_global_summary_sums_across_auctions():
    bids = [
        _bid("s1", None, 10, 0, auction="a1"),
        _bid("s1", None, 20, 0, auction="a2"),
        _bid("s2", None, 15, 0, auction="a1"),
    ]

    boards = bid_engine.leaderboards_by_auction(bids, {})
    summary = bid_engine.global_summary(boards)

    assert [(s.supplier_id, s.total, s.auction_count) for s in summary] == [
        ("s2", 15, 1),
        ("s1", 30, 2),
    ]


def test_my_lines_only_returns_the_suppliers_item_prices():
    bids = [
        _bid("s1", "A", 5, 0),
        _bid("s1", "A", 4, 1),
        _bid("s2", "A", 3, 0),
        _bid("s1", None, 99, 0),
    ]

    lines = bid_engine.my_lines(bid_engine.compute_latest_bids(bids), "s1", "a1")

    assert lines == {"A": 4}


def test_auction_title_from_config():
    assert bid_engine.auction_title_from_config({"title": "Steel"}) == "Steel"
    assert bid_engine.auction_title_from_config({"name": "Copper"}) == "Copper"
    assert bid_engine.auction_title_from_config({"title": "  "}) == "Untitled auction"
    assert bid_engine.auction_title_from_config(None) == "Untitled auction"
