import pytest

from sqlalchemy import func, select
from sqlalchemy.orm.exc import StaleDataError

from processors.auctionhouse.auctionhouse_constants import MAX_OPTIMISTIC_RETRIES
from processors.auctionhouse.auctionhouse_enums import (
    ApplyOutcome,
    ListingStatus,
    OfferStatus,
    PurchaseSource,
)
from processors.auctionhouse.errors import OutOfOrderEventError
from processors.auctionhouse.models import (
    AppliedEvent,
    AuctionhouseBid,
    AuctionhouseEscrow,
    AuctionhouseListing,
    AuctionhouseOffer,
    AuctionhousePurchase,
)
from processors.auctionhouse import queries
from utils.session import Session

from event_builders import (
    B1,
    B2,
    O1,
    O2,
    SELLER,
    T0,
    auction_win_events,
    bid,
    cancellation_events,
    create_listing,
    escrow,
    fees,
    offer,
    offer_acceptance_events,
    rescind,
    rescind_events,
    token_details,
)


def apply_all(store, events):
    return [store.apply_event(event) for event in events]


def snapshot(listing_id):
    """Everything persisted for a listing, in a comparable form."""
    with Session() as session:
        listing = session.get(AuctionhouseListing, listing_id)

        def rows(model):
            return [
                (row.id, row.amount, row.block_number)
                for row in session.scalars(
                    select(model)
                    .where(model.listing_id == listing_id)
                    .order_by(model.id)
                )
            ]

        return {
            "state": listing.to_state(),
            "version_id": listing.version_id,
            "bids": rows(AuctionhouseBid),
            "offers": rows(AuctionhouseOffer),
            "purchases": rows(AuctionhousePurchase),
            "applied_events": session.scalar(
                select(func.count()).select_from(AppliedEvent)
            ),
        }


def test_auction_win_is_persisted(store):
    outcomes = apply_all(store, auction_win_events(42))
    assert outcomes == [ApplyOutcome.APPLIED] * 6

    with Session() as session:
        listing = queries.get_listing(session, 42)
        assert listing.status == ListingStatus.FINALIZED
        assert listing.finalized
        assert listing.current_bidder == B2
        assert listing.current_bid_amount == 150
        assert listing.total_sold == 1
        assert listing.token_id == 7
        assert listing.deliver_bps == 250

        assert [b.bidder for b in queries.get_bids_for_listing(session, 42)] == [B2, B1]
        [sale] = queries.get_purchases_for_listing(session, 42)
        assert sale.buyer == B2
        assert sale.amount == 150
        assert sale.count == 1
        assert sale.source == PurchaseSource.AUCTION_WIN.value


def test_replaying_duplicates_is_a_no_op(store):
    events = auction_win_events(42)
    apply_all(store, events)
    clean = snapshot(42)

    # Redeliver the last bid and the finalize
    assert store.apply_event(events[4]) == ApplyOutcome.DUPLICATE
    assert store.apply_event(events[5]) == ApplyOutcome.DUPLICATE

    assert snapshot(42) == clean


def test_replaying_entire_log_twice_matches_single_pass(store):
    events = auction_win_events(42)
    apply_all(store, events)
    clean = snapshot(42)

    interleaved = [event for event in events for _ in range(2)]
    assert set(apply_all(store, interleaved)) == {ApplyOutcome.DUPLICATE}
    assert snapshot(42) == clean


def test_duplicates_inside_first_pass_do_not_double_count(store):
    events = auction_win_events(42)
    with_duplicates = events[:4] + [events[3]] + events[4:] + [events[5]]

    outcomes = apply_all(store, with_duplicates)

    assert outcomes.count(ApplyOutcome.DUPLICATE) == 2
    with Session() as session:
        assert queries.get_listing(session, 42).total_sold == 1
        assert len(queries.get_bids_for_listing(session, 42)) == 2
        assert len(queries.get_purchases_for_listing(session, 42)) == 1


def test_accepted_offer_status_is_persisted(store):
    apply_all(store, offer_acceptance_events(7))

    with Session() as session:
        offers = {o.offerer: o for o in queries.get_offers_for_listing(session, 7)}
        assert offers[O1].status == OfferStatus.PENDING.value
        assert offers[O2].status == OfferStatus.ACCEPTED.value
        assert offers[O2].accepted_at == T0 + 203
        assert offers[O2].rescinded_at is None

        listing = queries.get_listing(session, 7)
        assert listing.status == ListingStatus.FINALIZED
        assert listing.total_sold == 2

        [sale] = queries.get_purchases_for_listing(session, 7)
        assert (sale.buyer, sale.amount, sale.count, sale.items) == (O2, 80, 2, 2)


def test_rescinded_offer_status_is_persisted(store):
    apply_all(store, rescind_events(9))

    with Session() as session:
        offers = {o.offerer: o for o in queries.get_offers_for_listing(session, 9)}
        assert offers[O1].status == OfferStatus.RESCINDED.value
        assert offers[O1].rescinded_at == T0 + 303
        assert offers[O2].status == OfferStatus.PENDING.value

        listing = queries.get_listing(session, 9)
        assert listing.current_offerer == O2
        assert listing.current_offer_amount == 20


def test_rescind_marks_only_latest_pending_offer(store):
    apply_all(
        store,
        [
            create_listing(9, block=10),
            offer(9, block=11, offerer=O1, amount=10),
            offer(9, block=12, offerer=O1, amount=15),
            rescind(9, block=13, offerer=O1),
        ],
    )

    with Session() as session:
        statuses = [
            (o.amount, o.status) for o in queries.get_offers_for_listing(session, 9)
        ]
    assert statuses == [
        (15, OfferStatus.RESCINDED.value),
        (10, OfferStatus.PENDING.value),
    ]


def test_rescind_without_pending_offer_still_applies(store):
    outcomes = apply_all(
        store, [create_listing(9, block=10), rescind(9, block=11, offerer=O1)]
    )

    assert outcomes == [ApplyOutcome.APPLIED, ApplyOutcome.APPLIED]
    with Session() as session:
        assert queries.get_offers_for_listing(session, 9) == []


def test_event_on_cancelled_listing_is_skipped(store):
    events = cancellation_events(3)

    outcomes = apply_all(store, events)

    assert outcomes == [
        ApplyOutcome.APPLIED,
        ApplyOutcome.APPLIED,
        ApplyOutcome.SKIPPED_TERMINAL,
    ]
    with Session() as session:
        listing = queries.get_listing(session, 3)
        assert listing.status == ListingStatus.CANCELLED
        assert not listing.has_bid
        assert listing.current_bidder is None
        assert listing.updated_at_block == 401
        assert queries.get_bids_for_listing(session, 3) == []

        skipped = session.get(AppliedEvent, (events[2].meta.transaction_hash, 0))
        assert skipped.outcome == ApplyOutcome.SKIPPED_TERMINAL.value

    # The skip is remembered, so redelivery is silent
    assert store.apply_event(events[2]) == ApplyOutcome.DUPLICATE


def test_out_of_order_event_rolls_back(store):
    apply_all(store, [create_listing(15, block=10), bid(15, block=12, bidder=B1, amount=10)])
    late = bid(15, block=11, bidder=B2, amount=20)

    with pytest.raises(OutOfOrderEventError):
        store.apply_event(late)

    with Session() as session:
        assert session.get(AppliedEvent, (late.meta.transaction_hash, 0)) is None
        assert [b.bidder for b in queries.get_bids_for_listing(session, 15)] == [B1]
        assert queries.get_listing(session, 15).current_bidder == B1


def test_listing_version_increments_per_write(store):
    apply_all(store, [create_listing(16, block=1), token_details(16, block=1)])
    assert snapshot(16)["version_id"] == 2

    store.apply_event(fees(16, block=1))
    assert snapshot(16)["version_id"] == 3


def test_escrow_is_written_without_listing(store):
    assert store.apply_event(escrow(block=50, receiver=SELLER, amount=99)) == (
        ApplyOutcome.APPLIED
    )

    with Session() as session:
        [row] = queries.get_escrows_by_receiver(session, SELLER)
        assert row.amount == 99
        assert session.scalar(select(func.count()).select_from(AuctionhouseListing)) == 0
        assert session.scalar(select(func.count()).select_from(AuctionhouseEscrow)) == 1


def test_lost_version_race_is_retried(store, monkeypatch):
    apply_in_session = store.apply_in_session
    calls = []

    def flaky_apply(session, event):
        calls.append(event.event_id)
        if len(calls) == 1:
            raise StaleDataError("listing row version changed")
        return apply_in_session(session, event)

    monkeypatch.setattr(store, "apply_in_session", flaky_apply)

    assert store.apply_event(create_listing(17, block=1)) == ApplyOutcome.APPLIED
    assert len(calls) == 2


def test_bounded_retries_attempt_count(store, monkeypatch):
    calls = []

    def always_stale(session, event):
        calls.append(1)
        raise StaleDataError("listing row version changed")

    monkeypatch.setattr(store, "apply_in_session", always_stale)

    with pytest.raises(StaleDataError):
        store.apply_event(create_listing(18, block=1))
    assert len(calls) == MAX_OPTIMISTIC_RETRIES + 1
