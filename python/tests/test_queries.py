import pytest

from processors.auctionhouse import queries
from processors.auctionhouse.auctionhouse_enums import (
    ListingStatus,
    ListingType,
    OfferStatus,
)
from utils.session import Session

from event_builders import (
    B1,
    B2,
    BUYER,
    O1,
    O2,
    SELLER,
    TOKEN,
    address,
    bid,
    cancel,
    create_listing,
    escrow,
    finalize,
    offer,
    purchase,
    token_details,
)

OTHER_SELLER = address(0x5E12)
OTHER_TOKEN = address(0xBBB)


@pytest.fixture()
def marketplace(store):
    events = [
        # Active auction on TOKEN with two bids
        create_listing(1, block=10),
        token_details(1, block=10),
        bid(1, block=11, bidder=B1, amount=120),
        bid(1, block=12, bidder=B2, amount=150),
        # Active fixed price listing on another token
        create_listing(
            2,
            block=20,
            listing_type=ListingType.FIXED_PRICE,
            total_available=5,
            total_per_sale=1,
        ),
        token_details(2, block=20, token_address=OTHER_TOKEN),
        purchase(2, block=21, buyer=BUYER, count=2, amount=200),
        # Offers only listing from another seller, still open
        create_listing(
            3, block=30, listing_type=ListingType.OFFERS_ONLY, seller=OTHER_SELLER
        ),
        offer(3, block=31, offerer=O1, amount=10),
        offer(3, block=32, offerer=O2, amount=20),
        # Cancelled listing
        create_listing(4, block=40),
        cancel(4, block=41),
        # Auction won by B1
        create_listing(5, block=50),
        bid(5, block=51, bidder=B1, amount=300),
        finalize(5, block=52),
        escrow(block=52, receiver=SELLER, amount=270, log_index=1),
    ]
    for event in events:
        store.apply_event(event)


@pytest.mark.usefixtures("marketplace")
class TestListingQueries:
    def test_get_listing(self):
        with Session() as session:
            assert queries.get_listing(session, 1).current_bidder == B2
            assert queries.get_listing(session, 999) is None

    def test_active_listings_newest_first(self):
        with Session() as session:
            active = queries.get_active_listings(session)
        assert [listing.listing_id for listing in active] == [3, 2, 1]

    def test_active_listings_by_token(self):
        with Session() as session:
            active = queries.get_active_listings(session, token_address=TOKEN.upper())
        assert [listing.listing_id for listing in active] == [1]

    def test_active_listings_pagination(self):
        with Session() as session:
            page = queries.get_active_listings(session, limit=1, offset=1)
        assert [listing.listing_id for listing in page] == [2]

    def test_listings_by_seller(self):
        with Session() as session:
            all_listings = queries.get_listings_by_seller(session, SELLER)
            cancelled = queries.get_listings_by_seller(
                session, SELLER, status=ListingStatus.CANCELLED
            )
            other = queries.get_listings_by_seller(session, OTHER_SELLER)
        assert [listing.listing_id for listing in all_listings] == [5, 4, 2, 1]
        assert [listing.listing_id for listing in cancelled] == [4]
        assert [listing.listing_id for listing in other] == [3]

    def test_recently_concluded(self):
        with Session() as session:
            concluded = queries.get_recently_concluded(session)
        assert [listing.listing_id for listing in concluded] == [5]
        assert concluded[0].total_sold == 1


@pytest.mark.usefixtures("marketplace")
class TestLedgerQueries:
    def test_bids_by_bidder(self):
        with Session() as session:
            bids = queries.get_bids_by_bidder(session, B1)
        assert [(b.listing_id, b.amount) for b in bids] == [(5, 300), (1, 120)]

    def test_offers_by_status(self):
        with Session() as session:
            pending = queries.get_offers_for_listing(
                session, 3, status=OfferStatus.PENDING
            )
            accepted = queries.get_offers_for_listing(
                session, 3, status=OfferStatus.ACCEPTED
            )
        assert [o.offerer for o in pending] == [O2, O1]
        assert accepted == []

    def test_offers_by_offerer(self):
        with Session() as session:
            offers = queries.get_offers_by_offerer(session, O2)
        assert [(o.listing_id, o.amount) for o in offers] == [(3, 20)]

    def test_purchases_by_buyer(self):
        with Session() as session:
            direct = queries.get_purchases_by_buyer(session, BUYER)
            won = queries.get_purchases_by_buyer(session, B1)
        assert [(p.listing_id, p.count, p.items) for p in direct] == [(2, 2, 2)]
        assert [(p.listing_id, p.amount) for p in won] == [(5, 300)]

    def test_escrows_by_receiver(self):
        with Session() as session:
            escrows = queries.get_escrows_by_receiver(session, SELLER)
        assert [e.amount for e in escrows] == [270]
