import pytest

from processors.auctionhouse.auctionhouse_constants import EVENT_TOPICS
from processors.auctionhouse.auctionhouse_enums import EventKind, ListingType, TokenSpec
from processors.auctionhouse.errors import MalformedEventError, UnknownEventError
from processors.auctionhouse.event_parser import parse_event
from processors.auctionhouse.events import (
    AcceptOfferEvent,
    BidEvent,
    CreateListingEvent,
    CreateListingTokenDetailsEvent,
    EscrowEvent,
    OfferEvent,
    PurchaseEvent,
    RescindOfferEvent,
)
from utils.general_utils import ZERO_ADDRESS

from event_builders import (
    B1,
    O1,
    REFERRER,
    SELLER,
    T0,
    TOKEN,
    address,
    bid_record,
    create_listing_record,
    record,
    tx_hash,
)


def test_parse_bid():
    event = parse_event(bid_record(42, block=101, bidder=B1, amount="150", log_index=3))

    assert isinstance(event, BidEvent)
    assert event.kind == EventKind.BID
    assert event.listing_id == 42
    assert event.bidder == B1
    assert event.amount == 150
    assert event.referrer is None
    assert event.block_number == 101
    assert event.meta.block_timestamp == T0 + 101
    assert event.event_id == f"{tx_hash(101)}-3"


def test_parse_create_listing_falls_back_to_transaction_sender():
    event = parse_event(create_listing_record(42, block=100))

    assert isinstance(event, CreateListingEvent)
    assert event.seller == SELLER
    assert event.listing_type == ListingType.INDIVIDUAL_AUCTION
    assert event.initial_amount == 100
    assert event.currency == ZERO_ADDRESS
    assert event.min_increment_bps == 500


def test_parse_create_listing_with_explicit_seller():
    seller = address(0x123)
    event = parse_event(create_listing_record(42, block=100, seller=seller))

    assert event.seller == seller


def test_parse_create_listing_rejects_unknown_listing_type():
    with pytest.raises(MalformedEventError):
        parse_event(create_listing_record(42, block=100, listingType=9))


def test_parse_token_details():
    event = parse_event(
        record(
            "CreateListingTokenDetails",
            100,
            1,
            {
                "listingId": "0x2a",
                "id": "7",
                "address_": TOKEN.upper().replace("0X", "0x"),
                "spec": 1,
                "lazy": True,
            },
        )
    )

    assert isinstance(event, CreateListingTokenDetailsEvent)
    assert event.listing_id == 42
    assert event.token_address == TOKEN
    assert event.token_id == 7
    assert event.token_spec == TokenSpec.ERC721
    assert event.lazy is True


def test_parse_uint256_amounts():
    huge = 2**256 - 1
    event = parse_event(bid_record(1, block=1, bidder=B1, amount=hex(huge)))

    assert event.amount == huge


@pytest.mark.parametrize("field_name", ["offerrer", "offerer"])
def test_parse_offer_party_spellings(field_name):
    event = parse_event(
        record(
            "OfferEvent",
            10,
            0,
            {"listingId": 9, field_name: O1, "amount": 10, "referrer": REFERRER},
        )
    )

    assert isinstance(event, OfferEvent)
    assert event.offerer == O1
    assert event.referrer == REFERRER


def test_parse_rescind_and_accept():
    rescind = parse_event(record("RescindOfferEvent", 11, 0, {"listingId": 9, "offerrer": O1}))
    accept = parse_event(
        record("AcceptOfferEvent", 12, 0, {"listingId": 9, "offerrer": O1, "amount": 10})
    )

    assert isinstance(rescind, RescindOfferEvent)
    assert rescind.offerer == O1
    assert isinstance(accept, AcceptOfferEvent)
    assert accept.amount == 10


def test_parse_purchase():
    event = parse_event(
        record(
            "PurchaseEvent",
            20,
            0,
            {"listingId": 2, "buyer": B1, "count": 3, "amount": "300", "referrer": None},
        )
    )

    assert isinstance(event, PurchaseEvent)
    assert event.count == 3
    assert event.referrer is None


def test_parse_escrow():
    event = parse_event(
        record(
            "Escrow",
            20,
            1,
            {"receiver": SELLER, "erc20": ZERO_ADDRESS, "amount": 5},
        )
    )

    assert isinstance(event, EscrowEvent)
    assert not hasattr(event, "listing_id")
    assert event.receiver == SELLER


def test_parse_by_topic_when_name_is_missing():
    topic = next(t for t, kind in EVENT_TOPICS.items() if kind == EventKind.BID)
    raw = bid_record(1, block=1, bidder=B1, amount=1)
    del raw["event"]
    raw["topics"] = [topic]

    assert isinstance(parse_event(raw), BidEvent)


def test_unknown_event_is_rejected():
    with pytest.raises(UnknownEventError):
        parse_event(record("Transfer", 1, 0, {}))


@pytest.mark.parametrize(
    "overrides",
    [
        {"amount": -1},
        {"amount": 1.5},
        {"amount": True},
        {"amount": "ten"},
        {"bidder": "0x12zz"},
        {"bidder": 12},
        {"listingId": None},
    ],
)
def test_invalid_fields_are_malformed(overrides):
    raw = bid_record(1, block=1, bidder=B1, amount=1)
    raw["args"].update(overrides)

    with pytest.raises(MalformedEventError) as e:
        parse_event(raw)
    assert e.value.event_name == "BidEvent"


def test_missing_log_metadata_is_malformed():
    raw = bid_record(1, block=1, bidder=B1, amount=1)
    del raw["transactionHash"]

    with pytest.raises(MalformedEventError):
        parse_event(raw)


def test_missing_args_is_malformed():
    raw = bid_record(1, block=1, bidder=B1, amount=1)
    raw["args"] = "0xdeadbeef"

    with pytest.raises(MalformedEventError):
        parse_event(raw)


@pytest.mark.parametrize("topics", [5, {"a": 1}, "0xabc"])
def test_topics_that_are_not_a_list_are_malformed(topics):
    raw = bid_record(1, block=1, bidder=B1, amount=1)
    del raw["event"]
    raw["topics"] = topics

    with pytest.raises(MalformedEventError):
        parse_event(raw)


def test_offer_without_a_known_party_field_is_malformed():
    raw = record("OfferEvent", 10, 0, {"listingId": 9, "oferrer": O1, "amount": 10})

    with pytest.raises(MalformedEventError):
        parse_event(raw)
