from typing import Any, Callable, Dict, Optional

from processors.auctionhouse.auctionhouse_constants import EVENT_NAMES, EVENT_TOPICS
from processors.auctionhouse.auctionhouse_enums import EventKind, ListingType, TokenSpec
from processors.auctionhouse.errors import MalformedEventError, UnknownEventError
from processors.auctionhouse.events import (
    AcceptOfferEvent,
    AuctionhouseEvent,
    BidEvent,
    CancelListingEvent,
    CreateListingEvent,
    CreateListingFeesEvent,
    CreateListingTokenDetailsEvent,
    EscrowEvent,
    FinalizeListingEvent,
    LogMeta,
    ModifyListingEvent,
    OfferEvent,
    PurchaseEvent,
    RescindOfferEvent,
)
from utils.general_utils import (
    is_valid_address,
    is_zero_address,
    parse_uint,
    standardize_address,
)


class _Args:
    """Typed accessors over a decoded log's `args` that raise MalformedEventError."""

    def __init__(self, event_name: str, args: Dict[str, Any]):
        self.event_name = event_name
        self.args = args

    def _raw(self, *names: str) -> Any:
        for name in names:
            if name in self.args and self.args[name] is not None:
                return self.args[name]
        raise MalformedEventError(
            f"{self.event_name} is missing field {names[0]}", self.event_name
        )

    def uint(self, *names: str) -> int:
        value = self._raw(*names)
        try:
            return parse_uint(value)
        except ValueError as e:
            raise MalformedEventError(
                f"{self.event_name}.{names[0]} is not a uint: {e}", self.event_name
            )

    def address(self, *names: str) -> str:
        value = self._raw(*names)
        if not isinstance(value, str):
            raise MalformedEventError(
                f"{self.event_name}.{names[0]} is not an address", self.event_name
            )
        address = standardize_address(value)
        if not is_valid_address(address):
            raise MalformedEventError(
                f"{self.event_name}.{names[0]} is not an address: {value}",
                self.event_name,
            )
        return address

    def optional_address(self, *names: str) -> Optional[str]:
        if all(self.args.get(name) is None for name in names):
            return None
        address = self.address(*names)
        return None if is_zero_address(address) else address

    def boolean(self, *names: str) -> bool:
        value = self._raw(*names)
        if not isinstance(value, bool):
            raise MalformedEventError(
                f"{self.event_name}.{names[0]} is not a bool", self.event_name
            )
        return value


def get_event_kind(record: Dict[str, Any]) -> EventKind:
    event_name = record.get("event")
    if not isinstance(event_name, str):
        event_name = None
    elif event_name in EVENT_NAMES:
        return EVENT_NAMES[event_name]

    topics = record.get("topics") or []
    if not isinstance(topics, list):
        raise MalformedEventError("topics is not a list", event_name)
    if topics and isinstance(topics[0], str) and topics[0].lower() in EVENT_TOPICS:
        return EVENT_TOPICS[topics[0].lower()]

    raise UnknownEventError(f"Unknown event {event_name!r}", event_name)


def get_log_meta(record: Dict[str, Any], event_name: str) -> LogMeta:
    meta = _Args(event_name, record)
    transaction_hash = meta._raw("transactionHash")
    if not isinstance(transaction_hash, str):
        raise MalformedEventError(
            f"{event_name}.transactionHash is not a string", event_name
        )
    return LogMeta(
        transaction_hash=transaction_hash.lower(),
        log_index=meta.uint("logIndex"),
        block_number=meta.uint("blockNumber"),
        block_timestamp=meta.uint("blockTimestamp", "timestamp"),
        transaction_from=meta.optional_address("transactionFrom", "from"),
    )


def get_create_listing(meta: LogMeta, args: _Args) -> CreateListingEvent:
    # The contract does not log the seller; it is the transaction sender
    seller = args.optional_address("seller") or meta.transaction_from
    if seller is None:
        raise MalformedEventError(
            "CreateListing has neither seller nor transactionFrom", args.event_name
        )
    try:
        listing_type = ListingType(args.uint("listingType"))
    except ValueError:
        raise MalformedEventError(
            f"CreateListing.listingType is out of range: {args.args['listingType']}",
            args.event_name,
        )
    return CreateListingEvent(
        meta=meta,
        listing_id=args.uint("listingId"),
        seller=seller,
        listing_type=listing_type,
        initial_amount=args.uint("initialAmount"),
        total_available=args.uint("totalAvailable"),
        total_per_sale=args.uint("totalPerSale"),
        start_time=args.uint("startTime"),
        end_time=args.uint("endTime"),
        extension_interval=args.uint("extensionInterval"),
        min_increment_bps=args.uint("minIncrementBPS"),
        currency=args.address("erc20", "currency"),
        identity_verifier=args.address("identityVerifier"),
        marketplace_bps=args.uint("marketplaceBPS"),
        referrer_bps=args.uint("referrerBPS"),
    )


def get_create_listing_token_details(
    meta: LogMeta, args: _Args
) -> CreateListingTokenDetailsEvent:
    try:
        token_spec = TokenSpec(args.uint("spec", "tokenSpec"))
    except ValueError:
        raise MalformedEventError(
            "CreateListingTokenDetails.spec is out of range", args.event_name
        )
    return CreateListingTokenDetailsEvent(
        meta=meta,
        listing_id=args.uint("listingId"),
        token_address=args.address("address_", "tokenAddress"),
        token_id=args.uint("id", "tokenId"),
        token_spec=token_spec,
        lazy=args.boolean("lazy"),
    )


def get_create_listing_fees(meta: LogMeta, args: _Args) -> CreateListingFeesEvent:
    return CreateListingFeesEvent(
        meta=meta,
        listing_id=args.uint("listingId"),
        deliver_bps=args.uint("deliverBPS"),
        deliver_fixed=args.uint("deliverFixed"),
    )


def get_modify_listing(meta: LogMeta, args: _Args) -> ModifyListingEvent:
    return ModifyListingEvent(
        meta=meta,
        listing_id=args.uint("listingId"),
        initial_amount=args.uint("initialAmount"),
        start_time=args.uint("startTime"),
        end_time=args.uint("endTime"),
    )


def get_cancel_listing(meta: LogMeta, args: _Args) -> CancelListingEvent:
    return CancelListingEvent(meta=meta, listing_id=args.uint("listingId"))


def get_bid(meta: LogMeta, args: _Args) -> BidEvent:
    return BidEvent(
        meta=meta,
        listing_id=args.uint("listingId"),
        bidder=args.address("bidder"),
        amount=args.uint("amount"),
        referrer=args.optional_address("referrer"),
    )


# The contract ABI spells the offer party "offerrer"
def get_offer(meta: LogMeta, args: _Args) -> OfferEvent:
    return OfferEvent(
        meta=meta,
        listing_id=args.uint("listingId"),
        offerer=args.address("offerrer", "offerer"),
        amount=args.uint("amount"),
        referrer=args.optional_address("referrer"),
    )


def get_rescind_offer(meta: LogMeta, args: _Args) -> RescindOfferEvent:
    return RescindOfferEvent(
        meta=meta,
        listing_id=args.uint("listingId"),
        offerer=args.address("offerrer", "offerer"),
    )


def get_accept_offer(meta: LogMeta, args: _Args) -> AcceptOfferEvent:
    return AcceptOfferEvent(
        meta=meta,
        listing_id=args.uint("listingId"),
        offerer=args.address("offerrer", "offerer"),
        amount=args.uint("amount"),
    )


def get_purchase(meta: LogMeta, args: _Args) -> PurchaseEvent:
    return PurchaseEvent(
        meta=meta,
        listing_id=args.uint("listingId"),
        buyer=args.address("buyer"),
        count=args.uint("count"),
        amount=args.uint("amount"),
        referrer=args.optional_address("referrer"),
    )


def get_finalize_listing(meta: LogMeta, args: _Args) -> FinalizeListingEvent:
    return FinalizeListingEvent(meta=meta, listing_id=args.uint("listingId"))


def get_escrow(meta: LogMeta, args: _Args) -> EscrowEvent:
    return EscrowEvent(
        meta=meta,
        receiver=args.address("receiver"),
        currency=args.address("erc20", "currency"),
        amount=args.uint("amount"),
    )


EVENT_PARSERS: Dict[EventKind, Callable[[LogMeta, _Args], AuctionhouseEvent]] = {
    EventKind.CREATE_LISTING: get_create_listing,
    EventKind.CREATE_LISTING_TOKEN_DETAILS: get_create_listing_token_details,
    EventKind.CREATE_LISTING_FEES: get_create_listing_fees,
    EventKind.MODIFY_LISTING: get_modify_listing,
    EventKind.CANCEL_LISTING: get_cancel_listing,
    EventKind.BID: get_bid,
    EventKind.OFFER: get_offer,
    EventKind.RESCIND_OFFER: get_rescind_offer,
    EventKind.ACCEPT_OFFER: get_accept_offer,
    EventKind.PURCHASE: get_purchase,
    EventKind.FINALIZE_LISTING: get_finalize_listing,
    EventKind.ESCROW: get_escrow,
}


def parse_event(record: Dict[str, Any]) -> AuctionhouseEvent:
    if not isinstance(record, dict):
        raise MalformedEventError("Event record is not an object")

    kind = get_event_kind(record)
    args = record.get("args")
    if not isinstance(args, dict):
        raise MalformedEventError(f"{kind.value} has no args", kind.value)

    meta = get_log_meta(record, kind.value)
    return EVENT_PARSERS[kind](meta, _Args(kind.value, args))
