from dataclasses import dataclass
from typing import Optional, Union

from processors.auctionhouse.auctionhouse_enums import EventKind, ListingType, TokenSpec
from utils.general_utils import event_id


@dataclass(frozen=True)
class LogMeta:
    transaction_hash: str
    log_index: int
    block_number: int
    block_timestamp: int
    transaction_from: Optional[str] = None

    @property
    def event_id(self) -> str:
        return event_id(self.transaction_hash, self.log_index)


@dataclass(frozen=True)
class ListingEvent:
    meta: LogMeta
    listing_id: int

    kind = None  # type: EventKind

    @property
    def event_id(self) -> str:
        return self.meta.event_id

    @property
    def block_number(self) -> int:
        return self.meta.block_number


@dataclass(frozen=True)
class CreateListingEvent(ListingEvent):
    seller: str
    listing_type: ListingType
    initial_amount: int
    total_available: int
    total_per_sale: int
    start_time: int
    end_time: int
    extension_interval: int
    min_increment_bps: int
    currency: str
    identity_verifier: str
    marketplace_bps: int
    referrer_bps: int

    kind = EventKind.CREATE_LISTING


@dataclass(frozen=True)
class CreateListingTokenDetailsEvent(ListingEvent):
    token_address: str
    token_id: int
    token_spec: TokenSpec
    lazy: bool

    kind = EventKind.CREATE_LISTING_TOKEN_DETAILS


@dataclass(frozen=True)
class CreateListingFeesEvent(ListingEvent):
    deliver_bps: int
    deliver_fixed: int

    kind = EventKind.CREATE_LISTING_FEES


@dataclass(frozen=True)
class ModifyListingEvent(ListingEvent):
    initial_amount: int
    start_time: int
    end_time: int

    kind = EventKind.MODIFY_LISTING


@dataclass(frozen=True)
class CancelListingEvent(ListingEvent):
    kind = EventKind.CANCEL_LISTING


@dataclass(frozen=True)
class BidEvent(ListingEvent):
    bidder: str
    amount: int
    referrer: Optional[str]

    kind = EventKind.BID


@dataclass(frozen=True)
class OfferEvent(ListingEvent):
    offerer: str
    amount: int
    referrer: Optional[str]

    kind = EventKind.OFFER


@dataclass(frozen=True)
class RescindOfferEvent(ListingEvent):
    offerer: str

    kind = EventKind.RESCIND_OFFER


@dataclass(frozen=True)
class AcceptOfferEvent(ListingEvent):
    offerer: str
    amount: int

    kind = EventKind.ACCEPT_OFFER


@dataclass(frozen=True)
class PurchaseEvent(ListingEvent):
    buyer: str
    count: int
    amount: int
    referrer: Optional[str]

    kind = EventKind.PURCHASE


@dataclass(frozen=True)
class FinalizeListingEvent(ListingEvent):
    kind = EventKind.FINALIZE_LISTING


# Escrow disbursements are emitted by the settlement library and are not tied to a listing
@dataclass(frozen=True)
class EscrowEvent:
    meta: LogMeta
    receiver: str
    currency: str
    amount: int

    kind = EventKind.ESCROW

    @property
    def event_id(self) -> str:
        return self.meta.event_id

    @property
    def block_number(self) -> int:
        return self.meta.block_number


AuctionhouseEvent = Union[
    CreateListingEvent,
    CreateListingTokenDetailsEvent,
    CreateListingFeesEvent,
    ModifyListingEvent,
    CancelListingEvent,
    BidEvent,
    OfferEvent,
    RescindOfferEvent,
    AcceptOfferEvent,
    PurchaseEvent,
    FinalizeListingEvent,
    EscrowEvent,
]
