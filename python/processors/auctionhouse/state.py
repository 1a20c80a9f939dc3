"""
Immutable state handled by the listing materializer.

`ListingState` is the aggregate for one listing. Fields that are not known yet hold
an explicit sentinel instead of None, so every read is total:

    field group   field               sentinel
    -----------   -----------------   -------------------------
    core terms    seller              ZERO_ADDRESS
                  listing_type        ListingType.INVALID (0)
                  initial_amount      0
                  total_available     0
                  total_per_sale      0
                  start_time          0
                  end_time            0
                  extension_interval  0
                  min_increment_bps   0
                  currency            ZERO_ADDRESS (native currency)
                  identity_verifier   ZERO_ADDRESS (no gating)
                  marketplace_bps     0
                  referrer_bps        0
    token         token_address       ZERO_ADDRESS
                  token_id            0
                  token_spec          TokenSpec.NONE (0)
                  lazy                False
    fees          deliver_bps         0
                  deliver_fixed       0

`current_bidder`/`current_bid_amount` and `current_offerer`/`current_offer_amount`
are the only nullable fields: None there means "no live bid/offer", not "unknown".

Child records are the ledger rows produced alongside a new listing state. They are
appended once and never rewritten, except for the status of an offer which changes
through `OfferStatusChange`.
"""

from dataclasses import dataclass, field, replace
from typing import Any, List, Optional, Union

from processors.auctionhouse.auctionhouse_enums import (
    ListingStatus,
    ListingType,
    OfferStatus,
    PurchaseSource,
    TokenSpec,
)
from processors.auctionhouse.events import LogMeta
from utils.general_utils import ZERO_ADDRESS, is_zero_address


@dataclass(frozen=True)
class ListingState:
    listing_id: int
    marketplace_address: str

    # Core terms
    seller: str = ZERO_ADDRESS
    listing_type: ListingType = ListingType.INVALID
    initial_amount: int = 0
    total_available: int = 0
    total_per_sale: int = 0
    start_time: int = 0
    end_time: int = 0
    extension_interval: int = 0
    min_increment_bps: int = 0
    currency: str = ZERO_ADDRESS
    identity_verifier: str = ZERO_ADDRESS
    marketplace_bps: int = 0
    referrer_bps: int = 0

    # Token details
    token_address: str = ZERO_ADDRESS
    token_id: int = 0
    token_spec: TokenSpec = TokenSpec.NONE
    lazy: bool = False

    # Fee details
    deliver_bps: int = 0
    deliver_fixed: int = 0

    # Live state
    total_sold: int = 0
    status: ListingStatus = ListingStatus.ACTIVE
    has_bid: bool = False
    finalized: bool = False
    current_bidder: Optional[str] = None
    current_bid_amount: Optional[int] = None
    current_offerer: Optional[str] = None
    current_offer_amount: Optional[int] = None

    # Audit
    created_at: int = 0
    created_at_block: int = 0
    updated_at: int = 0
    updated_at_block: int = 0

    @classmethod
    def default(
        cls, listing_id: int, marketplace_address: str, meta: LogMeta
    ) -> "ListingState":
        return cls(
            listing_id=listing_id,
            marketplace_address=marketplace_address,
            created_at=meta.block_timestamp,
            created_at_block=meta.block_number,
            updated_at=meta.block_timestamp,
            updated_at_block=meta.block_number,
        )

    @property
    def is_terminal(self) -> bool:
        return self.status != ListingStatus.ACTIVE

    @property
    def has_core_terms(self) -> bool:
        return self.listing_type != ListingType.INVALID

    @property
    def has_token_details(self) -> bool:
        return not is_zero_address(self.token_address)

    @property
    def has_fee_details(self) -> bool:
        return self.deliver_bps != 0 or self.deliver_fixed != 0

    def merge(self, meta: LogMeta, **fields: Any) -> "ListingState":
        return replace(
            self,
            updated_at=meta.block_timestamp,
            updated_at_block=meta.block_number,
            **fields,
        )


@dataclass(frozen=True)
class BidRecord:
    id: str
    listing_id: int
    bidder: str
    amount: int
    referrer: Optional[str]
    timestamp: int
    block_number: int
    log_index: int
    transaction_hash: str


@dataclass(frozen=True)
class OfferRecord:
    id: str
    listing_id: int
    offerer: str
    amount: int
    referrer: Optional[str]
    status: OfferStatus
    timestamp: int
    block_number: int
    log_index: int
    transaction_hash: str


@dataclass(frozen=True)
class OfferStatusChange:
    """Moves the offerer's most recent PENDING offer on the listing to a final status."""

    listing_id: int
    offerer: str
    status: OfferStatus
    timestamp: int
    block_number: int


@dataclass(frozen=True)
class PurchaseRecord:
    id: str
    listing_id: int
    buyer: str
    count: int
    # Items this purchase added to the listing's total_sold
    items: int
    amount: int
    referrer: Optional[str]
    source: PurchaseSource
    timestamp: int
    block_number: int
    log_index: int
    transaction_hash: str


@dataclass(frozen=True)
class EscrowRecord:
    id: str
    receiver: str
    currency: str
    amount: int
    timestamp: int
    block_number: int
    log_index: int
    transaction_hash: str


ChildWrite = Union[BidRecord, OfferRecord, OfferStatusChange, PurchaseRecord, EscrowRecord]


@dataclass(frozen=True)
class MaterializationResult:
    # None for events that are not listing scoped (escrow)
    listing: Optional[ListingState]
    writes: List[ChildWrite] = field(default_factory=list)
