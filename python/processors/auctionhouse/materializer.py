from typing import Any, Callable, Dict, Optional

from processors.auctionhouse.auctionhouse_enums import (
    EventKind,
    ListingStatus,
    OfferStatus,
    PurchaseSource,
)
from processors.auctionhouse.errors import OutOfOrderEventError, TerminalStateViolation
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
    ListingEvent,
    ModifyListingEvent,
    OfferEvent,
    PurchaseEvent,
    RescindOfferEvent,
)
from processors.auctionhouse.state import (
    BidRecord,
    EscrowRecord,
    ListingState,
    MaterializationResult,
    OfferRecord,
    OfferStatusChange,
    PurchaseRecord,
)
from utils.general_utils import standardize_address


# Field group builders. A listing is created by up to three events in one transaction;
# each one overwrites only its own group so they can arrive in any order.
def core_terms_fields(event: CreateListingEvent) -> Dict[str, Any]:
    return {
        "seller": event.seller,
        "listing_type": event.listing_type,
        "initial_amount": event.initial_amount,
        "total_available": event.total_available,
        "total_per_sale": event.total_per_sale,
        "start_time": event.start_time,
        "end_time": event.end_time,
        "extension_interval": event.extension_interval,
        "min_increment_bps": event.min_increment_bps,
        "currency": event.currency,
        "identity_verifier": event.identity_verifier,
        "marketplace_bps": event.marketplace_bps,
        "referrer_bps": event.referrer_bps,
    }


def token_detail_fields(event: CreateListingTokenDetailsEvent) -> Dict[str, Any]:
    return {
        "token_address": event.token_address,
        "token_id": event.token_id,
        "token_spec": event.token_spec,
        "lazy": event.lazy,
    }


def fee_detail_fields(event: CreateListingFeesEvent) -> Dict[str, Any]:
    return {
        "deliver_bps": event.deliver_bps,
        "deliver_fixed": event.deliver_fixed,
    }


class ListingMaterializer:
    """
    Reduces one event onto the current listing state.

    The materializer holds no mutable state: `apply(state, event)` returns the new
    listing state plus the ledger rows to append, and never touches storage. Callers
    must feed events for a listing in chain order, one writer per listing at a time.

    Raises:
        OutOfOrderEventError: the event is from a block before the listing's last update.
        TerminalStateViolation: the listing is already CANCELLED or FINALIZED.
    """

    def __init__(self, marketplace_address: str):
        self.marketplace_address = standardize_address(marketplace_address)
        self._handlers: Dict[
            EventKind, Callable[[ListingState, Any], MaterializationResult]
        ] = {
            EventKind.CREATE_LISTING: self.apply_listing_core,
            EventKind.CREATE_LISTING_TOKEN_DETAILS: self.apply_token_details,
            EventKind.CREATE_LISTING_FEES: self.apply_fee_details,
            EventKind.MODIFY_LISTING: self.apply_modify,
            EventKind.CANCEL_LISTING: self.apply_cancel,
            EventKind.BID: self.apply_bid,
            EventKind.OFFER: self.apply_offer,
            EventKind.RESCIND_OFFER: self.apply_rescind_offer,
            EventKind.ACCEPT_OFFER: self.apply_accept_offer,
            EventKind.PURCHASE: self.apply_purchase,
            EventKind.FINALIZE_LISTING: self.apply_finalize,
        }

    def apply(
        self, state: Optional[ListingState], event: AuctionhouseEvent
    ) -> MaterializationResult:
        if isinstance(event, EscrowEvent):
            return self.apply_escrow(event)

        state = self.prepare(state, event)
        return self._handlers[event.kind](state, event)

    def prepare(
        self, state: Optional[ListingState], event: ListingEvent
    ) -> ListingState:
        # Events may reference a listing before its creation events; start from sentinels
        if state is None:
            return ListingState.default(
                event.listing_id, self.marketplace_address, event.meta
            )

        if state.listing_id != event.listing_id:
            raise ValueError(
                f"Event for listing {event.listing_id} applied to listing {state.listing_id}"
            )
        if event.block_number < state.updated_at_block:
            raise OutOfOrderEventError(
                state.listing_id, event.block_number, state.updated_at_block
            )
        if state.is_terminal:
            raise TerminalStateViolation(
                state.listing_id, state.status.value, event.kind.value
            )
        return state

    def apply_listing_core(
        self, state: ListingState, event: CreateListingEvent
    ) -> MaterializationResult:
        return MaterializationResult(state.merge(event.meta, **core_terms_fields(event)))

    def apply_token_details(
        self, state: ListingState, event: CreateListingTokenDetailsEvent
    ) -> MaterializationResult:
        return MaterializationResult(
            state.merge(event.meta, **token_detail_fields(event))
        )

    def apply_fee_details(
        self, state: ListingState, event: CreateListingFeesEvent
    ) -> MaterializationResult:
        return MaterializationResult(state.merge(event.meta, **fee_detail_fields(event)))

    def apply_modify(
        self, state: ListingState, event: ModifyListingEvent
    ) -> MaterializationResult:
        return MaterializationResult(
            state.merge(
                event.meta,
                initial_amount=event.initial_amount,
                start_time=event.start_time,
                end_time=event.end_time,
            )
        )

    def apply_cancel(
        self, state: ListingState, event: CancelListingEvent
    ) -> MaterializationResult:
        return MaterializationResult(
            state.merge(event.meta, status=ListingStatus.CANCELLED)
        )

    def apply_bid(self, state: ListingState, event: BidEvent) -> MaterializationResult:
        # The contract enforces increasing bids; the latest applied bid is the current one
        bid = BidRecord(
            id=event.event_id,
            listing_id=event.listing_id,
            bidder=event.bidder,
            amount=event.amount,
            referrer=event.referrer,
            timestamp=event.meta.block_timestamp,
            block_number=event.meta.block_number,
            log_index=event.meta.log_index,
            transaction_hash=event.meta.transaction_hash,
        )
        listing = state.merge(
            event.meta,
            has_bid=True,
            current_bidder=event.bidder,
            current_bid_amount=event.amount,
        )
        return MaterializationResult(listing, [bid])

    def apply_offer(
        self, state: ListingState, event: OfferEvent
    ) -> MaterializationResult:
        offer = OfferRecord(
            id=event.event_id,
            listing_id=event.listing_id,
            offerer=event.offerer,
            amount=event.amount,
            referrer=event.referrer,
            status=OfferStatus.PENDING,
            timestamp=event.meta.block_timestamp,
            block_number=event.meta.block_number,
            log_index=event.meta.log_index,
            transaction_hash=event.meta.transaction_hash,
        )
        # Only the most recent offer is tracked on the listing
        listing = state.merge(
            event.meta,
            current_offerer=event.offerer,
            current_offer_amount=event.amount,
        )
        return MaterializationResult(listing, [offer])

    def apply_rescind_offer(
        self, state: ListingState, event: RescindOfferEvent
    ) -> MaterializationResult:
        status_change = OfferStatusChange(
            listing_id=event.listing_id,
            offerer=event.offerer,
            status=OfferStatus.RESCINDED,
            timestamp=event.meta.block_timestamp,
            block_number=event.meta.block_number,
        )
        fields: Dict[str, Any] = {}
        # A later offer from someone else stays tracked
        if state.current_offerer == event.offerer:
            fields = {"current_offerer": None, "current_offer_amount": None}
        return MaterializationResult(state.merge(event.meta, **fields), [status_change])

    def apply_accept_offer(
        self, state: ListingState, event: AcceptOfferEvent
    ) -> MaterializationResult:
        status_change = OfferStatusChange(
            listing_id=event.listing_id,
            offerer=event.offerer,
            status=OfferStatus.ACCEPTED,
            timestamp=event.meta.block_timestamp,
            block_number=event.meta.block_number,
        )
        purchase = PurchaseRecord(
            id=event.event_id,
            listing_id=event.listing_id,
            buyer=event.offerer,
            count=state.total_per_sale,
            items=state.total_per_sale,
            amount=event.amount,
            referrer=None,
            source=PurchaseSource.ACCEPTED_OFFER,
            timestamp=event.meta.block_timestamp,
            block_number=event.meta.block_number,
            log_index=event.meta.log_index,
            transaction_hash=event.meta.transaction_hash,
        )
        listing = state.merge(
            event.meta,
            current_offerer=event.offerer,
            current_offer_amount=event.amount,
            status=ListingStatus.FINALIZED,
            finalized=True,
            total_sold=state.total_sold + state.total_per_sale,
        )
        return MaterializationResult(listing, [status_change, purchase])

    def apply_purchase(
        self, state: ListingState, event: PurchaseEvent
    ) -> MaterializationResult:
        # `count` is in sale units; every unit delivers total_per_sale items
        items = event.count * state.total_per_sale
        purchase = PurchaseRecord(
            id=event.event_id,
            listing_id=event.listing_id,
            buyer=event.buyer,
            count=event.count,
            items=items,
            amount=event.amount,
            referrer=event.referrer,
            source=PurchaseSource.DIRECT,
            timestamp=event.meta.block_timestamp,
            block_number=event.meta.block_number,
            log_index=event.meta.log_index,
            transaction_hash=event.meta.transaction_hash,
        )
        listing = state.merge(event.meta, total_sold=state.total_sold + items)
        return MaterializationResult(listing, [purchase])

    def apply_finalize(
        self, state: ListingState, event: FinalizeListingEvent
    ) -> MaterializationResult:
        fields: Dict[str, Any] = {
            "status": ListingStatus.FINALIZED,
            "finalized": True,
        }
        writes = []
        # An auction that ends on its own has no purchase event; the winning bid is the sale
        if state.has_bid and state.current_bidder is not None:
            writes.append(
                PurchaseRecord(
                    id=event.event_id,
                    listing_id=event.listing_id,
                    buyer=state.current_bidder,
                    count=state.total_per_sale,
                    items=state.total_per_sale,
                    amount=state.current_bid_amount or 0,
                    referrer=None,
                    source=PurchaseSource.AUCTION_WIN,
                    timestamp=event.meta.block_timestamp,
                    block_number=event.meta.block_number,
                    log_index=event.meta.log_index,
                    transaction_hash=event.meta.transaction_hash,
                )
            )
            fields["total_sold"] = state.total_sold + state.total_per_sale
        return MaterializationResult(state.merge(event.meta, **fields), writes)

    def apply_escrow(self, event: EscrowEvent) -> MaterializationResult:
        escrow = EscrowRecord(
            id=event.event_id,
            receiver=event.receiver,
            currency=event.currency,
            amount=event.amount,
            timestamp=event.meta.block_timestamp,
            block_number=event.meta.block_number,
            log_index=event.meta.log_index,
            transaction_hash=event.meta.transaction_hash,
        )
        return MaterializationResult(None, [escrow])
