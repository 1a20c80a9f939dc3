import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session as SessionType
from sqlalchemy.orm.exc import StaleDataError
from typing import List

from processors.auctionhouse.auctionhouse_constants import MAX_OPTIMISTIC_RETRIES
from processors.auctionhouse.auctionhouse_enums import ApplyOutcome, OfferStatus
from processors.auctionhouse.errors import TerminalStateViolation
from processors.auctionhouse.events import AuctionhouseEvent, EscrowEvent
from processors.auctionhouse.idempotency import IdempotencyGuard
from processors.auctionhouse.materializer import ListingMaterializer
from processors.auctionhouse.models import (
    AuctionhouseBid,
    AuctionhouseEscrow,
    AuctionhouseListing,
    AuctionhouseOffer,
    AuctionhousePurchase,
    listing_state_values,
)
from processors.auctionhouse.state import (
    BidRecord,
    ChildWrite,
    EscrowRecord,
    OfferRecord,
    OfferStatusChange,
    PurchaseRecord,
)
from utils.session import Session


class ListingStore:
    """
    Applies events to the database, one atomic unit per event.

    Each unit checks the idempotency guard, loads the listing, runs the materializer,
    then writes the listing, its ledger rows and the idempotency key in a single
    transaction. The listing row carries a version column, so two writers racing on
    the same listing cannot both commit; the loser retries from a fresh read.
    """

    def __init__(self, materializer: ListingMaterializer, processor_name: str):
        self.materializer = materializer
        self.processor_name = processor_name

    def apply_event(self, event: AuctionhouseEvent) -> ApplyOutcome:
        attempt = 0
        while True:
            try:
                with Session() as session, session.begin():
                    return self.apply_in_session(session, event)
            except (StaleDataError, IntegrityError):
                attempt += 1
                if attempt > MAX_OPTIMISTIC_RETRIES:
                    raise
                logging.warning(
                    "[Auctionhouse] Concurrent write detected, retrying event",
                    extra={
                        "processor_name": self.processor_name,
                        "event_id": event.event_id,
                        "attempt": attempt,
                    },
                )

    def apply_in_session(
        self, session: SessionType, event: AuctionhouseEvent
    ) -> ApplyOutcome:
        guard = IdempotencyGuard(session)
        # Redelivery is expected under at-least-once delivery; not an error
        if guard.seen(event):
            return ApplyOutcome.DUPLICATE

        if isinstance(event, EscrowEvent):
            result = self.materializer.apply(None, event)
            self.write_children(session, result.writes)
            guard.record(event, ApplyOutcome.APPLIED)
            return ApplyOutcome.APPLIED

        row = session.get(AuctionhouseListing, event.listing_id)
        state = row.to_state() if row is not None else None

        # OutOfOrderEventError propagates and rolls the transaction back
        try:
            result = self.materializer.apply(state, event)
        except TerminalStateViolation as e:
            logging.warning(
                "[Auctionhouse] Ignoring event for terminal listing",
                extra={
                    "processor_name": self.processor_name,
                    "listing_id": e.listing_id,
                    "status": e.status,
                    "event_name": e.event_name,
                    "event_id": event.event_id,
                    "block_number": event.block_number,
                },
            )
            guard.record(event, ApplyOutcome.SKIPPED_TERMINAL)
            return ApplyOutcome.SKIPPED_TERMINAL

        assert result.listing is not None
        if row is None:
            session.add(AuctionhouseListing(**listing_state_values(result.listing)))
        else:
            row.update_from_state(result.listing)

        self.write_children(session, result.writes)
        guard.record(event, ApplyOutcome.APPLIED)
        return ApplyOutcome.APPLIED

    def write_children(self, session: SessionType, writes: List[ChildWrite]) -> None:
        for write in writes:
            match write:
                case BidRecord():
                    session.add(
                        AuctionhouseBid(
                            id=write.id,
                            listing_id=write.listing_id,
                            bidder=write.bidder,
                            amount=write.amount,
                            referrer=write.referrer,
                            timestamp=write.timestamp,
                            block_number=write.block_number,
                            log_index=write.log_index,
                            transaction_hash=write.transaction_hash,
                        )
                    )
                case OfferRecord():
                    session.add(
                        AuctionhouseOffer(
                            id=write.id,
                            listing_id=write.listing_id,
                            offerer=write.offerer,
                            amount=write.amount,
                            referrer=write.referrer,
                            status=write.status.value,
                            timestamp=write.timestamp,
                            block_number=write.block_number,
                            log_index=write.log_index,
                            transaction_hash=write.transaction_hash,
                        )
                    )
                case OfferStatusChange():
                    self.change_offer_status(session, write)
                case PurchaseRecord():
                    session.add(
                        AuctionhousePurchase(
                            id=write.id,
                            listing_id=write.listing_id,
                            buyer=write.buyer,
                            count=write.count,
                            items=write.items,
                            amount=write.amount,
                            referrer=write.referrer,
                            source=write.source.value,
                            timestamp=write.timestamp,
                            block_number=write.block_number,
                            log_index=write.log_index,
                            transaction_hash=write.transaction_hash,
                        )
                    )
                case EscrowRecord():
                    session.add(
                        AuctionhouseEscrow(
                            id=write.id,
                            receiver=write.receiver,
                            currency=write.currency,
                            amount=write.amount,
                            timestamp=write.timestamp,
                            block_number=write.block_number,
                            log_index=write.log_index,
                            transaction_hash=write.transaction_hash,
                        )
                    )
                case _:
                    raise TypeError(f"Unknown ledger write {write!r}")

    def change_offer_status(
        self, session: SessionType, change: OfferStatusChange
    ) -> None:
        offer = session.scalars(
            select(AuctionhouseOffer)
            .where(
                AuctionhouseOffer.listing_id == change.listing_id,
                AuctionhouseOffer.offerer == change.offerer,
                AuctionhouseOffer.status == OfferStatus.PENDING.value,
            )
            .order_by(
                AuctionhouseOffer.block_number.desc(),
                AuctionhouseOffer.log_index.desc(),
            )
            .limit(1)
        ).one_or_none()

        if offer is None:
            logging.info(
                "[Auctionhouse] No pending offer to update",
                extra={
                    "processor_name": self.processor_name,
                    "listing_id": change.listing_id,
                    "offerer": change.offerer,
                    "status": change.status.value,
                },
            )
            return

        offer.status = change.status.value
        if change.status == OfferStatus.ACCEPTED:
            offer.accepted_at = change.timestamp
        elif change.status == OfferStatus.RESCINDED:
            offer.rescinded_at = change.timestamp
