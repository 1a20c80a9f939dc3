from sqlalchemy.orm import Session as SessionType

from processors.auctionhouse.auctionhouse_enums import ApplyOutcome
from processors.auctionhouse.events import AuctionhouseEvent
from processors.auctionhouse.models import AppliedEvent


class IdempotencyGuard:
    """
    Remembers which (transaction hash, log index) pairs have been consumed.

    The check and the record happen in the caller's session, inside the same
    database transaction as the writes they protect, so a redelivered event is
    either fully applied once or not at all.
    """

    def __init__(self, session: SessionType):
        self.session = session

    def seen(self, event: AuctionhouseEvent) -> bool:
        key = (event.meta.transaction_hash, event.meta.log_index)
        return self.session.get(AppliedEvent, key) is not None

    def record(self, event: AuctionhouseEvent, outcome: ApplyOutcome) -> None:
        self.session.add(
            AppliedEvent(
                transaction_hash=event.meta.transaction_hash,
                log_index=event.meta.log_index,
                block_number=event.meta.block_number,
                event_name=event.kind.value,
                listing_id=getattr(event, "listing_id", None),
                outcome=outcome.value,
            )
        )
