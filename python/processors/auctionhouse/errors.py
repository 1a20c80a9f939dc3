class AuctionhouseError(Exception):
    pass


class MalformedEventError(AuctionhouseError):
    """An event log record failed field validation. It is logged and skipped."""

    def __init__(self, message: str, event_name: str | None = None):
        super().__init__(message)
        self.event_name = event_name


class UnknownEventError(MalformedEventError):
    pass


class TerminalStateViolation(AuctionhouseError):
    """A mutating event targeted a listing that is already CANCELLED or FINALIZED."""

    def __init__(self, listing_id: int, status: str, event_name: str):
        super().__init__(
            f"Listing {listing_id} is {status}; ignoring {event_name}"
        )
        self.listing_id = listing_id
        self.status = status
        self.event_name = event_name


class OutOfOrderEventError(AuctionhouseError):
    """
    An event is older than the last one applied to its listing.

    This means the upstream ordering guarantee failed. Processing for the listing
    must stop; reordering silently could corrupt its sold totals.
    """

    def __init__(self, listing_id: int, event_block: int, updated_at_block: int):
        super().__init__(
            f"Listing {listing_id} received an event from block {event_block} "
            f"after applying block {updated_at_block}"
        )
        self.listing_id = listing_id
        self.event_block = event_block
        self.updated_at_block = updated_at_block
