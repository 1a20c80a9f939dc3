from enum import Enum, IntEnum


class EventKind(Enum):
    CREATE_LISTING = "CreateListing"
    CREATE_LISTING_TOKEN_DETAILS = "CreateListingTokenDetails"
    CREATE_LISTING_FEES = "CreateListingFees"
    MODIFY_LISTING = "ModifyListing"
    CANCEL_LISTING = "CancelListing"
    BID = "BidEvent"
    OFFER = "OfferEvent"
    RESCIND_OFFER = "RescindOfferEvent"
    ACCEPT_OFFER = "AcceptOfferEvent"
    PURCHASE = "PurchaseEvent"
    FINALIZE_LISTING = "FinalizeListing"
    ESCROW = "Escrow"


# Values match the marketplace contract's enums; 0 is the "not yet known" sentinel
class ListingType(IntEnum):
    INVALID = 0
    INDIVIDUAL_AUCTION = 1
    FIXED_PRICE = 2
    DYNAMIC_PRICE = 3
    OFFERS_ONLY = 4


class TokenSpec(IntEnum):
    NONE = 0
    ERC721 = 1
    ERC1155 = 2


class ListingStatus(Enum):
    ACTIVE = "ACTIVE"
    CANCELLED = "CANCELLED"
    FINALIZED = "FINALIZED"


class OfferStatus(Enum):
    PENDING = "PENDING"
    RESCINDED = "RESCINDED"
    ACCEPTED = "ACCEPTED"


class PurchaseSource(Enum):
    DIRECT = "DIRECT"
    ACCEPTED_OFFER = "ACCEPTED_OFFER"
    AUCTION_WIN = "AUCTION_WIN"


class ApplyOutcome(Enum):
    APPLIED = "applied"
    DUPLICATE = "duplicate"
    SKIPPED_TERMINAL = "skipped_terminal"
    MALFORMED = "malformed"
    HALTED = "halted"
    OUT_OF_ORDER = "out_of_order"
