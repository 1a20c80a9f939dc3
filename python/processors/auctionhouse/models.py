from dataclasses import fields
from sqlalchemy import Index, Integer
from sqlalchemy.orm import Mapped, mapped_column

from processors.auctionhouse.auctionhouse_enums import (
    ListingStatus,
    ListingType,
    TokenSpec,
)
from processors.auctionhouse.state import ListingState
from utils.models.annotated_types import (
    BigIntegerPrimaryKeyType,
    BigIntegerType,
    BooleanType,
    InsertedAtType,
    IntegerType,
    NullableBigIntegerType,
    NullableStringType,
    NullableUint256Type,
    StringPrimaryKeyType,
    StringType,
    Uint256Type,
)
from utils.models.general_models import Base, PER_SCHEMA


class AuctionhouseListing(Base):
    __tablename__ = "auctionhouse_listings"
    __table_args__ = (
        (Index("ah_listing_seller_index", "seller")),
        (Index("ah_listing_status_index", "status")),
        (Index("ah_listing_type_index", "listing_type")),
        (Index("ah_listing_token_index", "token_address", "token_id")),
        {"schema": PER_SCHEMA},
    )

    listing_id: BigIntegerPrimaryKeyType
    marketplace_address: StringType

    seller: StringType
    listing_type: IntegerType
    initial_amount: Uint256Type
    total_available: BigIntegerType
    total_per_sale: BigIntegerType
    start_time: BigIntegerType
    end_time: BigIntegerType
    extension_interval: BigIntegerType
    min_increment_bps: IntegerType
    currency: StringType
    identity_verifier: StringType
    marketplace_bps: IntegerType
    referrer_bps: IntegerType

    token_address: StringType
    token_id: Uint256Type
    token_spec: IntegerType
    lazy: BooleanType

    deliver_bps: IntegerType
    deliver_fixed: Uint256Type

    total_sold: BigIntegerType
    status: StringType
    has_bid: BooleanType
    finalized: BooleanType
    current_bidder: NullableStringType
    current_bid_amount: NullableUint256Type
    current_offerer: NullableStringType
    current_offer_amount: NullableUint256Type

    created_at: BigIntegerType
    created_at_block: BigIntegerType
    updated_at: BigIntegerType
    updated_at_block: BigIntegerType
    inserted_at: InsertedAtType

    # Row version for compare-and-swap writes; SQLAlchemy bumps it on every UPDATE
    version_id: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version_id}

    def to_state(self) -> ListingState:
        return ListingState(
            listing_id=self.listing_id,
            marketplace_address=self.marketplace_address,
            seller=self.seller,
            listing_type=ListingType(self.listing_type),
            initial_amount=self.initial_amount,
            total_available=self.total_available,
            total_per_sale=self.total_per_sale,
            start_time=self.start_time,
            end_time=self.end_time,
            extension_interval=self.extension_interval,
            min_increment_bps=self.min_increment_bps,
            currency=self.currency,
            identity_verifier=self.identity_verifier,
            marketplace_bps=self.marketplace_bps,
            referrer_bps=self.referrer_bps,
            token_address=self.token_address,
            token_id=self.token_id,
            token_spec=TokenSpec(self.token_spec),
            lazy=self.lazy,
            deliver_bps=self.deliver_bps,
            deliver_fixed=self.deliver_fixed,
            total_sold=self.total_sold,
            status=ListingStatus(self.status),
            has_bid=self.has_bid,
            finalized=self.finalized,
            current_bidder=self.current_bidder,
            current_bid_amount=self.current_bid_amount,
            current_offerer=self.current_offerer,
            current_offer_amount=self.current_offer_amount,
            created_at=self.created_at,
            created_at_block=self.created_at_block,
            updated_at=self.updated_at,
            updated_at_block=self.updated_at_block,
        )

    def update_from_state(self, state: ListingState) -> None:
        for name, value in listing_state_values(state).items():
            setattr(self, name, value)


def listing_state_values(state: ListingState) -> dict:
    values = {}
    for state_field in fields(state):
        value = getattr(state, state_field.name)
        if isinstance(value, ListingStatus):
            value = value.value
        elif isinstance(value, (ListingType, TokenSpec)):
            value = int(value)
        values[state_field.name] = value
    return values


class AuctionhouseBid(Base):
    __tablename__ = "auctionhouse_bids"
    __table_args__ = (
        (Index("ah_bid_listing_index", "listing_id")),
        (Index("ah_bid_bidder_index", "bidder")),
        {"schema": PER_SCHEMA},
    )

    # "<transaction hash>-<log index>"
    id: StringPrimaryKeyType
    listing_id: BigIntegerType
    bidder: StringType
    amount: Uint256Type
    referrer: NullableStringType
    timestamp: BigIntegerType
    block_number: BigIntegerType
    log_index: BigIntegerType
    transaction_hash: StringType
    inserted_at: InsertedAtType


class AuctionhouseOffer(Base):
    __tablename__ = "auctionhouse_offers"
    __table_args__ = (
        (Index("ah_offer_listing_index", "listing_id")),
        (Index("ah_offer_offerer_index", "offerer")),
        (Index("ah_offer_status_index", "status")),
        {"schema": PER_SCHEMA},
    )

    id: StringPrimaryKeyType
    listing_id: BigIntegerType
    offerer: StringType
    amount: Uint256Type
    referrer: NullableStringType
    status: StringType
    timestamp: BigIntegerType
    block_number: BigIntegerType
    log_index: BigIntegerType
    transaction_hash: StringType
    accepted_at: NullableBigIntegerType
    rescinded_at: NullableBigIntegerType
    inserted_at: InsertedAtType


class AuctionhousePurchase(Base):
    __tablename__ = "auctionhouse_purchases"
    __table_args__ = (
        (Index("ah_purchase_listing_index", "listing_id")),
        (Index("ah_purchase_buyer_index", "buyer")),
        {"schema": PER_SCHEMA},
    )

    id: StringPrimaryKeyType
    listing_id: BigIntegerType
    buyer: StringType
    count: BigIntegerType
    items: BigIntegerType
    amount: Uint256Type
    referrer: NullableStringType
    source: StringType
    timestamp: BigIntegerType
    block_number: BigIntegerType
    log_index: BigIntegerType
    transaction_hash: StringType
    inserted_at: InsertedAtType


class AuctionhouseEscrow(Base):
    __tablename__ = "auctionhouse_escrows"
    __table_args__ = (
        (Index("ah_escrow_receiver_index", "receiver")),
        {"schema": PER_SCHEMA},
    )

    id: StringPrimaryKeyType
    receiver: StringType
    currency: StringType
    amount: Uint256Type
    timestamp: BigIntegerType
    block_number: BigIntegerType
    log_index: BigIntegerType
    transaction_hash: StringType
    inserted_at: InsertedAtType


class AppliedEvent(Base):
    """Idempotency keys of every event the store has consumed, applied or not."""

    __tablename__ = "auctionhouse_applied_events"
    __table_args__ = ({"schema": PER_SCHEMA},)

    transaction_hash: StringPrimaryKeyType
    log_index: BigIntegerPrimaryKeyType
    block_number: BigIntegerType
    event_name: StringType
    listing_id: NullableBigIntegerType
    outcome: StringType
    inserted_at: InsertedAtType
