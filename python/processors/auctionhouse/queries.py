"""Read access to materialized listings and ledgers, for the API layer."""

from sqlalchemy import select
from sqlalchemy.orm import Session as SessionType
from typing import List, Optional

from processors.auctionhouse.auctionhouse_enums import ListingStatus, OfferStatus
from processors.auctionhouse.models import (
    AuctionhouseBid,
    AuctionhouseEscrow,
    AuctionhouseListing,
    AuctionhouseOffer,
    AuctionhousePurchase,
)
from processors.auctionhouse.state import ListingState
from utils.general_utils import standardize_address

DEFAULT_PAGE_SIZE = 100


def get_listing(session: SessionType, listing_id: int) -> Optional[ListingState]:
    row = session.get(AuctionhouseListing, listing_id)
    return row.to_state() if row is not None else None


def get_active_listings(
    session: SessionType,
    token_address: Optional[str] = None,
    limit: int = DEFAULT_PAGE_SIZE,
    offset: int = 0,
) -> List[ListingState]:
    stmt = select(AuctionhouseListing).where(
        AuctionhouseListing.status == ListingStatus.ACTIVE.value
    )
    if token_address is not None:
        stmt = stmt.where(
            AuctionhouseListing.token_address == standardize_address(token_address)
        )
    stmt = (
        stmt.order_by(
            AuctionhouseListing.created_at.desc(),
            AuctionhouseListing.listing_id.desc(),
        )
        .limit(limit)
        .offset(offset)
    )
    return [row.to_state() for row in session.scalars(stmt)]


def get_listings_by_seller(
    session: SessionType,
    seller: str,
    status: Optional[ListingStatus] = None,
    limit: int = DEFAULT_PAGE_SIZE,
    offset: int = 0,
) -> List[ListingState]:
    stmt = select(AuctionhouseListing).where(
        AuctionhouseListing.seller == standardize_address(seller)
    )
    if status is not None:
        stmt = stmt.where(AuctionhouseListing.status == status.value)
    stmt = (
        stmt.order_by(AuctionhouseListing.listing_id.desc())
        .limit(limit)
        .offset(offset)
    )
    return [row.to_state() for row in session.scalars(stmt)]


def get_recently_concluded(
    session: SessionType, limit: int = DEFAULT_PAGE_SIZE, offset: int = 0
) -> List[ListingState]:
    stmt = (
        select(AuctionhouseListing)
        .where(AuctionhouseListing.status == ListingStatus.FINALIZED.value)
        .order_by(
            AuctionhouseListing.updated_at.desc(),
            AuctionhouseListing.listing_id.desc(),
        )
        .limit(limit)
        .offset(offset)
    )
    return [row.to_state() for row in session.scalars(stmt)]


def get_bids_for_listing(
    session: SessionType,
    listing_id: int,
    limit: int = DEFAULT_PAGE_SIZE,
    offset: int = 0,
) -> List[AuctionhouseBid]:
    stmt = (
        select(AuctionhouseBid)
        .where(AuctionhouseBid.listing_id == listing_id)
        .order_by(AuctionhouseBid.block_number.desc(), AuctionhouseBid.log_index.desc())
        .limit(limit)
        .offset(offset)
    )
    return list(session.scalars(stmt))


def get_bids_by_bidder(
    session: SessionType, bidder: str, limit: int = DEFAULT_PAGE_SIZE, offset: int = 0
) -> List[AuctionhouseBid]:
    stmt = (
        select(AuctionhouseBid)
        .where(AuctionhouseBid.bidder == standardize_address(bidder))
        .order_by(AuctionhouseBid.block_number.desc(), AuctionhouseBid.log_index.desc())
        .limit(limit)
        .offset(offset)
    )
    return list(session.scalars(stmt))


def get_offers_for_listing(
    session: SessionType,
    listing_id: int,
    status: Optional[OfferStatus] = None,
    limit: int = DEFAULT_PAGE_SIZE,
    offset: int = 0,
) -> List[AuctionhouseOffer]:
    stmt = select(AuctionhouseOffer).where(AuctionhouseOffer.listing_id == listing_id)
    if status is not None:
        stmt = stmt.where(AuctionhouseOffer.status == status.value)
    stmt = (
        stmt.order_by(
            AuctionhouseOffer.block_number.desc(), AuctionhouseOffer.log_index.desc()
        )
        .limit(limit)
        .offset(offset)
    )
    return list(session.scalars(stmt))


def get_offers_by_offerer(
    session: SessionType, offerer: str, limit: int = DEFAULT_PAGE_SIZE, offset: int = 0
) -> List[AuctionhouseOffer]:
    stmt = (
        select(AuctionhouseOffer)
        .where(AuctionhouseOffer.offerer == standardize_address(offerer))
        .order_by(
            AuctionhouseOffer.block_number.desc(), AuctionhouseOffer.log_index.desc()
        )
        .limit(limit)
        .offset(offset)
    )
    return list(session.scalars(stmt))


def get_purchases_for_listing(
    session: SessionType,
    listing_id: int,
    limit: int = DEFAULT_PAGE_SIZE,
    offset: int = 0,
) -> List[AuctionhousePurchase]:
    stmt = (
        select(AuctionhousePurchase)
        .where(AuctionhousePurchase.listing_id == listing_id)
        .order_by(
            AuctionhousePurchase.block_number.desc(),
            AuctionhousePurchase.log_index.desc(),
        )
        .limit(limit)
        .offset(offset)
    )
    return list(session.scalars(stmt))


def get_purchases_by_buyer(
    session: SessionType, buyer: str, limit: int = DEFAULT_PAGE_SIZE, offset: int = 0
) -> List[AuctionhousePurchase]:
    stmt = (
        select(AuctionhousePurchase)
        .where(AuctionhousePurchase.buyer == standardize_address(buyer))
        .order_by(
            AuctionhousePurchase.block_number.desc(),
            AuctionhousePurchase.log_index.desc(),
        )
        .limit(limit)
        .offset(offset)
    )
    return list(session.scalars(stmt))


def get_escrows_by_receiver(
    session: SessionType, receiver: str, limit: int = DEFAULT_PAGE_SIZE, offset: int = 0
) -> List[AuctionhouseEscrow]:
    stmt = (
        select(AuctionhouseEscrow)
        .where(AuctionhouseEscrow.receiver == standardize_address(receiver))
        .order_by(
            AuctionhouseEscrow.block_number.desc(), AuctionhouseEscrow.log_index.desc()
        )
        .limit(limit)
        .offset(offset)
    )
    return list(session.scalars(stmt))
