"""Bid ledger: submission, the bid state machine, and the accept cascade."""
import logging
import math
import uuid

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import utcnow
from app.core.errors import AdvertisementClosed, AlreadyBid, InvalidTerms, InvalidTransition, NotFound
from app.core.locks import advertisement_locks
from app.core.permissions import ensure_owner
from app.models.advertisement import Advertisement, AdvertisementStatus
from app.models.bid import Bid, BidStatus
from app.models.contract import Contract
from app.models.user import User
from app.services import credits, notifications
from app.services.advertisements import get_advertisement
from app.services.contracts import create_from_accepted_bid
from app.services.notifications import EventType

logger = logging.getLogger(__name__)

MAX_DELIVERY_DAYS = 3650


def validate_terms(proposed_price: float | None, delivery_days: int | None, proposal: str | None) -> None:
    """Reject bad terms before anything is read from or written to storage.

    `None` means "not supplied" and is only meaningful for partial updates.
    """
    if proposed_price is not None and not (proposed_price > 0 and math.isfinite(proposed_price)):
        raise InvalidTerms("Proposed price must be greater than zero")
    if delivery_days is not None and delivery_days < 1:
        raise InvalidTerms("Delivery days must be at least 1")
    if delivery_days is not None and delivery_days > MAX_DELIVERY_DAYS:
        raise InvalidTerms(f"Delivery days cannot exceed {MAX_DELIVERY_DAYS}")
    if proposal is not None and not proposal.strip():
        raise InvalidTerms("Proposal cannot be empty")


async def get_bid(db: AsyncSession, bid_id: uuid.UUID, for_update: bool = False) -> Bid:
    query = select(Bid).where(Bid.id == bid_id)
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(query)
    bid = result.scalar_one_or_none()
    if bid is None:
        raise NotFound("Bid not found")
    return bid


async def submit_bid(
    db: AsyncSession,
    advertisement_id: uuid.UUID,
    influencer: User,
    proposed_price: float,
    delivery_days: int,
    proposal: str,
) -> Bid:
    validate_terms(proposed_price, delivery_days, proposal)

    # status and deadline stay valid until commit: accept and close take the same lock
    async with advertisement_locks.hold(advertisement_id):
        advertisement = await get_advertisement(db, advertisement_id, for_update=True)
        if not advertisement.is_accepting_bids(utcnow()):
            if advertisement.status == AdvertisementStatus.OPEN:
                raise AdvertisementClosed("Bid deadline has passed")
            raise AdvertisementClosed()

        existing = await db.execute(
            select(Bid.id).where(Bid.advertisement_id == advertisement.id, Bid.influencer_id == influencer.id)
        )
        if existing.scalar_one_or_none() is not None:
            raise AlreadyBid()

        await credits.charge_bid_credit(db, influencer.id)

        bid = Bid(
            advertisement_id=advertisement.id,
            influencer_id=influencer.id,
            proposed_price=proposed_price,
            delivery_days=delivery_days,
            proposal=proposal.strip(),
            status=BidStatus.PENDING,
        )
        db.add(bid)
        notifications.emit(
            db,
            advertisement.client_id,
            EventType.BID_RECEIVED,
            "New Bid Received",
            f'You received a new bid on "{advertisement.title}"',
            reference_type="advertisement",
            reference_id=advertisement.id,
        )
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise AlreadyBid()

    await db.refresh(bid)

    logger.info("bid %s submitted on %s by %s", bid.id, advertisement.id, influencer.id)
    return bid


async def update_bid(
    db: AsyncSession,
    bid_id: uuid.UUID,
    influencer: User,
    proposed_price: float | None = None,
    delivery_days: int | None = None,
    proposal: str | None = None,
) -> Bid:
    validate_terms(proposed_price, delivery_days, proposal)

    bid = await get_bid(db, bid_id)
    ensure_owner(influencer.id, bid.influencer_id, "bid")

    # terms must not change under an accept that is copying them into a contract
    async with advertisement_locks.hold(bid.advertisement_id):
        bid = await get_bid(db, bid_id, for_update=True)
        if bid.status != BidStatus.PENDING:
            raise InvalidTransition("Cannot update non-pending bid")

        advertisement = await get_advertisement(db, bid.advertisement_id)
        if utcnow() >= advertisement.deadline:
            raise AdvertisementClosed("Bid deadline has passed")

        if proposed_price is not None:
            bid.proposed_price = proposed_price
        if delivery_days is not None:
            bid.delivery_days = delivery_days
        if proposal is not None:
            bid.proposal = proposal.strip()
        bid.updated_at = utcnow()
        await db.commit()

    await db.refresh(bid)
    return bid


async def withdraw_bid(db: AsyncSession, bid_id: uuid.UUID, influencer: User) -> None:
    bid = await get_bid(db, bid_id)
    ensure_owner(influencer.id, bid.influencer_id, "bid")

    async with advertisement_locks.hold(bid.advertisement_id):
        bid = await get_bid(db, bid_id, for_update=True)
        if bid.status != BidStatus.PENDING:
            raise InvalidTransition("Only pending bids can be withdrawn")
        await db.delete(bid)
        await db.commit()

    logger.info("bid %s withdrawn by %s", bid_id, influencer.id)


async def list_my_bids(
    db: AsyncSession, influencer: User, offset: int, limit: int, bid_status: str | None = None
) -> tuple[list[tuple[Bid, Advertisement]], int]:
    query = (
        select(Bid, Advertisement)
        .join(Advertisement, Advertisement.id == Bid.advertisement_id)
        .where(Bid.influencer_id == influencer.id)
    )
    if bid_status:
        query = query.where(Bid.status == bid_status)

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar() or 0
    result = await db.execute(query.order_by(Bid.created_at.desc()).offset(offset).limit(limit))
    return [(bid, ad) for bid, ad in result.all()], total


async def list_bids_for_advertisement(
    db: AsyncSession, advertisement_id: uuid.UUID, client: User, offset: int, limit: int
) -> tuple[list[Bid], int]:
    advertisement = await get_advertisement(db, advertisement_id)
    ensure_owner(client.id, advertisement.client_id, "advertisement")

    query = select(Bid).where(Bid.advertisement_id == advertisement.id)
    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar() or 0
    result = await db.execute(query.order_by(Bid.created_at.desc()).offset(offset).limit(limit))
    return list(result.scalars().all()), total


async def _bid_for_owner(db: AsyncSession, bid_id: uuid.UUID, client: User) -> tuple[Bid, Advertisement]:
    bid = await get_bid(db, bid_id)
    advertisement = await get_advertisement(db, bid.advertisement_id)
    ensure_owner(client.id, advertisement.client_id, "advertisement")
    return bid, advertisement


def _transition(bid: Bid, action: str) -> str:
    next_status = bid.next_status(action)
    if next_status is None:
        raise InvalidTransition(f"Cannot {action} a bid that is {bid.status}")
    return next_status


async def shortlist_bid(db: AsyncSession, bid_id: uuid.UUID, client: User) -> Bid:
    bid, advertisement = await _bid_for_owner(db, bid_id, client)

    async with advertisement_locks.hold(advertisement.id):
        bid = await get_bid(db, bid_id, for_update=True)
        bid.status = _transition(bid, "shortlist")
        bid.updated_at = utcnow()
        notifications.emit(
            db,
            bid.influencer_id,
            EventType.BID_SHORTLISTED,
            "Bid Shortlisted",
            f'Your bid on "{advertisement.title}" has been shortlisted!',
            reference_type="bid",
            reference_id=bid.id,
        )
        await db.commit()

    await db.refresh(bid)
    return bid


async def reject_bid(db: AsyncSession, bid_id: uuid.UUID, client: User) -> Bid:
    bid, advertisement = await _bid_for_owner(db, bid_id, client)

    async with advertisement_locks.hold(advertisement.id):
        bid = await get_bid(db, bid_id, for_update=True)
        bid.status = _transition(bid, "reject")
        bid.updated_at = utcnow()
        notifications.emit(
            db,
            bid.influencer_id,
            EventType.BID_REJECTED,
            "Bid Not Selected",
            f'Your bid on "{advertisement.title}" was not selected.',
            reference_type="bid",
            reference_id=bid.id,
        )
        await db.commit()

    await db.refresh(bid)
    return bid


async def accept_bid(db: AsyncSession, bid_id: uuid.UUID, client: User) -> tuple[Bid, Contract]:
    """Accept one bid and settle the advertisement in a single transaction.

    Under the advertisement lock: the bid becomes ACCEPTED, every other open
    bid on the advertisement becomes REJECTED, the advertisement is CLOSED and
    the contract is created. Nothing is visible to other sessions until the
    one commit at the end.
    """
    _, advertisement = await _bid_for_owner(db, bid_id, client)

    async with advertisement_locks.hold(advertisement.id):
        advertisement = await get_advertisement(db, advertisement.id, for_update=True)
        bid = await get_bid(db, bid_id, for_update=True)
        next_status = _transition(bid, "accept")

        already_accepted = await db.execute(
            select(Bid.id).where(
                Bid.advertisement_id == advertisement.id,
                Bid.id != bid.id,
                Bid.status == BidStatus.ACCEPTED,
            )
        )
        if already_accepted.first() is not None:
            raise InvalidTransition("Another bid on this advertisement has already been accepted")

        now = utcnow()
        bid.status = next_status
        bid.updated_at = now

        siblings = await db.execute(
            select(Bid)
            .where(
                Bid.advertisement_id == advertisement.id,
                Bid.id != bid.id,
                Bid.status.in_(BidStatus.OPEN),
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        rejected_bids = list(siblings.scalars().all())
        for sibling in rejected_bids:
            sibling.status = BidStatus.REJECTED
            sibling.updated_at = now

        advertisement.status = AdvertisementStatus.CLOSED
        advertisement.updated_at = now

        try:
            contract = await create_from_accepted_bid(db, bid, advertisement, accepted_at=now)

            notifications.emit(
                db,
                bid.influencer_id,
                EventType.BID_ACCEPTED,
                "Bid Accepted!",
                f'Congratulations! Your bid on "{advertisement.title}" has been accepted! A contract has been created.',
                reference_type="contract",
                reference_id=contract.id,
            )
            for sibling in rejected_bids:
                notifications.emit(
                    db,
                    sibling.influencer_id,
                    EventType.BID_REJECTED,
                    "Bid Not Selected",
                    f'Another proposal was selected for "{advertisement.title}".',
                    reference_type="bid",
                    reference_id=sibling.id,
                )
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise InvalidTransition("Bid has already been accepted")

    await db.refresh(bid)
    logger.info(
        "bid %s accepted on %s: contract %s, %d sibling bids rejected",
        bid.id,
        advertisement.id,
        contract.id,
        len(rejected_bids),
    )
    return bid, contract
