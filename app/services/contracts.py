import logging
import uuid
from datetime import datetime, timedelta

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import utcnow
from app.core.errors import InvalidTransition, NotFound
from app.core.locks import contract_locks
from app.core.permissions import ensure_owner, ensure_party
from app.models.advertisement import Advertisement
from app.models.bid import Bid, BidStatus
from app.models.contract import Contract, ContractStatus
from app.models.user import InfluencerProfile, Role, User
from app.services import notifications
from app.services.notifications import EventType

logger = logging.getLogger(__name__)


async def _find_by_bid(db: AsyncSession, bid_id: uuid.UUID) -> Contract | None:
    result = await db.execute(select(Contract).where(Contract.bid_id == bid_id))
    return result.scalar_one_or_none()


async def create_from_accepted_bid(
    db: AsyncSession, bid: Bid, advertisement: Advertisement, accepted_at: datetime | None = None
) -> Contract:
    """Build the contract for a bid that has just moved to ACCEPTED.

    Runs inside the accepting transaction and does not commit. A second call
    for the same bid returns the contract that already exists.
    """
    if bid.status != BidStatus.ACCEPTED:
        raise InvalidTransition("Contracts can only be created from an accepted bid")

    existing = await _find_by_bid(db, bid.id)
    if existing is not None:
        return existing

    accepted_at = accepted_at or utcnow()
    contract = Contract(
        bid_id=bid.id,
        client_id=advertisement.client_id,
        influencer_id=bid.influencer_id,
        advertisement_id=bid.advertisement_id,
        agreed_price=bid.proposed_price,
        delivery_deadline=accepted_at + timedelta(days=bid.delivery_days),
        status=ContractStatus.ACTIVE,
        created_at=accepted_at,
        updated_at=accepted_at,
    )
    db.add(contract)
    # uq on bid_id backstops a concurrent insert; the caller's commit fails as a whole
    await db.flush()

    notifications.emit(
        db,
        contract.influencer_id,
        EventType.CONTRACT_CREATED,
        "Contract Created",
        f'A contract has been created for "{advertisement.title}"',
        reference_type="contract",
        reference_id=contract.id,
    )
    logger.info("contract %s created from bid %s", contract.id, bid.id)
    return contract


async def get_contract(db: AsyncSession, contract_id: uuid.UUID, for_update: bool = False) -> Contract:
    query = select(Contract).where(Contract.id == contract_id)
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(query)
    contract = result.scalar_one_or_none()
    if contract is None:
        raise NotFound("Contract not found")
    return contract


async def get_contract_for_party(db: AsyncSession, contract_id: uuid.UUID, user: User) -> Contract:
    result = await db.execute(
        select(Contract).where(
            Contract.id == contract_id,
            or_(Contract.client_id == user.id, Contract.influencer_id == user.id),
        )
    )
    contract = result.scalar_one_or_none()
    if contract is None:
        raise NotFound("Contract not found")
    return contract


async def list_my_contracts(
    db: AsyncSession, user: User, offset: int, limit: int, contract_status: str | None = None
) -> tuple[list[Contract], int]:
    owner_column = Contract.client_id if user.role == Role.CLIENT else Contract.influencer_id
    query = select(Contract).where(owner_column == user.id)
    if contract_status:
        query = query.where(Contract.status == contract_status)

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar() or 0
    result = await db.execute(query.order_by(Contract.created_at.desc()).offset(offset).limit(limit))
    return list(result.scalars().all()), total


async def active_contract(db: AsyncSession, contract_id: uuid.UUID, action: str = "change status") -> Contract:
    contract = await get_contract(db, contract_id, for_update=True)
    if contract.status != ContractStatus.ACTIVE:
        raise InvalidTransition(f"Contract is {contract.status}, only ACTIVE contracts can {action}")
    return contract


async def advertisement_title(db: AsyncSession, advertisement_id: uuid.UUID) -> str:
    result = await db.execute(select(Advertisement.title).where(Advertisement.id == advertisement_id))
    return result.scalar_one_or_none() or "your campaign"


async def complete_contract(db: AsyncSession, contract_id: uuid.UUID, client: User) -> Contract:
    contract = await get_contract(db, contract_id)
    ensure_owner(client.id, contract.client_id, "contract")

    async with contract_locks.hold(contract.id):
        contract = await active_contract(db, contract_id)

        now = utcnow()
        contract.status = ContractStatus.COMPLETED
        contract.completed_at = now
        contract.updated_at = now

        result = await db.execute(
            select(InfluencerProfile)
            .where(InfluencerProfile.user_id == contract.influencer_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        profile = result.scalar_one_or_none()
        if profile is not None:
            profile.completed_campaigns = (profile.completed_campaigns or 0) + 1

        title = await advertisement_title(db, contract.advertisement_id)
        notifications.emit(
            db,
            contract.influencer_id,
            EventType.CONTRACT_COMPLETED,
            "Contract Completed",
            f'The contract for "{title}" has been marked as completed!',
            reference_type="contract",
            reference_id=contract.id,
        )
        await db.commit()

    await db.refresh(contract)
    logger.info("contract %s completed by %s", contract.id, client.id)
    return contract


async def cancel_contract(
    db: AsyncSession, contract_id: uuid.UUID, client: User, reason: str | None = None
) -> Contract:
    """Cancel an active contract. The advertisement and bid are not reopened."""
    contract = await get_contract(db, contract_id)
    ensure_owner(client.id, contract.client_id, "contract")

    async with contract_locks.hold(contract.id):
        contract = await active_contract(db, contract_id)

        now = utcnow()
        contract.status = ContractStatus.CANCELLED
        contract.cancelled_at = now
        contract.cancellation_reason = reason
        contract.updated_at = now

        title = await advertisement_title(db, contract.advertisement_id)
        body = f'The contract for "{title}" has been cancelled.'
        if reason:
            body = f"{body} Reason: {reason}"
        notifications.emit(
            db,
            contract.influencer_id,
            EventType.CONTRACT_CANCELLED,
            "Contract Cancelled",
            body,
            reference_type="contract",
            reference_id=contract.id,
        )
        await db.commit()

    await db.refresh(contract)
    logger.info("contract %s cancelled by %s", contract.id, client.id)
    return contract


async def dispute_contract(db: AsyncSession, contract_id: uuid.UUID, user: User, reason: str) -> Contract:
    """Either party flags an active contract for moderation."""
    contract = await get_contract(db, contract_id)
    ensure_party(user.id, contract.client_id, contract.influencer_id, resource="contract")

    async with contract_locks.hold(contract.id):
        contract = await active_contract(db, contract_id, "be disputed")

        contract.status = ContractStatus.DISPUTED
        contract.dispute_reason = reason
        contract.updated_at = utcnow()

        other_party = contract.influencer_id if user.id == contract.client_id else contract.client_id
        notifications.emit(
            db,
            other_party,
            EventType.CONTRACT_DISPUTED,
            "Contract Disputed",
            f"A dispute was opened on your contract. Reason: {reason}",
            reference_type="contract",
            reference_id=contract.id,
        )
        await db.commit()

    await db.refresh(contract)
    logger.warning("contract %s disputed by %s", contract.id, user.id)
    return contract
