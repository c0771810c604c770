"""Deliverables handed in on an active contract and the client's review of them."""
import logging
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import utcnow
from app.core.errors import InvalidTerms, InvalidTransition, NotFound
from app.core.locks import contract_locks
from app.core.permissions import ensure_owner
from app.models.deliverable import Deliverable, DeliverableStatus, DeliverableType
from app.models.user import User
from app.services import notifications
from app.services.contracts import active_contract, advertisement_title, get_contract_for_party
from app.services.notifications import EventType

logger = logging.getLogger(__name__)

# outcome -> (event, notification title)
REVIEW_EVENTS = {
    DeliverableStatus.APPROVED: (EventType.DELIVERABLE_APPROVED, "Deliverable Approved!"),
    DeliverableStatus.REJECTED: (EventType.DELIVERABLE_REJECTED, "Deliverable Rejected"),
    DeliverableStatus.REVISION_REQUESTED: (EventType.DELIVERABLE_REVISION_REQUESTED, "Revision Requested"),
}


async def _get_deliverable(
    db: AsyncSession, contract_id: uuid.UUID, deliverable_id: uuid.UUID, for_update: bool = False
) -> Deliverable:
    query = select(Deliverable).where(Deliverable.id == deliverable_id, Deliverable.contract_id == contract_id)
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(query)
    deliverable = result.scalar_one_or_none()
    if deliverable is None:
        raise NotFound("Deliverable not found")
    return deliverable


async def submit_deliverable(
    db: AsyncSession,
    contract_id: uuid.UUID,
    influencer: User,
    title: str,
    deliverable_type: str,
    description: str | None = None,
    file_url: str | None = None,
    external_link: str | None = None,
    platform: str | None = None,
) -> Deliverable:
    if not title or not title.strip():
        raise InvalidTerms("Deliverable title cannot be empty")
    if deliverable_type not in DeliverableType.ALL:
        raise InvalidTerms(f"Unknown deliverable type {deliverable_type}")
    if not (file_url or external_link):
        raise InvalidTerms("A file URL or an external link is required")

    contract = await get_contract_for_party(db, contract_id, influencer)
    ensure_owner(influencer.id, contract.influencer_id, "contract")

    async with contract_locks.hold(contract.id):
        contract = await active_contract(db, contract_id, "receive deliverables")

        deliverable = Deliverable(
            id=uuid.uuid4(),
            contract_id=contract.id,
            influencer_id=influencer.id,
            title=title.strip(),
            description=description,
            type=deliverable_type,
            file_url=file_url,
            external_link=external_link,
            platform=platform,
            status=DeliverableStatus.PENDING,
        )
        db.add(deliverable)

        ad_title = await advertisement_title(db, contract.advertisement_id)
        notifications.emit(
            db,
            contract.client_id,
            EventType.DELIVERABLE_SUBMITTED,
            "New Deliverable Submitted",
            f'A new deliverable "{deliverable.title}" has been submitted for "{ad_title}"',
            reference_type="contract",
            reference_id=contract.id,
        )
        await db.commit()

    await db.refresh(deliverable)
    logger.info("deliverable %s submitted on contract %s", deliverable.id, contract.id)
    return deliverable


async def list_deliverables(db: AsyncSession, contract_id: uuid.UUID, user: User) -> list[Deliverable]:
    contract = await get_contract_for_party(db, contract_id, user)
    result = await db.execute(
        select(Deliverable).where(Deliverable.contract_id == contract.id).order_by(Deliverable.created_at.desc())
    )
    return list(result.scalars().all())


async def deliverable_stats(db: AsyncSession, contract_id: uuid.UUID, user: User) -> dict[str, int]:
    contract = await get_contract_for_party(db, contract_id, user)
    result = await db.execute(
        select(Deliverable.status, func.count())
        .where(Deliverable.contract_id == contract.id)
        .group_by(Deliverable.status)
    )
    counts = dict(result.all())
    return {
        "total": sum(counts.values()),
        "pending": counts.get(DeliverableStatus.PENDING, 0),
        "approved": counts.get(DeliverableStatus.APPROVED, 0),
        "rejected": counts.get(DeliverableStatus.REJECTED, 0),
        "revision_requested": counts.get(DeliverableStatus.REVISION_REQUESTED, 0),
    }


async def get_deliverable(
    db: AsyncSession, contract_id: uuid.UUID, deliverable_id: uuid.UUID, user: User
) -> Deliverable:
    contract = await get_contract_for_party(db, contract_id, user)
    return await _get_deliverable(db, contract.id, deliverable_id)


async def review_deliverable(
    db: AsyncSession,
    contract_id: uuid.UUID,
    deliverable_id: uuid.UUID,
    client: User,
    outcome: str,
    feedback: str | None = None,
) -> Deliverable:
    """Approve, reject or send back a PENDING deliverable while the contract is ACTIVE."""
    if outcome not in DeliverableStatus.REVIEW_OUTCOMES:
        raise InvalidTerms(f"Unknown review outcome {outcome}")

    contract = await get_contract_for_party(db, contract_id, client)
    ensure_owner(client.id, contract.client_id, "contract")

    async with contract_locks.hold(contract.id):
        contract = await active_contract(db, contract_id, "have deliverables reviewed")
        deliverable = await _get_deliverable(db, contract.id, deliverable_id, for_update=True)
        if deliverable.status != DeliverableStatus.PENDING:
            raise InvalidTransition(f"Deliverable is {deliverable.status}, only PENDING deliverables can be reviewed")

        now = utcnow()
        deliverable.status = outcome
        deliverable.client_feedback = feedback
        deliverable.reviewed_at = now
        deliverable.updated_at = now

        event_type, notification_title = REVIEW_EVENTS[outcome]
        label = outcome.lower().replace("_", " ")
        notifications.emit(
            db,
            contract.influencer_id,
            event_type,
            notification_title,
            feedback or f'Your deliverable "{deliverable.title}" has been {label}.',
            reference_type="contract",
            reference_id=contract.id,
        )
        await db.commit()

    await db.refresh(deliverable)
    logger.info("deliverable %s on contract %s marked %s", deliverable.id, contract.id, outcome)
    return deliverable


async def delete_deliverable(
    db: AsyncSession, contract_id: uuid.UUID, deliverable_id: uuid.UUID, influencer: User
) -> None:
    contract = await get_contract_for_party(db, contract_id, influencer)
    ensure_owner(influencer.id, contract.influencer_id, "contract")

    async with contract_locks.hold(contract.id):
        deliverable = await _get_deliverable(db, contract.id, deliverable_id, for_update=True)
        if deliverable.status != DeliverableStatus.PENDING:
            raise InvalidTransition("Only pending deliverables can be deleted")
        await db.delete(deliverable)
        await db.commit()

    logger.info("deliverable %s deleted by %s", deliverable_id, influencer.id)
