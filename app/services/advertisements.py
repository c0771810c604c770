import logging
import math
import uuid
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import utcnow
from app.core.errors import InvalidTerms, InvalidTransition, NotFound
from app.core.locks import advertisement_locks
from app.core.permissions import ensure_owner
from app.models.advertisement import Advertisement, AdvertisementStatus
from app.models.bid import Bid
from app.models.user import User

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("title", "description", "platform", "content_type", "budget_min", "budget_max", "deadline")


def validate_budget(budget_min: float, budget_max: float) -> None:
    if not (budget_min > 0 and budget_max > 0 and math.isfinite(budget_max)):
        raise InvalidTerms("Budget must be greater than zero")
    if budget_min > budget_max:
        raise InvalidTerms("Minimum budget cannot exceed maximum")


def _validate_deadline(deadline: datetime) -> None:
    if deadline.tzinfo is None:
        raise InvalidTerms("Deadline must include a timezone")
    if deadline <= utcnow():
        raise InvalidTerms("Deadline must be in the future")


async def get_advertisement(db: AsyncSession, advertisement_id: uuid.UUID, for_update: bool = False) -> Advertisement:
    query = select(Advertisement).where(Advertisement.id == advertisement_id)
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(query)
    advertisement = result.scalar_one_or_none()
    if advertisement is None:
        raise NotFound("Advertisement not found")
    return advertisement


async def bid_counts(db: AsyncSession, advertisement_ids: list[uuid.UUID]) -> dict[uuid.UUID, int]:
    if not advertisement_ids:
        return {}
    result = await db.execute(
        select(Bid.advertisement_id, func.count())
        .where(Bid.advertisement_id.in_(advertisement_ids))
        .group_by(Bid.advertisement_id)
    )
    return {ad_id: count for ad_id, count in result.all()}


async def create_advertisement(db: AsyncSession, client: User, data: dict) -> Advertisement:
    validate_budget(data["budget_min"], data["budget_max"])
    _validate_deadline(data["deadline"])

    advertisement = Advertisement(client_id=client.id, status=AdvertisementStatus.OPEN, **data)
    db.add(advertisement)
    await db.commit()
    await db.refresh(advertisement)

    logger.info("advertisement %s created by %s", advertisement.id, client.id)
    return advertisement


async def list_advertisements(
    db: AsyncSession,
    offset: int,
    limit: int,
    ad_status: str = AdvertisementStatus.OPEN,
    search: str | None = None,
    platform: str | None = None,
    min_budget: float | None = None,
    max_budget: float | None = None,
    client_id: uuid.UUID | None = None,
) -> tuple[list[Advertisement], int]:
    query = select(Advertisement)
    if ad_status:
        query = query.where(Advertisement.status == ad_status)
    if client_id:
        query = query.where(Advertisement.client_id == client_id)
    if search:
        query = query.where(Advertisement.title.ilike(f"%{search}%") | Advertisement.description.ilike(f"%{search}%"))
    if platform:
        query = query.where(Advertisement.platform == platform)
    # Budget filters overlap the ad's range with the requested one
    if min_budget is not None:
        query = query.where(Advertisement.budget_max >= min_budget)
    if max_budget is not None:
        query = query.where(Advertisement.budget_min <= max_budget)

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar() or 0

    result = await db.execute(query.order_by(Advertisement.created_at.desc()).offset(offset).limit(limit))
    return list(result.scalars().all()), total


async def update_advertisement(
    db: AsyncSession, advertisement_id: uuid.UUID, client: User, changes: dict
) -> Advertisement:
    advertisement = await get_advertisement(db, advertisement_id)
    ensure_owner(client.id, advertisement.client_id, "advertisement")

    async with advertisement_locks.hold(advertisement.id):
        advertisement = await get_advertisement(db, advertisement_id, for_update=True)
        if advertisement.status != AdvertisementStatus.OPEN:
            raise InvalidTransition("Cannot edit closed advertisement")

        changes = {k: v for k, v in changes.items() if k in EDITABLE_FIELDS and v is not None}
        validate_budget(
            changes.get("budget_min", advertisement.budget_min),
            changes.get("budget_max", advertisement.budget_max),
        )
        if "deadline" in changes:
            _validate_deadline(changes["deadline"])

        for field, value in changes.items():
            setattr(advertisement, field, value)
        advertisement.updated_at = utcnow()
        await db.commit()

    await db.refresh(advertisement)
    return advertisement


async def close_advertisement(db: AsyncSession, advertisement_id: uuid.UUID, client: User) -> Advertisement:
    """Stop bid intake. Bids already on the ad keep their status."""
    advertisement = await get_advertisement(db, advertisement_id)
    ensure_owner(client.id, advertisement.client_id, "advertisement")

    async with advertisement_locks.hold(advertisement.id):
        advertisement = await get_advertisement(db, advertisement_id, for_update=True)
        if advertisement.status != AdvertisementStatus.OPEN:
            raise InvalidTransition(f"Advertisement is {advertisement.status}, only OPEN advertisements can be closed")

        advertisement.status = AdvertisementStatus.CLOSED
        advertisement.updated_at = utcnow()
        await db.commit()

    await db.refresh(advertisement)
    logger.info("advertisement %s closed by %s", advertisement.id, client.id)
    return advertisement
