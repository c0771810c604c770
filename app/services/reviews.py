import logging
import uuid

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import DuplicateReview, InvalidRating, NotEligible
from app.core.locks import influencer_locks
from app.models.contract import Contract, ContractStatus
from app.models.review import Review
from app.models.user import InfluencerProfile, User
from app.services import notifications
from app.services.notifications import EventType

logger = logging.getLogger(__name__)


def validate_rating(rating) -> int:
    if isinstance(rating, bool):
        raise InvalidRating()
    if isinstance(rating, float):
        if not rating.is_integer():
            raise InvalidRating()
        rating = int(rating)
    if not isinstance(rating, int) or not 1 <= rating <= 5:
        raise InvalidRating()
    return rating


def running_mean(average: float, count: int, rating: int) -> float:
    return (average * count + rating) / (count + 1)


async def _influencer_profile(db: AsyncSession, influencer_id: uuid.UUID) -> InfluencerProfile:
    result = await db.execute(
        select(InfluencerProfile)
        .where(InfluencerProfile.user_id == influencer_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    profile = result.scalar_one_or_none()
    if profile is None:
        profile = InfluencerProfile(user_id=influencer_id, average_rating=0.0, total_reviews=0, completed_campaigns=0)
        db.add(profile)
    return profile


async def submit_review(
    db: AsyncSession,
    client: User,
    influencer_id: uuid.UUID,
    advertisement_id: uuid.UUID,
    rating,
    comment: str | None = None,
) -> Review:
    rating = validate_rating(rating)

    completed = await db.execute(
        select(Contract.id).where(
            Contract.client_id == client.id,
            Contract.influencer_id == influencer_id,
            Contract.advertisement_id == advertisement_id,
            Contract.status == ContractStatus.COMPLETED,
        )
    )
    if completed.first() is None:
        raise NotEligible()

    async with influencer_locks.hold(influencer_id):
        existing = await db.execute(
            select(Review.id).where(
                Review.client_id == client.id,
                Review.influencer_id == influencer_id,
                Review.advertisement_id == advertisement_id,
            )
        )
        if existing.first() is not None:
            raise DuplicateReview()

        profile = await _influencer_profile(db, influencer_id)
        review = Review(
            id=uuid.uuid4(),
            client_id=client.id,
            influencer_id=influencer_id,
            advertisement_id=advertisement_id,
            rating=rating,
            comment=comment,
        )
        db.add(review)
        count = profile.total_reviews or 0
        profile.average_rating = running_mean(profile.average_rating or 0.0, count, rating)
        profile.total_reviews = count + 1

        notifications.emit(
            db,
            influencer_id,
            EventType.REVIEW_RECEIVED,
            "New Review",
            f"You received a {rating}-star review!",
            reference_type="review",
            reference_id=review.id,
        )
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise DuplicateReview()

    await db.refresh(review)
    logger.info("review %s: %s rated %s with %d", review.id, client.id, influencer_id, rating)
    return review


async def list_reviews_for_influencer(
    db: AsyncSession, influencer_id: uuid.UUID, offset: int, limit: int
) -> tuple[list[Review], int]:
    query = select(Review).where(Review.influencer_id == influencer_id)
    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar() or 0
    result = await db.execute(query.order_by(Review.created_at.desc()).offset(offset).limit(limit))
    return list(result.scalars().all()), total
