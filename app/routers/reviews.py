import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.deps import PageParams, get_current_user, require_role
from app.models.review import Review
from app.models.user import Role, User
from app.schemas.common import DataResponse, PageResponse, Pagination
from app.schemas.review import CreateReviewRequest, ReviewOut
from app.services import reviews

router = APIRouter(prefix="/reviews", tags=["Reviews"])


@router.post(
    "",
    response_model=DataResponse[ReviewOut],
    status_code=status.HTTP_201_CREATED,
    summary="Review influencer",
    description="Rating 1-5 after a `COMPLETED` contract for the same advertisement. One review per client, influencer and advertisement.",
)
async def create_review(
    body: CreateReviewRequest,
    user: User = Depends(require_role(Role.CLIENT)),
    db: AsyncSession = Depends(get_db),
):
    review = await reviews.submit_review(
        db, user, body.influencer_id, body.advertisement_id, body.rating, body.comment
    )
    return DataResponse[ReviewOut](data=ReviewOut.model_validate(review), message="Review submitted successfully")


@router.get("/influencer/{influencer_id}", response_model=PageResponse[ReviewOut], summary="Influencer reviews")
async def influencer_reviews(
    influencer_id: uuid.UUID,
    page: PageParams = Depends(),
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    items, total = await reviews.list_reviews_for_influencer(db, influencer_id, page.offset, page.limit)
    return PageResponse[ReviewOut](
        data=[ReviewOut.model_validate(r) for r in items],
        pagination=Pagination.build(page.page, page.limit, total),
    )


@router.get(
    "/my-reviews",
    response_model=PageResponse[ReviewOut],
    summary="My reviews",
    description="Reviews written by the current client, or received by the current influencer.",
)
async def my_reviews(
    page: PageParams = Depends(),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    column = Review.client_id if user.role == Role.CLIENT else Review.influencer_id
    base = select(Review).where(column == user.id)
    total = (await db.execute(select(func.count()).select_from(base.subquery()))).scalar() or 0

    result = await db.execute(base.order_by(Review.created_at.desc()).offset(page.offset).limit(page.limit))
    return PageResponse[ReviewOut](
        data=[ReviewOut.model_validate(r) for r in result.scalars().all()],
        pagination=Pagination.build(page.page, page.limit, total),
    )
