import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.deps import PageParams, get_current_user, require_role
from app.models.advertisement import Advertisement
from app.models.user import Role, User
from app.schemas.advertisement import AdvertisementCreateRequest, AdvertisementOut, AdvertisementUpdateRequest
from app.schemas.common import DataResponse, PageResponse, Pagination
from app.services import advertisements

router = APIRouter(prefix="/advertisements", tags=["Advertisements"])


def _advertisement_out(advertisement: Advertisement, bid_count: int = 0) -> AdvertisementOut:
    out = AdvertisementOut.model_validate(advertisement)
    out.bid_count = bid_count
    return out


async def _page(db: AsyncSession, items: list[Advertisement], page: PageParams, total: int):
    counts = await advertisements.bid_counts(db, [a.id for a in items])
    return PageResponse[AdvertisementOut](
        data=[_advertisement_out(a, counts.get(a.id, 0)) for a in items],
        pagination=Pagination.build(page.page, page.limit, total),
    )


@router.post(
    "",
    response_model=DataResponse[AdvertisementOut],
    status_code=status.HTTP_201_CREATED,
    summary="Create advertisement",
    description="Publishes a new campaign in `OPEN` status. Budget must be positive with `budgetMin <= budgetMax`; the deadline must be in the future.",
)
async def create_advertisement(
    body: AdvertisementCreateRequest,
    user: User = Depends(require_role(Role.CLIENT)),
    db: AsyncSession = Depends(get_db),
):
    advertisement = await advertisements.create_advertisement(db, user, body.model_dump())
    return DataResponse[AdvertisementOut](data=_advertisement_out(advertisement), message="Advertisement created")


@router.get(
    "",
    response_model=PageResponse[AdvertisementOut],
    summary="Browse advertisements",
    description="Open advertisements, newest first. Filters: text search, platform, budget range overlap.",
)
async def list_advertisements(
    search: str | None = None,
    platform: str | None = None,
    min_budget: float | None = Query(None, alias="minBudget"),
    max_budget: float | None = Query(None, alias="maxBudget"),
    page: PageParams = Depends(),
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    items, total = await advertisements.list_advertisements(
        db,
        page.offset,
        page.limit,
        search=search,
        platform=platform,
        min_budget=min_budget,
        max_budget=max_budget,
    )
    return await _page(db, items, page, total)


@router.get(
    "/client/my-ads",
    response_model=PageResponse[AdvertisementOut],
    summary="My advertisements",
    description="Advertisements owned by the current client, in any status unless `status` is given.",
)
async def my_advertisements(
    ad_status: str | None = Query(None, alias="status"),
    page: PageParams = Depends(),
    user: User = Depends(require_role(Role.CLIENT)),
    db: AsyncSession = Depends(get_db),
):
    items, total = await advertisements.list_advertisements(
        db, page.offset, page.limit, ad_status=ad_status, client_id=user.id
    )
    return await _page(db, items, page, total)


@router.get("/{advertisement_id}", response_model=DataResponse[AdvertisementOut], summary="Advertisement details")
async def get_advertisement(
    advertisement_id: uuid.UUID,
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    advertisement = await advertisements.get_advertisement(db, advertisement_id)
    counts = await advertisements.bid_counts(db, [advertisement.id])
    return DataResponse[AdvertisementOut](data=_advertisement_out(advertisement, counts.get(advertisement.id, 0)))


@router.put(
    "/{advertisement_id}",
    response_model=DataResponse[AdvertisementOut],
    summary="Edit advertisement",
    description="Owner only. Only `OPEN` advertisements can be edited.",
)
async def update_advertisement(
    advertisement_id: uuid.UUID,
    body: AdvertisementUpdateRequest,
    user: User = Depends(require_role(Role.CLIENT)),
    db: AsyncSession = Depends(get_db),
):
    advertisement = await advertisements.update_advertisement(
        db, advertisement_id, user, body.model_dump(exclude_unset=True)
    )
    return DataResponse[AdvertisementOut](data=_advertisement_out(advertisement), message="Advertisement updated")


@router.patch(
    "/{advertisement_id}/close",
    response_model=DataResponse[AdvertisementOut],
    summary="Close advertisement",
    description="Stops bid intake. Existing bids keep their status.",
)
async def close_advertisement(
    advertisement_id: uuid.UUID,
    user: User = Depends(require_role(Role.CLIENT)),
    db: AsyncSession = Depends(get_db),
):
    advertisement = await advertisements.close_advertisement(db, advertisement_id, user)
    return DataResponse[AdvertisementOut](data=_advertisement_out(advertisement), message="Advertisement closed")
