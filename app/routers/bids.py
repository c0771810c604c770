import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.deps import PageParams, require_role
from app.models.user import Role, User
from app.schemas.bid import (
    AcceptedBidOut,
    AdvertisementBrief,
    BidCreateRequest,
    BidOut,
    BidUpdateRequest,
    MyBidOut,
)
from app.schemas.common import DataResponse, MessageResponse, PageResponse, Pagination
from app.schemas.contract import ContractOut
from app.services import bids

router = APIRouter(prefix="/bids", tags=["Bids"])


@router.post(
    "",
    response_model=DataResponse[BidOut],
    status_code=status.HTTP_201_CREATED,
    summary="Submit bid",
    description="Influencer bids on an `OPEN` advertisement before its deadline. One bid per influencer per advertisement. Costs one bid credit when the credit system is enabled.",
)
async def submit_bid(
    body: BidCreateRequest,
    user: User = Depends(require_role(Role.INFLUENCER)),
    db: AsyncSession = Depends(get_db),
):
    bid = await bids.submit_bid(
        db,
        body.advertisement_id,
        user,
        proposed_price=body.proposed_price,
        delivery_days=body.delivery_days,
        proposal=body.proposal,
    )
    return DataResponse[BidOut](data=BidOut.model_validate(bid), message="Bid submitted successfully")


@router.get(
    "/my-bids",
    response_model=PageResponse[MyBidOut],
    summary="My bids",
    description="Bids of the current influencer with a short summary of each advertisement. Optional `status` filter.",
)
async def my_bids(
    bid_status: str | None = Query(None, alias="status"),
    page: PageParams = Depends(),
    user: User = Depends(require_role(Role.INFLUENCER)),
    db: AsyncSession = Depends(get_db),
):
    rows, total = await bids.list_my_bids(db, user, page.offset, page.limit, bid_status)
    data = []
    for bid, advertisement in rows:
        item = MyBidOut.model_validate(bid)
        item.advertisement = AdvertisementBrief.model_validate(advertisement)
        data.append(item)
    return PageResponse[MyBidOut](data=data, pagination=Pagination.build(page.page, page.limit, total))


@router.get(
    "/advertisement/{advertisement_id}",
    response_model=PageResponse[BidOut],
    summary="Bids for advertisement",
    description="All bids on one of the current client's advertisements, newest first.",
)
async def advertisement_bids(
    advertisement_id: uuid.UUID,
    page: PageParams = Depends(),
    user: User = Depends(require_role(Role.CLIENT)),
    db: AsyncSession = Depends(get_db),
):
    items, total = await bids.list_bids_for_advertisement(db, advertisement_id, user, page.offset, page.limit)
    return PageResponse[BidOut](
        data=[BidOut.model_validate(b) for b in items],
        pagination=Pagination.build(page.page, page.limit, total),
    )


@router.put(
    "/{bid_id}",
    response_model=DataResponse[BidOut],
    summary="Update bid",
    description="Change the terms of your own `PENDING` bid before the advertisement deadline.",
)
async def update_bid(
    bid_id: uuid.UUID,
    body: BidUpdateRequest,
    user: User = Depends(require_role(Role.INFLUENCER)),
    db: AsyncSession = Depends(get_db),
):
    bid = await bids.update_bid(
        db,
        bid_id,
        user,
        proposed_price=body.proposed_price,
        delivery_days=body.delivery_days,
        proposal=body.proposal,
    )
    return DataResponse[BidOut](data=BidOut.model_validate(bid), message="Bid updated successfully")


@router.delete("/{bid_id}", response_model=MessageResponse, summary="Withdraw bid", description="Deletes your own `PENDING` bid.")
async def withdraw_bid(
    bid_id: uuid.UUID,
    user: User = Depends(require_role(Role.INFLUENCER)),
    db: AsyncSession = Depends(get_db),
):
    await bids.withdraw_bid(db, bid_id, user)
    return MessageResponse(message="Bid withdrawn successfully")


@router.patch("/{bid_id}/shortlist", response_model=DataResponse[BidOut], summary="Shortlist bid", description="`PENDING` → `SHORTLISTED`. Advertisement owner only.")
async def shortlist_bid(
    bid_id: uuid.UUID,
    user: User = Depends(require_role(Role.CLIENT)),
    db: AsyncSession = Depends(get_db),
):
    bid = await bids.shortlist_bid(db, bid_id, user)
    return DataResponse[BidOut](data=BidOut.model_validate(bid), message="Bid shortlisted successfully")


@router.patch(
    "/{bid_id}/accept",
    response_model=DataResponse[AcceptedBidOut],
    summary="Accept bid",
    description="Accepts the bid, rejects every other open bid, closes the advertisement and creates the contract in one transaction.",
)
async def accept_bid(
    bid_id: uuid.UUID,
    user: User = Depends(require_role(Role.CLIENT)),
    db: AsyncSession = Depends(get_db),
):
    bid, contract = await bids.accept_bid(db, bid_id, user)
    data = AcceptedBidOut(
        **BidOut.model_validate(bid).model_dump(),
        contract=ContractOut.model_validate(contract),
    )
    return DataResponse[AcceptedBidOut](data=data, message="Bid accepted and contract created")


@router.patch("/{bid_id}/reject", response_model=DataResponse[BidOut], summary="Reject bid", description="`PENDING` or `SHORTLISTED` → `REJECTED`. Advertisement owner only.")
async def reject_bid(
    bid_id: uuid.UUID,
    user: User = Depends(require_role(Role.CLIENT)),
    db: AsyncSession = Depends(get_db),
):
    bid = await bids.reject_bid(db, bid_id, user)
    return DataResponse[BidOut](data=BidOut.model_validate(bid), message="Bid rejected")
