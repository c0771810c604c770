import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.deps import get_current_user, require_role
from app.models.user import Role, User
from app.schemas.common import DataResponse, MessageResponse
from app.schemas.deliverable import (
    DeliverableCreateRequest,
    DeliverableOut,
    DeliverableReviewRequest,
    DeliverableStats,
)
from app.services import deliverables

router = APIRouter(prefix="/contracts/{contract_id}/deliverables", tags=["Deliverables"])


@router.post(
    "",
    response_model=DataResponse[DeliverableOut],
    status_code=status.HTTP_201_CREATED,
    summary="Submit deliverable",
    description="Influencer hands in work on an `ACTIVE` contract. Needs `fileUrl` or `externalLink`; the client is notified.",
)
async def submit_deliverable(
    contract_id: uuid.UUID,
    body: DeliverableCreateRequest,
    user: User = Depends(require_role(Role.INFLUENCER)),
    db: AsyncSession = Depends(get_db),
):
    deliverable = await deliverables.submit_deliverable(
        db,
        contract_id,
        user,
        title=body.title,
        deliverable_type=body.type,
        description=body.description,
        file_url=body.file_url,
        external_link=body.external_link,
        platform=body.platform,
    )
    return DataResponse[DeliverableOut](data=DeliverableOut.model_validate(deliverable), message="Deliverable submitted")


@router.get("", response_model=DataResponse[list[DeliverableOut]], summary="Contract deliverables", description="Newest first. Parties only.")
async def list_deliverables(
    contract_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    items = await deliverables.list_deliverables(db, contract_id, user)
    return DataResponse[list[DeliverableOut]](data=[DeliverableOut.model_validate(d) for d in items])


@router.get("/stats", response_model=DataResponse[DeliverableStats], summary="Deliverable stats")
async def deliverable_stats(
    contract_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    stats = await deliverables.deliverable_stats(db, contract_id, user)
    return DataResponse[DeliverableStats](data=DeliverableStats(**stats))


@router.get("/{deliverable_id}", response_model=DataResponse[DeliverableOut], summary="Deliverable details")
async def get_deliverable(
    contract_id: uuid.UUID,
    deliverable_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    deliverable = await deliverables.get_deliverable(db, contract_id, deliverable_id, user)
    return DataResponse[DeliverableOut](data=DeliverableOut.model_validate(deliverable))


@router.put(
    "/{deliverable_id}/review",
    response_model=DataResponse[DeliverableOut],
    summary="Review deliverable",
    description="Client sets a `PENDING` deliverable to `APPROVED`, `REJECTED` or `REVISION_REQUESTED`, with optional feedback.",
)
async def review_deliverable(
    contract_id: uuid.UUID,
    deliverable_id: uuid.UUID,
    body: DeliverableReviewRequest,
    user: User = Depends(require_role(Role.CLIENT)),
    db: AsyncSession = Depends(get_db),
):
    deliverable = await deliverables.review_deliverable(
        db, contract_id, deliverable_id, user, body.status, body.feedback
    )
    return DataResponse[DeliverableOut](
        data=DeliverableOut.model_validate(deliverable), message=f"Deliverable {body.status.lower()}"
    )


@router.delete("/{deliverable_id}", response_model=MessageResponse, summary="Delete deliverable", description="Influencer removes a `PENDING` deliverable.")
async def delete_deliverable(
    contract_id: uuid.UUID,
    deliverable_id: uuid.UUID,
    user: User = Depends(require_role(Role.INFLUENCER)),
    db: AsyncSession = Depends(get_db),
):
    await deliverables.delete_deliverable(db, contract_id, deliverable_id, user)
    return MessageResponse(message="Deliverable deleted")
