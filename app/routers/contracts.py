import uuid

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.deps import PageParams, get_current_user, require_role
from app.models.user import Role, User
from app.schemas.common import DataResponse, PageResponse, Pagination
from app.schemas.contract import CancelContractRequest, ContractOut, DisputeContractRequest
from app.services import contracts

router = APIRouter(prefix="/contracts", tags=["Contracts"])


@router.get(
    "/my-contracts",
    response_model=PageResponse[ContractOut],
    summary="My contracts",
    description="Clients see contracts they issued, influencers see contracts they won. Optional `status` filter.",
)
async def my_contracts(
    contract_status: str | None = Query(None, alias="status"),
    page: PageParams = Depends(),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    items, total = await contracts.list_my_contracts(db, user, page.offset, page.limit, contract_status)
    return PageResponse[ContractOut](
        data=[ContractOut.model_validate(c) for c in items],
        pagination=Pagination.build(page.page, page.limit, total),
    )


@router.get("/{contract_id}", response_model=DataResponse[ContractOut], summary="Contract details", description="Visible to the two parties only.")
async def get_contract(
    contract_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    contract = await contracts.get_contract_for_party(db, contract_id, user)
    return DataResponse[ContractOut](data=ContractOut.model_validate(contract))


@router.patch(
    "/{contract_id}/complete",
    response_model=DataResponse[ContractOut],
    summary="Complete contract",
    description="`ACTIVE` → `COMPLETED`. Client only. Unlocks reviewing the influencer.",
)
async def complete_contract(
    contract_id: uuid.UUID,
    user: User = Depends(require_role(Role.CLIENT)),
    db: AsyncSession = Depends(get_db),
):
    contract = await contracts.complete_contract(db, contract_id, user)
    return DataResponse[ContractOut](data=ContractOut.model_validate(contract), message="Contract marked as completed")


@router.patch(
    "/{contract_id}/cancel",
    response_model=DataResponse[ContractOut],
    summary="Cancel contract",
    description="`ACTIVE` → `CANCELLED`. Client only. The body with `reason` is optional.",
)
async def cancel_contract(
    contract_id: uuid.UUID,
    body: CancelContractRequest | None = Body(None),
    user: User = Depends(require_role(Role.CLIENT)),
    db: AsyncSession = Depends(get_db),
):
    reason = body.reason if body else None
    contract = await contracts.cancel_contract(db, contract_id, user, reason)
    return DataResponse[ContractOut](data=ContractOut.model_validate(contract), message="Contract cancelled")


@router.patch(
    "/{contract_id}/dispute",
    response_model=DataResponse[ContractOut],
    summary="Dispute contract",
    description="`ACTIVE` → `DISPUTED`. Either party; the other party is notified.",
)
async def dispute_contract(
    contract_id: uuid.UUID,
    body: DisputeContractRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    contract = await contracts.dispute_contract(db, contract_id, user, body.reason)
    return DataResponse[ContractOut](data=ContractOut.model_validate(contract), message="Dispute opened")
