from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.core.deps import get_current_user
from app.models.user import User
from app.schemas.common import DataResponse
from app.schemas.credit import CreditWalletOut
from app.services import credits

router = APIRouter(prefix="/credits", tags=["Credits"])


@router.get("/me", response_model=DataResponse[CreditWalletOut], summary="My bid credits", description="Bid credit balance. An empty wallet is created on first read.")
async def my_credits(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    wallet = await credits.get_or_create_wallet(db, user.id)
    await db.commit()

    return DataResponse[CreditWalletOut](
        data=CreditWalletOut(
            bid_credits=wallet.bid_credits,
            total_bid_credits_used=wallet.total_bid_credits_used,
            credit_system_enabled=settings.CREDIT_SYSTEM_ENABLED,
            updated_at=wallet.updated_at,
        )
    )
