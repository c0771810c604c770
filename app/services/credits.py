import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import InsufficientCredits
from app.models.credit import CreditWallet

logger = logging.getLogger(__name__)


async def get_or_create_wallet(db: AsyncSession, user_id: uuid.UUID, for_update: bool = False) -> CreditWallet:
    query = select(CreditWallet).where(CreditWallet.user_id == user_id)
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(query)
    wallet = result.scalar_one_or_none()
    if wallet is None:
        wallet = CreditWallet(user_id=user_id, bid_credits=0, total_bid_credits_used=0)
        db.add(wallet)
        await db.flush()
    return wallet


async def charge_bid_credit(db: AsyncSession, user_id: uuid.UUID) -> CreditWallet | None:
    """Deduct one bid credit inside the caller's transaction.

    Returns None when the credit system is switched off.
    """
    if not settings.CREDIT_SYSTEM_ENABLED:
        return None

    wallet = await get_or_create_wallet(db, user_id, for_update=True)
    if wallet.bid_credits < 1:
        raise InsufficientCredits(f"Insufficient bid credits ({wallet.bid_credits} available)")

    wallet.bid_credits -= 1
    wallet.total_bid_credits_used += 1
    logger.info("charged 1 bid credit to %s, %s remaining", user_id, wallet.bid_credits)
    return wallet
