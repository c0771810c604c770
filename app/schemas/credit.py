from datetime import datetime

from app.schemas.common import APIModel


class CreditWalletOut(APIModel):
    bid_credits: int
    total_bid_credits_used: int
    credit_system_enabled: bool
    updated_at: datetime | None = None
