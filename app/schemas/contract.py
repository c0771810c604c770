import uuid
from datetime import datetime

from pydantic import Field

from app.schemas.common import APIModel


class CancelContractRequest(APIModel):
    reason: str | None = None


class DisputeContractRequest(APIModel):
    reason: str = Field(..., min_length=1)


class ContractOut(APIModel):
    id: uuid.UUID
    bid_id: uuid.UUID
    client_id: uuid.UUID
    influencer_id: uuid.UUID
    advertisement_id: uuid.UUID
    agreed_price: float
    delivery_deadline: datetime
    status: str
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancellation_reason: str | None = None
    dispute_reason: str | None = None
    created_at: datetime
