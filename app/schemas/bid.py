import uuid
from datetime import datetime

from app.schemas.common import APIModel
from app.schemas.contract import ContractOut


class BidCreateRequest(APIModel):
    advertisement_id: uuid.UUID
    proposed_price: float
    proposal: str
    delivery_days: int


class BidUpdateRequest(APIModel):
    proposed_price: float | None = None
    proposal: str | None = None
    delivery_days: int | None = None


class AdvertisementBrief(APIModel):
    id: uuid.UUID
    title: str
    status: str
    deadline: datetime


class BidOut(APIModel):
    id: uuid.UUID
    advertisement_id: uuid.UUID
    influencer_id: uuid.UUID
    proposed_price: float
    delivery_days: int
    proposal: str
    status: str
    created_at: datetime
    updated_at: datetime


class MyBidOut(BidOut):
    advertisement: AdvertisementBrief | None = None


class AcceptedBidOut(BidOut):
    contract: ContractOut
