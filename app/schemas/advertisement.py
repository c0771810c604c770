import uuid
from datetime import datetime

from pydantic import Field

from app.schemas.common import APIModel


class AdvertisementCreateRequest(APIModel):
    title: str = Field(..., min_length=5, max_length=200)
    description: str = Field(..., min_length=1)
    platform: str
    content_type: str
    budget_min: float
    budget_max: float
    deadline: datetime


class AdvertisementUpdateRequest(APIModel):
    title: str | None = Field(None, min_length=5, max_length=200)
    description: str | None = None
    platform: str | None = None
    content_type: str | None = None
    budget_min: float | None = None
    budget_max: float | None = None
    deadline: datetime | None = None


class AdvertisementOut(APIModel):
    id: uuid.UUID
    client_id: uuid.UUID
    title: str
    description: str
    platform: str
    content_type: str
    budget_min: float
    budget_max: float
    deadline: datetime
    status: str
    bid_count: int = 0
    created_at: datetime
    updated_at: datetime
