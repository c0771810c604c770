import uuid
from datetime import datetime
from typing import Literal

from pydantic import Field

from app.schemas.common import APIModel


class DeliverableCreateRequest(APIModel):
    title: str = Field(..., min_length=1, max_length=200)
    type: Literal["SCREENSHOT", "LINK", "VIDEO", "IMAGE", "DOCUMENT", "ANALYTICS"]
    description: str | None = None
    file_url: str | None = Field(None, max_length=500)
    external_link: str | None = Field(None, max_length=500)
    platform: str | None = Field(None, max_length=20)


class DeliverableReviewRequest(APIModel):
    status: Literal["APPROVED", "REJECTED", "REVISION_REQUESTED"]
    feedback: str | None = None


class DeliverableOut(APIModel):
    id: uuid.UUID
    contract_id: uuid.UUID
    influencer_id: uuid.UUID
    title: str
    description: str | None = None
    type: str
    file_url: str | None = None
    external_link: str | None = None
    platform: str | None = None
    status: str
    client_feedback: str | None = None
    reviewed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class DeliverableStats(APIModel):
    total: int = 0
    pending: int = 0
    approved: int = 0
    rejected: int = 0
    revision_requested: int = 0
