import uuid
from datetime import datetime

from app.schemas.common import APIModel


class CreateReviewRequest(APIModel):
    influencer_id: uuid.UUID
    advertisement_id: uuid.UUID
    rating: int | float
    comment: str | None = None


class ReviewOut(APIModel):
    id: uuid.UUID
    client_id: uuid.UUID
    influencer_id: uuid.UUID
    advertisement_id: uuid.UUID
    rating: int
    comment: str | None = None
    created_at: datetime
