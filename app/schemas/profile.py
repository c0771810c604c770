import uuid

from app.schemas.common import APIModel


class InfluencerStats(APIModel):
    display_name: str | None = None
    primary_niche: str | None = None
    average_rating: float = 0.0
    total_reviews: int = 0
    completed_campaigns: int = 0


class ClientInfo(APIModel):
    company_name: str | None = None
    industry: str | None = None
    website: str | None = None


class ProfileOut(APIModel):
    id: uuid.UUID
    email: str
    role: str
    name: str | None = None
    avatar_url: str | None = None
    influencer_profile: InfluencerStats | None = None
    client_profile: ClientInfo | None = None
