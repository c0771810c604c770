from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.deps import get_current_user
from app.models.user import ClientProfile, InfluencerProfile, Role, User
from app.schemas.common import DataResponse
from app.schemas.profile import ClientInfo, InfluencerStats, ProfileOut

router = APIRouter(prefix="/profile", tags=["Profile"])


async def _profile_response(db: AsyncSession, user: User) -> ProfileOut:
    profile = ProfileOut(
        id=user.id,
        email=user.email,
        role=user.role,
        name=user.name,
        avatar_url=user.avatar_url,
    )
    if user.role == Role.INFLUENCER:
        result = await db.execute(select(InfluencerProfile).where(InfluencerProfile.user_id == user.id))
        influencer = result.scalar_one_or_none()
        profile.influencer_profile = InfluencerStats.model_validate(influencer) if influencer else InfluencerStats()
    elif user.role == Role.CLIENT:
        result = await db.execute(select(ClientProfile).where(ClientProfile.user_id == user.id))
        client = result.scalar_one_or_none()
        if client:
            profile.client_profile = ClientInfo.model_validate(client)
    return profile


@router.get("", response_model=DataResponse[ProfileOut], summary="Current profile", description="Current user with rating and completed campaign stats for influencers.")
async def get_profile(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return DataResponse[ProfileOut](data=await _profile_response(db, user))
