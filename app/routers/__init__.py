from fastapi import APIRouter

from app.routers import (
    advertisements,
    bids,
    contracts,
    credits,
    deliverables,
    notifications,
    profile,
    reviews,
)

api_router = APIRouter()

api_router.include_router(profile.router)
api_router.include_router(advertisements.router)
api_router.include_router(bids.router)
api_router.include_router(contracts.router)
api_router.include_router(deliverables.router)
api_router.include_router(reviews.router)
api_router.include_router(notifications.router)
api_router.include_router(credits.router)
