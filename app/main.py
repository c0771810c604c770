import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.core.database import create_all, engine
from app.core.errors import register_error_handlers
from app.core.logging import setup_logging
from app.routers import api_router

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger("app")

TAGS_METADATA = [
    {"name": "Profile", "description": "Current user with influencer rating and campaign stats."},
    {"name": "Advertisements", "description": "Campaigns published by clients. Influencers browse `OPEN` ones and bid."},
    {"name": "Bids", "description": "Influencer proposals on advertisements: submit, update, withdraw, shortlist, reject, accept."},
    {"name": "Contracts", "description": "Created when a bid is accepted. Statuses: ACTIVE, COMPLETED, CANCELLED, DISPUTED."},
    {"name": "Deliverables", "description": "Work submitted on an active contract and the client's approve, reject or revision decision."},
    {"name": "Reviews", "description": "Client reviews of influencers after a completed contract. Rating 1-5."},
    {"name": "Notifications", "description": "Lifecycle events for the current user."},
    {"name": "Credits", "description": "Bid credit balance. Bidding costs one credit when the credit system is enabled."},
]

API_DESCRIPTION = """
# Bidmarket API

Bid and contract lifecycle for an influencer marketplace.

## Authorization

Every request under `/api` requires a token issued by the auth service:
```
Authorization: Bearer <token>
```

## Flow

```
POST  /advertisements           client publishes a campaign (OPEN)
POST  /bids                     influencer bids (PENDING)
PATCH /bids/{id}/shortlist      PENDING → SHORTLISTED
PATCH /bids/{id}/accept         → ACCEPTED, other bids REJECTED, ad CLOSED, contract ACTIVE
POST  /contracts/{id}/deliverables  influencer hands in work, client reviews it
PATCH /contracts/{id}/complete  ACTIVE → COMPLETED
POST  /reviews                  client rates the influencer
```

## Errors

```json
{"success": false, "error": "You have already bid on this advertisement", "code": "AlreadyBid"}
```
"""


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.DB_CREATE_ALL:
        await create_all()
        logger.info("database tables created")
    logger.info("%s %s started", settings.PROJECT_NAME, settings.VERSION)
    yield
    await engine.dispose()


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description=API_DESCRIPTION,
    openapi_tags=TAGS_METADATA,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

app.include_router(api_router, prefix=settings.API_PREFIX)


@app.get("/health", tags=["Health"])
async def health():
    """Liveness probe."""
    return {"status": "ok"}
