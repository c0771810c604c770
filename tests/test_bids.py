"""Tests for bid submission and the bid state machine."""
import uuid
from datetime import timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import utcnow
from app.core.errors import InvalidTerms
from app.models import Advertisement, AdvertisementStatus, Bid, BidStatus, Contract, Notification
from app.services import bids
from app.services.bids import MAX_DELIVERY_DAYS, validate_terms
from tests.conftest import auth_headers, make_bid


def _bid_body(advertisement, **overrides) -> dict:
    body = {
        "advertisementId": str(advertisement.id),
        "proposedPrice": 300,
        "proposal": "Two reels and a story",
        "deliveryDays": 5,
    }
    body.update(overrides)
    return body


# ────────────────────────────────────────
# SUBMIT
# ────────────────────────────────────────

@pytest.mark.asyncio
async def test_submit_bid(client, db: AsyncSession, influencer_user, client_user, advertisement):
    resp = await client.post("/api/bids", json=_bid_body(advertisement), headers=auth_headers(influencer_user))
    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    assert body["data"]["status"] == "PENDING"
    assert body["data"]["proposedPrice"] == 300
    assert body["data"]["influencerId"] == str(influencer_user.id)

    result = await db.execute(select(Notification).where(Notification.user_id == client_user.id))
    notification = result.scalar_one()
    assert notification.type == "BID_RECEIVED"
    assert notification.reference_id == advertisement.id


@pytest.mark.asyncio
async def test_submit_bid_twice_already_bid(client, db: AsyncSession, influencer_user, advertisement):
    first = await client.post("/api/bids", json=_bid_body(advertisement), headers=auth_headers(influencer_user))
    assert first.status_code == 201

    second = await client.post(
        "/api/bids", json=_bid_body(advertisement, proposedPrice=250), headers=auth_headers(influencer_user)
    )
    assert second.status_code == 409
    assert second.json() == {
        "success": False,
        "error": "You have already bid on this advertisement",
        "code": "AlreadyBid",
    }

    count = (await db.execute(select(func.count()).select_from(Bid))).scalar()
    assert count == 1


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [
        {"proposedPrice": 0},
        {"proposedPrice": -10},
        {"deliveryDays": 0},
        {"deliveryDays": 3651},
        {"deliveryDays": 4000000},
        {"proposal": ""},
        {"proposal": "   "},
    ],
)
async def test_submit_bid_invalid_terms(client, db: AsyncSession, influencer_user, advertisement, overrides):
    resp = await client.post(
        "/api/bids", json=_bid_body(advertisement, **overrides), headers=auth_headers(influencer_user)
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "InvalidTerms"

    count = (await db.execute(select(func.count()).select_from(Bid))).scalar()
    assert count == 0


@pytest.mark.asyncio
async def test_submit_bid_closed_advertisement(client, db: AsyncSession, influencer_user, advertisement):
    advertisement.status = AdvertisementStatus.CLOSED
    await db.commit()

    resp = await client.post("/api/bids", json=_bid_body(advertisement), headers=auth_headers(influencer_user))
    assert resp.status_code == 400
    assert resp.json()["code"] == "AdvertisementClosed"


@pytest.mark.asyncio
async def test_submit_bid_after_deadline(client, db: AsyncSession, influencer_user, advertisement):
    advertisement.deadline = utcnow() - timedelta(hours=1)
    await db.commit()

    resp = await client.post("/api/bids", json=_bid_body(advertisement), headers=auth_headers(influencer_user))
    assert resp.status_code == 400
    assert resp.json()["code"] == "AdvertisementClosed"


@pytest.mark.asyncio
async def test_submit_bid_unknown_advertisement(client, influencer_user):
    body = {"advertisementId": str(uuid.uuid4()), "proposedPrice": 300, "proposal": "x", "deliveryDays": 5}
    resp = await client.post("/api/bids", json=body, headers=auth_headers(influencer_user))
    assert resp.status_code == 404
    assert resp.json()["code"] == "NotFound"


@pytest.mark.asyncio
async def test_submit_bid_requires_influencer(client, client_user, advertisement):
    resp = await client.post("/api/bids", json=_bid_body(advertisement), headers=auth_headers(client_user))
    assert resp.status_code == 403
    assert resp.json()["code"] == "Forbidden"


@pytest.mark.asyncio
async def test_submit_bid_unauthorized(client, advertisement):
    resp = await client.post("/api/bids", json=_bid_body(advertisement))
    assert resp.status_code == 401
    assert resp.json()["code"] == "Unauthorized"


@pytest.mark.asyncio
async def test_submit_bid_missing_field(client, influencer_user, advertisement):
    body = _bid_body(advertisement)
    del body["deliveryDays"]
    resp = await client.post("/api/bids", json=body, headers=auth_headers(influencer_user))
    assert resp.status_code == 422
    assert resp.json()["code"] == "ValidationError"


# ────────────────────────────────────────
# UPDATE / WITHDRAW
# ────────────────────────────────────────

@pytest.mark.asyncio
async def test_update_bid(client, db: AsyncSession, influencer_user, advertisement):
    bid = await make_bid(db, advertisement, influencer_user)

    resp = await client.put(
        f"/api/bids/{bid.id}",
        json={"proposedPrice": 275, "deliveryDays": 7},
        headers=auth_headers(influencer_user),
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["proposedPrice"] == 275
    assert data["deliveryDays"] == 7
    assert data["proposal"] == "Two reels and a story"


@pytest.mark.asyncio
async def test_update_bid_not_owner(client, db: AsyncSession, influencer_user, second_influencer, advertisement):
    bid = await make_bid(db, advertisement, influencer_user)

    resp = await client.put(
        f"/api/bids/{bid.id}", json={"proposedPrice": 10}, headers=auth_headers(second_influencer)
    )
    assert resp.status_code == 403
    assert resp.json()["code"] == "NotOwner"


@pytest.mark.asyncio
async def test_update_shortlisted_bid(client, db: AsyncSession, influencer_user, advertisement):
    bid = await make_bid(db, advertisement, influencer_user, status=BidStatus.SHORTLISTED)

    resp = await client.put(
        f"/api/bids/{bid.id}", json={"proposedPrice": 200}, headers=auth_headers(influencer_user)
    )
    assert resp.status_code == 409
    assert resp.json()["code"] == "InvalidTransition"


@pytest.mark.asyncio
async def test_update_bid_invalid_terms(client, db: AsyncSession, influencer_user, advertisement):
    bid = await make_bid(db, advertisement, influencer_user)

    resp = await client.put(f"/api/bids/{bid.id}", json={"deliveryDays": 0}, headers=auth_headers(influencer_user))
    assert resp.status_code == 400
    assert resp.json()["code"] == "InvalidTerms"


@pytest.mark.asyncio
async def test_withdraw_bid(client, db: AsyncSession, influencer_user, advertisement):
    bid = await make_bid(db, advertisement, influencer_user)

    resp = await client.delete(f"/api/bids/{bid.id}", headers=auth_headers(influencer_user))
    assert resp.status_code == 200
    assert resp.json()["message"] == "Bid withdrawn successfully"

    count = (await db.execute(select(func.count()).select_from(Bid))).scalar()
    assert count == 0


@pytest.mark.asyncio
async def test_withdraw_shortlisted_bid(client, db: AsyncSession, influencer_user, advertisement):
    bid = await make_bid(db, advertisement, influencer_user, status=BidStatus.SHORTLISTED)

    resp = await client.delete(f"/api/bids/{bid.id}", headers=auth_headers(influencer_user))
    assert resp.status_code == 409
    assert resp.json()["code"] == "InvalidTransition"


# ────────────────────────────────────────
# LISTS
# ────────────────────────────────────────

@pytest.mark.asyncio
async def test_my_bids(client, db: AsyncSession, client_user, influencer_user, advertisement):
    second_ad = Advertisement(
        id=uuid.uuid4(),
        client_id=client_user.id,
        title="Autumn campaign",
        description="Unboxing videos",
        platform="tiktok",
        content_type="video",
        budget_min=50.0,
        budget_max=150.0,
        deadline=utcnow() + timedelta(days=3),
        status=AdvertisementStatus.OPEN,
    )
    db.add(second_ad)
    await db.commit()

    await make_bid(db, advertisement, influencer_user)
    await make_bid(db, second_ad, influencer_user, status=BidStatus.SHORTLISTED)

    resp = await client.get("/api/bids/my-bids?limit=1", headers=auth_headers(influencer_user))
    assert resp.status_code == 200
    body = resp.json()
    assert len(body["data"]) == 1
    assert body["pagination"] == {"page": 1, "limit": 1, "total": 2, "totalPages": 2}

    resp = await client.get("/api/bids/my-bids?status=SHORTLISTED", headers=auth_headers(influencer_user))
    data = resp.json()["data"]
    assert len(data) == 1
    assert data[0]["advertisement"]["title"] == "Autumn campaign"


@pytest.mark.asyncio
async def test_bids_for_advertisement(
    client, db: AsyncSession, client_user, other_client, influencer_user, second_influencer, advertisement
):
    await make_bid(db, advertisement, influencer_user)
    await make_bid(db, advertisement, second_influencer)

    resp = await client.get(f"/api/bids/advertisement/{advertisement.id}", headers=auth_headers(client_user))
    assert resp.status_code == 200
    assert resp.json()["pagination"]["total"] == 2

    resp = await client.get(f"/api/bids/advertisement/{advertisement.id}", headers=auth_headers(other_client))
    assert resp.status_code == 403
    assert resp.json()["code"] == "NotOwner"


# ────────────────────────────────────────
# SHORTLIST / REJECT
# ────────────────────────────────────────

@pytest.mark.asyncio
async def test_shortlist_bid(client, db: AsyncSession, client_user, influencer_user, advertisement):
    bid = await make_bid(db, advertisement, influencer_user)

    resp = await client.patch(f"/api/bids/{bid.id}/shortlist", headers=auth_headers(client_user))
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "SHORTLISTED"

    result = await db.execute(
        select(Notification).where(Notification.user_id == influencer_user.id, Notification.type == "BID_SHORTLISTED")
    )
    assert result.scalar_one_or_none() is not None

    again = await client.patch(f"/api/bids/{bid.id}/shortlist", headers=auth_headers(client_user))
    assert again.status_code == 409
    assert again.json()["code"] == "InvalidTransition"


@pytest.mark.asyncio
async def test_shortlist_not_owner(client, db: AsyncSession, other_client, influencer_user, advertisement):
    bid = await make_bid(db, advertisement, influencer_user)

    resp = await client.patch(f"/api/bids/{bid.id}/shortlist", headers=auth_headers(other_client))
    assert resp.status_code == 403
    assert resp.json()["code"] == "NotOwner"

    await db.refresh(bid)
    assert bid.status == BidStatus.PENDING


@pytest.mark.asyncio
@pytest.mark.parametrize("start", [BidStatus.PENDING, BidStatus.SHORTLISTED])
async def test_reject_bid(client, db: AsyncSession, client_user, influencer_user, advertisement, start):
    bid = await make_bid(db, advertisement, influencer_user, status=start)

    resp = await client.patch(f"/api/bids/{bid.id}/reject", headers=auth_headers(client_user))
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "REJECTED"


@pytest.mark.asyncio
@pytest.mark.parametrize("action", ["shortlist", "accept", "reject"])
async def test_rejected_bid_is_terminal(client, db: AsyncSession, client_user, influencer_user, advertisement, action):
    bid = await make_bid(db, advertisement, influencer_user, status=BidStatus.REJECTED)

    resp = await client.patch(f"/api/bids/{bid.id}/{action}", headers=auth_headers(client_user))
    assert resp.status_code == 409
    assert resp.json()["code"] == "InvalidTransition"


@pytest.mark.asyncio
@pytest.mark.parametrize("action", ["shortlist", "reject"])
async def test_accepted_bid_is_terminal(client, db: AsyncSession, client_user, influencer_user, advertisement, action):
    bid = await make_bid(db, advertisement, influencer_user, status=BidStatus.SHORTLISTED)
    await bids.accept_bid(db, bid.id, client_user)

    resp = await client.patch(f"/api/bids/{bid.id}/{action}", headers=auth_headers(client_user))
    assert resp.status_code == 409
    assert resp.json()["code"] == "InvalidTransition"

    await db.refresh(bid)
    assert bid.status == BidStatus.ACCEPTED
    contract = (await db.execute(select(Contract).where(Contract.bid_id == bid.id))).scalar_one()
    assert contract.status == "ACTIVE"


@pytest.mark.asyncio
async def test_update_bid_delivery_days_too_long(client, db: AsyncSession, influencer_user, advertisement):
    bid = await make_bid(db, advertisement, influencer_user)

    resp = await client.put(
        f"/api/bids/{bid.id}", json={"deliveryDays": MAX_DELIVERY_DAYS + 1}, headers=auth_headers(influencer_user)
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "InvalidTerms"

    await db.refresh(bid)
    assert bid.delivery_days == 5


def test_validate_terms():
    validate_terms(300.0, MAX_DELIVERY_DAYS, "Long campaign")
    validate_terms(None, None, None)
    for price, days, proposal in (
        (float("nan"), 5, "x"),
        (float("inf"), 5, "x"),
        (300.0, MAX_DELIVERY_DAYS + 1, "x"),
        (300.0, 5, "  "),
    ):
        with pytest.raises(InvalidTerms):
            validate_terms(price, days, proposal)
