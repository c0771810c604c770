"""Tests for the review gate and the influencer rating aggregate."""
import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import InvalidRating
from app.models import InfluencerProfile, Notification, Review
from app.services import bids, contracts
from app.services.reviews import running_mean, validate_rating
from tests.conftest import auth_headers, make_bid


@pytest_asyncio.fixture
async def contract(db: AsyncSession, client_user, influencer_user, advertisement):
    bid = await make_bid(db, advertisement, influencer_user)
    _, c = await bids.accept_bid(db, bid.id, client_user)
    return c


@pytest_asyncio.fixture
async def completed_contract(db: AsyncSession, client_user, contract):
    return await contracts.complete_contract(db, contract.id, client_user)


def _review_body(influencer, advertisement, rating=5, **extra) -> dict:
    body = {"influencerId": str(influencer.id), "advertisementId": str(advertisement.id), "rating": rating}
    body.update(extra)
    return body


async def _profile(db: AsyncSession, user) -> InfluencerProfile:
    result = await db.execute(select(InfluencerProfile).where(InfluencerProfile.user_id == user.id))
    return result.scalar_one()


@pytest.mark.asyncio
async def test_review_after_completion(
    client, db: AsyncSession, client_user, influencer_user, advertisement, completed_contract
):
    resp = await client.post(
        "/api/reviews",
        json=_review_body(influencer_user, advertisement, 5, comment="Great content"),
        headers=auth_headers(client_user),
    )
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["rating"] == 5
    assert data["comment"] == "Great content"

    profile = await _profile(db, influencer_user)
    assert profile.average_rating == 5.0
    assert profile.total_reviews == 1

    notification = (
        await db.execute(
            select(Notification).where(Notification.user_id == influencer_user.id, Notification.type == "REVIEW_RECEIVED")
        )
    ).scalar_one()
    assert notification.reference_id is not None


@pytest.mark.asyncio
async def test_review_without_completed_contract(
    client, db: AsyncSession, client_user, influencer_user, advertisement, contract
):
    resp = await client.post(
        "/api/reviews", json=_review_body(influencer_user, advertisement), headers=auth_headers(client_user)
    )
    assert resp.status_code == 400
    assert resp.json() == {
        "success": False,
        "error": "Can only review after contract completion",
        "code": "NotEligible",
    }

    assert (await db.execute(select(Review))).first() is None
    profile = await _profile(db, influencer_user)
    assert profile.total_reviews == 0


@pytest.mark.asyncio
async def test_review_other_influencer_not_eligible(
    client, client_user, second_influencer, advertisement, completed_contract
):
    resp = await client.post(
        "/api/reviews", json=_review_body(second_influencer, advertisement), headers=auth_headers(client_user)
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "NotEligible"


@pytest.mark.asyncio
async def test_duplicate_review(client, db: AsyncSession, client_user, influencer_user, advertisement, completed_contract):
    first = await client.post(
        "/api/reviews", json=_review_body(influencer_user, advertisement, 4), headers=auth_headers(client_user)
    )
    assert first.status_code == 201

    second = await client.post(
        "/api/reviews", json=_review_body(influencer_user, advertisement, 1), headers=auth_headers(client_user)
    )
    assert second.status_code == 409
    assert second.json()["code"] == "DuplicateReview"

    profile = await _profile(db, influencer_user)
    assert profile.total_reviews == 1
    assert profile.average_rating == 4.0


@pytest.mark.asyncio
@pytest.mark.parametrize("rating", [0, 6, -1, 4.5])
async def test_invalid_rating(client, client_user, influencer_user, advertisement, completed_contract, rating):
    resp = await client.post(
        "/api/reviews", json=_review_body(influencer_user, advertisement, rating), headers=auth_headers(client_user)
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "InvalidRating"


@pytest.mark.asyncio
async def test_invalid_rating_checked_before_eligibility(client, client_user, influencer_user, advertisement):
    resp = await client.post(
        "/api/reviews", json=_review_body(influencer_user, advertisement, 9), headers=auth_headers(client_user)
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "InvalidRating"


@pytest.mark.asyncio
async def test_review_requires_client(client, influencer_user, advertisement, completed_contract):
    resp = await client.post(
        "/api/reviews", json=_review_body(influencer_user, advertisement), headers=auth_headers(influencer_user)
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_rating_aggregate_running_mean(
    client, db: AsyncSession, client_user, influencer_user, advertisement, completed_contract
):
    profile = await _profile(db, influencer_user)
    profile.average_rating = 4.0
    profile.total_reviews = 3
    await db.commit()

    resp = await client.post(
        "/api/reviews", json=_review_body(influencer_user, advertisement, 2), headers=auth_headers(client_user)
    )
    assert resp.status_code == 201

    await db.refresh(profile)
    assert profile.total_reviews == 4
    assert profile.average_rating == pytest.approx((4.0 * 3 + 2) / 4)


@pytest.mark.asyncio
async def test_list_influencer_reviews(client, client_user, influencer_user, advertisement, completed_contract):
    await client.post(
        "/api/reviews", json=_review_body(influencer_user, advertisement, 5), headers=auth_headers(client_user)
    )

    resp = await client.get(f"/api/reviews/influencer/{influencer_user.id}", headers=auth_headers(client_user))
    assert resp.status_code == 200
    body = resp.json()
    assert body["pagination"]["total"] == 1
    assert body["data"][0]["rating"] == 5

    mine = await client.get("/api/reviews/my-reviews", headers=auth_headers(client_user))
    assert mine.json()["pagination"]["total"] == 1

    received = await client.get("/api/reviews/my-reviews", headers=auth_headers(influencer_user))
    assert received.json()["pagination"]["total"] == 1


def test_validate_rating():
    assert validate_rating(3) == 3
    assert validate_rating(5.0) == 5
    for bad in (0, 6, 2.5, True):
        with pytest.raises(InvalidRating):
            validate_rating(bad)


def test_running_mean():
    assert running_mean(0.0, 0, 4) == 4.0
    assert running_mean(4.5, 2, 3) == pytest.approx(4.0)
