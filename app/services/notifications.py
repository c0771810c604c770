"""Lifecycle hooks consumed by the notification service.

Each hook adds a `Notification` row to the caller's session, so the event is
committed together with the state change that produced it (or not at all).
"""
import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.notification import Notification

logger = logging.getLogger(__name__)


class EventType:
    BID_RECEIVED = "BID_RECEIVED"
    BID_SHORTLISTED = "BID_SHORTLISTED"
    BID_ACCEPTED = "BID_ACCEPTED"
    BID_REJECTED = "BID_REJECTED"
    CONTRACT_CREATED = "CONTRACT_CREATED"
    CONTRACT_COMPLETED = "CONTRACT_COMPLETED"
    CONTRACT_CANCELLED = "CONTRACT_CANCELLED"
    CONTRACT_DISPUTED = "CONTRACT_DISPUTED"
    DELIVERABLE_SUBMITTED = "DELIVERABLE_SUBMITTED"
    DELIVERABLE_APPROVED = "DELIVERABLE_APPROVED"
    DELIVERABLE_REJECTED = "DELIVERABLE_REJECTED"
    DELIVERABLE_REVISION_REQUESTED = "DELIVERABLE_REVISION_REQUESTED"
    REVIEW_RECEIVED = "REVIEW_RECEIVED"


def emit(
    db: AsyncSession,
    user_id: uuid.UUID,
    event_type: str,
    title: str,
    body: str,
    reference_type: str | None = None,
    reference_id: uuid.UUID | None = None,
) -> Notification:
    notification = Notification(
        user_id=user_id,
        type=event_type,
        title=title,
        body=body,
        is_read=False,
        reference_type=reference_type,
        reference_id=reference_id,
    )
    db.add(notification)
    logger.info("event %s for user %s (%s %s)", event_type, user_id, reference_type, reference_id)
    return notification
