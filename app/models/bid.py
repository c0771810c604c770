import uuid
from datetime import datetime

from sqlalchemy import Float, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base, UTCDateTime, utcnow


class BidStatus:
    PENDING = "PENDING"
    SHORTLISTED = "SHORTLISTED"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"

    OPEN = (PENDING, SHORTLISTED)


# status -> action -> next status; ACCEPTED and REJECTED have no exits
BID_TRANSITIONS: dict[str, dict[str, str]] = {
    BidStatus.PENDING: {
        "shortlist": BidStatus.SHORTLISTED,
        "accept": BidStatus.ACCEPTED,
        "reject": BidStatus.REJECTED,
    },
    BidStatus.SHORTLISTED: {
        "accept": BidStatus.ACCEPTED,
        "reject": BidStatus.REJECTED,
    },
    BidStatus.ACCEPTED: {},
    BidStatus.REJECTED: {},
}


class Bid(Base):
    __tablename__ = "bids"
    __table_args__ = (UniqueConstraint("advertisement_id", "influencer_id", name="uq_bids_advertisement_influencer"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    advertisement_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("advertisements.id"), nullable=False, index=True)
    influencer_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    proposed_price: Mapped[float] = mapped_column(Float, nullable=False)
    delivery_days: Mapped[int] = mapped_column(Integer, nullable=False)
    proposal: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default=BidStatus.PENDING)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, onupdate=utcnow)

    def next_status(self, action: str) -> str | None:
        return BID_TRANSITIONS[self.status].get(action)
