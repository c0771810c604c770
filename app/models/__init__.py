from app.models.advertisement import Advertisement, AdvertisementStatus
from app.models.bid import Bid, BidStatus
from app.models.contract import Contract, ContractStatus
from app.models.deliverable import Deliverable, DeliverableStatus, DeliverableType
from app.models.credit import CreditWallet
from app.models.notification import Notification
from app.models.review import Review
from app.models.user import ClientProfile, InfluencerProfile, Role, User

__all__ = [
    "User",
    "Role",
    "ClientProfile",
    "InfluencerProfile",
    "Advertisement",
    "AdvertisementStatus",
    "Bid",
    "BidStatus",
    "Contract",
    "ContractStatus",
    "Deliverable",
    "DeliverableStatus",
    "DeliverableType",
    "Review",
    "Notification",
    "CreditWallet",
]
