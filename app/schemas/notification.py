import uuid
from datetime import datetime

from app.schemas.common import APIModel, Pagination


class NotificationOut(APIModel):
    id: uuid.UUID
    type: str
    title: str
    body: str
    is_read: bool = False
    reference_type: str | None = None
    reference_id: uuid.UUID | None = None
    created_at: datetime


class NotificationPage(APIModel):
    success: bool = True
    data: list[NotificationOut]
    pagination: Pagination
    unread_count: int = 0


class MarkAllReadResponse(APIModel):
    success: bool = True
    updated_count: int
