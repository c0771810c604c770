import uuid

from fastapi import APIRouter, Depends
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.deps import PageParams, get_current_user
from app.core.errors import NotFound
from app.models.notification import Notification
from app.models.user import User
from app.schemas.common import DataResponse, Pagination
from app.schemas.notification import MarkAllReadResponse, NotificationOut, NotificationPage

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=NotificationPage, summary="Notifications", description="Current user's notifications, newest first. Includes `unreadCount`.")
async def list_notifications(
    page: PageParams = Depends(),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    base = select(Notification).where(Notification.user_id == user.id)

    total = (await db.execute(select(func.count()).select_from(base.subquery()))).scalar() or 0
    unread = (
        await db.execute(
            select(func.count())
            .select_from(Notification)
            .where(Notification.user_id == user.id, Notification.is_read == False)
        )
    ).scalar() or 0

    result = await db.execute(
        base.order_by(Notification.created_at.desc()).offset(page.offset).limit(page.limit)
    )

    return NotificationPage(
        data=[NotificationOut.model_validate(n) for n in result.scalars().all()],
        pagination=Pagination.build(page.page, page.limit, total),
        unread_count=unread,
    )


@router.post("/{notification_id}/read", response_model=DataResponse[NotificationOut], summary="Mark as read")
async def mark_read(
    notification_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(Notification).where(Notification.id == notification_id, Notification.user_id == user.id)
    )
    notification = result.scalar_one_or_none()
    if not notification:
        raise NotFound("Notification not found")

    notification.is_read = True
    await db.commit()
    await db.refresh(notification)

    return DataResponse[NotificationOut](data=NotificationOut.model_validate(notification))


@router.post("/read-all", response_model=MarkAllReadResponse, summary="Mark all as read")
async def mark_all_read(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        update(Notification)
        .where(Notification.user_id == user.id, Notification.is_read == False)
        .values(is_read=True)
    )
    await db.commit()

    return MarkAllReadResponse(updated_count=result.rowcount)
