"""
Notification Routes

In-app notifications of the current user.
"""

from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from cambio.auth.actor import Actor
from cambio.auth.dependencies import get_current_actor
from cambio.database import get_db
from cambio.errors import NotFoundError, store_errors
from cambio.models.notification import Notification

router = APIRouter(prefix="/notifications", tags=["Notifications"])


# =============================================================================
# SCHEMAS
# =============================================================================

class NotificationResponse(BaseModel):
    id: str
    title: str
    content: str
    transfer_id: Optional[str] = None
    read: bool
    created_at: datetime

    class Config:
        from_attributes = True


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get("", response_model=List[NotificationResponse])
async def list_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Newest first."""
    query = (
        select(Notification)
        .where(Notification.user_id == actor.id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit)
    )
    if unread_only:
        query = query.where(Notification.read.is_(False))

    async with store_errors(db):
        result = await db.execute(query)
        return list(result.scalars().all())


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: str,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    async with store_errors(db):
        result = await db.execute(
            update(Notification)
            .where(Notification.id == notification_id, Notification.user_id == actor.id)
            .values(read=True)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise NotFoundError("Notification not found")
        await db.commit()
        notification = await db.get(Notification, notification_id, populate_existing=True)
    return notification
