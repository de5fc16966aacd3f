"""
Notification Service

Best-effort side effects of state changes: in-app notifications and system
messages in a transfer's chat.

Runs on its own sessions so a failed delivery never rolls back or expires
the caller's already-committed change. Failures are logged and reported as
``False``, never raised.
"""

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cambio.database import AsyncSessionLocal
from cambio.models.chat import ChatMessage, TransferChat
from cambio.models.notification import Notification
from cambio.models.profile import Profile, UserRole

logger = logging.getLogger(__name__)


class NotificationService:
    """
    Service for sending notifications.

    Handles:
    - Notifying a transfer's owner about transitions
    - Notifying every administrator about new activity
    - Posting system messages into transfer chats
    """

    def __init__(self, session_factory: Optional[async_sessionmaker] = None):
        self.session_factory = session_factory or AsyncSessionLocal

    async def send(
        self,
        user_id: str,
        title: str,
        content: str,
        transfer_id: Optional[str] = None,
    ) -> bool:
        """Store one in-app notification for ``user_id``."""
        try:
            async with self.session_factory() as session:
                session.add(Notification(
                    user_id=user_id,
                    title=title,
                    content=content,
                    transfer_id=transfer_id,
                ))
                await session.commit()
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Failed to notify {user_id} ({title!r}): {e}")
            return False
        return True

    async def notify_admins(
        self,
        title: str,
        content: str,
        transfer_id: Optional[str] = None,
    ) -> int:
        """Notify every administrator. Returns how many were stored."""
        try:
            admin_ids = await self._admin_ids()
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Failed to look up administrators for {title!r}: {e}")
            return 0

        delivered = 0
        for admin_id in admin_ids:
            if await self.send(admin_id, title, content, transfer_id=transfer_id):
                delivered += 1
        return delivered

    async def post_system_message(
        self,
        transfer_id: str,
        content: str,
        author_id: Optional[str] = None,
    ) -> bool:
        """Append a system message to the transfer's chat, creating the chat if needed."""
        try:
            async with self.session_factory() as session:
                chat = await self._get_or_create_chat(session, transfer_id)
                session.add(ChatMessage(
                    chat_id=chat.id,
                    user_id=author_id,
                    content=content,
                    is_system=True,
                ))
                await session.commit()
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Failed to post system message on transfer {transfer_id}: {e}")
            return False
        return True

    async def _admin_ids(self) -> List[str]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(Profile.id).where(Profile.role == UserRole.ADMIN)
            )
            return list(result.scalars().all())

    async def _get_or_create_chat(self, session: AsyncSession, transfer_id: str) -> TransferChat:
        result = await session.execute(
            select(TransferChat).where(TransferChat.transfer_id == transfer_id)
        )
        chat = result.scalar_one_or_none()
        if chat is None:
            chat = TransferChat(transfer_id=transfer_id)
            session.add(chat)
            await session.flush()
        return chat


def get_notification_service() -> NotificationService:
    """FastAPI dependency; tests override it with a service bound to their database."""
    return NotificationService()
