"""
USD Permission Service

Customers ask for access to USD (USDT) transfers; administrators approve or
reject the request. Each customer has at most one request. Admins may also
decide for a customer who never asked.
"""

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cambio.audit.services import AuditService
from cambio.auth.actor import Actor, ensure_admin
from cambio.errors import ConflictError, GuardFailure, NotFoundError, store_errors
from cambio.models.profile import Profile
from cambio.models.usd_permission import UsdPermission, UsdPermissionStatus
from cambio.notifications.service import NotificationService

logger = logging.getLogger(__name__)

_ALREADY_REQUESTED = "You already requested access to USD transfers"


class UsdPermissionService:
    def __init__(self, db: AsyncSession, notifier: NotificationService):
        self.db = db
        self.notifier = notifier

    async def get_permission(self, actor: Actor) -> UsdPermission:
        """The actor's own request."""
        async with store_errors(self.db):
            permission = await self._find(actor.id)
        if not permission:
            raise NotFoundError("You have not requested access to USD transfers")
        return permission

    async def list_permissions(
        self,
        actor: Actor,
        status: Optional[UsdPermissionStatus] = None,
    ) -> List[UsdPermission]:
        ensure_admin(actor, "review USD requests")
        query = select(UsdPermission).order_by(UsdPermission.created_at.desc(), UsdPermission.id.desc())
        if status:
            query = query.where(UsdPermission.status == UsdPermissionStatus(status))
        async with store_errors(self.db):
            result = await self.db.execute(query)
            return list(result.scalars().all())

    async def request_permission(self, actor: Actor) -> UsdPermission:
        """Open a pending request and tell every administrator."""
        async with store_errors(self.db, conflict_message=_ALREADY_REQUESTED):
            profile = await self.db.get(Profile, actor.id)
            if not profile:
                raise NotFoundError("Profile not found")

            existing = await self._find(actor.id)
            if existing:
                status = UsdPermissionStatus(existing.status)
                if status == UsdPermissionStatus.APPROVED:
                    raise GuardFailure("You already have access to USD transfers")
                if status == UsdPermissionStatus.REJECTED:
                    raise GuardFailure("Your USD request was rejected. Please contact support.")
                raise ConflictError(_ALREADY_REQUESTED)

            permission = UsdPermission(user_id=actor.id, status=UsdPermissionStatus.PENDING)
            self.db.add(permission)
            await self.db.flush()
            await AuditService(self.db, actor.id).log_create(
                "usd_permission", permission.id, {"status": UsdPermissionStatus.PENDING.value}
            )
            await self.db.commit()
            await self.db.refresh(permission)

        logger.info(f"USD access requested by {actor.id}")
        await self.notifier.notify_admins(
            "New USD request",
            f"{profile.display_name} requested access to USD transfers.",
        )
        return permission

    async def decide(self, user_id: str, approved: bool, actor: Actor) -> UsdPermission:
        """Approve or reject ``user_id``'s access, creating the record if they never asked."""
        ensure_admin(actor, "decide USD requests")
        target = UsdPermissionStatus.APPROVED if approved else UsdPermissionStatus.REJECTED

        async with store_errors(self.db):
            if not await self.db.get(Profile, user_id):
                raise NotFoundError("User not found")

            permission = await self._find(user_id)
            old_status = UsdPermissionStatus(permission.status).value if permission else None
            if permission is None:
                permission = UsdPermission(user_id=user_id)
                self.db.add(permission)
            permission.status = target
            permission.admin_id = actor.id
            await self.db.flush()

            await AuditService(self.db, actor.id, "admin").log(
                "usd_permission",
                permission.id,
                "approve" if approved else "reject",
                field_name="status",
                old_value=old_status,
                new_value=target.value,
            )
            await self.db.commit()
            await self.db.refresh(permission)

        logger.info(f"USD access for {user_id} set to {target.value} by {actor.id}")
        if approved:
            await self.notifier.send(
                user_id, "USD access approved", "Your request to send USD transfers was approved."
            )
        else:
            await self.notifier.send(
                user_id, "USD access rejected", "Your request to send USD transfers was rejected."
            )
        return permission

    async def _find(self, user_id: str) -> Optional[UsdPermission]:
        result = await self.db.execute(select(UsdPermission).where(UsdPermission.user_id == user_id))
        return result.scalar_one_or_none()
