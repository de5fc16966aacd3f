"""Aggregate counts for the admin dashboard."""
from dataclasses import dataclass, field
from typing import Dict

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from cambio.auth.actor import Actor, ensure_admin
from cambio.errors import store_errors
from cambio.models.profile import Profile, UserRole
from cambio.models.transfer import Transfer, TransferStatus

OPEN_STATUSES = (
    TransferStatus.PENDING,
    TransferStatus.PENDING_USD_APPROVAL,
    TransferStatus.PENDING_CARDLESS,
)


@dataclass
class TransferStats:
    total_users: int = 0
    total_transfers: int = 0
    pending_transfers: int = 0
    by_status: Dict[str, int] = field(default_factory=dict)


async def get_stats(db: AsyncSession, actor: Actor) -> TransferStats:
    ensure_admin(actor, "view statistics")

    async with store_errors(db):
        users = await db.scalar(
            select(func.count()).select_from(Profile).where(Profile.role == UserRole.USER)
        )
        rows = await db.execute(
            select(Transfer.status, func.count()).group_by(Transfer.status)
        )
        counts = {TransferStatus(status).value: count for status, count in rows.all()}

    by_status = {status.value: counts.get(status.value, 0) for status in TransferStatus}
    return TransferStats(
        total_users=users or 0,
        total_transfers=sum(by_status.values()),
        pending_transfers=sum(by_status[status.value] for status in OPEN_STATUSES),
        by_status=by_status,
    )
