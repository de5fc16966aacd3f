"""Admin statistics routes."""
from typing import Dict

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from cambio.auth.actor import Actor
from cambio.auth.dependencies import get_current_actor
from cambio.database import get_db
from cambio.stats.service import get_stats

router = APIRouter(tags=["stats"])


class StatsResponse(BaseModel):
    total_users: int
    total_transfers: int
    pending_transfers: int  # pending + pending_usd_approval + pending_cardless
    by_status: Dict[str, int]


@router.get("/stats", response_model=StatsResponse)
async def read_stats(
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Dashboard counters. Admin only."""
    stats = await get_stats(db, actor)
    return StatsResponse(**stats.__dict__)
