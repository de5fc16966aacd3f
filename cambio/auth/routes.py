"""Authentication routes.

Sign-up and login live with the identity provider; this service only exposes
who the bearer token belongs to.
"""
from fastapi import APIRouter, Depends

from cambio.auth import schemas
from cambio.auth.dependencies import get_current_user
from cambio.models.profile import Profile

router = APIRouter()


@router.get("/me", response_model=schemas.ProfileInfo)
async def get_me(current_user: Profile = Depends(get_current_user)):
    """Get the current authenticated profile."""
    return current_user
