"""Authentication schemas."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from cambio.models.profile import UserRole


class ProfileInfo(BaseModel):
    """The authenticated profile as returned by ``GET /auth/me``."""
    id: str
    email: str
    full_name: Optional[str] = None
    role: UserRole
    is_blocked: bool
    created_at: datetime

    class Config:
        from_attributes = True
