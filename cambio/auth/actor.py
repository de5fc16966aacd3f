"""The acting user as seen by the transfer core."""
from dataclasses import dataclass

from cambio.errors import PermissionDenied
from cambio.models.profile import UserRole


@dataclass(frozen=True)
class Actor:
    """Current user id and role, as handed over by the identity provider."""
    id: str
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @classmethod
    def from_profile(cls, profile) -> "Actor":
        return cls(id=profile.id, role=UserRole(profile.role))


def ensure_admin(actor: Actor, action: str) -> None:
    """Raise PermissionDenied unless ``actor`` is an administrator."""
    if not actor.is_admin:
        raise PermissionDenied(f"Only administrators can {action}")
