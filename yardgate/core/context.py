"""
Explicit request context handed to services.

Replaces ambient "current user" state: every service call receives the
acting operator and reads no globals for identity.
"""
from dataclasses import dataclass
from typing import Optional

from yardgate.config import settings
from yardgate.core.exceptions import AuthorizationError


@dataclass(frozen=True)
class ActorContext:
    """The operator performing an action."""
    actor_id: str
    role: str
    display_name: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role.upper() == settings.ADMIN_ROLE.upper()

    def require_admin(self, action: str) -> None:
        if not self.is_admin:
            raise AuthorizationError(f"Only administrators can {action}")
