from typing import Annotated
import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from yardgate.database import get_db
from yardgate.core.context import ActorContext
from yardgate.core.security import verify_access_token


logger = logging.getLogger(__name__)

# HTTP Bearer security scheme
security = HTTPBearer()


async def get_current_actor(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> ActorContext:
    """
    Dependency to get the acting operator.
    Validates the JWT token and returns an explicit ActorContext.
    """
    payload = verify_access_token(credentials.credentials)
    if payload is None:
        logger.warning("Token verification failed - invalid or expired token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return ActorContext(
        actor_id=payload["sub"],
        role=payload["role"],
        display_name=payload.get("name"),
    )


async def require_admin(
    actor: Annotated[ActorContext, Depends(get_current_actor)],
) -> ActorContext:
    """Dependency for administrator-only endpoints."""
    actor.require_admin("perform this action")
    return actor


# Type aliases for cleaner dependency injection
CurrentActor = Annotated[ActorContext, Depends(get_current_actor)]
AdminActor = Annotated[ActorContext, Depends(require_admin)]
DB = Annotated[AsyncSession, Depends(get_db)]
