"""Actor resolution for the certification API.

Authentication happens upstream: the gateway verifies the session and
forwards the caller's user id in ``X-Actor-Id``. This module only turns
that id into a ``User`` row and enforces roles.
"""

from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clawforge.database import get_db
from clawforge.logging_config import bind_request_context, clear_request_context
from clawforge.models import User

ACTOR_HEADER = "X-Actor-Id"
REVIEWER_ROLES = {"admin", "agent"}


# ---------------------------------------------------------------------------
# FastAPI Auth Dependencies
# ---------------------------------------------------------------------------


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    FastAPI dependency: resolve the acting user from the gateway header.

    Returns the User ORM object or raises 401/403.
    """
    raw = request.headers.get(ACTOR_HEADER)
    if not raw:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing {ACTOR_HEADER} header",
        )

    try:
        actor_id = UUID(raw.strip())
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid {ACTOR_HEADER} header",
        )

    user = (await db.execute(select(User).where(User.id == actor_id))).scalar_one_or_none()
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User not found",
        )

    clear_request_context()
    bind_request_context(request.headers.get("X-Request-Id", ""), actor_id=str(user.id))
    return user


async def require_reviewer(user: User = Depends(get_current_user)) -> User:
    """Admins and certification agents may take certification decisions."""
    if user.role not in REVIEWER_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin or certification agent role required",
        )
    return user
