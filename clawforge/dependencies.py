"""FastAPI dependencies wiring the certification service to app-wide resources.

The HTTP client, validator and notifier are created once in the app
lifespan and kept on ``app.state``; each request gets a service bound to
its own database session.
"""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from clawforge.config import Settings, get_settings
from clawforge.database import get_db
from clawforge.services.certification_service import CertificationService


def get_app_settings() -> Settings:
    return get_settings()


async def get_certification_service(
    request: Request,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> CertificationService:
    state = request.app.state
    return CertificationService(
        db,
        validator=state.validator,
        notifier=state.notifier,
        http_client=state.http_client,
        settings=settings,
    )
