"""ClawForge certification FastAPI application."""

from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from clawforge.certification.validator import SkillZipValidator
from clawforge.config import get_settings
from clawforge.database import close_db, init_db
from clawforge.logging_config import configure_logging, get_logger
from clawforge.services.notification_service import CertificationNotifier, build_email_sender

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: init DB + shared HTTP client on startup, cleanup on shutdown."""
    settings = get_settings()
    configure_logging(
        level=settings.log_level,
        json_format=settings.log_json,
        service_version=settings.service_version,
    )

    # Init database
    logger.info("starting_database_init")
    await init_db()

    # Shared outbound client: archive downloads and the email relay
    http_client = httpx.AsyncClient(timeout=settings.archive_download_timeout)
    app.state.http_client = http_client
    app.state.validator = SkillZipValidator()
    app.state.notifier = CertificationNotifier(
        build_email_sender(settings, http_client), settings.app_base_url,
    )

    logger.info("application_started", version=settings.service_version)
    yield

    # Shutdown
    logger.info("shutting_down")
    await http_client.aclose()
    await close_db()
    logger.info("shutdown_complete")


app = FastAPI(
    title="ClawForge Certification",
    description="Skill certification engine: Bronze validation, Silver scoring, Gold review",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Routers ---
from clawforge.routes.certification import router as certification_router  # noqa: E402
from clawforge.routes.admin_certification import router as admin_certification_router  # noqa: E402

app.include_router(certification_router)
app.include_router(admin_certification_router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok", "service": "clawforge-certification"}
