"""Global pytest fixtures for the ClawForge certification engine.

This module provides shared fixtures for testing including:
- A real in-memory SQLite database (aiosqlite) per test
- In-memory skill archive builders
- User / skill factories and the seeded criteria catalog
- A certification service wired to fake HTTP and email transports
"""

import io
import zipfile
from collections.abc import AsyncGenerator, Callable
from typing import Any
from uuid import uuid4

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from clawforge.certification.validator import SkillZipValidator
from clawforge.config import Settings
from clawforge.models import Base, Skill, User
from clawforge.seed import seed_criteria
from clawforge.services.certification_service import CertificationService
from clawforge.services.notification_service import CertificationNotifier

ARCHIVE_URL = "https://files.clawforge.test/skills/demo.zip"

# ===========================================
# ARCHIVE BUILDERS
# ===========================================


def _build_zip(files: dict[str, str | bytes], dirs: tuple[str, ...] = ()) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
        for d in dirs:
            zf.writestr(d.rstrip("/") + "/", "")
        for name, content in files.items():
            zf.writestr(name, content)
    return buffer.getvalue()


SKILL_MD = """---
name: demo-skill
version: 1.0.0
description: A demo skill that summarises web pages
author: Jane Creator
license: MIT
---

# Demo skill

Summarises a web page into three bullet points.
"""

README = (
    "# Demo skill\n\n"
    + "This skill fetches a page and summarises it for the agent. " * 50
    + "\n\n## Installation\n\nCopy the folder.\n\n## Usage\n\nAsk for a summary.\n"
    + "\n## Examples\n\nSummarise https://example.com\n\n## Configuration\n\nNone needed.\n"
)


@pytest.fixture
def build_zip() -> Callable[..., bytes]:
    """Build zip bytes from a ``{path: content}`` mapping (plus optional explicit dirs)."""
    return _build_zip


@pytest.fixture
def valid_skill_files() -> dict[str, str]:
    """A well-formed skill scoring high on every Silver criterion, wrapped in ``demo-skill/``."""
    return {
        "demo-skill/SKILL.md": SKILL_MD,
        "demo-skill/README.md": README,
        "demo-skill/LICENSE": "MIT License",
        "demo-skill/scripts/run.py": "def main():\n    return 'ok'\n",
        "demo-skill/config/settings.yaml": "language: en\n",
        "demo-skill/tests/test_run.py": "def test_main():\n    assert True\n",
        "demo-skill/tests/test_config.py": "def test_config():\n    assert True\n",
        "demo-skill/tests/test_summary.py": "def test_summary():\n    assert True\n",
        "demo-skill/tests/test_fetch.py": "def test_fetch():\n    assert True\n",
        "demo-skill/tests/test_format.py": "def test_format():\n    assert True\n",
    }


@pytest.fixture
def valid_skill_zip(build_zip, valid_skill_files) -> bytes:
    return build_zip(valid_skill_files)


# ===========================================
# DATABASE FIXTURES
# ===========================================


@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Real transactional session on a throwaway in-memory database."""
    factory = async_sessionmaker(
        bind=db_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False,
    )
    async with factory() as session:
        yield session


@pytest_asyncio.fixture
async def criteria_catalog(db_session: AsyncSession) -> int:
    """Seed the default criteria catalog; returns the number of rows."""
    return await seed_criteria(db_session)


# ===========================================
# FACTORIES
# ===========================================


@pytest_asyncio.fixture
async def make_user(db_session: AsyncSession):
    async def _make(role: str = "creator", **overrides: Any) -> User:
        user = User(
            email=overrides.pop("email", f"{uuid4().hex[:8]}@clawforge.test"),
            display_name=overrides.pop("display_name", "Jane Creator"),
            role=role,
            **overrides,
        )
        db_session.add(user)
        await db_session.commit()
        return user
    return _make


@pytest_asyncio.fixture
async def creator(make_user) -> User:
    return await make_user("creator")


@pytest_asyncio.fixture
async def admin(make_user) -> User:
    return await make_user("admin", display_name="Ada Admin")


@pytest_asyncio.fixture
async def make_skill(db_session: AsyncSession, creator: User):
    async def _make(**overrides: Any) -> Skill:
        values: dict[str, Any] = {
            "creator_id": creator.id,
            "title": "Demo skill",
            "status": "pending",
            "certification": "none",
            "file_url": ARCHIVE_URL,
        }
        values.update(overrides)
        skill = Skill(**values)
        db_session.add(skill)
        await db_session.commit()
        return skill
    return _make


# ===========================================
# SERVICE WIRING
# ===========================================


class RecordingSender:
    """EmailSender that keeps every message instead of sending it."""

    def __init__(self):
        self.sent: list[dict[str, str]] = []

    async def send(self, to: str, subject: str, html: str) -> None:
        self.sent.append({"to": to, "subject": subject, "html": html})


@pytest.fixture
def email_sender() -> RecordingSender:
    return RecordingSender()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url="sqlite+aiosqlite://",
        silver_threshold=80,
        rejection_resets_certification=False,
        email_webhook_url=None,
        app_base_url="https://clawforge.test",
    )


@pytest_asyncio.fixture
async def make_service(db_session: AsyncSession, email_sender: RecordingSender, settings: Settings):
    """Build a CertificationService whose archive downloads are served by ``handler``.

    ``archive`` is a shortcut for a handler answering 200 with those bytes.
    """
    clients: list[httpx.AsyncClient] = []

    def _make(
        archive: bytes | None = None,
        handler: Callable[[httpx.Request], httpx.Response] | None = None,
        sender: Any = None,
        **settings_overrides: Any,
    ) -> CertificationService:
        if handler is None:
            def handler(request: httpx.Request) -> httpx.Response:
                return httpx.Response(200, content=archive or b"")
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        clients.append(client)
        svc_settings = settings.model_copy(update=settings_overrides) if settings_overrides else settings
        return CertificationService(
            db_session,
            validator=SkillZipValidator(),
            notifier=CertificationNotifier(sender or email_sender, svc_settings.app_base_url),
            http_client=client,
            settings=svc_settings,
        )

    yield _make
    for client in clients:
        await client.aclose()
