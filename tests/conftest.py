"""
Pytest Configuration and Fixtures
Shared fixtures and configuration for all tests
"""

import os
import uuid
from typing import Callable
from unittest.mock import AsyncMock, MagicMock

# Settings are read at import time
os.environ.setdefault("SECRET_KEY", "test-secret-key-that-is-at-least-32-characters")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from sharegate.core.rate_limit import RateLimiter
from sharegate.core.security import create_access_token
from sharegate.db.session import create_engine_for, create_session_maker, create_tables
from sharegate.models.auth import Principal
from sharegate.services.container import build_services

WATERMARKED_BYTES = b"%PDF-1.4 watermarked"
SAMPLE_PDF = b"%PDF-1.4\n1 0 obj\n<<\n/Type /Catalog\n/Pages 2 0 R\n>>\nendobj\n"


# ============================================
# PYTEST CONFIGURATION
# ============================================

def pytest_collection_modifyitems(config, items):
    """Add default markers based on test file path"""
    for item in items:
        if "/unit/" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


# ============================================
# DATABASE FIXTURES
# ============================================

@pytest_asyncio.fixture
async def engine(tmp_path):
    """Fresh SQLite database per test"""
    db_engine = create_engine_for(f"sqlite+aiosqlite:///{tmp_path / 'sharegate.db'}")
    await create_tables(db_engine)
    yield db_engine
    await db_engine.dispose()


@pytest.fixture
def session_maker(engine):
    return create_session_maker(engine)


# ============================================
# COLLABORATOR DOUBLES
# ============================================

@pytest.fixture
def storage():
    """Object storage double"""
    mock = MagicMock()
    mock.put_object = AsyncMock(side_effect=lambda path, data, content_type: path)
    mock.get_signed_url = AsyncMock(
        side_effect=lambda path, ttl_seconds: f"https://storage.test/{path}?ttl={ttl_seconds}"
    )
    mock.remove_object = AsyncMock(return_value=None)
    return mock


@pytest.fixture
def transform():
    """Watermark transform double"""
    mock = MagicMock()
    mock.apply = AsyncMock(return_value=WATERMARKED_BYTES)
    return mock


@pytest.fixture
def services(session_maker, storage, transform):
    return build_services(
        session_maker,
        storage,
        transform,
        activation_limiter=RateLimiter(max_requests=1000, window_seconds=60, name="test"),
    )


@pytest.fixture
def sample_pdf() -> bytes:
    return SAMPLE_PDF


# ============================================
# PRINCIPALS
# ============================================

@pytest.fixture
def make_principal() -> Callable[..., Principal]:
    def _make(email: str, session_id: str = None) -> Principal:
        return Principal(
            id=uuid.uuid4(),
            email=email,
            session_id=session_id or uuid.uuid4().hex,
        )

    return _make


@pytest.fixture
def owner(make_principal) -> Principal:
    return make_principal("owner@example.com")


@pytest.fixture
def alice(make_principal) -> Principal:
    return make_principal("a@x.com")


@pytest.fixture
def bob(make_principal) -> Principal:
    return make_principal("b@y.com")


# ============================================
# HTTP CLIENT FIXTURES
# ============================================

def auth_headers(principal: Principal) -> dict:
    token = create_access_token(
        {"sub": str(principal.id), "email": principal.email, "sid": principal.session_id}
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers_for() -> Callable[[Principal], dict]:
    return auth_headers


@pytest_asyncio.fixture
async def client(services):
    """ASGI client against the app wired to the test services"""
    from sharegate.main import app

    app.state.services = services
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.state.services = None
