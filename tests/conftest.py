from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from mindfulness.core.security import create_access_token
from mindfulness.db.mongo import get_database
from mindfulness.main import create_app

USER_ID = "64b7f0c2a1b2c3d4e5f60718"
OTHER_USER_ID = "64b7f0c2a1b2c3d4e5f60719"
ADMIN_ID = "64b7f0c2a1b2c3d4e5f6071a"


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def cursor_of(docs):
    """Motor cursor stand-in: chainable sort/skip/limit, awaitable to_list."""
    cur = MagicMock(name="cursor")
    cur.sort.return_value = cur
    cur.skip.return_value = cur
    cur.limit.return_value = cur
    cur.to_list = AsyncMock(return_value=list(docs))
    return cur


@pytest.fixture
def mock_db():
    return MagicMock(name="db")


@pytest.fixture
def app(mock_db):
    application = create_app()
    application.dependency_overrides[get_database] = lambda: mock_db
    return application


@pytest.fixture
async def client(app):
    # 500 responses are asserted on, not re-raised
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def user_headers():
    return bearer(create_access_token(USER_ID, "alice"))


@pytest.fixture
def admin_headers():
    return bearer(create_access_token(ADMIN_ID, "root", is_admin=True))


@pytest.fixture
def expired_headers():
    return bearer(create_access_token(USER_ID, "alice", expires_delta=timedelta(minutes=-5)))
