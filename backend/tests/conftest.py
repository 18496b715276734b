import os
import sys
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
from uuid import uuid4

import jwt
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

BACKEND_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
TESTS_DIR = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, BACKEND_DIR)
sys.path.insert(0, TESTS_DIR)

from main import app  # noqa: E402
from app.core.auth_utils import DEV_JWT_SECRET  # noqa: E402
from utils.fake_supabase import FakeSupabase  # noqa: E402

# === 全局测试配置 ===
# 中文注释:
# 1. 所有 service 模块都 `from app.lib.api_client import supabase_admin`，
#    因此 fake_db fixture 需要逐个模块替换，而不是只改 api_client。
# 2. JWT 使用与后端相同的密钥签发（未配置时为开发默认值）。

PATCHED_MODULES = (
    "app.core.auth_utils",
    "app.core.roles",
    "app.services.notification_service",
    "app.services.notification_dispatcher",
    "app.services.profile_service",
    "app.services.paper_service",
    "app.services.review_service",
    "app.services.storage_service",
)


@pytest.fixture
def fake_db(monkeypatch: pytest.MonkeyPatch) -> FakeSupabase:
    db = FakeSupabase()
    for module in PATCHED_MODULES:
        monkeypatch.setattr(f"{module}.supabase_admin", db)
    return db


def generate_test_token(
    user_id: str = "00000000-0000-0000-0000-000000000000",
    email: str = "test@example.com",
    *,
    expires_in: timedelta = timedelta(hours=1),
) -> str:
    """
    生成用于测试的 Supabase 风格 JWT（HS256, aud=authenticated）
    """
    secret = os.environ.get("SUPABASE_JWT_SECRET") or DEV_JWT_SECRET
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "email": email,
        "aud": "authenticated",
        "exp": now + expires_in,
        "iat": now - timedelta(minutes=1),
        "role": "authenticated",
    }
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture
def make_profile(fake_db: FakeSupabase) -> Callable[..., str]:
    """
    直接在 fake profiles 表中建档，返回 user_id
    """

    def _make(
        role: Optional[str] = "author",
        *,
        first_name: str = "Test",
        last_name: str = "User",
        expertise: Optional[list[str]] = None,
        user_id: Optional[str] = None,
    ) -> str:
        uid = user_id or str(uuid4())
        if role is not None:
            fake_db.rows("profiles").append(
                {
                    "id": str(uuid4()),
                    "user_id": uid,
                    "email": f"{uid[:8]}@example.com",
                    "first_name": first_name,
                    "last_name": last_name,
                    "affiliation": "Test University",
                    "expertise": expertise or [],
                    "role": role,
                    "bio": None,
                }
            )
        return uid

    return _make


@pytest.fixture
def auth_for() -> Callable[[str], dict]:
    def _headers(user_id: str) -> dict:
        return {"Authorization": f"Bearer {generate_test_token(user_id, f'{user_id[:8]}@example.com')}"}

    return _headers


@pytest.fixture
def client(fake_db: FakeSupabase) -> TestClient:
    return TestClient(app)


@pytest_asyncio.fixture
async def async_client(fake_db: FakeSupabase):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac


@pytest.fixture
def expired_token() -> str:
    return generate_test_token(expires_in=timedelta(hours=-1))
