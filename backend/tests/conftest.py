import os
import sys
from datetime import timedelta
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from main import app  # noqa: E402
from journal.core import mail  # noqa: E402
from journal.core.auth import SUPABASE_JWT_SECRET  # noqa: E402
from journal.lib import api_client  # noqa: E402
from tests.utils.factories import generate_test_token, make_user, token_for  # noqa: E402
from tests.utils.fake_supabase import FakeSupabase  # noqa: E402

# === 全局测试配置 ===
# 中文注释:
# 1. 所有测试都跑在内存 FakeSupabase 上，不访问真实数据库/Storage/Auth。
# 2. 显式使用 pytest_asyncio.fixture + @pytest.mark.asyncio（STRICT 模式）。
# 3. JWT 令牌用与后端相同的 secret 签名，后端再按 users 表补齐角色。


@pytest.fixture
def fake_db(monkeypatch) -> FakeSupabase:
    """
    替换 journal.lib.api_client 中的 supabase / supabase_admin
    """
    db = FakeSupabase(jwt_secret=SUPABASE_JWT_SECRET)
    monkeypatch.setattr(api_client, "supabase", db)
    monkeypatch.setattr(api_client, "supabase_admin", db)
    # 邮件一律走“未配置 provider”分支，只写 email_logs
    monkeypatch.setattr(mail.email_service, "smtp_config", None)
    monkeypatch.setattr(mail.email_service, "resend_config", None)
    return db


@pytest_asyncio.fixture
async def client(fake_db) -> AsyncGenerator:
    """
    提供一个模拟的异步测试客户端
    """
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac


@pytest.fixture
def users(fake_db):
    """
    每种角色各一个账号：{"author": {...}, "reviewer": {...}, "editor": {...}, "admin": {...}}
    """
    return {role: make_user(fake_db, role) for role in ("author", "reviewer", "editor", "admin")}


@pytest.fixture
def tokens(users):
    return {role: token_for(user) for role, user in users.items()}


@pytest.fixture
def expired_token(users):
    """
    提供过期的认证令牌用于测试
    """
    return generate_test_token(users["author"]["id"], expires_in=timedelta(hours=-1))


@pytest.fixture
def invalid_token():
    """
    提供无效的认证令牌用于测试
    """
    return "invalid.jwt.token"
