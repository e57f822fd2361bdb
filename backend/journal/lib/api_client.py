from typing import Any, Callable, Optional

from supabase import Client, create_client

from journal.core.config import app_config


class _LazySupabaseClient:
    """
    首次访问属性时才创建 Supabase Client。

    中文注释:
    - 缺少 SUPABASE_URL / KEY 时模块仍可导入（测试会整体替换 supabase / supabase_admin）。
    - 真实运行时第一次访问才抛出缺配置的 RuntimeError。
    """

    def __init__(self, factory: Callable[[], Client], *, name: str):
        self._factory = factory
        self._name = name
        self._client: Optional[Client] = None

    def __getattr__(self, item: str) -> Any:
        if self._client is None:
            self._client = self._factory()
        return getattr(self._client, item)

    def __repr__(self) -> str:
        state = "ready" if self._client is not None else "lazy"
        return f"<LazySupabaseClient {self._name} ({state})>"


def _client_factory(*keys: str, missing: str) -> Callable[[], Client]:
    def factory() -> Client:
        if not app_config.supabase_url:
            raise RuntimeError("SUPABASE_URL is required")
        key = next((k for k in keys if k), "")
        if not key:
            raise RuntimeError(f"{missing} is required")
        return create_client(app_config.supabase_url, key)

    return factory


# === Auth 登录/注册/刷新：anon key ===
supabase: Client = _LazySupabaseClient(  # type: ignore[assignment]
    _client_factory(app_config.supabase_anon_key, missing="SUPABASE_ANON_KEY or SUPABASE_KEY"),
    name="supabase",
)

# === 表读写与 Storage：service role（缺省时回退 anon key） ===
supabase_admin: Client = _LazySupabaseClient(  # type: ignore[assignment]
    _client_factory(
        app_config.supabase_key,
        app_config.supabase_anon_key,
        missing="SUPABASE_SERVICE_ROLE_KEY (or SUPABASE_KEY)",
    ),
    name="supabase_admin",
)


def get_supabase() -> Client:
    """
    调用时读取模块全局变量（而不是 import 时绑定），使测试 monkeypatch 对所有调用方生效。
    """
    return supabase


def get_supabase_admin() -> Client:
    return supabase_admin
