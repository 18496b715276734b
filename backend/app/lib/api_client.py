import os
from typing import Any, Callable, Optional

from supabase import Client, create_client

from app.core.config import app_config

# 中文注释:
# - 权限在应用层（role_matrix）判定，因此数据读写统一走 service_role client。
# - anon key 只作为缺少 service_role 时的本地兜底。
url: str = app_config.supabase_url
anon_key: str = os.environ.get("SUPABASE_ANON_KEY") or os.environ.get("SUPABASE_KEY") or ""
service_role_key: str = app_config.supabase_key


class _LazySupabaseClient:
    """
    延迟初始化 Supabase Client，保证缺少环境变量时模块仍可导入。

    中文注释:
    - 单元测试会 monkeypatch 各 service 模块里的 `supabase_admin`。
    - 真实运行时，如果缺少 URL/KEY，在第一次访问 client 时抛出清晰错误。
    """

    def __init__(self, factory: Callable[[], Client], *, name: str):
        self._factory = factory
        self._name = name
        self._client: Optional[Client] = None

    def _get(self) -> Client:
        if self._client is None:
            self._client = self._factory()
        return self._client

    def __getattr__(self, item: str) -> Any:
        return getattr(self._get(), item)

    def __repr__(self) -> str:
        state = "ready" if self._client is not None else "pending"
        return f"<LazySupabaseClient {self._name} ({state})>"


def _require_supabase_url() -> str:
    if not url:
        raise RuntimeError("SUPABASE_URL is required")
    return url


def _create_supabase_admin() -> Client:
    key = service_role_key or anon_key
    if not key:
        raise RuntimeError("SUPABASE_SERVICE_ROLE_KEY (or SUPABASE_ANON_KEY) is required")
    return create_client(_require_supabase_url(), key)


# === 服务端 Supabase 客户端（延迟初始化） ===
supabase_admin: Client = _LazySupabaseClient(_create_supabase_admin, name="supabase_admin")  # type: ignore[assignment]
