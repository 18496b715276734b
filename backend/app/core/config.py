import os
from dataclasses import dataclass
from typing import Optional


def _env_bool(key: str, default: bool) -> bool:
    raw = os.environ.get(key)
    if raw is None:
        return default
    lowered = raw.strip().lower()
    return lowered in {"1", "true", "yes", "y", "on"}


def _env_int(key: str, default: int) -> int:
    raw = (os.environ.get(key) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class AppConfig:
    """
    Application Environment Config
    """
    env: str  # 'development', 'staging', 'production'
    is_staging: bool
    supabase_url: str
    supabase_key: str

    @staticmethod
    def from_env() -> "AppConfig":
        env = (os.environ.get("APP_ENV") or "development").strip().lower()
        is_staging = env == "staging"

        # Staging 与生产共用变量名，由部署平台注入不同的 SUPABASE_URL。
        supabase_url = (os.environ.get("SUPABASE_URL") or "").strip()
        supabase_key = (os.environ.get("SUPABASE_SERVICE_ROLE_KEY") or "").strip()

        return AppConfig(
            env=env,
            is_staging=is_staging,
            supabase_url=supabase_url,
            supabase_key=supabase_key
        )

# Global Config Instance
app_config = AppConfig.from_env()


@dataclass(frozen=True)
class StorageConfig:
    """
    稿件 PDF 存储配置（Supabase Storage）

    中文注释:
    1) file_id 即 bucket 内的对象路径，读取时再换成 signed url。
    2) 上传大小/类型限制由前端校验，这里只把限制回传给前端展示。
    """

    bucket: str
    signed_url_ttl: int
    max_upload_bytes: int
    allowed_content_type: str

    @staticmethod
    def from_env() -> "StorageConfig":
        bucket = (os.environ.get("PAPER_STORAGE_BUCKET") or "papers").strip()
        ttl = _env_int("PAPER_SIGNED_URL_TTL", 3600)
        if ttl <= 0:
            ttl = 3600
        max_mb = _env_int("PAPER_MAX_UPLOAD_MB", 10)
        if max_mb <= 0:
            max_mb = 10
        return StorageConfig(
            bucket=bucket,
            signed_url_ttl=ttl,
            max_upload_bytes=max_mb * 1024 * 1024,
            allowed_content_type="application/pdf",
        )


@dataclass(frozen=True)
class SentryConfig:
    """
    Sentry 错误上报配置

    中文注释:
    - 未配置 SENTRY_DSN 时视为关闭，本地/测试环境不需要任何设置。
    """

    enabled: bool
    dsn: Optional[str]
    environment: str
    traces_sample_rate: float

    @staticmethod
    def from_env() -> "SentryConfig":
        dsn = (os.environ.get("SENTRY_DSN") or "").strip() or None
        enabled = _env_bool("SENTRY_ENABLED", dsn is not None)
        environment = (
            os.environ.get("SENTRY_ENVIRONMENT") or os.environ.get("APP_ENV") or "development"
        ).strip()

        rate_raw = (os.environ.get("SENTRY_TRACES_SAMPLE_RATE") or "0.0").strip()
        try:
            traces_sample_rate = float(rate_raw)
        except ValueError:
            traces_sample_rate = 0.0

        return SentryConfig(
            enabled=enabled,
            dsn=dsn,
            environment=environment,
            traces_sample_rate=traces_sample_rate,
        )


def get_default_categories() -> list[dict[str, str]]:
    """
    首次初始化时写入的期刊分类（seed_categories 使用）
    """
    return [
        {"name": "Computer Science", "description": "General CS research"},
        {"name": "Machine Learning", "description": "ML and AI research"},
        {"name": "Software Engineering", "description": "Software development"},
        {"name": "Data Science", "description": "Data analysis research"},
    ]


DEFAULT_FRONTEND_ORIGIN = "http://localhost:5173"


def frontend_origins() -> list[str]:
    """
    CORS 允许的前端来源：FRONTEND_ORIGIN 与 FRONTEND_ORIGINS（逗号分隔）合并去重，
    均未配置时只放行本地 Vite 开发服务器。
    """
    raw = ",".join(
        os.environ.get(key) or "" for key in ("FRONTEND_ORIGIN", "FRONTEND_ORIGINS")
    )
    origins = [o.strip().rstrip("/") for o in raw.split(",") if o.strip()]
    return list(dict.fromkeys(origins)) or [DEFAULT_FRONTEND_ORIGIN]
