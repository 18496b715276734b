from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional
from uuid import uuid4

from app.core.config import StorageConfig
from app.lib.api_client import supabase_admin

logger = logging.getLogger(__name__)


def _normalize_signed_url(resp: object) -> str | None:
    if not isinstance(resp, dict):
        return None
    return str(resp.get("signedUrl") or resp.get("signedURL") or resp.get("signed_url") or "") or None


@dataclass(frozen=True)
class UploadTarget:
    upload_url: str
    file_id: str
    token: str | None
    max_bytes: int
    content_type: str


def build_object_path(user_id: str) -> str:
    """
    稿件对象路径：<user_id>/<yyyymmdd>/<uuid>.pdf
    """
    day = datetime.now(timezone.utc).strftime("%Y%m%d")
    return f"{user_id}/{day}/{uuid4().hex}.pdf"


def create_upload_target(*, user_id: str, config: Optional[StorageConfig] = None) -> UploadTarget:
    """
    两步上传的第一步：签发直传 URL，返回 file_id（对象路径）供投稿时回传。
    """
    cfg = config or StorageConfig.from_env()
    path = build_object_path(user_id)
    signed = supabase_admin.storage.from_(cfg.bucket).create_signed_upload_url(path)
    url = _normalize_signed_url(signed)
    if not url:
        raise RuntimeError("Failed to create signed upload url")
    token = signed.get("token") if isinstance(signed, dict) else None
    return UploadTarget(
        upload_url=url,
        file_id=path,
        token=token,
        max_bytes=cfg.max_upload_bytes,
        content_type=cfg.allowed_content_type,
    )


def resolve_file_url(file_id: Optional[str], *, config: Optional[StorageConfig] = None) -> Optional[str]:
    """
    file_id -> signed url；无文件或签名失败时返回 None（列表页不因单个文件失败而整体报错）。
    """
    if not file_id:
        return None
    cfg = config or StorageConfig.from_env()
    try:
        signed = supabase_admin.storage.from_(cfg.bucket).create_signed_url(file_id, cfg.signed_url_ttl)
    except Exception as e:
        logger.warning("Failed to sign file url for %s: %s", file_id, e)
        return None
    return _normalize_signed_url(signed)


def resolve_file_urls(file_ids: Iterable[Optional[str]]) -> dict[str, Optional[str]]:
    cfg = StorageConfig.from_env()
    out: dict[str, Optional[str]] = {}
    for file_id in file_ids:
        if file_id and file_id not in out:
            out[file_id] = resolve_file_url(file_id, config=cfg)
    return out
