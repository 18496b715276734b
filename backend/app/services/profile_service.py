from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from fastapi import HTTPException

from app.core.config import get_default_categories
from app.core.role_matrix import REVIEWER_ROLE
from app.core.roles import ensure_action, fetch_profile
from app.lib.api_client import supabase_admin
from app.schemas.user import CategoryCreate, ProfileUpsert

logger = logging.getLogger(__name__)

UNKNOWN_NAME = "Unknown"


def display_name(profile: Optional[Dict[str, Any]], fallback: str = UNKNOWN_NAME) -> str:
    """
    "First Last"；无 profile 时依次回退到 email、fallback。
    """
    if not profile:
        return fallback
    name = f"{profile.get('first_name') or ''} {profile.get('last_name') or ''}".strip()
    if name:
        return name
    return str(profile.get("email") or fallback)


def load_profiles(user_ids: Iterable[Optional[str]]) -> Dict[str, Dict[str, Any]]:
    """
    批量读取 profiles，返回 {user_id: profile}（列表页 join 作者/审稿人姓名用）。
    """
    ids = sorted({str(u) for u in user_ids if u})
    if not ids:
        return {}
    res = supabase_admin.table("profiles").select("*").in_("user_id", ids).execute()
    rows = getattr(res, "data", None) or []
    return {str(r["user_id"]): r for r in rows if r.get("user_id")}


class ProfileService:
    """
    profiles / categories 的读写
    """

    def upsert_profile(self, *, user_id: str, email: Optional[str], data: ProfileUpsert) -> Dict[str, Any]:
        """
        按 user_id 创建或覆盖 profile。

        中文注释:
        - 已存在则 patch（保持唯一一条），否则 insert；user_id 上另有唯一索引兜底。
        """
        now = datetime.now(timezone.utc).isoformat()
        fields = {
            "first_name": data.first_name,
            "last_name": data.last_name,
            "affiliation": data.affiliation,
            "expertise": data.expertise,
            "role": data.role,
            "bio": data.bio,
            "updated_at": now,
        }
        if email:
            fields["email"] = email

        existing = fetch_profile(user_id)
        if existing:
            resp = supabase_admin.table("profiles").update(fields).eq("user_id", user_id).execute()
            rows = getattr(resp, "data", None) or []
            logger.info("Profile updated for user=%s role=%s", user_id, data.role)
            return rows[0] if rows else {**existing, **fields}

        payload = {"user_id": user_id, "created_at": now, **fields}
        resp = supabase_admin.table("profiles").insert(payload).execute()
        rows = getattr(resp, "data", None) or []
        logger.info("Profile created for user=%s role=%s", user_id, data.role)
        return rows[0] if rows else payload

    def get_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        return fetch_profile(user_id)

    def list_reviewers(self, expertise: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        role=reviewer 的 profile；expertise 为大小写不敏感的子串匹配（任一标签命中即可）。
        """
        res = supabase_admin.table("profiles").select("*").eq("role", REVIEWER_ROLE).execute()
        reviewers = getattr(res, "data", None) or []

        needle = (expertise or "").strip().lower()
        if not needle:
            return reviewers
        return [
            r for r in reviewers
            if any(needle in str(term or "").lower() for term in (r.get("expertise") or []))
        ]

    # === Categories ===

    def list_categories(self) -> List[Dict[str, Any]]:
        res = supabase_admin.table("categories").select("*").order("name").execute()
        return getattr(res, "data", None) or []

    def seed_categories(self) -> List[Dict[str, Any]]:
        """
        幂等：已有任意分类时直接返回空列表，否则写入默认四个分类。
        """
        existing = supabase_admin.table("categories").select("id").limit(1).execute()
        if getattr(existing, "data", None):
            return []
        res = supabase_admin.table("categories").insert(get_default_categories()).execute()
        rows = getattr(res, "data", None) or []
        logger.info("Seeded %d categories", len(rows))
        return rows

    def create_category(self, *, caller: Dict[str, Any], data: CategoryCreate) -> Dict[str, Any]:
        ensure_action(caller, "category:create", "Only admins can create categories")
        name = data.name.strip()
        if not name:
            raise HTTPException(status_code=422, detail="Category name must not be blank")
        payload = {
            "name": name,
            "description": data.description.strip(),
            "editor_id": data.editor_id,
        }
        res = supabase_admin.table("categories").insert(payload).execute()
        rows = getattr(res, "data", None) or []
        return rows[0] if rows else payload
