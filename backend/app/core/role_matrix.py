from __future__ import annotations

from typing import Iterable

# 中文注释：
# - 这里集中定义“角色 -> 动作”权限矩阵，避免 editor/admin 判断散落在各个 service。
# - 每个 profile 只有一个 role；接口同时接受单个角色或角色集合。
# - 仅需登录即可执行的操作（投稿、修回、审稿响应、标记通知已读等）不经过此矩阵，
#   其归属校验（本人稿件/本人审稿任务）由 service 负责。

ADMIN_ROLE = "admin"
EDITOR_ROLE = "editor"
REVIEWER_ROLE = "reviewer"
AUTHOR_ROLE = "author"

ROLE_ACTIONS: dict[str, set[str]] = {
    AUTHOR_ROLE: set(),
    REVIEWER_ROLE: set(),
    EDITOR_ROLE: {
        "paper:view_all",
        "paper:update_status",
        "paper:override_status",
        "paper:record_decision",
        "review:assign",
        "reviewer:list",
    },
    ADMIN_ROLE: {
        "*",
    },
}


def normalize_roles(roles: str | Iterable[str] | None) -> set[str]:
    """
    将输入角色归一化（小写、去空）。单个字符串视为一个角色。
    """
    if roles is None:
        return set()
    if isinstance(roles, str):
        roles = [roles]
    out: set[str] = set()
    for raw in roles:
        role = str(raw or "").strip().lower()
        if not role:
            continue
        out.add(role)
    return out


def can_perform_action(*, action: str, roles: str | Iterable[str] | None) -> bool:
    """
    判定角色是否可执行某动作。

    中文注释：
    - admin 拥有全局通配权限；
    - 其余角色按 ROLE_ACTIONS 显式授权；未知角色/无 profile 一律拒绝。
    """
    normalized = normalize_roles(roles)
    if ADMIN_ROLE in normalized:
        return True

    for role in normalized:
        allowed = ROLE_ACTIONS.get(role) or set()
        if "*" in allowed or action in allowed:
            return True
    return False


def list_allowed_actions(roles: str | Iterable[str] | None) -> set[str]:
    """
    返回当前角色可执行动作集合（用于前端按角色渲染 tab）。
    """
    normalized = normalize_roles(roles)
    if ADMIN_ROLE in normalized:
        return {"*"}

    actions: set[str] = set()
    for role in normalized:
        actions.update(ROLE_ACTIONS.get(role) or set())
    return actions
