from app.core.role_matrix import can_perform_action, list_allowed_actions, normalize_roles


def test_normalize_roles_accepts_single_role_string() -> None:
    assert normalize_roles(" Editor ") == {"editor"}
    assert normalize_roles(None) == set()
    assert normalize_roles(["reviewer", "", None, "ADMIN"]) == {"reviewer", "admin"}


def test_admin_has_global_action_access() -> None:
    assert can_perform_action(action="category:create", roles="admin") is True
    assert can_perform_action(action="unknown:anything", roles="admin") is True


def test_editor_can_manage_papers_but_not_categories() -> None:
    for action in ("paper:update_status", "paper:record_decision", "review:assign", "reviewer:list"):
        assert can_perform_action(action=action, roles="editor") is True
    assert can_perform_action(action="category:create", roles="editor") is False


def test_author_and_reviewer_cannot_update_status() -> None:
    assert can_perform_action(action="paper:update_status", roles="author") is False
    assert can_perform_action(action="paper:update_status", roles="reviewer") is False
    assert can_perform_action(action="review:assign", roles="reviewer") is False


def test_missing_profile_is_denied_everything() -> None:
    assert can_perform_action(action="paper:view_all", roles=None) is False
    assert can_perform_action(action="paper:view_all", roles="") is False


def test_list_allowed_actions() -> None:
    assert list_allowed_actions("admin") == {"*"}
    # 投稿、审稿响应等只需登录，不在矩阵里
    assert list_allowed_actions("reviewer") == set()
    assert list_allowed_actions("author") == set()
    editor = list_allowed_actions("editor")
    assert "review:assign" in editor
    assert "category:create" not in editor
