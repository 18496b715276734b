import pytest
from fastapi import HTTPException

from app.core import roles as roles_mod


@pytest.mark.asyncio
async def test_get_current_profile_does_not_auto_create(fake_db):
    user = {"id": "u-1", "email": "u@example.com"}
    profile = await roles_mod.get_current_profile(user)
    assert profile is None
    assert fake_db.rows("profiles") == []
    assert ("profiles", "insert") not in fake_db.calls


@pytest.mark.asyncio
async def test_get_caller_carries_role_from_profile(fake_db, make_profile):
    uid = make_profile("editor")
    user = {"id": uid, "email": "e@example.com"}
    profile = await roles_mod.get_current_profile(user)
    caller = await roles_mod.get_caller(user, profile)
    assert caller["id"] == uid
    assert caller["role"] == "editor"
    assert caller["profile"]["user_id"] == uid


def test_build_caller_without_profile_has_no_role():
    caller = roles_mod.build_caller({"id": "u-1", "email": None}, None)
    assert caller == {"id": "u-1", "email": None, "role": None, "profile": None}


def test_ensure_action_raises_403_with_detail():
    caller = roles_mod.build_caller({"id": "u-1"}, {"role": "author"})
    with pytest.raises(HTTPException) as exc:
        roles_mod.ensure_action(caller, "paper:update_status", "Only editors can update paper status")
    assert exc.value.status_code == 403
    assert exc.value.detail == "Only editors can update paper status"

    editor = roles_mod.build_caller({"id": "e-1"}, {"role": "editor"})
    roles_mod.ensure_action(editor, "paper:update_status")


@pytest.mark.asyncio
async def test_require_action_dependency():
    dep = roles_mod.require_action("category:create")
    admin = roles_mod.build_caller({"id": "a-1"}, {"role": "admin"})
    assert await dep(admin) is admin

    with pytest.raises(HTTPException) as exc:
        await dep(roles_mod.build_caller({"id": "e-1"}, {"role": "editor"}))
    assert exc.value.status_code == 403
