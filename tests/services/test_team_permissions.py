# tests/services/test_team_permissions.py

import pytest

from teamhub.models import TeamRole
from teamhub.schemas.team_schemas import TeamSettings
from teamhub.services.permission.team_permissions import (
    can_manage_team, can_invite_members, can_manage_projects, can_view_team,
    can_delete_team, can_remove_members, can_update_member_role, can_assign_role
)

OWNER, ADMIN, MEMBER, VIEWER = TeamRole.OWNER, TeamRole.ADMIN, TeamRole.MEMBER, TeamRole.VIEWER


class TestSingleRoleRules:
    """只依赖操作者角色的规则，对全部角色以及“非成员”(None) 穷举。"""

    @pytest.mark.parametrize("role, expected", [
        (OWNER, True), (ADMIN, True), (MEMBER, False), (VIEWER, False), (None, False),
    ])
    def test_can_manage_team(self, role, expected):
        assert can_manage_team(role) is expected

    @pytest.mark.parametrize("role, expected", [
        (OWNER, True), (ADMIN, True), (MEMBER, True), (VIEWER, False), (None, False),
    ])
    def test_can_manage_projects(self, role, expected):
        assert can_manage_projects(role) is expected

    @pytest.mark.parametrize("role, expected", [
        (OWNER, True), (ADMIN, True), (MEMBER, True), (VIEWER, True), (None, False),
    ])
    def test_can_view_team(self, role, expected):
        assert can_view_team(role) is expected

    @pytest.mark.parametrize("role, expected", [
        (OWNER, True), (ADMIN, False), (MEMBER, False), (VIEWER, False), (None, False),
    ])
    def test_can_delete_team(self, role, expected):
        assert can_delete_team(role) is expected


class TestInviteRule:

    @pytest.mark.parametrize("allow", [True, False])
    @pytest.mark.parametrize("role", [OWNER, ADMIN])
    def test_managers_can_always_invite(self, role, allow):
        assert can_invite_members(role, {"allow_member_invites": allow}) is True

    @pytest.mark.parametrize("allow, expected", [(True, True), (False, False)])
    def test_member_invites_follow_team_setting(self, allow, expected):
        assert can_invite_members(MEMBER, {"allow_member_invites": allow}) is expected

    def test_member_invites_accept_settings_model(self):
        """[边界] 设置既可以是落库的 dict，也可以是 TeamSettings 模型。"""
        assert can_invite_members(MEMBER, TeamSettings(allow_member_invites=True)) is True
        assert can_invite_members(MEMBER, TeamSettings(allow_member_invites=False)) is False

    @pytest.mark.parametrize("settings", [None, {}, {"is_public": True}])
    def test_member_invites_fall_back_to_settings_default(self, settings):
        """[边界] 缺省的 allow_member_invites 与 TeamSettings 的默认值一致。"""
        assert TeamSettings.model_validate(settings or {}).allow_member_invites is True
        assert can_invite_members(MEMBER, settings) is True

    def test_member_with_unparseable_settings_cannot_invite(self):
        assert can_invite_members(MEMBER, {"allow_member_invites": "sometimes"}) is False

    @pytest.mark.parametrize("role", [VIEWER, None])
    def test_viewers_and_outsiders_never_invite(self, role):
        assert can_invite_members(role, {"allow_member_invites": True}) is False


class TestMemberManagementRules:

    @pytest.mark.parametrize("target", list(TeamRole))
    def test_owner_can_remove_anyone(self, target):
        assert can_remove_members(OWNER, target) is True

    @pytest.mark.parametrize("target, expected", [
        (OWNER, False), (ADMIN, False), (MEMBER, True), (VIEWER, True),
    ])
    def test_admin_removal_scope(self, target, expected):
        assert can_remove_members(ADMIN, target) is expected

    @pytest.mark.parametrize("role", [MEMBER, VIEWER, None])
    @pytest.mark.parametrize("target", list(TeamRole))
    def test_others_cannot_remove(self, role, target):
        assert can_remove_members(role, target) is False

    @pytest.mark.parametrize("target", list(TeamRole))
    @pytest.mark.parametrize("new_role", list(TeamRole))
    def test_owner_can_set_any_role(self, target, new_role):
        assert can_update_member_role(OWNER, target, new_role) is True

    @pytest.mark.parametrize("target", list(TeamRole))
    @pytest.mark.parametrize("new_role", list(TeamRole))
    def test_admin_role_updates_never_touch_owner(self, target, new_role):
        expected = target != OWNER and new_role != OWNER
        assert can_update_member_role(ADMIN, target, new_role) is expected

    @pytest.mark.parametrize("role", [MEMBER, VIEWER, None])
    def test_others_cannot_update_roles(self, role):
        assert can_update_member_role(role, VIEWER, MEMBER) is False


class TestAssignableRoles:

    @pytest.mark.parametrize("role, new_role, expected", [
        (OWNER, OWNER, True),
        (ADMIN, OWNER, False),
        (ADMIN, ADMIN, True),
        (ADMIN, VIEWER, True),
        (MEMBER, ADMIN, False),
        (MEMBER, MEMBER, True),
        (MEMBER, VIEWER, True),
        (VIEWER, VIEWER, False),
        (None, MEMBER, False),
    ])
    def test_can_assign_role(self, role, new_role, expected):
        assert can_assign_role(role, new_role) is expected
