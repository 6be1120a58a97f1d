# src/teamhub/services/permission/team_permissions.py
"""
Team permission rules.

Pure functions over role values (and team settings where relevant). They never
touch storage and never raise; the service layer turns a ``False`` into a
``PermissionDeniedError``.
"""

from typing import Any, Mapping, Optional, Union

from pydantic import ValidationError

from teamhub.models.identity import TeamRole
from teamhub.schemas.team_schemas import TeamSettings

MANAGER_ROLES = frozenset({TeamRole.OWNER, TeamRole.ADMIN})
CONTRIBUTOR_ROLES = frozenset({TeamRole.OWNER, TeamRole.ADMIN, TeamRole.MEMBER})
ALL_ROLES = frozenset(TeamRole)

SettingsLike = Union[Mapping[str, Any], TeamSettings]


def _allow_member_invites(settings: Optional[SettingsLike]) -> bool:
    # 同时接受 ORM 中的 JSON dict 和 TeamSettings 模型；缺省字段取 TeamSettings 的默认值
    if isinstance(settings, TeamSettings):
        return settings.allow_member_invites
    try:
        return TeamSettings.model_validate(dict(settings or {})).allow_member_invites
    except ValidationError:
        # 无法解析的设置不授予额外权限
        return False


def can_manage_team(role: Optional[TeamRole]) -> bool:
    return role in MANAGER_ROLES


def can_invite_members(role: Optional[TeamRole], settings: Optional[SettingsLike]) -> bool:
    if role in MANAGER_ROLES:
        return True
    return role == TeamRole.MEMBER and _allow_member_invites(settings)


def can_manage_projects(role: Optional[TeamRole]) -> bool:
    return role in CONTRIBUTOR_ROLES


def can_view_team(role: Optional[TeamRole]) -> bool:
    return role in ALL_ROLES


def can_delete_team(role: Optional[TeamRole]) -> bool:
    return role == TeamRole.OWNER


def can_remove_members(role: Optional[TeamRole], target_role: TeamRole) -> bool:
    if role == TeamRole.OWNER:
        return True
    return role == TeamRole.ADMIN and target_role not in MANAGER_ROLES


def can_update_member_role(role: Optional[TeamRole], target_role: TeamRole, new_role: TeamRole) -> bool:
    if role == TeamRole.OWNER:
        return True
    return role == TeamRole.ADMIN and target_role != TeamRole.OWNER and new_role != TeamRole.OWNER


def can_assign_role(role: Optional[TeamRole], new_role: TeamRole) -> bool:
    """Which role an actor may grant when adding or inviting someone."""
    if role == TeamRole.OWNER:
        return True
    if role == TeamRole.ADMIN:
        return new_role != TeamRole.OWNER
    if role == TeamRole.MEMBER:
        return new_role in (TeamRole.MEMBER, TeamRole.VIEWER)
    return False
