# src/teamhub/services/identity/team_service.py

import logging
from typing import List, Optional
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from teamhub.core.context import AppContext
from teamhub.models import Team, TeamMember, TeamRole
from teamhub.dao.team_dao import TeamDao, TeamMemberDao, InvitationDao
from teamhub.schemas.team_schemas import (
    TeamRead, TeamCreate, TeamUpdate, TeamMemberRead, TeamSettingsUpdate, TeamStatsRead
)
from teamhub.services.base_service import BaseService
from teamhub.services.auditing.activity_logger import ActivityLogger
from teamhub.services.exceptions import (
    NotFoundError, DuplicateMemberError, OwnershipError, PermissionDeniedError, StorageError
)
from teamhub.services.permission.team_permissions import (
    can_manage_team, can_view_team, can_delete_team, can_remove_members,
    can_update_member_role, can_assign_role
)
from teamhub.utils.id_generator import utc_now

logger = logging.getLogger(__name__)

class TeamService(BaseService):
    def __init__(self, context: AppContext):
        self.context = context
        self.db = context.db
        self.team_dao = TeamDao(context.db)
        self.member_dao = TeamMemberDao(context.db)
        self.invitation_dao = InvitationDao(context.db)
        self.activity = ActivityLogger(context)

    # --- Public DTO-returning "Wrapper" Methods ---
    async def create_team(self, team_data: TeamCreate) -> TeamRead:
        """创建新团队（当前用户成为 owner）并返回DTO"""
        new_team = await self._create_team(team_data)
        return TeamRead.model_validate(new_team)

    async def get_team(self, team_id: str) -> TeamRead:
        team = await self._get_visible_team(team_id)
        return TeamRead.model_validate(team)

    async def list_teams_for_user(self, user_id: Optional[str] = None) -> List[TeamRead]:
        """获取用户所属的所有团队，最新的在前"""
        actor = self.context.actor
        if user_id is not None and user_id != actor.id:
            raise PermissionDeniedError("You can only list your own teams.")
        teams = await self.team_dao.get_all_for_user(actor.id)
        return [TeamRead.model_validate(t) for t in teams]

    async def update_team(self, team_id: str, patch: TeamUpdate) -> TeamRead:
        team = await self._update_team(team_id, patch)
        return TeamRead.model_validate(team)

    async def delete_team(self, team_id: str) -> None:
        await self._delete_team(team_id)

    async def list_members(self, team_id: str) -> List[TeamMemberRead]:
        """获取团队成员列表（附带用户资料），按加入时间升序"""
        team = await self._get_team_or_404(team_id)
        role = await self._get_actor_role(team.id)
        self._ensure(can_view_team(role), "view this team's members")
        members = await self.member_dao.get_members_by_team_id(team.id)
        return [TeamMemberRead.model_validate(m) for m in members]

    async def add_member(
        self, team_id: str, user_id: str, role: TeamRole, invited_by: Optional[str] = None
    ) -> TeamMemberRead:
        team = await self._get_team_or_404(team_id)
        actor_role = await self._get_actor_role(team.id)
        self._ensure(can_manage_team(actor_role), "add members to this team")
        self._ensure(can_assign_role(actor_role, role), f"grant the '{role.value}' role")
        member = await self._add_member(team, user_id, role, invited_by or self.context.actor.id)
        return TeamMemberRead.model_validate(member)

    async def update_member_role(self, team_id: str, user_id: str, new_role: TeamRole) -> TeamMemberRead:
        member = await self._update_member_role(team_id, user_id, new_role)
        return TeamMemberRead.model_validate(member)

    async def remove_member(self, team_id: str, user_id: str) -> None:
        await self._remove_member(team_id, user_id)

    async def get_team_stats(self, team_id: str) -> TeamStatsRead:
        team = await self._get_team_or_404(team_id)
        role = await self._get_actor_role(team.id)
        self._ensure(can_view_team(role), "view this team")

        by_role = await self.member_dao.count_by_role(team.id)
        pending = await self.invitation_dao.count_pending_for_team(team.id, utc_now())
        return TeamStatsRead(
            total_members=sum(by_role.values()),
            members_by_role={r: by_role.get(r, 0) for r in TeamRole},
            pending_invitations=pending,
        )

    # --- Internal ORM-returning "Workhorse" Methods ---
    async def _get_team_or_404(self, team_id: str) -> Team:
        team = await self.team_dao.get_by_pk(team_id)
        if not team:
            raise NotFoundError("Team not found.")
        return team

    async def _get_visible_team(self, team_id: str) -> Team:
        team = await self._get_team_or_404(team_id)
        if (team.settings or {}).get("is_public"):
            return team
        role = await self._get_actor_role(team.id)
        self._ensure(can_view_team(role), "view this team")
        return team

    async def _create_team(self, team_data: TeamCreate) -> Team:
        """
        创建团队并同时写入 owner 成员关系。
        两条记录在同一个 flush 中提交，任一失败则整个请求事务回滚，
        因此不会出现没有 owner 成员的团队。
        """
        actor = self.context.actor
        team_settings = (team_data.settings or TeamSettingsUpdate()).merge_into(None)

        new_team = Team(
            name=team_data.name,
            description=team_data.description,
            owner_id=actor.id,
            settings=team_settings.model_dump(mode="json"),
        )
        owner_membership = TeamMember(
            team=new_team,
            user_id=actor.id,
            role=TeamRole.OWNER,
        )
        self.db.add_all([new_team, owner_membership])
        await self._flush("create team")

        logger.info("Team %s created by %s", new_team.id, actor.id)
        self.activity.log(
            "team_created", "team", new_team.id,
            team_id=new_team.id, metadata={"name": new_team.name}
        )
        return new_team

    async def _update_team(self, team_id: str, patch: TeamUpdate) -> Team:
        team = await self._get_team_or_404(team_id)
        role = await self._get_actor_role(team.id)
        self._ensure(can_manage_team(role), "update this team")

        changes = patch.model_dump(exclude_unset=True)
        for field in ("name", "description", "avatar_url"):
            if field not in changes:
                continue
            if field == "name" and changes[field] is None:
                continue
            setattr(team, field, changes[field])
        if patch.settings is not None:
            # 赋值新 dict，保证 JSON 列被识别为已修改
            team.settings = patch.settings.merge_into(team.settings).model_dump(mode="json")
        team.updated_at = utc_now()
        await self._flush("update team")

        self.activity.log(
            "team_updated", "team", team.id,
            team_id=team.id, metadata={"changes": sorted(changes)}
        )
        return team

    async def _delete_team(self, team_id: str) -> None:
        """删除团队（高危操作），成员与邀请一并清理。"""
        team = await self._get_team_or_404(team_id)
        role = await self._get_actor_role(team.id)
        self._ensure(can_delete_team(role), "delete this team")

        team_name = team.name
        try:
            await self.invitation_dao.delete_where({"team_id": team.id})
            await self.member_dao.delete_where({"team_id": team.id})
            await self.team_dao.delete_where({"id": team.id})
        except SQLAlchemyError as e:
            raise StorageError("Failed to delete team: storage is unavailable.") from e
        self.db.expunge(team)

        logger.info("Team %s deleted by %s", team_id, self.context.actor.id)
        self.activity.log("team_deleted", "team", team_id, team_id=team_id, metadata={"name": team_name})

    async def _add_member(
        self, team: Team, user_id: str, role: TeamRole, invited_by: Optional[str] = None
    ) -> TeamMember:
        """插入成员关系（不做权限检查，调用方负责）。"""
        existing = await self.member_dao.get_membership(team.id, user_id)
        if existing:
            raise DuplicateMemberError("User is already a member of this team.")

        member = TeamMember(team_id=team.id, user_id=user_id, role=role, invited_by=invited_by)
        self.db.add(member)
        try:
            await self.db.flush()
        except IntegrityError as e:
            # 唯一约束 (team_id, user_id) 在并发插入时兜底
            raise DuplicateMemberError("User is already a member of this team.") from e
        except SQLAlchemyError as e:
            raise StorageError("Failed to add member: storage is unavailable.") from e

        self.activity.log(
            "member_added", "team_member", member.id,
            team_id=team.id, metadata={"user_id": user_id, "role": role.value}
        )
        # 显式加载只读的 user 关系，供 DTO 展示
        await self.db.refresh(member, attribute_names=["user"])
        return member

    async def _get_member_or_404(self, team: Team, user_id: str) -> TeamMember:
        member = await self.member_dao.get_membership(team.id, user_id, with_user=True)
        if not member:
            raise NotFoundError("Team membership record not found.")
        return member

    async def _update_member_role(self, team_id: str, user_id: str, new_role: TeamRole) -> TeamMember:
        team = await self._get_team_or_404(team_id)
        actor_role = await self._get_actor_role(team.id)
        member = await self._get_member_or_404(team, user_id)

        self._ensure(
            can_update_member_role(actor_role, member.role, new_role),
            f"change this member's role to '{new_role.value}'"
        )
        # [关键业务规则] 不支持所有权转移，owner 本人不能被降级
        if member.user_id == team.owner_id and new_role != TeamRole.OWNER:
            raise OwnershipError("Cannot change the role of the team owner.")

        old_role = member.role
        if old_role == new_role:
            return member

        member.role = new_role
        await self._flush("update member role")

        self.activity.log(
            "member_role_updated", "team_member", member.id,
            team_id=team.id,
            metadata={"user_id": user_id, "old_role": old_role.value, "new_role": new_role.value}
        )
        return member

    async def _remove_member(self, team_id: str, user_id: str) -> None:
        team = await self._get_team_or_404(team_id)
        actor_role = await self._get_actor_role(team.id)
        member = await self._get_member_or_404(team, user_id)

        self._ensure(can_remove_members(actor_role, member.role), "remove this member")
        # [关键业务规则] 不能移除团队所有者，团队因此永远保有它的 owner
        if member.user_id == team.owner_id:
            raise OwnershipError("Cannot remove the team owner.")

        member_id, member_role = member.id, member.role
        await self.db.delete(member)
        await self._flush("remove member")

        self.activity.log(
            "member_removed", "team_member", member_id,
            team_id=team.id, metadata={"user_id": user_id, "role": member_role.value}
        )
