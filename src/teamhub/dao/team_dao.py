from datetime import datetime
from typing import List, Optional
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from teamhub.dao.base_dao import BaseDao
from teamhub.models.identity import Team, TeamMember, TeamInvitation, TeamRole, Profile

class TeamDao(BaseDao[Team]):
    def __init__(self, db_session: AsyncSession):
        super().__init__(Team, db_session)

    async def get_all_for_user(self, user_id: str) -> List[Team]:
        """获取一个用户作为成员所在的所有团队，最新创建的在前。"""
        stmt = (
            select(Team)
            .join(TeamMember, Team.id == TeamMember.team_id)
            .where(TeamMember.user_id == user_id)
            .order_by(Team.created_at.desc())
        )
        result = await self.db_session.execute(stmt)
        return list(result.scalars().all())

class TeamMemberDao(BaseDao[TeamMember]):
    def __init__(self, db_session: AsyncSession):
        super().__init__(TeamMember, db_session)

    async def get_membership(self, team_id: str, user_id: str, with_user: bool = False) -> Optional[TeamMember]:
        return await self.get_one(
            where={"team_id": team_id, "user_id": user_id},
            withs=["user"] if with_user else None
        )

    async def get_members_by_team_id(self, team_id: str) -> List[TeamMember]:
        """获取一个团队的所有成员，并预加载用户资料，按加入时间升序。"""
        stmt = (
            select(TeamMember)
            .where(TeamMember.team_id == team_id)
            .options(joinedload(TeamMember.user))
            .order_by(TeamMember.joined_at.asc())
        )
        result = await self.db_session.execute(stmt)
        return list(result.scalars().all())

    async def count_by_role(self, team_id: str) -> dict[TeamRole, int]:
        stmt = (
            select(TeamMember.role, func.count(TeamMember.id))
            .where(TeamMember.team_id == team_id)
            .group_by(TeamMember.role)
        )
        result = await self.db_session.execute(stmt)
        return {role: count for role, count in result.all()}

    async def exists_with_email(self, team_id: str, email: str) -> bool:
        """通过 profiles 判断某个邮箱是否已经是团队成员。"""
        stmt = (
            select(func.count(TeamMember.id))
            .join(Profile, Profile.id == TeamMember.user_id)
            .where(TeamMember.team_id == team_id, func.lower(Profile.email) == email.lower())
        )
        result = await self.db_session.execute(stmt)
        return (result.scalar() or 0) > 0

class InvitationDao(BaseDao[TeamInvitation]):
    def __init__(self, db_session: AsyncSession):
        super().__init__(TeamInvitation, db_session)

    def _pending(self, now: datetime) -> list:
        return [TeamInvitation.accepted_at.is_(None), TeamInvitation.expires_at > now]

    async def get_pending_for_team(self, team_id: str, now: datetime) -> List[TeamInvitation]:
        return await self.get_list(
            where=[TeamInvitation.team_id == team_id, *self._pending(now)],
            withs=["team", "inviter"],
            order=[TeamInvitation.created_at.desc()],
        )

    async def get_pending_for_email(self, email: str, now: datetime) -> List[TeamInvitation]:
        return await self.get_list(
            where=[TeamInvitation.email == email, *self._pending(now)],
            withs=["team", "inviter"],
            order=[TeamInvitation.created_at.desc()],
        )

    async def count_pending_for_team(self, team_id: str, now: datetime) -> int:
        return await self.count(where=[TeamInvitation.team_id == team_id, *self._pending(now)])

    async def mark_accepted(self, invitation_id: str, accepted_at: datetime) -> bool:
        """
        Compare-and-set: 仅当 accepted_at 仍为空时写入。
        返回 False 表示另一个请求已经抢先接受了这份邀请。
        """
        rowcount = await self.update_where(
            where=[TeamInvitation.id == invitation_id, TeamInvitation.accepted_at.is_(None)],
            values={"accepted_at": accepted_at},
        )
        return rowcount == 1
