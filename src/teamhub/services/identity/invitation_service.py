# src/teamhub/services/identity/invitation_service.py

import logging
from datetime import timedelta
from typing import List, Optional
from sqlalchemy.orm.attributes import set_committed_value

from teamhub.core.config import settings
from teamhub.core.context import AppContext
from teamhub.models import TeamInvitation, TeamMember
from teamhub.dao.team_dao import InvitationDao, TeamMemberDao
from teamhub.schemas.team_schemas import InvitationCreate, InvitationRead, TeamMemberRead
from teamhub.services.base_service import BaseService
from teamhub.services.identity.team_service import TeamService
from teamhub.services.auditing.activity_logger import ActivityLogger
from teamhub.services.exceptions import (
    NotFoundError, DuplicateMemberError, PermissionDeniedError,
    InvitationExpiredError, InvitationStateError
)
from teamhub.services.permission.team_permissions import can_invite_members, can_assign_role
from teamhub.utils.id_generator import utc_now

logger = logging.getLogger(__name__)

def normalize_email(email: str) -> str:
    return email.strip().lower()

class InvitationService(BaseService):
    """
    邀请的创建、列出、接受与拒绝。
    状态机: Pending -> Accepted (accept) | Removed (decline) | Expired (隐式，仅从待处理列表中消失)。
    """
    def __init__(self, context: AppContext):
        self.context = context
        self.db = context.db
        self.invitation_dao = InvitationDao(context.db)
        self.member_dao = TeamMemberDao(context.db)
        self.team_service = TeamService(context)
        self.activity = ActivityLogger(context)

    # --- Public DTO-returning "Wrapper" Methods ---
    async def invite(self, team_id: str, invite_data: InvitationCreate) -> InvitationRead:
        invitation = await self._invite(team_id, invite_data)
        return InvitationRead.model_validate(invitation)

    async def list_pending_for_team(self, team_id: str) -> List[InvitationRead]:
        """团队的待处理邀请：未接受且未过期，最新的在前。"""
        team = await self.team_service._get_team_or_404(team_id)
        role = await self._get_actor_role(team.id)
        self._ensure(can_invite_members(role, team.settings), "view this team's invitations")

        invitations = await self.invitation_dao.get_pending_for_team(team.id, utc_now())
        return [InvitationRead.model_validate(i) for i in invitations]

    async def list_pending_for_user(self, email: Optional[str] = None) -> List[InvitationRead]:
        """发给某个邮箱的待处理邀请，默认是当前用户自己的邮箱。"""
        own_email = normalize_email(self.context.actor.email)
        email = normalize_email(email) if email else own_email
        if email != own_email:
            raise PermissionDeniedError("You can only list invitations sent to your own email.")

        invitations = await self.invitation_dao.get_pending_for_email(email, utc_now())
        return [InvitationRead.model_validate(i) for i in invitations]

    async def accept(self, invitation_id: str) -> TeamMemberRead:
        member = await self._accept(invitation_id)
        return TeamMemberRead.model_validate(member)

    async def decline(self, invitation_id: str) -> None:
        await self._decline(invitation_id)

    # --- Internal ORM-returning "Workhorse" Methods ---
    async def _get_invitation_or_404(self, invitation_id: str) -> TeamInvitation:
        invitation = await self.invitation_dao.get_by_pk(invitation_id)
        if not invitation:
            raise NotFoundError("Invitation not found.")
        return invitation

    async def _invite(self, team_id: str, invite_data: InvitationCreate) -> TeamInvitation:
        actor = self.context.actor
        team = await self.team_service._get_team_or_404(team_id)
        actor_role = await self._get_actor_role(team.id)

        self._ensure(can_invite_members(actor_role, team.settings), "invite members to this team")
        self._ensure(can_assign_role(actor_role, invite_data.role), f"invite someone as '{invite_data.role.value}'")

        email = normalize_email(invite_data.email)
        if await self.member_dao.exists_with_email(team.id, email):
            raise DuplicateMemberError(f"{email} is already a member of this team.")

        now = utc_now()
        invitation = TeamInvitation(
            team_id=team.id,
            email=email,
            role=invite_data.role,
            invited_by=actor.id,
            created_at=now,
            expires_at=now + timedelta(days=settings.INVITATION_TTL_DAYS),
        )
        self.db.add(invitation)
        await self._flush("create invitation")

        self.activity.log(
            "member_invited", "team_invitation", invitation.id,
            team_id=team.id, metadata={"email": email, "role": invite_data.role.value}
        )
        # 显式加载 team / inviter，供 DTO 展示
        await self.db.refresh(invitation, attribute_names=["team", "inviter"])
        return invitation

    async def _accept(self, invitation_id: str) -> TeamMember:
        """
        接受邀请：标记 accepted_at 并写入成员关系，二者处于同一事务。
        accepted_at 通过 compare-and-set 更新，重复或并发的 accept 不会产生第二条成员记录。
        """
        actor = self.context.actor
        invitation = await self._get_invitation_or_404(invitation_id)
        if normalize_email(actor.email) != invitation.email:
            raise PermissionDeniedError("This invitation was sent to a different email address.")

        existing = await self.member_dao.get_membership(invitation.team_id, actor.id, with_user=True)

        if invitation.accepted_at is not None:
            if existing:
                # 幂等：已经接受过且成员关系存在
                return existing
            raise InvitationStateError("Invitation has already been accepted.")

        now = utc_now()
        if invitation.expires_at <= now:
            raise InvitationExpiredError("Invitation has expired.")

        if not await self.invitation_dao.mark_accepted(invitation.id, now):
            logger.warning("Invitation %s was accepted concurrently", invitation.id)
            raise InvitationStateError("Invitation has already been accepted.")
        set_committed_value(invitation, "accepted_at", now)

        if existing:
            # 已经是成员（例如被直接添加过），不重复插入，保留现有角色
            member = existing
        else:
            team = await self.team_service._get_team_or_404(invitation.team_id)
            member = await self.team_service._add_member(
                team, actor.id, invitation.role, invited_by=invitation.invited_by
            )

        self.activity.log(
            "invitation_accepted", "team_invitation", invitation.id,
            team_id=invitation.team_id, metadata={"role": member.role.value}
        )
        return member

    async def _decline(self, invitation_id: str) -> None:
        """被邀请人拒绝，或有邀请权限的团队成员撤回。只删除邀请，不影响成员关系。"""
        actor = self.context.actor
        invitation = await self._get_invitation_or_404(invitation_id)

        is_invitee = normalize_email(actor.email) == invitation.email
        if not is_invitee:
            team = await self.team_service._get_team_or_404(invitation.team_id)
            role = await self._get_actor_role(team.id)
            self._ensure(can_invite_members(role, team.settings), "revoke this invitation")

        if invitation.accepted_at is not None:
            raise InvitationStateError("An accepted invitation cannot be declined.")

        team_id, email = invitation.team_id, invitation.email
        await self.invitation_dao.delete(invitation)

        self.activity.log(
            "invitation_declined", "team_invitation", invitation_id,
            team_id=team_id, metadata={"email": email, "by_invitee": is_invitee}
        )
