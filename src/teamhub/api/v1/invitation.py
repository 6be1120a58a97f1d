# src/teamhub/api/v1/invitation.py

from fastapi import APIRouter, status
from typing import List
from teamhub.core.context import AppContext
from teamhub.api.dependencies.context import AuthContextDep
from teamhub.schemas.common import JsonResponse
from teamhub.schemas.team_schemas import InvitationRead, TeamMemberRead
from teamhub.services.identity.invitation_service import InvitationService

router = APIRouter()

@router.get("", response_model=JsonResponse[List[InvitationRead]], summary="List My Pending Invitations")
async def list_my_invitations(
    context: AppContext = AuthContextDep
):
    """当前用户邮箱收到的、仍然有效的邀请。"""
    service = InvitationService(context)
    invitations = await service.list_pending_for_user()
    return JsonResponse(data=invitations)

@router.post(
    "/{invitation_id}/accept",
    response_model=JsonResponse[TeamMemberRead],
    summary="Accept an Invitation"
)
async def accept_invitation(
    invitation_id: str,
    context: AppContext = AuthContextDep
):
    service = InvitationService(context)
    member = await service.accept(invitation_id)
    return JsonResponse(data=member)

@router.delete(
    "/{invitation_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Decline or Revoke an Invitation"
)
async def decline_invitation(
    invitation_id: str,
    context: AppContext = AuthContextDep
):
    service = InvitationService(context)
    await service.decline(invitation_id)
