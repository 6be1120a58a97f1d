# src/teamhub/api/v1/team.py

from fastapi import APIRouter, Query, status
from typing import List, Optional
from teamhub.core.context import AppContext
from teamhub.api.dependencies.context import AuthContextDep, PublicContextDep
from teamhub.schemas.common import JsonResponse, MsgResponse
from teamhub.schemas.team_schemas import (
    TeamRead, TeamCreate, TeamUpdate, TeamStatsRead,
    TeamMemberRead, TeamMemberCreate, TeamMemberRoleUpdate,
    InvitationRead, InvitationCreate, ActivityLogRead
)
from teamhub.services.identity.team_service import TeamService
from teamhub.services.identity.invitation_service import InvitationService
from teamhub.services.auditing.activity_logger import ActivityLogger

router = APIRouter()

@router.get("", response_model=JsonResponse[List[TeamRead]], summary="List User's Teams")
async def list_user_teams(
    context: AppContext = AuthContextDep
):
    service = TeamService(context)
    teams = await service.list_teams_for_user()
    return JsonResponse(data=teams)

@router.post("", response_model=JsonResponse[TeamRead], status_code=status.HTTP_201_CREATED, summary="Create a new Team")
async def create_team(
    team_in: TeamCreate,
    context: AppContext = AuthContextDep
):
    service = TeamService(context)
    new_team = await service.create_team(team_in)
    return JsonResponse(data=new_team)

@router.get("/{team_id}", response_model=JsonResponse[TeamRead], summary="Get Team Details")
async def get_team(
    team_id: str,
    context: AppContext = PublicContextDep
):
    """公开团队无需登录即可查看；私有团队要求是成员。"""
    service = TeamService(context)
    team = await service.get_team(team_id)
    return JsonResponse(data=team)

@router.patch("/{team_id}", response_model=JsonResponse[TeamRead], summary="Update Team")
async def update_team(
    team_id: str,
    team_in: TeamUpdate,
    context: AppContext = AuthContextDep
):
    service = TeamService(context)
    updated_team = await service.update_team(team_id, team_in)
    return JsonResponse(data=updated_team)

@router.delete("/{team_id}", response_model=MsgResponse, summary="Delete Team")
async def delete_team(
    team_id: str,
    context: AppContext = AuthContextDep
):
    service = TeamService(context)
    await service.delete_team(team_id)
    return MsgResponse(msg="Team deleted successfully.")

@router.get("/{team_id}/stats", response_model=JsonResponse[TeamStatsRead], summary="Get Team Statistics")
async def get_team_stats(
    team_id: str,
    context: AppContext = AuthContextDep
):
    service = TeamService(context)
    stats = await service.get_team_stats(team_id)
    return JsonResponse(data=stats)

@router.get("/{team_id}/activity", response_model=JsonResponse[List[ActivityLogRead]], summary="List Team Activity")
async def list_team_activity(
    team_id: str,
    limit: Optional[int] = Query(None, ge=1, le=200),
    context: AppContext = AuthContextDep
):
    activity = ActivityLogger(context)
    logs = await activity.list_for_team(team_id, limit=limit)
    return JsonResponse(data=logs)

# --- Members ---

@router.get(
    "/{team_id}/members",
    response_model=JsonResponse[List[TeamMemberRead]],
    summary="List Team Members"
)
async def list_team_members(
    team_id: str,
    context: AppContext = AuthContextDep
):
    """获取指定团队的成员列表。"""
    service = TeamService(context)
    members = await service.list_members(team_id)
    return JsonResponse(data=members)

@router.post(
    "/{team_id}/members",
    response_model=JsonResponse[TeamMemberRead],
    status_code=status.HTTP_201_CREATED,
    summary="Add a Member to Team"
)
async def add_team_member(
    team_id: str,
    member_in: TeamMemberCreate,
    context: AppContext = AuthContextDep
):
    service = TeamService(context)
    member = await service.add_member(team_id, member_in.user_id, member_in.role)
    return JsonResponse(data=member)

@router.patch(
    "/{team_id}/members/{user_id}",
    response_model=JsonResponse[TeamMemberRead],
    summary="Change a Member's Role"
)
async def update_team_member_role(
    team_id: str,
    user_id: str,
    role_in: TeamMemberRoleUpdate,
    context: AppContext = AuthContextDep
):
    service = TeamService(context)
    member = await service.update_member_role(team_id, user_id, role_in.role)
    return JsonResponse(data=member)

@router.delete(
    "/{team_id}/members/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a Member from Team"
)
async def remove_team_member(
    team_id: str,
    user_id: str,
    context: AppContext = AuthContextDep
):
    """从团队中移除一个成员。"""
    service = TeamService(context)
    await service.remove_member(team_id, user_id)
    # 成功时返回 204 No Content，不需要响应体

# --- Invitations ---

@router.get(
    "/{team_id}/invitations",
    response_model=JsonResponse[List[InvitationRead]],
    summary="List Pending Invitations of a Team"
)
async def list_team_invitations(
    team_id: str,
    context: AppContext = AuthContextDep
):
    service = InvitationService(context)
    invitations = await service.list_pending_for_team(team_id)
    return JsonResponse(data=invitations)

@router.post(
    "/{team_id}/invitations",
    response_model=JsonResponse[InvitationRead],
    status_code=status.HTTP_201_CREATED,
    summary="Invite Someone by Email"
)
async def invite_team_member(
    team_id: str,
    invite_in: InvitationCreate,
    context: AppContext = AuthContextDep
):
    service = InvitationService(context)
    invitation = await service.invite(team_id, invite_in)
    return JsonResponse(data=invitation)
