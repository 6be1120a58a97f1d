# src/teamhub/schemas/team_schemas.py

from datetime import datetime
from pydantic import BaseModel, Field, ConfigDict, EmailStr, field_validator
from typing import Optional, Dict, Any
from teamhub.models.identity import TeamRole, ProjectVisibility

# --- Team settings ---

class TeamSettings(BaseModel):
    is_public: bool = False
    allow_member_invites: bool = True
    default_project_visibility: ProjectVisibility = ProjectVisibility.TEAM
    require_approval_for_join: bool = False

class TeamSettingsUpdate(BaseModel):
    """部分更新：只合并显式给出的字段。"""
    is_public: Optional[bool] = None
    allow_member_invites: Optional[bool] = None
    default_project_visibility: Optional[ProjectVisibility] = None
    require_approval_for_join: Optional[bool] = None

    def merge_into(self, current: Optional[Dict[str, Any]]) -> TeamSettings:
        base = TeamSettings.model_validate(current or {})
        return base.model_copy(update=self.model_dump(exclude_unset=True, exclude_none=True))

# --- Profiles ---

class ProfileSummaryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    email: str
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None

# --- Teams ---

class TeamBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, description="团队名称")
    description: Optional[str] = Field(None, description="团队描述")

class TeamCreate(TeamBase):
    settings: Optional[TeamSettingsUpdate] = None

class TeamUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    avatar_url: Optional[str] = Field(None, max_length=512)
    settings: Optional[TeamSettingsUpdate] = None

class TeamSummaryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    name: str
    avatar_url: Optional[str] = None

class TeamRead(TeamBase):
    model_config = ConfigDict(from_attributes=True)
    id: str
    owner_id: str
    avatar_url: Optional[str] = None
    settings: TeamSettings
    created_at: datetime
    updated_at: datetime

    @field_validator("settings", mode="before")
    @classmethod
    def _fill_settings_defaults(cls, value):
        return value or {}

class TeamStatsRead(BaseModel):
    total_members: int
    members_by_role: Dict[TeamRole, int]
    pending_invitations: int

# --- Members ---

class TeamMemberCreate(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=36)
    role: TeamRole = TeamRole.MEMBER

class TeamMemberRoleUpdate(BaseModel):
    role: TeamRole

class TeamMemberRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    team_id: str
    user_id: str
    role: TeamRole
    joined_at: datetime
    invited_by: Optional[str] = None
    user: Optional[ProfileSummaryRead] = None

# --- Invitations ---

class InvitationCreate(BaseModel):
    email: EmailStr
    role: TeamRole = TeamRole.MEMBER

class InvitationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    team_id: str
    email: str
    role: TeamRole
    invited_by: str
    expires_at: datetime
    accepted_at: Optional[datetime] = None
    created_at: datetime
    team: Optional[TeamSummaryRead] = None
    inviter: Optional[ProfileSummaryRead] = None

# --- Activity ---

class ActivityLogRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    user_id: str
    action: str
    resource_type: str
    resource_id: Optional[str] = None
    team_id: Optional[str] = None
    project_id: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict, validation_alias="meta")
    created_at: datetime
    user: Optional[ProfileSummaryRead] = None
