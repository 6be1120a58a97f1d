import enum
from sqlalchemy import (
    Column, String, Text, JSON, Enum, ForeignKey, DateTime, Index, UniqueConstraint
)
from sqlalchemy.orm import relationship
from teamhub.db.base import Base
from teamhub.utils.id_generator import generate_uuid, utc_now

class TeamRole(str, enum.Enum):
    """
    团队角色，权限从高到低: OWNER > ADMIN > {MEMBER, VIEWER}。
    MEMBER 与 VIEWER 之间没有包含关系，只是各自拥有的能力不同。
    """
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"
    VIEWER = "viewer"

class ProjectVisibility(str, enum.Enum):
    PRIVATE = "private"
    TEAM = "team"
    PUBLIC = "public"

def _role_enum(name: str) -> Enum:
    # 以枚举值 ('owner') 而不是成员名 ('OWNER') 落库
    return Enum(TeamRole, name=name, values_callable=lambda e: [m.value for m in e])

class Profile(Base):
    """用户资料表 - 由外部身份系统维护，本服务只读，用于展示字段的关联查询。"""
    __tablename__ = 'profiles'

    id = Column(String(36), primary_key=True, default=generate_uuid, comment="身份提供方的用户ID")
    email = Column(String(255), nullable=False, unique=True, index=True, comment="用户邮箱")
    full_name = Column(String(255), nullable=True, comment="显示名称")
    avatar_url = Column(String(512), nullable=True, comment="头像URL")
    created_at = Column(DateTime, nullable=False, default=utc_now)

class Team(Base):
    """团队表 - 成员、设置以及（外部）项目的协作边界。"""
    __tablename__ = 'teams'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False, comment="团队名称")
    description = Column(Text, nullable=True, comment="团队描述")
    # 不变式: owner_id 必须始终对应一条 role=owner 的 TeamMember 记录
    owner_id = Column(String(36), nullable=False, index=True, comment="团队所有者的用户ID")
    avatar_url = Column(String(512), nullable=True, comment="团队头像URL")
    # 结构由 schemas.team_schemas.TeamSettings 约束
    settings = Column(JSON, nullable=False, default=dict, comment="团队设置")

    created_at = Column(DateTime, nullable=False, default=utc_now, index=True)
    updated_at = Column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    members = relationship(
        "TeamMember", back_populates="team", cascade="all, delete-orphan",
        passive_deletes=True, order_by="TeamMember.joined_at"
    )
    invitations = relationship("TeamInvitation", back_populates="team", cascade="all, delete-orphan", passive_deletes=True)

class TeamMember(Base):
    """团队成员表 - 一个用户在一个团队中恰好拥有一个角色。"""
    __tablename__ = 'team_members'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    team_id = Column(String(36), ForeignKey('teams.id', ondelete='CASCADE'), nullable=False, index=True)
    user_id = Column(String(36), nullable=False, index=True)
    role = Column(_role_enum("team_role"), nullable=False, default=TeamRole.MEMBER)
    joined_at = Column(DateTime, nullable=False, default=utc_now)
    invited_by = Column(String(36), nullable=True, comment="邀请人的用户ID")

    team = relationship("Team", back_populates="members")
    # profiles 由外部维护，不建立数据库外键，仅用于只读关联
    user = relationship(
        "Profile",
        primaryjoin="foreign(TeamMember.user_id) == Profile.id",
        viewonly=True,
        uselist=False,
    )

    __table_args__ = (UniqueConstraint('team_id', 'user_id', name='uq_team_members_team_user'),)

class TeamInvitation(Base):
    """
    团队邀请表。
    生命周期: Pending -> Accepted (accepted_at 非空) | Removed (行被删除) | Expired (expires_at 已过，
    不做任何状态迁移，只是不再出现在待处理列表中)。
    """
    __tablename__ = 'team_invitations'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    team_id = Column(String(36), ForeignKey('teams.id', ondelete='CASCADE'), nullable=False, index=True)
    email = Column(String(255), nullable=False, index=True, comment="被邀请人邮箱（小写）")
    role = Column(_role_enum("team_invitation_role"), nullable=False, default=TeamRole.MEMBER)
    invited_by = Column(String(36), nullable=False, comment="邀请人的用户ID")
    expires_at = Column(DateTime, nullable=False, comment="过期时间 = created_at + TTL")
    accepted_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utc_now)

    team = relationship("Team", back_populates="invitations")
    inviter = relationship(
        "Profile",
        primaryjoin="foreign(TeamInvitation.invited_by) == Profile.id",
        viewonly=True,
        uselist=False,
    )

    __table_args__ = (
        Index('ix_team_invitations_pending', 'team_id', 'accepted_at', 'expires_at'),
    )
