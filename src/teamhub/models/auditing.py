from sqlalchemy import Column, String, JSON, DateTime
from sqlalchemy.orm import relationship
from teamhub.db.base import Base
from teamhub.utils.id_generator import generate_uuid, utc_now

class ActivityLog(Base):
    """
    行为审计表 - 只追加，不修改、不删除。
    刻意不建立外键：团队被删除后，team_deleted 等记录仍需保留。
    """
    __tablename__ = 'activity_logs'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), nullable=False, index=True, comment="执行操作的用户ID")
    action = Column(String(64), nullable=False, index=True, comment="动作标签, e.g. 'member_added'")
    resource_type = Column(String(64), nullable=False, comment="资源类型, e.g. 'team_member'")
    resource_id = Column(String(36), nullable=True)
    team_id = Column(String(36), nullable=True, index=True)
    project_id = Column(String(36), nullable=True, index=True)
    # 'metadata' 是 Declarative 的保留名，属性名改为 meta
    meta = Column("metadata", JSON, nullable=False, default=dict)
    created_at = Column(DateTime, nullable=False, default=utc_now, index=True)

    user = relationship(
        "Profile",
        primaryjoin="foreign(ActivityLog.user_id) == Profile.id",
        viewonly=True,
        uselist=False,
    )
