# src/teamhub/core/context.py

from pydantic import BaseModel, ConfigDict
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession

from teamhub.services.auditing.audit_queue import AuditQueue
from teamhub.services.exceptions import NotAuthenticatedError

class CurrentUser(BaseModel):
    """身份提供方给出的当前用户。"""
    id: str
    email: str

class AuthContext(BaseModel):
    user: CurrentUser
    token: Optional[str] = None

class AppContext(BaseModel):
    """
    Defines the complete, typed context for service layer operations.
    The identity travels with the context instead of being looked up from a
    global session, so every service call knows exactly who is acting.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    db: AsyncSession
    # 对于需要认证的路由，它将是一个 AuthContext 实例；对于公共路由，它将是 None。
    auth: Optional[AuthContext] = None
    # 审计事件的缓冲队列；为 None 时审计日志被跳过
    audit_queue: Optional[AuditQueue] = None

    @property
    def actor(self) -> CurrentUser:
        if not self.auth or not self.auth.user:
            raise NotAuthenticatedError("An authenticated user (actor) is required for this operation.")
        return self.auth.user

    @property
    def actor_or_none(self) -> Optional[CurrentUser]:
        return self.auth.user if self.auth else None
