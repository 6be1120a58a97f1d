# src/teamhub/services/auditing/activity_logger.py

import logging
from typing import Any, Dict, List, Optional

from teamhub.core.config import settings
from teamhub.core.context import AppContext
from teamhub.dao.activity_log_dao import ActivityLogDao
from teamhub.dao.team_dao import TeamDao
from teamhub.schemas.team_schemas import ActivityLogRead
from teamhub.services.auditing.audit_queue import ActivityEvent
from teamhub.services.base_service import BaseService
from teamhub.services.exceptions import NotFoundError
from teamhub.services.permission.team_permissions import can_view_team

logger = logging.getLogger(__name__)

class ActivityLogger(BaseService):
    """
    审计日志写入与查询。
    写入是尽力而为的：没有操作者时直接跳过，入队失败只记录日志，从不向调用方抛出异常。
    事件挂在当前业务事务上，事务提交后才入队，回滚则一并丢弃。
    """
    def __init__(self, context: AppContext):
        self.context = context
        self.db = context.db
        self.dao = ActivityLogDao(context.db)
        self.team_dao = TeamDao(context.db)

    def log(
        self,
        action: str,
        resource_type: str,
        resource_id: Optional[str] = None,
        team_id: Optional[str] = None,
        project_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> bool:
        actor = self.context.actor_or_none
        if actor is None:
            logger.debug("Skipping '%s' audit event: no authenticated actor", action)
            return False

        queue = self.context.audit_queue
        if queue is None:
            logger.debug("Skipping '%s' audit event: no audit queue configured", action)
            return False

        try:
            event = ActivityEvent(
                user_id=actor.id,
                action=action,
                resource_type=resource_type,
                resource_id=resource_id,
                team_id=team_id,
                project_id=project_id,
                metadata=dict(metadata or {}),
            )
            queue.emit_on_commit(self.db, event)
            return True
        except Exception:
            logger.exception("Failed to enqueue '%s' audit event", action)
            return False

    async def list_for_team(self, team_id: str, limit: Optional[int] = None) -> List[ActivityLogRead]:
        """团队最近的动态，附带操作者资料，最新的在前。"""
        team = await self.team_dao.get_by_pk(team_id)
        if not team:
            raise NotFoundError("Team not found.")
        role = await self._get_actor_role(team.id)
        self._ensure(can_view_team(role), "view this team's activity")

        limit = limit or settings.ACTIVITY_FEED_LIMIT
        logs = await self.dao.get_recent_for_team(team_id, limit)
        return [ActivityLogRead.model_validate(entry) for entry in logs]
