# src/teamhub/services/base_service.py

import logging
from typing import Optional
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from teamhub.core.context import AppContext
from teamhub.dao.team_dao import TeamMemberDao
from teamhub.models.identity import TeamRole
from teamhub.services.exceptions import PermissionDeniedError, StorageError

logger = logging.getLogger(__name__)

class BaseService:
    context: AppContext
    db: AsyncSession

    async def _get_actor_role(self, team_id: str) -> Optional[TeamRole]:
        """当前操作者在团队中的角色；非成员返回 None。"""
        actor = self.context.actor
        membership = await TeamMemberDao(self.db).get_membership(team_id, actor.id)
        return membership.role if membership else None

    def _ensure(self, allowed: bool, action: str) -> None:
        if not allowed:
            actor = self.context.actor_or_none
            logger.warning("Permission denied: actor=%s action=%s", actor.id if actor else None, action)
            raise PermissionDeniedError(f"You do not have permission to {action}.")

    async def _flush(self, operation: str) -> None:
        try:
            await self.db.flush()
        except IntegrityError as e:
            raise StorageError(f"Failed to {operation}: the change conflicts with existing data.") from e
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to {operation}: storage is unavailable.") from e
