from typing import List
from sqlalchemy.ext.asyncio import AsyncSession

from teamhub.dao.base_dao import BaseDao
from teamhub.models.auditing import ActivityLog

class ActivityLogDao(BaseDao[ActivityLog]):
    def __init__(self, db_session: AsyncSession):
        super().__init__(ActivityLog, db_session)

    async def get_recent_for_team(self, team_id: str, limit: int) -> List[ActivityLog]:
        """最近的 limit 条团队动态，附带操作者资料，最新的在前。"""
        return await self.get_list(
            where={"team_id": team_id},
            withs=["user"],
            order=[ActivityLog.created_at.desc()],
            limit=limit,
        )
