from typing import Type, TypeVar, Generic, Any, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import inspect, or_, and_, func, select, update, delete
from sqlalchemy.orm import joinedload, selectinload
from sqlalchemy.sql.selectable import Select
from teamhub.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)

class BaseDao(Generic[ModelType]):
    def __init__(self, model_class: Type[ModelType], db_session: AsyncSession):
        self.model: Type[ModelType] = model_class
        self.db_session: AsyncSession = db_session
        primary_keys = inspect(model_class).primary_key
        if not primary_keys:
            raise ValueError(f"Model {model_class.__name__} does not have a primary key.")
        self.pk: str = primary_keys[0].name

    # ==============================================================================
    # 1. 实体/对象方法 (Object Methods)
    #    - 输入和输出都是 ORM 对象实例
    # ==============================================================================

    async def get_list(
        self,
        where: Optional[dict | list] = None,
        where_or: Optional[list] = None,
        withs: Optional[list] = None,
        order: Optional[list] = None,
        limit: int = 0,
    ) -> list[ModelType]:
        stmt = self._quick_query(where=where, where_or=where_or, withs=withs, order=order, limit=limit)
        executed = await self.db_session.execute(stmt)
        return list(executed.scalars().unique().all())

    async def get_one(
        self,
        where: Optional[dict | list] = None,
        withs: Optional[list] = None,
        order: Optional[list] = None
    ) -> Optional[ModelType]:
        stmt = self._quick_query(where=where, withs=withs, order=order)
        executed = await self.db_session.execute(stmt)
        return executed.scalars().first()

    async def get_by_pk(self, pk_value: Any, withs: Optional[list] = None) -> Optional[ModelType]:
        return await self.get_one(where={self.pk: pk_value}, withs=withs)

    async def count(self, where: Optional[dict | list] = None) -> int:
        subquery_stmt = self._quick_query(where=where).subquery()
        executed = await self.db_session.execute(select(func.count()).select_from(subquery_stmt))
        return executed.scalar() or 0

    async def delete(self, instance: ModelType) -> None:
        await self.db_session.delete(instance)
        await self.db_session.flush()

    # ==============================================================================
    # 2. 数据/批量方法 (Data/Bulk Methods)
    # ==============================================================================

    async def update_where(self, where: dict | list, values: dict) -> int:
        """条件更新，返回受影响的行数。调用方可据此实现 compare-and-set。"""
        if not where or not values:
            return 0
        conditions = self._where_format(where)
        stmt = (
            update(self.model)
            .where(*conditions)
            .values(values)
            .execution_options(synchronize_session=False)
        )
        executed = await self.db_session.execute(stmt)
        return executed.rowcount

    async def delete_where(self, where: dict | list) -> int:
        if not where:
            return 0
        conditions = self._where_format(where)
        stmt = delete(self.model).where(*conditions).execution_options(synchronize_session=False)
        executed = await self.db_session.execute(stmt)
        return executed.rowcount

    # ==============================================================================
    # 3. 查询构建辅助方法 (Query Building Helpers)
    # ==============================================================================

    def _quick_query(
        self,
        stmt: Optional[Select] = None,
        where: Optional[dict | list] = None,
        where_or: Optional[list] = None,
        withs: Optional[list] = None,
        order: Optional[list] = None,
        limit: int = 0,
    ) -> Select:
        if stmt is None:
            stmt = select(self.model)

        if where is not None:
            stmt = stmt.filter(*self._where_format(where))

        if where_or is not None:
            stmt = stmt.filter(or_(*where_or))

        if withs is not None:
            stmt = self._withs(stmt, withs)

        if order is not None:
            stmt = stmt.order_by(*order)

        if limit > 0:
            stmt = stmt.limit(limit)

        return stmt

    def _withs(self, stmt: Select, withs: list) -> Select:
        options = []
        for config in withs:
            if isinstance(config, str):
                # 一对一/多对一关系走 joinedload，集合走 selectinload
                attr = getattr(self.model, config)
                loader = selectinload if attr.property.uselist else joinedload
                options.append(loader(attr))
            else:
                options.append(config)
        return stmt.options(*options)

    def _where_format(self, conditions: list | dict) -> list:
        if not conditions:
            return []
        if isinstance(conditions, dict):
            processed = [getattr(self.model, field) == value for field, value in conditions.items()]
        else:
            processed = list(conditions)
        if len(processed) > 1:
            processed = [and_(*processed)]
        return processed
