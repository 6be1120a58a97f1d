# src/teamhub/db/session.py

from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from teamhub.core.config import settings

engine = create_async_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,      # 在每次从连接池获取连接时，测试其连通性，防止拿到失效连接
    pool_recycle=3600,
)

SessionLocal = async_sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    bind=engine,
    class_=AsyncSession
)

# 依赖项：为每个API请求提供一个独立的数据库会话
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a transactional scope around a request.
    Commits if the request completes, rolls back if any exception escapes,
    so multi-row operations such as team creation are all-or-nothing.
    """
    async with SessionLocal() as session:
        async with session.begin():
            yield session
