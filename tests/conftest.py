# tests/conftest.py

from typing import Optional, AsyncGenerator, Callable
from dataclasses import dataclass
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
)
from sqlalchemy.pool import NullPool

from teamhub.main import app
from teamhub.core.config import settings
from teamhub.core.context import AppContext, AuthContext, CurrentUser
from teamhub.core.security import create_access_token
from teamhub.db.base import Base
from teamhub.db.session import get_db
from teamhub.models import Profile, Team, TeamRole
from teamhub.schemas.team_schemas import TeamCreate
from teamhub.services.auditing.audit_queue import AuditQueue
from teamhub.services.identity.team_service import TeamService

# ==============================================================================
# 1. 数据库 Fixtures
# ==============================================================================

@pytest.fixture(scope="function")
async def test_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """
    每个测试一个全新的 SQLite 文件，测试之间完全隔离。
    使用 NullPool 确保每个连接都是全新的，避免在异步测试中共享状态。
    """
    url = make_url(settings.DATABASE_URL_TEST).set(database=str(tmp_path / "teamhub_test.db"))
    engine = create_async_engine(url, poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()

@pytest.fixture(scope="function")
def session_factory(test_engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        autocommit=False, autoflush=False, expire_on_commit=False, bind=test_engine, class_=AsyncSession
    )

@pytest.fixture(scope="function")
async def db_session(session_factory: async_sessionmaker) -> AsyncGenerator[AsyncSession, None]:
    """
    Commit-and-Cleanup 策略：测试可以显式 commit，数据库文件在测试结束后随 tmp_path 一起丢弃。
    由于 expire_on_commit=False，测试代码可以在 commit() 后继续安全地使用 ORM 对象。
    """
    async with session_factory() as session:
        try:
            yield session
        finally:
            await session.rollback()

@pytest.fixture(scope="function")
def audit_queue(session_factory: async_sessionmaker) -> AuditQueue:
    """未启动的审计队列；测试通过 drain() 同步落库。"""
    return AuditQueue(session_factory, maxsize=100)

@pytest.fixture(scope="function")
def flush_audit(db_session: AsyncSession, audit_queue: AuditQueue) -> Callable:
    """
    提交测试会话后写出缓冲的审计事件。
    SQLite 同一时间只允许一个写事务，所以必须先 commit 再 drain。
    """
    async def _flush() -> int:
        await db_session.commit()
        return await audit_queue.drain()
    return _flush

# ==============================================================================
# 2. 身份与上下文 Fixtures
# ==============================================================================

@dataclass
class Profiles:
    owner: Profile
    admin: Profile
    member: Profile
    viewer: Profile
    outsider: Profile

@pytest.fixture(scope="function")
async def profiles(db_session: AsyncSession) -> Profiles:
    """外部身份系统中已存在的用户资料。"""
    created = {
        name: Profile(email=f"{name}@example.com", full_name=name.capitalize())
        for name in ("owner", "admin", "member", "viewer", "outsider")
    }
    db_session.add_all(created.values())
    await db_session.commit()
    return Profiles(**created)

@pytest.fixture(scope="function")
def context_factory(db_session: AsyncSession, audit_queue: AuditQueue) -> Callable[[Optional[Profile]], AppContext]:
    """一个工厂fixture，为给定用户构建服务层上下文；传入 None 则为匿名上下文。"""
    def _factory(profile: Optional[Profile]) -> AppContext:
        auth = None
        if profile is not None:
            auth = AuthContext(user=CurrentUser(id=profile.id, email=profile.email))
        return AppContext(db=db_session, auth=auth, audit_queue=audit_queue)
    return _factory

@pytest.fixture(scope="function")
async def created_team(db_session: AsyncSession, context_factory: Callable, profiles: Profiles) -> Team:
    """
    一个包含全部四种角色的团队：owner 创建，admin / member / viewer 由 owner 直接加入。
    """
    service = TeamService(context_factory(profiles.owner))
    team = await service._create_team(TeamCreate(name="Test Team Alpha", description="fixture team"))
    for profile, role in (
        (profiles.admin, TeamRole.ADMIN),
        (profiles.member, TeamRole.MEMBER),
        (profiles.viewer, TeamRole.VIEWER),
    ):
        await service._add_member(team, profile.id, role, invited_by=profiles.owner.id)
    await db_session.commit()
    return team

# ==============================================================================
# 3. API Client Fixtures
# ==============================================================================

@pytest.fixture(scope="function")
async def client(session_factory: async_sessionmaker, audit_queue: AuditQueue) -> AsyncGenerator[AsyncClient, None]:
    """
    使用依赖覆盖把请求会话指向测试数据库，每个请求仍然是一个独立事务。
    ASGITransport 不会触发 lifespan，因此审计队列直接挂到 app.state 上。
    """
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            async with session.begin():
                yield session

    app.dependency_overrides[get_db] = override_get_db
    app.state.audit_queue = audit_queue

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
    app.state.audit_queue = None

@pytest.fixture(scope="function")
def auth_headers_factory() -> Callable[[Profile], dict]:
    """一个工厂fixture，用于为给定用户签发认证头。"""
    def _factory(profile: Profile) -> dict:
        token = create_access_token(subject=profile.id, email=profile.email)
        return {"Authorization": f"Bearer {token}"}
    return _factory
