# tests/services/test_activity_logger.py

import asyncio
import pytest
from typing import Callable
from unittest.mock import MagicMock
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from teamhub.models import Team, ActivityLog
from teamhub.services.auditing.activity_logger import ActivityLogger
from teamhub.services.auditing.audit_queue import AuditQueue, ActivityEvent
from teamhub.services.exceptions import NotFoundError, PermissionDeniedError

pytestmark = pytest.mark.asyncio


class TestActivityLogWrites:
    """写入是尽力而为的：跳过、丢弃、失败都不会影响调用方。"""

    async def test_log_without_actor_is_skipped(self, context_factory: Callable, audit_queue: AuditQueue):
        logger = ActivityLogger(context_factory(None))

        assert logger.log("team_updated", "team", "t-1", team_id="t-1") is False
        assert audit_queue.stats()["pending"] == 0

    async def test_log_without_queue_is_skipped(self, db_session: AsyncSession, context_factory: Callable, profiles):
        context = context_factory(profiles.owner)
        context.audit_queue = None

        assert ActivityLogger(context).log("team_updated", "team", "t-1") is False

    async def test_log_writes_row_with_metadata(
        self, db_session: AsyncSession, context_factory: Callable, profiles, flush_audit: Callable
    ):
        logger = ActivityLogger(context_factory(profiles.member))

        assert logger.log(
            "project_created", "project", "p-1", team_id="t-1", project_id="p-1", metadata={"name": "Roadmap"}
        ) is True
        assert await flush_audit() == 1

        [row] = (await db_session.execute(select(ActivityLog))).scalars().all()
        assert row.user_id == profiles.member.id
        assert row.action == "project_created"
        assert row.resource_type == "project"
        assert row.resource_id == "p-1"
        assert row.team_id == "t-1"
        assert row.project_id == "p-1"
        assert row.meta == {"name": "Roadmap"}

    async def test_events_wait_for_commit(
        self, db_session: AsyncSession, context_factory: Callable, profiles, audit_queue: AuditQueue
    ):
        logger = ActivityLogger(context_factory(profiles.owner))

        assert logger.log("team_updated", "team", "t-1", team_id="t-1") is True
        assert audit_queue.stats()["pending"] == 0

        await db_session.commit()

        assert audit_queue.stats()["pending"] == 1

    async def test_rolled_back_events_are_discarded(
        self, db_session: AsyncSession, context_factory: Callable, profiles, audit_queue: AuditQueue
    ):
        logger = ActivityLogger(context_factory(profiles.owner))
        await db_session.execute(select(func.count(ActivityLog.id)))
        logger.log("team_deleted", "team", "t-1", team_id="t-1")

        await db_session.rollback()
        await db_session.commit()

        assert audit_queue.stats()["pending"] == 0
        assert await audit_queue.drain() == 0

    async def test_full_queue_drops_instead_of_blocking(
        self, db_session: AsyncSession, context_factory: Callable, profiles, session_factory
    ):
        queue = AuditQueue(session_factory, maxsize=1)
        context = context_factory(profiles.owner)
        context.audit_queue = queue
        logger = ActivityLogger(context)

        assert logger.log("team_updated", "team", "t-1") is True
        assert logger.log("team_updated", "team", "t-1") is True
        await db_session.commit()

        assert queue.stats()["pending"] == 1
        assert queue.stats()["dropped"] == 1

    async def test_failed_write_is_counted_not_raised(
        self, db_session: AsyncSession, context_factory: Callable, profiles
    ):
        broken_factory = MagicMock(side_effect=RuntimeError("storage down"))
        queue = AuditQueue(broken_factory)
        context = context_factory(profiles.owner)
        context.audit_queue = queue

        ActivityLogger(context).log("team_updated", "team", "t-1")
        await db_session.commit()
        handled = await queue.drain()

        assert handled == 1
        assert queue.stats() == {"pending": 0, "written": 0, "dropped": 0, "failed": 1}


class TestAuditQueueLifecycle:

    async def test_background_consumer_writes_and_stop_flushes(
        self, db_session: AsyncSession, session_factory, profiles
    ):
        queue = AuditQueue(session_factory, batch_size=2)
        await queue.start()
        for i in range(5):
            queue.emit(ActivityEvent(user_id=profiles.owner.id, action="member_added", resource_type="team_member",
                                     resource_id=f"m-{i}", team_id="t-1"))

        await queue.stop()

        assert queue.stats()["written"] == 5
        assert queue.processor_task is None
        total = await db_session.scalar(select(func.count(ActivityLog.id)))
        assert total == 5

    async def test_start_twice_keeps_single_consumer(self, session_factory):
        queue = AuditQueue(session_factory)
        await queue.start()
        task = queue.processor_task

        await queue.start()

        assert queue.processor_task is task
        await queue.stop()
        await asyncio.sleep(0)
        assert task.done()


class TestActivityFeed:

    async def test_list_for_team_newest_first_with_actor(
        self, db_session: AsyncSession, context_factory: Callable, profiles, created_team: Team, flush_audit: Callable
    ):
        await flush_audit()
        logger = ActivityLogger(context_factory(profiles.viewer))

        feed = await logger.list_for_team(created_team.id)

        # 创建团队 + 三次加入成员
        assert [entry.action for entry in feed] == ["member_added"] * 3 + ["team_created"]
        assert feed[-1].user.email == "owner@example.com"
        assert feed[0].metadata == {"user_id": profiles.viewer.id, "role": "viewer"}

    async def test_list_for_team_respects_limit(
        self, context_factory: Callable, profiles, created_team: Team, flush_audit: Callable
    ):
        await flush_audit()

        feed = await ActivityLogger(context_factory(profiles.owner)).list_for_team(created_team.id, limit=2)

        assert len(feed) == 2

    async def test_outsider_cannot_read_feed(self, context_factory: Callable, profiles, created_team: Team):
        with pytest.raises(PermissionDeniedError):
            await ActivityLogger(context_factory(profiles.outsider)).list_for_team(created_team.id)

    async def test_feed_for_missing_team_is_not_found(self, context_factory: Callable, profiles):
        with pytest.raises(NotFoundError):
            await ActivityLogger(context_factory(profiles.owner)).list_for_team("missing-team")
