# src/teamhub/services/auditing/audit_queue.py
"""
Bounded in-process buffer between business operations and the audit table.

Producers call :meth:`AuditQueue.emit_on_commit`, which parks the event on the
request's session. Parked events reach the queue only when that session
commits and are discarded when it rolls back, so the trail never records a
change that did not happen. :meth:`AuditQueue.emit` never blocks and never
raises. A background consumer writes events in batches using its own session,
so a slow or failing audit sink cannot delay or roll back the request that
produced the event. Failures are logged and counted instead of disappearing.

Usage:
    queue = AuditQueue(SessionLocal)
    await queue.start()
    ...
    await queue.stop()
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import event as sa_event
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session, SessionTransaction

from teamhub.core.config import settings
from teamhub.models.auditing import ActivityLog
from teamhub.utils.id_generator import utc_now

logger = logging.getLogger(__name__)

# session.info 中暂存待提交审计事件的键
PENDING_EVENTS_KEY = "teamhub.pending_audit_events"

@dataclass(frozen=True)
class ActivityEvent:
    user_id: str
    action: str
    resource_type: str
    resource_id: Optional[str] = None
    team_id: Optional[str] = None
    project_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utc_now)

    def to_row(self) -> ActivityLog:
        return ActivityLog(
            user_id=self.user_id,
            action=self.action,
            resource_type=self.resource_type,
            resource_id=self.resource_id,
            team_id=self.team_id,
            project_id=self.project_id,
            meta=dict(self.metadata),
            created_at=self.created_at,
        )

class AuditQueue:
    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        maxsize: int = settings.AUDIT_QUEUE_MAXSIZE,
        batch_size: int = 50,
    ):
        self.session_factory = session_factory
        self.batch_size = batch_size
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self.running = False
        self.processor_task: Optional[asyncio.Task] = None

        # Metrics
        self.written = 0
        self.dropped = 0
        self.failed = 0

    def emit(self, event: ActivityEvent) -> bool:
        """非阻塞入队；队列已满时丢弃并计数。"""
        try:
            self.queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(
                "Audit queue full, dropping '%s' event for team %s (dropped=%d)",
                event.action, event.team_id, self.dropped
            )
            return False
        return True

    def emit_on_commit(self, session: AsyncSession, event: ActivityEvent) -> None:
        """把事件挂到业务会话上，提交后才真正入队。"""
        session.info.setdefault(PENDING_EVENTS_KEY, []).append((self, event))

    async def start(self) -> None:
        if self.running:
            logger.warning("Audit queue already running")
            return
        self.running = True
        self.processor_task = asyncio.create_task(self._process_events())
        logger.info("Started audit queue (maxsize=%d, batch_size=%d)", self.queue.maxsize, self.batch_size)

    async def stop(self) -> None:
        if not self.running:
            return
        # 先等待已入队的事件全部落库，再取消消费者
        await self.queue.join()
        self.running = False
        if self.processor_task:
            self.processor_task.cancel()
            try:
                await self.processor_task
            except asyncio.CancelledError:
                pass
            self.processor_task = None
        logger.info("Stopped audit queue - %s", self.stats())

    async def drain(self) -> int:
        """Write everything currently buffered and return the number of events handled."""
        handled = 0
        while not self.queue.empty():
            batch = self._take_nowait(self.batch_size)
            await self._write_batch(batch)
            handled += len(batch)
        return handled

    def stats(self) -> Dict[str, int]:
        return {
            "pending": self.queue.qsize(),
            "written": self.written,
            "dropped": self.dropped,
            "failed": self.failed,
        }

    async def _process_events(self) -> None:
        while self.running:
            try:
                first = await self.queue.get()
                batch = [first] + self._take_nowait(self.batch_size - 1)
                await self._write_batch(batch)
            except asyncio.CancelledError:
                break

    def _take_nowait(self, limit: int) -> List[ActivityEvent]:
        batch: List[ActivityEvent] = []
        while len(batch) < limit:
            try:
                batch.append(self.queue.get_nowait())
            except asyncio.QueueEmpty:
                break
        return batch

    async def _write_batch(self, batch: List[ActivityEvent]) -> None:
        if not batch:
            return
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    session.add_all([event.to_row() for event in batch])
            self.written += len(batch)
        except Exception:
            self.failed += len(batch)
            logger.exception(
                "Failed to persist %d audit event(s): %s",
                len(batch), ", ".join(sorted({event.action for event in batch}))
            )
        finally:
            for _ in batch:
                self.queue.task_done()

# --- Session hooks: 只有提交成功的事务才产生审计事件 ---

@sa_event.listens_for(Session, "after_commit")
def _release_pending_events(session: Session) -> None:
    # 释放 SAVEPOINT 时外层事务仍可能回滚
    if session.in_nested_transaction():
        return
    pending = session.info.pop(PENDING_EVENTS_KEY, None)
    if not pending:
        return
    for queue, activity_event in pending:
        queue.emit(activity_event)

@sa_event.listens_for(Session, "after_soft_rollback")
def _discard_pending_events(session: Session, previous_transaction: SessionTransaction) -> None:
    # SAVEPOINT 回滚不影响外层事务里已经挂起的事件
    if previous_transaction.nested:
        return
    discarded = session.info.pop(PENDING_EVENTS_KEY, None)
    if discarded:
        logger.debug(
            "Discarded %d audit event(s) from a rolled-back transaction: %s",
            len(discarded), ", ".join(sorted({e.action for _, e in discarded}))
        )
