# src/teamhub/utils/id_generator.py

import uuid
from datetime import datetime, timezone


def generate_uuid() -> str:
    return str(uuid.uuid4())


def utc_now() -> datetime:
    """统一的时钟：返回 naive UTC 时间，与数据库中的 DateTime 列保持一致。"""
    return datetime.now(timezone.utc).replace(tzinfo=None)
