# tests/scripts/test_seed_profiles.py

import json
import pytest
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from seed_profiles import load_profiles, seed_profiles
from teamhub.models import Profile

pytestmark = pytest.mark.asyncio


async def test_bundled_seed_file_is_valid():
    entries = load_profiles()

    assert len(entries) == 4
    assert {e.email for e in entries} >= {"owner@example.com", "viewer@example.com"}


async def test_seed_profiles_is_idempotent(db_session: AsyncSession):
    entries = load_profiles()

    assert await seed_profiles(db_session, entries) == 4
    assert await seed_profiles(db_session, entries) == 0

    emails = (await db_session.execute(select(Profile.email))).scalars().all()
    assert len(emails) == 4


async def test_invalid_seed_file_fails_loudly(tmp_path):
    path = tmp_path / "profiles.json"
    path.write_text(json.dumps([{"id": "x", "email": "not-an-email"}]))

    with pytest.raises(ValidationError):
        load_profiles(path)


async def test_missing_seed_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_profiles(tmp_path / "absent.json")
