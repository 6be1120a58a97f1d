"""
Seeds development profiles from seed_data/profiles.json.

Profiles normally come from the identity provider; locally they are needed so
member lists and invitations can show names. Existing ids are left untouched.

Example command from project root: `python scripts/seed_profiles.py`
"""
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, EmailStr, ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from teamhub.core.config import settings
from teamhub.models import Profile

# --- Setup Logging ---
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

SEED_DATA_DIR = Path(__file__).resolve().parent.parent / "seed_data"

class ProfileSeed(BaseModel):
    id: str
    email: EmailStr
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None

def load_profiles(path: Path = SEED_DATA_DIR / "profiles.json") -> List[ProfileSeed]:
    if not path.exists():
        logger.error("Seed data file not found: %s", path)
        raise FileNotFoundError(f"Seed data file not found: {path}")

    data = json.loads(path.read_text())
    try:
        return [ProfileSeed.model_validate(item) for item in data]
    except ValidationError as e:
        logger.critical("FATAL: Validation failed for %s.", path.name)
        for error in e.errors():
            logger.critical("  - Location: %s | Error: %s", error['loc'], error['msg'])
        raise

async def seed_profiles(db: AsyncSession, entries: List[ProfileSeed]) -> int:
    """Inserts profiles whose id is not present yet; returns the number inserted."""
    existing = set(await db.scalars(select(Profile.id).where(Profile.id.in_([e.id for e in entries]))))
    new_rows = [
        Profile(id=e.id, email=e.email.lower(), full_name=e.full_name, avatar_url=e.avatar_url)
        for e in entries if e.id not in existing
    ]
    db.add_all(new_rows)
    await db.flush()
    logger.info("Seeded %d profile(s), %d already present.", len(new_rows), len(existing))
    return len(new_rows)

async def main():
    engine = create_async_engine(settings.DATABASE_URL, echo=False)
    SessionFactory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    try:
        async with SessionFactory() as db:
            async with db.begin():
                await seed_profiles(db, load_profiles())
    except Exception:
        logger.critical("FATAL ERROR during seeding; the transaction has been rolled back.", exc_info=True)
        sys.exit(1)
    finally:
        await engine.dispose()

if __name__ == "__main__":
    asyncio.run(main())
