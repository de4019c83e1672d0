# foodshare/core/db.py
from functools import lru_cache

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from foodshare.core.config import get_settings


@lru_cache
def get_client() -> AsyncIOMotorClient:
    # tz_aware so created_at/available_until come back as UTC-aware datetimes
    return AsyncIOMotorClient(get_settings().mongo_uri, uuidRepresentation="standard", tz_aware=True)


def get_db() -> AsyncIOMotorDatabase:
    return get_client()[get_settings().mongo_db]


async def ensure_index(col, keys, name: str, **kwargs):
    existing = [ix["name"] async for ix in col.list_indexes()]
    if name in existing:
        return
    await col.create_index(keys, name=name, **kwargs)


async def ensure_indexes(db: AsyncIOMotorDatabase):
    await ensure_index(db.donations, [("status", ASCENDING), ("created_at", DESCENDING)], "status_1_created_at_-1")
    await ensure_index(db.donations, [("donor_id", ASCENDING), ("created_at", DESCENDING)], "donor_id_1_created_at_-1")
    await ensure_index(db.users, [("email", ASCENDING)], "email_1", unique=True)
