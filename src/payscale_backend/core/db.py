from __future__ import annotations

from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase

from .settings import get_settings
from .logging import get_logger

logger = get_logger(__name__)

_client: Optional[AsyncIOMotorClient] = None


# PUBLIC_INTERFACE
def get_mongo_client() -> AsyncIOMotorClient:
    """Return a singleton AsyncIOMotorClient using settings from environment variables."""
    global _client
    if _client is None:
        settings = get_settings()
        logger.info("Connecting to MongoDB...")
        _client = AsyncIOMotorClient(settings.mongo.MONGODB_URL, tz_aware=True)
    return _client


# PUBLIC_INTERFACE
def get_db() -> AsyncIOMotorDatabase:
    """Get the configured MongoDB database handle."""
    return get_mongo_client()[get_settings().mongo.MONGODB_DB]


def pay_scales_collection() -> AsyncIOMotorCollection:
    return get_db()[get_settings().mongo.PAY_SCALE_COLLECTION]


def personnel_grades_collection() -> AsyncIOMotorCollection:
    return get_db()[get_settings().mongo.PERSONNEL_GRADE_COLLECTION]


def close_mongo_client() -> None:
    global _client
    if _client is not None:
        _client.close()
        _client = None
