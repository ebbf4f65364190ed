# inkmatch/db/mongo.py
import logging
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING
from inkmatch.core.config import Settings
import certifi

logger = logging.getLogger(__name__)

_client: AsyncIOMotorClient | None = None
_db: AsyncIOMotorDatabase | None = None


def get_client() -> AsyncIOMotorClient:
    assert _client is not None, "Mongo client not initialized"
    return _client


def get_db() -> AsyncIOMotorDatabase:
    assert _db is not None, "Mongo DB not initialized"
    return _db


async def connect(settings: Settings):
    """
    Create Motor client with explicit CA bundle.
    Do not crash the app if the initial ping fails: keep a lazy client so
    requests can retry once the cluster is reachable.
    """
    global _client, _db

    def _new_client() -> AsyncIOMotorClient:
        kwargs = {}
        if settings.MONGO_URI.startswith("mongodb+srv"):
            kwargs["tlsCAFile"] = certifi.where()   # SRV implies TLS; containers lack a CA bundle
        return AsyncIOMotorClient(
            settings.MONGO_URI,
            tz_aware=True,                          # stored datetimes come back UTC-aware
            uuidRepresentation="standard",
            serverSelectionTimeoutMS=6000,
            connectTimeoutMS=6000,
            **kwargs,
        )

    try:
        _client = _new_client()
        _db = _client[settings.MONGO_DB]
        await _client.admin.command("ping")
        logger.info("Mongo connected (ping ok) db=%s", settings.MONGO_DB)
        await ensure_indexes(_db)
    except Exception as e:
        logger.warning("Mongo ping at startup failed: %s; will connect lazily on first query", e)


async def ensure_indexes(db: AsyncIOMotorDatabase):
    await db["artists"].create_index([("location.latitude", ASCENDING), ("location.longitude", ASCENDING)])
    await db["bookings"].create_index([("customer_id", ASCENDING), ("artist_id", ASCENDING), ("status", ASCENDING)])
    await db["bookings"].create_index([("artist_id", ASCENDING), ("created_at", DESCENDING)])
    await db["schedules"].create_index([("artist_id", ASCENDING), ("day", ASCENDING)])
    await db["appointments"].create_index([("booking_id", ASCENDING)])
    await db["messages"].create_index([("channel_id", ASCENDING), ("created_at", ASCENDING)])


async def disconnect():
    global _client, _db
    if _client:
        _client.close()
    _client = None
    _db = None
