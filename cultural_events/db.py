from datetime import timezone

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from cultural_events.config import settings

_client: AsyncIOMotorClient | None = None


def get_client() -> AsyncIOMotorClient:
    global _client
    if _client is None:
        _client = AsyncIOMotorClient(
            settings.mongodb_uri, tz_aware=True, tzinfo=timezone.utc
        )
    return _client


def get_db() -> AsyncIOMotorDatabase:
    return get_client()[settings.mongodb_db]


async def init_db(db: AsyncIOMotorDatabase | None = None) -> None:
    """Create indexes for venues, events and meta collections."""
    if db is None:
        db = get_db()

    # Feed identifiers are the upsert keys
    await db.venues.create_index("venue_id", unique=True)
    await db.events.create_index("event_id", unique=True)
    await db.events.create_index("venue")

    await db.meta.create_index("key", unique=True)


async def close_db() -> None:
    global _client
    if _client is not None:
        _client.close()
        _client = None
