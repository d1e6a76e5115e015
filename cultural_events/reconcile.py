"""Replace the stored venues and events with a fresh selection."""

import logging
from datetime import datetime, timezone
from typing import Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from cultural_events.errors import WriteFailed
from cultural_events.geo import classify_region
from cultural_events.models import FeedEvent, FeedVenue, ImportResult

logger = logging.getLogger(__name__)

IMPORT_META_KEY = "data_import"


async def _upsert(collection, key: str, value: str, fields: dict) -> ObjectId:
    doc = await collection.find_one_and_update(
        {key: value},
        {"$set": fields},
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )
    return doc["_id"]


async def reconcile(
    db: AsyncIOMotorDatabase,
    venues: list[FeedVenue],
    events: list[FeedEvent],
    *,
    candidates: int,
    now: datetime,
) -> ImportResult:
    """
    Destructively refresh the ``venues`` and ``events`` collections.

    Existing events and venues are deleted first, then the selection is
    written one document at a time. Each venue's ``events`` array is
    overwritten with exactly the events written for it, and the global
    last-import timestamp is updated.

    There is no rollback: a store error part way through leaves whatever was
    already written and raises :class:`WriteFailed`.
    """
    try:
        deleted_events = await db.events.delete_many({})
        deleted_venues = await db.venues.delete_many({})
        logger.info(
            "Cleared %d events and %d venues",
            deleted_events.deleted_count,
            deleted_venues.deleted_count,
        )

        venue_object_ids: dict[str, ObjectId] = {}
        for v in venues:
            venue_object_ids[v.id] = await _upsert(
                db.venues,
                "venue_id",
                v.id,
                {
                    "name": v.name,
                    "latitude": v.latitude,
                    "longitude": v.longitude,
                    "region": classify_region(v.latitude, v.longitude).value,
                    "events": [],
                    "last_updated": now,
                },
            )

        events_by_venue: dict[str, list[ObjectId]] = {}
        written_ids: set[str] = set()
        for e in events:
            venue_oid = venue_object_ids.get(e.venue_id)
            # A repeated feed id keeps its first venue
            if venue_oid is None or e.id in written_ids:
                continue
            written_ids.add(e.id)
            event_oid = await _upsert(
                db.events,
                "event_id",
                e.id,
                {
                    "title": e.title,
                    "venue": venue_oid,
                    "description": e.description,
                    "presenter": e.presenter,
                    "date_time": e.date_time,
                    "last_updated": now,
                },
            )
            events_by_venue.setdefault(e.venue_id, []).append(event_oid)

        for venue_id, event_oids in events_by_venue.items():
            await db.venues.update_one(
                {"venue_id": venue_id},
                {"$set": {"events": event_oids, "last_updated": now}},
            )

        await db.meta.update_one(
            {"key": IMPORT_META_KEY},
            {"$set": {"last_imported_at": now, "updated_at": now}},
            upsert=True,
        )
    except PyMongoError as e:
        raise WriteFailed(f"Store write failed during reconciliation: {e}") from e

    written_events = sum(len(ids) for ids in events_by_venue.values())
    logger.info("Wrote %d venues and %d events", len(venue_object_ids), written_events)
    return ImportResult(
        candidates=candidates,
        venues=len(venue_object_ids),
        events=written_events,
        imported_at=now,
    )


async def last_imported_at(db: AsyncIOMotorDatabase) -> Optional[datetime]:
    """When the last successful import finished, or None if none has run."""
    doc = await db.meta.find_one({"key": IMPORT_META_KEY})
    if not doc:
        return None
    stamp = doc.get("last_imported_at")
    # Stored values are UTC; clients without tz_aware hand them back naive
    if stamp is not None and stamp.tzinfo is None:
        stamp = stamp.replace(tzinfo=timezone.utc)
    return stamp
