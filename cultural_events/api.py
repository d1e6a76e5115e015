"""FastAPI backend serving imported venues and events and the import triggers.

This app never logs users in. ``/api/session/sync`` and ``/api/import-data`` read
``user_id`` and ``is_admin`` from a session cookie issued by the login service,
which must sign it with the same ``SESSION_SECRET``.
"""

from contextlib import asynccontextmanager
from typing import Optional

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware

from cultural_events.config import settings
from cultural_events.db import close_db, get_db, init_db
from cultural_events.errors import ImportFailed, ImportInProgress
from cultural_events.geo import distance_km
from cultural_events.importer import run_import, sync_for_session
from cultural_events.log import setup_logging
from cultural_events.reconcile import last_imported_at


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.log_level)
    await init_db()
    yield
    await close_db()


app = FastAPI(title="Cultural Events API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.cors_origins.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(SessionMiddleware, secret_key=settings.session_secret)


def _serialize_doc(doc: dict) -> dict:
    """Convert MongoDB document to JSON-safe dict."""
    doc["id"] = str(doc.pop("_id"))
    for key, value in doc.items():
        if isinstance(value, ObjectId):
            doc[key] = str(value)
        elif isinstance(value, list):
            doc[key] = [str(v) if isinstance(v, ObjectId) else v for v in value]
    return doc


def _object_id(value: str, what: str) -> ObjectId:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise HTTPException(status_code=404, detail=f"{what} not found")


# ── Session gates ───────────────────────────────────────────


def require_user(request: Request) -> None:
    if not request.session.get("user_id"):
        raise HTTPException(status_code=401, detail="Not authenticated")


def require_admin(request: Request) -> None:
    if not request.session.get("is_admin"):
        raise HTTPException(status_code=403, detail="Not authorized")


# ── Venues ──────────────────────────────────────────────────


async def _populate_events(db, venues: list[dict]) -> list[dict]:
    """Replace each venue's event ids with the event documents."""
    event_ids = [eid for v in venues for eid in v.get("events", [])]
    events_map = {}
    if event_ids:
        docs = await db.events.find({"_id": {"$in": event_ids}}).to_list(None)
        events_map = {d["_id"]: d for d in docs}

    result = []
    for v in venues:
        events = [
            _serialize_doc(dict(events_map[eid]))
            for eid in v.get("events", [])
            if eid in events_map
        ]
        doc = _serialize_doc(v)
        doc["events"] = events
        result.append(doc)
    return result


@app.get("/api/venues")
async def list_venues(
    search: Optional[str] = Query(None, description="Case-insensitive name filter"),
    lat: Optional[float] = Query(None, description="Latitude for distance filter"),
    lng: Optional[float] = Query(None, description="Longitude for distance filter"),
    distance: Optional[float] = Query(None, description="Max distance in km"),
):
    """List imported venues with their events."""
    db = get_db()
    query: dict = {}
    if search:
        query["name"] = {"$regex": search, "$options": "i"}

    venues = await db.venues.find(query).to_list(None)

    if lat is not None and lng is not None and distance is not None:
        venues = [
            v
            for v in venues
            if v.get("latitude") is not None
            and v.get("longitude") is not None
            and distance_km(lat, lng, v["latitude"], v["longitude"]) <= distance
        ]

    return await _populate_events(db, venues)


@app.get("/api/venues/{venue_id}")
async def get_venue(venue_id: str):
    """Get a single venue by ID, with its events."""
    db = get_db()
    venue = await db.venues.find_one({"_id": _object_id(venue_id, "Venue")})
    if not venue:
        raise HTTPException(status_code=404, detail="Venue not found")
    return (await _populate_events(db, [venue]))[0]


# ── Events ──────────────────────────────────────────────────


async def _populate_venue(db, events: list[dict]) -> list[dict]:
    venue_ids = list({e["venue"] for e in events if e.get("venue")})
    venues_map = {}
    if venue_ids:
        docs = await db.venues.find({"_id": {"$in": venue_ids}}).to_list(None)
        venues_map = {d["_id"]: d for d in docs}

    result = []
    for e in events:
        venue = venues_map.get(e.get("venue"))
        doc = _serialize_doc(e)
        doc["venue"] = _serialize_doc(dict(venue)) if venue else None
        result.append(doc)
    return result


@app.get("/api/events")
async def list_events():
    """List imported events with their venue."""
    db = get_db()
    events = await db.events.find().to_list(None)
    return await _populate_venue(db, events)


@app.get("/api/events/{event_id}")
async def get_event(event_id: str):
    """Get a single event by ID, with its venue."""
    db = get_db()
    event = await db.events.find_one({"_id": _object_id(event_id, "Event")})
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    return (await _populate_venue(db, [event]))[0]


# ── Import ──────────────────────────────────────────────────


@app.post("/api/import-data", dependencies=[Depends(require_admin)])
async def import_data():
    """Run a feed import now (admin only)."""
    try:
        result = await run_import(get_db())
    except ImportInProgress:
        raise HTTPException(status_code=409, detail="Import already running")
    except ImportFailed:
        raise HTTPException(status_code=500, detail="Failed to import data")
    return {
        "message": "Data imported successfully",
        "venues": result.venues,
        "events": result.events,
        "lastUpdated": result.imported_at,
    }


@app.post("/api/session/sync", dependencies=[Depends(require_user)])
async def session_sync(request: Request):
    """Import once for the current login session (called right after login)."""
    data_sync = await sync_for_session(request.session, get_db())
    return {
        "dataSync": {
            "didImport": data_sync.did_import,
            "lastUpdated": data_sync.last_updated,
        }
    }


@app.get("/api/last-updated")
async def last_updated():
    """Timestamp of the last successful import, or null."""
    return {"lastUpdated": await last_imported_at(get_db())}
