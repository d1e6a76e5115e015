"""Import pipeline: fetch LCSD feeds, select venues, refresh MongoDB."""

import asyncio
import logging
import random
import sys
from datetime import datetime, timezone
from typing import MutableMapping, Optional

import httpx
from motor.motor_asyncio import AsyncIOMotorDatabase

from cultural_events.config import Settings, settings as default_settings
from cultural_events.db import close_db, get_db, init_db
from cultural_events.errors import ImportFailed, ImportInProgress
from cultural_events.feeds import (
    build_event_dates,
    event_nodes,
    fetch_feeds,
    parse_feed,
    venue_nodes,
)
from cultural_events.log import setup_logging
from cultural_events.models import DataSync, ImportResult
from cultural_events.normalize import (
    group_events_by_venue,
    normalize_events,
    normalize_venues,
)
from cultural_events.reconcile import last_imported_at, reconcile
from cultural_events.selection import events_for_venues, sample_venues, select_candidates

logger = logging.getLogger(__name__)

# Two imports interleaving their delete/write phases would corrupt both
# collections, so only one may run per process.
_import_lock = asyncio.Lock()

SESSION_SYNC_KEY = "did_sync"


async def _run_pipeline(
    db: AsyncIOMotorDatabase,
    config: Settings,
    seed: Optional[int],
    client: Optional[httpx.AsyncClient],
) -> ImportResult:
    docs = await fetch_feeds(
        config.venues_feed_url,
        config.events_feed_url,
        config.event_dates_feed_url,
        timeout=config.feed_timeout,
        client=client,
    )

    logger.info("Parsing feeds")
    venues_root = parse_feed(docs.venues)
    events_root = parse_feed(docs.events)
    dates_root = parse_feed(docs.event_dates)

    event_dates = build_event_dates(dates_root)
    venues = normalize_venues(venue_nodes(venues_root))
    events = normalize_events(event_nodes(events_root), event_dates)
    logger.info(
        "Normalized %d venues, %d events, %d event date entries",
        len(venues),
        len(events),
        len(event_dates),
    )

    candidates = select_candidates(venues, group_events_by_venue(events))
    rng = random.Random(seed) if seed is not None else None
    selected = sample_venues(candidates, rng=rng)
    selected_events = events_for_venues(events, selected)
    logger.info(
        "Selected %d of %d candidate venues with %d events",
        len(selected),
        len(candidates),
        len(selected_events),
    )

    return await reconcile(
        db,
        selected,
        selected_events,
        candidates=len(candidates),
        now=datetime.now(timezone.utc),
    )


async def run_import(
    db: Optional[AsyncIOMotorDatabase] = None,
    *,
    config: Optional[Settings] = None,
    seed: Optional[int] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> ImportResult:
    """
    Run one full import.

    Raises :class:`ImportInProgress` straight away if another import is
    running, and any other :class:`ImportFailed` subclass if a phase fails.
    Nothing is retried.

    Args:
        db: Target database (defaults to the configured one).
        config: Feed URLs and timeout (defaults to the global settings).
        seed: Seed for venue sampling; leave None in production so each
            import rotates the sample.
        client: Optional HTTP client used for the feed requests.
    """
    if _import_lock.locked():
        raise ImportInProgress("An import is already running")
    if db is None:
        db = get_db()
    if config is None:
        config = default_settings

    async with _import_lock:
        logger.info("Import started")
        try:
            result = await _run_pipeline(db, config, seed, client)
        except ImportFailed as e:
            logger.error("Import failed (%s): %s", type(e).__name__, e)
            raise
        logger.info(
            "Import completed: %d venues, %d events at %s",
            result.venues,
            result.events,
            result.imported_at.isoformat(),
        )
        return result


async def sync_for_session(
    session: MutableMapping,
    db: Optional[AsyncIOMotorDatabase] = None,
    **import_kwargs,
) -> DataSync:
    """
    Import once per login session.

    The session's ``did_sync`` flag is only set after a successful import, so
    a failed import is retried at the next login. Import failures never fail
    the login itself.
    """
    if db is None:
        db = get_db()

    did_import = False
    if not session.get(SESSION_SYNC_KEY):
        try:
            await run_import(db, **import_kwargs)
        except ImportFailed:
            logger.exception("Import on login failed; session stays unsynced")
        else:
            session[SESSION_SYNC_KEY] = True
            did_import = True
    else:
        logger.info("Skipped import (already synced this session)")

    last_updated = await last_imported_at(db)
    return DataSync(
        did_import=did_import,
        last_updated=last_updated or datetime.now(timezone.utc),
    )


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def _parse_seed() -> Optional[int]:
    args = sys.argv[1:]
    for i, a in enumerate(args):
        if a.startswith("--seed="):
            return int(a.split("=", 1)[1])
        if a == "--seed" and i + 1 < len(args):
            return int(args[i + 1])
    return None


async def main() -> None:
    """CLI entry point: run a single import against the configured database."""
    setup_logging(default_settings.log_level)
    seed = _parse_seed()

    await init_db()
    try:
        result = await run_import(seed=seed)
    except ImportFailed as e:
        print(f"Import failed: {e}")
        sys.exit(1)
    finally:
        await close_db()

    print(f"Candidates: {result.candidates}")
    print(f"Imported {result.venues} venues and {result.events} events")
    print(f"Last updated: {result.imported_at.isoformat()}")


if __name__ == "__main__":
    asyncio.run(main())
