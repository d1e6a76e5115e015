"""Pick which venues (and therefore which events) an import keeps."""

import logging
import random
from typing import Iterable, Optional

from cultural_events.models import FeedEvent, FeedVenue

logger = logging.getLogger(__name__)

MIN_EVENTS_PER_VENUE = 3
SAMPLE_SIZE = 10


def select_candidates(
    venues: Iterable[FeedVenue], events_by_venue: dict[str, list[FeedEvent]]
) -> list[FeedVenue]:
    """Venues with an id, a name, both coordinates and at least 3 events."""
    return [
        v
        for v in venues
        if v.id
        and v.name
        and v.latitude is not None
        and v.longitude is not None
        and len(events_by_venue.get(v.id, ())) >= MIN_EVENTS_PER_VENUE
    ]


def sample_venues(
    candidates: list[FeedVenue],
    size: int = SAMPLE_SIZE,
    rng: Optional[random.Random] = None,
) -> list[FeedVenue]:
    """
    Uniformly sample up to *size* venues.

    The whole candidate list is shuffled (Fisher-Yates) and the prefix kept,
    so every candidate is equally likely to be picked. Pass a seeded ``rng``
    for reproducible picks.
    """
    if len(candidates) < size:
        logger.warning(
            "Only %d venues meet the criteria (need %d); importing what is available",
            len(candidates),
            size,
        )
    if rng is None:
        rng = random.Random()

    shuffled = list(candidates)
    rng.shuffle(shuffled)
    return shuffled[:size]


def events_for_venues(
    events: Iterable[FeedEvent], venues: Iterable[FeedVenue]
) -> list[FeedEvent]:
    venue_ids = {v.id for v in venues}
    return [e for e in events if e.venue_id in venue_ids]
