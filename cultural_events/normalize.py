"""Turn raw feed nodes into FeedVenue / FeedEvent records."""

import math
import re
import xml.etree.ElementTree as ET
from typing import Iterable, Optional

from cultural_events.feeds import first_text, node_text
from cultural_events.models import FeedEvent, FeedVenue

# Probe order is fixed; each spelling has appeared in a published feed.
LATITUDE_KEYS = ("latitude", "Latitude", "lat")
LONGITUDE_KEYS = ("longitude", "Longitude", "long", "lng")
VENUE_ID_KEYS = ("venueid", "venueId")
PRESENTER_KEYS = ("presentere", "presenterE", "presenter")
INLINE_SCHEDULE_KEYS = ("predateE", "predatee")

DEFAULT_DESCRIPTION = "No description"
DEFAULT_PRESENTER = "LCSD"
UNSCHEDULED = "TBA"


# Leading decimal number, so "22.3 N" reads as 22.3
_NUMBER_PREFIX = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def _to_coordinate(text: str) -> Optional[float]:
    match = _NUMBER_PREFIX.match(text)
    if match is None:
        return None
    value = float(match.group())
    return value if math.isfinite(value) else None


def normalize_venue(node: ET.Element) -> FeedVenue:
    """Read a ``<venue>`` node. Incomplete venues are kept; selection rejects them."""
    return FeedVenue(
        id=(node.get("id") or "").strip(),
        name=node_text(node, "venuee"),
        latitude=_to_coordinate(first_text(node, *LATITUDE_KEYS)),
        longitude=_to_coordinate(first_text(node, *LONGITUDE_KEYS)),
    )


def resolve_schedule(inline: str, dates: Optional[list[str]]) -> str:
    """Inline schedule text, else the joined date entries, else ``"TBA"``."""
    if inline:
        return inline
    if dates:
        return ", ".join(dates)
    return UNSCHEDULED


def normalize_event(
    node: ET.Element, event_dates: dict[str, list[str]]
) -> Optional[FeedEvent]:
    """
    Read an ``<event>`` node.

    Returns None when the id, venue id or title is missing, since such an
    event cannot be linked to a venue.
    """
    event_id = (node.get("id") or "").strip()
    venue_id = first_text(node, *VENUE_ID_KEYS)
    title = node_text(node, "titlee")
    if not (event_id and venue_id and title):
        return None

    return FeedEvent(
        id=event_id,
        venue_id=venue_id,
        title=title,
        description=node_text(node, "desce") or DEFAULT_DESCRIPTION,
        presenter=first_text(node, *PRESENTER_KEYS) or DEFAULT_PRESENTER,
        date_time=resolve_schedule(
            first_text(node, *INLINE_SCHEDULE_KEYS), event_dates.get(event_id)
        ),
    )


def normalize_venues(nodes: Iterable[ET.Element]) -> list[FeedVenue]:
    return [normalize_venue(n) for n in nodes]


def normalize_events(
    nodes: Iterable[ET.Element], event_dates: dict[str, list[str]]
) -> list[FeedEvent]:
    events = []
    for node in nodes:
        event = normalize_event(node, event_dates)
        if event is not None:
            events.append(event)
    return events


def group_events_by_venue(events: Iterable[FeedEvent]) -> dict[str, list[FeedEvent]]:
    grouped: dict[str, list[FeedEvent]] = {}
    for event in events:
        grouped.setdefault(event.venue_id, []).append(event)
    return grouped
