"""
Shared pytest fixtures: an in-memory MongoDB, LCSD-style feed documents and
an HTTP client that serves them.
"""

from xml.sax.saxutils import escape

import httpx
import pytest
from mongomock_motor import AsyncMongoMockClient

from cultural_events.config import Settings

VENUES_URL = "https://feeds.test/venues.xml"
EVENTS_URL = "https://feeds.test/events.xml"
EVENT_DATES_URL = "https://feeds.test/eventDates.xml"


@pytest.fixture
def db():
    """A fresh in-memory database per test."""
    return AsyncMongoMockClient(tz_aware=True)["cultural_events_test"]


@pytest.fixture
def feed_settings():
    return Settings(
        venues_feed_url=VENUES_URL,
        events_feed_url=EVENTS_URL,
        event_dates_feed_url=EVENT_DATES_URL,
        feed_timeout=5.0,
    )


def _element(tag: str, value) -> str:
    if value is None:
        return ""
    return f"<{tag}>{escape(str(value))}</{tag}>"


@pytest.fixture
def venues_xml():
    """
    Return a function that renders a venues feed.

    Each venue is a dict with ``id`` and any of ``venuee``, ``latitude``,
    ``longitude`` (or their variant spellings).
    """

    def _venues_xml(venues: list[dict]) -> str:
        nodes = []
        for v in venues:
            fields = "".join(_element(k, val) for k, val in v.items() if k != "id")
            nodes.append(f'<venue id="{v["id"]}">{fields}</venue>')
        return f'<?xml version="1.0" encoding="UTF-8"?><venues>{"".join(nodes)}</venues>'

    return _venues_xml


@pytest.fixture
def events_xml():
    """Return a function that renders an events feed from dicts (``id`` is an attribute)."""

    def _events_xml(events: list[dict]) -> str:
        nodes = []
        for e in events:
            attr = f' id="{e["id"]}"' if e.get("id") else ""
            fields = "".join(_element(k, val) for k, val in e.items() if k != "id")
            nodes.append(f"<event{attr}>{fields}</event>")
        return f'<?xml version="1.0" encoding="UTF-8"?><events>{"".join(nodes)}</events>'

    return _events_xml


@pytest.fixture
def event_dates_xml():
    """Return a function that renders an event dates feed: ``{event_id: [labels]}``."""

    def _event_dates_xml(dates: dict[str, list[str]], root: str = "event_dates") -> str:
        nodes = []
        for event_id, labels in dates.items():
            fields = "".join(_element("indate", label) for label in labels)
            nodes.append(f'<event id="{event_id}">{fields}</event>')
        return f'<?xml version="1.0" encoding="UTF-8"?><{root}>{"".join(nodes)}</{root}>'

    return _event_dates_xml


@pytest.fixture
def lcsd_feeds(venues_xml, events_xml, event_dates_xml):
    """
    Return a function building the three feed documents for a city of venues.

    ``qualifying`` venues each get ``events_per_venue`` events; two extra
    venues never qualify (one has only 2 events, one has no coordinates).
    ``prefix`` keeps ids from different calls apart.
    """

    def _lcsd_feeds(qualifying: int = 20, events_per_venue: int = 3, prefix: str = "") -> dict:
        venues = []
        events = []
        for i in range(qualifying):
            venue_id = f"{prefix}{1000 + i}"
            venues.append(
                {
                    "id": venue_id,
                    "venuee": f"Venue {prefix}{i}",
                    "latitude": 22.28 + i * 0.005,
                    "longitude": 114.15,
                }
            )
            for j in range(events_per_venue):
                events.append(
                    {
                        "id": f"{venue_id}-{j}",
                        "titlee": f"Show {j} at {venue_id}",
                        "venueid": venue_id,
                        "desce": "A show",
                        "predateE": "30/01/2026(Fri)20:00" if j == 0 else None,
                    }
                )

        short_id = f"{prefix}2000"
        venues.append({"id": short_id, "venuee": "Too Few", "latitude": 22.3, "longitude": 114.2})
        for j in range(2):
            events.append({"id": f"{short_id}-{j}", "titlee": "Small show", "venueid": short_id})

        nowhere_id = f"{prefix}3000"
        venues.append({"id": nowhere_id, "venuee": "Nowhere"})
        for j in range(5):
            events.append({"id": f"{nowhere_id}-{j}", "titlee": "Lost show", "venueid": nowhere_id})

        dates = {f"{prefix}1000-1": ["1/2/2026", "2/2/2026"]}
        return {
            VENUES_URL: venues_xml(venues),
            EVENTS_URL: events_xml(events),
            EVENT_DATES_URL: event_dates_xml(dates),
        }

    return _lcsd_feeds


@pytest.fixture
def feed_client():
    """
    Return a function that builds an ``httpx.AsyncClient`` serving fixed bodies.

    ``responses`` maps URL to body text or bytes, or to an int status code to fail with.
    URLs not in the map raise a connection error.
    """

    def _feed_client(responses: dict) -> httpx.AsyncClient:
        def handler(request: httpx.Request) -> httpx.Response:
            url = str(request.url)
            if url not in responses:
                raise httpx.ConnectError("connection refused", request=request)
            body = responses[url]
            if isinstance(body, int):
                return httpx.Response(body, text="error")
            if isinstance(body, bytes):
                return httpx.Response(200, content=body, headers={"content-type": "text/xml; charset=utf-8"})
            return httpx.Response(200, text=body)

        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _feed_client
