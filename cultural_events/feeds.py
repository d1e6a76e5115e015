"""Download the three LCSD XML feeds and read nodes out of them."""

import asyncio
import logging
import xml.etree.ElementTree as ET
from typing import Optional

import httpx

from cultural_events.errors import FetchFailed, ParseFailed
from cultural_events.models import FeedDocuments

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 20.0

# The dates feed has shipped under both root names
EVENT_DATES_ROOTS = ("event_dates", "events")
DATE_LABEL_KEYS = ("indate", "date", "datetime")


# ---------------------------------------------------------------------------
# Fetch
# ---------------------------------------------------------------------------


async def _fetch_body(client: httpx.AsyncClient, url: str, timeout: float) -> bytes:
    resp = await client.get(url, timeout=timeout)
    resp.raise_for_status()
    # Raw bytes: the XML declaration, not the HTTP charset, picks the encoding
    return resp.content


async def fetch_feeds(
    venues_url: str,
    events_url: str,
    event_dates_url: str,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    client: Optional[httpx.AsyncClient] = None,
) -> FeedDocuments:
    """
    Fetch the venues, events and event-dates feeds concurrently.

    All three requests must succeed; if any of them errors, times out or
    returns a non-2xx status the whole fetch fails with :class:`FetchFailed`.

    Args:
        venues_url: URL of the venues feed.
        events_url: URL of the events feed.
        event_dates_url: URL of the event dates feed.
        timeout: Per-request timeout in seconds.
        client: Optional shared client (tests inject a mock transport here).
            When omitted a client is created and closed around the fetch.

    Returns:
        The raw bytes of each feed.
    """
    urls = (venues_url, events_url, event_dates_url)

    async def _gather(c: httpx.AsyncClient) -> list:
        return await asyncio.gather(
            *(_fetch_body(c, url, timeout) for url in urls),
            return_exceptions=True,
        )

    logger.info("Fetching %d feeds (timeout %ss)", len(urls), timeout)
    if client is None:
        async with httpx.AsyncClient(follow_redirects=True) as own_client:
            results = await _gather(own_client)
    else:
        results = await _gather(client)

    for url, result in zip(urls, results):
        if isinstance(result, httpx.HTTPError):
            raise FetchFailed(f"Failed to fetch {url}: {result}") from result
        if isinstance(result, BaseException):
            raise result

    venues_body, events_body, dates_body = results
    logger.info(
        "Fetched feeds: venues %d bytes, events %d bytes, dates %d bytes",
        len(venues_body),
        len(events_body),
        len(dates_body),
    )
    return FeedDocuments(venues=venues_body, events=events_body, event_dates=dates_body)


# ---------------------------------------------------------------------------
# Parse
# ---------------------------------------------------------------------------


def parse_feed(document: str | bytes) -> ET.Element:
    """Parse one feed document and return its root element."""
    try:
        return ET.fromstring(document)
    except ET.ParseError as e:
        raise ParseFailed(f"Malformed feed document: {e}") from e


def _children(root: ET.Element, root_tags: tuple[str, ...], child_tag: str) -> list[ET.Element]:
    if root.tag not in root_tags:
        return []
    return root.findall(child_tag)


def venue_nodes(root: ET.Element) -> list[ET.Element]:
    return _children(root, ("venues",), "venue")


def event_nodes(root: ET.Element) -> list[ET.Element]:
    return _children(root, ("events",), "event")


def event_date_nodes(root: ET.Element) -> list[ET.Element]:
    return _children(root, EVENT_DATES_ROOTS, "event")


def node_text(node: ET.Element, key: str) -> str:
    """
    Trimmed text of the first ``key`` child of *node*.

    ``<x>text</x>`` and ``<x lang="en">text</x>`` read the same. A missing
    child or an element without text gives ``""``.
    """
    child = node.find(key)
    if child is None or child.text is None:
        return ""
    return child.text.strip()


def first_text(node: ET.Element, *keys: str) -> str:
    """Return the first non-empty ``node_text`` among *keys*, in order."""
    for key in keys:
        value = node_text(node, key)
        if value:
            return value
    return ""


def build_event_dates(root: ET.Element) -> dict[str, list[str]]:
    """Map event id to its date labels from the event dates feed."""
    dates: dict[str, list[str]] = {}
    for node in event_date_nodes(root):
        event_id = (node.get("id") or "").strip()
        if not event_id:
            continue
        labels = []
        for key in DATE_LABEL_KEYS:
            for child in node.findall(key):
                label = (child.text or "").strip()
                if label:
                    labels.append(label)
        dates[event_id] = labels
    return dates
