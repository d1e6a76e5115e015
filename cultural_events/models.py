from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class Region(str, Enum):
    """Coarse Hong Kong region derived from venue coordinates."""

    HONGKONG = "hongkong"
    """Hong Kong Island, south of the harbour."""

    KOWLOON = "kowloon"

    NEWTERRITORIES = "newterritories"

    OTHERS = "others"
    """Missing coordinates or outside the known bounds."""


class FeedVenue(BaseModel):
    """A venue as read from the venues feed."""

    id: str
    name: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class FeedEvent(BaseModel):
    """An event as read from the events feed, with its schedule resolved."""

    id: str
    venue_id: str
    title: str
    description: str = "No description"
    presenter: str = "LCSD"
    date_time: str = Field(
        "TBA",
        description="Inline schedule text, joined event dates, or 'TBA'",
    )


class FeedDocuments(BaseModel):
    """Raw XML bytes of the three LCSD feeds."""

    venues: bytes
    events: bytes
    event_dates: bytes


class ImportResult(BaseModel):
    """Outcome of a successful import run."""

    candidates: int = Field(..., description="Venues that met the selection criteria")
    venues: int = Field(..., description="Venues written to the store")
    events: int = Field(..., description="Events written to the store")
    imported_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class DataSync(BaseModel):
    """What the login hook reports about the session's import."""

    did_import: bool
    last_updated: datetime
