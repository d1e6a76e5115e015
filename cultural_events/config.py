import secrets

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_db: str = "cultural_events"
    cors_origins: str = "http://localhost:5173,http://localhost:3000"

    # Signs the session cookie. The login service that sets user_id/is_admin
    # must share it via SESSION_SECRET; unset, each process gets a random one
    # and no externally issued session is accepted.
    session_secret: str = Field(default_factory=lambda: secrets.token_urlsafe(32))

    # LCSD open data feeds (XML)
    venues_feed_url: str = "https://www.lcsd.gov.hk/datagovhk/event/venues.xml"
    events_feed_url: str = "https://www.lcsd.gov.hk/datagovhk/event/events.xml"
    event_dates_feed_url: str = "https://www.lcsd.gov.hk/datagovhk/event/eventDates.xml"
    feed_timeout: float = 20.0

    log_level: str = "INFO"

    model_config = {"env_file": ".env"}


settings = Settings()
