"""
relayscout Configuration

Explicit configuration values handed to the crawler, the geolocator and the
CLI pipeline. Defaults can be overridden from RELAYS_* environment variables
via AppConfig.from_env(); command-line flags override both.
"""

import os
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field


DEFAULT_SEED = "wss://relay.damus.io"
DEFAULT_GEO_DATABASE_URL = (
    "https://raw.githubusercontent.com/sapics/ip-location-db/refs/heads/main/"
    "dbip-city/dbip-city-ipv4-num.csv.gz"
)

# Nostr kinds: 3 = contact list, 10002 = relay list metadata
CONTACT_LIST_KIND = 3
RELAY_LIST_KIND = 10002


class CrawlerConfig(BaseModel):
    """Relay crawler configuration."""

    seeds: List[str] = Field(
        default_factory=lambda: [DEFAULT_SEED],
        description="Relays to start discovery from"
    )
    max_depth: int = Field(default=3, ge=1, description="Maximum number of crawl rounds")
    batch_size: int = Field(default=10, ge=1, description="Relays probed concurrently per round")
    timeout: float = Field(default=10.0, gt=0, description="Per-relay probe timeout (seconds)")
    event_kinds: List[int] = Field(
        default_factory=lambda: [CONTACT_LIST_KIND, RELAY_LIST_KIND],
        description="Event kinds requested from each relay"
    )
    request_limit: int = Field(default=100, ge=1, description="Result cap sent in the REQ filter")


class GeoConfig(BaseModel):
    """Geolocation database configuration."""

    database_url: str = Field(
        default=DEFAULT_GEO_DATABASE_URL,
        description="Gzip-compressed CSV of IPv4 ranges"
    )
    database_file: Optional[Path] = Field(
        default=None,
        description="Local dataset used instead of downloading (optionally .gz)"
    )
    download_timeout: float = Field(default=120.0, gt=0, description="Dataset download timeout (seconds)")


class AppConfig(BaseModel):
    """Top-level configuration for the command-line pipeline."""

    db_path: Path = Field(default=Path("relays.db"), description="SQLite relay store")
    output: Optional[Path] = Field(default=None, description="Export target (.csv or .json)")
    workers: int = Field(default=8, ge=1, description="Concurrent geolocation lookups")
    crawler: CrawlerConfig = Field(default_factory=CrawlerConfig)
    geo: GeoConfig = Field(default_factory=GeoConfig)

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Build configuration from RELAYS_* environment variables."""
        crawler = {}
        geo = {}

        seed = os.getenv("RELAYS_SEED")
        if seed:
            crawler["seeds"] = [s.strip() for s in seed.split(",") if s.strip()]
        if os.getenv("RELAYS_DEPTH"):
            crawler["max_depth"] = int(os.getenv("RELAYS_DEPTH"))
        if os.getenv("RELAYS_BATCH"):
            crawler["batch_size"] = int(os.getenv("RELAYS_BATCH"))
        if os.getenv("RELAYS_TIMEOUT"):
            crawler["timeout"] = float(os.getenv("RELAYS_TIMEOUT"))
        if os.getenv("RELAYS_GEO_URL"):
            geo["database_url"] = os.getenv("RELAYS_GEO_URL")
        if os.getenv("RELAYS_GEO_FILE"):
            geo["database_file"] = Path(os.getenv("RELAYS_GEO_FILE"))

        output = os.getenv("RELAYS_OUTPUT")
        return cls(
            db_path=Path(os.getenv("RELAYS_DB", "relays.db")),
            output=Path(output) if output else None,
            workers=int(os.getenv("RELAYS_WORKERS", "8")),
            crawler=CrawlerConfig(**crawler),
            geo=GeoConfig(**geo),
        )
