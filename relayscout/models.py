"""
Shared data records: stored relays, geolocations and crawl statistics.
"""

import time
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass
class GeoLocation:
    """Geographic position of a relay."""

    latitude: float
    longitude: float
    country: str = ""
    city: str = ""


@dataclass
class Relay:
    """A relay record as kept by the relay store."""

    url: str
    host: str = ""
    is_alive: bool = False
    last_checked: Optional[datetime] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    country: Optional[str] = None
    city: Optional[str] = None

    # Filled in by the store
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def set_location(self, location: GeoLocation):
        self.latitude = location.latitude
        self.longitude = location.longitude
        self.country = location.country
        self.city = location.city

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-friendly dict (datetimes as ISO-8601)."""
        data = asdict(self)
        for key in ("last_checked", "created_at", "updated_at"):
            if data[key] is not None:
                data[key] = data[key].isoformat()
        return data


@dataclass
class DiscoveryStats:
    """Counters and timing for one crawl."""

    total_relays_found: int = 0  # Relays probed
    functioning_relays: int = 0  # Relays that answered with EOSE
    events_processed: int = 0  # EVENT frames decoded, including from relays later found dead
    rounds_completed: int = 0
    start_time: float = field(default_factory=time.time)
    duration: float = 0.0  # Seconds

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
