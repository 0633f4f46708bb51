"""
Relay Store: persistent relay records in SQLite.

One row per relay URL. Saving a relay upserts by URL; location columns are
coalesced so a known location is never replaced by an unknown one.
"""

import sqlite3
from datetime import datetime
from pathlib import Path
from threading import RLock
from typing import Any, Dict, List, Optional, Union
from urllib.parse import urlsplit

from relayscout.errors import StoreError
from relayscout.models import GeoLocation, Relay


_SCHEMA = """
CREATE TABLE IF NOT EXISTS relays (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    url TEXT UNIQUE NOT NULL,
    host TEXT NOT NULL,
    is_alive BOOLEAN NOT NULL DEFAULT FALSE,
    last_checked TIMESTAMP,
    latitude REAL,
    longitude REAL,
    country TEXT,
    city TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_relays_host ON relays(host);
CREATE INDEX IF NOT EXISTS idx_relays_is_alive ON relays(is_alive);
CREATE INDEX IF NOT EXISTS idx_relays_location ON relays(latitude, longitude);

CREATE TRIGGER IF NOT EXISTS update_relays_updated_at
AFTER UPDATE ON relays
FOR EACH ROW
BEGIN
    UPDATE relays SET updated_at = CURRENT_TIMESTAMP WHERE id = NEW.id;
END;
"""

_COLUMNS = (
    "id, url, host, is_alive, last_checked, latitude, longitude, "
    "country, city, created_at, updated_at"
)


def host_from_url(url: str) -> str:
    """Host of a relay URL without port; empty if it has none."""
    try:
        return urlsplit(url).hostname or ""
    except ValueError:
        return ""


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromisoformat(value)


class RelayStore:
    """
    SQLite-backed relay records.

    Thread-safe: one connection shared under a re-entrant lock.
    """

    def __init__(self, db_path: Union[str, Path] = "relays.db"):
        """
        Open (and if needed create) the relay database.

        Args:
            db_path: SQLite database file, or ":memory:"

        Raises:
            StoreError: If the database cannot be opened or initialized
        """
        self.db_path = str(db_path)
        self._lock = RLock()

        try:
            self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
            self._conn.executescript(_SCHEMA)
            self._conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"failed to open relay database {self.db_path}: {e}") from e

    def __enter__(self) -> "RelayStore":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def _execute(self, query: str, params: tuple = ()) -> sqlite3.Cursor:
        with self._lock:
            try:
                cursor = self._conn.execute(query, params)
                self._conn.commit()
                return cursor
            except sqlite3.Error as e:
                self._conn.rollback()
                raise StoreError(str(e)) from e

    def _query(self, query: str, params: tuple = ()) -> List[tuple]:
        with self._lock:
            try:
                return self._conn.execute(query, params).fetchall()
            except sqlite3.Error as e:
                raise StoreError(str(e)) from e

    @staticmethod
    def _row_to_relay(row: tuple) -> Relay:
        return Relay(
            id=row[0],
            url=row[1],
            host=row[2],
            is_alive=bool(row[3]),
            last_checked=_parse_timestamp(row[4]),
            latitude=row[5],
            longitude=row[6],
            country=row[7],
            city=row[8],
            created_at=_parse_timestamp(row[9]),
            updated_at=_parse_timestamp(row[10]),
        )

    def save_relay(self, relay: Relay) -> Relay:
        """
        Insert or update a relay keyed by URL.

        Liveness and last_checked always take the new values; location
        fields keep their stored values when the new ones are None.

        Returns:
            The same relay, with host and id filled in
        """
        if not relay.host:
            relay.host = host_from_url(relay.url)
            if not relay.host:
                raise StoreError(f"failed to extract host from URL: {relay.url}")

        last_checked = relay.last_checked.isoformat(sep=" ") if relay.last_checked else None

        self._execute(
            """
            INSERT INTO relays (url, host, is_alive, last_checked, latitude, longitude, country, city)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(url) DO UPDATE SET
                is_alive = excluded.is_alive,
                last_checked = excluded.last_checked,
                latitude = COALESCE(excluded.latitude, latitude),
                longitude = COALESCE(excluded.longitude, longitude),
                country = COALESCE(excluded.country, country),
                city = COALESCE(excluded.city, city)
            """,
            (
                relay.url,
                relay.host,
                relay.is_alive,
                last_checked,
                relay.latitude,
                relay.longitude,
                relay.country,
                relay.city,
            ),
        )

        rows = self._query("SELECT id FROM relays WHERE url = ?", (relay.url,))
        relay.id = rows[0][0]
        return relay

    def get_relay(self, url: str) -> Optional[Relay]:
        rows = self._query(f"SELECT {_COLUMNS} FROM relays WHERE url = ?", (url,))
        return self._row_to_relay(rows[0]) if rows else None

    def get_all_relays(self) -> List[Relay]:
        rows = self._query(f"SELECT {_COLUMNS} FROM relays ORDER BY created_at DESC, id DESC")
        return [self._row_to_relay(row) for row in rows]

    def get_functioning_relays(self) -> List[Relay]:
        rows = self._query(
            f"SELECT {_COLUMNS} FROM relays WHERE is_alive = TRUE ORDER BY last_checked DESC"
        )
        return [self._row_to_relay(row) for row in rows]

    def get_geolocated_relays(self) -> List[Relay]:
        rows = self._query(
            f"SELECT {_COLUMNS} FROM relays "
            "WHERE latitude IS NOT NULL AND longitude IS NOT NULL ORDER BY created_at DESC"
        )
        return [self._row_to_relay(row) for row in rows]

    def update_relay_location(self, url: str, location: GeoLocation):
        self._execute(
            "UPDATE relays SET latitude = ?, longitude = ?, country = ?, city = ? WHERE url = ?",
            (location.latitude, location.longitude, location.country, location.city, url),
        )

    def get_stats(self) -> Dict[str, Any]:
        """Counts of total, functioning and geolocated relays, hosts and countries."""
        def count(query: str) -> int:
            return self._query(query)[0][0]

        return {
            "total_relays": count("SELECT COUNT(*) FROM relays"),
            "functioning_relays": count("SELECT COUNT(*) FROM relays WHERE is_alive = TRUE"),
            "geolocated_relays": count(
                "SELECT COUNT(*) FROM relays WHERE latitude IS NOT NULL AND longitude IS NOT NULL"
            ),
            "unique_hosts": count("SELECT COUNT(DISTINCT host) FROM relays"),
            "unique_countries": count(
                "SELECT COUNT(DISTINCT country) FROM relays WHERE country IS NOT NULL AND country != ''"
            ),
        }

    def close(self):
        with self._lock:
            self._conn.close()
