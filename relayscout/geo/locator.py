"""
IPv4 Range Geolocator

Places relays on the map by looking up their IPv4 address in a bulk
IP-range dataset (dbip-city, numeric IPv4 variant).

Dataset format (CSV, optionally gzip-compressed, 9+ columns):
    0: range start (uint32)     1: range end (uint32, inclusive)
    4: country                  5: city
    7: latitude                 8: longitude

Rows with too few fields, unparseable bounds or empty coordinates are
skipped. The table is sorted by range start and searched with a binary
search, which assumes ranges do not overlap.

Loading takes the write side of a reader/writer lock for its whole
duration; lookups take the read side, so they run concurrently once the
table is loaded and wait while a load is in progress.
"""

import csv
import gzip
import io
import ipaddress
import logging
import socket
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, IO, Iterable, List, Optional, Sequence, Tuple, Union
from urllib.parse import urlsplit

import requests

from relayscout.config import GeoConfig
from relayscout.errors import (
    DatabaseLoadError,
    InvalidRelayURL,
    LocationNotFound,
    ResolutionError,
)
from relayscout.geo.rwlock import ReadWriteLock
from relayscout.models import GeoLocation

logger = logging.getLogger(__name__)


# Dataset layout
MIN_FIELDS = 9
FIELD_START = 0
FIELD_END = 1
FIELD_COUNTRY = 4
FIELD_CITY = 5
FIELD_LATITUDE = 7
FIELD_LONGITUDE = 8

MAX_IPV4 = 0xFFFFFFFF
DOWNLOAD_CHUNK_SIZE = 1024 * 1024  # 1MB


@dataclass(frozen=True)
class IPRange:
    """Inclusive range of IPv4 addresses with its location."""

    start: int
    end: int
    latitude: float
    longitude: float
    country: str = ""
    city: str = ""

    def contains(self, address: int) -> bool:
        return self.start <= address <= self.end

    def to_location(self) -> GeoLocation:
        return GeoLocation(
            latitude=self.latitude,
            longitude=self.longitude,
            country=self.country,
            city=self.city,
        )


def _parse_uint32(value: str) -> int:
    text = value.strip()
    if not (text.isascii() and text.isdigit()):
        raise ValueError(f"not an unsigned integer: {value!r}")
    number = int(text)
    if not 0 <= number <= MAX_IPV4:
        raise ValueError(f"out of IPv4 range: {number}")
    return number


def parse_range(record: Sequence[str]) -> Optional[IPRange]:
    """Parse one dataset row; returns None for rows that must be skipped."""
    if len(record) < MIN_FIELDS:
        return None

    try:
        start = _parse_uint32(record[FIELD_START])
        end = _parse_uint32(record[FIELD_END])
    except ValueError:
        return None

    lat_text = record[FIELD_LATITUDE].strip()
    lon_text = record[FIELD_LONGITUDE].strip()
    if not lat_text or not lon_text:
        return None

    try:
        latitude = float(lat_text)
        longitude = float(lon_text)
    except ValueError:
        return None

    return IPRange(
        start=start,
        end=end,
        latitude=latitude,
        longitude=longitude,
        country=record[FIELD_COUNTRY].strip(),
        city=record[FIELD_CITY].strip(),
    )


def parse_ranges(rows: Iterable[Sequence[str]]) -> Tuple[List[IPRange], int]:
    """
    Parse dataset rows into a table sorted by range start.

    Returns:
        (sorted ranges, number of skipped rows)
    """
    ranges = []
    skipped = 0

    for record in rows:
        ip_range = parse_range(record)
        if ip_range is None:
            skipped += 1
            continue
        ranges.append(ip_range)

    ranges.sort(key=lambda r: r.start)
    return ranges, skipped


def _csv_rows(text: IO[str]) -> Iterable[List[str]]:
    """Yield CSV records, dropping lines the csv module cannot parse."""
    reader = csv.reader(text)
    while True:
        try:
            yield next(reader)
        except StopIteration:
            return
        except csv.Error as e:
            logger.debug(f"Skipping unreadable dataset line {reader.line_num}: {e}")


def _system_resolver(host: str) -> List[str]:
    infos = socket.getaddrinfo(host, None, proto=socket.IPPROTO_TCP)
    return [info[4][0] for info in infos]


def extract_host(relay_url: str) -> str:
    """
    Host part of a relay URL, without port.

    Raises:
        InvalidRelayURL: If the URL is not ws:// or wss:// or has no host
    """
    if not relay_url.startswith(("ws://", "wss://")):
        raise InvalidRelayURL(f"invalid relay URL scheme: {relay_url}")

    try:
        host = urlsplit(relay_url).hostname
    except ValueError as e:
        raise InvalidRelayURL(f"failed to parse URL {relay_url}: {e}") from e

    if not host:
        raise InvalidRelayURL(f"relay URL has no host: {relay_url}")
    return host


class GeoLocator:
    """
    Relay geolocation over a sorted IPv4 range table.

    Usage:
        locator = GeoLocator()
        locator.load_database()
        location = locator.locate_relay("wss://relay.damus.io")
    """

    def __init__(
        self,
        config: Optional[GeoConfig] = None,
        resolver: Optional[Callable[[str], List[str]]] = None
    ):
        """
        Initialize geolocator.

        Args:
            config: Dataset location and download settings
            resolver: host -> list of IP address strings (defaults to the
                system resolver)
        """
        self.config = config or GeoConfig()
        self.resolver = resolver or _system_resolver

        self._lock = ReadWriteLock()
        self._ranges: List[IPRange] = []
        self._loaded = False
        self._skipped_rows = 0

    @property
    def is_loaded(self) -> bool:
        with self._lock.read_locked():
            return self._loaded

    def load_database(self):
        """
        Load the range table once.

        Uses the configured local file when set, otherwise downloads the
        gzip-compressed dataset. Does nothing if a table is already loaded.

        Raises:
            DatabaseLoadError: If the dataset cannot be fetched or read
        """
        with self._lock.write_locked():
            if self._loaded:
                return

            if self.config.database_file is not None:
                ranges, skipped = self._read_file(Path(self.config.database_file))
            else:
                ranges, skipped = self._download(self.config.database_url)

            self._install(ranges, skipped)

    def load_from_file(self, path: Union[str, Path]):
        """
        Load the range table from a local CSV file (gunzipped if it ends in .gz).

        Replaces any table loaded before.

        Raises:
            DatabaseLoadError: If the file cannot be opened or read
        """
        with self._lock.write_locked():
            ranges, skipped = self._read_file(Path(path))
            self._install(ranges, skipped)

    def load_from_rows(self, rows: Iterable[Sequence[str]]):
        """Load the range table from already-split CSV records."""
        ranges, skipped = parse_ranges(rows)
        with self._lock.write_locked():
            self._install(ranges, skipped)

    def _install(self, ranges: List[IPRange], skipped: int):
        # Caller holds the write lock
        self._ranges = ranges
        self._skipped_rows = skipped
        self._loaded = True
        logger.info(f"Loaded {len(ranges)} IPv4 ranges ({skipped} rows skipped)")

    def _read_file(self, path: Path) -> Tuple[List[IPRange], int]:
        try:
            if path.suffix == ".gz":
                with gzip.open(path, "rt", encoding="utf-8", errors="replace", newline="") as text:
                    return parse_ranges(_csv_rows(text))
            with open(path, "r", encoding="utf-8", errors="replace", newline="") as text:
                return parse_ranges(_csv_rows(text))
        except (OSError, EOFError) as e:
            raise DatabaseLoadError(f"failed to read geo database {path}: {e}") from e

    def _download(self, url: str) -> Tuple[List[IPRange], int]:
        logger.info(f"Downloading geolocation database from {url}")

        with tempfile.TemporaryFile() as spool:
            try:
                with requests.get(url, stream=True, timeout=self.config.download_timeout) as response:
                    response.raise_for_status()
                    for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                        spool.write(chunk)
            except requests.RequestException as e:
                raise DatabaseLoadError(f"failed to download database: {e}") from e

            spool.seek(0)
            try:
                with gzip.GzipFile(fileobj=spool) as gz:
                    text = io.TextIOWrapper(gz, encoding="utf-8", errors="replace", newline="")
                    return parse_ranges(_csv_rows(text))
            except (OSError, EOFError) as e:
                raise DatabaseLoadError(f"failed to decompress database: {e}") from e

    def lookup_ip(self, address: Union[str, int]) -> Optional[IPRange]:
        """
        Find the range containing an IPv4 address.

        Args:
            address: Dotted-quad string or 32-bit integer

        Returns:
            The matching range, or None
        """
        target = int(ipaddress.IPv4Address(address))

        with self._lock.read_locked():
            ranges = self._ranges
            left, right = 0, len(ranges) - 1
            while left <= right:
                mid = (left + right) // 2
                candidate = ranges[mid]
                if target < candidate.start:
                    right = mid - 1
                elif target > candidate.end:
                    left = mid + 1
                else:
                    return candidate

        return None

    def _resolve_ipv4(self, host: str) -> str:
        try:
            addresses = self.resolver(host)
        except (OSError, UnicodeError) as e:
            raise ResolutionError(f"failed to resolve host {host}: {e}") from e

        for address in addresses:
            try:
                ip = ipaddress.ip_address(address)
            except ValueError:
                continue
            if ip.version == 4:
                return str(ip)

        raise ResolutionError(f"no IPv4 address for host {host}")

    def locate_relay(self, relay_url: str) -> GeoLocation:
        """
        Geolocate a relay from its URL.

        Loads the database first if needed.

        Raises:
            InvalidRelayURL: Not a ws:// or wss:// URL with a host
            ResolutionError: Host did not resolve to an IPv4 address
            LocationNotFound: No range contains the address
            DatabaseLoadError: The database had to be loaded and could not be
        """
        host = extract_host(relay_url)

        if not self.is_loaded:
            self.load_database()

        address = self._resolve_ipv4(host)
        match = self.lookup_ip(address)
        if match is None:
            raise LocationNotFound(host, address)

        logger.debug(f"Located {relay_url} ({address}) in {match.city}, {match.country}")
        return match.to_location()

    def get_stats(self) -> dict:
        with self._lock.read_locked():
            return {
                "loaded": self._loaded,
                "ranges": len(self._ranges),
                "skipped_rows": self._skipped_rows,
            }
