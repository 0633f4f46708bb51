"""
Relay Geolocation

IPv4 range table loading and binary-search lookups.
"""

from .locator import (
    GeoLocator,
    IPRange,
    extract_host,
    parse_range,
    parse_ranges,
)
from .rwlock import ReadWriteLock

__all__ = [
    "GeoLocator",
    "IPRange",
    "extract_host",
    "parse_range",
    "parse_ranges",
    "ReadWriteLock",
]
