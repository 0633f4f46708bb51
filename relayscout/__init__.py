"""
relayscout - Nostr Relay Discovery and Geolocation

Finds reachable Nostr relays by following relay references found inside
protocol events, then places each relay on the map from its IPv4 address.

Quick Start:
    >>> import asyncio
    >>> from relayscout import RelayCrawler, CrawlerConfig, GeoLocator
    >>>
    >>> crawler = RelayCrawler(CrawlerConfig(max_depth=2))
    >>> crawler.add_seed("wss://relay.damus.io")
    >>> relays = asyncio.run(crawler.discover())
    >>>
    >>> locator = GeoLocator()
    >>> location = locator.locate_relay(relays[0])
    >>> print(location.country, location.city)

Components:
    - Crawler: breadth-first relay discovery with bounded concurrent probes
    - Protocol: WebSocket probe session and frame decoding
    - Geo: IPv4 range table with binary-search lookups
    - Storage: SQLite relay store and JSON/CSV export
"""

from relayscout.config import AppConfig, CrawlerConfig, GeoConfig
from relayscout.crawler.crawler import RelayCrawler
from relayscout.geo.locator import GeoLocator, IPRange
from relayscout.models import DiscoveryStats, GeoLocation, Relay

__version__ = "0.1.0"

__all__ = [
    "AppConfig",
    "CrawlerConfig",
    "GeoConfig",
    "RelayCrawler",
    "GeoLocator",
    "IPRange",
    "DiscoveryStats",
    "GeoLocation",
    "Relay",
]
