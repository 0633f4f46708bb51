"""
Discovery and geolocation pipeline.

Connects the crawler and the geolocator to the relay store:
- run_discovery: crawl from the configured seeds, save alive relays
- run_geolocation: locate stored alive relays that have no location yet
"""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from relayscout.config import CrawlerConfig
from relayscout.crawler.crawler import RelayCrawler
from relayscout.errors import GeoLookupError, StoreError
from relayscout.geo.locator import GeoLocator
from relayscout.models import DiscoveryStats, Relay
from relayscout.storage.relay_store import RelayStore

logger = logging.getLogger(__name__)


@dataclass
class GeolocationSummary:
    """Outcome of one geolocation pass."""

    candidates: int = 0
    located: int = 0
    failed: int = 0
    skipped: int = 0  # Already had a location


async def run_discovery(
    config: CrawlerConfig,
    store: RelayStore,
    prober=None,
    stop_event: Optional[asyncio.Event] = None
) -> Tuple[List[str], DiscoveryStats]:
    """
    Crawl from config.seeds and save every alive relay.

    Returns:
        (alive relay URLs, crawl statistics)
    """
    crawler = RelayCrawler(config, prober=prober)
    for seed in config.seeds:
        crawler.add_seed(seed)

    logger.info(f"Starting relay discovery with seeds: {', '.join(config.seeds)}")
    alive = await crawler.discover(stop_event)

    checked_at = datetime.now(timezone.utc)
    saved = 0
    for url in alive:
        try:
            store.save_relay(Relay(url=url, is_alive=True, last_checked=checked_at))
            saved += 1
        except StoreError as e:
            logger.warning(f"Failed to save relay {url}: {e}")

    logger.info(f"Saved {saved}/{len(alive)} functioning relays")
    return alive, crawler.get_stats()


def run_geolocation(locator: GeoLocator, store: RelayStore, workers: int = 8) -> GeolocationSummary:
    """
    Locate alive relays without a stored location, several at a time.

    Lookup misses are logged and counted; they do not stop the pass.

    Raises:
        DatabaseLoadError: If the geo database cannot be loaded
    """
    locator.load_database()

    relays = store.get_functioning_relays()
    summary = GeolocationSummary(candidates=len(relays))

    pending = [relay for relay in relays if not relay.has_location]
    summary.skipped = len(relays) - len(pending)
    logger.info(f"Geolocating {len(pending)} relays ({summary.skipped} already located)")

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {executor.submit(locator.locate_relay, relay.url): relay for relay in pending}

        for future in as_completed(futures):
            relay = futures[future]
            try:
                location = future.result()
            except GeoLookupError as e:
                summary.failed += 1
                logger.warning(f"Failed to geolocate {relay.url}: {e}")
                continue

            try:
                store.update_relay_location(relay.url, location)
            except StoreError as e:
                summary.failed += 1
                logger.warning(f"Failed to update location for {relay.url}: {e}")
                continue

            summary.located += 1
            logger.info(
                f"({summary.located}/{len(pending)}) Geolocated {relay.url}: "
                f"{location.latitude:.4f}, {location.longitude:.4f} ({location.country}, {location.city})"
            )

    return summary
