"""
Breadth-First Relay Crawler

Discovers Nostr relays by probing known relays and following the relay
references found in the contact-list and relay-list events they return.

Each round:
1. Drain up to batch_size relays from the front of the frontier
2. Probe every drained relay concurrently (one task per relay)
3. Wait for all probes of the round to finish
4. Mine alive relays' events for new relay URLs, in batch order
5. Record round statistics

Rounds repeat until max_depth rounds have run or the frontier is empty.
Probe failures only mark a relay dead; the crawl itself never fails.
"""

import asyncio
import logging
from typing import List, Optional

import aiohttp

from relayscout.config import CrawlerConfig
from relayscout.crawler.frontier import CrawlStats, Frontier
from relayscout.crawler.normalizer import extract_relay_candidates
from relayscout.models import DiscoveryStats
from relayscout.protocol.session import ProbeResult, RelayProber

logger = logging.getLogger(__name__)


class RelayCrawler:
    """
    Relay discovery crawler.

    Usage:
        crawler = RelayCrawler(CrawlerConfig(max_depth=3, batch_size=10))
        crawler.add_seed("wss://relay.damus.io")
        alive = await crawler.discover()
    """

    def __init__(self, config: Optional[CrawlerConfig] = None, prober=None):
        """
        Initialize crawler.

        Args:
            config: Crawl limits and probe settings
            prober: Object with ``async probe(url, stop_event) -> ProbeResult``.
                When None, discover() probes over its own aiohttp session.
        """
        self.config = config or CrawlerConfig()
        self.prober = prober

        self.frontier = Frontier()
        self._stats = CrawlStats()

        logger.info(
            f"Initialized relay crawler (max_depth={self.config.max_depth}, "
            f"batch_size={self.config.batch_size}, timeout={self.config.timeout}s)"
        )

    def add_seed(self, url: str):
        """Queue a seed relay as given; repeated seeds are ignored."""
        if self.frontier.try_enqueue(url):
            logger.debug(f"Added seed relay {url}")

    async def discover(self, stop_event: Optional[asyncio.Event] = None) -> List[str]:
        """
        Run the crawl.

        Args:
            stop_event: When set, in-flight probes end at their next read and
                no further round starts

        Returns:
            URLs of every relay found alive, in the order they were probed
        """
        self._stats.start()
        try:
            if self.prober is not None:
                return await self._crawl(self.prober, stop_event)

            async with aiohttp.ClientSession() as http:
                prober = RelayProber.from_config(http, self.config)
                return await self._crawl(prober, stop_event)
        finally:
            self._stats.finish()
            stats = self._stats.snapshot()
            logger.info(
                f"Discovery finished: {stats.functioning_relays}/{stats.total_relays_found} "
                f"relays alive, {stats.events_processed} events, {stats.duration:.1f}s"
            )

    async def _crawl(self, prober, stop_event: Optional[asyncio.Event]) -> List[str]:
        alive_relays: List[str] = []
        depth = 0

        while depth < self.config.max_depth:
            if stop_event is not None and stop_event.is_set():
                logger.info("Discovery stopped by request")
                break

            batch = self.frontier.drain_batch(self.config.batch_size)
            if not batch:
                break

            logger.info(f"Starting depth {depth} with {len(batch)} relays ({len(self.frontier)} queued)")

            results = await self._probe_batch(prober, batch, stop_event)

            alive = 0
            events = 0
            discovered = 0
            for result in results:
                events += result.events_received
                if not result.is_alive:
                    continue

                alive += 1
                alive_relays.append(result.url)
                candidates = extract_relay_candidates(result.events)
                discovered += len(self.frontier.enqueue_all(candidates))

            self._stats.record_round(probed=len(batch), alive=alive, events=events)
            logger.info(
                f"Depth {depth} done: {alive}/{len(batch)} alive, "
                f"{discovered} new relays queued"
            )
            depth += 1

        return alive_relays

    async def _probe_batch(
        self,
        prober,
        batch: List[str],
        stop_event: Optional[asyncio.Event]
    ) -> List[ProbeResult]:
        """Probe every relay in the batch concurrently; results keep batch order."""
        outcomes = await asyncio.gather(
            *(prober.probe(url, stop_event) for url in batch),
            return_exceptions=True
        )

        results = []
        for url, outcome in zip(batch, outcomes):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            if isinstance(outcome, BaseException):
                logger.warning(f"Probe of {url} raised {outcome!r}")
                results.append(ProbeResult(url=url, is_alive=False, error=repr(outcome)))
            else:
                results.append(outcome)
        return results

    def get_stats(self) -> DiscoveryStats:
        """Snapshot of discovery statistics (safe to call mid-crawl)."""
        return self._stats.snapshot()
