"""
Thread-safe crawl state for the relay crawler.

- Frontier: FIFO queue of relays awaiting a probe plus the visited set of
  every relay ever enqueued. A relay is enqueued at most once per crawl.
- CrawlStats: discovery counters and timing, updated once per round.

Each aggregate owns a single lock and only exposes atomic operations.
"""

import time
from collections import deque
from dataclasses import replace
from threading import Lock
from typing import Deque, Iterable, List, Set

from relayscout.models import DiscoveryStats


class Frontier:
    """Relays waiting to be probed, and every relay ever queued."""

    def __init__(self):
        self._lock = Lock()
        self._queue: Deque[str] = deque()
        self._visited: Set[str] = set()

    def try_enqueue(self, url: str) -> bool:
        """
        Queue a relay unless it was queued before.

        Returns:
            True if the relay was added
        """
        with self._lock:
            if url in self._visited:
                return False
            self._visited.add(url)
            self._queue.append(url)
            return True

    def enqueue_all(self, urls: Iterable[str]) -> List[str]:
        """Queue each new relay in order; returns the ones actually added."""
        added = []
        with self._lock:
            for url in urls:
                if url in self._visited:
                    continue
                self._visited.add(url)
                self._queue.append(url)
                added.append(url)
        return added

    def drain_batch(self, size: int) -> List[str]:
        """Remove and return up to size relays from the front of the queue."""
        with self._lock:
            count = min(size, len(self._queue))
            return [self._queue.popleft() for _ in range(count)]

    def pending(self) -> List[str]:
        """Snapshot of the queued relays, front first."""
        with self._lock:
            return list(self._queue)

    @property
    def visited_count(self) -> int:
        with self._lock:
            return len(self._visited)

    def __contains__(self, url: str) -> bool:
        with self._lock:
            return url in self._visited

    def __len__(self) -> int:
        with self._lock:
            return len(self._queue)


class CrawlStats:
    """Lock-guarded DiscoveryStats with per-round updates."""

    def __init__(self):
        self._lock = Lock()
        self._stats = DiscoveryStats()
        self._started = time.monotonic()
        self._running = False

    def start(self):
        with self._lock:
            self._stats = DiscoveryStats(start_time=time.time())
            self._started = time.monotonic()
            self._running = True

    def record_round(self, probed: int, alive: int, events: int):
        with self._lock:
            self._stats.total_relays_found += probed
            self._stats.functioning_relays += alive
            self._stats.events_processed += events
            self._stats.rounds_completed += 1

    def finish(self):
        with self._lock:
            self._stats.duration = time.monotonic() - self._started
            self._running = False

    def snapshot(self) -> DiscoveryStats:
        """Copy of the current stats; duration runs up to now mid-crawl."""
        with self._lock:
            stats = replace(self._stats)
            if self._running:
                stats.duration = time.monotonic() - self._started
            return stats
