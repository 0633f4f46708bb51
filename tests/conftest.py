"""
Shared fixtures for relayscout tests.
"""

import asyncio
from typing import Dict, List, Optional

import pytest

from relayscout.protocol.messages import SocialGraphMessage
from relayscout.protocol.session import ProbeResult


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast isolated tests")
    config.addinivalue_line("markers", "integration: tests that open local sockets")


def make_event(tags: List[List[str]], kind: int = 10002, event_id: str = "e1") -> SocialGraphMessage:
    """Build a minimal event carrying the given tags."""
    return SocialGraphMessage(
        id=event_id,
        pubkey="f" * 64,
        kind=kind,
        tags=tags,
        content="",
        sig="0" * 128,
        created_at=1700000000,
    )


class ScriptedProber:
    """
    Prober double: relays listed in `alive` answer with their events,
    every other relay is dead. Records call order and peak concurrency.
    """

    def __init__(self, alive: Optional[Dict[str, List[SocialGraphMessage]]] = None, delay: float = 0.01):
        self.alive = alive or {}
        self.delay = delay
        self.calls: List[str] = []
        self.in_flight = 0
        self.peak_in_flight = 0

    async def probe(self, url: str, stop_event=None) -> ProbeResult:
        self.calls.append(url)
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.in_flight -= 1

        if url in self.alive:
            events = list(self.alive[url])
            return ProbeResult(url=url, is_alive=True, events=events, events_received=len(events))
        return ProbeResult(url=url, is_alive=False, error="unreachable")


@pytest.fixture
def geo_rows():
    """Two adjacent ranges plus rows the parser must skip."""
    return [
        ["100", "199", "", "", "DE", "Berlin", "", "52.52", "13.40"],
        ["0", "99", "", "", "US", "Ashburn", "", "39.04", "-77.49"],
        ["200", "299", "", "", "FR", "Paris", "", "", ""],          # no coordinates
        ["abc", "399", "", "", "GB", "London", "", "51.5", "-0.12"],  # bad start
        ["400", "499", "", "", "JP"],                                  # too few fields
    ]


@pytest.fixture
def clean_env(monkeypatch):
    """Remove RELAYS_* variables so defaults apply."""
    for name in (
        "RELAYS_DB", "RELAYS_SEED", "RELAYS_DEPTH", "RELAYS_BATCH", "RELAYS_TIMEOUT",
        "RELAYS_OUTPUT", "RELAYS_GEO_URL", "RELAYS_GEO_FILE", "RELAYS_WORKERS",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def event_factory():
    return make_event


@pytest.fixture
def prober_factory():
    return ScriptedProber
