"""
Relay Probe Session

Opens one WebSocket connection to a relay, subscribes to contact-list and
relay-list events, and classifies the relay alive or dead.

State machine:
    CONNECTING -> SUBSCRIBED -> COLLECTING -> ALIVE | DEAD

- CONNECTING: open the WebSocket (bounded by the probe deadline)
- SUBSCRIBED: send one REQ frame
- COLLECTING: read frames until EOSE (alive), or until a read error, a
  close, the deadline or the stop event (dead)

A single deadline covers connect, send and every read. Any failure marks
only this relay dead; nothing is raised to the caller.
"""

import asyncio
import logging
import secrets
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

import aiohttp

from relayscout.config import CrawlerConfig, CONTACT_LIST_KIND, RELAY_LIST_KIND
from relayscout.errors import FrameDecodeError
from relayscout.protocol.messages import (
    EoseFrame,
    EventFrame,
    NoticeFrame,
    SocialGraphMessage,
    decode_frame,
    encode_request,
)

logger = logging.getLogger(__name__)


# Session constants
DEFAULT_PROBE_TIMEOUT = 10.0  # Seconds for the whole probe
DEFAULT_REQUEST_LIMIT = 100  # Result cap in the REQ filter
CLOSE_TIMEOUT = 2.0  # Seconds allowed for the closing handshake
SUBSCRIPTION_ID_BYTES = 16  # 32 hex characters


class SessionState(Enum):
    """Probe session states."""

    CONNECTING = "connecting"
    SUBSCRIBED = "subscribed"
    COLLECTING = "collecting"
    ALIVE = "alive"
    DEAD = "dead"


@dataclass
class ProbeResult:
    """Outcome of probing one relay."""

    url: str
    is_alive: bool = False
    events: List[SocialGraphMessage] = field(default_factory=list)
    events_received: int = 0  # EVENT frames decoded, kept even when dead
    error: Optional[str] = None


class RelaySession:
    """
    One liveness probe against one relay.

    Not reusable: create a new session per probe.
    """

    def __init__(
        self,
        http: aiohttp.ClientSession,
        url: str,
        timeout: float = DEFAULT_PROBE_TIMEOUT,
        kinds: Optional[List[int]] = None,
        limit: int = DEFAULT_REQUEST_LIMIT,
        stop_event: Optional[asyncio.Event] = None
    ):
        """
        Initialize probe session.

        Args:
            http: Shared aiohttp client session
            url: Relay WebSocket URL
            timeout: Deadline for the whole probe (seconds)
            kinds: Event kinds to request
            limit: Result cap for the request filter
            stop_event: Crawl-wide cancellation signal
        """
        self.http = http
        self.url = url
        self.timeout = timeout
        self.kinds = kinds if kinds is not None else [CONTACT_LIST_KIND, RELAY_LIST_KIND]
        self.limit = limit
        self.stop_event = stop_event

        self.state = SessionState.CONNECTING
        self.subscription_id = secrets.token_hex(SUBSCRIPTION_ID_BYTES)
        self.events: List[SocialGraphMessage] = []
        self.notices: List[str] = []
        self.skipped_frames = 0

        self._deadline = 0.0

    def _remaining(self) -> float:
        return self._deadline - asyncio.get_running_loop().time()

    def _dead(self, error: str) -> ProbeResult:
        self.state = SessionState.DEAD
        logger.debug(f"Relay {self.url} dead: {error}")
        return ProbeResult(
            url=self.url, is_alive=False, events=[], events_received=len(self.events), error=error
        )

    async def run(self) -> ProbeResult:
        """Run the probe to completion."""
        self._deadline = asyncio.get_running_loop().time() + self.timeout

        self.state = SessionState.CONNECTING
        try:
            ws = await asyncio.wait_for(self.http.ws_connect(self.url), timeout=self._remaining())
        except asyncio.TimeoutError:
            return self._dead("connect timed out")
        except (aiohttp.ClientError, OSError, ValueError) as e:
            return self._dead(f"connect failed: {e}")

        try:
            return await self._subscribe_and_collect(ws)
        finally:
            try:
                await asyncio.wait_for(ws.close(), timeout=CLOSE_TIMEOUT)
            except (asyncio.TimeoutError, aiohttp.ClientError, OSError) as e:
                logger.debug(f"Unclean close for {self.url}: {e}")

    async def _subscribe_and_collect(self, ws: aiohttp.ClientWebSocketResponse) -> ProbeResult:
        request = encode_request(self.subscription_id, self.kinds, self.limit)
        try:
            await asyncio.wait_for(ws.send_str(request), timeout=self._remaining())
        except asyncio.TimeoutError:
            return self._dead("send timed out")
        except (aiohttp.ClientError, ConnectionResetError, OSError) as e:
            return self._dead(f"send failed: {e}")
        self.state = SessionState.SUBSCRIBED

        self.state = SessionState.COLLECTING
        while True:
            if self.stop_event is not None and self.stop_event.is_set():
                return self._dead("cancelled")

            remaining = self._remaining()
            if remaining <= 0:
                return self._dead("timed out before EOSE")

            try:
                msg = await asyncio.wait_for(ws.receive(), timeout=remaining)
            except asyncio.TimeoutError:
                return self._dead("timed out before EOSE")
            except (aiohttp.ClientError, OSError) as e:
                return self._dead(f"read failed: {e}")

            if msg.type in (aiohttp.WSMsgType.CLOSE, aiohttp.WSMsgType.CLOSING, aiohttp.WSMsgType.CLOSED):
                return self._dead("connection closed before EOSE")
            if msg.type == aiohttp.WSMsgType.ERROR:
                return self._dead(f"read failed: {ws.exception()}")
            if msg.type not in (aiohttp.WSMsgType.TEXT, aiohttp.WSMsgType.BINARY):
                continue

            try:
                frame = decode_frame(msg.data)
            except FrameDecodeError as e:
                self.skipped_frames += 1
                logger.debug(f"Skipping frame from {self.url}: {e}")
                continue

            if isinstance(frame, EventFrame):
                self.events.append(frame.event)
            elif isinstance(frame, EoseFrame):
                self.state = SessionState.ALIVE
                return ProbeResult(
                    url=self.url, is_alive=True, events=self.events, events_received=len(self.events)
                )
            elif isinstance(frame, NoticeFrame):
                self.notices.append(frame.message)
                logger.info(f"Notice from {self.url}: {frame.message}")


class RelayProber:
    """
    Runs probe sessions over a shared aiohttp client session.

    The crawler calls probe() once per relay per round.
    """

    def __init__(
        self,
        http: aiohttp.ClientSession,
        timeout: float = DEFAULT_PROBE_TIMEOUT,
        kinds: Optional[List[int]] = None,
        limit: int = DEFAULT_REQUEST_LIMIT
    ):
        self.http = http
        self.timeout = timeout
        self.kinds = kinds
        self.limit = limit

        # Statistics
        self.stats: Dict[str, int] = {
            "probes": 0,
            "alive": 0,
            "dead": 0,
            "events_received": 0,
        }

    @classmethod
    def from_config(cls, http: aiohttp.ClientSession, config: CrawlerConfig) -> "RelayProber":
        return cls(
            http,
            timeout=config.timeout,
            kinds=list(config.event_kinds),
            limit=config.request_limit,
        )

    async def probe(self, url: str, stop_event: Optional[asyncio.Event] = None) -> ProbeResult:
        session = RelaySession(
            self.http,
            url,
            timeout=self.timeout,
            kinds=self.kinds,
            limit=self.limit,
            stop_event=stop_event,
        )
        result = await session.run()

        self.stats["probes"] += 1
        self.stats["events_received"] += result.events_received
        if result.is_alive:
            self.stats["alive"] += 1
        else:
            self.stats["dead"] += 1

        return result
