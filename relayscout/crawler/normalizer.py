"""
Relay URL normalization and extraction of relay references from events.
"""

import re
from typing import Iterable, List, Optional
from urllib.parse import urlsplit, urlunsplit

from relayscout.protocol.messages import SocialGraphMessage

WEBSOCKET_SCHEMES = ("ws", "wss")
LOOPBACK_MARKERS = ("localhost", "127.0.0.1")

_DOMAIN_RE = re.compile(
    r"^[a-zA-Z0-9]([a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?(\.[a-zA-Z0-9]([a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)
_IPV4_RE = re.compile(r"^(?:[0-9]{1,3}\.){3}[0-9]{1,3}$")


def _is_valid_host(host: str) -> bool:
    return bool(_DOMAIN_RE.match(host) or _IPV4_RE.match(host))


def normalize_relay_url(raw: str) -> Optional[str]:
    """
    Canonicalize a relay reference into a ws:// or wss:// URL.

    A reference without a scheme gets ws:// when it points at loopback and
    wss:// otherwise.

    Returns:
        The canonical URL, or None if the reference is not a usable relay
    """
    if not raw:
        return None

    raw = raw.strip()
    if not raw:
        return None

    if not raw.lower().startswith(("ws://", "wss://")):
        if any(marker in raw for marker in LOOPBACK_MARKERS):
            raw = "ws://" + raw
        else:
            raw = "wss://" + raw

    try:
        parts = urlsplit(raw)
        parts.port  # Raises ValueError on a malformed port
    except ValueError:
        return None

    if parts.scheme not in WEBSOCKET_SCHEMES:
        return None

    host = parts.netloc.rpartition("@")[2].split(":")[0]
    if not host or not _is_valid_host(host):
        return None

    return urlunsplit(parts)


def extract_relay_candidates(events: Iterable[SocialGraphMessage]) -> List[str]:
    """
    Collect relay URLs referenced by event tags.

    - ["r", <url>, ...] references <url>
    - ["p", <pubkey>, <relay hint>, ...] references <relay hint>

    The "p" rule follows the Nostr convention that the third element of a
    pubkey tag is a recommended relay. It is applied to every event kind.

    Returns:
        Normalized URLs without duplicates, in first-seen order
    """
    found = {}

    for event in events:
        for tag in event.tags:
            if len(tag) < 2:
                continue

            if tag[0] == "r":
                candidate = tag[1]
            elif tag[0] == "p" and len(tag) >= 3:
                candidate = tag[2]
            else:
                continue

            url = normalize_relay_url(candidate)
            if url:
                found.setdefault(url, None)

    return list(found)
