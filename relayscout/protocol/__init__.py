"""
Relay Protocol

Nostr frame codec and the per-relay WebSocket probe session.
"""

from .messages import (
    SocialGraphMessage,
    EventFrame,
    EoseFrame,
    NoticeFrame,
    decode_frame,
    encode_request,
)
from .session import (
    RelaySession,
    RelayProber,
    ProbeResult,
    SessionState,
    DEFAULT_PROBE_TIMEOUT,
)

__all__ = [
    "SocialGraphMessage",
    "EventFrame",
    "EoseFrame",
    "NoticeFrame",
    "decode_frame",
    "encode_request",
    "RelaySession",
    "RelayProber",
    "ProbeResult",
    "SessionState",
    "DEFAULT_PROBE_TIMEOUT",
]
