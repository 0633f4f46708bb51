"""
Nostr Relay Frames

Encoding of the outbound subscription request and decoding of inbound relay
frames.

Wire format (JSON arrays, one per WebSocket text message):
- Outbound: ["REQ", <subscription_id>, <filter>]
- Inbound:  ["EVENT", <subscription_id>, <event>]
            ["EOSE", <subscription_id>]
            ["NOTICE", <message>]

Inbound frames are decoded in two steps: the leading type string is read
first, then the frame is handed to the decoder registered for that type.
Types without a decoder decode to None and are ignored by the caller.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union

from relayscout.errors import FrameDecodeError


# Frame type tags
FRAME_REQ = "REQ"
FRAME_EVENT = "EVENT"
FRAME_EOSE = "EOSE"
FRAME_NOTICE = "NOTICE"


@dataclass
class SocialGraphMessage:
    """
    A Nostr event as returned by a relay.

    Only the tags are inspected by the crawler; signatures and content are
    carried along untouched.
    """

    id: str
    pubkey: str
    kind: int
    tags: List[List[str]] = field(default_factory=list)
    content: str = ""
    sig: str = ""
    created_at: int = 0

    @staticmethod
    def from_dict(data: Any) -> "SocialGraphMessage":
        """
        Build a message from a decoded JSON event object.

        Raises:
            FrameDecodeError: If the object is not a well-formed event
        """
        if not isinstance(data, dict):
            raise FrameDecodeError(f"event must be an object, got {type(data).__name__}")

        kind = data.get("kind", 0)
        if not isinstance(kind, int) or isinstance(kind, bool):
            raise FrameDecodeError(f"event kind must be an integer: {kind!r}")

        tags = data.get("tags") or []
        if not isinstance(tags, list):
            raise FrameDecodeError("event tags must be an array")
        for tag in tags:
            if not isinstance(tag, list) or not all(isinstance(v, str) for v in tag):
                raise FrameDecodeError(f"malformed tag: {tag!r}")

        created_at = data.get("created_at", 0)
        if not isinstance(created_at, int) or isinstance(created_at, bool):
            raise FrameDecodeError(f"event created_at must be an integer: {created_at!r}")

        return SocialGraphMessage(
            id=str(data.get("id", "")),
            pubkey=str(data.get("pubkey", "")),
            kind=kind,
            tags=tags,
            content=str(data.get("content", "")),
            sig=str(data.get("sig", "")),
            created_at=created_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "pubkey": self.pubkey,
            "kind": self.kind,
            "tags": self.tags,
            "content": self.content,
            "sig": self.sig,
            "created_at": self.created_at,
        }


@dataclass
class EventFrame:
    subscription_id: str
    event: SocialGraphMessage


@dataclass
class EoseFrame:
    subscription_id: str


@dataclass
class NoticeFrame:
    message: str


Frame = Union[EventFrame, EoseFrame, NoticeFrame]


def encode_request(subscription_id: str, kinds: List[int], limit: int) -> str:
    """Encode a REQ frame asking for the given kinds, capped at limit."""
    filter_obj = {"kinds": list(kinds), "limit": limit}
    return json.dumps([FRAME_REQ, subscription_id, filter_obj])


def _decode_event(items: List[Any]) -> EventFrame:
    if len(items) < 3:
        raise FrameDecodeError("EVENT frame without payload")
    return EventFrame(
        subscription_id=str(items[1]),
        event=SocialGraphMessage.from_dict(items[2]),
    )


def _decode_eose(items: List[Any]) -> EoseFrame:
    return EoseFrame(subscription_id=str(items[1]))


def _decode_notice(items: List[Any]) -> NoticeFrame:
    return NoticeFrame(message=str(items[1]))


_DECODERS: Dict[str, Callable[[List[Any]], Frame]] = {
    FRAME_EVENT: _decode_event,
    FRAME_EOSE: _decode_eose,
    FRAME_NOTICE: _decode_notice,
}


def decode_frame(raw: Union[str, bytes]) -> Optional[Frame]:
    """
    Decode one inbound relay frame.

    Args:
        raw: WebSocket message payload

    Returns:
        The decoded frame, or None for frame types this client ignores

    Raises:
        FrameDecodeError: If the payload is not a JSON array with a string
            type tag and at least one argument, or its payload is malformed
    """
    try:
        items = json.loads(raw)
    except (ValueError, UnicodeDecodeError) as e:
        raise FrameDecodeError(f"invalid JSON frame: {e}") from e

    if not isinstance(items, list) or len(items) < 2:
        raise FrameDecodeError("frame must be an array with at least two elements")

    frame_type = items[0]
    if not isinstance(frame_type, str):
        raise FrameDecodeError(f"frame type must be a string: {frame_type!r}")

    decoder = _DECODERS.get(frame_type)
    if decoder is None:
        return None

    return decoder(items)
