"""
Relay frame encoding and decoding tests.
"""

import json

import pytest

from relayscout.errors import FrameDecodeError
from relayscout.protocol.messages import (
    EoseFrame,
    EventFrame,
    NoticeFrame,
    SocialGraphMessage,
    decode_frame,
    encode_request,
)


EVENT = {
    "id": "abc",
    "pubkey": "f" * 64,
    "kind": 10002,
    "tags": [["r", "wss://relay.example.com"], ["r", "wss://other.example.com", "write"]],
    "content": "",
    "sig": "0" * 128,
    "created_at": 1700000000,
}


@pytest.mark.unit
class TestEncodeRequest:
    """Test outbound REQ frame."""

    def test_request_layout(self):
        frame = json.loads(encode_request("sub1", [3, 10002], 100))

        assert frame == ["REQ", "sub1", {"kinds": [3, 10002], "limit": 100}]


@pytest.mark.unit
class TestDecodeFrame:
    """Test inbound frame dispatch."""

    def test_event(self):
        frame = decode_frame(json.dumps(["EVENT", "sub1", EVENT]))

        assert isinstance(frame, EventFrame)
        assert frame.subscription_id == "sub1"
        assert frame.event.kind == 10002
        assert frame.event.tags[1] == ["r", "wss://other.example.com", "write"]
        assert frame.event.to_dict() == EVENT

    def test_eose(self):
        frame = decode_frame('["EOSE", "sub1"]')

        assert frame == EoseFrame(subscription_id="sub1")

    def test_notice(self):
        frame = decode_frame('["NOTICE", "rate limited"]')

        assert frame == NoticeFrame(message="rate limited")

    def test_bytes_payload(self):
        assert decode_frame(b'["EOSE", "sub1"]') == EoseFrame(subscription_id="sub1")

    @pytest.mark.parametrize("raw", [
        '["OK", "abc", true, ""]',
        '["AUTH", "challenge"]',
        '["CLOSED", "sub1", "error: shutting down"]',
    ])
    def test_unknown_types_ignored(self, raw):
        assert decode_frame(raw) is None

    @pytest.mark.parametrize("raw", [
        "not json",
        '{"type": "EVENT"}',
        '["EOSE"]',
        "[]",
        '[42, "sub1"]',
        '["EVENT", "sub1"]',
        '["EVENT", "sub1", "not an object"]',
        '["EVENT", "sub1", {"kind": "three"}]',
        '["EVENT", "sub1", {"kind": 3, "tags": [["p", 7]]}]',
        '["EVENT", "sub1", {"kind": 3, "tags": "r"}]',
    ])
    def test_malformed_frames_raise(self, raw):
        with pytest.raises(FrameDecodeError):
            decode_frame(raw)


@pytest.mark.unit
class TestSocialGraphMessage:
    """Test event object validation."""

    def test_defaults_for_missing_fields(self):
        message = SocialGraphMessage.from_dict({"kind": 3})

        assert message.kind == 3
        assert message.tags == []
        assert message.id == ""
        assert message.created_at == 0

    def test_null_tags_treated_as_empty(self):
        assert SocialGraphMessage.from_dict({"kind": 3, "tags": None}).tags == []

    def test_boolean_kind_rejected(self):
        with pytest.raises(FrameDecodeError):
            SocialGraphMessage.from_dict({"kind": True})
