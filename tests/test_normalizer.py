"""
Relay URL normalization and candidate extraction tests.
"""

import pytest

from relayscout.crawler.normalizer import extract_relay_candidates, normalize_relay_url


@pytest.mark.unit
class TestNormalizeRelayURL:
    """Test relay reference canonicalization."""

    def test_bare_domain_gets_secure_scheme(self):
        assert normalize_relay_url("example.com") == "wss://example.com"

    def test_loopback_gets_plain_scheme(self):
        assert normalize_relay_url("localhost:7777") == "ws://localhost:7777"
        assert normalize_relay_url("127.0.0.1:7000/path") == "ws://127.0.0.1:7000/path"

    def test_rejects_garbage(self):
        assert normalize_relay_url("not a url///") is None

    def test_whitespace_trimmed(self):
        assert normalize_relay_url("  wss://relay.example.com  ") == "wss://relay.example.com"

    def test_existing_scheme_kept(self):
        assert normalize_relay_url("ws://relay.example.com:8080") == "ws://relay.example.com:8080"
        assert normalize_relay_url("wss://relay.example.com/nostr") == "wss://relay.example.com/nostr"

    def test_ipv4_host_accepted(self):
        assert normalize_relay_url("wss://10.0.0.1:443") == "wss://10.0.0.1:443"

    @pytest.mark.parametrize("raw", [
        "",
        "   ",
        "wss://",
        "wss://-bad-.example.com",
        "wss://relay.example.com:notaport",
        "wss://under_score.example.com",
    ])
    def test_rejected_references(self, raw):
        assert normalize_relay_url(raw) is None

    def test_normalization_is_stable(self):
        once = normalize_relay_url("relay.example.com/path")
        assert normalize_relay_url(once) == once


@pytest.mark.unit
class TestExtractRelayCandidates:
    """Test relay references mined from event tags."""

    def test_r_tags(self, event_factory):
        event = event_factory([["r", "wss://a.example.com"], ["r", "b.example.com", "read"]])

        assert extract_relay_candidates([event]) == ["wss://a.example.com", "wss://b.example.com"]

    def test_p_tag_relay_hint(self, event_factory):
        event = event_factory([["p", "ab" * 32, "wss://hint.example.com"]], kind=3)

        assert extract_relay_candidates([event]) == ["wss://hint.example.com"]

    def test_p_tag_without_hint_ignored(self, event_factory):
        event = event_factory([["p", "ab" * 32]], kind=3)

        assert extract_relay_candidates([event]) == []

    def test_other_tags_ignored(self, event_factory):
        event = event_factory([["e", "wss://not-a-relay.example.com"], ["r"], []])

        assert extract_relay_candidates([event]) == []

    def test_invalid_references_dropped(self, event_factory):
        event = event_factory([["r", "wss://bad host.example.com"], ["r", "wss://ok.example.com"]])

        assert extract_relay_candidates([event]) == ["wss://ok.example.com"]

    def test_duplicates_collapse_in_first_seen_order(self, event_factory):
        events = [
            event_factory([["r", "wss://b.example.com"], ["r", "a.example.com"]]),
            event_factory([["p", "ab" * 32, "b.example.com"], ["r", "wss://c.example.com"]], event_id="e2"),
        ]

        assert extract_relay_candidates(events) == [
            "wss://b.example.com",
            "wss://a.example.com",
            "wss://c.example.com",
        ]

    def test_no_events(self):
        assert extract_relay_candidates([]) == []
