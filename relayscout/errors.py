"""
Exception types raised by relayscout.

Probe failures never surface as exceptions; they are recorded on the
ProbeResult. Everything below is raised to callers of the geolocator,
the relay store, or the frame decoder.
"""


class RelayScoutError(Exception):
    """Base class for all relayscout errors."""

    pass


class FrameDecodeError(RelayScoutError):
    """A relay frame or event payload could not be decoded."""

    pass


class GeoLookupError(RelayScoutError):
    """A relay could not be geolocated."""

    pass


class InvalidRelayURL(GeoLookupError):
    """The relay URL has no WebSocket scheme or no host."""

    pass


class ResolutionError(GeoLookupError):
    """The relay host did not resolve to any IPv4 address."""

    pass


class LocationNotFound(GeoLookupError):
    """No range in the geo table contains the relay's address."""

    def __init__(self, host: str, address: str):
        super().__init__(f"no geolocation found for {host} ({address})")
        self.host = host
        self.address = address


class DatabaseLoadError(RelayScoutError):
    """The bulk geo dataset could not be fetched, opened, or read."""

    pass


class StoreError(RelayScoutError):
    """A relay store operation failed."""

    pass
