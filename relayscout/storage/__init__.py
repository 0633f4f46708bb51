"""
Relay Storage

SQLite relay store and JSON/CSV export.
"""

from .relay_store import RelayStore, host_from_url
from .export import export_relays, CSV_HEADER

__all__ = [
    "RelayStore",
    "host_from_url",
    "export_relays",
    "CSV_HEADER",
]
