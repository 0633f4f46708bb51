"""
Relay export to JSON or CSV.
"""

import csv
import json
from pathlib import Path
from typing import Iterable, Union

from relayscout.models import Relay

CSV_HEADER = ["URL", "Host", "IsAlive", "Latitude", "Longitude", "Country", "City", "LastChecked"]


def _format_coordinate(value) -> str:
    return f"{value:.6f}" if value is not None else ""


def write_csv(relays: Iterable[Relay], path: Path) -> int:
    count = 0
    with open(path, "w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(CSV_HEADER)
        for relay in relays:
            writer.writerow([
                relay.url,
                relay.host,
                "true" if relay.is_alive else "false",
                _format_coordinate(relay.latitude),
                _format_coordinate(relay.longitude),
                relay.country or "",
                relay.city or "",
                relay.last_checked.isoformat() if relay.last_checked else "",
            ])
            count += 1
    return count


def write_json(relays: Iterable[Relay], path: Path) -> int:
    records = [relay.to_dict() for relay in relays]
    with open(path, "w", encoding="utf-8") as f:
        json.dump(records, f, indent=2)
        f.write("\n")
    return len(records)


def export_relays(relays: Iterable[Relay], path: Union[str, Path]) -> int:
    """
    Write relays to path: CSV when the name ends in .csv, JSON otherwise.

    Returns:
        Number of relays written
    """
    path = Path(path)
    if path.suffix.lower() == ".csv":
        return write_csv(relays, path)
    return write_json(relays, path)
