"""
Relay Crawler

Breadth-first relay discovery: frontier, normalizer and crawler.
"""

from .crawler import RelayCrawler
from .frontier import Frontier, CrawlStats
from .normalizer import normalize_relay_url, extract_relay_candidates

__all__ = [
    "RelayCrawler",
    "Frontier",
    "CrawlStats",
    "normalize_relay_url",
    "extract_relay_candidates",
]
