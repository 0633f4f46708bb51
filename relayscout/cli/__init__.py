"""
relayscout CLI
"""

from .relays_cli import RelayScoutCLI, main

__all__ = ["RelayScoutCLI", "main"]
