#!/usr/bin/env python3
"""
relayscout Command-Line Interface

Commands:
- discover: Crawl relays from the seed(s) and store the alive ones
- geolocate: Geolocate stored relays that have no location yet
- full: discover, then geolocate, then print stats
- stats: Print relay database statistics
- export: Write stored relays to a .json or .csv file

Settings come from RELAYS_* environment variables; flags override them.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from relayscout.config import AppConfig
from relayscout.errors import DatabaseLoadError, StoreError
from relayscout.geo.locator import GeoLocator
from relayscout.pipeline import run_discovery, run_geolocation
from relayscout.storage.export import export_relays
from relayscout.storage.relay_store import RelayStore


class RelayScoutCLI:
    """CLI for relay discovery, geolocation and export."""

    def __init__(self, config: Optional[AppConfig] = None):
        self.config = config

    def _open_store(self) -> RelayStore:
        return RelayStore(self.config.db_path)

    async def discover(self, args) -> int:
        crawler_config = self.config.crawler
        logger.info("🔍 Starting relay discovery with seed(s): {}", ", ".join(crawler_config.seeds))
        logger.info(
            "Max depth: {}, Batch size: {}, Timeout: {}s",
            crawler_config.max_depth, crawler_config.batch_size, crawler_config.timeout
        )

        with self._open_store() as store:
            alive, stats = await run_discovery(crawler_config, store)

        logger.info("✅ Discovery completed:")
        logger.info("   Relays probed: {}", stats.total_relays_found)
        logger.info("   Functioning relays: {}", stats.functioning_relays)
        logger.info("   Events processed: {}", stats.events_processed)
        logger.info("   Rounds: {}", stats.rounds_completed)
        logger.info("   Duration: {:.1f}s", stats.duration)
        return 0

    async def geolocate(self, args) -> int:
        locator = GeoLocator(self.config.geo)
        logger.info("🌍 Loading geolocation database...")

        with self._open_store() as store:
            summary = await asyncio.to_thread(run_geolocation, locator, store, self.config.workers)

        logger.info(
            "✅ Geolocation completed: {} located, {} failed, {} already located",
            summary.located, summary.failed, summary.skipped
        )
        return 0

    async def full(self, args) -> int:
        logger.info("Starting full discovery and geolocation process...")

        status = await self.discover(args)
        if status != 0:
            return status
        logger.info("Discovery phase completed")

        status = await self.geolocate(args)
        if status != 0:
            return status
        logger.info("Geolocation phase completed")

        return await self.stats(args)

    async def stats(self, args) -> int:
        with self._open_store() as store:
            stats = store.get_stats()

        print("=== Relay Database Statistics ===")
        for key, value in stats.items():
            print(f"  {key:<20} {value}")
        return 0

    async def export(self, args) -> int:
        output = self.config.output
        if output is None:
            logger.error("❌ Output file must be specified with --output")
            return 1

        with self._open_store() as store:
            relays = store.get_all_relays()

        count = export_relays(relays, output)
        logger.info("✅ Exported {} relays to {}", count, output)
        return 0

    def create_parser(self) -> argparse.ArgumentParser:
        """Create argument parser."""
        parser = argparse.ArgumentParser(
            prog="relayscout",
            description="Nostr relay discovery and geolocation tool",
            formatter_class=argparse.RawDescriptionHelpFormatter
        )

        parser.add_argument("--db", type=Path, help="SQLite database path (default: relays.db)")
        parser.add_argument(
            "--seed", action="append",
            help="Seed relay to start discovery (repeatable, default: wss://relay.damus.io)"
        )
        parser.add_argument("--depth", type=int, help="Maximum discovery depth (default: 3)")
        parser.add_argument("--batch", type=int, help="Batch size for concurrent probes (default: 10)")
        parser.add_argument("--timeout", type=float, help="Relay probe timeout in seconds (default: 10)")
        parser.add_argument("--output", type=Path, help="Output file for export (.json or .csv)")
        parser.add_argument("--geo-file", type=Path, help="Local geo dataset instead of downloading")
        parser.add_argument("--workers", type=int, help="Concurrent geolocation lookups (default: 8)")
        parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

        subparsers = parser.add_subparsers(dest="command", help="Commands")
        subparsers.add_parser("discover", help="Discover relays")
        subparsers.add_parser("geolocate", help="Geolocate discovered relays")
        subparsers.add_parser("full", help="Run discovery and geolocation")
        subparsers.add_parser("stats", help="Show database statistics")
        subparsers.add_parser("export", help="Export relay data")

        return parser

    def build_config(self, args) -> AppConfig:
        """Environment configuration with command-line overrides applied."""
        config = AppConfig.from_env()

        crawler = config.crawler.model_dump()
        if args.seed:
            crawler["seeds"] = args.seed
        if args.depth is not None:
            crawler["max_depth"] = args.depth
        if args.batch is not None:
            crawler["batch_size"] = args.batch
        if args.timeout is not None:
            crawler["timeout"] = args.timeout

        geo = config.geo.model_dump()
        if args.geo_file is not None:
            geo["database_file"] = args.geo_file

        app = config.model_dump(exclude={"crawler", "geo"})
        if args.db is not None:
            app["db_path"] = args.db
        if args.output is not None:
            app["output"] = args.output
        if args.workers is not None:
            app["workers"] = args.workers

        return AppConfig(**app, crawler=crawler, geo=geo)

    async def run_async(self, args) -> int:
        """Run CLI command asynchronously."""
        handlers = {
            "discover": self.discover,
            "geolocate": self.geolocate,
            "full": self.full,
            "stats": self.stats,
            "export": self.export,
        }
        handler = handlers.get(args.command)
        if handler is None:
            logger.error("❌ Unknown command. Use --help for usage.")
            return 1

        try:
            return await handler(args)
        except (DatabaseLoadError, StoreError) as e:
            logger.error("❌ {}", e)
            return 1

    def run(self, argv=None) -> int:
        """Run CLI (entry point)."""
        parser = self.create_parser()
        args = parser.parse_args(argv)

        if not args.command:
            parser.print_help()
            return 1

        level = "DEBUG" if args.verbose else "INFO"
        logger.remove()
        logger.add(sys.stderr, level=level)
        logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

        try:
            self.config = self.build_config(args)
        except ValueError as e:
            logger.error("❌ Invalid configuration: {}", e)
            return 1

        return asyncio.run(self.run_async(args))


def main():
    """CLI entry point."""
    cli = RelayScoutCLI()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()
