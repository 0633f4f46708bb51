"""
Command-line interface tests.
"""

import json
from pathlib import Path

import pytest

from relayscout.cli.relays_cli import RelayScoutCLI
from relayscout.config import DEFAULT_SEED, AppConfig
from relayscout.models import Relay
from relayscout.storage.relay_store import RelayStore


@pytest.fixture
def populated_db(tmp_path):
    path = tmp_path / "relays.db"
    with RelayStore(path) as store:
        store.save_relay(Relay(url="wss://a.example.com", is_alive=True))
        store.save_relay(Relay(url="wss://b.example.com", is_alive=False))
    return path


@pytest.mark.unit
class TestConfiguration:
    """Test environment and flag configuration."""

    def test_defaults(self, clean_env):
        config = AppConfig.from_env()

        assert config.db_path == Path("relays.db")
        assert config.crawler.seeds == [DEFAULT_SEED]
        assert config.crawler.max_depth == 3
        assert config.crawler.batch_size == 10
        assert config.crawler.timeout == 10.0
        assert config.crawler.event_kinds == [3, 10002]
        assert config.geo.database_file is None

    def test_environment(self, clean_env):
        clean_env.setenv("RELAYS_SEED", "wss://one.example.com, wss://two.example.com")
        clean_env.setenv("RELAYS_DEPTH", "5")
        clean_env.setenv("RELAYS_GEO_FILE", "/data/ranges.csv.gz")
        clean_env.setenv("RELAYS_WORKERS", "2")

        config = AppConfig.from_env()

        assert config.crawler.seeds == ["wss://one.example.com", "wss://two.example.com"]
        assert config.crawler.max_depth == 5
        assert config.geo.database_file == Path("/data/ranges.csv.gz")
        assert config.workers == 2

    def test_flags_override_environment(self, clean_env, tmp_path):
        clean_env.setenv("RELAYS_DEPTH", "5")
        clean_env.setenv("RELAYS_BATCH", "3")

        cli = RelayScoutCLI()
        args = cli.create_parser().parse_args([
            "--db", str(tmp_path / "x.db"),
            "--seed", "wss://a.example.com",
            "--seed", "wss://b.example.com",
            "--depth", "2",
            "--timeout", "1.5",
            "stats",
        ])
        config = cli.build_config(args)

        assert config.db_path == tmp_path / "x.db"
        assert config.crawler.seeds == ["wss://a.example.com", "wss://b.example.com"]
        assert config.crawler.max_depth == 2
        assert config.crawler.batch_size == 3
        assert config.crawler.timeout == 1.5


@pytest.mark.unit
class TestCommands:
    """Test command dispatch."""

    def test_no_command(self, clean_env):
        assert RelayScoutCLI().run([]) == 1

    def test_stats(self, clean_env, populated_db, capsys):
        assert RelayScoutCLI().run(["--db", str(populated_db), "stats"]) == 0

        out = capsys.readouterr().out
        assert "total_relays" in out
        assert "functioning_relays" in out

    def test_export_json(self, clean_env, populated_db, tmp_path):
        output = tmp_path / "relays.json"

        assert RelayScoutCLI().run(["--db", str(populated_db), "--output", str(output), "export"]) == 0

        records = json.loads(output.read_text())
        assert sorted(r["url"] for r in records) == ["wss://a.example.com", "wss://b.example.com"]

    def test_export_csv(self, clean_env, populated_db, tmp_path):
        output = tmp_path / "relays.csv"

        assert RelayScoutCLI().run(["--db", str(populated_db), "--output", str(output), "export"]) == 0

        lines = output.read_text().splitlines()
        assert lines[0].startswith("URL,Host,IsAlive")
        assert len(lines) == 3

    def test_export_requires_output(self, clean_env, populated_db):
        assert RelayScoutCLI().run(["--db", str(populated_db), "export"]) == 1

    def test_invalid_flag_value(self, clean_env, populated_db):
        assert RelayScoutCLI().run(["--db", str(populated_db), "--depth", "0", "stats"]) == 1

    def test_invalid_environment(self, clean_env, populated_db):
        clean_env.setenv("RELAYS_BATCH", "many")

        assert RelayScoutCLI().run(["--db", str(populated_db), "stats"]) == 1

    def test_geolocate_without_dataset(self, clean_env, populated_db, tmp_path):
        missing = tmp_path / "missing.csv"

        code = RelayScoutCLI().run(["--db", str(populated_db), "--geo-file", str(missing), "geolocate"])

        assert code == 1

    def test_geolocate_with_local_dataset(self, clean_env, populated_db, tmp_path, monkeypatch):
        dataset = tmp_path / "ranges.csv"
        dataset.write_text("0,4294967295,,,ZZ,Everywhere,,10.0,20.0\n")
        monkeypatch.setattr(
            "relayscout.geo.locator._system_resolver", lambda host: ["192.0.2.1"]
        )

        code = RelayScoutCLI().run(["--db", str(populated_db), "--geo-file", str(dataset), "geolocate"])

        assert code == 0
        with RelayStore(populated_db) as store:
            relay = store.get_relay("wss://a.example.com")
            assert relay.city == "Everywhere"
            assert store.get_relay("wss://b.example.com").has_location is False
