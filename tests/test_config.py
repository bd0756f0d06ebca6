from pathlib import Path

import pytest

from claudetheus.analytics import TimeRange
from claudetheus.cli import parse_args
from claudetheus.config import DEFAULT_PROJECTS_DIR, Config


class TestConfigFromEnv:
    def test_defaults(self, monkeypatch: "object") -> "None":
        monkeypatch.delenv("CLAUDE_PROJECTS_DIR", raising=False)
        config = Config.from_env()
        assert config.projects_dir == DEFAULT_PROJECTS_DIR
        assert config.lookback_days == 8
        assert config.snapshot_max_entries == 2000
        assert config.historical_max_entries == 10000

    def test_reads_env_vars(self, monkeypatch: "object") -> "None":
        monkeypatch.setenv("CLAUDE_PROJECTS_DIR", "/data/claude/projects")
        config = Config.from_env()
        assert config.projects_dir == Path("/data/claude/projects")

    def test_resolved_projects_dir_expands_home(self) -> "None":
        config = Config(projects_dir=Path("~/logs"))
        assert config.resolved_projects_dir == Path.home() / "logs"


class TestConfigValidate:
    def test_defaults_are_valid(self) -> "None":
        Config().validate()

    @pytest.mark.parametrize(
        "field", ["refresh_interval", "cache_ttl", "snapshot_max_entries", "top_n"]
    )
    def test_rejects_non_positive(self, field: "str") -> "None":
        config = Config(**{field: 0})
        with pytest.raises(ValueError, match=field):
            config.validate()

    def test_rejects_negative_debounce(self) -> "None":
        with pytest.raises(ValueError):
            Config(debounce_seconds=-1).validate()


class TestParseArgs:
    def test_defaults(self, monkeypatch: "object") -> "None":
        monkeypatch.delenv("CLAUDE_PROJECTS_DIR", raising=False)
        config, report = parse_args([])
        assert config.listen_address == ":9186"
        assert config.refresh_interval == 30
        assert config.cache_ttl == 60
        assert report is None

    def test_flags_override_env(self, monkeypatch: "object") -> "None":
        monkeypatch.setenv("CLAUDE_PROJECTS_DIR", "/from/env")
        config, report = parse_args(
            [
                "--web.listen-address=127.0.0.1:9999",
                "--refresh.interval=5",
                "--cache.ttl=10",
                "--logs.dir=/from/flag",
                "--log.level=debug",
                "--report=30d",
            ]
        )
        assert config.listen_address == "127.0.0.1:9999"
        assert config.refresh_interval == 5
        assert config.cache_ttl == 10
        assert config.projects_dir == Path("/from/flag")
        assert config.log_level == "debug"
        assert report is TimeRange.LAST_30_DAYS

    def test_rejects_unknown_report_range(self) -> "None":
        with pytest.raises(SystemExit):
            parse_args(["--report=1y"])
