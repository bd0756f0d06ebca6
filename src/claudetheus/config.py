import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_PROJECTS_DIR = Path("~/.claude/projects")


@dataclass
class Config:
    # listen_address: format ":9186" or
    # "0.0.0.0:9186"
    listen_address: "str" = ":9186"
    # periodic refresh interval in seconds
    refresh_interval: "int" = 30
    # snapshot time-to-live in seconds
    cache_ttl: "int" = 60
    log_level: "str" = "info"

    projects_dir: "Path" = DEFAULT_PROJECTS_DIR
    # look-back window of the live snapshot
    lookback_days: "int" = 8
    snapshot_max_entries: "int" = 2000
    historical_max_entries: "int" = 10000
    # change notifications within this window collapse
    # into one refresh
    debounce_seconds: "float" = 0.3
    top_n: "int" = 10

    @classmethod
    def from_env(cls) -> "Config":
        projects_dir = os.environ.get("CLAUDE_PROJECTS_DIR", "")
        if projects_dir:
            return cls(projects_dir=Path(projects_dir))
        return cls()

    @property
    def resolved_projects_dir(self) -> "Path":
        return Path(self.projects_dir).expanduser()

    def validate(self) -> "None":
        """
        raises ValueError for settings the collector cannot run with.
        """
        for name in (
            "refresh_interval",
            "cache_ttl",
            "lookback_days",
            "snapshot_max_entries",
            "historical_max_entries",
            "top_n",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")

        if self.debounce_seconds < 0:
            raise ValueError("debounce_seconds must not be negative")
