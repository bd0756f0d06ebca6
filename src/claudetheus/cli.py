import argparse
from pathlib import Path

from claudetheus.analytics import TimeRange
from claudetheus.config import Config


def parse_args(argv: "list[str] | None" = None) -> "tuple[Config, TimeRange | None]":
    """
    builds the Config from the environment and command line flags.
    Also returns the time range requested with --report, if any.
    """
    parser = argparse.ArgumentParser(
        prog="claudetheus",
        description="Claude Code usage Prometheus exporter",
    )
    parser.add_argument(
        "--web.listen-address",
        dest="listen_address",
        default=":9186",
        help="Address to listen on (default: :9186)",
    )
    parser.add_argument(
        "--refresh.interval",
        dest="refresh_interval",
        type=int,
        default=30,
        help="Refresh interval in seconds (default: 30)",
    )
    parser.add_argument(
        "--cache.ttl",
        dest="cache_ttl",
        type=int,
        default=60,
        help="Snapshot cache TTL in seconds (default: 60)",
    )
    parser.add_argument(
        "--logs.dir",
        dest="projects_dir",
        default=None,
        help="Claude projects directory (default: $CLAUDE_PROJECTS_DIR "
        "or ~/.claude/projects)",
    )
    parser.add_argument(
        "--log.level",
        dest="log_level",
        default="info",
        choices=["debug", "info", "warning", "error"],
        help="Log level (default: info)",
    )
    parser.add_argument(
        "--report",
        dest="report",
        default=None,
        choices=[r.value for r in TimeRange],
        help="Print historical analytics for the range as JSON and exit",
    )

    args = parser.parse_args(argv)
    config = Config.from_env()
    config.listen_address = args.listen_address
    config.refresh_interval = args.refresh_interval
    config.cache_ttl = args.cache_ttl
    config.log_level = args.log_level
    if args.projects_dir:
        config.projects_dir = Path(args.projects_dir)

    report = TimeRange.parse(args.report) if args.report else None
    return config, report
