import asyncio
import dataclasses
import json
import signal

import structlog
from prometheus_client import start_http_server

from claudetheus.analytics import TimeRange
from claudetheus.cache import SnapshotCache
from claudetheus.cli import parse_args
from claudetheus.collector import Collector
from claudetheus.config import Config
from claudetheus.logging import setup_logging
from claudetheus.metrics import MetricsUpdater
from claudetheus.reader import UsageReader

logger = structlog.get_logger()


def _parse_listen_address(addr: "str") -> "tuple[str, int]":
    """
    parses listen address in format ':9186' or '0.0.0.0:9186'.
    """
    if addr.startswith(":"):
        return ("0.0.0.0", int(addr[1:]))

    host, port = addr.rsplit(":", 1)
    return (host, int(port))


def _build_collector(config: "Config") -> "Collector":
    reader = UsageReader(config.resolved_projects_dir)
    cache = SnapshotCache(ttl_seconds=config.cache_ttl)
    return Collector(reader, cache, MetricsUpdater(), config)


async def _report(collector: "Collector", time_range: "TimeRange") -> "None":
    analytics = await collector.get_historical(time_range)
    print(json.dumps(dataclasses.asdict(analytics), indent=2, default=str))


def main() -> "None":
    config, report = parse_args()
    setup_logging(config.log_level)

    try:
        config.validate()
    except ValueError as e:
        raise SystemExit(f"Invalid configuration: {e}") from None

    logger.info("projects_dir", path=str(config.resolved_projects_dir))
    collector = _build_collector(config)

    if report is not None:
        asyncio.run(_report(collector, report))
        return

    host, port = _parse_listen_address(config.listen_address)
    start_http_server(port, addr=host)
    logger.info("metrics_server_started", host=host, port=port)

    async def _run() -> "None":
        loop = asyncio.get_running_loop()
        # for SIGINT and SIGTERM, signal the collector
        # to stop gracefully; SIGHUP forces a refresh
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, collector.stop)
        loop.add_signal_handler(signal.SIGHUP, collector.request_refresh)

        try:
            await collector.run()
        finally:
            logger.info("shutting_down")
            await collector.close()
            logger.info("shutdown_complete")

    asyncio.run(_run())


if __name__ == "__main__":
    main()
