from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram

from claudetheus.models import Snapshot

# TokenCounts field -> "kind" label value
_TOKEN_KINDS: "dict[str, str]" = {
    "input_tokens": "input",
    "output_tokens": "output",
    "cache_creation_tokens": "cache_creation",
    "cache_read_tokens": "cache_read",
}


def create_usage_metrics(
    registry: "CollectorRegistry" = REGISTRY,
) -> "dict[str, Gauge]":
    """
    creates the gauges that mirror the live snapshot.
     - tokens: tokens used, labeled by scope
     (today/all_time/session).
     - cost_usd: cost in USD, labeled by scope.
     - messages: assistant responses, labeled by scope
     (today/all_time).
     - session_blocks: distinct 5-hour blocks, labeled by scope
     (today/all_time).
     - model_tokens: tokens per raw model name, labeled by kind.
    """
    return {
        "tokens": Gauge(
            "claudetheus_tokens",
            "Tokens used in the look-back window",
            ["scope"],
            registry=registry,
        ),
        "cost_usd": Gauge(
            "claudetheus_cost_usd",
            "Cost in USD in the look-back window",
            ["scope"],
            registry=registry,
        ),
        "messages": Gauge(
            "claudetheus_messages",
            "Assistant responses in the look-back window",
            ["scope"],
            registry=registry,
        ),
        "session_blocks": Gauge(
            "claudetheus_session_blocks",
            "Distinct 5-hour session blocks with activity",
            ["scope"],
            registry=registry,
        ),
        "burn_rate_tokens": Gauge(
            "claudetheus_burn_rate_tokens_per_minute",
            "Tokens per minute over the rolling session window",
            registry=registry,
        ),
        "burn_rate_cost": Gauge(
            "claudetheus_burn_rate_cost_usd_per_hour",
            "Cost in USD per hour over the rolling session window",
            registry=registry,
        ),
        "model_tokens": Gauge(
            "claudetheus_model_tokens",
            "Tokens per model in the look-back window",
            ["model", "kind"],
            registry=registry,
        ),
    }


class MetricsUpdater:
    """
    applies Snapshot data to Prometheus gauges and tracks
    the refresh loop itself.
    """

    def __init__(self, registry: "CollectorRegistry" = REGISTRY) -> "None":
        self._usage: "dict[str, Gauge]" = create_usage_metrics(registry)
        self._refresh_duration: "Histogram" = Histogram(
            "claudetheus_refresh_duration_seconds",
            "Duration of snapshot refreshes",
            registry=registry,
        )
        self._refresh_errors: "Counter" = Counter(
            "claudetheus_refresh_errors_total",
            "Total number of failed snapshot refreshes",
            registry=registry,
        )
        self._last_refresh_success: "Gauge" = Gauge(
            "claudetheus_last_refresh_success_timestamp_seconds",
            "Unix timestamp of the last successful refresh",
            registry=registry,
        )
        self._records_loaded: "Gauge" = Gauge(
            "claudetheus_records_loaded",
            "Usage records in the last refreshed window",
            registry=registry,
        )

    def update_snapshot(self, snapshot: "Snapshot") -> "None":
        """
        sets every usage gauge from the snapshot. Model label sets
        are rebuilt so models that left the window disappear.
        """
        usage = self._usage
        usage["tokens"].labels(scope="today").set(snapshot.tokens_today)
        usage["tokens"].labels(scope="all_time").set(snapshot.tokens_all_time)
        usage["tokens"].labels(scope="session").set(snapshot.current_session_tokens)
        usage["cost_usd"].labels(scope="today").set(snapshot.cost_today)
        usage["cost_usd"].labels(scope="all_time").set(snapshot.cost_all_time)
        usage["cost_usd"].labels(scope="session").set(snapshot.current_session_cost)
        usage["messages"].labels(scope="today").set(snapshot.messages_today)
        usage["messages"].labels(scope="all_time").set(snapshot.messages_count)
        usage["session_blocks"].labels(scope="today").set(snapshot.sessions_today)
        usage["session_blocks"].labels(scope="all_time").set(snapshot.total_sessions)
        usage["burn_rate_tokens"].set(snapshot.burn_rate.tokens_per_minute)
        usage["burn_rate_cost"].set(snapshot.burn_rate.cost_per_hour)

        usage["model_tokens"].clear()
        for model, counts in snapshot.model_breakdown.items():
            for field, kind in _TOKEN_KINDS.items():
                usage["model_tokens"].labels(model=model, kind=kind).set(
                    getattr(counts, field)
                )

        self._records_loaded.set(snapshot.messages_count)

    def observe_refresh_duration(self, duration_seconds: "float") -> "None":
        self._refresh_duration.observe(duration_seconds)

    def inc_refresh_error(self) -> "None":
        self._refresh_errors.inc()

    def set_last_refresh_success(self, timestamp: "float") -> "None":
        self._last_refresh_success.set(timestamp)
