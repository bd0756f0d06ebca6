from datetime import datetime

from prometheus_client import CollectorRegistry

from claudetheus.metrics import MetricsUpdater
from claudetheus.models import BurnRate, Snapshot, TokenCounts


class TestMetricsUpdater:
    def test_usage_metrics_are_created(
        self,
        registry: "CollectorRegistry",
    ) -> "None":
        MetricsUpdater(registry=registry)
        metric_names = [m.name for m in registry.collect()]
        assert "claudetheus_tokens" in metric_names
        assert "claudetheus_cost_usd" in metric_names
        assert "claudetheus_session_blocks" in metric_names
        assert "claudetheus_burn_rate_tokens_per_minute" in metric_names
        assert "claudetheus_model_tokens" in metric_names

    def test_update_snapshot_sets_gauges(
        self,
        registry: "CollectorRegistry",
        now: "datetime",
    ) -> "None":
        updater = MetricsUpdater(registry=registry)
        snapshot = Snapshot(
            computed_at=now,
            tokens_today=100,
            tokens_all_time=500,
            cost_today=1.25,
            messages_count=7,
            sessions_today=1,
            total_sessions=4,
            burn_rate=BurnRate(tokens_per_minute=12.5, cost_per_hour=0.3),
            model_breakdown={"claude-3-haiku": TokenCounts(1, 2, 3, 4)},
        )

        updater.update_snapshot(snapshot)

        assert (
            registry.get_sample_value("claudetheus_tokens", {"scope": "today"}) == 100
        )
        assert (
            registry.get_sample_value("claudetheus_tokens", {"scope": "all_time"})
            == 500
        )
        assert (
            registry.get_sample_value("claudetheus_cost_usd", {"scope": "today"})
            == 1.25
        )
        assert (
            registry.get_sample_value("claudetheus_messages", {"scope": "all_time"})
            == 7
        )
        assert (
            registry.get_sample_value(
                "claudetheus_session_blocks", {"scope": "all_time"}
            )
            == 4
        )
        assert (
            registry.get_sample_value("claudetheus_burn_rate_tokens_per_minute")
            == 12.5
        )
        assert (
            registry.get_sample_value(
                "claudetheus_model_tokens",
                {"model": "claude-3-haiku", "kind": "cache_read"},
            )
            == 4
        )
        assert registry.get_sample_value("claudetheus_records_loaded") == 7

    def test_models_leaving_the_window_are_dropped(
        self,
        registry: "CollectorRegistry",
        now: "datetime",
    ) -> "None":
        updater = MetricsUpdater(registry=registry)
        updater.update_snapshot(
            Snapshot(
                computed_at=now,
                model_breakdown={"claude-3-opus": TokenCounts(1, 0, 0, 0)},
            )
        )
        updater.update_snapshot(Snapshot(computed_at=now))

        assert (
            registry.get_sample_value(
                "claudetheus_model_tokens",
                {"model": "claude-3-opus", "kind": "input"},
            )
            is None
        )

    def test_self_metrics_are_created(
        self,
        registry: "CollectorRegistry",
    ) -> "None":
        MetricsUpdater(registry=registry)
        metric_names = [m.name for m in registry.collect()]
        assert "claudetheus_refresh_duration_seconds" in metric_names
        assert "claudetheus_refresh_errors" in metric_names
        assert "claudetheus_last_refresh_success_timestamp_seconds" in metric_names

    def test_self_metrics_update(
        self,
        registry: "CollectorRegistry",
    ) -> "None":
        updater = MetricsUpdater(registry=registry)

        updater.observe_refresh_duration(0.5)
        updater.inc_refresh_error()
        updater.set_last_refresh_success(1000.0)

        assert registry.get_sample_value("claudetheus_refresh_errors_total") == 1.0
        assert (
            registry.get_sample_value(
                "claudetheus_last_refresh_success_timestamp_seconds"
            )
            == 1000.0
        )
        duration_count = registry.get_sample_value(
            "claudetheus_refresh_duration_seconds_count"
        )
        assert duration_count == 1
