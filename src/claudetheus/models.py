import posixpath
from dataclasses import dataclass, field
from datetime import datetime

UNKNOWN_PROJECT = "Unknown"


@dataclass(frozen=True, slots=True)
class TokenCounts:
    """
    TokenCounts is the four-way token vector of a single
    response (or of any aggregate of responses).
    """

    input_tokens: "int" = 0
    output_tokens: "int" = 0
    cache_creation_tokens: "int" = 0
    cache_read_tokens: "int" = 0

    @property
    def total(self) -> "int":
        return (
            self.input_tokens
            + self.output_tokens
            + self.cache_creation_tokens
            + self.cache_read_tokens
        )

    @property
    def cache_tokens(self) -> "int":
        return self.cache_creation_tokens + self.cache_read_tokens

    def __add__(self, other: "TokenCounts") -> "TokenCounts":
        return TokenCounts(
            input_tokens=self.input_tokens + other.input_tokens,
            output_tokens=self.output_tokens + other.output_tokens,
            cache_creation_tokens=self.cache_creation_tokens
            + other.cache_creation_tokens,
            cache_read_tokens=self.cache_read_tokens + other.cache_read_tokens,
        )


@dataclass(frozen=True, slots=True)
class UsageRecord:
    """
    UsageRecord represents one assistant response read
    from the local activity logs.
    """

    # timezone-aware, UTC
    timestamp: "datetime"
    model: "str"
    tokens: "TokenCounts"
    # precomputed cost in USD, authoritative when present
    cost: "float | None" = None
    session_id: "str | None" = None
    working_directory: "str | None" = None
    stop_reason: "str | None" = None
    response_preview: "str | None" = None
    # identifiers, only used for deduplication
    message_id: "str | None" = None
    request_id: "str | None" = None

    @property
    def total_tokens(self) -> "int":
        return self.tokens.total

    @property
    def project(self) -> "str":
        """
        last path segment of the working directory.
        """
        if not self.working_directory:
            return UNKNOWN_PROJECT
        name = posixpath.basename(
            self.working_directory.replace("\\", "/").rstrip("/")
        )
        return name or UNKNOWN_PROJECT


@dataclass(frozen=True, slots=True)
class BurnRate:
    tokens_per_minute: "float" = 0.0
    cost_per_hour: "float" = 0.0


@dataclass(frozen=True, slots=True)
class Snapshot:
    """
    Snapshot is the live aggregate over the look-back window.
    A published snapshot is never mutated; a refresh builds
    a new one.
    """

    computed_at: "datetime"
    # distinct 5-hour blocks
    sessions_today: "int" = 0
    total_sessions: "int" = 0
    tokens_today: "int" = 0
    tokens_all_time: "int" = 0
    total_input_tokens: "int" = 0
    total_output_tokens: "int" = 0
    total_cache_tokens: "int" = 0
    cost_today: "float" = 0.0
    cost_all_time: "float" = 0.0
    messages_today: "int" = 0
    messages_count: "int" = 0
    current_session_tokens: "int" = 0
    current_session_cost: "float" = 0.0
    burn_rate: "BurnRate" = field(default_factory=BurnRate)
    # raw model name -> summed token counts
    model_breakdown: "dict[str, TokenCounts]" = field(default_factory=dict)
    latest_record: "UsageRecord | None" = None


@dataclass(frozen=True, slots=True)
class DailyUsage:
    date: "str"
    tokens: "int"
    cost: "float"


@dataclass(frozen=True, slots=True)
class DailyMessages:
    date: "str"
    messages: "int"


@dataclass(frozen=True, slots=True)
class ProjectCost:
    project: "str"
    cost: "float"


@dataclass(frozen=True, slots=True)
class ModelShare:
    model: "str"
    tokens: "int"
    percentage: "float"


@dataclass(frozen=True, slots=True)
class CumulativeSpend:
    date: "str"
    total: "float"


@dataclass(frozen=True, slots=True)
class BurnRatePoint:
    date: "str"
    # mean daily cost over the trailing window
    rate: "float"


@dataclass(frozen=True, slots=True)
class SessionSummary:
    session_id: "str"
    duration_minutes: "int"
    tokens: "int"
    cost: "float"
    date: "str"
    project: "str"


@dataclass(frozen=True, slots=True)
class SessionStats:
    average_duration: "float" = 0.0
    longest_session: "SessionSummary | None" = None
    shortest_session: "SessionSummary | None" = None
    total_sessions: "int" = 0


@dataclass(frozen=True, slots=True)
class HourlyUsage:
    hour: "int"
    count: "int"


@dataclass(frozen=True, slots=True)
class WeekdayUsage:
    day: "str"
    sessions: "int"
    cost: "float"


@dataclass(frozen=True, slots=True)
class CacheStats:
    # cache reads / (cache reads + cache creation), 0..1
    hit_rate: "float" = 0.0
    savings_total: "float" = 0.0
    cache_creation_tokens: "int" = 0
    cache_read_tokens: "int" = 0


@dataclass(frozen=True, slots=True)
class HistoricalAnalytics:
    """
    HistoricalAnalytics holds the dashboard breakdowns for
    one time range. Computed per request, never cached.
    """

    time_range: "str"
    daily_usage: "list[DailyUsage]" = field(default_factory=list)
    daily_messages: "list[DailyMessages]" = field(default_factory=list)
    project_costs: "list[ProjectCost]" = field(default_factory=list)
    model_distribution: "list[ModelShare]" = field(default_factory=list)
    cumulative_spending: "list[CumulativeSpend]" = field(default_factory=list)
    burn_rate: "list[BurnRatePoint]" = field(default_factory=list)
    session_stats: "SessionStats" = field(default_factory=SessionStats)
    hourly_usage: "list[HourlyUsage]" = field(default_factory=list)
    weekday_usage: "list[WeekdayUsage]" = field(default_factory=list)
    cache_stats: "CacheStats" = field(default_factory=CacheStats)
    token_breakdown: "TokenCounts" = field(default_factory=TokenCounts)
    top_sessions: "list[SessionSummary]" = field(default_factory=list)
