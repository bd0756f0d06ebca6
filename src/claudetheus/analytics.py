from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo
from enum import Enum
from typing import Sequence

from claudetheus.models import (
    BurnRatePoint,
    CacheStats,
    CumulativeSpend,
    DailyMessages,
    DailyUsage,
    HistoricalAnalytics,
    HourlyUsage,
    ModelShare,
    ProjectCost,
    SessionStats,
    SessionSummary,
    TokenCounts,
    UsageRecord,
    WeekdayUsage,
)
from claudetheus.pricing import cache_savings, normalize_model_name, record_cost
from claudetheus.snapshot import utc_day_start

WEEKDAYS = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")
# trailing daily buckets averaged by the burn rate series
BURN_RATE_WINDOW = 7


class TimeRange(str, Enum):
    LAST_7_DAYS = "7d"
    LAST_30_DAYS = "30d"
    LAST_90_DAYS = "90d"
    ALL = "all"

    @property
    def days(self) -> "int | None":
        return {"7d": 7, "30d": 30, "90d": 90}.get(self.value)

    @classmethod
    def parse(cls, value: "str") -> "TimeRange":
        try:
            return cls(value.strip().lower())
        except ValueError:
            choices = ", ".join(r.value for r in cls)
            raise ValueError(
                f"unknown time range {value!r}, expected one of: {choices}"
            ) from None


def range_cutoff(time_range: "TimeRange", now: "datetime") -> "datetime | None":
    """
    start of the UTC day N days before now, or None for
    the whole history.
    """
    if time_range.days is None:
        return None
    return utc_day_start(now) - timedelta(days=time_range.days)


def empty_historical(time_range: "TimeRange") -> "HistoricalAnalytics":
    return HistoricalAnalytics(
        time_range=time_range.value,
        hourly_usage=[HourlyUsage(hour=h, count=0) for h in range(24)],
        weekday_usage=[WeekdayUsage(day=d, sessions=0, cost=0.0) for d in WEEKDAYS],
    )


@dataclass(slots=True)
class _SessionAccumulator:
    first: "datetime"
    last: "datetime"
    project: "str"
    tokens: "int" = 0
    cost: "float" = 0.0

    def summary(self, session_id: "str") -> "SessionSummary":
        elapsed_minutes = round((self.last - self.first).total_seconds() / 60)
        return SessionSummary(
            session_id=session_id,
            # a single-record session still counts as one minute
            duration_minutes=max(1, elapsed_minutes),
            tokens=self.tokens,
            cost=self.cost,
            date=self.first.date().isoformat(),
            project=self.project,
        )


def _utc_date(timestamp: "datetime") -> "str":
    return timestamp.astimezone(timezone.utc).date().isoformat()


def _session_stats(sessions: "list[SessionSummary]") -> "SessionStats":
    if not sessions:
        return SessionStats()

    durations = [s.duration_minutes for s in sessions]
    # max/min return the first of equal candidates
    return SessionStats(
        average_duration=sum(durations) / len(durations),
        longest_session=max(sessions, key=lambda s: s.duration_minutes),
        shortest_session=min(sessions, key=lambda s: s.duration_minutes),
        total_sessions=len(sessions),
    )


def _rolling_burn_rate(daily: "list[DailyUsage]") -> "list[BurnRatePoint]":
    points: "list[BurnRatePoint]" = []
    for index, day in enumerate(daily):
        window = daily[max(0, index - BURN_RATE_WINDOW + 1) : index + 1]
        points.append(
            BurnRatePoint(
                date=day.date,
                rate=sum(d.cost for d in window) / len(window),
            )
        )
    return points


def compute_historical(
    records: "Sequence[UsageRecord]",
    time_range: "TimeRange" = TimeRange.ALL,
    top_n: "int" = 10,
    tz: "tzinfo" = timezone.utc,
) -> "HistoricalAnalytics":
    """
    builds the dashboard breakdowns for an already windowed
    record set.

    Daily series always bucket on the UTC date; the hourly and
    weekday histograms use tz. Top-N lists keep encounter order
    between equal costs.
    """
    daily: "dict[str, list]" = {}
    daily_messages: "dict[str, int]" = {}
    projects: "dict[str, float]" = {}
    models: "dict[str, int]" = {}
    sessions: "dict[str, _SessionAccumulator]" = {}
    hourly = [0] * 24
    weekday_sessions: "list[set[str]]" = [set() for _ in WEEKDAYS]
    weekday_cost = [0.0] * len(WEEKDAYS)
    breakdown = TokenCounts()
    savings = 0.0
    batch_tokens = 0

    for record in records:
        tokens = record.total_tokens
        cost = record_cost(record)
        date = _utc_date(record.timestamp)

        bucket = daily.setdefault(date, [0, 0.0])
        bucket[0] += tokens
        bucket[1] += cost
        daily_messages[date] = daily_messages.get(date, 0) + 1

        projects[record.project] = projects.get(record.project, 0.0) + cost

        family = normalize_model_name(record.model)
        models[family] = models.get(family, 0) + tokens
        batch_tokens += tokens

        if record.session_id:
            session = sessions.get(record.session_id)
            if session is None:
                session = _SessionAccumulator(
                    first=record.timestamp,
                    last=record.timestamp,
                    project=record.project,
                )
                sessions[record.session_id] = session
            session.first = min(session.first, record.timestamp)
            session.last = max(session.last, record.timestamp)
            session.tokens += tokens
            session.cost += cost

        local = record.timestamp.astimezone(tz)
        hourly[local.hour] += 1
        day_index = (local.weekday() + 1) % 7
        if record.session_id:
            weekday_sessions[day_index].add(record.session_id)
        weekday_cost[day_index] += cost

        breakdown = breakdown + record.tokens
        savings += cache_savings(record.tokens, record.model)

    daily_usage = [
        DailyUsage(date=date, tokens=values[0], cost=values[1])
        for date, values in sorted(daily.items())
    ]

    cumulative: "list[CumulativeSpend]" = []
    running = 0.0
    for day in daily_usage:
        running += day.cost
        cumulative.append(CumulativeSpend(date=day.date, total=running))

    project_costs = sorted(
        (ProjectCost(project=p, cost=c) for p, c in projects.items()),
        key=lambda p: p.cost,
        reverse=True,
    )[:top_n]

    model_distribution = sorted(
        (
            ModelShare(
                model=family,
                tokens=count,
                percentage=(
                    round(count / batch_tokens * 100, 2) if batch_tokens else 0.0
                ),
            )
            for family, count in models.items()
        ),
        key=lambda m: m.tokens,
        reverse=True,
    )

    summaries = [acc.summary(sid) for sid, acc in sessions.items()]
    top_sessions = sorted(summaries, key=lambda s: s.cost, reverse=True)[:top_n]

    cache_total = breakdown.cache_tokens
    cache_stats = CacheStats(
        hit_rate=breakdown.cache_read_tokens / cache_total if cache_total else 0.0,
        savings_total=savings,
        cache_creation_tokens=breakdown.cache_creation_tokens,
        cache_read_tokens=breakdown.cache_read_tokens,
    )

    return HistoricalAnalytics(
        time_range=time_range.value,
        daily_usage=daily_usage,
        daily_messages=[
            DailyMessages(date=date, messages=count)
            for date, count in sorted(daily_messages.items())
        ],
        project_costs=project_costs,
        model_distribution=model_distribution,
        cumulative_spending=cumulative,
        burn_rate=_rolling_burn_rate(daily_usage),
        session_stats=_session_stats(summaries),
        hourly_usage=[HourlyUsage(hour=h, count=c) for h, c in enumerate(hourly)],
        weekday_usage=[
            WeekdayUsage(day=day, sessions=len(ids), cost=cost)
            for day, ids, cost in zip(WEEKDAYS, weekday_sessions, weekday_cost)
        ],
        cache_stats=cache_stats,
        token_breakdown=breakdown,
        top_sessions=top_sessions,
    )
