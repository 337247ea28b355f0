"""Training analytics: turn stored runs into the facts the coach reasons about.

All arithmetic happens here so the LLM never computes numbers -- it only
interprets and coaches. Every function is pure: the caller passes the runs
and the current time, nothing is read from disk or the clock.

Public API:
    aggregate(activities, profile=None, now=..., week_start=0, tz=utc) -> AnalyticsResult
    summarize_run(activity, tz=utc) -> RunSummary
    group_by_week(summaries, week_start=0) -> list[WeekBucket]
    compute_trends(weeks) -> list[WeekTrend]
    compute_heart_rate_trend(summaries) -> HeartRateTrend | None
    week_start_from_env() -> int
    local_timezone() -> tzinfo
"""

import os
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone, tzinfo

from src.tools.activity import Activity, Profile
from src.tools.classifier import EASY_CATEGORIES, WORKOUT_CATEGORIES, Category, classify
from src.tools.units import is_valid_pace, km_to_miles, meters_to_feet, pace_min_per_mile, round_miles

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

LONG_RUN_HISTORY_SIZE = 6
LONG_RUN_MIN_MILES = 10
EASY_PACE_WINDOW = 20
WORKOUT_PACE_WINDOW = 10
HR_WINDOW = 20
HR_GROUP_SIZE = 5
HR_MIN_RUNS = 4
HR_DRIFT_THRESHOLD_BPM = 3
RECENT_DAYS = 14

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RunSummary:
    """One run reduced to report units (miles, min/mi, feet)."""
    date: date
    name: str
    miles: float
    pace_min_per_mile: float
    duration_seconds: int
    elevation_gain_ft: int
    avg_hr: float | None
    max_hr: float | None
    category: Category
    description: str | None = None


@dataclass
class WeekBucket:
    week_start: date
    total_miles: float = 0.0
    run_count: int = 0
    runs: list[RunSummary] = field(default_factory=list)


@dataclass(frozen=True)
class WeekTrend:
    week: WeekBucket
    change_pct: float | None  # None when the prior week is missing or had 0 miles


@dataclass(frozen=True)
class PaceSummary:
    easy_pace: float | None
    easy_count: int
    workout_pace: float | None
    workout_count: int


@dataclass(frozen=True)
class HeartRateTrend:
    recent_avg: float
    recent_count: int
    prior_avg: float | None
    prior_count: int
    drift: float | None  # set only when |recent - prior| >= threshold

    @property
    def direction(self) -> str | None:
        if self.drift is None:
            return None
        return "upward" if self.drift > 0 else "downward"


@dataclass(frozen=True)
class OverallStats:
    total_runs: int
    total_miles: float
    first_date: date
    last_date: date


@dataclass
class AnalyticsResult:
    runs: list[RunSummary]  # newest first
    weeks: list[WeekBucket]  # newest first
    trends: list[WeekTrend]
    long_runs: list[RunSummary]
    pace_summary: PaceSummary | None
    heart_rate: HeartRateTrend | None
    recent_runs: list[RunSummary]
    overall: OverallStats | None
    profile: Profile | None = None

    @property
    def current_week(self) -> WeekBucket | None:
        return self.weeks[0] if self.weeks else None


# ---------------------------------------------------------------------------
# Building blocks
# ---------------------------------------------------------------------------


def week_start_from_env() -> int:
    """First day of the week from RUNTRACKER_WEEK_START (default Monday).

    Returns a weekday number, 0 = Monday. Raises ValueError on an unknown name.
    """
    name = os.environ.get("RUNTRACKER_WEEK_START", "monday").strip().lower()
    if name not in WEEKDAYS:
        raise ValueError(f"RUNTRACKER_WEEK_START must be a weekday name, got {name!r}")
    return WEEKDAYS.index(name)


def local_timezone() -> tzinfo:
    """The machine's local zone, used for calendar days when no zone is given."""
    return datetime.now().astimezone().tzinfo


def week_start_for(day: date, week_start: int = 0) -> date:
    """Return the first day of the calendar week containing ``day``."""
    return day - timedelta(days=(day.weekday() - week_start) % 7)


def summarize_run(activity: Activity, tz: tzinfo = timezone.utc) -> RunSummary:
    distance_km = activity.distance_km or 0
    miles = round_miles(distance_km)
    elevation = activity.total_elevation_gain
    return RunSummary(
        date=activity.date.astimezone(tz).date(),
        name=activity.name or "Run",
        miles=miles,
        pace_min_per_mile=pace_min_per_mile(activity.moving_seconds, km_to_miles(distance_km)),
        duration_seconds=activity.moving_seconds,
        elevation_gain_ft=round(meters_to_feet(elevation)) if elevation else 0,
        avg_hr=activity.average_heartrate,
        max_hr=activity.max_heartrate,
        category=classify(activity),
        description=activity.description,
    )


def group_by_week(summaries: list[RunSummary], week_start: int = 0) -> list[WeekBucket]:
    """Bucket runs by calendar week; buckets newest first, runs oldest first."""
    buckets: dict[date, WeekBucket] = {}
    for run in sorted(summaries, key=lambda r: r.date):
        key = week_start_for(run.date, week_start)
        bucket = buckets.setdefault(key, WeekBucket(week_start=key))
        bucket.total_miles += run.miles
        bucket.run_count += 1
        bucket.runs.append(run)

    for bucket in buckets.values():
        bucket.total_miles = round(bucket.total_miles, 2)

    return [buckets[k] for k in sorted(buckets, reverse=True)]


def compute_trends(weeks: list[WeekBucket]) -> list[WeekTrend]:
    """Percent change of each week against the next older week in the list."""
    trends = []
    for i, week in enumerate(weeks):
        change = None
        if i + 1 < len(weeks):
            prev = weeks[i + 1]
            if prev.total_miles > 0:
                change = (week.total_miles - prev.total_miles) / prev.total_miles * 100
        trends.append(WeekTrend(week=week, change_pct=change))
    return trends


def _average_pace(runs: list[RunSummary]) -> float | None:
    paces = [r.pace_min_per_mile for r in runs if is_valid_pace(r.pace_min_per_mile)]
    if not paces:
        return None
    return sum(paces) / len(paces)


def compute_pace_summary(runs: list[RunSummary]) -> PaceSummary | None:
    """Average pace of recent easy/long runs and of recent hard sessions.

    ``runs`` must be newest first. Returns None when neither group has runs.
    """
    easy = [r for r in runs if r.category in EASY_CATEGORIES][:EASY_PACE_WINDOW]
    hard = [r for r in runs if r.category in WORKOUT_CATEGORIES][:WORKOUT_PACE_WINDOW]
    if not easy and not hard:
        return None
    return PaceSummary(
        easy_pace=_average_pace(easy),
        easy_count=len(easy),
        workout_pace=_average_pace(hard),
        workout_count=len(hard),
    )


def compute_heart_rate_trend(runs: list[RunSummary]) -> HeartRateTrend | None:
    """Compare mean HR of the newest 5 HR runs against the 5 before them.

    ``runs`` must be newest first. Returns None below HR_MIN_RUNS runs with
    heart rate data.
    """
    with_hr = [r for r in runs if r.avg_hr is not None][:HR_WINDOW]
    if len(with_hr) < HR_MIN_RUNS:
        return None

    recent = with_hr[:HR_GROUP_SIZE]
    prior = with_hr[HR_GROUP_SIZE:HR_GROUP_SIZE * 2]
    recent_avg = sum(r.avg_hr for r in recent) / len(recent)

    prior_avg = None
    drift = None
    if prior:
        prior_avg = sum(r.avg_hr for r in prior) / len(prior)
        delta = recent_avg - prior_avg
        if abs(delta) >= HR_DRIFT_THRESHOLD_BPM:
            drift = delta

    return HeartRateTrend(
        recent_avg=recent_avg,
        recent_count=len(recent),
        prior_avg=prior_avg,
        prior_count=len(prior),
        drift=drift,
    )


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def aggregate(
    activities: list[Activity],
    profile: Profile | None = None,
    *,
    now: datetime,
    week_start: int = 0,
    tz: tzinfo = timezone.utc,
) -> AnalyticsResult:
    """Compute every report section from a snapshot of stored runs."""
    runs = [
        summarize_run(a, tz)
        for a in sorted(activities, key=lambda a: a.date, reverse=True)
    ]

    weeks = group_by_week(runs[::-1], week_start)

    long_runs = [
        r for r in runs
        if r.category == Category.LONG_RUN or r.miles >= LONG_RUN_MIN_MILES
    ][:LONG_RUN_HISTORY_SIZE]

    cutoff = now.astimezone(tz).date() - timedelta(days=RECENT_DAYS)
    recent_runs = [r for r in runs if r.date >= cutoff]

    overall = None
    if runs:
        overall = OverallStats(
            total_runs=len(runs),
            total_miles=sum(r.miles for r in runs),
            first_date=runs[-1].date,
            last_date=runs[0].date,
        )

    return AnalyticsResult(
        runs=runs,
        weeks=weeks,
        trends=compute_trends(weeks),
        long_runs=long_runs,
        pace_summary=compute_pace_summary(runs),
        heart_rate=compute_heart_rate_trend(runs),
        recent_runs=recent_runs,
        overall=overall,
        profile=profile,
    )
