"""Training context builder: render analytics as text for LLM prompt injection.

The output is plain text: ``## `` section headers, one fixed-format record per
line, sections separated by a blank line. Sections appear in a fixed order
and a section with nothing to say is left out entirely. Identical inputs
always produce identical bytes.

Public API:
    render(result, profile=None) -> str
    build_training_context(store, profile=None, now=None, week_start=None, tz=None) -> str
"""

from datetime import datetime, timezone, tzinfo

from src.tools.activity import Profile
from src.tools.activity_store import ActivityStore
from src.tools.training_analytics import (
    AnalyticsResult,
    RunSummary,
    aggregate,
    local_timezone,
    week_start_from_env,
)
from src.tools.units import format_duration, format_pace, r2

NO_DATA_MESSAGE = "No running activities found. Sync activities from Strava first."
TREND_WEEKS = 5


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


def _goal_section(profile: Profile | None) -> list[str]:
    if profile is None:
        return []
    lines = ["## Goal", f"Race: {profile.goal_race}"]
    if profile.goal_date:
        lines.append(f"Date: {profile.goal_date}")
    if profile.goal_time:
        lines.append(f"Target Time: {profile.goal_time}")
    if profile.weekly_mileage_target is not None:
        lines.append(f"Weekly Mileage Target: {profile.weekly_mileage_target} miles")
    return lines


def _current_week_line(run: RunSummary) -> str:
    line = (
        f"- {run.date.isoformat()} | {run.name} | {r2(run.miles)} mi | "
        f"{format_pace(run.pace_min_per_mile)}/mi | {format_duration(run.duration_seconds)} | "
        f"{run.category.value}"
    )
    if run.elevation_gain_ft > 0:
        line += f" | +{run.elevation_gain_ft}ft"
    if run.avg_hr is not None:
        max_hr = int(run.max_hr) if run.max_hr is not None else "?"
        line += f" | HR avg:{int(run.avg_hr)} max:{max_hr}"
    if run.description:
        line += f' | "{run.description}"'
    return line


def _current_week_section(result: AnalyticsResult) -> list[str]:
    week = result.current_week
    if week is None:
        return []
    lines = [
        "## Current Week",
        f"Week of {week.week_start.isoformat()} | {r2(week.total_miles)} miles | {week.run_count} runs",
    ]
    lines.extend(_current_week_line(run) for run in week.runs)
    return lines


def _trend_section(result: AnalyticsResult) -> list[str]:
    trends = result.trends[:TREND_WEEKS]
    if len(trends) < 2:
        return []
    lines = ["## Weekly Mileage Trend (last 4-5 weeks)"]
    for trend in trends:
        w = trend.week
        line = f"- {w.week_start.isoformat()}: {r2(w.total_miles)} mi ({w.run_count} runs)"
        if trend.change_pct is not None:
            sign = "+" if trend.change_pct >= 0 else ""
            line += f" [{sign}{trend.change_pct:.1f}% vs prior week]"
        lines.append(line)
    return lines


def _long_run_section(result: AnalyticsResult) -> list[str]:
    if not result.long_runs:
        return []
    lines = [f"## Long Run History (last {len(result.long_runs)})"]
    for run in result.long_runs:
        line = f"- {run.date.isoformat()}: {r2(run.miles)} mi @ {format_pace(run.pace_min_per_mile)}/mi"
        if run.avg_hr is not None:
            line += f" | HR {int(run.avg_hr)}"
        if run.elevation_gain_ft > 0:
            line += f" | +{run.elevation_gain_ft}ft"
        lines.append(line)
    return lines


def _pace_section(result: AnalyticsResult) -> list[str]:
    pace = result.pace_summary
    if pace is None:
        return []
    lines = ["## Pace Summary"]
    if pace.easy_count:
        lines.append(
            f"Easy/Long Run avg pace (last {pace.easy_count}): {format_pace(pace.easy_pace)}/mi"
        )
    if pace.workout_count:
        lines.append(
            f"Workout avg pace (last {pace.workout_count}): {format_pace(pace.workout_pace)}/mi"
        )
    return lines


def _heart_rate_section(result: AnalyticsResult) -> list[str]:
    hr = result.heart_rate
    if hr is None:
        return []
    lines = [
        "## Heart Rate Trends",
        f"Recent {hr.recent_count}-run avg HR: {int(hr.recent_avg)}",
    ]
    if hr.prior_avg is not None:
        lines.append(f"Prior {hr.prior_count}-run avg HR: {int(hr.prior_avg)}")
    if hr.drift is not None:
        sign = "+" if hr.drift > 0 else ""
        meaning = "possible fatigue" if hr.drift > 0 else "improving fitness"
        lines.append(f"HR drift: {sign}{hr.drift:.1f} bpm ({hr.direction} - {meaning})")
    return lines


def _recent_section(result: AnalyticsResult) -> list[str]:
    if not result.recent_runs:
        return []
    lines = ["## Last 14 Days (for pattern detection)"]
    for run in result.recent_runs:
        line = (
            f"- {run.date.isoformat()} | {run.category.value} | "
            f"{r2(run.miles)} mi @ {format_pace(run.pace_min_per_mile)}/mi"
        )
        if run.avg_hr is not None:
            line += f" | HR {int(run.avg_hr)}"
        lines.append(line)
    return lines


def _overall_section(result: AnalyticsResult) -> list[str]:
    stats = result.overall
    if stats is None:
        return []
    return [
        "## Overall Stats",
        f"Total activities: {stats.total_runs} runs",
        f"Total mileage: {stats.total_miles:.1f} miles",
        f"Date range: {stats.first_date.isoformat()} to {stats.last_date.isoformat()}",
    ]


# ---------------------------------------------------------------------------
# Main entry points
# ---------------------------------------------------------------------------


def render(result: AnalyticsResult, profile: Profile | None = None) -> str:
    """Render analytics as the training-context report.

    ``profile`` defaults to the profile the analytics were computed with.
    """
    goal_profile = profile if profile is not None else result.profile
    sections = [
        _goal_section(goal_profile),
        _current_week_section(result),
        _trend_section(result),
        _long_run_section(result),
        _pace_section(result),
        _heart_rate_section(result),
        _recent_section(result),
        _overall_section(result),
    ]
    return "\n\n".join("\n".join(lines) for lines in sections if lines)


def build_training_context(
    store: ActivityStore,
    profile: Profile | None = None,
    now: datetime | None = None,
    week_start: int | None = None,
    tz: tzinfo | None = None,
) -> str:
    """Read all stored runs and render the full training context.

    Days and weeks follow the athlete's calendar in ``tz``, by default the
    machine's local zone.
    """
    activities = store.all()
    if not activities:
        return NO_DATA_MESSAGE

    result = aggregate(
        activities,
        profile,
        now=now or datetime.now(timezone.utc),
        week_start=week_start_from_env() if week_start is None else week_start,
        tz=tz or local_timezone(),
    )
    return render(result)
