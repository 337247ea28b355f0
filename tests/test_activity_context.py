"""Unit tests for rendering the training context report."""

from datetime import timedelta, timezone

from src.tools.activity import Profile
from src.tools.activity_context import NO_DATA_MESSAGE, build_training_context, render
from src.tools.training_analytics import aggregate
from tests.factories import make_run, utc

SCENARIO_NOW = utc(2024, 1, 10, 12)


def scenario_runs():
    return [
        make_run(km=10, when=utc(2024, 1, 8), workout_type=3, external_id=1),
        make_run(km=8, when=utc(2024, 1, 1), workout_type=0, external_id=2),
    ]


def headers(text):
    return [line for line in text.splitlines() if line.startswith("## ")]


# ── End-to-end scenario ──────────────────────────────────────────


class TestScenario:
    def test_full_report(self):
        text = render(aggregate(scenario_runs(), now=SCENARIO_NOW))
        assert text == (
            "## Current Week\n"
            "Week of 2024-01-08 | 6.21 miles | 1 runs\n"
            "- 2024-01-08 | Run | 6.21 mi | 7:14/mi | 45m 0s | Workout\n"
            "\n"
            "## Weekly Mileage Trend (last 4-5 weeks)\n"
            "- 2024-01-08: 6.21 mi (1 runs) [+24.9% vs prior week]\n"
            "- 2024-01-01: 4.97 mi (1 runs)\n"
            "\n"
            "## Pace Summary\n"
            "Easy/Long Run avg pace (last 1): 9:03/mi\n"
            "Workout avg pace (last 1): 7:14/mi\n"
            "\n"
            "## Last 14 Days (for pattern detection)\n"
            "- 2024-01-08 | Workout | 6.21 mi @ 7:14/mi\n"
            "- 2024-01-01 | Easy | 4.97 mi @ 9:03/mi\n"
            "\n"
            "## Overall Stats\n"
            "Total activities: 2 runs\n"
            "Total mileage: 11.2 miles\n"
            "Date range: 2024-01-01 to 2024-01-08"
        )

    def test_render_is_deterministic(self):
        first = render(aggregate(scenario_runs(), now=SCENARIO_NOW))
        second = render(aggregate(list(reversed(scenario_runs())), now=SCENARIO_NOW))
        assert first.encode("utf-8") == second.encode("utf-8")


# ── Section rules ────────────────────────────────────────────────


class TestSections:
    def test_goal_section_first(self):
        profile = Profile(
            goal_race="Chicago Marathon",
            goal_date="2024-10-13",
            goal_time="3:30:00",
            weekly_mileage_target=40.0,
        )
        text = render(aggregate(scenario_runs(), profile, now=SCENARIO_NOW))
        assert text.startswith(
            "## Goal\n"
            "Race: Chicago Marathon\n"
            "Date: 2024-10-13\n"
            "Target Time: 3:30:00\n"
            "Weekly Mileage Target: 40.0 miles\n\n"
        )

    def test_goal_only_race(self):
        text = render(aggregate(scenario_runs(), now=SCENARIO_NOW), Profile(goal_race="5K"))
        assert text.startswith("## Goal\nRace: 5K\n\n## Current Week")

    def test_single_week_has_no_trend(self):
        text = render(aggregate([make_run(when=utc(2024, 1, 8))], now=SCENARIO_NOW))
        assert "## Weekly Mileage Trend (last 4-5 weeks)" not in headers(text)
        assert "## Current Week" in headers(text)

    def test_zero_distance_prior_week_has_no_percent(self):
        runs = [make_run(km=10, when=utc(2024, 1, 8)), make_run(km=0, when=utc(2024, 1, 1))]
        text = render(aggregate(runs, now=SCENARIO_NOW))
        assert "- 2024-01-08: 6.21 mi (1 runs)\n" in text
        assert "% vs prior week" not in text

    def test_trend_shows_at_most_five_weeks(self):
        runs = [make_run(when=utc(2024, 1, 8) - timedelta(weeks=i)) for i in range(7)]
        text = render(aggregate(runs, now=SCENARIO_NOW))
        trend = text.split("## Weekly Mileage Trend (last 4-5 weeks)\n")[1].split("\n\n")[0]
        assert len(trend.splitlines()) == 5

    def test_section_order(self):
        runs = [
            make_run(km=25, name="Long run", when=utc(2024, 1, 7) - timedelta(days=i), avg_hr=150 + i)
            for i in range(10)
        ]
        text = render(aggregate(runs, now=SCENARIO_NOW), Profile(goal_race="Marathon"))
        assert headers(text) == [
            "## Goal",
            "## Current Week",
            "## Weekly Mileage Trend (last 4-5 weeks)",
            "## Long Run History (last 6)",
            "## Pace Summary",
            "## Heart Rate Trends",
            "## Last 14 Days (for pattern detection)",
            "## Overall Stats",
        ]

    def test_heart_rate_section(self):
        runs = [make_run(when=utc(2024, 1, 9) - timedelta(days=i), avg_hr=154) for i in range(5)]
        runs += [make_run(when=utc(2024, 1, 4) - timedelta(days=i), avg_hr=150) for i in range(5)]
        text = render(aggregate(runs, now=SCENARIO_NOW))
        assert (
            "## Heart Rate Trends\n"
            "Recent 5-run avg HR: 154\n"
            "Prior 5-run avg HR: 150\n"
            "HR drift: +4.0 bpm (upward - possible fatigue)"
        ) in text

    def test_heart_rate_without_drift_note(self):
        runs = [make_run(when=utc(2024, 1, 9) - timedelta(days=i), avg_hr=152) for i in range(5)]
        runs += [make_run(when=utc(2024, 1, 4) - timedelta(days=i), avg_hr=150) for i in range(5)]
        text = render(aggregate(runs, now=SCENARIO_NOW))
        assert "Prior 5-run avg HR: 150" in text
        assert "HR drift" not in text

    def test_heart_rate_suppressed_below_four_runs(self):
        runs = [make_run(when=utc(2024, 1, 9) - timedelta(days=i), avg_hr=150) for i in range(3)]
        text = render(aggregate(runs, now=SCENARIO_NOW))
        assert "## Heart Rate Trends" not in text

    def test_current_week_detail_fields(self):
        run = make_run(
            km=10,
            when=utc(2024, 1, 9),
            name="Hilly loop",
            avg_hr=148.6,
            max_hr=171.2,
            total_elevation_gain=100.0,
            description="Felt strong",
        )
        text = render(aggregate([run], now=SCENARIO_NOW))
        assert (
            '- 2024-01-09 | Hilly loop | 6.21 mi | 7:14/mi | 45m 0s | Easy'
            ' | +328ft | HR avg:148 max:171 | "Felt strong"'
        ) in text

    def test_invalid_pace_placeholder(self):
        text = render(aggregate([make_run(km=0, when=utc(2024, 1, 9))], now=SCENARIO_NOW))
        assert "0.00 mi | --:--/mi" in text

    def test_old_runs_leave_recent_window_out(self):
        text = render(aggregate([make_run(when=utc(2023, 6, 1))], now=SCENARIO_NOW))
        assert "## Last 14 Days (for pattern detection)" not in text
        assert "## Overall Stats" in text


# ── Store wiring ─────────────────────────────────────────────────


class TestBuildTrainingContext:
    def test_empty_store(self, store):
        assert build_training_context(store, now=SCENARIO_NOW) == NO_DATA_MESSAGE

    def test_reads_store(self, store):
        for run in scenario_runs():
            store.insert(run)
        text = build_training_context(store, now=SCENARIO_NOW, week_start=0)
        assert text.startswith("## Current Week\nWeek of 2024-01-08 | 6.21 miles | 1 runs")

    def test_evening_run_stays_on_local_sunday(self, store):
        pacific = timezone(timedelta(hours=-8))
        # Sunday 2024-01-07 18:00 in UTC-8
        store.insert(make_run(km=10, when=utc(2024, 1, 8, 2), external_id=1))
        text = build_training_context(store, now=SCENARIO_NOW, week_start=0, tz=pacific)
        assert text.startswith(
            "## Current Week\n"
            "Week of 2024-01-01 | 6.21 miles | 1 runs\n"
            "- 2024-01-07 | Run |"
        )

    def test_defaults_to_local_calendar(self, store, monkeypatch):
        monkeypatch.setattr(
            "src.tools.activity_context.local_timezone", lambda: timezone(timedelta(hours=-8))
        )
        store.insert(make_run(km=10, when=utc(2024, 1, 8, 2), external_id=1))
        text = build_training_context(store, now=SCENARIO_NOW, week_start=0)
        assert "Week of 2024-01-01 | 6.21 miles | 1 runs" in text

    def test_week_start_from_env(self, store, monkeypatch):
        monkeypatch.setenv("RUNTRACKER_WEEK_START", "sunday")
        for run in scenario_runs():
            store.insert(run)
        text = build_training_context(store, now=SCENARIO_NOW)
        assert "Week of 2024-01-07 | 6.21 miles | 1 runs" in text
