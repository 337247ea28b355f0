"""CLI interface for Run Tracker using Rich."""

import argparse
import logging
from datetime import datetime, timezone

from google.genai import errors as genai_errors
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from src.agent.coach import ask_coach
from src.memory.profile import create_profile, load_profile, save_profile
from src.sync.credentials import TokenFileProvider
from src.sync.engine import SyncEngine, SyncStatus
from src.tools.activity_context import build_training_context
from src.tools.activity_store import ActivityStore, PersistenceError, add_manual_run
from src.tools.classifier import classify
from src.tools.units import format_duration, format_pace, km_to_miles, pace_min_per_mile, r2, round_miles

console = Console()

STATUS_STYLES = {
    SyncStatus.COMPLETE: "green",
    SyncStatus.RATE_LIMITED: "yellow",
    SyncStatus.CANCELLED: "yellow",
    SyncStatus.SOURCE_ERROR: "red",
    SyncStatus.AUTH_FAILURE: "red",
}


def run_sync(store: ActivityStore) -> None:
    """Pull new runs from Strava and print the outcome."""
    engine = SyncEngine(store, TokenFileProvider())

    with console.status("Starting sync...") as status:
        def on_page(report):
            status.update(f"Page {report.pages_processed}: {report.activities_upserted} runs synced...")

        try:
            report = engine.sync(progress=on_page)
        except PersistenceError as e:
            console.print(f"[red]Could not save synced runs: {escape(str(e))}[/red]")
            return

    style = STATUS_STYLES.get(report.status, "white")
    console.print(f"[{style}]{escape(report.message)}[/{style}]")
    if report.skipped:
        console.print(f"[dim]{report.skipped} malformed records skipped.[/dim]")


def display_runs(store: ActivityStore, limit: int = 20) -> None:
    """Display the most recent runs as a Rich table."""
    runs = store.all()[:limit]
    if not runs:
        console.print("[yellow]No runs stored yet. Try --sync or --add-run.[/yellow]")
        return

    table = Table(title=f"Recent Runs (last {len(runs)})")
    table.add_column("Date", style="bold", width=10)
    table.add_column("Name", width=28)
    table.add_column("Type", style="cyan", width=10)
    table.add_column("Distance", justify="right", width=10)
    table.add_column("Pace", justify="right", width=8)
    table.add_column("Time", justify="right", width=12)
    table.add_column("HR", justify="right", width=5)
    table.add_column("Source", width=7)

    for run in runs:
        miles = round_miles(run.distance_km)
        table.add_row(
            run.date.date().isoformat(),
            escape(run.name or "Run"),
            classify(run).value,
            f"{r2(miles)} mi",
            format_pace(pace_min_per_mile(run.moving_seconds, km_to_miles(run.distance_km))),
            format_duration(run.moving_seconds),
            str(int(run.average_heartrate)) if run.average_heartrate else "",
            "Strava" if run.synced_from_strava else "Manual",
        )

    console.print(table)


def add_run(store: ActivityStore, km: float, minutes: float, date: str | None, notes: str) -> None:
    """Record a run entered by hand."""
    run_date = datetime.fromisoformat(date).replace(hour=12, tzinfo=timezone.utc) if date else None
    run = add_manual_run(store, km, round(minutes * 60), run_date, notes=notes)
    console.print(
        f"[green]Saved {r2(round_miles(run.distance_km))} mi run on {run.date.date().isoformat()}[/green]"
    )


def set_goal(args: argparse.Namespace) -> None:
    """Create or replace the race goal."""
    profile = create_profile(
        goal_race=args.set_goal,
        goal_date=args.goal_date,
        goal_time=args.goal_time,
        weekly_mileage_target=args.weekly_miles,
    )
    path = save_profile(profile)
    console.print(f"[green]Goal saved to {path}[/green]")


def run_coach(store: ActivityStore, command: str, question: str | None = None) -> None:
    """Send the training context to the coach and show the reply."""
    profile = load_profile()
    try:
        with console.status("Asking your coach..."):
            reply = ask_coach(command, store, profile, question=question)
    except genai_errors.APIError as e:
        console.print(f"[red]Failed to reach the coach: {escape(str(e))}[/red]")
        return
    console.print(Panel(escape(reply), title="Coach", style="blue"))


def main(args: list[str] | None = None):
    """Main CLI entry point with argument parsing."""
    parser = argparse.ArgumentParser(
        prog="runtracker",
        description="Run Tracker - Strava sync and training context for your running coach",
    )
    parser.add_argument("--sync", action="store_true", help="Sync new runs from Strava")
    parser.add_argument("--context", action="store_true", help="Print the training context report")
    parser.add_argument(
        "--list", dest="list_count", type=int, nargs="?", const=20, metavar="N",
        help="Show the N most recent runs (default 20)",
    )
    parser.add_argument(
        "--add-run", nargs=2, type=float, metavar=("KM", "MINUTES"),
        help="Record a run by hand",
    )
    parser.add_argument("--date", help="Date for --add-run (YYYY-MM-DD, default today)")
    parser.add_argument("--notes", default="", help="Notes for --add-run")
    parser.add_argument("--set-goal", metavar="RACE", help="Set the goal race")
    parser.add_argument("--goal-date", help="Goal race date (YYYY-MM-DD)")
    parser.add_argument("--goal-time", help="Goal finish time (H:MM:SS or MM:SS)")
    parser.add_argument("--weekly-miles", type=float, help="Weekly mileage target")
    parser.add_argument("--analyze", action="store_true", help="Ask the coach to analyze your training")
    parser.add_argument("--week", action="store_true", help="Ask the coach for a weekly summary")
    parser.add_argument("--ask", metavar="QUESTION", help="Ask the coach a question")
    parser.add_argument("--data-file", help="Path of the activity store JSON file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log sync progress")

    parsed = parser.parse_args(args)

    if parsed.verbose:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    store = ActivityStore(parsed.data_file)

    try:
        if parsed.sync:
            run_sync(store)
            return

        if parsed.add_run:
            km, minutes = parsed.add_run
            add_run(store, km, minutes, parsed.date, parsed.notes)
            return

        if parsed.set_goal:
            set_goal(parsed)
            return

        if parsed.list_count is not None:
            display_runs(store, parsed.list_count)
            return

        if parsed.analyze:
            run_coach(store, "analyze")
            return

        if parsed.week:
            run_coach(store, "week")
            return

        if parsed.ask:
            run_coach(store, "ask", question=parsed.ask)
            return

        # Default: print the context (same as --context)
        console.print(build_training_context(store, load_profile()), markup=False, highlight=False)
    except (ValueError, PersistenceError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")


if __name__ == "__main__":
    main()
