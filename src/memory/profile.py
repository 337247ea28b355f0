"""Athlete goal profile creation and persistence."""

import json
from pathlib import Path

from src.tools.activity import Profile, parse_goal_time

DATA_DIR = Path(__file__).parent.parent.parent / "data"
PROFILE_PATH = DATA_DIR / "athlete" / "profile.json"


def create_profile(
    goal_race: str,
    goal_date: str | None = None,
    goal_time: str | None = None,
    weekly_mileage_target: float | None = None,
) -> Profile:
    """Create a goal profile from settings input.

    Raises ValueError for an empty race label or a goal time that is not
    ``H:MM:SS`` / ``MM:SS``.
    """
    if not goal_race or not goal_race.strip():
        raise ValueError("Goal race must not be empty")
    if goal_time:
        parse_goal_time(goal_time)
    return Profile(
        goal_race=goal_race.strip(),
        goal_date=goal_date or None,
        goal_time=goal_time or None,
        weekly_mileage_target=weekly_mileage_target,
    )


def save_profile(profile: Profile, path: str | Path | None = None) -> Path:
    """Save the profile to data/athlete/profile.json. Returns the path."""
    dest = Path(path) if path else PROFILE_PATH
    dest.parent.mkdir(parents=True, exist_ok=True)
    dest.write_text(json.dumps(profile.to_dict(), indent=2))
    return dest


def load_profile(path: str | Path | None = None) -> Profile | None:
    """Load the profile from disk, or None if none has been saved yet."""
    src = Path(path) if path else PROFILE_PATH
    if not src.exists():
        return None
    return Profile.from_dict(json.loads(src.read_text()))
