"""Activity and Profile records stored by the run tracker."""

import re
import uuid
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime, timezone

# Fields owned by Strava; a sync pass overwrites all of them on upsert.
SOURCED_FIELDS = (
    "date",
    "distance_km",
    "duration",
    "elapsed_time",
    "moving_time",
    "total_elevation_gain",
    "average_heartrate",
    "max_heartrate",
    "average_speed",
    "max_speed",
    "suffer_score",
    "workout_type",
    "name",
    "description",
)


def parse_datetime(value: str | datetime) -> datetime:
    """Parse an ISO 8601 string (``Z`` suffix allowed) into an aware UTC datetime."""
    if isinstance(value, datetime):
        dt = value
    else:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


@dataclass
class Activity:
    """One running session, synced from Strava or entered by hand."""

    distance_km: float
    duration: int  # seconds
    date: datetime
    notes: str = ""
    local_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    # Strava fields
    external_id: int | None = None
    name: str | None = None
    elapsed_time: int | None = None
    moving_time: int | None = None
    total_elevation_gain: float | None = None
    average_heartrate: float | None = None
    max_heartrate: float | None = None
    average_speed: float | None = None
    max_speed: float | None = None
    suffer_score: int | None = None
    workout_type: int | None = None
    description: str | None = None
    synced_from_strava: bool = False

    @property
    def moving_seconds(self) -> int:
        """Moving time when Strava reported it, otherwise the recorded duration."""
        return self.moving_time if self.moving_time is not None else self.duration

    @property
    def pace_min_per_km(self) -> float:
        if self.distance_km <= 0:
            return 0.0
        return (self.moving_seconds / 60) / self.distance_km

    def to_dict(self) -> dict:
        data = asdict(self)
        data["date"] = self.date.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Activity":
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        values["date"] = parse_datetime(values["date"])
        return cls(**values)


# H:MM:SS or MM:SS
_GOAL_TIME_RE = re.compile(r"^(?:(\d+):)?([0-5]?\d):([0-5]\d)$")


def parse_goal_time(value: str) -> int:
    """Return a goal finish time in seconds.

    Raises ValueError if the string is neither ``H:MM:SS`` nor ``MM:SS``.
    """
    match = _GOAL_TIME_RE.match(value.strip())
    if not match:
        raise ValueError(f"Goal time must be H:MM:SS or MM:SS, got {value!r}")
    hours, minutes, seconds = match.groups()
    return int(hours or 0) * 3600 + int(minutes) * 60 + int(seconds)


@dataclass
class Profile:
    """The athlete's race goal."""

    goal_race: str
    goal_date: str | None = None
    goal_time: str | None = None
    weekly_mileage_target: float | None = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Profile":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})
