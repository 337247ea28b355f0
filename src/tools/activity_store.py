"""Activity storage: persist and retrieve runs as a single JSON document.

The store keeps every activity in memory once loaded. ``insert`` and in-place
field updates are pending until ``save()`` writes the whole collection, which
is the only durability boundary.
"""

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from src.tools.activity import Activity, parse_datetime

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).parent.parent.parent / "data"
ACTIVITIES_PATH = DATA_DIR / "activities.json"


class PersistenceError(Exception):
    """The store could not be read from or written to disk."""


class ActivityStore:
    """JSON-file backed record store for Activity entities."""

    def __init__(self, storage_path: str | Path | None = None):
        self.path = Path(storage_path) if storage_path else ACTIVITIES_PATH
        self._activities: list[Activity] | None = None
        self._by_external_id: dict[int, Activity] = {}

    def _load(self) -> list[Activity]:
        if self._activities is None:
            if not self.path.exists():
                self._activities = []
            else:
                try:
                    raw = json.loads(self.path.read_text(encoding="utf-8"))
                except (OSError, ValueError) as e:
                    raise PersistenceError(f"Cannot read {self.path}: {e}") from e
                self._activities = [Activity.from_dict(item) for item in raw]
            self._by_external_id = {
                a.external_id: a for a in self._activities if a.external_id is not None
            }
        return self._activities

    def fetch(
        self,
        predicate: Callable[[Activity], bool] | None = None,
        sort_key: Callable[[Activity], object] | None = None,
        reverse: bool = False,
        limit: int | None = None,
    ) -> list[Activity]:
        """Return activities matching predicate, optionally sorted and truncated."""
        result = [a for a in self._load() if predicate is None or predicate(a)]
        if sort_key is not None:
            result.sort(key=sort_key, reverse=reverse)
        if limit is not None:
            result = result[:limit]
        return result

    def all(self) -> list[Activity]:
        """All activities, newest first."""
        return self.fetch(sort_key=lambda a: a.date, reverse=True)

    def find_by_external_id(self, external_id: int) -> Activity | None:
        self._load()
        return self._by_external_id.get(external_id)

    def insert(self, activity: Activity) -> None:
        """Add a new activity. Raises ValueError on a duplicate external_id."""
        if self.find_by_external_id(activity.external_id) is not None:
            raise ValueError(f"Activity with external_id {activity.external_id} already stored")
        self._load().append(activity)
        if activity.external_id is not None:
            self._by_external_id[activity.external_id] = activity

    def save(self) -> None:
        """Write all activities to disk atomically.

        Raises PersistenceError if the file cannot be written; the previous
        file contents stay in place.
        """
        activities = self._load()
        payload = json.dumps([a.to_dict() for a in activities], indent=2)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, self.path)
        except OSError as e:
            raise PersistenceError(f"Cannot write {self.path}: {e}") from e
        logger.debug("Saved %d activities to %s", len(activities), self.path)


def add_manual_run(
    store: ActivityStore,
    distance_km: float,
    duration_seconds: int,
    date: datetime | None = None,
    notes: str = "",
) -> Activity:
    """Create and persist a run entered by hand (never synced from Strava)."""
    if distance_km < 0 or duration_seconds < 0:
        raise ValueError("Distance and duration must not be negative")
    activity = Activity(
        distance_km=distance_km,
        duration=duration_seconds,
        date=parse_datetime(date) if date else datetime.now(timezone.utc),
        notes=notes,
    )
    store.insert(activity)
    store.save()
    return activity
