"""Workout classification: map a run to one training category.

Strava's workout_type code wins when set; otherwise keywords in the run name
decide, and very long runs fall back to Long Run.
"""

from enum import Enum

from src.tools.activity import Activity
from src.tools.units import km_to_miles

LONG_RUN_THRESHOLD_MILES = 13


class Category(str, Enum):
    EASY = "Easy"
    TEMPO = "Tempo"
    INTERVALS = "Intervals"
    LONG_RUN = "Long Run"
    WORKOUT = "Workout"
    RACE = "Race"


# Strava run workout_type codes (0 = default run)
WORKOUT_TYPE_CATEGORIES = {
    1: Category.RACE,
    2: Category.LONG_RUN,
    3: Category.WORKOUT,
}

# Checked in order, first keyword hit wins
NAME_KEYWORDS = [
    (("tempo", "threshold"), Category.TEMPO),
    (("interval", "repeat", "speed"), Category.INTERVALS),
    (("long",), Category.LONG_RUN),
    (("easy", "recovery"), Category.EASY),
]

EASY_CATEGORIES = (Category.EASY, Category.LONG_RUN)
WORKOUT_CATEGORIES = (Category.WORKOUT, Category.TEMPO, Category.INTERVALS, Category.RACE)


def classify(activity: Activity) -> Category:
    """Return the category for a run. Never raises."""
    by_type = WORKOUT_TYPE_CATEGORIES.get(activity.workout_type)
    if by_type is not None:
        return by_type

    name = (activity.name or "").lower()
    for keywords, category in NAME_KEYWORDS:
        if any(k in name for k in keywords):
            return category

    if km_to_miles(activity.distance_km or 0) >= LONG_RUN_THRESHOLD_MILES:
        return Category.LONG_RUN
    return Category.EASY
