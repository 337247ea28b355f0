"""Unit conversion and formatting shared by the analytics and context modules.

Every km/mile and meter/foot conversion in the project goes through this
module so the aggregated numbers and the rendered report always agree.

Public API:
    km_to_miles(km) -> float
    meters_to_feet(meters) -> float
    pace_min_per_mile(moving_seconds, miles) -> float
    is_valid_pace(pace) -> bool
    format_pace(min_per_unit) -> str
    format_duration(seconds) -> str
    r2(value) -> str
"""

import math

KM_TO_MILES = 0.621371
METERS_TO_FEET = 3.28084
INVALID_PACE = "--:--"


def km_to_miles(km: float) -> float:
    """Convert kilometers to miles."""
    return km * KM_TO_MILES


def meters_to_feet(meters: float) -> float:
    """Convert meters to feet."""
    return meters * METERS_TO_FEET


def round_miles(km: float) -> float:
    """Convert kilometers to miles rounded to 2 decimal places."""
    return round(km_to_miles(km), 2)


def pace_min_per_mile(moving_seconds: float, miles: float) -> float:
    """Minutes per mile from moving time and distance.

    Returns 0.0 when the distance is zero, which ``is_valid_pace`` rejects.
    """
    if not miles or miles <= 0:
        return 0.0
    return (moving_seconds / 60) / miles


def is_valid_pace(pace: float | None) -> bool:
    """A pace is renderable when it is positive and finite."""
    return pace is not None and math.isfinite(pace) and pace > 0


def format_pace(min_per_unit: float | None) -> str:
    """Convert decimal pace to M:SS, or ``--:--`` for an invalid pace.

    Seconds are truncated, not rounded.

    Examples:
        8.5   -> '8:30'
        7.999 -> '7:59'
        0     -> '--:--'
    """
    if not is_valid_pace(min_per_unit):
        return INVALID_PACE
    # float noise such as 7.9999999999 still renders as 8:00
    minutes, seconds = divmod(int(min_per_unit * 60 + 1e-6), 60)
    return f"{minutes}:{seconds:02d}"


def format_duration(seconds: int | float) -> str:
    """Format a duration as '1h 5m 3s' or '45m 0s'."""
    seconds = int(seconds or 0)
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    secs = seconds % 60
    if hours > 0:
        return f"{hours}h {minutes}m {secs}s"
    return f"{minutes}m {secs}s"


def r2(value: float) -> str:
    """Format a number with exactly two decimals."""
    return f"{value:.2f}"
