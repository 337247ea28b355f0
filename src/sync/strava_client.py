"""Strava API client: list athlete activities one page at a time.

Responses are decoded once, here, into ``StravaActivity`` records so nothing
downstream touches raw JSON dicts.
"""

import logging
import math
import os
from dataclasses import dataclass
from datetime import datetime

import requests

from src.tools.activity import parse_datetime

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://www.strava.com/api/v3"
PAGE_SIZE = 100
REQUEST_TIMEOUT = 30  # seconds

HTTP_OK = 200
HTTP_TOO_MANY_REQUESTS = 429


class SourceRecordError(ValueError):
    """A single activity record is missing a required field or has a bad value."""


@dataclass(frozen=True)
class StravaActivity:
    """One entry of GET /athlete/activities, every optional field explicit."""
    id: int
    type: str
    start_date: datetime
    name: str | None = None
    distance: float = 0.0  # meters
    moving_time: int = 0
    elapsed_time: int | None = None
    total_elevation_gain: float | None = None
    average_speed: float | None = None
    max_speed: float | None = None
    average_heartrate: float | None = None
    max_heartrate: float | None = None
    suffer_score: int | None = None
    workout_type: int | None = None
    description: str | None = None

    @property
    def is_run(self) -> bool:
        return self.type == "Run"

    @classmethod
    def from_api_response(cls, data: dict) -> "StravaActivity":
        """Decode one API record.

        Raises SourceRecordError when ``id`` or ``start_date`` is missing or
        unparseable, or when ``distance`` or ``moving_time`` is not a number.
        Other optional fields of the wrong type decode as None.
        """
        if not isinstance(data, dict):
            raise SourceRecordError(f"Expected an object, got {type(data).__name__}")
        activity_id = data.get("id")
        if not isinstance(activity_id, int) or isinstance(activity_id, bool):
            raise SourceRecordError(f"Activity record has no usable id: {activity_id!r}")
        try:
            start_date = parse_datetime(data["start_date"])
        except (KeyError, TypeError, AttributeError, ValueError) as e:
            raise SourceRecordError(f"Activity {activity_id} has no valid start_date") from e

        distance = _number(data.get("distance"))
        moving_time = _number(data.get("moving_time"))
        if distance is None and data.get("distance") is not None:
            raise SourceRecordError(f"Activity {activity_id} has a non-numeric distance")
        if moving_time is None and data.get("moving_time") is not None:
            raise SourceRecordError(f"Activity {activity_id} has a non-numeric moving_time")

        elapsed_time = _number(data.get("elapsed_time"))
        workout_type = data.get("workout_type")
        if isinstance(workout_type, bool) or not isinstance(workout_type, int):
            workout_type = None
        return cls(
            id=activity_id,
            type=_text(data.get("type")) or "",
            start_date=start_date,
            name=_text(data.get("name")),
            distance=float(distance or 0.0),
            moving_time=int(moving_time or 0),
            elapsed_time=int(elapsed_time) if elapsed_time is not None else None,
            total_elevation_gain=_number(data.get("total_elevation_gain")),
            average_speed=_number(data.get("average_speed")),
            max_speed=_number(data.get("max_speed")),
            average_heartrate=_number(data.get("average_heartrate")),
            max_heartrate=_number(data.get("max_heartrate")),
            suffer_score=_number(data.get("suffer_score")),
            workout_type=workout_type,
            description=_text(data.get("description")),
        )


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _number(value) -> float | None:
    """A JSON number as-is, anything else (null, strings, booleans) as None."""
    return value if _is_number(value) else None


def _text(value) -> str | None:
    return value if isinstance(value, str) else None


@dataclass(frozen=True)
class PageResult:
    """Outcome of one page request."""
    page: int
    status_code: int
    records: tuple = ()  # raw JSON objects, decoded lazily per record
    body: str = ""
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status_code == HTTP_OK and self.error is None

    @property
    def rate_limited(self) -> bool:
        return self.status_code == HTTP_TOO_MANY_REQUESTS

    def activities(self) -> tuple[list[StravaActivity], int]:
        """Decode all records. Returns (decoded, number skipped as malformed)."""
        decoded = []
        skipped = 0
        for raw in self.records:
            try:
                decoded.append(StravaActivity.from_api_response(raw))
            except SourceRecordError as e:
                logger.warning("Skipping malformed activity on page %d: %s", self.page, e)
                skipped += 1
        return decoded, skipped


class StravaClient:
    """Thin wrapper around the Strava REST API."""

    def __init__(
        self,
        session: requests.Session | None = None,
        api_url: str | None = None,
        page_size: int = PAGE_SIZE,
    ):
        self.session = session or requests.Session()
        self.api_url = (api_url or os.environ.get("STRAVA_API_URL") or DEFAULT_API_URL).rstrip("/")
        self.page_size = page_size

    def fetch_activities_page(self, token: str, page: int, after: int | None = None) -> PageResult:
        """Fetch one page of the athlete's activities, newest first.

        Args:
            token: OAuth access token.
            page: 1-based page number.
            after: Only activities starting after this unix timestamp.

        Network failures propagate as ``requests.RequestException``.
        """
        params = {"per_page": self.page_size, "page": page}
        if after is not None:
            params["after"] = after

        response = self.session.get(
            f"{self.api_url}/athlete/activities",
            headers={"Authorization": f"Bearer {token}"},
            params=params,
            timeout=REQUEST_TIMEOUT,
        )

        if response.status_code != HTTP_OK:
            return PageResult(page=page, status_code=response.status_code, body=response.text)

        try:
            payload = response.json()
        except ValueError:
            return PageResult(
                page=page, status_code=response.status_code, body=response.text,
                error="Response body is not valid JSON",
            )
        if not isinstance(payload, list):
            return PageResult(
                page=page, status_code=response.status_code, body=response.text,
                error="Expected a JSON array of activities",
            )
        return PageResult(page=page, status_code=response.status_code, records=tuple(payload))
