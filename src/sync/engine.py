"""Sync engine: incremental, idempotent import of Strava runs into the store.

One sync pass walks the athlete's activity list page by page, strictly in
order, upserting runs by their Strava id. Rate limiting and API errors end
the pass early but keep everything already upserted; the store is saved
once when the loop ends.

Public API:
    SyncEngine(store, token_provider, client=None, pause_seconds=0.2).sync() -> SyncReport
    sync(store, token_provider, **kwargs) -> SyncReport
"""

import logging
import threading
import time
from dataclasses import dataclass, replace
from datetime import timedelta
from enum import Enum
from typing import Callable

import requests

from src.sync.credentials import TokenProvider
from src.sync.strava_client import StravaActivity, StravaClient
from src.tools.activity import Activity
from src.tools.activity_store import ActivityStore

logger = logging.getLogger(__name__)

CURSOR_OVERLAP = timedelta(hours=24)
PAGE_PAUSE_SECONDS = 0.2


class SyncStatus(str, Enum):
    COMPLETE = "complete"
    RATE_LIMITED = "rate_limited"
    SOURCE_ERROR = "source_error"
    AUTH_FAILURE = "auth_failure"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class PageOutcome:
    """What one successfully fetched page contributed."""
    page: int
    fetched: int
    upserted: int
    skipped: int


@dataclass(frozen=True)
class SyncReport:
    pages_processed: int = 0
    activities_upserted: int = 0
    status: SyncStatus = SyncStatus.COMPLETE
    detail: str | None = None
    skipped: int = 0

    def add_page(self, outcome: PageOutcome) -> "SyncReport":
        return replace(
            self,
            pages_processed=self.pages_processed + 1,
            activities_upserted=self.activities_upserted + outcome.upserted,
            skipped=self.skipped + outcome.skipped,
        )

    def finish(self, status: SyncStatus, detail: str | None = None) -> "SyncReport":
        return replace(self, status=status, detail=detail)

    @property
    def message(self) -> str:
        """User-facing status line."""
        count = self.activities_upserted
        if self.status == SyncStatus.COMPLETE:
            return f"Sync complete. {count} runs processed."
        if self.status == SyncStatus.RATE_LIMITED:
            return f"Rate limited. Try again in 15 minutes. {count} runs processed."
        if self.status == SyncStatus.SOURCE_ERROR:
            return f"Strava API error: {self.detail}. {count} runs processed."
        if self.status == SyncStatus.CANCELLED:
            return f"Sync cancelled. {count} runs processed."
        return f"Sync failed: {self.detail}"


class SyncEngine:
    """Drives the Strava client across pages and upserts runs into the store."""

    def __init__(
        self,
        store: ActivityStore,
        token_provider: TokenProvider,
        client: StravaClient | None = None,
        pause_seconds: float = PAGE_PAUSE_SECONDS,
    ):
        self.store = store
        self.token_provider = token_provider
        self.client = client or StravaClient()
        self.pause_seconds = pause_seconds

    # -- cursor -------------------------------------------------------------

    def compute_cursor(self) -> int | None:
        """Unix seconds of the newest synced run minus 24h, or None for a full fetch."""
        latest = self.store.fetch(
            lambda a: a.synced_from_strava,
            sort_key=lambda a: a.date,
            reverse=True,
            limit=1,
        )
        if not latest:
            return None
        return int((latest[0].date - CURSOR_OVERLAP).timestamp())

    # -- upsert -------------------------------------------------------------

    def _upsert(self, source: StravaActivity) -> Activity:
        activity = self.store.find_by_external_id(source.id)
        distance_km = source.distance / 1000
        if activity is None:
            activity = Activity(
                distance_km=distance_km,
                duration=source.moving_time,
                date=source.start_date,
                external_id=source.id,
            )
            self.store.insert(activity)

        activity.distance_km = distance_km
        activity.duration = source.moving_time
        activity.date = source.start_date
        activity.name = source.name
        activity.elapsed_time = source.elapsed_time
        activity.moving_time = source.moving_time
        activity.total_elevation_gain = source.total_elevation_gain
        activity.average_speed = source.average_speed
        activity.max_speed = source.max_speed
        activity.average_heartrate = source.average_heartrate
        activity.max_heartrate = source.max_heartrate
        activity.suffer_score = source.suffer_score
        activity.workout_type = source.workout_type
        activity.description = source.description
        activity.synced_from_strava = True
        return activity

    def _apply_page(
        self, page: int, activities: list[StravaActivity], skipped: int, fetched: int
    ) -> PageOutcome:
        runs = [a for a in activities if a.is_run]
        for source in runs:
            self._upsert(source)
        return PageOutcome(page=page, fetched=fetched, upserted=len(runs), skipped=skipped)

    # -- main loop ------------------------------------------------------------

    def sync(
        self,
        cancel_event: threading.Event | None = None,
        progress: Callable[[SyncReport], None] | None = None,
    ) -> SyncReport:
        """Run one sync pass and return its report.

        Rate limits, API errors and cancellation end the pass with a status;
        only a failing ``store.save()`` raises (PersistenceError).
        """
        report = SyncReport()

        try:
            token = self.token_provider.get_valid_access_token()
        except Exception as e:
            logger.warning("Sync aborted, no access token: %s", e)
            return report.finish(SyncStatus.AUTH_FAILURE, str(e))

        after = self.compute_cursor()
        logger.info("Starting sync (after=%s)", after)

        page = 1
        while True:
            if cancel_event is not None and cancel_event.is_set():
                report = report.finish(SyncStatus.CANCELLED)
                break

            try:
                result = self.client.fetch_activities_page(token, page, after=after)
            except requests.RequestException as e:
                logger.warning("Request for page %d failed: %s", page, e)
                report = report.finish(SyncStatus.SOURCE_ERROR, str(e))
                break

            if result.rate_limited:
                logger.warning("Rate limited on page %d", page)
                report = report.finish(SyncStatus.RATE_LIMITED, result.body or None)
                break
            if not result.ok:
                detail = result.error or result.body
                logger.warning("Strava returned %d on page %d: %s", result.status_code, page, detail)
                report = report.finish(SyncStatus.SOURCE_ERROR, f"({result.status_code}) {detail}")
                break

            # Decode the whole page before touching the store
            activities, skipped = result.activities()
            outcome = self._apply_page(page, activities, skipped, fetched=len(result.records))
            report = report.add_page(outcome)
            logger.info("Page %d: %d runs synced so far", page, report.activities_upserted)
            if progress is not None:
                progress(report)

            if outcome.fetched < self.client.page_size:
                break

            page += 1
            if cancel_event is not None:
                cancel_event.wait(self.pause_seconds)
            elif self.pause_seconds > 0:
                time.sleep(self.pause_seconds)

        self.store.save()
        logger.info("%s", report.message)
        return report


def sync(store: ActivityStore, token_provider: TokenProvider, **kwargs) -> SyncReport:
    """Convenience wrapper: build a SyncEngine and run one pass."""
    return SyncEngine(store, token_provider, **kwargs).sync()
