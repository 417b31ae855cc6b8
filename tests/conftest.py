"""Shared test fixtures for gcal-tools tests.

This module provides common fixtures used across all test modules:
- Event builders for timed and all-day events
- An in-memory calendar provider with scriptable failures
- Default configuration and a conflict detection service
- Logging state reset between tests

Usage:
    async def test_something(make_timed_event, make_provider, service):
        provider = make_provider({"primary": [make_timed_event("Standup", 10, 11)]})
        ...
"""

import logging
from collections.abc import Callable
from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Any

import pytest
import structlog

from gcal_tools.config import ConflictConfig
from gcal_tools.conflicts.service import ConflictDetectionService
from gcal_tools.models import (
    AllDaySpan,
    Attendee,
    CalendarAccount,
    CalendarEvent,
    TimedSpan,
)
from gcal_tools.providers.base import CalendarProvider


# ─────────────────────────────────────────────────────────────────────────────
# Time Helpers
# ─────────────────────────────────────────────────────────────────────────────


def at(hour: int, minute: int = 0, day: int = 15) -> datetime:
    """2024-01-<day> <hour>:<minute> UTC."""
    return datetime(2024, 1, day, hour, minute, tzinfo=timezone.utc)


# ─────────────────────────────────────────────────────────────────────────────
# Event Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def make_timed_event() -> Callable[..., CalendarEvent]:
    """Build a timed event on 2024-01-15 (UTC) from start/end hours.

    Hours may be floats: 10.5 means 10:30.
    """

    def _make(
        title: str,
        start_hour: float,
        end_hour: float,
        event_id: str | None = None,
        location: str = "",
        status: str = "confirmed",
        attendees: tuple[Attendee, ...] = (),
        day: int = 15,
    ) -> CalendarEvent:
        start = at(int(start_hour), int(round((start_hour % 1) * 60)), day)
        end = at(int(end_hour), int(round((end_hour % 1) * 60)), day)
        return CalendarEvent(
            event_id=event_id,
            title=title,
            location=location,
            when=TimedSpan(start=start, end=end, timezone="UTC"),
            status=status,
            attendees=attendees,
        )

    return _make


@pytest.fixture
def make_all_day_event() -> Callable[..., CalendarEvent]:
    """Build an all-day event starting on 2024-01-<day>."""

    def _make(title: str, day: int = 15, days: int = 1, event_id: str | None = None) -> CalendarEvent:
        return CalendarEvent(
            event_id=event_id,
            title=title,
            when=AllDaySpan(start_date=date(2024, 1, day), end_date=date(2024, 1, day + days)),
        )

    return _make


@pytest.fixture
def lunch_with_josh_payload() -> dict:
    """Google Calendar resource for an existing lunch event."""
    return {
        "id": "existing-lunch-123",
        "summary": "Lunch with Josh",
        "description": "Monthly catch-up lunch",
        "location": "The Coffee Shop",
        "start": {"dateTime": "2024-01-15T12:00:00-08:00", "timeZone": "America/Los_Angeles"},
        "end": {"dateTime": "2024-01-15T13:00:00-08:00", "timeZone": "America/Los_Angeles"},
        "attendees": [
            {"email": "josh@example.com", "displayName": "Josh", "responseStatus": "accepted"},
        ],
        "htmlLink": "https://calendar.google.com/calendar/event?eid=existing-lunch-123",
        "status": "confirmed",
    }


# ─────────────────────────────────────────────────────────────────────────────
# Provider Fixtures
# ─────────────────────────────────────────────────────────────────────────────


class FakeCalendarProvider(CalendarProvider):
    """In-memory provider.

    ``failures`` maps a calendar ID to either an exception instance (raised
    from list_events) or an error string (returned as a failed result).
    """

    def __init__(
        self,
        account: CalendarAccount,
        events_by_calendar: dict[str, list[CalendarEvent]] | None = None,
        failures: dict[str, Any] | None = None,
        busy: Any = None,
        timezone_name: str = "UTC",
    ):
        super().__init__(account)
        self.events_by_calendar = events_by_calendar or {}
        self.failures = failures or {}
        self.busy = busy
        self.timezone_name = timezone_name
        self.list_calls: list[dict[str, Any]] = []
        self.freebusy_calls: list[list[str]] = []
        self.created: list[CalendarEvent] = []
        self.create_error: dict[str, Any] | None = None

    @property
    def provider_name(self) -> str:
        return "fake"

    async def list_events(self, calendar_id, time_min, time_max, max_results=250):
        self.list_calls.append({
            "calendar_id": calendar_id,
            "time_min": time_min,
            "time_max": time_max,
            "max_results": max_results,
        })
        failure = self.failures.get(calendar_id)
        if isinstance(failure, BaseException):
            raise failure
        if failure:
            return {"success": False, "error": failure}
        events = list(self.events_by_calendar.get(calendar_id, []))
        return {"success": True, "events": events, "total": len(events)}

    async def query_freebusy(self, time_min, time_max, calendar_ids):
        self.freebusy_calls.append(list(calendar_ids))
        if isinstance(self.busy, BaseException):
            raise self.busy
        if self.busy is None:
            return {"success": False, "error": "Permission denied"}
        return {"success": True, "calendars": self.busy}

    async def create_event(self, calendar_id, event, send_updates=None):
        if self.create_error is not None:
            return self.create_error
        created = replace(
            event,
            event_id=event.event_id or "created-event-1",
            calendar_id=calendar_id,
        )
        self.created.append(created)
        return {"success": True, "event": created, "event_id": created.event_id}

    async def get_calendar_timezone(self, calendar_id):
        return {"success": True, "timezone": self.timezone_name}


@pytest.fixture
def account() -> CalendarAccount:
    return CalendarAccount(id="acct-1", email_address="me@example.com", access_token="token-abc")


@pytest.fixture
def make_provider(account) -> Callable[..., FakeCalendarProvider]:
    def _make(
        events_by_calendar: dict[str, list[CalendarEvent]] | None = None,
        **kwargs: Any,
    ) -> FakeCalendarProvider:
        return FakeCalendarProvider(account, events_by_calendar, **kwargs)

    return _make


# ─────────────────────────────────────────────────────────────────────────────
# Service Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def conflict_config() -> ConflictConfig:
    """Default configuration, independent of args/conflicts.yaml."""
    return ConflictConfig()


@pytest.fixture
def service(conflict_config) -> ConflictDetectionService:
    return ConflictDetectionService(conflict_config)


# ─────────────────────────────────────────────────────────────────────────────
# Logging Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo any logging configuration a test (or tool call) applied."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
