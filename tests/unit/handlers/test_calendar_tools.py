"""Tests for the calendar agent tools.

Tests cover:
- Event ID validation and start/end parsing
- Create flow: clean, warned, blocked, overridden
- Provider errors on insert
- Check-only flow, including free/busy
- Sync tool wrappers and registry
"""

from datetime import date, timezone
from unittest.mock import patch

import pytest

from gcal_tools.config import ConflictConfig
from gcal_tools.handlers.calendar_tools import (
    check_conflicts_for,
    create_event_checked,
    create_event_time,
    gcal_check_conflicts,
    gcal_create_event,
    get_tool,
    list_tools,
    validate_event_id,
)
from gcal_tools.handlers.formatting import (
    BLOCKED_HEADER,
    CONFLICTS_HEADER,
    DUPLICATES_HEADER,
    OVERRIDE_INSTRUCTION,
)
from gcal_tools.models import AllDaySpan, BusySlot, CalendarAccount, TimedSpan
from tests.conftest import at


class TestValidateEventId:
    """Tests for custom event ID validation."""

    @pytest.mark.parametrize("event_id", ["abcde", "lunch-2024-01-15", "A1-b2-C3", "x" * 1024])
    def test_valid(self, event_id):
        validate_event_id(event_id)

    def test_too_short(self):
        with pytest.raises(ValueError, match="at least 5 characters"):
            validate_event_id("abc")

    def test_too_long(self):
        with pytest.raises(ValueError, match="must not exceed 1024"):
            validate_event_id("a" * 1025)

    def test_invalid_characters(self):
        with pytest.raises(ValueError, match="letters, numbers, and hyphens"):
            validate_event_id("lunch_with_josh")

    def test_reports_every_rule(self):
        """Should list all broken rules in one message."""
        with pytest.raises(ValueError) as exc_info:
            validate_event_id("a_b")
        message = str(exc_info.value)
        assert message.startswith("Invalid event ID:")
        assert "at least 5 characters" in message
        assert "letters, numbers, and hyphens" in message


class TestCreateEventTime:
    """Tests for parsing tool start/end input."""

    def test_dates_make_all_day(self):
        when = create_event_time("2024-01-15", "2024-01-17", "UTC")
        assert when == AllDaySpan(start_date=date(2024, 1, 15), end_date=date(2024, 1, 17))

    def test_naive_datetime_uses_timezone(self):
        """Should interpret naive datetimes in the given timezone."""
        when = create_event_time("2024-01-15T10:00:00", "2024-01-15T11:00:00", "Europe/Berlin")

        assert isinstance(when, TimedSpan)
        assert when.timezone == "Europe/Berlin"
        assert when.resolve().start == at(9)

    def test_zulu_suffix(self):
        when = create_event_time("2024-01-15T10:00:00Z", "2024-01-15T11:00:00Z", "UTC")
        assert when.start == at(10)
        assert when.start.tzinfo == timezone.utc

    def test_unparseable(self):
        with pytest.raises(ValueError):
            create_event_time("tomorrow", "later", "UTC")


class TestCreateEventChecked:
    """Tests for the scan-then-create flow."""

    @pytest.mark.asyncio
    async def test_clean_create(self, service, make_provider):
        """Should create the event and report no warnings."""
        provider = make_provider({"primary": []})

        result = await create_event_checked(
            provider, service, "primary", "Planning",
            "2024-01-15T10:00:00", "2024-01-15T11:00:00", time_zone="UTC",
        )

        assert result["success"] is True
        assert result["blocked"] is False
        assert result["event_id"] == "created-event-1"
        assert result["text"].startswith("Event created successfully!")
        assert "⚠️" not in result["text"]
        assert result["warnings"]["has_conflicts"] is False
        assert len(provider.created) == 1

    @pytest.mark.asyncio
    async def test_blocks_exact_duplicate(self, service, make_provider, make_timed_event):
        """Should refuse to create an identical event and leave the calendar untouched."""
        existing = make_timed_event("Lunch with Josh", 12, 13, event_id="existing-lunch-123")
        provider = make_provider({"primary": [existing]})

        result = await create_event_checked(
            provider, service, "primary", "Lunch with Josh",
            "2024-01-15T12:00:00", "2024-01-15T13:00:00", time_zone="UTC",
        )

        assert result["success"] is False
        assert result["blocked"] is True
        assert result["error"] == "Duplicate event detected"
        assert result["text"].startswith(BLOCKED_HEADER)
        assert "(100% similar)" in result["text"]
        assert "Event ID: existing-lunch-123" in result["text"]
        assert OVERRIDE_INSTRUCTION in result["text"]
        assert result["duplicates"][0]["event"]["id"] == "existing-lunch-123"
        assert provider.created == []

    @pytest.mark.asyncio
    async def test_override_creates_with_warning(self, service, make_provider, make_timed_event):
        """Should create anyway when blocking is turned off, attaching the duplicate."""
        existing = make_timed_event("Lunch with Josh", 12, 13, event_id="existing-lunch-123")
        provider = make_provider({"primary": [existing]})

        result = await create_event_checked(
            provider, service, "primary", "Lunch with Josh",
            "2024-01-15T12:00:00", "2024-01-15T13:00:00", time_zone="UTC",
            block_on_high_similarity=False,
        )

        assert result["success"] is True
        assert DUPLICATES_HEADER in result["text"]
        assert len(result["warnings"]["duplicates"]) == 1
        assert len(provider.created) == 1

    @pytest.mark.asyncio
    async def test_similar_event_warns(self, service, make_provider, make_timed_event):
        """Should create a merely similar event and report it with the overlap."""
        existing = make_timed_event("Sync", 10.5, 11.5, event_id="ev-1")
        provider = make_provider({"primary": [existing]})

        result = await create_event_checked(
            provider, service, "primary", "Sync",
            "2024-01-15T10:00:00", "2024-01-15T11:00:00", time_zone="UTC",
        )

        assert result["success"] is True
        assert DUPLICATES_HEADER in result["text"]
        assert CONFLICTS_HEADER in result["text"]
        assert "Overlap: 30 minutes (50% of your event)" in result["text"]

    @pytest.mark.asyncio
    async def test_custom_event_id(self, service, make_provider):
        """Should pass a valid custom ID through to the insert."""
        provider = make_provider({"primary": []})

        result = await create_event_checked(
            provider, service, "primary", "Planning",
            "2024-01-15T10:00:00", "2024-01-15T11:00:00", time_zone="UTC",
            event_id="planning-2024-01-15",
        )

        assert result["event_id"] == "planning-2024-01-15"
        assert provider.created[0].event_id == "planning-2024-01-15"

    @pytest.mark.asyncio
    async def test_invalid_event_id(self, service, make_provider):
        """Should reject a malformed ID before scanning."""
        provider = make_provider({"primary": []})

        result = await create_event_checked(
            provider, service, "primary", "Planning",
            "2024-01-15T10:00:00", "2024-01-15T11:00:00", event_id="bad_id",
        )

        assert result["success"] is False
        assert result["error"].startswith("Invalid event ID:")
        assert provider.list_calls == []

    @pytest.mark.asyncio
    async def test_existing_event_id(self, service, make_provider):
        """Should explain a 409 on a custom ID."""
        provider = make_provider({"primary": []})
        provider.create_error = {"success": False, "status": 409, "error": "Resource already exists"}

        result = await create_event_checked(
            provider, service, "primary", "Planning",
            "2024-01-15T10:00:00", "2024-01-15T11:00:00", time_zone="UTC",
            event_id="planning-2024-01-15",
        )

        assert result["success"] is False
        assert result["error"] == "Event ID 'planning-2024-01-15' already exists. Please use a different ID."

    @pytest.mark.asyncio
    async def test_provider_error(self, service, make_provider):
        """Should pass other insert failures through."""
        provider = make_provider({"primary": []})
        provider.create_error = {"success": False, "status": 403, "error": "Permission denied"}

        result = await create_event_checked(
            provider, service, "primary", "Planning",
            "2024-01-15T10:00:00", "2024-01-15T11:00:00", time_zone="UTC",
        )

        assert result == {
            "success": False,
            "tool": "gcal_create_event",
            "blocked": False,
            "error": "Permission denied",
        }

    @pytest.mark.asyncio
    async def test_unparseable_times(self, service, make_provider):
        provider = make_provider({"primary": []})

        result = await create_event_checked(
            provider, service, "primary", "Planning", "tomorrow", "later", time_zone="UTC",
        )

        assert result["success"] is False
        assert "Could not parse start/end" in result["error"]

    @pytest.mark.asyncio
    async def test_all_day_event(self, service, make_provider):
        """Should create an all-day event from date-only input."""
        provider = make_provider({"primary": []})

        result = await create_event_checked(
            provider, service, "primary", "Offsite", "2024-01-15", "2024-01-17", time_zone="UTC",
        )

        assert result["success"] is True
        assert provider.created[0].is_all_day
        assert "Dates: 2024-01-15 to 2024-01-16 (all day)" in result["text"]

    @pytest.mark.asyncio
    async def test_calendar_timezone_used(self, service, make_provider):
        """Should fall back to the calendar's timezone when none is given."""
        provider = make_provider({"primary": []}, timezone_name="America/New_York")

        await create_event_checked(
            provider, service, "primary", "Planning", "2024-01-15T10:00:00", "2024-01-15T11:00:00",
        )

        assert provider.created[0].when.timezone == "America/New_York"

    @pytest.mark.asyncio
    async def test_unreadable_calendar_noted(self, service, make_provider):
        """Should still create when an extra calendar cannot be read."""
        provider = make_provider({"primary": []}, failures={"team": "Resource not found"})

        result = await create_event_checked(
            provider, service, "primary", "Planning",
            "2024-01-15T10:00:00", "2024-01-15T11:00:00", time_zone="UTC",
            calendars_to_check=["primary", "team"],
        )

        assert result["success"] is True
        assert result["warnings"]["skipped_calendars"] == ["team"]
        assert "Note: could not check calendar(s): team" in result["text"]


class TestCheckConflictsFor:
    """Tests for the check-only flow."""

    @pytest.mark.asyncio
    async def test_nothing_found(self, service, make_provider):
        provider = make_provider({"primary": []})

        result = await check_conflicts_for(
            provider, service, "primary", "Planning",
            "2024-01-15T10:00:00", "2024-01-15T11:00:00", time_zone="UTC",
        )

        assert result["success"] is True
        assert result["has_conflicts"] is False
        assert result["text"] == "No duplicates or conflicts found."

    @pytest.mark.asyncio
    async def test_existing_event_not_reported_against_itself(self, service, make_provider, make_timed_event):
        """Should ignore the event being updated."""
        existing = make_timed_event("Planning", 10, 11, event_id="ev-1")
        provider = make_provider({"primary": [existing]})

        result = await check_conflicts_for(
            provider, service, "primary", "Planning",
            "2024-01-15T10:00:00", "2024-01-15T11:00:00", time_zone="UTC", event_id="ev-1",
        )

        assert result["has_conflicts"] is False

    @pytest.mark.asyncio
    async def test_freebusy(self, service, make_provider):
        """Should report busy intervals when using free/busy."""
        provider = make_provider(busy={"primary": [BusySlot(start=at(10, 30), end=at(11, 30))]})

        result = await check_conflicts_for(
            provider, service, "primary", "Planning",
            "2024-01-15T10:00:00", "2024-01-15T11:00:00", time_zone="UTC", use_freebusy=True,
        )

        assert result["has_conflicts"] is True
        assert result["result"]["conflicts"][0]["event"]["id"] == "busy-time"
        assert "Busy (details unavailable)" in result["text"]
        assert provider.list_calls == []


class TestToolWrappers:
    """Tests for the synchronous tool entry points."""

    def test_gcal_create_event(self, account, make_provider):
        provider = make_provider({"primary": []})

        with patch("gcal_tools.handlers.calendar_tools.get_provider", return_value=provider), \
             patch("gcal_tools.handlers.calendar_tools.load_conflict_config", return_value=ConflictConfig()):
            result = gcal_create_event(
                account, "primary", "Planning", "2024-01-15T10:00:00", "2024-01-15T11:00:00", time_zone="UTC",
            )

        assert result["success"] is True
        assert result["tool"] == "gcal_create_event"

    def test_gcal_check_conflicts(self, account, make_provider, make_timed_event):
        provider = make_provider({"primary": [make_timed_event("Standup", 10, 10.25, event_id="ev-1")]})

        with patch("gcal_tools.handlers.calendar_tools.get_provider", return_value=provider), \
             patch("gcal_tools.handlers.calendar_tools.load_conflict_config", return_value=ConflictConfig()):
            result = gcal_check_conflicts(
                account, "primary", "Planning", "2024-01-15T10:00:00", "2024-01-15T11:00:00", time_zone="UTC",
            )

        assert result["success"] is True
        assert result["has_conflicts"] is True
        assert result["result"]["conflicts"][0]["overlap"]["percentage"] == 25

    def test_unknown_provider(self):
        """Should return an error dict for an unsupported account."""
        account = CalendarAccount(id="acct-2", provider="outlook", access_token="t")

        with patch("gcal_tools.handlers.calendar_tools.load_conflict_config", return_value=ConflictConfig()):
            result = gcal_create_event(account, "primary", "Planning", "2024-01-15", "2024-01-16")

        assert result == {
            "success": False,
            "tool": "gcal_create_event",
            "error": "Unknown provider: outlook",
        }


class TestToolRegistry:
    def test_list_tools(self):
        assert list_tools() == ["gcal_create_event", "gcal_check_conflicts"]

    def test_get_tool(self):
        assert get_tool("gcal_create_event") is gcal_create_event
        assert get_tool("gcal_check_conflicts") is gcal_check_conflicts
        assert get_tool("gcal_delete_event") is None
