"""
Calendar Tools

Exposes event creation and conflict checking as tools for an LLM agent.

Duplicate-Safe Design:
- Every create runs a conflict scan first
- Near-certain duplicates (similarity above the block threshold) are refused
  with the existing event's details and an override instruction
- Lesser duplicates and overlaps are attached to the success response

Tools:
- gcal_create_event: Create an event after checking for duplicates/conflicts
- gcal_check_conflicts: Scan for duplicates/conflicts without writing

Usage:
    These tools are registered with the agent's tool server. The server
    supplies an authenticated CalendarAccount; the remaining parameters come
    from the model.
"""

import asyncio
import re
from dataclasses import replace
from datetime import date, datetime
from typing import Any

from gcal_tools.config import ConflictConfig, load_conflict_config
from gcal_tools.conflicts.service import ConflictDetectionService
from gcal_tools.handlers.blocking import BlockingPolicy
from gcal_tools.handlers.formatting import (
    create_event_response_with_conflicts,
    format_block_message,
    format_conflict_warnings,
)
from gcal_tools.logging_config import configure_once, get_logger
from gcal_tools.models import (
    AllDaySpan,
    Attendee,
    CalendarAccount,
    CalendarEvent,
    ConflictCheckResult,
    ConflictDetectionOptions,
    EventTime,
    TimedSpan,
)
from gcal_tools.providers import get_provider
from gcal_tools.providers.base import CalendarProvider


logger = get_logger(__name__)

EVENT_ID_PATTERN = re.compile(r"^[a-zA-Z0-9-]+$")


# =============================================================================
# Input helpers
# =============================================================================


def validate_event_id(event_id: str) -> None:
    """
    Validate a custom event ID (5-1024 characters, letters, digits and hyphens).

    Raises:
        ValueError: describing every rule the ID breaks
    """
    errors = []
    if len(event_id) < 5:
        errors.append("must be at least 5 characters long")
    if len(event_id) > 1024:
        errors.append("must not exceed 1024 characters")
    if not EVENT_ID_PATTERN.match(event_id):
        errors.append("can only contain letters, numbers, and hyphens")
    if errors:
        raise ValueError(f"Invalid event ID: {', '.join(errors)}")


def create_event_time(start: str, end: str, timezone: str) -> EventTime:
    """
    Build an EventTime from tool input.

    Date-only values ("2026-02-05") make an all-day event; the end date is
    exclusive. Anything else is parsed as an ISO datetime, naive values
    being local to ``timezone``.
    """
    if len(start) == 10 and len(end) == 10:
        return AllDaySpan(start_date=date.fromisoformat(start), end_date=date.fromisoformat(end))
    return TimedSpan(
        start=datetime.fromisoformat(start.replace("Z", "+00:00")),
        end=datetime.fromisoformat(end.replace("Z", "+00:00")),
        timezone=timezone,
    )


async def _resolve_timezone(provider: CalendarProvider, calendar_id: str, time_zone: str | None) -> str:
    if time_zone:
        return time_zone
    result = await provider.get_calendar_timezone(calendar_id)
    if result.get("success"):
        return result.get("timezone") or "UTC"
    logger.warning(f"Could not read timezone of {calendar_id}, using UTC: {result.get('error')}")
    return "UTC"


def _build_options(
    config: ConflictConfig,
    calendar_id: str,
    calendars_to_check: list[str] | None,
    duplicate_similarity_threshold: float | None,
) -> ConflictDetectionOptions:
    return ConflictDetectionOptions(
        calendars_to_check=calendars_to_check or [calendar_id],
        duplicate_similarity_threshold=(
            duplicate_similarity_threshold
            if duplicate_similarity_threshold is not None
            else config.detection.duplicate_threshold
        ),
    )


# =============================================================================
# Async operations
# =============================================================================


async def create_event_checked(
    provider: CalendarProvider,
    service: ConflictDetectionService,
    calendar_id: str,
    summary: str,
    start: str,
    end: str,
    time_zone: str | None = None,
    description: str = "",
    location: str = "",
    attendees: list[str] | None = None,
    event_id: str | None = None,
    calendars_to_check: list[str] | None = None,
    duplicate_similarity_threshold: float | None = None,
    block_on_high_similarity: bool | None = None,
    send_updates: str | None = None,
) -> dict[str, Any]:
    """
    Scan for duplicates and conflicts, then create the event unless blocked.

    Returns:
        {
            "success": bool,
            "blocked": bool,
            "event_id": str,   # on success
            "text": str,       # message for the user
            "warnings": dict,  # non-blocking findings
        }
    """
    tool_name = "gcal_create_event"

    if event_id:
        try:
            validate_event_id(event_id)
        except ValueError as e:
            return {"success": False, "tool": tool_name, "error": str(e)}

    timezone = await _resolve_timezone(provider, calendar_id, time_zone)

    try:
        when = create_event_time(start, end, timezone)
    except ValueError:
        return {
            "success": False,
            "tool": tool_name,
            "error": f"Could not parse start/end: {start} / {end}. Use ISO format (e.g., 2026-02-05T14:00:00)",
        }

    candidate = CalendarEvent(
        title=summary,
        description=description,
        location=location,
        when=when,
        attendees=tuple(Attendee(email=a) for a in attendees or []),
    )

    options = _build_options(service.config, calendar_id, calendars_to_check, duplicate_similarity_threshold)
    scan = await service.check_conflicts_with_timeout(provider, candidate, calendar_id, options)

    policy = BlockingPolicy.from_config(service.config, block_on_high_similarity)
    decision = policy.evaluate(scan)

    if decision.should_block:
        logger.info(
            f"Blocked event creation on {calendar_id}: "
            f"{len(decision.blocking_duplicates)} near-certain duplicate(s)"
        )
        return {
            "success": False,
            "tool": tool_name,
            "blocked": True,
            "error": "Duplicate event detected",
            "text": format_block_message(decision.blocking()),
            "duplicates": [d.to_dict() for d in decision.blocking_duplicates],
        }

    if event_id:
        candidate = replace(candidate, event_id=event_id)

    result = await provider.create_event(calendar_id, candidate, send_updates=send_updates)
    if not result.get("success"):
        if result.get("status") == 409 and event_id:
            error = f"Event ID '{event_id}' already exists. Please use a different ID."
        else:
            error = result.get("error", "Failed to create event")
        return {"success": False, "tool": tool_name, "blocked": False, "error": error}

    created: CalendarEvent = result["event"]
    warnings = decision.warnings()

    return {
        "success": True,
        "tool": tool_name,
        "blocked": False,
        "event_id": created.event_id,
        "text": create_event_response_with_conflicts(created, calendar_id, warnings, "created"),
        "warnings": warnings.to_dict(),
    }


async def check_conflicts_for(
    provider: CalendarProvider,
    service: ConflictDetectionService,
    calendar_id: str,
    summary: str,
    start: str,
    end: str,
    time_zone: str | None = None,
    location: str = "",
    event_id: str | None = None,
    calendars_to_check: list[str] | None = None,
    duplicate_similarity_threshold: float | None = None,
    use_freebusy: bool = False,
) -> dict[str, Any]:
    """Run a scan for a prospective event without writing anything."""
    tool_name = "gcal_check_conflicts"

    timezone = await _resolve_timezone(provider, calendar_id, time_zone)
    try:
        when = create_event_time(start, end, timezone)
    except ValueError:
        return {
            "success": False,
            "tool": tool_name,
            "error": f"Could not parse start/end: {start} / {end}",
        }

    candidate = CalendarEvent(event_id=event_id, title=summary, location=location, when=when)

    if use_freebusy:
        conflicts = await service.check_conflicts_with_freebusy(
            provider, candidate, calendars_to_check or [calendar_id]
        )
        scan = ConflictCheckResult(conflicts=conflicts)
    else:
        options = _build_options(service.config, calendar_id, calendars_to_check, duplicate_similarity_threshold)
        scan = await service.check_conflicts_with_timeout(provider, candidate, calendar_id, options)

    text = format_conflict_warnings(scan) or "No duplicates or conflicts found."

    return {
        "success": True,
        "tool": tool_name,
        "has_conflicts": scan.has_conflicts,
        "text": text,
        "result": scan.to_dict(),
    }


# =============================================================================
# Tool: gcal_create_event
# =============================================================================


def gcal_create_event(
    account: CalendarAccount,
    calendar_id: str,
    summary: str,
    start: str,
    end: str,
    time_zone: str | None = None,
    description: str = "",
    location: str = "",
    attendees: list[str] | None = None,
    event_id: str | None = None,
    calendars_to_check: list[str] | None = None,
    duplicate_similarity_threshold: float | None = None,
    block_on_high_similarity: bool | None = None,
    send_updates: str | None = None,
) -> dict[str, Any]:
    """
    Create a calendar event, refusing near-certain duplicates.

    Args:
        account: Authenticated calendar account (supplied by the server)
        calendar_id: Calendar to create the event in
        summary: Event title
        start: Start (ISO datetime, or date for all-day events)
        end: End (ISO datetime, or exclusive end date for all-day events)
        time_zone: IANA timezone; defaults to the calendar's timezone
        description: Event description
        location: Event location
        attendees: Attendee email addresses
        event_id: Optional custom event ID
        calendars_to_check: Calendars to scan (default: calendar_id only)
        duplicate_similarity_threshold: Similarity at which duplicates are reported
        block_on_high_similarity: Set False to create even when a near-certain duplicate exists
        send_updates: "all", "externalOnly" or "none"

    Returns:
        Dict with success flag, message text and any warnings

    Example:
        Input: summary="Lunch with Josh", start="2026-02-05T12:00:00", end="2026-02-05T13:00:00"
        Output: {
            "success": True,
            "event_id": "abc123",
            "text": "Event created successfully! ..."
        }
    """
    configure_once()
    try:
        config = load_conflict_config()
        provider = get_provider(account)
        service = ConflictDetectionService(config)

        return asyncio.run(
            create_event_checked(
                provider,
                service,
                calendar_id=calendar_id,
                summary=summary,
                start=start,
                end=end,
                time_zone=time_zone,
                description=description,
                location=location,
                attendees=attendees,
                event_id=event_id,
                calendars_to_check=calendars_to_check,
                duplicate_similarity_threshold=duplicate_similarity_threshold,
                block_on_high_similarity=block_on_high_similarity,
                send_updates=send_updates,
            )
        )

    except ValueError as e:
        return {"success": False, "tool": "gcal_create_event", "error": str(e)}


# =============================================================================
# Tool: gcal_check_conflicts
# =============================================================================


def gcal_check_conflicts(
    account: CalendarAccount,
    calendar_id: str,
    summary: str,
    start: str,
    end: str,
    time_zone: str | None = None,
    location: str = "",
    event_id: str | None = None,
    calendars_to_check: list[str] | None = None,
    duplicate_similarity_threshold: float | None = None,
    use_freebusy: bool = False,
) -> dict[str, Any]:
    """
    Check a prospective event for duplicates and conflicts without creating it.

    Pass ``event_id`` when checking a change to an existing event so it is
    not reported against itself. ``use_freebusy`` trades detail (no titles,
    no duplicate detection) for a single aggregated query.
    """
    configure_once()
    try:
        config = load_conflict_config()
        provider = get_provider(account)
        service = ConflictDetectionService(config)

        return asyncio.run(
            check_conflicts_for(
                provider,
                service,
                calendar_id=calendar_id,
                summary=summary,
                start=start,
                end=end,
                time_zone=time_zone,
                location=location,
                event_id=event_id,
                calendars_to_check=calendars_to_check,
                duplicate_similarity_threshold=duplicate_similarity_threshold,
                use_freebusy=use_freebusy,
            )
        )

    except ValueError as e:
        return {"success": False, "tool": "gcal_check_conflicts", "error": str(e)}


# =============================================================================
# Tool Registry
# =============================================================================


CALENDAR_TOOLS = {
    "gcal_create_event": {
        "function": gcal_create_event,
        "description": "Create a calendar event after checking for duplicates and conflicts",
        "parameters": {
            "calendar_id": {"type": "string", "required": True},
            "summary": {"type": "string", "required": True},
            "start": {"type": "string", "required": True},
            "end": {"type": "string", "required": True},
            "time_zone": {"type": "string", "required": False},
            "description": {"type": "string", "required": False},
            "location": {"type": "string", "required": False},
            "attendees": {"type": "array", "required": False},
            "event_id": {"type": "string", "required": False},
            "calendars_to_check": {"type": "array", "required": False},
            "duplicate_similarity_threshold": {"type": "number", "required": False, "default": 0.7},
            "block_on_high_similarity": {"type": "boolean", "required": False, "default": True},
            "send_updates": {"type": "string", "required": False},
        },
    },
    "gcal_check_conflicts": {
        "function": gcal_check_conflicts,
        "description": "Check a prospective event for duplicates and scheduling conflicts",
        "parameters": {
            "calendar_id": {"type": "string", "required": True},
            "summary": {"type": "string", "required": True},
            "start": {"type": "string", "required": True},
            "end": {"type": "string", "required": True},
            "time_zone": {"type": "string", "required": False},
            "location": {"type": "string", "required": False},
            "event_id": {"type": "string", "required": False},
            "calendars_to_check": {"type": "array", "required": False},
            "duplicate_similarity_threshold": {"type": "number", "required": False, "default": 0.7},
            "use_freebusy": {"type": "boolean", "required": False, "default": False},
        },
    },
}


def get_tool(tool_name: str):
    """Get a tool function by name."""
    tool_info = CALENDAR_TOOLS.get(tool_name)
    if tool_info:
        return tool_info["function"]
    return None


def list_tools() -> list[str]:
    """List all available calendar tools."""
    return list(CALENDAR_TOOLS.keys())
