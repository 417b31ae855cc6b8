"""
Tool: Conflict Response Formatting
Purpose: Render events and scan results as text for the calling agent

The agent relays these messages to the user, so every finding carries the
existing event's details and a direct link to it.
"""

from gcal_tools.models import AllDaySpan, CalendarEvent, ConflictCheckResult, TimedSpan


DUPLICATES_HEADER = "⚠️ POTENTIAL DUPLICATES DETECTED:"
CONFLICTS_HEADER = "⚠️ SCHEDULING CONFLICTS DETECTED:"
BLOCKED_HEADER = "⚠️ DUPLICATE EVENT DETECTED!"
OVERRIDE_INSTRUCTION = "To create anyway, set blockOnHighSimilarity to false."


def format_event_time(event: CalendarEvent) -> list[str]:
    when = event.when
    if isinstance(when, AllDaySpan):
        if when.last_day == when.start_date:
            return [f"Date: {when.start_date.isoformat()} (all day)"]
        return [f"Dates: {when.start_date.isoformat()} to {when.last_day.isoformat()} (all day)"]
    if isinstance(when, TimedSpan):
        return [
            f"Start: {when.start:%Y-%m-%d %H:%M} ({when.timezone})",
            f"End: {when.end:%Y-%m-%d %H:%M} ({when.timezone})",
        ]
    return ["Time: unspecified"]


def format_event_details(event: CalendarEvent, calendar_id: str | None = None) -> str:
    """Full multi-line description of an event."""
    lines = [f"Event: {event.title or 'Untitled Event'}"]
    if event.event_id:
        lines.append(f"Event ID: {event.event_id}")
    if event.description:
        lines.append(f"Description: {event.description}")
    lines.extend(format_event_time(event))
    if event.location:
        lines.append(f"Location: {event.location}")
    if event.attendees:
        guests = ", ".join(f"{a.name or a.email} ({a.status})" for a in event.attendees)
        lines.append(f"Guests: {guests}")
    link = event.link(calendar_id)
    if link:
        lines.append(f"View: {link}")
    return "\n".join(lines)


def _indent(text: str, prefix: str = "    ") -> str:
    return "\n".join(prefix + line for line in text.splitlines())


def format_duplicates(result: ConflictCheckResult) -> str:
    if not result.duplicates:
        return ""

    parts = []
    for dup in result.duplicates:
        lines = [
            f'• "{dup.title}" ({round(dup.similarity * 100)}% similar)',
            f"  {dup.suggestion}",
            "  Existing event details:",
            _indent(format_event_details(dup.full_event, dup.calendar_id)),
        ]
        parts.append("\n".join(lines))
    return "\n\n".join(parts)


def format_conflicts(result: ConflictCheckResult) -> str:
    if not result.conflicts:
        return ""

    by_calendar: dict[str, list[str]] = {}
    for conflict in result.conflicts:
        lines = [f'  • "{conflict.title}"']
        if conflict.overlap:
            lines.append(
                f"    Overlap: {conflict.overlap.duration} "
                f"({conflict.overlap.percentage}% of your event)"
            )
        elif conflict.start and conflict.end:
            lines.append(f"    Busy: {conflict.start} to {conflict.end}")
        if conflict.url:
            lines.append(f"    View: {conflict.url}")
        by_calendar.setdefault(conflict.calendar_id, []).append("\n".join(lines))

    return "\n\n".join(
        f"Calendar: {calendar_id}\n" + "\n".join(entries)
        for calendar_id, entries in by_calendar.items()
    )


def format_conflict_warnings(result: ConflictCheckResult) -> str:
    """Warning sections for a scan result; empty string when nothing was found."""
    sections = []

    duplicates = format_duplicates(result)
    if duplicates:
        sections.append(f"{DUPLICATES_HEADER}\n\n{duplicates}")

    conflicts = format_conflicts(result)
    if conflicts:
        sections.append(f"{CONFLICTS_HEADER}\n\n{conflicts}")

    if result.skipped_calendars:
        sections.append(
            "Note: could not check calendar(s): " + ", ".join(result.skipped_calendars)
        )

    return "\n\n".join(sections)


def format_block_message(result: ConflictCheckResult) -> str:
    """Refusal text for a near-certain duplicate, with the override instruction."""
    return f"{BLOCKED_HEADER}\n\n{format_duplicates(result)}\n\n{OVERRIDE_INSTRUCTION}"


def create_event_response_with_conflicts(
    event: CalendarEvent,
    calendar_id: str,
    warnings: ConflictCheckResult,
    action: str = "created",
) -> str:
    text = f"Event {action} successfully!\n\n{format_event_details(event, calendar_id)}"
    warning_text = format_conflict_warnings(warnings)
    if warning_text:
        text += f"\n\n{warning_text}"
    return text
