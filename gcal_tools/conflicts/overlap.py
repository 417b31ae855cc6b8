"""
Tool: Overlap Analyzer
Purpose: Temporal overlap between events and busy intervals

Two ranges overlap only when ``a.start < b.end and b.start < a.end``;
back-to-back events (one ends exactly when the next starts) do not.

Note for callers: ``analyze_overlap(a, b)`` reports the overlap percentage
relative to the FIRST argument's duration. Swapping the arguments changes
the percentage whenever the two durations differ. The conflict scan always
passes the candidate first, so percentages read as "how much of the new
event is taken".
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

from gcal_tools.models import BusySlot, CalendarEvent


@dataclass(frozen=True)
class OverlapResult:
    has_overlap: bool
    duration: str | None = None
    percentage: int | None = None
    start: datetime | None = None
    end: datetime | None = None


NO_OVERLAP = OverlapResult(has_overlap=False)


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'s' if count != 1 else ''}"


def format_duration(delta: timedelta) -> str:
    """
    Render a duration using its two largest non-zero units.

    Examples: "2 days 3 hours", "1 hour 30 minutes", "45 minutes".
    """
    minutes = int(delta.total_seconds() // 60)
    hours = minutes // 60
    days = hours // 24

    if days > 0:
        remaining_hours = hours % 24
        if remaining_hours:
            return f"{_plural(days, 'day')} {_plural(remaining_hours, 'hour')}"
        return _plural(days, "day")

    if hours > 0:
        remaining_minutes = minutes % 60
        if remaining_minutes:
            return f"{_plural(hours, 'hour')} {_plural(remaining_minutes, 'minute')}"
        return _plural(hours, "hour")

    return _plural(minutes, "minute")


class OverlapAnalyzer:
    """Overlap math over resolved event time ranges."""

    def analyze_overlap(self, event1: CalendarEvent, event2: CalendarEvent) -> OverlapResult:
        """
        Describe how ``event2`` overlaps ``event1``.

        The percentage is relative to ``event1``'s duration.
        """
        range1 = event1.time_range
        range2 = event2.time_range
        if range1 is None or range2 is None:
            return NO_OVERLAP

        if not range1.overlaps(range2):
            return NO_OVERLAP

        overlap_start = max(range1.start, range2.start)
        overlap_end = min(range1.end, range2.end)
        overlap = overlap_end - overlap_start

        if range1.duration > timedelta(0):
            percentage = round(overlap / range1.duration * 100)
        else:
            percentage = 0

        return OverlapResult(
            has_overlap=True,
            duration=format_duration(overlap),
            percentage=max(0, min(percentage, 100)),
            start=overlap_start,
            end=overlap_end,
        )

    def find_overlapping_events(
        self,
        events: list[CalendarEvent],
        target: CalendarEvent,
    ) -> list[CalendarEvent]:
        """Events overlapping ``target``, excluding itself and cancelled events."""
        target_range = target.time_range
        if target_range is None:
            return []

        overlapping = []
        for event in events:
            if event.same_identity(target) or event.is_cancelled:
                continue
            event_range = event.time_range
            if event_range is not None and event_range.overlaps(target_range):
                overlapping.append(event)
        return overlapping

    def check_busy_conflict(self, event: CalendarEvent, busy_slot: BusySlot) -> bool:
        """True when ``event`` strictly overlaps a raw busy interval."""
        event_range = event.time_range
        if event_range is None or busy_slot.start is None or busy_slot.end is None:
            return False
        return event_range.start < busy_slot.end and busy_slot.start < event_range.end
