"""
Tool: Calendar Models
Purpose: Data structures for calendar events and conflict scan results

Usage:
    from gcal_tools.models import CalendarEvent, TimedSpan, AllDaySpan, ConflictCheckResult

An event's timing is a tagged union: either a TimedSpan (two instants plus an
IANA timezone) or an AllDaySpan (a start date and an exclusive end date).
Overlap math works on the TimeRange both resolve to, so nothing downstream
needs to guess which optional field of the raw API payload was present.
"""

import base64
import json
from dataclasses import dataclass, field, replace
from datetime import date, datetime, time, timedelta, timezone
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


CALENDAR_EVENT_URL = "https://calendar.google.com/calendar/event"


def _zone(name: str | None) -> timezone | ZoneInfo:
    if not name or name == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return timezone.utc


def _parse_datetime(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


@dataclass(frozen=True)
class TimeRange:
    """Resolved instants of an event. Both bounds are timezone-aware."""

    start: datetime
    end: datetime
    is_all_day: bool = False

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def overlaps(self, other: "TimeRange") -> bool:
        """Strict overlap: touching endpoints do not count."""
        return self.start < other.end and other.start < self.end


@dataclass(frozen=True)
class TimedSpan:
    """
    A timed event.

    Naive datetimes are interpreted in ``timezone``; aware ones keep their
    own offset.
    """

    start: datetime
    end: datetime
    timezone: str = "UTC"

    def resolve(self) -> TimeRange:
        tz = _zone(self.timezone)
        start = self.start if self.start.tzinfo else self.start.replace(tzinfo=tz)
        end = self.end if self.end.tzinfo else self.end.replace(tzinfo=tz)
        return TimeRange(start=start, end=end, is_all_day=False)

    def start_value(self) -> str:
        return self.start.isoformat()

    def end_value(self) -> str:
        return self.end.isoformat()

    def to_google(self) -> tuple[dict[str, str], dict[str, str]]:
        return (
            {"dateTime": self.start.isoformat(), "timeZone": self.timezone},
            {"dateTime": self.end.isoformat(), "timeZone": self.timezone},
        )


@dataclass(frozen=True)
class AllDaySpan:
    """An all-day event. ``end_date`` is exclusive, as Google Calendar stores it."""

    start_date: date
    end_date: date

    def resolve(self) -> TimeRange:
        # All-day dates are anchored at UTC midnight
        return TimeRange(
            start=datetime.combine(self.start_date, time.min, tzinfo=timezone.utc),
            end=datetime.combine(self.end_date, time.min, tzinfo=timezone.utc),
            is_all_day=True,
        )

    @property
    def last_day(self) -> date:
        """Inclusive last day, for display."""
        if self.end_date <= self.start_date:
            return self.start_date
        return self.end_date - timedelta(days=1)

    def start_value(self) -> str:
        return self.start_date.isoformat()

    def end_value(self) -> str:
        return self.end_date.isoformat()

    def to_google(self) -> tuple[dict[str, str], dict[str, str]]:
        return (
            {"date": self.start_date.isoformat()},
            {"date": self.end_date.isoformat()},
        )


EventTime = TimedSpan | AllDaySpan


def parse_event_time(start_data: dict | None, end_data: dict | None) -> EventTime | None:
    """
    Build an EventTime from Google Calendar start/end objects.

    Returns None when either bound is missing or unparseable.
    """
    if not start_data or not end_data:
        return None

    try:
        if start_data.get("dateTime") and end_data.get("dateTime"):
            return TimedSpan(
                start=_parse_datetime(start_data["dateTime"]),
                end=_parse_datetime(end_data["dateTime"]),
                timezone=start_data.get("timeZone") or end_data.get("timeZone") or "UTC",
            )
        if start_data.get("date") and end_data.get("date"):
            return AllDaySpan(
                start_date=date.fromisoformat(start_data["date"]),
                end_date=date.fromisoformat(end_data["date"]),
            )
    except ValueError:
        return None

    return None


@dataclass(frozen=True)
class Attendee:
    """
    Calendar event attendee.
    """

    email: str
    name: str | None = None
    status: str = "needsAction"  # needsAction, accepted, declined, tentative
    is_self: bool = False
    is_organizer: bool = False
    is_optional: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "email": self.email,
            "name": self.name,
            "status": self.status,
            "is_self": self.is_self,
            "is_organizer": self.is_organizer,
            "is_optional": self.is_optional,
        }

    @classmethod
    def from_google(cls, data: dict[str, Any]) -> "Attendee":
        return cls(
            email=data.get("email", ""),
            name=data.get("displayName"),
            status=data.get("responseStatus", "needsAction"),
            is_self=bool(data.get("self", False)),
            is_organizer=bool(data.get("organizer", False)),
            is_optional=bool(data.get("optional", False)),
        )


@dataclass(frozen=True)
class CalendarEvent:
    """
    Immutable snapshot of a calendar event.

    Used both for existing events fetched from a calendar and for the
    candidate event a write request is about to create (which usually has
    no ``event_id`` yet).
    """

    event_id: str | None = None
    title: str = ""
    description: str = ""
    location: str = ""
    when: EventTime | None = None
    attendees: tuple[Attendee, ...] = ()
    status: str = "confirmed"  # confirmed, tentative, cancelled
    html_link: str | None = None
    calendar_id: str | None = None
    raw_data: dict[str, Any] = field(default_factory=dict, compare=False, hash=False, repr=False)

    @property
    def is_all_day(self) -> bool:
        return isinstance(self.when, AllDaySpan)

    @property
    def is_cancelled(self) -> bool:
        return self.status == "cancelled"

    @property
    def time_range(self) -> TimeRange | None:
        """Resolved instants, or None when the event has no usable timing."""
        if self.when is None:
            return None
        return self.when.resolve()

    def same_identity(self, other: "CalendarEvent") -> bool:
        """True when both snapshots carry the same provider event ID."""
        return self.event_id is not None and self.event_id == other.event_id

    def with_calendar(self, calendar_id: str) -> "CalendarEvent":
        return replace(self, calendar_id=calendar_id)

    def link(self, calendar_id: str | None = None) -> str | None:
        """
        Direct link to the event in the Google Calendar UI.

        Uses the API's htmlLink when present, otherwise builds the ``eid``
        form from the event and calendar IDs.
        """
        if self.html_link:
            return self.html_link
        calendar = calendar_id or self.calendar_id
        if not self.event_id or not calendar:
            return None
        eid = base64.urlsafe_b64encode(f"{self.event_id} {calendar}".encode()).decode().rstrip("=")
        return f"{CALENDAR_EVENT_URL}?eid={eid}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "event_id": self.event_id,
            "title": self.title,
            "description": self.description,
            "location": self.location,
            "start": self.when.start_value() if self.when else None,
            "end": self.when.end_value() if self.when else None,
            "all_day": self.is_all_day,
            "timezone": self.when.timezone if isinstance(self.when, TimedSpan) else None,
            "attendees": [a.to_dict() for a in self.attendees],
            "status": self.status,
            "html_link": self.html_link,
            "calendar_id": self.calendar_id,
        }

    def to_json(self) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), default=str)

    @classmethod
    def from_google(cls, data: dict[str, Any], calendar_id: str | None = None) -> "CalendarEvent":
        """Parse a Google Calendar event resource."""
        return cls(
            event_id=data.get("id"),
            title=data.get("summary", "") or "",
            description=data.get("description", "") or "",
            location=data.get("location", "") or "",
            when=parse_event_time(data.get("start"), data.get("end")),
            attendees=tuple(Attendee.from_google(a) for a in data.get("attendees", [])),
            status=data.get("status", "confirmed"),
            html_link=data.get("htmlLink"),
            calendar_id=calendar_id,
            raw_data=data,
        )

    def to_google_body(self) -> dict[str, Any]:
        """Build an events.insert request body."""
        body: dict[str, Any] = {"summary": self.title}
        if self.description:
            body["description"] = self.description
        if self.location:
            body["location"] = self.location
        if self.when is not None:
            body["start"], body["end"] = self.when.to_google()
        if self.attendees:
            body["attendees"] = [{"email": a.email} for a in self.attendees]
        if self.event_id:
            body["id"] = self.event_id
        return body


@dataclass
class ConflictDetectionOptions:
    """
    What a conflict scan should look for.

    ``calendars_to_check`` defaults to the calendar being written to.
    Call ``resolve`` once at the entry point; everything downstream reads
    the resolved copy.
    """

    check_duplicates: bool = True
    check_conflicts: bool = True
    calendars_to_check: list[str] | None = None
    duplicate_similarity_threshold: float = 0.7
    include_declined_events: bool = False

    def resolve(self, calendar_id: str) -> "ConflictDetectionOptions":
        if not 0.0 <= self.duplicate_similarity_threshold <= 1.0:
            raise ValueError(
                f"duplicate_similarity_threshold must be within [0, 1], got {self.duplicate_similarity_threshold}"
            )
        calendars = self.calendars_to_check or [calendar_id]
        return replace(self, calendars_to_check=list(dict.fromkeys(calendars)))


@dataclass(frozen=True)
class BusySlot:
    """Raw busy interval from a free/busy query."""

    start: datetime | None
    end: datetime | None

    @classmethod
    def from_google(cls, data: dict[str, Any]) -> "BusySlot":
        start = data.get("start")
        end = data.get("end")
        return cls(
            start=_parse_datetime(start) if start else None,
            end=_parse_datetime(end) if end else None,
        )


@dataclass
class DuplicateInfo:
    """An existing event that likely represents the same appointment."""

    event_id: str
    title: str
    similarity: float
    full_event: CalendarEvent
    calendar_id: str
    suggestion: str
    url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "event": {
                "id": self.event_id,
                "title": self.title,
                "url": self.url,
                "similarity": self.similarity,
            },
            "full_event": self.full_event.to_dict(),
            "calendar_id": self.calendar_id,
            "suggestion": self.suggestion,
        }


@dataclass
class OverlapDetails:
    duration: str
    percentage: int
    start: datetime
    end: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "duration": self.duration,
            "percentage": self.percentage,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
        }


@dataclass
class ConflictInfo:
    """An existing event (or busy interval) overlapping the candidate."""

    calendar_id: str
    event_id: str
    title: str
    start: str | None = None
    end: str | None = None
    url: str | None = None
    full_event: CalendarEvent | None = None
    overlap: OverlapDetails | None = None
    type: str = "overlap"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "calendar_id": self.calendar_id,
            "event": {
                "id": self.event_id,
                "title": self.title,
                "url": self.url,
                "start": self.start,
                "end": self.end,
            },
            "full_event": self.full_event.to_dict() if self.full_event else None,
            "overlap": self.overlap.to_dict() if self.overlap else None,
        }


@dataclass
class ConflictCheckResult:
    """
    Outcome of one scan. Built fresh per request, never persisted.

    ``skipped_calendars`` lists calendars that could not be read; it is
    diagnostic only and does not affect ``has_conflicts``.
    """

    duplicates: list[DuplicateInfo] = field(default_factory=list)
    conflicts: list[ConflictInfo] = field(default_factory=list)
    skipped_calendars: list[str] = field(default_factory=list)

    @property
    def has_conflicts(self) -> bool:
        return bool(self.duplicates or self.conflicts)

    def to_dict(self) -> dict[str, Any]:
        return {
            "has_conflicts": self.has_conflicts,
            "duplicates": [d.to_dict() for d in self.duplicates],
            "conflicts": [c.to_dict() for c in self.conflicts],
            "skipped_calendars": list(self.skipped_calendars),
        }


@dataclass
class CalendarAccount:
    """
    Authenticated calendar account.

    Tokens are obtained and refreshed elsewhere; this only carries what a
    provider needs to make requests.
    """

    id: str
    provider: str = "google"
    email_address: str = ""
    access_token: str | None = None
