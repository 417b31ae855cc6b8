"""
Tool: Conflict Detection Service
Purpose: Point-in-time scan for duplicates and overlaps before a calendar write

Given a candidate event, fetches the events around it from every calendar to
check, scores each one for similarity and overlap, and aggregates the
findings into a ConflictCheckResult.

A calendar that cannot be read (not shared, deleted, rate limited, network
failure) is logged and skipped; the scan carries on with the rest and never
raises for it. A candidate with no usable start/end returns an empty result
without issuing any request.

Usage:
    from gcal_tools.conflicts.service import ConflictDetectionService
    from gcal_tools.models import ConflictDetectionOptions

    service = ConflictDetectionService()
    result = await service.check_conflicts(
        provider,
        candidate,
        "primary",
        ConflictDetectionOptions(calendars_to_check=["primary", "team@example.com"]),
    )
    if result.has_conflicts:
        ...
"""

import asyncio
from datetime import timedelta

import aiohttp

from gcal_tools.config import ConflictConfig, load_conflict_config
from gcal_tools.conflicts.overlap import OverlapAnalyzer
from gcal_tools.conflicts.similarity import SimilarityScorer
from gcal_tools.logging_config import get_logger, scan_context
from gcal_tools.models import (
    CalendarEvent,
    ConflictCheckResult,
    ConflictDetectionOptions,
    ConflictInfo,
    DuplicateInfo,
    OverlapDetails,
    TimeRange,
)
from gcal_tools.providers.base import CalendarProvider


logger = get_logger(__name__)

# Above this similarity the suggestion recommends updating instead of creating
EXACT_DUPLICATE_SIMILARITY = 0.9

EXACT_DUPLICATE_SUGGESTION = (
    "This appears to be a duplicate. Consider updating the existing event instead."
)
SIMILAR_EVENT_SUGGESTION = "This event is very similar to an existing one. Is this intentional?"

BUSY_PLACEHOLDER_ID = "busy-time"
BUSY_PLACEHOLDER_TITLE = "Busy (details unavailable)"
UNTITLED_EVENT = "Untitled Event"


class CalendarAccessError(Exception):
    """A calendar in the scan could not be read."""

    def __init__(self, calendar_id: str, reason: str):
        super().__init__(f"Cannot read calendar {calendar_id}: {reason}")
        self.calendar_id = calendar_id
        self.reason = reason


# Failures that skip one calendar instead of failing the scan
SKIPPABLE_ERRORS = (CalendarAccessError, aiohttp.ClientError, asyncio.TimeoutError)


def is_event_declined(event: CalendarEvent, user_email: str | None = None) -> bool:
    """
    Check whether the requesting user declined an event.

    Matches the attendee entry Google flags as ``self``, falling back to
    the account's email address.
    """
    email = (user_email or "").lower()
    for attendee in event.attendees:
        if attendee.is_self or (email and attendee.email.lower() == email):
            return attendee.status == "declined"
    return False


class ConflictDetectionService:
    """
    Scans calendars for duplicates of, and overlaps with, a candidate event.

    Holds no state between scans; one instance can serve many requests.
    """

    def __init__(
        self,
        config: ConflictConfig | None = None,
        similarity_scorer: SimilarityScorer | None = None,
        overlap_analyzer: OverlapAnalyzer | None = None,
    ):
        self.config = config or load_conflict_config()
        self.similarity_scorer = similarity_scorer or SimilarityScorer(
            default_threshold=self.config.detection.duplicate_threshold
        )
        self.overlap_analyzer = overlap_analyzer or OverlapAnalyzer()

    def default_options(self) -> ConflictDetectionOptions:
        return ConflictDetectionOptions(
            duplicate_similarity_threshold=self.config.detection.duplicate_threshold
        )

    async def check_conflicts(
        self,
        provider: CalendarProvider,
        event: CalendarEvent,
        calendar_id: str,
        options: ConflictDetectionOptions | None = None,
    ) -> ConflictCheckResult:
        """
        Check for conflicts and duplicates when creating or updating an event.

        Args:
            provider: Authenticated calendar provider
            event: Candidate event
            calendar_id: Calendar the event will be written to
            options: What to check; defaults come from args/conflicts.yaml

        Returns:
            ConflictCheckResult with duplicates and conflicts in calendar order
        """
        result = ConflictCheckResult()

        time_range = event.time_range
        if time_range is None:
            return result

        resolved = (options or self.default_options()).resolve(calendar_id)
        user_email = provider.user_email

        with scan_context(target_calendar=calendar_id, calendars=len(resolved.calendars_to_check)):
            fetched = await self._fetch_all(provider, resolved.calendars_to_check, time_range)

            for check_calendar_id, events in fetched:
                if events is None:
                    result.skipped_calendars.append(check_calendar_id)
                    continue

                if resolved.check_duplicates:
                    result.duplicates.extend(
                        self.find_duplicates(
                            event,
                            events,
                            check_calendar_id,
                            resolved.duplicate_similarity_threshold,
                        )
                    )

                if resolved.check_conflicts:
                    result.conflicts.extend(
                        self.find_conflicts(
                            event,
                            events,
                            check_calendar_id,
                            resolved.include_declined_events,
                            user_email,
                        )
                    )

            logger.debug(
                f"Conflict scan for {calendar_id}: {len(result.duplicates)} duplicate(s), "
                f"{len(result.conflicts)} conflict(s), "
                f"{len(result.skipped_calendars)} calendar(s) skipped"
            )
        return result

    async def check_conflicts_with_timeout(
        self,
        provider: CalendarProvider,
        event: CalendarEvent,
        calendar_id: str,
        options: ConflictDetectionOptions | None = None,
        timeout: float | None = None,
    ) -> ConflictCheckResult:
        """
        Run ``check_conflicts`` under a deadline.

        An expired deadline yields an empty result with every calendar
        recorded as skipped, so a slow calendar cannot stall the write.
        """
        if timeout is None:
            timeout = self.config.scan.timeout_seconds

        try:
            return await asyncio.wait_for(
                self.check_conflicts(provider, event, calendar_id, options),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            calendars = (options.calendars_to_check if options else None) or [calendar_id]
            logger.warning(f"Conflict scan timed out after {timeout}s for {len(calendars)} calendar(s)")
            return ConflictCheckResult(skipped_calendars=list(dict.fromkeys(calendars)))

    # =========================================================================
    # Fetching
    # =========================================================================

    async def _fetch_all(
        self,
        provider: CalendarProvider,
        calendar_ids: list[str],
        time_range: TimeRange,
    ) -> list[tuple[str, list[CalendarEvent] | None]]:
        """Fetch every calendar, sequentially or with bounded concurrency."""
        limit = self.config.scan.max_concurrent_fetches

        if limit <= 1 or len(calendar_ids) <= 1:
            return [
                (calendar_id, await self._fetch_or_skip(provider, calendar_id, time_range))
                for calendar_id in calendar_ids
            ]

        semaphore = asyncio.Semaphore(limit)

        async def branch(calendar_id: str) -> tuple[str, list[CalendarEvent] | None]:
            async with semaphore:
                return calendar_id, await self._fetch_or_skip(provider, calendar_id, time_range)

        return list(await asyncio.gather(*(branch(calendar_id) for calendar_id in calendar_ids)))

    async def _fetch_or_skip(
        self,
        provider: CalendarProvider,
        calendar_id: str,
        time_range: TimeRange,
    ) -> list[CalendarEvent] | None:
        try:
            return await self.get_events_in_time_range(provider, calendar_id, time_range)
        except SKIPPABLE_ERRORS as e:
            logger.warning(f"Skipping calendar {calendar_id} in conflict scan: {e}")
            return None

    async def get_events_in_time_range(
        self,
        provider: CalendarProvider,
        calendar_id: str,
        time_range: TimeRange,
    ) -> list[CalendarEvent]:
        """
        Get events near a time range, padded on both sides.

        The padding catches events adjacent to the candidate that a window
        cut exactly at its bounds would miss.

        Raises:
            CalendarAccessError: the provider reported a failure
        """
        padding = timedelta(minutes=self.config.scan.lookaround_minutes)
        result = await provider.list_events(
            calendar_id,
            time_min=time_range.start - padding,
            time_max=time_range.end + padding,
            max_results=self.config.scan.max_results,
        )

        if not result.get("success"):
            raise CalendarAccessError(calendar_id, result.get("error", "unknown error"))

        return [event.with_calendar(calendar_id) for event in result.get("events", [])]

    # =========================================================================
    # Classification
    # =========================================================================

    def find_duplicates(
        self,
        new_event: CalendarEvent,
        existing_events: list[CalendarEvent],
        calendar_id: str,
        threshold: float,
    ) -> list[DuplicateInfo]:
        """Find existing events similar enough to be duplicates."""
        duplicates = []

        for existing in existing_events:
            # Same event (for updates)
            if existing.same_identity(new_event):
                continue
            if existing.is_cancelled or existing.event_id is None:
                continue
            if existing.time_range is None:
                continue

            similarity = self.similarity_scorer.score(new_event, existing)
            if similarity < threshold:
                continue

            duplicates.append(DuplicateInfo(
                event_id=existing.event_id,
                title=existing.title or UNTITLED_EVENT,
                similarity=round(similarity, 2),
                full_event=existing,
                calendar_id=calendar_id,
                suggestion=(
                    EXACT_DUPLICATE_SUGGESTION
                    if similarity > EXACT_DUPLICATE_SIMILARITY
                    else SIMILAR_EVENT_SUGGESTION
                ),
                url=existing.link(calendar_id),
            ))

        return duplicates

    def find_conflicts(
        self,
        new_event: CalendarEvent,
        existing_events: list[CalendarEvent],
        calendar_id: str,
        include_declined_events: bool = False,
        user_email: str | None = None,
    ) -> list[ConflictInfo]:
        """Find existing events overlapping the new event in time."""
        conflicts = []

        for existing in self.overlap_analyzer.find_overlapping_events(existing_events, new_event):
            if existing.event_id is None:
                continue
            if not include_declined_events and is_event_declined(existing, user_email):
                continue

            overlap = self.overlap_analyzer.analyze_overlap(new_event, existing)
            if not overlap.has_overlap:
                continue

            conflicts.append(ConflictInfo(
                calendar_id=calendar_id,
                event_id=existing.event_id,
                title=existing.title or UNTITLED_EVENT,
                start=existing.when.start_value() if existing.when else None,
                end=existing.when.end_value() if existing.when else None,
                url=existing.link(calendar_id),
                full_event=existing,
                overlap=OverlapDetails(
                    duration=overlap.duration,
                    percentage=overlap.percentage,
                    start=overlap.start,
                    end=overlap.end,
                ),
            ))

        return conflicts

    # =========================================================================
    # Free/busy (coarse alternative)
    # =========================================================================

    async def check_conflicts_with_freebusy(
        self,
        provider: CalendarProvider,
        event: CalendarEvent,
        calendar_ids: list[str],
    ) -> list[ConflictInfo]:
        """
        Check for conflicts using aggregated free/busy data.

        Cheaper than listing events but only yields busy intervals, so the
        returned entries carry a placeholder identity and no title or link.
        Any failure returns an empty list.
        """
        time_range = event.time_range
        if time_range is None or not calendar_ids:
            return []

        try:
            result = await provider.query_freebusy(time_range.start, time_range.end, calendar_ids)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.warning(f"Failed to check free/busy: {e}")
            return []

        if not result.get("success"):
            logger.warning(f"Failed to check free/busy: {result.get('error', 'unknown error')}")
            return []

        conflicts = []
        for calendar_id, busy_slots in result.get("calendars", {}).items():
            for slot in busy_slots:
                if not self.overlap_analyzer.check_busy_conflict(event, slot):
                    continue
                conflicts.append(ConflictInfo(
                    calendar_id=calendar_id,
                    event_id=BUSY_PLACEHOLDER_ID,
                    title=BUSY_PLACEHOLDER_TITLE,
                    start=slot.start.isoformat(),
                    end=slot.end.isoformat(),
                ))

        return conflicts
