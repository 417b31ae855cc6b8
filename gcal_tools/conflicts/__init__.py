"""Conflict Detection: Duplicate and overlap scanning for calendar writes

Components:
    similarity.py: Title/time/location similarity scoring
    overlap.py: Interval overlap analysis and duration formatting
    service.py: Multi-calendar scan tolerant of unreadable calendars
"""

from gcal_tools.conflicts.overlap import OverlapAnalyzer, OverlapResult, format_duration
from gcal_tools.conflicts.service import (
    CalendarAccessError,
    ConflictDetectionService,
    is_event_declined,
)
from gcal_tools.conflicts.similarity import SimilarityScorer, string_similarity

__all__ = [
    "CalendarAccessError",
    "ConflictDetectionService",
    "OverlapAnalyzer",
    "OverlapResult",
    "SimilarityScorer",
    "format_duration",
    "is_event_declined",
    "string_similarity",
]
