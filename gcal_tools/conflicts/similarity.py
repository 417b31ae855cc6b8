"""
Tool: Event Similarity Scorer
Purpose: Decide how likely two events describe the same appointment

Scores are in [0, 1]:
    0.5 * title + 0.35 * time + 0.15 * location

An all-day event compared with a timed one only ever scores on its title,
capped at 0.3, so an all-day placeholder ("Conference") never looks like a
duplicate of a timed meeting that happens to share its name.

Usage:
    from gcal_tools.conflicts.similarity import SimilarityScorer

    scorer = SimilarityScorer()
    scorer.score(candidate, existing)
    scorer.is_duplicate(candidate, existing, threshold=0.8)
"""

from datetime import timedelta

from gcal_tools.models import CalendarEvent


TITLE_WEIGHT = 0.5
TIME_WEIGHT = 0.35
LOCATION_WEIGHT = 0.15

# All-day vs timed comparisons
MIXED_TYPE_FACTOR = 0.3
MIXED_TYPE_CAP = 0.3

# Starts closer than this earn partial time similarity
NEAR_START_WINDOW = timedelta(hours=1)

DEFAULT_SIMILARITY_THRESHOLD = 0.7


def levenshtein_distance(s1: str, s2: str) -> int:
    """Edit distance with unit cost insert, delete and substitute."""
    if len(s1) < len(s2):
        s1, s2 = s2, s1
    if not s2:
        return len(s1)

    previous = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1, start=1):
        current = [i]
        for j, c2 in enumerate(s2, start=1):
            if c1 == c2:
                current.append(previous[j - 1])
            else:
                current.append(min(previous[j - 1], previous[j], current[j - 1]) + 1)
        previous = current
    return previous[-1]


def string_similarity(str1: str | None, str2: str | None) -> float:
    """Normalized Levenshtein similarity of two strings, case and edge-space insensitive."""
    s1 = (str1 or "").lower().strip()
    s2 = (str2 or "").lower().strip()

    if s1 == s2:
        return 1.0
    if not s1 or not s2:
        return 0.0

    distance = levenshtein_distance(s1, s2)
    return 1.0 - distance / max(len(s1), len(s2))


def time_similarity(event1: CalendarEvent, event2: CalendarEvent) -> float:
    """
    Similarity of two events' timing.

    Same start → 1. Overlapping → overlap relative to the mean duration.
    Starts within an hour → up to 0.5, falling linearly. Otherwise 0.
    """
    range1 = event1.time_range
    range2 = event2.time_range
    if range1 is None or range2 is None:
        return 0.0

    if range1.start == range2.start:
        return 1.0

    if range1.overlaps(range2):
        overlap = min(range1.end, range2.end) - max(range1.start, range2.start)
        average = (range1.duration + range2.duration) / 2
        if average <= timedelta(0):
            return 0.0
        return min(overlap / average, 1.0)

    gap = abs(range1.start - range2.start)
    if gap < NEAR_START_WINDOW:
        return 0.5 * (1 - gap / NEAR_START_WINDOW)

    return 0.0


class SimilarityScorer:
    """Weighted title/time/location similarity between two events."""

    def __init__(self, default_threshold: float = DEFAULT_SIMILARITY_THRESHOLD):
        self.default_threshold = default_threshold

    def score(self, event1: CalendarEvent, event2: CalendarEvent) -> float:
        title = string_similarity(event1.title, event2.title)

        if event1.is_all_day != event2.is_all_day:
            return min(title * MIXED_TYPE_FACTOR, MIXED_TYPE_CAP)

        location = string_similarity(event1.location, event2.location)
        timing = time_similarity(event1, event2)

        weighted = title * TITLE_WEIGHT + timing * TIME_WEIGHT + location * LOCATION_WEIGHT
        return max(0.0, min(weighted, 1.0))

    def is_duplicate(
        self,
        event1: CalendarEvent,
        event2: CalendarEvent,
        threshold: float | None = None,
    ) -> bool:
        if threshold is None:
            threshold = self.default_threshold
        return self.score(event1, event2) >= threshold
