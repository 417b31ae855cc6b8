"""
Tool: Duplicate Blocking Policy
Purpose: Decide whether a scan result refuses the write or rides along as warnings

Two thresholds work together:
    duplicate threshold (default 0.7): surfaces a duplicate as a warning
    block threshold (default 0.9): refuses the write outright

Anything between the two is reported but does not stop the write. Setting
``block_on_high_similarity`` to False turns every duplicate into a warning.
"""

from dataclasses import dataclass, field
from enum import Enum

from gcal_tools.config import ConflictConfig
from gcal_tools.models import ConflictCheckResult, ConflictInfo, DuplicateInfo


DEFAULT_BLOCK_THRESHOLD = 0.9


class BlockOutcome(str, Enum):
    BLOCK = "block"
    PROCEED_WITH_WARNINGS = "proceed_with_warnings"
    PROCEED_CLEAN = "proceed_clean"


@dataclass
class BlockDecision:
    outcome: BlockOutcome
    blocking_duplicates: list[DuplicateInfo] = field(default_factory=list)
    warning_duplicates: list[DuplicateInfo] = field(default_factory=list)
    conflicts: list[ConflictInfo] = field(default_factory=list)
    skipped_calendars: list[str] = field(default_factory=list)

    @property
    def should_block(self) -> bool:
        return self.outcome is BlockOutcome.BLOCK

    def warnings(self) -> ConflictCheckResult:
        """Non-blocking findings to attach to a successful write."""
        return ConflictCheckResult(
            duplicates=list(self.warning_duplicates),
            conflicts=list(self.conflicts),
            skipped_calendars=list(self.skipped_calendars),
        )

    def blocking(self) -> ConflictCheckResult:
        """Only the duplicates that caused the refusal."""
        return ConflictCheckResult(duplicates=list(self.blocking_duplicates))


@dataclass
class BlockingPolicy:
    block_on_high_similarity: bool = True
    block_threshold: float = DEFAULT_BLOCK_THRESHOLD

    @classmethod
    def from_config(
        cls,
        config: ConflictConfig,
        block_on_high_similarity: bool | None = None,
    ) -> "BlockingPolicy":
        """Policy from config, with an optional per-request override of blocking."""
        if block_on_high_similarity is None:
            block_on_high_similarity = config.detection.block_on_high_similarity
        return cls(
            block_on_high_similarity=block_on_high_similarity,
            block_threshold=config.detection.block_threshold,
        )

    def evaluate(self, result: ConflictCheckResult) -> BlockDecision:
        blocking = []
        if self.block_on_high_similarity:
            blocking = [d for d in result.duplicates if d.similarity > self.block_threshold]

        if blocking:
            return BlockDecision(
                outcome=BlockOutcome.BLOCK,
                blocking_duplicates=blocking,
                skipped_calendars=list(result.skipped_calendars),
            )

        outcome = BlockOutcome.PROCEED_WITH_WARNINGS if result.has_conflicts else BlockOutcome.PROCEED_CLEAN
        return BlockDecision(
            outcome=outcome,
            warning_duplicates=list(result.duplicates),
            conflicts=list(result.conflicts),
            skipped_calendars=list(result.skipped_calendars),
        )
