"""Calendar Tools: Google Calendar operations with conflict and duplicate detection

Philosophy:
    Creating an event twice is worse than not creating it at all. Every write
    goes through a point-in-time scan of the surrounding calendar so the agent
    can warn about overlaps and refuse near-certain duplicates.

Components:
    models.py: Event snapshots, detection options and scan results
    config.py: Detection thresholds and scan settings (args/conflicts.yaml)
    providers/: Calendar platform implementations (Google Calendar)
    conflicts/: Similarity scoring, overlap analysis, multi-calendar scan
    handlers/: Blocking policy, response formatting, tool functions
"""

from pathlib import Path


# Path constants
PROJECT_ROOT = Path(__file__).parent.parent
ARGS_DIR = PROJECT_ROOT / "args"
CONFIG_PATH = ARGS_DIR / "conflicts.yaml"

__all__ = ["ARGS_DIR", "CONFIG_PATH", "PROJECT_ROOT"]
