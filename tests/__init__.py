"""gcal-tools Test Suite

Test organization:
- unit/conflicts/: Similarity scoring, overlap analysis, conflict scan
- unit/handlers/: Blocking policy, formatting, tool functions
- unit/providers/: Google Calendar provider request/response handling
- unit/models/: Event models and configuration
- unit/core/: Logging setup

Running tests:
    # All tests
    pytest

    # Specific area
    pytest tests/unit/conflicts/
"""
