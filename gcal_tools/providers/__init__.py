"""Calendar Providers: platform-specific implementations

This package contains provider adapters for calendar platforms:
- google_calendar.py: Google Calendar (Calendar v3 REST API)

All providers implement the CalendarProvider abstract base class from base.py.
"""

from gcal_tools.models import CalendarAccount
from gcal_tools.providers.base import CalendarProvider


def get_provider(account: CalendarAccount) -> CalendarProvider:
    """Get the appropriate provider for an account."""
    if account.provider == "google":
        from gcal_tools.providers.google_calendar import GoogleCalendarProvider
        return GoogleCalendarProvider(account)
    raise ValueError(f"Unknown provider: {account.provider}")


__all__ = ["CalendarProvider", "get_provider"]
