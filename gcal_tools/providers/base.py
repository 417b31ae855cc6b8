"""
Tool: Calendar Provider Base
Purpose: Abstract base class for calendar platform providers

Defines the common interface that conflict scans and the create-event tool
work against. Every operation returns a result dict with a ``success`` flag
and, on failure, an ``error`` message instead of raising.

Usage:
    from gcal_tools.providers.base import CalendarProvider
    from gcal_tools.providers.google_calendar import GoogleCalendarProvider

    provider = GoogleCalendarProvider(account)
    result = await provider.list_events("primary", time_min, time_max)
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from gcal_tools.models import CalendarAccount, CalendarEvent


class CalendarProvider(ABC):
    """
    Abstract base class for calendar platform providers.

    The provider is the authenticated-access capability handed to a scan.
    Token acquisition and refresh happen before it is constructed.
    """

    def __init__(self, account: CalendarAccount):
        """
        Initialize provider with a calendar account.

        Args:
            account: Account with credentials
        """
        self.account = account

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name (e.g., 'google')."""
        pass

    @property
    def user_email(self) -> str:
        """Email address of the authenticated user."""
        return self.account.email_address

    @abstractmethod
    async def list_events(
        self,
        calendar_id: str,
        time_min: datetime,
        time_max: datetime,
        max_results: int = 250,
    ) -> dict[str, Any]:
        """
        List single-instance events in a window, ordered by start time.

        Args:
            calendar_id: Calendar to read
            time_min: Window start (aware datetime)
            time_max: Window end (aware datetime)
            max_results: Maximum number of events to return

        Returns:
            {"success": True, "events": list[CalendarEvent]} or an error dict
        """
        pass

    @abstractmethod
    async def query_freebusy(
        self,
        time_min: datetime,
        time_max: datetime,
        calendar_ids: list[str],
    ) -> dict[str, Any]:
        """
        Query aggregated busy intervals.

        Returns:
            {"success": True, "calendars": {calendar_id: list[BusySlot]}} or an error dict
        """
        pass

    @abstractmethod
    async def create_event(
        self,
        calendar_id: str,
        event: CalendarEvent,
        send_updates: str | None = None,
    ) -> dict[str, Any]:
        """
        Insert an event.

        Returns:
            {"success": True, "event": CalendarEvent} or an error dict with ``status``
        """
        pass

    @abstractmethod
    async def get_calendar_timezone(self, calendar_id: str) -> dict[str, Any]:
        """
        Get the default timezone of a calendar.

        Returns:
            {"success": True, "timezone": str} or an error dict
        """
        pass
