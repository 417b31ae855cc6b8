"""
Tool: Google Calendar Provider
Purpose: Google Calendar integration via the Calendar v3 REST API

Implements the CalendarProvider interface for Google Calendar.

Usage:
    from gcal_tools.providers.google_calendar import GoogleCalendarProvider

    provider = GoogleCalendarProvider(account)
    result = await provider.list_events("primary", time_min, time_max)

Dependencies:
    - aiohttp (pip install aiohttp)
"""

import asyncio
from datetime import datetime
from typing import Any
from urllib.parse import quote

import aiohttp

from gcal_tools.models import BusySlot, CalendarEvent
from gcal_tools.providers.base import CalendarProvider


# Google API endpoints
CALENDAR_API_BASE = "https://www.googleapis.com/calendar/v3"

REQUEST_TIMEOUT_SECONDS = 20


class GoogleCalendarProvider(CalendarProvider):
    """
    Google Calendar provider.
    """

    @property
    def provider_name(self) -> str:
        return "google"

    def _get_headers(self) -> dict[str, str]:
        """Get authorization headers for API requests."""
        return {
            "Authorization": f"Bearer {self.account.access_token}",
            "Content-Type": "application/json",
        }

    @staticmethod
    def _calendar_url(calendar_id: str) -> str:
        return f"{CALENDAR_API_BASE}/calendars/{quote(calendar_id, safe='')}"

    async def _make_request(
        self,
        method: str,
        url: str,
        data: dict | None = None,
        params: dict | None = None,
    ) -> dict[str, Any]:
        """
        Make an authenticated API request.

        Args:
            method: HTTP method
            url: Full API URL
            data: Request body (for POST/PATCH)
            params: Query parameters

        Returns:
            dict with response data or error
        """
        if not self.account.access_token:
            return {"success": False, "status": 401, "error": "No access token"}

        headers = self._get_headers()
        timeout = aiohttp.ClientTimeout(total=REQUEST_TIMEOUT_SECONDS)

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.request(
                    method, url, headers=headers, json=data, params=params
                ) as resp:
                    return await self._handle_response(resp)

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            return {"success": False, "error": f"Request failed: {e!s}"}

    async def _handle_response(self, resp) -> dict[str, Any]:
        """Handle API response."""
        if resp.status == 204:
            return {"success": True}

        try:
            data = await resp.json()
        except (aiohttp.ContentTypeError, ValueError):
            data = {}

        if resp.status in (200, 201):
            return {"success": True, "data": data}
        elif resp.status == 401:
            error = "Authentication failed - token may be expired"
        elif resp.status == 403:
            error = "Permission denied - insufficient scopes or calendar not shared"
        elif resp.status == 404:
            error = "Resource not found"
        elif resp.status == 409:
            error = "Resource already exists"
        elif resp.status == 429:
            error = "Rate limit exceeded"
        else:
            details = data.get("error") if isinstance(data, dict) else None
            if isinstance(details, dict) and details.get("message"):
                error = details["message"]
            else:
                error = f"HTTP {resp.status}"
        return {"success": False, "status": resp.status, "error": error}

    # =========================================================================
    # Read Operations
    # =========================================================================

    async def list_events(
        self,
        calendar_id: str,
        time_min: datetime,
        time_max: datetime,
        max_results: int = 250,
    ) -> dict[str, Any]:
        """List single-instance events in a window, ordered by start time."""
        params = {
            "timeMin": time_min.isoformat(),
            "timeMax": time_max.isoformat(),
            "maxResults": max_results,
            "singleEvents": "true",
            "orderBy": "startTime",
        }

        url = f"{self._calendar_url(calendar_id)}/events"
        result = await self._make_request("GET", url, params=params)

        if not result.get("success"):
            return result

        items = result.get("data", {}).get("items", [])
        events = [CalendarEvent.from_google(item, calendar_id=calendar_id) for item in items]

        return {"success": True, "events": events, "total": len(events)}

    async def query_freebusy(
        self,
        time_min: datetime,
        time_max: datetime,
        calendar_ids: list[str],
    ) -> dict[str, Any]:
        """Query aggregated busy intervals for several calendars."""
        data = {
            "timeMin": time_min.isoformat(),
            "timeMax": time_max.isoformat(),
            "items": [{"id": calendar_id} for calendar_id in calendar_ids],
        }

        result = await self._make_request("POST", f"{CALENDAR_API_BASE}/freeBusy", data=data)
        if not result.get("success"):
            return result

        calendars: dict[str, list[BusySlot]] = {}
        for calendar_id, info in result.get("data", {}).get("calendars", {}).items():
            if info.get("errors"):
                # Per-calendar errors (notFound, forbidden) carry no busy data
                continue
            calendars[calendar_id] = [BusySlot.from_google(slot) for slot in info.get("busy", [])]

        return {"success": True, "calendars": calendars}

    async def get_calendar_timezone(self, calendar_id: str) -> dict[str, Any]:
        """Get the default timezone of a calendar."""
        result = await self._make_request("GET", self._calendar_url(calendar_id))
        if not result.get("success"):
            return result
        return {"success": True, "timezone": result.get("data", {}).get("timeZone", "UTC")}

    # =========================================================================
    # Write Operations
    # =========================================================================

    async def create_event(
        self,
        calendar_id: str,
        event: CalendarEvent,
        send_updates: str | None = None,
    ) -> dict[str, Any]:
        """Insert an event."""
        params = {"sendUpdates": send_updates} if send_updates else None
        url = f"{self._calendar_url(calendar_id)}/events"
        result = await self._make_request("POST", url, data=event.to_google_body(), params=params)

        if not result.get("success"):
            return result

        created = CalendarEvent.from_google(result.get("data", {}), calendar_id=calendar_id)
        return {"success": True, "event": created, "event_id": created.event_id}
