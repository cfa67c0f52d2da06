"""
Calendar Clients

CalendarClient is the interface the tools depend on; GoogleCalendarClient
implements it on top of the Google Calendar v3 API.

Every operation takes the CalendarIdentity of the current request as an
argument, so one client instance serves any number of calendars, and returns a
ToolInvocationResult instead of raising.

All-day events use an exclusive end date at the backend boundary: an event on
June 27-29 is stored with end.date = June 30. The conversion happens here in
both directions.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

import httplib2
from google.oauth2 import service_account
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from calbot.agents.calendaragent.constants import GOOGLE_CALENDAR_SETTINGS
from calbot.agents.calendaragent.dto import (
    AllDayEvent,
    CalendarEvent,
    CalendarIdentity,
    EventQuery,
    StructuredEvent,
    ToolInvocationResult,
)
from calbot.agents.calendaragent.utils.datetime_utils import (
    add_days,
    combine_date_and_time,
    from_exclusive_end_date,
    parse_google_calendar_datetime,
    to_exclusive_end_date,
)
from calbot.errors import ConfigurationError

logger = logging.getLogger(__name__)


class CalendarClient(ABC):
    """Calendar backend operations used by the agent tools."""

    @abstractmethod
    async def create_event(self, identity: CalendarIdentity, event: StructuredEvent) -> ToolInvocationResult:
        """Create an event; on success ``data`` is the stored CalendarEvent."""

    @abstractmethod
    async def fetch_events(self, identity: CalendarIdentity, query: EventQuery) -> ToolInvocationResult:
        """Fetch events overlapping the query window; ``data`` is a list of CalendarEvent."""

    @abstractmethod
    async def modify_event(
        self, identity: CalendarIdentity, event_id: str, event: StructuredEvent
    ) -> ToolInvocationResult:
        """Replace the timing, title and description of an existing event."""

    @abstractmethod
    async def remove_event(self, identity: CalendarIdentity, event_id: str) -> ToolInvocationResult:
        """Delete an event by its backend id."""


def to_google_event(event: StructuredEvent, timezone: str) -> Dict[str, Any]:
    """
    Convert a StructuredEvent into a Google Calendar event resource.

    Timed events are sent as local date-times paired with an explicit timeZone.
    An end time at or before the start time means the event runs past midnight.
    """
    resource: Dict[str, Any] = {
        "summary": event.title,
        "description": event.description,
    }

    if isinstance(event, AllDayEvent):
        resource["start"] = {"date": event.start_date}
        resource["end"] = {"date": to_exclusive_end_date(event.end_date)}
        return resource

    start_local = combine_date_and_time(event.start_date, event.start_time)
    if event.duration_hours is not None:
        end_local = combine_date_and_time(event.start_date, event.start_time, event.duration_hours)
    else:
        end_local = combine_date_and_time(event.end_date, event.end_time)
        if end_local <= start_local:
            end_local = combine_date_and_time(add_days(event.end_date, 1), event.end_time)

    resource["start"] = {"dateTime": start_local, "timeZone": timezone}
    resource["end"] = {"dateTime": end_local, "timeZone": timezone}
    return resource


def from_google_event(google_event: Dict[str, Any], timezone: str) -> CalendarEvent:
    """
    Convert a Google Calendar event resource to a CalendarEvent.

    Timed events are expressed in the calendar's timezone; all-day end dates are
    turned back into inclusive dates.
    """
    start_date, start_time = parse_google_calendar_datetime(google_event.get("start", {}), timezone)
    end_payload = google_event.get("end") or google_event.get("start", {})
    end_date, end_time = parse_google_calendar_datetime(end_payload, timezone)

    is_all_day = start_time is None
    if is_all_day and google_event.get("end"):
        end_date = max(start_date, from_exclusive_end_date(end_date))

    return CalendarEvent(
        id=google_event.get("id", ""),
        title=google_event.get("summary", "Untitled Event"),
        description=google_event.get("description", "") or "",
        start_date=start_date,
        end_date=end_date,
        start_time=start_time,
        end_time=end_time,
        is_all_day=is_all_day,
    )


class GoogleCalendarClient(CalendarClient):
    """
    Google Calendar implementation of the CalendarClient interface.

    The googleapiclient library is synchronous, so each request runs in a worker
    thread with its own authorized HTTP object (httplib2 connections must not be
    shared between threads) under an overall timeout.
    """

    def __init__(
        self,
        credentials_file: str = GOOGLE_CALENDAR_SETTINGS.CREDENTIALS_FILE,
        timeout: float = 15.0,
        service=None,
    ):
        """
        Initialize the Google Calendar client.

        Args:
            credentials_file: Path to the service-account JSON key
            timeout: Seconds allowed per backend call
            service: Pre-built calendar service (skips credential loading)

        Raises:
            ConfigurationError: If the credentials cannot be loaded
        """
        self.credentials_file = credentials_file
        self.timeout = timeout
        self.credentials = None

        if service is not None:
            self.service = service
        else:
            self.service = self._initialize_service()

    def _initialize_service(self):
        try:
            self.credentials = service_account.Credentials.from_service_account_file(
                self.credentials_file, scopes=GOOGLE_CALENDAR_SETTINGS.SCOPES
            )
        except FileNotFoundError:
            raise ConfigurationError(f"Credentials file not found: {self.credentials_file}")
        except ValueError as e:
            raise ConfigurationError(f"Invalid service account credentials: {e}")

        logger.info("Google Calendar service initialized from %s", self.credentials_file)
        return build(
            "calendar",
            GOOGLE_CALENDAR_SETTINGS.API_VERSION,
            credentials=self.credentials,
            cache_discovery=False,
        )

    def _new_http(self) -> Optional[AuthorizedHttp]:
        if self.credentials is None:
            return None
        return AuthorizedHttp(self.credentials, http=httplib2.Http(timeout=self.timeout))

    async def _execute(self, operation: str, build_request: Callable[[], Any]) -> Any:
        """Run a googleapiclient request off the event loop. Exceptions propagate to the caller."""
        def run():
            request = build_request()
            http = self._new_http()
            return request.execute(http=http) if http is not None else request.execute()

        logger.debug("Calendar %s started", operation)
        return await asyncio.wait_for(asyncio.to_thread(run), timeout=self.timeout)

    async def _guarded(self, operation: str, coro_factory: Callable[[], Any]) -> ToolInvocationResult:
        try:
            return await coro_factory()
        except asyncio.TimeoutError:
            logger.error("Calendar %s timed out after %ss", operation, self.timeout)
            return ToolInvocationResult.fail(f"The calendar did not respond in time ({operation})")
        except HttpError as e:
            reason = getattr(e, "reason", None) or str(e)
            logger.error(f"Calendar {operation} failed with HTTP {e.resp.status}: {reason}")
            return ToolInvocationResult.fail(str(reason))
        except Exception as e:
            logger.error(f"Calendar {operation} failed: {str(e)}")
            return ToolInvocationResult.fail(str(e))

    async def create_event(self, identity: CalendarIdentity, event: StructuredEvent) -> ToolInvocationResult:
        async def create():
            body = to_google_event(event, identity.timezone)
            response = await self._execute(
                "create",
                lambda: self.service.events().insert(calendarId=identity.calendar_id, body=body),
            )
            created = from_google_event(response, identity.timezone)
            logger.info("Created event %s in calendar %s", created.id, identity.calendar_id)
            return ToolInvocationResult.ok(created)

        return await self._guarded("create", create)

    async def fetch_events(self, identity: CalendarIdentity, query: EventQuery) -> ToolInvocationResult:
        async def fetch():
            items: List[Dict[str, Any]] = []
            page_token = None
            while True:
                response = await self._execute(
                    "fetch",
                    lambda token=page_token: self.service.events().list(
                        calendarId=identity.calendar_id,
                        timeMin=query.time_min,
                        timeMax=query.time_max,
                        singleEvents=True,
                        orderBy="startTime",
                        maxResults=GOOGLE_CALENDAR_SETTINGS.MAX_RESULTS,
                        pageToken=token,
                    ),
                )
                items.extend(response.get("items", []))
                page_token = response.get("nextPageToken")
                if not page_token:
                    break

            events = []
            for item in items:
                try:
                    events.append(from_google_event(item, identity.timezone))
                except ValueError as e:
                    logger.warning(f"Skipping unreadable event {item.get('id')}: {e}")
            logger.info(
                "Fetched %d events from calendar %s between %s and %s",
                len(events), identity.calendar_id, query.time_min, query.time_max,
            )
            return ToolInvocationResult.ok(events)

        return await self._guarded("fetch", fetch)

    async def modify_event(
        self, identity: CalendarIdentity, event_id: str, event: StructuredEvent
    ) -> ToolInvocationResult:
        async def modify():
            body = to_google_event(event, identity.timezone)
            response = await self._execute(
                "modify",
                lambda: self.service.events().patch(
                    calendarId=identity.calendar_id, eventId=event_id, body=body
                ),
            )
            return ToolInvocationResult.ok(from_google_event(response, identity.timezone))

        return await self._guarded("modify", modify)

    async def remove_event(self, identity: CalendarIdentity, event_id: str) -> ToolInvocationResult:
        async def remove():
            await self._execute(
                "remove",
                lambda: self.service.events().delete(calendarId=identity.calendar_id, eventId=event_id),
            )
            logger.info("Removed event %s from calendar %s", event_id, identity.calendar_id)
            return ToolInvocationResult.ok()

        return await self._guarded("remove", remove)
