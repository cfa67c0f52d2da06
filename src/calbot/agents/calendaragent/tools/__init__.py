"""
Calendar Agent Tools Module

Wraps the event parser and the calendar client as LangChain tools the agent can
call by name. The tool docstrings are the contracts the LLM reads, including
the indirect phrasings that should trigger them ("I'm off to PR next weekend"
is a create request).

Every tool returns a string starting with "SUCCESS:" or "ERROR:". Tools never
raise: parse failures, backend failures and unexpected exceptions all come back
as ERROR strings. The calendar identity is read from the RunnableConfig of the
current invocation, never from shared state.
"""

import json
import logging
from typing import List

from langchain_core.runnables import RunnableConfig
from langchain_core.tools import BaseTool, tool

from calbot.agents.calendaragent.calendar_client import CalendarClient
from calbot.agents.calendaragent.constants import TOOL_NAMES, TOOL_RESULT
from calbot.agents.calendaragent.dto import AllDayEvent, StructuredEvent
from calbot.agents.calendaragent.event_parser import EventParser
from calbot.errors import ConfigurationError
from calbot.supervisor.context import get_calendar_identity, get_request_id

logger = logging.getLogger(__name__)


def success(message: str) -> str:
    return f"{TOOL_RESULT.SUCCESS_PREFIX} {message}"


def error(message: str) -> str:
    return f"{TOOL_RESULT.ERROR_PREFIX} {message}"


def describe_created_event(event: StructuredEvent) -> str:
    """Human-readable confirmation with the resolved date, time or date range."""
    if isinstance(event, AllDayEvent):
        if event.is_multi_day:
            return (
                f'Multi-day calendar event "{event.title}" has been created '
                f"from {event.start_date} to {event.end_date}."
            )
        return f'All-day calendar event "{event.title}" has been created for {event.start_date}.'
    return (
        f'Calendar event "{event.title}" has been created for {event.start_date} '
        f"from {event.start_time} to {event.end_time}."
    )


def build_calendar_tools(parser: EventParser, calendar: CalendarClient) -> List[BaseTool]:
    """
    Create the calendar tools bound to a parser and a calendar client.

    Args:
        parser: Event parser used to turn tool input text into structured data
        calendar: Calendar backend

    Returns:
        List of LangChain tools: create, fetch and delete
    """
    if parser is None or calendar is None:
        raise ValueError("Both an event parser and a calendar client are required")

    @tool(TOOL_NAMES.CREATE_EVENT)
    async def create_calendar_event(text: str, config: RunnableConfig) -> str:
        """
        Create a calendar event from natural language.

        WHEN TO USE THIS TOOL:
        - When someone indirectly mentions a plan, trip or absence of their own or of another group member, e.g.:
            * "I'm traveling this weekend"
            * "I won't be in SF next week"
            * "I'm going to PR / Colombia / Mexico next weekend"
            * "Juan won't be around this weekend"
        - When someone explicitly asks to add an event, e.g.:
            * "Add a trip next weekend to the calendar"
            * "Put a dentist appointment tomorrow 3-4pm on the calendar"
        Do not wait for an explicit command and do not ask for confirmation.

        Args:
            text: The user's message, verbatim, including the trailing "Sent by: <Name>" line

        Returns:
            "SUCCESS: ..." with the created event's dates, or "ERROR: ..." explaining what went wrong
        """
        request_id = get_request_id(config)
        logger.info("[%s] %s called: %r", request_id, TOOL_NAMES.CREATE_EVENT, text[:200])
        try:
            identity = get_calendar_identity(config)

            event = await parser.parse_event_details(text, identity.timezone)
            if event is None:
                logger.info("[%s] Could not parse event details", request_id)
                return error(
                    "Failed to parse event details. Ask the user for clearer information "
                    "(the date, and for timed events the start time plus a duration or end time)."
                )
            logger.info(
                "[%s] Parsed %s event %r starting %s", request_id, event.event_kind, event.title, event.start_date
            )

            result = await calendar.create_event(identity, event)
            if not result.success:
                logger.warning("[%s] Calendar create failed: %s", request_id, result.error)
                return error(f"Failed to create calendar event: {result.error}")

            return success(describe_created_event(event))

        except ConfigurationError as e:
            logger.error(f"[{request_id}] Calendar not configured: {str(e)}")
            return error(f"{str(e)}. The calendar service is not properly configured.")
        except Exception as e:
            logger.exception(f"[{request_id}] Unexpected error creating calendar event")
            return error(f"Unexpected error creating calendar event: {str(e)}")

    @tool(TOOL_NAMES.FETCH_EVENTS)
    async def fetch_calendar_events(text: str, config: RunnableConfig) -> str:
        """
        Look up calendar events from a natural-language question.

        WHEN TO USE THIS TOOL:
        - When someone explicitly asks what is on the calendar, e.g.:
            * "What events are on the calendar next weekend?"
            * "What's happening this week?"
        - Mostly for indirect questions about who is around, e.g.:
            * "Who is out this weekend?"
            * "When does Ricky get back?"
            * "Who is here the week of July 7th?"
            * "Is Juan back from his trip?"
        ALWAYS use this tool for questions about trips, flights, returns of group members,
        availability, or existing and upcoming events.

        Args:
            text: The user's question, verbatim

        Returns:
            "SUCCESS: " followed by a JSON list of events (id, title, startDate, endDate,
            startTime, endTime, isAllDay, description), or "ERROR: ..." explaining what went wrong
        """
        request_id = get_request_id(config)
        logger.info("[%s] %s called: %r", request_id, TOOL_NAMES.FETCH_EVENTS, text[:200])
        try:
            identity = get_calendar_identity(config)

            query = await parser.parse_event_query(text, identity.timezone)
            if query is None:
                logger.info("[%s] Could not parse event query", request_id)
                return error(
                    "Failed to parse query details. Ask the user which dates or time frame they mean."
                )
            logger.info("[%s] Querying %s to %s", request_id, query.time_min, query.time_max)

            result = await calendar.fetch_events(identity, query)
            if not result.success:
                logger.warning("[%s] Calendar fetch failed: %s", request_id, result.error)
                return error(f"Failed to fetch calendar events: {result.error}")

            records = [event.to_llm_record() for event in (result.data or [])]
            logger.info("[%s] Returning %d events", request_id, len(records))
            return success(json.dumps(records, indent=2, ensure_ascii=False))

        except ConfigurationError as e:
            logger.error(f"[{request_id}] Calendar not configured: {str(e)}")
            return error(f"{str(e)}. The calendar service is not properly configured.")
        except Exception as e:
            logger.exception(f"[{request_id}] Unexpected error fetching calendar events")
            return error(f"Unexpected error fetching calendar events: {str(e)}")

    @tool(TOOL_NAMES.DELETE_EVENT)
    async def delete_calendar_event(event_id: str, config: RunnableConfig) -> str:
        """
        Delete a calendar event by its id.

        WHEN TO USE THIS TOOL:
        - When someone says a trip or plan was cancelled ("I'm not going to PR anymore")
          or explicitly asks to remove an event.
        First call the fetch tool to find the event and its id; only delete an event
        that clearly matches what the user described.

        Args:
            event_id: The "id" field reported by the fetch tool

        Returns:
            "SUCCESS: ..." or "ERROR: ..." explaining what went wrong
        """
        request_id = get_request_id(config)
        logger.info("[%s] %s called: %r", request_id, TOOL_NAMES.DELETE_EVENT, event_id)
        if not event_id or not event_id.strip():
            return error("An event id is required. Fetch the events first to find it.")
        try:
            identity = get_calendar_identity(config)

            result = await calendar.remove_event(identity, event_id.strip())
            if not result.success:
                logger.warning("[%s] Calendar delete failed: %s", request_id, result.error)
                return error(f"Failed to delete calendar event: {result.error}")

            return success(f"Calendar event {event_id.strip()} has been deleted.")

        except ConfigurationError as e:
            logger.error(f"[{request_id}] Calendar not configured: {str(e)}")
            return error(f"{str(e)}. The calendar service is not properly configured.")
        except Exception as e:
            logger.exception(f"[{request_id}] Unexpected error deleting calendar event")
            return error(f"Unexpected error deleting calendar event: {str(e)}")

    return [create_calendar_event, fetch_calendar_events, delete_calendar_event]
