"""
Event Parser - natural language to structured calendar events

Two-stage pipeline:
1. Classification: one structured-output LLM call labels the text as
   timed / all_day / unclear
2. Specialized extraction: a timed or an all-day extractor, each with its own
   prompt and schema. "unclear" tries timed first, then all-day.

Every failure (LLM error, timeout, missing fields, broken invariants) comes
back as None, meaning "not enough information", never as an exception. The
only thing that raises is a missing or unknown timezone.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from pydantic import BaseModel, ValidationError

from calbot.agents.calendaragent.constants import PARSER_SETTINGS
from calbot.agents.calendaragent.dto import (
    AllDayEvent,
    AllDayEventExtraction,
    EventClassification,
    EventQuery,
    EventQueryExtraction,
    StructuredEvent,
    TimedEvent,
    TimedEventExtraction,
)
from calbot.agents.calendaragent.prompts import (
    ALL_DAY_EVENT_PROMPT,
    CLASSIFICATION_PROMPT,
    DATE_CONTEXT_TEMPLATE,
    DEFAULT_TITLE_DESCRIPTION_INSTRUCTIONS,
    EVENT_QUERY_PROMPT,
    TIMED_EVENT_PROMPT,
)
from calbot.agents.calendaragent.utils.datetime_utils import (
    DATE_FORMAT,
    combine_date_and_time,
    local_day_bounds_utc,
    local_now,
    next_weekend_range,
    normalize_time,
    parse_date,
    reference_calendar,
    split_local_datetime,
    weekend_range,
)

logger = logging.getLogger(__name__)


class EventParser:
    """
    LLM-backed parser for event details and event queries.

    Args:
        llm: LangChain chat model supporting ``with_structured_output``
        clock: Optional callable returning an aware "now" (tests pin the date with it)
        timeout: Seconds allowed per LLM call; None disables the limit
    """

    def __init__(self, llm, clock: Optional[Callable[[], datetime]] = None, timeout: Optional[float] = None):
        if llm is None:
            raise ValueError("LLM instance is required")
        self.llm = llm
        self.clock = clock
        self.timeout = timeout

        self._classifier = llm.with_structured_output(EventClassification)
        self._timed_extractor = llm.with_structured_output(TimedEventExtraction)
        self._all_day_extractor = llm.with_structured_output(AllDayEventExtraction)
        self._query_extractor = llm.with_structured_output(EventQueryExtraction)

    # ------------------------------------------------------------------ #
    # Public API                                                         #
    # ------------------------------------------------------------------ #

    async def parse_event_details(self, text: str, timezone: str) -> Optional[StructuredEvent]:
        """
        Parse free text into a TimedEvent or an AllDayEvent.

        Args:
            text: Chat message, possibly ending with a "Sent by: <Name>" line
            timezone: IANA timezone of the target calendar

        Returns:
            TimedEvent, AllDayEvent, or None when the text does not carry enough information

        Raises:
            ConfigurationError: If the timezone is missing or unknown
        """
        date_context = self.build_date_context(timezone)
        if not text or not text.strip():
            logger.info("Empty text, nothing to parse")
            return None

        label = await self.classify(text, date_context)

        if label == "timed":
            return await self._extract_timed(text, date_context)
        if label == "all_day":
            return await self._extract_all_day(text, date_context)

        logger.info("Classification unclear, trying timed then all-day extraction")
        event = await self._extract_timed(text, date_context)
        if event is not None:
            return event
        return await self._extract_all_day(text, date_context)

    async def parse_event_query(self, text: str, timezone: str) -> Optional[EventQuery]:
        """
        Parse a calendar question into a UTC time window.

        Returns:
            EventQuery spanning whole local days, or None if no range could be determined

        Raises:
            ConfigurationError: If the timezone is missing or unknown
        """
        date_context = self.build_date_context(timezone)
        if not text or not text.strip():
            return None

        prompt = EVENT_QUERY_PROMPT.format(date_context=date_context["text"], text=text)
        extraction = await self._invoke(self._query_extractor, EventQueryExtraction, prompt)
        if extraction is None:
            return None

        logger.debug("Query range reasoning: %s", extraction.reasoning)
        if not extraction.start_date:
            logger.info("Query extraction produced no start date")
            return None

        try:
            start_date = parse_date(extraction.start_date).strftime(DATE_FORMAT)
            end_date = parse_date(extraction.end_date).strftime(DATE_FORMAT) if extraction.end_date else start_date
            if end_date < start_date:
                logger.info("Query range is inverted: %s > %s", start_date, end_date)
                return None
            time_min, time_max = local_day_bounds_utc(start_date, end_date, date_context["timezone"])
            return EventQuery(time_min=time_min, time_max=time_max)
        except (ValueError, ValidationError) as e:
            logger.warning(f"Invalid query extraction {extraction!r}: {e}")
            return None

    # ------------------------------------------------------------------ #
    # Stages                                                             #
    # ------------------------------------------------------------------ #

    async def classify(self, text: str, date_context: Dict[str, Any]) -> str:
        """Return "timed", "all_day" or "unclear". A failed call counts as "unclear"."""
        prompt = CLASSIFICATION_PROMPT.format(date_context=date_context["text"], text=text)
        classification = await self._invoke(self._classifier, EventClassification, prompt)
        if classification is None:
            return "unclear"

        logger.info(
            "Classified as %s (confidence %.2f): %s",
            classification.event_type,
            classification.confidence,
            classification.reasoning,
        )
        return classification.event_type

    async def _extract_timed(self, text: str, date_context: Dict[str, Any]) -> Optional[TimedEvent]:
        prompt = TIMED_EVENT_PROMPT.format(
            date_context=date_context["text"],
            title_instructions=DEFAULT_TITLE_DESCRIPTION_INSTRUCTIONS,
            text=text,
        )
        extraction = await self._invoke(self._timed_extractor, TimedEventExtraction, prompt)
        if extraction is None:
            return None

        if not extraction.start_date or not extraction.start_time:
            logger.info("Timed extraction incomplete: %s", extraction.missing_reason or "missing date or start time")
            return None

        has_duration = extraction.has_duration
        if has_duration:
            consistent = extraction.duration_hours is not None and not extraction.end_time
        else:
            consistent = extraction.duration_hours is None and bool(extraction.end_time)
        if not consistent:
            # The end must come from exactly the source the flag names
            logger.info(
                "Timed extraction rejected (has_duration=%s, duration=%s, end_time=%s): %s",
                has_duration,
                extraction.duration_hours,
                extraction.end_time,
                extraction.missing_reason or "need exactly one of duration or end time",
            )
            return None

        try:
            start_time = normalize_time(extraction.start_time)
            if has_duration:
                if extraction.duration_hours <= 0:
                    logger.info("Non-positive duration: %s", extraction.duration_hours)
                    return None
                end_local = combine_date_and_time(extraction.start_date, start_time, extraction.duration_hours)
                _, end_time = split_local_datetime(end_local)
            else:
                end_time = normalize_time(extraction.end_time)
                if end_time == start_time:
                    logger.info("End time equals start time: %s", start_time)
                    return None

            return TimedEvent(
                title=extraction.title,
                description=extraction.description or extraction.title,
                start_date=extraction.start_date,
                start_time=start_time,
                end_time=end_time,
                duration_hours=extraction.duration_hours if has_duration else None,
            )
        except (ValueError, ValidationError) as e:
            logger.warning(f"Invalid timed extraction {extraction!r}: {e}")
            return None

    async def _extract_all_day(self, text: str, date_context: Dict[str, Any]) -> Optional[AllDayEvent]:
        prompt = ALL_DAY_EVENT_PROMPT.format(
            date_context=date_context["text"],
            title_instructions=DEFAULT_TITLE_DESCRIPTION_INSTRUCTIONS,
            text=text,
        )
        extraction = await self._invoke(self._all_day_extractor, AllDayEventExtraction, prompt)
        if extraction is None:
            return None

        if not extraction.start_date:
            logger.info("All-day extraction incomplete: %s", extraction.missing_reason or "missing start date")
            return None

        try:
            return AllDayEvent(
                title=extraction.title,
                description=extraction.description or extraction.title,
                start_date=extraction.start_date,
                end_date=extraction.end_date or extraction.start_date,
            )
        except (ValueError, ValidationError) as e:
            logger.warning(f"Invalid all-day extraction {extraction!r}: {e}")
            return None

    # ------------------------------------------------------------------ #
    # Helpers                                                            #
    # ------------------------------------------------------------------ #

    def build_date_context(self, timezone: str) -> Dict[str, Any]:
        """Resolve "today" in the calendar's timezone and render the prompt block."""
        now = local_now(timezone, self.clock() if self.clock else None)
        today = now.date()
        weekend_start, weekend_end = weekend_range(today)
        next_weekend_start, next_weekend_end = next_weekend_range(today)
        next_week_start = today + timedelta(days=7 - today.weekday())

        text = DATE_CONTEXT_TEMPLATE.format(
            current_day_name=now.strftime("%A"),
            current_date=today.strftime(DATE_FORMAT),
            timezone=timezone,
            tomorrow=(today + timedelta(days=1)).strftime(DATE_FORMAT),
            weekend_start=weekend_start.strftime(DATE_FORMAT),
            weekend_end=weekend_end.strftime(DATE_FORMAT),
            next_weekend_start=next_weekend_start.strftime(DATE_FORMAT),
            next_weekend_end=next_weekend_end.strftime(DATE_FORMAT),
            next_week_start=next_week_start.strftime(DATE_FORMAT),
            next_week_end=(next_week_start + timedelta(days=6)).strftime(DATE_FORMAT),
            reference_calendar="\n".join(reference_calendar(today, PARSER_SETTINGS.REFERENCE_DAYS)),
        )
        return {"today": today, "timezone": timezone, "text": text}

    async def _invoke(self, runnable, schema, prompt: str) -> Optional[BaseModel]:
        """Run one structured-output call; any failure is logged and becomes None."""
        try:
            if self.timeout:
                result = await asyncio.wait_for(runnable.ainvoke(prompt), timeout=self.timeout)
            else:
                result = await runnable.ainvoke(prompt)
        except asyncio.TimeoutError:
            logger.warning("%s call timed out after %ss", schema.__name__, self.timeout)
            return None
        except Exception as e:
            logger.error(f"{schema.__name__} call failed: {str(e)}")
            return None

        if result is None:
            return None
        if isinstance(result, schema):
            return result
        try:
            if isinstance(result, BaseModel):
                result = result.model_dump()
            return schema.model_validate(result)
        except ValidationError as e:
            logger.warning(f"{schema.__name__} output did not match schema: {e}")
            return None
