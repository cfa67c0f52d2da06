"""
Calendar Agent Data Models

Domain models shared by the parser, the calendar client and the tools:
- CalendarIdentity: which calendar a request targets, and in which timezone
- TimedEvent / AllDayEvent: the StructuredEvent union produced by the parser
- EventQuery: UTC time window produced by the query parser
- CalendarEvent: an event as stored in (or returned by) the calendar backend
- ToolInvocationResult: uniform result of every calendar operation

The *Extraction models at the bottom are the schemas handed to the LLM in
structured-output mode; they are validated again before becoming domain models.
"""

from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from calbot.agents.calendaragent.utils.datetime_utils import (
    normalize_time,
    parse_date,
    parse_utc_instant,
    resolve_timezone,
)
from calbot.errors import ConfigurationError


def _check_date(value: str) -> str:
    return parse_date(value).isoformat()


class CalendarIdentity(BaseModel):
    """Backend calendar id plus the IANA timezone its events are expressed in."""

    model_config = ConfigDict(frozen=True)

    calendar_id: str
    timezone: str

    @model_validator(mode="before")
    @classmethod
    def _fail_fast(cls, data):
        if isinstance(data, dict):
            if not data.get("calendar_id"):
                raise ConfigurationError("Calendar ID is required")
            # Raises ConfigurationError for a missing or unknown zone
            resolve_timezone(data.get("timezone"))
        return data


class TimedEvent(BaseModel):
    """Event with explicit start/end clock times."""

    event_kind: Literal["timed"] = "timed"
    title: str
    start_date: str
    start_time: str
    end_time: str
    end_date: Optional[str] = None
    description: str = ""
    duration_hours: Optional[float] = None

    @field_validator("start_date")
    @classmethod
    def _validate_start_date(cls, value: str) -> str:
        return _check_date(value)

    @field_validator("start_time", "end_time")
    @classmethod
    def _validate_time(cls, value: str) -> str:
        return normalize_time(value)

    @model_validator(mode="after")
    def _default_end_date(self):
        if self.end_date is None:
            self.end_date = self.start_date
        else:
            self.end_date = _check_date(self.end_date)
        return self

    @property
    def is_all_day(self) -> bool:
        return False


class AllDayEvent(BaseModel):
    """Event spanning one or more whole days. ``end_date`` is inclusive."""

    event_kind: Literal["all_day"] = "all_day"
    title: str
    start_date: str
    end_date: Optional[str] = None
    description: str = ""

    @field_validator("start_date")
    @classmethod
    def _validate_start_date(cls, value: str) -> str:
        return _check_date(value)

    @model_validator(mode="after")
    def _check_range(self):
        if self.end_date is None:
            self.end_date = self.start_date
        self.end_date = _check_date(self.end_date)
        if self.end_date < self.start_date:
            raise ValueError(f"end_date {self.end_date} is before start_date {self.start_date}")
        return self

    @property
    def is_all_day(self) -> bool:
        return True

    @property
    def is_multi_day(self) -> bool:
        return self.end_date != self.start_date


StructuredEvent = Union[TimedEvent, AllDayEvent]


class EventQuery(BaseModel):
    """UTC window for fetching events. time_min <= time_max always holds."""

    time_min: str
    time_max: str

    @model_validator(mode="after")
    def _check_window(self):
        if parse_utc_instant(self.time_min) > parse_utc_instant(self.time_max):
            raise ValueError(f"time_min {self.time_min} is after time_max {self.time_max}")
        return self


class CalendarEvent(BaseModel):
    """An event known to the calendar backend."""

    id: str
    title: str
    start_date: str
    end_date: str
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    is_all_day: bool = False
    description: str = ""

    def to_llm_record(self) -> dict:
        """Compact JSON-serializable record for the fetch tool."""
        return {
            "id": self.id,
            "title": self.title,
            "startDate": self.start_date,
            "endDate": self.end_date,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "isAllDay": self.is_all_day,
            "description": self.description or "",
        }


class ToolInvocationResult(BaseModel):
    """Result of a calendar backend operation."""

    success: bool
    data: Optional[Union[CalendarEvent, List[CalendarEvent]]] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, data=None) -> "ToolInvocationResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str) -> "ToolInvocationResult":
        return cls(success=False, error=error)


# --------------------------------------------------------------------------- #
# Structured-output schemas (what the LLM fills in)                           #
# --------------------------------------------------------------------------- #


class EventClassification(BaseModel):
    """Whether the text describes a timed event or an all-day event."""

    event_type: Literal["timed", "all_day", "unclear"] = Field(
        description="'timed' if the event has a clock time, 'all_day' for whole-day or multi-day events, 'unclear' otherwise"
    )
    confidence: float = Field(ge=0.0, le=1.0, description="Confidence between 0 and 1")
    reasoning: str = Field(default="", description="Short explanation of the decision")


class TimedEventExtraction(BaseModel):
    """Details of an event that happens at a specific time of day."""

    title: str = Field(description="Short event title")
    description: str = Field(default="", description="Fuller restatement of the event")
    start_date: Optional[str] = Field(default=None, description="Start date, YYYY-MM-DD")
    start_time: Optional[str] = Field(default=None, description="Start time, HH:MM 24-hour")
    has_duration: bool = Field(
        default=False, description="True only if the text states how long the event lasts"
    )
    duration_hours: Optional[float] = Field(
        default=None, description="Duration in hours, only when the text states one"
    )
    end_time: Optional[str] = Field(
        default=None, description="End time HH:MM 24-hour, only when the text states a time range"
    )
    missing_reason: Optional[str] = Field(
        default=None, description="What information is missing, if any"
    )


class AllDayEventExtraction(BaseModel):
    """Details of an event that spans whole days."""

    title: str = Field(description="Short event title")
    description: str = Field(default="", description="Fuller restatement of the event")
    start_date: Optional[str] = Field(default=None, description="First day, YYYY-MM-DD")
    end_date: Optional[str] = Field(
        default=None, description="Last day (inclusive), YYYY-MM-DD; same as start_date for one day"
    )
    missing_reason: Optional[str] = Field(
        default=None, description="What information is missing, if any"
    )


class EventQueryExtraction(BaseModel):
    """Local date range a calendar question is about."""

    start_date: Optional[str] = Field(default=None, description="First local day, YYYY-MM-DD")
    end_date: Optional[str] = Field(default=None, description="Last local day (inclusive), YYYY-MM-DD")
    reasoning: str = Field(default="", description="Short explanation of the chosen range")
