from datetime import datetime

import pytest
import pytz

from calbot.agents.calendaragent.dto import (
    AllDayEvent,
    AllDayEventExtraction,
    EventClassification,
    EventQueryExtraction,
    TimedEvent,
    TimedEventExtraction,
)
from calbot.agents.calendaragent.event_parser import EventParser
from calbot.errors import ConfigurationError

LA = "America/Los_Angeles"


def classification(label):
    return EventClassification(event_type=label, confidence=0.9, reasoning="test")


@pytest.fixture
def make_parser(structured_llm, fixed_clock):
    def factory(outputs, delay=0, timeout=None):
        llm = structured_llm(outputs, delay)
        return EventParser(llm, clock=fixed_clock, timeout=timeout), llm
    return factory


def test_requires_llm():
    with pytest.raises(ValueError):
        EventParser(None)


async def test_next_weekend_trip_is_multi_day_all_day_event(make_parser):
    parser, llm = make_parser({
        "EventClassification": classification("all_day"),
        "AllDayEventExtraction": AllDayEventExtraction(
            title="Ana - Trip to PR",
            description="Ana is traveling to Puerto Rico for the weekend",
            start_date="2025-06-27",
            end_date="2025-06-29",
        ),
    })

    event = await parser.parse_event_details("I'm going to PR next weekend\n\nSent by: Ana", LA)

    assert isinstance(event, AllDayEvent)
    assert (event.start_date, event.end_date) == ("2025-06-27", "2025-06-29")
    assert event.is_multi_day
    assert event.title == "Ana - Trip to PR"
    assert llm.called_schemas() == ["EventClassification", "AllDayEventExtraction"]


async def test_prompts_carry_the_calendar_date_context(make_parser):
    parser, llm = make_parser({"EventClassification": classification("all_day")})

    await parser.parse_event_details("I'm going to PR next weekend", LA)

    prompt = llm.calls[0][1]
    assert "2025-06-24" in prompt
    assert "Tuesday" in prompt
    assert "2025-06-27" in prompt and "2025-06-29" in prompt
    assert LA in prompt


async def test_timed_event_with_duration(make_parser):
    parser, _ = make_parser({
        "EventClassification": classification("timed"),
        "TimedEventExtraction": TimedEventExtraction(
            title="Meeting",
            start_date="2025-06-25",
            start_time="14:00",
            has_duration=True,
            duration_hours=1,
        ),
    })

    event = await parser.parse_event_details("meeting tomorrow at 2pm for 1 hour", LA)

    assert isinstance(event, TimedEvent)
    assert (event.start_date, event.start_time, event.end_time) == ("2025-06-25", "14:00", "15:00")
    assert event.end_date == "2025-06-25"
    assert event.duration_hours == 1


async def test_timed_event_with_explicit_end_time(make_parser):
    parser, _ = make_parser({
        "EventClassification": classification("timed"),
        "TimedEventExtraction": {
            "title": "Dentist",
            "start_date": "2025-06-25",
            "start_time": "3pm",
            "end_time": "16:00",
        },
    })

    event = await parser.parse_event_details("dentist tomorrow 3-4pm", LA)

    assert (event.start_time, event.end_time) == ("15:00", "16:00")
    assert event.duration_hours is None


async def test_timed_event_without_duration_or_end_is_rejected(make_parser):
    parser, _ = make_parser({
        "EventClassification": classification("timed"),
        "TimedEventExtraction": TimedEventExtraction(
            title="Meeting",
            start_date="2025-06-25",
            start_time="14:00",
            missing_reason="no duration or end time",
        ),
    })

    assert await parser.parse_event_details("meeting tomorrow at 2pm", LA) is None


async def test_timed_event_with_both_duration_and_end_is_rejected(make_parser):
    parser, _ = make_parser({
        "EventClassification": classification("timed"),
        "TimedEventExtraction": TimedEventExtraction(
            title="Meeting",
            start_date="2025-06-25",
            start_time="14:00",
            has_duration=True,
            duration_hours=1,
            end_time="16:00",
        ),
    })

    assert await parser.parse_event_details("meeting tomorrow 2pm for an hour until 4", LA) is None


async def test_duration_flag_without_hours_is_rejected(make_parser):
    parser, _ = make_parser({
        "EventClassification": classification("timed"),
        "TimedEventExtraction": TimedEventExtraction(
            title="Meeting", start_date="2025-06-25", start_time="14:00", has_duration=True
        ),
    })

    assert await parser.parse_event_details("meeting tomorrow at 2pm for a while", LA) is None


async def test_hours_without_duration_flag_are_rejected(make_parser):
    parser, _ = make_parser({
        "EventClassification": classification("timed"),
        "TimedEventExtraction": TimedEventExtraction(
            title="Meeting", start_date="2025-06-25", start_time="14:00", duration_hours=1
        ),
    })

    assert await parser.parse_event_details("meeting tomorrow at 2pm", LA) is None


async def test_range_ending_when_it_starts_is_rejected(make_parser):
    parser, _ = make_parser({
        "EventClassification": classification("timed"),
        "TimedEventExtraction": TimedEventExtraction(
            title="Call", start_date="2025-06-25", start_time="2pm", end_time="14:00"
        ),
    })

    assert await parser.parse_event_details("call tomorrow 2-2pm", LA) is None


async def test_unclear_falls_back_to_all_day(make_parser):
    parser, llm = make_parser({
        "EventClassification": classification("unclear"),
        "TimedEventExtraction": TimedEventExtraction(title="Trip", start_date="2025-06-27"),
        "AllDayEventExtraction": AllDayEventExtraction(title="Juan - Trip", start_date="2025-06-27"),
    })

    event = await parser.parse_event_details("Juan is away Friday", LA)

    assert isinstance(event, AllDayEvent)
    assert event.end_date == "2025-06-27"
    assert llm.called_schemas() == ["EventClassification", "TimedEventExtraction", "AllDayEventExtraction"]


async def test_classifier_failure_counts_as_unclear(make_parser):
    parser, llm = make_parser({
        "EventClassification": RuntimeError("rate limited"),
        "TimedEventExtraction": TimedEventExtraction(
            title="Call", start_date="2025-06-25", start_time="09:00", has_duration=True, duration_hours=0.5
        ),
    })

    event = await parser.parse_event_details("call tomorrow 9am for 30 min", LA)

    assert isinstance(event, TimedEvent)
    assert event.end_time == "09:30"


async def test_llm_failures_yield_none(make_parser):
    parser, _ = make_parser({
        "EventClassification": RuntimeError("down"),
        "TimedEventExtraction": RuntimeError("down"),
        "AllDayEventExtraction": RuntimeError("down"),
    })

    assert await parser.parse_event_details("I'm going to PR next weekend", LA) is None


async def test_inverted_all_day_range_yields_none(make_parser):
    parser, _ = make_parser({
        "EventClassification": classification("all_day"),
        "AllDayEventExtraction": AllDayEventExtraction(title="Trip", start_date="2025-06-29", end_date="2025-06-27"),
    })

    assert await parser.parse_event_details("trip", LA) is None


async def test_llm_timeout_yields_none(make_parser):
    parser, _ = make_parser({"EventClassification": classification("all_day")}, delay=0.2, timeout=0.01)

    assert await parser.parse_event_details("trip next weekend", LA) is None


async def test_missing_timezone_raises(make_parser):
    parser, llm = make_parser({})

    with pytest.raises(ConfigurationError):
        await parser.parse_event_details("trip next weekend", None)
    assert llm.calls == []


async def test_empty_text_does_not_call_the_llm(make_parser):
    parser, llm = make_parser({})

    assert await parser.parse_event_details("   ", LA) is None
    assert llm.calls == []


class TestParseEventQuery:
    async def test_weekend_query_becomes_utc_window(self, make_parser):
        parser, _ = make_parser({
            "EventQueryExtraction": EventQueryExtraction(start_date="2025-06-27", end_date="2025-06-29"),
        })

        query = await parser.parse_event_query("Who is out this weekend?", LA)

        assert query.time_min == "2025-06-27T07:00:00.000Z"
        assert query.time_max == "2025-06-30T06:59:59.999Z"

    async def test_single_day_query(self, make_parser):
        parser, _ = make_parser({"EventQueryExtraction": EventQueryExtraction(start_date="2025-06-25")})

        query = await parser.parse_event_query("anything tomorrow?", LA)

        assert query.time_min == "2025-06-25T07:00:00.000Z"
        assert query.time_max == "2025-06-26T06:59:59.999Z"

    async def test_missing_start_date(self, make_parser):
        parser, _ = make_parser({"EventQueryExtraction": EventQueryExtraction(reasoning="no dates")})

        assert await parser.parse_event_query("what's up?", LA) is None

    async def test_inverted_range(self, make_parser):
        parser, _ = make_parser({
            "EventQueryExtraction": EventQueryExtraction(start_date="2025-06-29", end_date="2025-06-27"),
        })

        assert await parser.parse_event_query("who is out?", LA) is None

    async def test_missing_timezone_raises(self, make_parser):
        parser, _ = make_parser({})

        with pytest.raises(ConfigurationError):
            await parser.parse_event_query("who is out?", "")


async def test_weekend_query_on_a_saturday(structured_llm):
    saturday = lambda: datetime(2025, 6, 28, 12, 0, tzinfo=pytz.UTC)
    llm = structured_llm({
        "EventQueryExtraction": EventQueryExtraction(start_date="2025-06-28", end_date="2025-06-29"),
    })
    parser = EventParser(llm, clock=saturday)

    query = await parser.parse_event_query("what's happening this weekend", "UTC")

    assert '"this weekend" means 2025-06-28 to 2025-06-29' in llm.calls[0][1]
    assert query.time_min == "2025-06-28T00:00:00.000Z"
    assert query.time_max == "2025-06-29T23:59:59.999Z"
