"""
Pytest configuration and fixtures

The LLM is replaced by scripted fakes:
- ScriptedChatModel: a real BaseChatModel whose reply is a pure function of the
  message history, so concurrent runs stay deterministic
- FakeStructuredLLM: answers ``with_structured_output`` calls from a per-schema script
The calendar backend is replaced by an in-memory FakeCalendarClient.
"""

import asyncio
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

import pytest
import pytz
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage
from langchain_core.outputs import ChatGeneration, ChatResult

from calbot.agents.calendaragent.calendar_client import CalendarClient
from calbot.agents.calendaragent.dto import CalendarEvent, CalendarIdentity, ToolInvocationResult


class ScriptedChatModel(BaseChatModel):
    """Chat model whose next message is ``responder(history)``."""

    responder: Callable[[List[BaseMessage]], AIMessage]

    @property
    def _llm_type(self) -> str:
        return "scripted"

    def bind_tools(self, tools, **kwargs):
        return self

    def _generate(self, messages, stop=None, run_manager=None, **kwargs) -> ChatResult:
        message = self.responder(list(messages))
        return ChatResult(generations=[ChatGeneration(message=message)])


class _ScriptedRunnable:
    def __init__(self, owner: "FakeStructuredLLM", schema):
        self.owner = owner
        self.schema = schema

    async def ainvoke(self, prompt):
        self.owner.calls.append((self.schema.__name__, prompt))
        if self.owner.delay:
            await asyncio.sleep(self.owner.delay)
        output = self.owner.outputs.get(self.schema.__name__)
        if isinstance(output, Exception):
            raise output
        if callable(output):
            return output(prompt)
        return output


class FakeStructuredLLM:
    """
    Stand-in for a chat model in structured-output mode.

    ``outputs`` maps a schema class name to an instance, a dict, an exception
    to raise, or a callable taking the prompt.
    """

    def __init__(self, outputs: Optional[Dict[str, Any]] = None, delay: float = 0):
        self.outputs = dict(outputs or {})
        self.delay = delay
        self.calls = []

    def with_structured_output(self, schema):
        return _ScriptedRunnable(self, schema)

    def called_schemas(self) -> List[str]:
        return [name for name, _ in self.calls]


class StubParser:
    """EventParser stand-in returning fixed results (or the result of a callable)."""

    def __init__(self, event=None, query=None, delay: float = 0):
        self.event = event
        self.query = query
        self.delay = delay
        self.calls = []

    async def parse_event_details(self, text, timezone):
        self.calls.append(("details", text, timezone))
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.event(text) if callable(self.event) else self.event

    async def parse_event_query(self, text, timezone):
        self.calls.append(("query", text, timezone))
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.query


class FakeCalendarClient(CalendarClient):
    """In-memory calendar recording which calendar every call targeted."""

    def __init__(self, events: Optional[List[CalendarEvent]] = None, fail_with: Optional[str] = None):
        self.events = list(events or [])
        self.fail_with = fail_with
        self.created = []
        self.fetched = []
        self.removed = []

    async def create_event(self, identity, event):
        if self.fail_with:
            return ToolInvocationResult.fail(self.fail_with)
        self.created.append((identity.calendar_id, event))
        stored = CalendarEvent(
            id=f"evt-{len(self.created)}",
            title=event.title,
            start_date=event.start_date,
            end_date=event.end_date,
            start_time=getattr(event, "start_time", None),
            end_time=getattr(event, "end_time", None),
            is_all_day=event.is_all_day,
            description=event.description,
        )
        return ToolInvocationResult.ok(stored)

    async def fetch_events(self, identity, query):
        if self.fail_with:
            return ToolInvocationResult.fail(self.fail_with)
        self.fetched.append((identity.calendar_id, query))
        return ToolInvocationResult.ok(list(self.events))

    async def modify_event(self, identity, event_id, event):
        return ToolInvocationResult.fail("not supported")

    async def remove_event(self, identity, event_id):
        if self.fail_with:
            return ToolInvocationResult.fail(self.fail_with)
        self.removed.append((identity.calendar_id, event_id))
        return ToolInvocationResult.ok()


@pytest.fixture
def identity():
    """Calendar identity in Los Angeles time"""
    return CalendarIdentity(calendar_id="group-cal@group.calendar.google.com", timezone="America/Los_Angeles")


@pytest.fixture
def fixed_clock():
    """Tuesday 2025-06-24, 10:00 in Los Angeles"""
    return lambda: datetime(2025, 6, 24, 17, 0, tzinfo=pytz.UTC)


@pytest.fixture
def scripted_model():
    """Factory: scripted_model(responder) -> ScriptedChatModel"""
    return lambda responder: ScriptedChatModel(responder=responder)


@pytest.fixture
def structured_llm():
    """Factory: structured_llm(outputs, delay=0) -> FakeStructuredLLM"""
    return lambda outputs=None, delay=0: FakeStructuredLLM(outputs, delay)


@pytest.fixture
def stub_parser():
    """Factory: stub_parser(event=None, query=None, delay=0) -> StubParser"""
    return lambda event=None, query=None, delay=0: StubParser(event, query, delay)


@pytest.fixture
def fake_calendar():
    """Factory: fake_calendar(events=None, fail_with=None) -> FakeCalendarClient"""
    return lambda events=None, fail_with=None: FakeCalendarClient(events, fail_with)
