import pytest

from calbot.agents.calendaragent.dto import CalendarIdentity
from calbot.chat.bot_logic import BotLogic
from calbot.chat.dto import IncomingMessage
from calbot.chat.handlers import ChatHandler, ChatHandlerRegistry
from calbot.errors import ConfigurationError
from calbot.supervisor.dto import AgentResponse
from calbot.supervisor.prompts import APOLOGY_MESSAGE


class RecordingAgent:
    def __init__(self, response=None):
        self.response = response or AgentResponse("Anotado!")
        self.calls = []

    async def handle_user_query(self, user_input, identity):
        self.calls.append((user_input, identity))
        return self.response


CHAT_CALENDARS = {
    "group-1@g.us": {"calendar_id": "cal-1@group.calendar.google.com", "timezone": "America/Los_Angeles"},
    "group-2@g.us": {"calendar_id": "cal-2@group.calendar.google.com", "timezone": "Europe/Madrid"},
}


@pytest.fixture
def agent():
    return RecordingAgent()


@pytest.fixture
def bot(agent):
    return BotLogic(ChatHandlerRegistry.from_chat_calendars(agent, CHAT_CALENDARS))


def message(chat_id="group-1@g.us", body="Me voy a PR el finde", is_group=True):
    return IncomingMessage(chat_id=chat_id, sender_name="Ana", body=body, is_group=is_group)


def test_add_sender_info():
    original = message()

    annotated = BotLogic.add_sender_info(original)

    assert annotated.body == "Me voy a PR el finde\n\nSent by: Ana"
    assert original.body == "Me voy a PR el finde"


async def test_group_message_reaches_the_agent_with_its_calendar(bot, agent):
    reply = await bot.handle_message(message(chat_id="group-2@g.us"))

    assert reply.chat_id == "group-2@g.us"
    assert reply.text == "Anotado!"
    user_input, identity = agent.calls[0]
    assert user_input.endswith("\n\nSent by: Ana")
    assert identity == CalendarIdentity(calendar_id="cal-2@group.calendar.google.com", timezone="Europe/Madrid")


async def test_unknown_chat_is_ignored(bot, agent):
    assert await bot.handle_message(message(chat_id="other@g.us")) is None
    assert agent.calls == []


async def test_direct_chat_is_ignored(bot, agent):
    assert await bot.handle_message(message(chat_id="group-1@g.us", is_group=False)) is None
    assert agent.calls == []


async def test_agent_error_sends_apology(identity):
    agent = RecordingAgent(AgentResponse(APOLOGY_MESSAGE, error="RuntimeError: down"))
    handler = ChatHandler(agent, identity)

    reply = await handler.handle_incoming_message(message())

    assert reply.text == APOLOGY_MESSAGE


async def test_empty_agent_answer_sends_nothing(identity):
    handler = ChatHandler(RecordingAgent(AgentResponse("")), identity)

    assert await handler.handle_incoming_message(message()) is None


def test_registry_rejects_bad_timezone(agent):
    with pytest.raises(ConfigurationError):
        ChatHandlerRegistry.from_chat_calendars(agent, {"g@g.us": {"calendar_id": "cal", "timezone": "Nowhere/City"}})


def test_registry_lookup(agent):
    registry = ChatHandlerRegistry.from_chat_calendars(agent, CHAT_CALENDARS)

    assert len(registry) == 2
    assert "group-1@g.us" in registry
    assert registry.get_chat_handler("missing") is None
    assert registry.get_user_handler("group-1@g.us") is None


def test_handler_requires_identity(agent):
    with pytest.raises(ValueError):
        ChatHandler(agent, None)


async def test_agent_exception_sends_apology(identity):
    class CrashingAgent:
        async def handle_user_query(self, user_input, identity):
            raise RuntimeError("boom")

    reply = await ChatHandler(CrashingAgent(), identity).handle_incoming_message(message())

    assert reply.text == APOLOGY_MESSAGE
