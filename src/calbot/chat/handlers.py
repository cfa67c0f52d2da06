"""
Chat Handlers

A ChatHandler serves one group chat and owns the CalendarIdentity of that chat.
ChatHandlerRegistry is the dispatch table from chat id to handler, built once
from configuration; chats that are not configured have no handler.
"""

import logging
from typing import Dict, Mapping, Optional

from calbot.agents.calendaragent.dto import CalendarIdentity
from calbot.chat.dto import IncomingMessage, OutgoingMessage
from calbot.supervisor.prompts import APOLOGY_MESSAGE
from calbot.supervisor.workflow import CalendarAgentSystem

logger = logging.getLogger(__name__)


class ChatHandler:
    """Routes the messages of one group chat to the shared agent."""

    def __init__(self, agent: CalendarAgentSystem, identity: CalendarIdentity):
        if agent is None:
            raise ValueError("An agent system is required")
        if not isinstance(identity, CalendarIdentity):
            raise ValueError("Invalid identity: must be a CalendarIdentity")
        self.agent = agent
        self.identity = identity

    async def handle_incoming_message(self, message: IncomingMessage) -> Optional[OutgoingMessage]:
        """
        Run a message through the agent and build the reply.

        Args:
            message: Incoming message, already annotated with its sender

        Returns:
            OutgoingMessage for the chat, or None when there is nothing to say
        """
        logger.info("Chat %s: handling message from %s", message.chat_id, message.sender_name)

        try:
            agent_response = await self.agent.handle_user_query(message.body, self.identity)
        except Exception as e:
            logger.error(f"Error in handle_incoming_message for chat {message.chat_id}: {str(e)}")
            return OutgoingMessage(chat_id=message.chat_id, text=APOLOGY_MESSAGE)

        if agent_response.error:
            logger.error("Agent processing error for chat %s: %s", message.chat_id, agent_response.error)
            return OutgoingMessage(chat_id=message.chat_id, text=agent_response.response_text or APOLOGY_MESSAGE)

        if not agent_response.response_text:
            logger.warning("Agent returned an empty response for chat %s", message.chat_id)
            return None

        return OutgoingMessage(chat_id=message.chat_id, text=agent_response.response_text)


class ChatHandlerRegistry:
    """Dispatch table: chat id -> ChatHandler."""

    def __init__(self, handlers: Optional[Dict[str, ChatHandler]] = None):
        self._handlers: Dict[str, ChatHandler] = dict(handlers or {})

    @classmethod
    def from_chat_calendars(cls, agent: CalendarAgentSystem, chat_calendars: Mapping) -> "ChatHandlerRegistry":
        """
        Build the registry from the CHAT_CALENDARS setting.

        Args:
            agent: Shared agent system
            chat_calendars: chat id -> object or dict with calendar_id and timezone

        Raises:
            ConfigurationError: If an entry has an empty calendar id or an unknown timezone
        """
        handlers = {}
        for chat_id, entry in chat_calendars.items():
            if isinstance(entry, Mapping):
                calendar_id, timezone = entry.get("calendar_id"), entry.get("timezone")
            else:
                calendar_id, timezone = entry.calendar_id, entry.timezone
            identity = CalendarIdentity(calendar_id=calendar_id, timezone=timezone)
            handlers[chat_id] = ChatHandler(agent, identity)
            logger.info("Registered chat %s -> calendar %s (%s)", chat_id, calendar_id, timezone)
        return cls(handlers)

    def register(self, chat_id: str, handler: ChatHandler):
        self._handlers[chat_id] = handler

    def get_chat_handler(self, chat_id: str) -> Optional[ChatHandler]:
        return self._handlers.get(chat_id)

    def get_user_handler(self, user_id: str) -> Optional[ChatHandler]:
        # Direct chats are not served.
        return None

    def __contains__(self, chat_id: str) -> bool:
        return chat_id in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)
