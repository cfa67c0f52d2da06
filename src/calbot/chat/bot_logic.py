"""
Bot Logic

Entry point for chat messages: annotates each message with its sender and
routes it to the handler of its chat.
"""

import logging
from typing import Optional

from calbot.chat.dto import IncomingMessage, OutgoingMessage
from calbot.chat.handlers import ChatHandler, ChatHandlerRegistry

logger = logging.getLogger(__name__)

SENDER_INFO_TEMPLATE = "\n\nSent by: {sender_name}"


class BotLogic:
    """Message router between the chat transport and the chat handlers."""

    def __init__(self, registry: ChatHandlerRegistry):
        if registry is None:
            raise ValueError("Handler registry is required")
        self.registry = registry

    @staticmethod
    def add_sender_info(message: IncomingMessage) -> IncomingMessage:
        """Return a copy of the message whose body ends with the sender annotation."""
        body = message.body + SENDER_INFO_TEMPLATE.format(sender_name=message.sender_name)
        return message.model_copy(update={"body": body})

    def get_handler_for_message(self, message: IncomingMessage) -> Optional[ChatHandler]:
        if message.is_group:
            return self.registry.get_chat_handler(message.chat_id)
        return self.registry.get_user_handler(message.chat_id)

    async def handle_message(self, message: IncomingMessage) -> Optional[OutgoingMessage]:
        """
        Route one incoming message.

        Args:
            message: Message as received from the chat

        Returns:
            Reply for the chat, or None when the chat has no handler
        """
        handler = self.get_handler_for_message(message)
        if handler is None:
            logger.debug("No handler for chat %s (group=%s), ignoring", message.chat_id, message.is_group)
            return None

        try:
            return await handler.handle_incoming_message(self.add_sender_info(message))
        except Exception as e:
            logger.error(f"Error handling message for {message.chat_id}: {str(e)}")
            return None
