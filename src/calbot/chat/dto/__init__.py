"""
Chat Data Transfer Objects (DTOs)

Transport-neutral messages exchanged with the chat platform:
- IncomingMessage: a message received from a chat
- OutgoingMessage: the reply to send back to that chat
"""

from typing import Optional

from pydantic import BaseModel


class IncomingMessage(BaseModel):
    """Message received from a chat."""
    chat_id: str
    sender_name: str
    body: str
    is_group: bool = True
    chat_name: Optional[str] = None


class OutgoingMessage(BaseModel):
    """Reply to deliver to a chat."""
    chat_id: str
    text: str
