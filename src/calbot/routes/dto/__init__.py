"""
Routes Data Transfer Objects (DTOs)

Pydantic models used by the API routes:
- Request and response models for the message webhook
- Health check response model
"""

from typing import Dict, Optional

from pydantic import BaseModel


class MessageRequest(BaseModel):
    """A chat message forwarded by the chat transport."""
    chat_id: str
    sender_name: str
    body: str
    is_group: bool = True
    chat_name: Optional[str] = None


class MessageResponse(BaseModel):
    """Reply for the chat; ``reply`` is null when the bot stays silent."""
    reply: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str
    service: Optional[str] = None
    components: Optional[Dict[str, str]] = None
