"""
Supervisor Data Transfer Objects (DTOs)

This module contains the data models used by the agent control loop:
- Agent settings
- Request and response objects of the caller-facing entry point
- The graph state threaded through the reasoning and tool nodes
"""

import operator
from dataclasses import dataclass, field
from typing import Annotated, Any, Dict, List, Optional

from langchain_core.messages import AnyMessage
from langgraph.graph.message import add_messages
from typing_extensions import TypedDict

from calbot.agents.calendaragent.dto import CalendarIdentity


@dataclass
class AgentSettings:
    """Configuration of the agent control loop"""
    MODEL: str = "gpt-4o-mini"
    MAX_ROUND_TRIPS: int = 6
    LLM_TIMEOUT: float = 60.0


@dataclass
class AgentRequest:
    """One inbound message together with the calendar it targets."""
    user_input: str
    identity: CalendarIdentity

    def __post_init__(self):
        if not isinstance(self.user_input, str) or not self.user_input.strip():
            raise ValueError("user_input is required and must be a non-empty string")


@dataclass
class AgentResponse:
    """
    Result of handling one request.

    ``response_text`` is the only thing shown to the chat. ``error`` is for logs:
    when it is set the request failed, and ``response_text`` holds an apology.
    """
    response_text: Optional[str]
    metadata: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None


class AgentState(TypedDict):
    """State of one run through the reasoning / tools loop."""
    messages: Annotated[List[AnyMessage], add_messages]
    round_trips: Annotated[int, operator.add]
    terminated_reason: Optional[str]
