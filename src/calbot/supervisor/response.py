"""
Response Assembly

Turns the terminal state of the agent loop into an AgentResponse. Only a final
AI message without pending tool calls counts as an answer; anything else
becomes a fixed apology, with the real cause kept in ``error`` for logs.
"""

import logging
from typing import Any, Dict, Optional

from langchain_core.messages import AIMessage

from calbot.errors import LoopNonTerminationError
from calbot.supervisor.dto import AgentResponse
from calbot.supervisor.prompts import APOLOGY_MESSAGE, ROUND_TRIP_LIMIT_MESSAGE

logger = logging.getLogger(__name__)

MAX_ROUND_TRIPS_REASON = "max_round_trips"


def message_text(message: AIMessage) -> str:
    """Plain text of an AI message; some providers return a list of content blocks."""
    content = message.content
    if isinstance(content, str):
        return content.strip()
    parts = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts).strip()


def assemble_response(final_state: Dict[str, Any], metadata: Optional[Dict[str, Any]] = None) -> AgentResponse:
    """
    Build the AgentResponse from the loop's terminal state.

    Args:
        final_state: State returned by the compiled graph
        metadata: Diagnostic fields to attach

    Returns:
        AgentResponse with the final answer, or an apology plus an error
    """
    metadata = dict(metadata or {})
    messages = final_state.get("messages") or []
    metadata["round_trips"] = final_state.get("round_trips", 0)

    if final_state.get("terminated_reason") == MAX_ROUND_TRIPS_REASON:
        cause = LoopNonTerminationError(metadata["round_trips"])
        logger.error(str(cause))
        return AgentResponse(ROUND_TRIP_LIMIT_MESSAGE, metadata, error=str(cause))

    final_message = messages[-1] if messages else None
    if not isinstance(final_message, AIMessage):
        logger.error("Agent finished without an AI message (last=%s)", type(final_message).__name__)
        return AgentResponse(APOLOGY_MESSAGE, metadata, error="Agent finished without a final answer")

    if final_message.tool_calls:
        logger.error("Agent finished with pending tool calls")
        return AgentResponse(APOLOGY_MESSAGE, metadata, error="Agent finished with pending tool calls")

    text = message_text(final_message)
    if not text:
        logger.error("Agent produced an empty answer")
        return AgentResponse(APOLOGY_MESSAGE, metadata, error="Agent produced an empty answer")

    return AgentResponse(text, metadata)


def failure_response(exc: BaseException, metadata: Optional[Dict[str, Any]] = None) -> AgentResponse:
    """Apology for the user, the real cause for the logs."""
    metadata = dict(metadata or {})
    cause = exc.__cause__ if isinstance(exc.__cause__, Exception) else exc
    metadata["error_details"] = f"{type(cause).__name__}: {cause}"
    return AgentResponse(APOLOGY_MESSAGE, metadata, error=f"{type(exc).__name__}: {exc}")
