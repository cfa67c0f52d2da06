"""
Request Context Scope

The LLM-facing tool interface only carries text, but the calendar tools need
to know which calendar (and timezone) the current chat maps to. That identity
travels inside the RunnableConfig of a single graph invocation:

    config = build_request_config(identity)
    await graph.ainvoke(state, config=config)

LangGraph hands the same config to every node and every tool call of that
invocation and to nothing else, so concurrent requests sharing one compiled
graph never see each other's calendars and nothing has to be cleared afterwards.
"""

import uuid
from typing import Any, Dict, Optional

from langchain_core.runnables import RunnableConfig

from calbot.agents.calendaragent.dto import CalendarIdentity
from calbot.errors import ConfigurationError

CALENDAR_IDENTITY_KEY = "calendar_identity"
REQUEST_ID_KEY = "request_id"


def build_request_config(
    identity: CalendarIdentity,
    request_id: Optional[str] = None,
    recursion_limit: Optional[int] = None,
) -> RunnableConfig:
    """
    Build the per-invocation config carrying the calendar identity.

    Args:
        identity: Calendar the request targets
        request_id: Correlation id for logs; generated when omitted
        recursion_limit: LangGraph super-step limit for this invocation

    Raises:
        ConfigurationError: If no identity is given
    """
    if not isinstance(identity, CalendarIdentity):
        raise ConfigurationError("A CalendarIdentity is required for every request")

    config: Dict[str, Any] = {
        "configurable": {
            CALENDAR_IDENTITY_KEY: identity,
            REQUEST_ID_KEY: request_id or uuid.uuid4().hex[:12],
        }
    }
    if recursion_limit is not None:
        config["recursion_limit"] = recursion_limit
    return config


def get_calendar_identity(config: Optional[RunnableConfig]) -> CalendarIdentity:
    """
    Read the calendar identity of the current invocation.

    Raises:
        ConfigurationError: If the config does not carry one
    """
    identity = ((config or {}).get("configurable") or {}).get(CALENDAR_IDENTITY_KEY)
    if not isinstance(identity, CalendarIdentity):
        raise ConfigurationError("Calendar identity was not available for this operation")
    return identity


def get_request_id(config: Optional[RunnableConfig]) -> str:
    return ((config or {}).get("configurable") or {}).get(REQUEST_ID_KEY, "-")
