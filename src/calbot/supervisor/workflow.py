"""
LangGraph Agent Workflow for the Calendar Agent

This module defines the tool-calling control loop:

    START -> reasoning --(tool calls)--> tools -> reasoning ... --(no tool calls)--> END
                       \\--(round-trip cap hit)--> cap_exceeded -> END

- reasoning: system prompt + history go to the tool-bound chat model
- tools: every tool call of the last AI message runs concurrently; each result
  is appended as a ToolMessage correlated by tool_call_id
- cap_exceeded: the model kept asking for tools; stop and report it

The compiled graph, the model binding and the tools are built once and shared
by all requests. Per-request data (messages, calendar identity) lives only in
the graph state and in the RunnableConfig of each invocation.
"""

import asyncio
import logging
import time
import uuid
from typing import List, Optional

from langchain.chat_models import init_chat_model
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage, ToolMessage
from langchain_core.runnables import RunnableConfig
from langchain_core.tools import BaseTool
from langgraph.errors import GraphRecursionError
from langgraph.graph import END, START, StateGraph

from calbot.agents.calendaragent.calendar_client import CalendarClient, GoogleCalendarClient
from calbot.agents.calendaragent.constants import TOOL_RESULT
from calbot.agents.calendaragent.dto import CalendarIdentity
from calbot.agents.calendaragent.event_parser import EventParser
from calbot.agents.calendaragent.tools import build_calendar_tools
from calbot.errors import LoopNonTerminationError
from calbot.supervisor.context import build_request_config, get_request_id
from calbot.supervisor.dto import AgentRequest, AgentResponse, AgentSettings, AgentState
from calbot.supervisor.prompts import build_system_prompt
from calbot.supervisor.response import MAX_ROUND_TRIPS_REASON, assemble_response, failure_response

logger = logging.getLogger(__name__)


def recursion_limit_for(max_round_trips: int) -> int:
    """LangGraph super-step limit: two steps per round trip plus the final answer and the cap node."""
    return 2 * max_round_trips + 4


def create_agent_graph(
    model,
    tools: List[BaseTool],
    system_prompt: str,
    max_round_trips: int = 6,
    llm_timeout: Optional[float] = None,
):
    """
    Build and compile the reasoning / tools state machine.

    Args:
        model: LangChain chat model supporting bind_tools
        tools: Tools the model may call
        system_prompt: Persona, tool-usage and error-handling policy
        max_round_trips: Tool round trips allowed before giving up
        llm_timeout: Seconds allowed per model call

    Tool calls have no outer deadline; the parser and the calendar client bound
    their own LLM and backend calls.

    Returns:
        Compiled LangGraph runnable over AgentState
    """
    if max_round_trips < 1:
        raise ValueError("max_round_trips must be at least 1")

    tools_by_name = {t.name: t for t in tools}
    bound_model = model.bind_tools(tools)

    async def reasoning(state: AgentState, config: RunnableConfig) -> dict:
        messages = [SystemMessage(content=system_prompt)] + list(state["messages"])
        call = bound_model.ainvoke(messages, config=config)
        response = await (asyncio.wait_for(call, timeout=llm_timeout) if llm_timeout else call)

        if getattr(response, "tool_calls", None):
            logger.info(
                "[%s] Tool calls requested: %s",
                get_request_id(config),
                [tc["name"] for tc in response.tool_calls],
            )
        else:
            logger.info("[%s] Generating response to user", get_request_id(config))
        return {"messages": [response]}

    async def run_tool(tool_call: dict, config: RunnableConfig) -> ToolMessage:
        name = tool_call.get("name", "")
        selected = tools_by_name.get(name)
        if selected is None:
            logger.warning("[%s] Model requested unknown tool %r", get_request_id(config), name)
            content = f"{TOOL_RESULT.ERROR_PREFIX} Unknown tool '{name}'. Available tools: {', '.join(tools_by_name)}"
        else:
            try:
                content = await selected.ainvoke(tool_call.get("args") or {}, config=config)
            except Exception as e:
                logger.error(f"[{get_request_id(config)}] Tool {name} failed: {str(e)}")
                content = f"{TOOL_RESULT.ERROR_PREFIX} The {name} operation failed: {str(e)}"

        return ToolMessage(content=str(content), tool_call_id=tool_call.get("id") or uuid.uuid4().hex, name=name)

    async def execute_tools(state: AgentState, config: RunnableConfig) -> dict:
        last_message = state["messages"][-1]
        results = await asyncio.gather(*(run_tool(tc, config) for tc in last_message.tool_calls))
        return {"messages": list(results), "round_trips": 1}

    def cap_exceeded(state: AgentState) -> dict:
        return {"terminated_reason": MAX_ROUND_TRIPS_REASON}

    def route_after_reasoning(state: AgentState) -> str:
        last_message = state["messages"][-1]
        if not isinstance(last_message, AIMessage) or not last_message.tool_calls:
            return END
        if state.get("round_trips", 0) >= max_round_trips:
            logger.warning("Round-trip cap of %d reached, stopping", max_round_trips)
            return "cap_exceeded"
        return "tools"

    builder = StateGraph(AgentState)

    # Nodes
    builder.add_node("reasoning", reasoning)
    builder.add_node("tools", execute_tools)
    builder.add_node("cap_exceeded", cap_exceeded)

    # Edges
    builder.add_edge(START, "reasoning")
    builder.add_conditional_edges("reasoning", route_after_reasoning, ["tools", "cap_exceeded", END])
    builder.add_edge("tools", "reasoning")
    builder.add_edge("cap_exceeded", END)

    return builder.compile()


class CalendarAgentSystem:
    """
    Shared calendar agent: one compiled graph serving every chat.

    handle_user_query never raises; every outcome is an AgentResponse.
    """

    def __init__(
        self,
        model,
        calendar: CalendarClient,
        parser: Optional[EventParser] = None,
        settings: Optional[AgentSettings] = None,
        system_prompt: Optional[str] = None,
    ):
        """
        Args:
            model: LangChain chat model used for reasoning (and for parsing unless a parser is given)
            calendar: Calendar backend
            parser: Event parser; defaults to one built on ``model``
            settings: Loop settings (round-trip cap, timeouts)
            system_prompt: Overrides the default persona prompt
        """
        if model is None:
            raise ValueError("A chat model is required")
        if calendar is None:
            raise ValueError("A calendar client is required")

        self.settings = settings or AgentSettings()
        self.model_name = self.settings.MODEL
        self.max_round_trips = self.settings.MAX_ROUND_TRIPS
        self.parser = parser or EventParser(model, timeout=self.settings.LLM_TIMEOUT)
        self.tools = build_calendar_tools(self.parser, calendar)
        self.system_prompt = system_prompt or build_system_prompt()
        self.graph = create_agent_graph(
            model,
            self.tools,
            self.system_prompt,
            max_round_trips=self.max_round_trips,
            llm_timeout=self.settings.LLM_TIMEOUT,
        )
        self.query_count = 0

    async def handle_user_query(self, user_input: str, identity: CalendarIdentity) -> AgentResponse:
        """
        Run one message through the agent for the given calendar.

        Args:
            user_input: Chat message text (with the "Sent by:" annotation)
            identity: Calendar this chat maps to

        Returns:
            AgentResponse; ``error`` is set when the request failed
        """
        request_id = uuid.uuid4().hex[:12]
        start_time = time.time()
        metadata = {"request_id": request_id, "model": self.model_name}
        self.query_count += 1

        try:
            request = AgentRequest(user_input=user_input, identity=identity)
            response = await self.process_request(request, request_id=request_id, metadata=metadata)
        except GraphRecursionError as e:
            logger.error("[%s] Graph recursion limit hit: %s", request_id, str(e))
            response = failure_response(LoopNonTerminationError(self.max_round_trips), metadata)
        except Exception as e:
            logger.error(f"[{request_id}] Query processing failed: {str(e)}")
            response = failure_response(e, metadata)

        response.metadata["processing_time"] = time.time() - start_time
        logger.info("[%s] Request finished in %.3f seconds", request_id, response.metadata["processing_time"])
        return response

    async def process_request(
        self, request: AgentRequest, request_id: Optional[str] = None, metadata: Optional[dict] = None
    ) -> AgentResponse:
        """Run an AgentRequest through the graph. Errors propagate; use handle_user_query for the safe entry point."""
        config = build_request_config(
            request.identity,
            request_id=request_id,
            recursion_limit=recursion_limit_for(self.max_round_trips),
        )
        logger.info("[%s] Processing new request: %r", get_request_id(config), request.user_input[:200])

        result = await self.graph.ainvoke(
            {
                "messages": [HumanMessage(content=request.user_input)],
                "round_trips": 0,
                "terminated_reason": None,
            },
            config=config,
        )
        return assemble_response(result, metadata)


def build_agent_system(settings, calendar: Optional[CalendarClient] = None) -> CalendarAgentSystem:
    """
    Wire the agent from application settings.

    Args:
        settings: calbot.config.Settings
        calendar: Calendar backend; defaults to Google Calendar with service-account credentials
    """
    model = init_chat_model(
        model=settings.LLM_MODEL,
        model_provider=settings.LLM_PROVIDER or None,
        api_key=settings.LLM_API_KEY,
        temperature=settings.LLM_TEMPERATURE,
        timeout=settings.LLM_TIMEOUT,
    )
    if calendar is None:
        calendar = GoogleCalendarClient(
            credentials_file=settings.GOOGLE_CREDENTIALS_FILE,
            timeout=settings.CALENDAR_TIMEOUT,
        )

    agent_settings = AgentSettings(
        MODEL=settings.LLM_MODEL,
        MAX_ROUND_TRIPS=settings.AGENT_MAX_ROUND_TRIPS,
        LLM_TIMEOUT=settings.LLM_TIMEOUT,
    )
    return CalendarAgentSystem(
        model,
        calendar,
        settings=agent_settings,
        system_prompt=build_system_prompt(settings.BOT_NAME),
    )
