"""
Exception types shared across the calendar agent.

Extraction failures are not exceptions (the parser returns None) and calendar
backend failures travel as ToolInvocationResult(success=False); only the
conditions below are raised.
"""


class CalbotError(Exception):
    """Base class for all calbot errors."""


class ConfigurationError(CalbotError):
    """Missing or invalid configuration: timezone, calendar identity, credentials."""


class LoopNonTerminationError(CalbotError):
    """The agent kept requesting tools past the configured round-trip cap."""

    def __init__(self, round_trips: int):
        self.round_trips = round_trips
        super().__init__(f"Agent did not produce a final answer after {round_trips} tool round trips")
