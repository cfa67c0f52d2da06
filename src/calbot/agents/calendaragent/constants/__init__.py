"""
Calendar Agent Constants
"""


class TOOL_RESULT:
    """Tags every tool result starts with. The system prompt tells the LLM to honor them."""
    SUCCESS_PREFIX = "SUCCESS:"
    ERROR_PREFIX = "ERROR:"


class TOOL_NAMES:
    """Names the LLM uses to request tools"""
    CREATE_EVENT = "create_calendar_event"
    FETCH_EVENTS = "fetch_calendar_events"
    DELETE_EVENT = "delete_calendar_event"


class GOOGLE_CALENDAR_SETTINGS:
    """Google Calendar settings"""
    SCOPES = ["https://www.googleapis.com/auth/calendar"]
    API_VERSION = "v3"
    CREDENTIALS_FILE = "google_calendar_credentials.json"
    MAX_RESULTS = 250


class PARSER_SETTINGS:
    """Event parser settings"""
    # Days listed in the reference calendar injected into prompts
    REFERENCE_DAYS = 21
