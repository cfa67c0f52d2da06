"""
Application Constants
"""


class APP_SETTINGS:
    APP_NAME = "Calbot"
    VERSION = "0.1.0"
    DESCRIPTION = "Group-chat assistant that keeps a shared Google Calendar of who is away and when"
