"""
Event Parser Prompts

This module contains the prompts used by the two-stage event parser
(classification, then timed / all-day extraction) and by the query parser.
Templates are filled with str.format; literal braces are doubled.
"""

DATE_CONTEXT_TEMPLATE = """DATE CONTEXT (use this, never your own notion of "today"):
- Today is {current_day_name}, {current_date} (timezone: {timezone})
- Tomorrow is {tomorrow}
- "this weekend" means {weekend_start} to {weekend_end}
- "next weekend" means {next_weekend_start} to {next_weekend_end}
- Weekends run Friday through Sunday
- "next week" means Monday {next_week_start} to Sunday {next_week_end}

Reference calendar:
{reference_calendar}
"""

DEFAULT_TITLE_DESCRIPTION_INSTRUCTIONS = """
DEFAULT TITLE AND DESCRIPTION HANDLING:
- The input text may end with "Sent by: <Name>" naming the person who wrote the message
- Most events are members of the group reporting their own travel, so by default the event belongs to the sender
- Default title: "<First name>'s <Activity>" (e.g. "John's Trip", "Sarah's Meeting", "Mike's Vacation")
- Default description: a fuller restatement, e.g. "Sarah's trip to Oregon"
- Deviate from the default only if:
  1. The text gives an explicit title or description
  2. The text names a different person the event is for (the sender is adding it on their behalf) - use that person's name
  3. The text carries specific details that clearly call for a different title
- Never output placeholder text such as "<Name>" or "[Sender Name]"; use the real name from the "Sent by:" line
- Examples:
  - "i have a trip to Oregon this weekend Sent by: Joaquin Uriarte" -> "Joaquin's Trip to Oregon"
  - "i have a trip next weekend Sent by: Miranda Mencocho" -> "Miranda's Trip"
  - "Juan is out next week Sent by: Ana Ruiz" -> "Juan's Trip"
"""

CLASSIFICATION_PROMPT = """You classify calendar requests before their details are extracted.

{date_context}
Decide whether the text describes:
- "timed": an event at a specific clock time (e.g. "meeting tomorrow at 2pm for 1 hour", "call Friday 10-11am")
- "all_day": an event that spans whole days with no clock time (trips, vacations, being away, "out of town next week", birthdays)
- "unclear": you cannot tell

Give a confidence between 0 and 1 and a one-sentence reasoning.

Text: "{text}"
"""

TIMED_EVENT_PROMPT = """You extract a TIMED calendar event from a chat message.

{date_context}
RULES:
- start_date is YYYY-MM-DD, start_time is HH:MM in 24-hour format
- Resolve relative dates ("tomorrow", "Friday") against the date context above
- The end of the event must come from the text, in exactly one of two ways:
  * The text states a duration ("for 1 hour", "90 minutes"): set has_duration=true and duration_hours, leave end_time empty
  * The text states a time range ("2-4pm", "from 10 to 11:30"): set end_time, has_duration=false, leave duration_hours empty
- NEVER invent a duration or an end time. If the text gives neither, leave both empty and explain in missing_reason
- If the date or start time is missing, leave it empty and explain in missing_reason
{title_instructions}
Text: "{text}"
"""

ALL_DAY_EVENT_PROMPT = """You extract an ALL-DAY calendar event from a chat message.

{date_context}
RULES:
- start_date and end_date are YYYY-MM-DD; end_date is the LAST day of the event (inclusive)
- Single-day events: end_date equals start_date
- Multi-day events ("next weekend", "next week", "from the 3rd to the 7th"): give the explicit last day, never before start_date
- Resolve relative expressions ONLY with the date context above
- If no date can be determined, leave the dates empty and explain in missing_reason
{title_instructions}
Text: "{text}"
"""

EVENT_QUERY_PROMPT = """You turn a question about the calendar into the range of local days it is about.

{date_context}
RULES:
- start_date and end_date are YYYY-MM-DD local days; end_date is inclusive
- "today" -> today to today; "tomorrow" -> tomorrow to tomorrow
- "this weekend" / "next weekend" -> use the ranges in the date context
- "this week" -> today to the coming Sunday; "next week" -> next Monday to next Sunday
- Questions about whether someone is around, when they come back or leave, without a time frame -> today to 30 days from today
- "upcoming" / "soon" with no time frame -> today to 14 days from today
- Never return an end_date before start_date

Question: "{text}"
"""
