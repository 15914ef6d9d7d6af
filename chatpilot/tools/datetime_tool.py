"""
Date/Time Tool
==============

Answers "what day is it" style questions from the local clock, and counts
days between today and a date named in the query.

Supported date formats in queries:
    12/25/2026  or  12-25-2026     (MM/DD/YYYY)
    December 25, 2026              (Month DD, YYYY)
    25 December 2026               (DD Month YYYY)
    2026-12-25                     (YYYY-MM-DD)
"""

import math
import re
from datetime import date, datetime, timedelta
from typing import Callable

from chatpilot.tools import Tool, ToolCapability
from chatpilot.utils.logger import Logger

logger = Logger("DateTime")

TIME_KEYWORDS = [
    "time", "date", "today", "tomorrow", "yesterday",
    "when", "schedule", "calendar", "now", "current time",
    "what day", "what month", "what year", "timezone",
    "how long", "duration", "days until", "weeks until",
    "days ago", "weeks ago", "months ago", "years ago",
    "birthday", "anniversary", "deadline",
]

_MONTHS = (
    "January|February|March|April|May|June|July|August|"
    "September|October|November|December"
)

# (pattern, layout of the captured groups), tried in order
DATE_PATTERNS: list[tuple[re.Pattern, str]] = [
    (re.compile(r"\b(\d{1,2})[/\-](\d{1,2})[/\-](\d{4})\b"), "numeric_mdy"),
    (re.compile(rf"\b({_MONTHS})\s+(\d{{1,2}}),?\s+(\d{{4}})\b", re.IGNORECASE), "month_day_year"),
    (re.compile(rf"\b(\d{{1,2}})\s+({_MONTHS})\s+(\d{{4}})\b", re.IGNORECASE), "day_month_year"),
    (re.compile(r"\b(\d{4})-(\d{1,2})-(\d{1,2})\b"), "iso"),
]

UNTIL_PROMPT = (
    'To calculate days until an event, please specify the target date '
    '(e.g., "days until December 25, 2026")'
)
AGO_PROMPT = (
    'To calculate time since an event, please specify the past date '
    '(e.g., "days ago from January 1, 2026")'
)


def _format_long_date(value: date) -> str:
    # "Monday, October 19, 2026"
    return f"{value:%A}, {value:%B} {value.day}, {value.year}"


def _format_time(value: datetime) -> str:
    return value.strftime("%I:%M:%S %p")


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'' if count == 1 else 's'}"


def extract_date(query: str) -> tuple[str, date] | None:
    """
    Find the first date in a query.

    Returns:
        (matched text, parsed date), or None if no valid date was found
    """
    for pattern, kind in DATE_PATTERNS:
        match = pattern.search(query)
        if not match:
            continue

        try:
            if kind == "numeric_mdy":
                month, day, year = (int(g) for g in match.groups())
                parsed = date(year, month, day)
            elif kind == "month_day_year":
                month_name, day, year = match.groups()
                parsed = datetime.strptime(f"{month_name.title()} {day} {year}", "%B %d %Y").date()
            elif kind == "day_month_year":
                day, month_name, year = match.groups()
                parsed = datetime.strptime(f"{month_name.title()} {day} {year}", "%B %d %Y").date()
            else:
                year, month, day = (int(g) for g in match.groups())
                parsed = date(year, month, day)
        except ValueError:
            # Looked like a date but is not one (e.g. 02/30/2026)
            continue

        return match.group(0), parsed

    return None


class DateTimeTool(Tool):
    """
    Current date/time facts and day counting.

    Example:
        tool = DateTimeTool()
        await tool.execute("How many days until 12/25/2026?")
        # 'Days until 12/25/2026: 67 days'

    Args:
        now: Clock returning the current local, timezone-aware datetime
    """

    name = "DateTime"
    description = "Provide current date, time, and time-related calculations"
    capability = ToolCapability.DATE_TIME

    def __init__(self, now: Callable[[], datetime] | None = None):
        self._now = now or (lambda: datetime.now().astimezone())

    def should_activate(self, query: str) -> bool:
        lower_query = query.lower()
        return any(keyword in lower_query for keyword in TIME_KEYWORDS)

    async def execute(self, query: str) -> str:
        logger.debug(f"Executing date/time query for: {query}")

        lower_query = query.lower()
        now = self._now()

        if "current time" in lower_query or "what time" in lower_query:
            return self.current_time(now)
        if "days until" in lower_query or "weeks until" in lower_query:
            return self.time_until(query, now)
        if any(phrase in lower_query for phrase in ("days ago", "weeks ago", "months ago")):
            return self.time_ago(query, now)
        if "today" in lower_query or "current date" in lower_query or "what date" in lower_query:
            return self.current_date(now)
        if "tomorrow" in lower_query:
            return f"Tomorrow: {_format_long_date(now.date() + timedelta(days=1))}"
        if "yesterday" in lower_query:
            return f"Yesterday: {_format_long_date(now.date() - timedelta(days=1))}"
        if "day of week" in lower_query or "what day" in lower_query:
            return f"Today is {now:%A}"
        if "timezone" in lower_query or "utc" in lower_query:
            return self.timezone_info(now)
        return self.full_date_time(now)

    def current_time(self, now: datetime) -> str:
        return f"Current Time: {_format_time(now)}\nTimezone: {self._timezone_name(now)}"

    def current_date(self, now: datetime) -> str:
        return f"Today's Date: {_format_long_date(now.date())}"

    def full_date_time(self, now: datetime) -> str:
        return (
            f"Current Date & Time: {_format_long_date(now.date())} at {_format_time(now)}\n"
            f"Timezone: {self._timezone_name(now)}"
        )

    def timezone_info(self, now: datetime) -> str:
        offset = now.utcoffset() or timedelta(0)
        hours = offset.total_seconds() / 3600
        offset_string = f"{hours:+g}"
        return f"Timezone: {self._timezone_name(now)}\nUTC Offset: {offset_string} hours"

    def time_until(self, query: str, now: datetime) -> str:
        found = extract_date(query)
        if not found:
            return UNTIL_PROMPT

        text, target = found
        days = (target - now.date()).days

        if days > 0:
            result = f"Days until {text}: {_plural(days, 'day')}"
            if "weeks" in query.lower():
                weeks, rest = divmod(days, 7)
                result += f" ({_plural(weeks, 'week')}, {_plural(rest, 'day')})"
            return result
        if days == 0:
            return f"{text} is today!"
        return f"{text} was {_plural(abs(days), 'day')} ago"

    def time_ago(self, query: str, now: datetime) -> str:
        found = extract_date(query)
        if not found:
            return AGO_PROMPT

        text, past = found
        days = (now.date() - past).days
        if days <= 0:
            return f"{text} is in the future" if days < 0 else f"{text} is today!"

        years, remainder = divmod(days, 365)
        months, remaining_days = divmod(remainder, 30)

        parts = []
        if years:
            parts.append(_plural(years, "year"))
        if months:
            parts.append(_plural(months, "month"))
        parts.append(_plural(remaining_days, "day"))

        result = f"Time since {text}: {', '.join(parts)}"
        if "weeks" in query.lower():
            result += f" (about {_plural(math.floor(days / 7), 'week')})"
        return result

    @staticmethod
    def _timezone_name(now: datetime) -> str:
        return now.tzname() or "local time"
