"""
Tests for the date/time tool, using a frozen clock.
"""
from datetime import date, datetime, timezone

import pytest

from chatpilot.tools.datetime_tool import AGO_PROMPT, UNTIL_PROMPT, DateTimeTool, extract_date

# Monday
FROZEN_NOW = datetime(2026, 10, 19, 10, 30, 0, tzinfo=timezone.utc)


@pytest.fixture
def tool():
    return DateTimeTool(now=lambda: FROZEN_NOW)


class TestExecute:

    @pytest.mark.asyncio
    async def test_current_date(self, tool):
        assert await tool.execute("What is today's date?") == "Today's Date: Monday, October 19, 2026"

    @pytest.mark.asyncio
    async def test_current_time(self, tool):
        result = await tool.execute("What time is it?")

        assert result == "Current Time: 10:30:00 AM\nTimezone: UTC"

    @pytest.mark.asyncio
    async def test_tomorrow_and_yesterday(self, tool):
        assert await tool.execute("What's the date tomorrow?") == "Tomorrow: Tuesday, October 20, 2026"
        assert await tool.execute("and yesterday?") == "Yesterday: Sunday, October 18, 2026"

    @pytest.mark.asyncio
    async def test_day_of_week(self, tool):
        assert await tool.execute("What day of week is it?") == "Today is Monday"

    @pytest.mark.asyncio
    async def test_timezone(self, tool):
        result = await tool.execute("Which timezone is this?")

        assert result == "Timezone: UTC\nUTC Offset: +0 hours"

    @pytest.mark.asyncio
    async def test_full_date_time_fallback(self, tool):
        result = await tool.execute("Check my schedule")

        assert result.startswith("Current Date & Time: Monday, October 19, 2026 at 10:30:00 AM")


class TestDayCounting:

    @pytest.mark.asyncio
    async def test_days_until(self, tool):
        assert await tool.execute("How many days until 12/25/2026?") == "Days until 12/25/2026: 67 days"

    @pytest.mark.asyncio
    async def test_weeks_until_adds_breakdown(self, tool):
        result = await tool.execute("How many weeks until December 25, 2026?")

        assert result == "Days until December 25, 2026: 67 days (9 weeks, 4 days)"

    @pytest.mark.asyncio
    async def test_days_until_today(self, tool):
        assert await tool.execute("days until 2026-10-19") == "2026-10-19 is today!"

    @pytest.mark.asyncio
    async def test_days_ago(self, tool):
        result = await tool.execute("How many days ago was 2026-01-01?")

        assert result == "Time since 2026-01-01: 9 months, 21 days"

    @pytest.mark.asyncio
    async def test_days_ago_future_date(self, tool):
        assert await tool.execute("days ago from 1 December 2026") == "1 December 2026 is in the future"

    @pytest.mark.asyncio
    async def test_missing_date_prompts_for_one(self, tool):
        assert await tool.execute("How many days until my birthday?") == UNTIL_PROMPT
        assert await tool.execute("How many months ago was that?") == AGO_PROMPT


class TestExtractDate:

    @pytest.mark.parametrize("query, expected", [
        ("meet on 03/15/2027", date(2027, 3, 15)),
        ("meet on 03-15-2027", date(2027, 3, 15)),
        ("meet on March 15, 2027", date(2027, 3, 15)),
        ("meet on 15 march 2027", date(2027, 3, 15)),
        ("meet on 2027-03-15", date(2027, 3, 15)),
    ])
    def test_supported_formats(self, query, expected):
        _, parsed = extract_date(query)

        assert parsed == expected

    def test_invalid_calendar_date(self):
        assert extract_date("02/30/2026") is None

    def test_no_date(self):
        assert extract_date("sometime next spring") is None


class TestShouldActivate:

    def test_time_keywords(self, tool):
        assert tool.should_activate("What's the date today?") is True
        assert tool.should_activate("Summarize this article") is False
